"""kana-learn-api: hiragana/katakana lookup and quiz backend."""

__version__ = "0.1.0"
