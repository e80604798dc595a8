"""Alphabet / locale parameters and the column each one selects.

Column identifiers are only ever taken from the lookup tables below, so they
can be placed into SQL text; user-supplied values never are.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import InvalidArgument


class AlphabetType(str, Enum):
    HIRAGANA = "hiragana"
    KATAKANA = "katakana"


class Locale(str, Enum):
    ENGLISH = "english"
    RUSSIAN = "russian"


GLYPH_COLUMNS: dict[AlphabetType, str] = {
    AlphabetType.HIRAGANA: "hiragana",
    AlphabetType.KATAKANA: "katakana",
}

READING_COLUMNS: dict[Locale, str] = {
    Locale.ENGLISH: "english_reading",
    Locale.RUSSIAN: "russian_reading",
}

# 短代码（hr/kt、en/ru）与全称都接受
_ALPHABET_ALIASES: dict[str, AlphabetType] = {
    "hiragana": AlphabetType.HIRAGANA,
    "hr": AlphabetType.HIRAGANA,
    "katakana": AlphabetType.KATAKANA,
    "kt": AlphabetType.KATAKANA,
}

_LOCALE_ALIASES: dict[str, Locale] = {
    "english": Locale.ENGLISH,
    "en": Locale.ENGLISH,
    "russian": Locale.RUSSIAN,
    "ru": Locale.RUSSIAN,
}

VOWELS = frozenset({"a", "i", "u", "e", "o"})


def parse_alphabet_type(value, operation: str | None = None) -> AlphabetType:
    if isinstance(value, AlphabetType):
        return value
    at = _ALPHABET_ALIASES.get(value) if isinstance(value, str) else None
    if at is None:
        raise InvalidArgument(
            f"invalid alphabet type: {value}, must be 'hiragana' ('hr') or 'katakana' ('kt')",
            operation=operation,
            param="alphabet_type",
            value=value,
        )
    return at


def parse_locale(value, operation: str | None = None) -> Locale:
    if isinstance(value, Locale):
        return value
    loc = _LOCALE_ALIASES.get(value) if isinstance(value, str) else None
    if loc is None:
        raise InvalidArgument(
            f"invalid locale: {value}, must be 'english' ('en') or 'russian' ('ru')",
            operation=operation,
            param="locale",
            value=value,
        )
    return loc


@dataclass(frozen=True)
class Columns:
    glyph: str
    reading: str


def resolve_columns(alphabet_type, locale, operation: str | None = None) -> Columns:
    """Validate both parameters and return the (glyph, reading) column pair."""
    at = parse_alphabet_type(alphabet_type, operation)
    loc = parse_locale(locale, operation)
    return Columns(glyph=GLYPH_COLUMNS[at], reading=READING_COLUMNS[loc])


def is_vowel(key: str) -> bool:
    return key in VOWELS
