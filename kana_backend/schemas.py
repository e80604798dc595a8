from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Schema(BaseModel):
    # 序列化用 camelCase 别名；构造时也可用字段名
    model_config = ConfigDict(populate_by_name=True)


class Character(_Schema):
    """One row of the characters table; only the requested reading is set."""
    id: int
    consonant: str = ""
    vowel: str = ""
    english_reading: Optional[str] = Field(None, alias="englishReading")
    russian_reading: Optional[str] = Field(None, alias="russianReading")
    katakana: str = ""
    hiragana: str = ""


class CharacterResponse(_Schema):
    """Listing projection. `None` classifiers are omitted from JSON."""
    id: int
    consonant: Optional[str] = None
    vowel: Optional[str] = None
    character: str
    reading: str


class ReadingTestItem(_Schema):
    id: int
    correct_char: str = Field(alias="correctChar")
    reading: str
    wrong_options: List[str] = Field(default_factory=list, alias="wrongOptions")


class WritingTestItem(_Schema):
    id: int
    character: str
    correct_reading: str = Field(alias="correctReading")
