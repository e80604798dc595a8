from __future__ import annotations

# kana_backend/services/character_svc.py
import logging
import threading
from contextlib import contextmanager
from typing import Optional

from ..db import get_conn
from ..domain.alphabet import parse_alphabet_type, parse_locale
from ..errors import CharacterStoreError, InvalidArgument, NotFound
from ..repository import character_repo
from ..schemas import Character, CharacterResponse, ReadingTestItem, WritingTestItem

logger = logging.getLogger(__name__)

TEST_COUNT = 10  # 每次测验默认题数


@contextmanager
def _store(operation: str, **context):
    """打开一次请求级连接；数据访问错误记录日志后原样抛出。"""
    try:
        with get_conn() as conn:
            yield conn
    except (InvalidArgument, NotFound):
        raise
    except CharacterStoreError as e:
        logger.error(f"failed to {operation}: {e} {context}")
        raise


def list_characters(alphabet_type: str, locale: str,
                    cancel: Optional[threading.Event] = None) -> list[CharacterResponse]:
    at = parse_alphabet_type(alphabet_type, "list_all")
    loc = parse_locale(locale, "list_all")
    with _store("get all characters", alphabet_type=at.value, locale=loc.value) as conn:
        return character_repo.list_all(conn, at, loc, cancel=cancel)


def list_by_row_column(alphabet_type: str, locale: str, character: str,
                       cancel: Optional[threading.Event] = None) -> list[CharacterResponse]:
    at = parse_alphabet_type(alphabet_type, "list_by_row_column")
    loc = parse_locale(locale, "list_by_row_column")
    if not character:
        raise InvalidArgument("character parameter is required",
                              operation="list_by_row_column", param="character", value=character)
    with _store("get characters by row/column", character=character) as conn:
        return character_repo.list_by_row_column(conn, at, loc, character, cancel=cancel)


def get_character(char_id: int, locale: str, cancel: Optional[threading.Event] = None) -> Character:
    if char_id <= 0:
        raise InvalidArgument("invalid character id", operation="get_by_id", param="id", value=char_id)
    loc = parse_locale(locale, "get_by_id")
    with _store("get character by id", id=char_id) as conn:
        return character_repo.get_by_id(conn, char_id, loc, cancel=cancel)


def reading_test(alphabet_type: str, locale: str, count: int = TEST_COUNT,
                 cancel: Optional[threading.Event] = None) -> list[ReadingTestItem]:
    at = parse_alphabet_type(alphabet_type, "random_reading_test")
    loc = parse_locale(locale, "random_reading_test")
    with _store("get reading test", alphabet_type=at.value, count=count) as conn:
        return character_repo.random_reading_test(conn, at, loc, count, cancel=cancel)


def writing_test(alphabet_type: str, locale: str, count: int = TEST_COUNT,
                 cancel: Optional[threading.Event] = None) -> list[WritingTestItem]:
    at = parse_alphabet_type(alphabet_type, "random_writing_test")
    loc = parse_locale(locale, "random_writing_test")
    with _store("get writing test", alphabet_type=at.value, count=count) as conn:
        return character_repo.random_writing_test(conn, at, loc, count, cancel=cancel)
