"""Character store: parameterized queries over the `characters` table.

Column names come from `domain.alphabet.resolve_columns` (closed lookup
tables); ids, keys, counts and excluded glyphs are always bound parameters.
Every function validates its alphabet/locale before touching the connection.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import closing, contextmanager
from typing import Iterator, Optional

from ..domain.alphabet import Columns, Locale, is_vowel, parse_locale, resolve_columns, READING_COLUMNS
from ..errors import (
    InsufficientData,
    InvalidArgument,
    IterationError,
    NotFound,
    QueryCancelled,
    QueryError,
    ScanError,
)
from ..schemas import Character, CharacterResponse, ReadingTestItem, WritingTestItem

logger = logging.getLogger(__name__)

WRONG_OPTIONS_PER_ITEM = 2

# progress handler 每执行 N 条 VM 指令检查一次取消信号
_PROGRESS_STEPS = 1000

# SQLite INTEGER 为 64 位有符号整数，超出范围的参数无法绑定
SQLITE_MAX_INT = 2**63 - 1

_LIST_SQL = (
    "SELECT id, consonant, vowel, {glyph} AS display_character, {reading} AS reading "
    "FROM characters ORDER BY id"
)

_ROW_COLUMN_SQL = (
    "SELECT id, consonant, vowel, {glyph} AS display_character, {reading} AS reading "
    "FROM characters WHERE (consonant = ? OR vowel = ?) ORDER BY id"
)

_BY_ID_SQL = (
    "SELECT id, consonant, vowel, {reading} AS reading, katakana, hiragana "
    "FROM characters WHERE id = ?"
)

_RANDOM_SQL = (
    "SELECT id, {glyph} AS display_character, {reading} AS reading "
    "FROM characters "
    "WHERE {glyph} IS NOT NULL AND {glyph} != '' AND {reading} IS NOT NULL AND {reading} != '' "
    "ORDER BY RANDOM() LIMIT ?"
)

_DISTRACTOR_SQL = (
    "SELECT display_character FROM ("
    "SELECT DISTINCT {glyph} AS display_character FROM characters "
    "WHERE {glyph} NOT IN ({placeholders}) "
    "AND {glyph} IS NOT NULL AND {glyph} != '' AND {reading} IS NOT NULL AND {reading} != ''"
    ") ORDER BY RANDOM()"
)


# ===== low-level helpers =====

def _cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


@contextmanager
def _cursor(conn, sql: str, params: tuple, operation: str,
            cancel: Optional[threading.Event] = None) -> Iterator[sqlite3.Cursor]:
    """Execute `sql` and yield its cursor; the cursor is always closed.

    With a cancel event, a progress handler aborts the running statement as
    soon as the event is set.
    """
    if _cancelled(cancel):
        raise QueryCancelled(f"{operation} cancelled before query", operation=operation)
    if cancel is not None:
        conn.set_progress_handler(lambda: 1 if cancel.is_set() else 0, _PROGRESS_STEPS)
    try:
        try:
            cur = conn.execute(sql, params)
        except OverflowError as e:
            raise InvalidArgument(f"parameter out of range: {e}", operation=operation) from e
        except sqlite3.Error as e:
            if _cancelled(cancel):
                raise QueryCancelled(f"{operation} cancelled", operation=operation) from e
            logger.error(f"{operation}: query failed: {e}")
            raise QueryError(f"failed to query characters: {e}", operation=operation) from e
        with closing(cur):
            yield cur
    finally:
        if cancel is not None:
            conn.set_progress_handler(None, 0)


def _rows(cur, operation: str, cancel: Optional[threading.Event] = None) -> Iterator:
    it = iter(cur)
    while True:
        try:
            row = next(it)
        except StopIteration:
            return
        except sqlite3.Error as e:
            if _cancelled(cancel):
                raise QueryCancelled(f"{operation} cancelled", operation=operation) from e
            logger.error(f"{operation}: error iterating rows: {e}")
            raise IterationError(f"error iterating rows: {e}", operation=operation) from e
        yield row


def _scan(operation: str, build, row):
    try:
        return build(row)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"{operation}: failed to scan row: {e}")
        raise ScanError(f"failed to scan character: {e}", operation=operation) from e


def _check_count(count, operation: str) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or not 0 <= count <= SQLITE_MAX_INT:
        raise InvalidArgument(
            f"invalid count: {count}, must be a non-negative integer",
            operation=operation, param="count", value=count,
        )
    return count


# ===== listing =====

def _listing_response(row) -> CharacterResponse:
    return CharacterResponse(
        id=int(row["id"]),
        consonant=row["consonant"] or None,
        vowel=row["vowel"] or None,
        character=row["display_character"],
        reading=row["reading"],
    )


def list_all(conn, alphabet_type, locale, cancel: Optional[threading.Event] = None) -> list[CharacterResponse]:
    """All characters ordered by id; empty classifier columns come back as None."""
    op = "list_all"
    cols = resolve_columns(alphabet_type, locale, op)
    sql = _LIST_SQL.format(glyph=cols.glyph, reading=cols.reading)
    with _cursor(conn, sql, (), op, cancel) as cur:
        return [_scan(op, _listing_response, r) for r in _rows(cur, op, cancel)]


def list_by_row_column(conn, alphabet_type, locale, key: str,
                       cancel: Optional[threading.Event] = None) -> list[CharacterResponse]:
    """Characters whose consonant or vowel equals `key`, ordered by id.

    Only the classifier that matched is populated: `vowel` when `key` is one of
    a/i/u/e/o, otherwise `consonant`. The other field stays None.
    """
    op = "list_by_row_column"
    cols = resolve_columns(alphabet_type, locale, op)
    by_vowel = is_vowel(key)

    def build(row) -> CharacterResponse:
        return CharacterResponse(
            id=int(row["id"]),
            consonant=None if by_vowel else row["consonant"],
            vowel=row["vowel"] if by_vowel else None,
            character=row["display_character"],
            reading=row["reading"],
        )

    sql = _ROW_COLUMN_SQL.format(glyph=cols.glyph, reading=cols.reading)
    with _cursor(conn, sql, (key, key), op, cancel) as cur:
        return [_scan(op, build, r) for r in _rows(cur, op, cancel)]


def get_by_id(conn, char_id: int, locale, cancel: Optional[threading.Event] = None) -> Character:
    op = "get_by_id"
    loc = parse_locale(locale, op)
    sql = _BY_ID_SQL.format(reading=READING_COLUMNS[loc])

    def build(row) -> Character:
        reading = row["reading"]
        return Character(
            id=int(row["id"]),
            consonant=row["consonant"],
            vowel=row["vowel"],
            katakana=row["katakana"],
            hiragana=row["hiragana"],
            english_reading=reading if loc is Locale.ENGLISH else None,
            russian_reading=reading if loc is Locale.RUSSIAN else None,
        )

    # 超出 INTEGER 范围的 id 不可能存在于表中
    if char_id <= SQLITE_MAX_INT:
        with _cursor(conn, sql, (char_id,), op, cancel) as cur:
            for row in _rows(cur, op, cancel):
                return _scan(op, build, row)
    raise NotFound("character not found", operation=op, param="id", value=char_id)


# ===== quizzes =====

def _draw_random(conn, cols: Columns, count: int, op: str, build,
                 cancel: Optional[threading.Event]) -> list:
    sql = _RANDOM_SQL.format(glyph=cols.glyph, reading=cols.reading)
    with _cursor(conn, sql, (count,), op, cancel) as cur:
        return [_scan(op, build, r) for r in _rows(cur, op, cancel)]


def _fill_wrong_options(conn, cols: Columns, items: list[ReadingTestItem], exclude: list[str],
                        op: str, cancel: Optional[threading.Event]) -> None:
    """Hand out distractors drawn from rows whose glyph is not in `exclude`.

    Each item consumes the next two unused rows of one randomly ordered result.
    """
    placeholders = ",".join(["?"] * len(exclude))
    sql = _DISTRACTOR_SQL.format(glyph=cols.glyph, reading=cols.reading, placeholders=placeholders)
    needed = WRONG_OPTIONS_PER_ITEM * len(items)
    with _cursor(conn, sql, tuple(exclude), op, cancel) as cur:
        stream = _rows(cur, op, cancel)
        used = 0
        for item in items:
            for slot in range(WRONG_OPTIONS_PER_ITEM):
                row = next(stream, None)
                if row is None:
                    logger.error(f"{op}: distractor pool exhausted after {used} of {needed} rows")
                    raise InsufficientData(
                        f"not enough distractors: need {needed}, got {used}",
                        operation=op, param="count", value=len(items),
                    )
                item.wrong_options[slot] = _scan(op, lambda r: str(r["display_character"]), row)
                used += 1


def random_reading_test(conn, alphabet_type, locale, count: int,
                        cancel: Optional[threading.Event] = None) -> list[ReadingTestItem]:
    """`count` random characters, each with two wrong glyph options.

    Two statements regardless of `count`: draw the correct set, then draw the
    distractor pool excluding every correct glyph of this set.
    """
    op = "random_reading_test"
    cols = resolve_columns(alphabet_type, locale, op)
    _check_count(count, op)
    if count == 0:
        return []

    def build(row) -> ReadingTestItem:
        return ReadingTestItem(
            id=int(row["id"]),
            correct_char=row["display_character"],
            reading=row["reading"],
            wrong_options=[""] * WRONG_OPTIONS_PER_ITEM,
        )

    items = _draw_random(conn, cols, count, op, build, cancel)
    if not items:
        return items
    _fill_wrong_options(conn, cols, items, [it.correct_char for it in items], op, cancel)
    return items


def random_writing_test(conn, alphabet_type, locale, count: int,
                        cancel: Optional[threading.Event] = None) -> list[WritingTestItem]:
    op = "random_writing_test"
    cols = resolve_columns(alphabet_type, locale, op)
    _check_count(count, op)
    if count == 0:
        return []

    def build(row) -> WritingTestItem:
        return WritingTestItem(
            id=int(row["id"]),
            character=row["display_character"],
            correct_reading=row["reading"],
        )

    return _draw_random(conn, cols, count, op, build, cancel)
