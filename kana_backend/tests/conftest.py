import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

SEED_CSV = _PROJECT_ROOT / "seeds" / "characters.csv"
SCHEMA_SQL = _PROJECT_ROOT / "kana_backend" / "schema.sql"


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    from kana_backend.config import load_test_config, resolve_test_db_path
    from kana_backend.db import ensure_schema
    from kana_backend.services.seed_svc import seed_load

    # TEST_DB_* 不全时回退到临时文件
    fallback = str(tmp_path_factory.mktemp("db") / "kana_test.db")
    path = resolve_test_db_path(load_test_config(), fallback)
    os.environ["KANA_DB_PATH"] = path
    ensure_schema(path)
    seed_load(str(SEED_CSV), reset=True, db_path=path)
    return path


@pytest.fixture()
def conn(tmp_db_path):
    from kana_backend.db import get_conn
    with get_conn(tmp_db_path) as c:
        yield c


@pytest.fixture()
def client(tmp_db_path):
    # Import app after DB ready so startup hooks can use it
    from kana_backend.api import app
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture()
def make_conn():
    """In-memory database with the real schema and the given character rows.

    Rows are (consonant, vowel, english_reading, russian_reading, katakana, hiragana).
    """
    opened = []

    def _make(rows):
        c = sqlite3.connect(":memory:", isolation_level=None)
        c.row_factory = sqlite3.Row
        c.executescript(SCHEMA_SQL.read_text(encoding="utf-8"))
        c.executemany(
            "INSERT INTO characters(consonant, vowel, english_reading, russian_reading, katakana, hiragana) "
            "VALUES(?,?,?,?,?,?)",
            rows,
        )
        opened.append(c)
        return c

    yield _make
    for c in opened:
        c.close()


@pytest.fixture(autouse=True)
def _clean_request_log(tmp_db_path):
    # Safety: ensure we only ever wipe the test DB
    assert os.environ.get("KANA_DB_PATH") == tmp_db_path, "Refusing to clean non-test DB"
    c = sqlite3.connect(tmp_db_path)
    try:
        c.execute("DELETE FROM request_log")
        c.commit()
    finally:
        c.close()
    yield
