"""
字符 / 测验 API 端点测试
"""
from __future__ import annotations

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from kana_backend.errors import QueryError


def test_health_and_version(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("status") == "ok"

    v = client.get("/version")
    assert v.status_code == 200
    assert v.json().get("app") == "kana-learn-api"


def test_list_all_defaults(client):
    r = client.get("/api/v1/characters")
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 46
    assert [d["id"] for d in data] == list(range(1, 47))
    assert data[0] == {"id": 1, "vowel": "a", "character": "あ", "reading": "a"}
    assert data[5] == {"id": 6, "consonant": "k", "vowel": "a", "character": "か", "reading": "ka"}


def test_list_all_katakana_russian(client):
    r = client.get("/api/v1/characters", params={"type": "kt", "locale": "ru"})
    assert r.status_code == 200
    assert r.json()[5]["character"] == "カ"
    assert r.json()[5]["reading"] == "ка"


def test_list_all_invalid_params(client):
    r = client.get("/api/v1/characters", params={"type": "xx"})
    assert r.status_code == 400
    assert "invalid alphabet type" in r.json()["error"]
    r = client.get("/api/v1/characters", params={"locale": "de"})
    assert r.status_code == 400


def test_row_column_vowel_omits_consonant(client):
    r = client.get("/api/v1/characters/row-column", params={"character": "i"})
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 8
    for item in data:
        assert item["vowel"] == "i"
        assert "consonant" not in item


def test_row_column_consonant_omits_vowel(client):
    r = client.get("/api/v1/characters/row-column", params={"type": "kt", "character": "s"})
    assert r.status_code == 200
    data = r.json()
    assert [d["character"] for d in data] == ["サ", "シ", "ス", "セ", "ソ"]
    for item in data:
        assert item["consonant"] == "s"
        assert "vowel" not in item


def test_row_column_requires_character(client):
    r = client.get("/api/v1/characters/row-column")
    assert r.status_code == 400
    assert r.json() == {"error": "character parameter is required"}


def test_get_by_id(client):
    r = client.get("/api/v1/characters/6", params={"locale": "ru"})
    assert r.status_code == 200
    data = r.json()
    assert data["hiragana"] == "か"
    assert data["katakana"] == "カ"
    assert data["russianReading"] == "ка"
    assert "englishReading" not in data


def test_get_by_id_errors(client):
    assert client.get("/api/v1/characters/abc").status_code == 400
    assert client.get("/api/v1/characters/0").status_code == 400
    r = client.get("/api/v1/characters/9999")
    assert r.status_code == 404
    assert r.json() == {"error": "character not found"}


def test_reading_test(client):
    r = client.get("/api/v1/tests/hiragana/reading", params={"count": 2})
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 2
    for item in data:
        assert set(item) == {"id", "correctChar", "reading", "wrongOptions"}
        assert len(item["wrongOptions"]) == 2
        assert item["correctChar"] not in item["wrongOptions"]


def test_reading_test_default_count(client):
    r = client.get("/api/v1/tests/katakana/reading", params={"locale": "ru"})
    assert r.status_code == 200
    assert len(r.json()) == 10


def test_reading_test_insufficient_data(client):
    r = client.get("/api/v1/tests/hiragana/reading", params={"count": 30})
    assert r.status_code == 409


def test_writing_test(client):
    r = client.get("/api/v1/tests/katakana/writing", params={"count": 3})
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 3
    for item in data:
        assert set(item) == {"id", "character", "correctReading"}


def test_writing_test_zero(client):
    r = client.get("/api/v1/tests/hiragana/writing", params={"count": 0})
    assert r.status_code == 200
    assert r.json() == []


def test_quiz_invalid_type(client):
    r = client.get("/api/v1/tests/latin/writing")
    assert r.status_code == 400
    r = client.get("/api/v1/tests/hiragana/reading", params={"count": -1})
    assert r.status_code == 422
    body = r.json()
    assert set(body) == {"error"}
    assert body["error"].startswith("invalid count parameter:")


def test_validation_errors_use_error_body(client):
    r = client.get("/api/v1/tests/katakana/writing", params={"count": 47})
    assert r.status_code == 422
    assert "invalid count parameter" in r.json()["error"]
    r = client.get("/api/logs/search", params={"page": "abc"})
    assert r.status_code == 422
    assert "invalid page parameter" in r.json()["error"]


def test_get_by_id_beyond_integer_range(client):
    r = client.get("/api/v1/characters/100000000000000000000")
    assert r.status_code == 404
    assert r.json() == {"error": "character not found"}


class TestCharacterAPIErrors(unittest.TestCase):

    def setUp(self):
        from kana_backend.api import app
        self.client = TestClient(app)

    @patch("kana_backend.services.character_svc.list_characters")
    def test_store_failure_is_500(self, mock_list):
        mock_list.side_effect = QueryError("connection refused", operation="list_all")
        # 错误已在 repository / service 层记录，路由层不重复记录
        with self.assertNoLogs("kana_backend.routes", level="ERROR"):
            r = self.client.get("/api/v1/characters")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), {"error": "failed to get characters"})
        mock_list.assert_called_once_with("hr", "en")

    @patch("kana_backend.services.character_svc.writing_test")
    def test_unexpected_error_recovered(self, mock_writing):
        mock_writing.side_effect = RuntimeError("unexpected")
        r = self.client.get("/api/v1/tests/hiragana/writing")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.json(), {"error": "internal server error"})
