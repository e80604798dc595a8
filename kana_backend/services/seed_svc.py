# kana_backend/services/seed_svc.py
from __future__ import annotations

import logging

import pandas as pd

from ..db import get_conn

logger = logging.getLogger(__name__)

SEED_COLUMNS = ["consonant", "vowel", "english_reading", "russian_reading", "katakana", "hiragana"]


def read_seed_csv(csv_path: str) -> pd.DataFrame:
    """读取字符 CSV；空单元格保持为空串（あ 行的 consonant 为空）。"""
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8")
    missing = [c for c in SEED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"seed csv missing columns: {missing}")
    return df[SEED_COLUMNS].apply(lambda col: col.str.strip())


def seed_load(csv_path: str, reset: bool = False, db_path: str | None = None) -> dict:
    """从 CSV 导入 characters 表。reset=True 时先清空（id 从 1 重新开始）。
    已存在相同 hiragana 的行跳过。
    """
    df = read_seed_csv(csv_path)
    inserted = 0
    skipped = 0
    with get_conn(db_path) as conn:
        if reset:
            conn.execute("DELETE FROM characters")
            conn.execute("DELETE FROM sqlite_sequence WHERE name='characters'")
        for _, r in df.iterrows():
            row = conn.execute("SELECT 1 FROM characters WHERE hiragana=?", (r["hiragana"],)).fetchone()
            if row:
                skipped += 1
                continue
            conn.execute(
                "INSERT INTO characters(consonant, vowel, english_reading, russian_reading, katakana, hiragana) "
                "VALUES(?,?,?,?,?,?)",
                tuple(r[c] for c in SEED_COLUMNS),
            )
            inserted += 1
        conn.commit()
    logger.info(f"seeded characters from {csv_path}: inserted={inserted} skipped={skipped}")
    return {"inserted": inserted, "skipped": skipped}
