"""
Load the characters table from a seed CSV.

Usage:
  python -m kana_backend.scripts.seed_characters --csv seeds/characters.csv [--reset]

With --reset all rows in `characters` are DELETED first and ids restart at 1.
"""
from __future__ import annotations

import argparse

from kana_backend.config import load_config
from kana_backend.db import ensure_schema
from kana_backend.logs import setup_logging
from kana_backend.services.seed_svc import seed_load


def main(argv: list[str] | None = None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--csv", default="seeds/characters.csv")
    ap.add_argument("--reset", action="store_true", help="wipe the table before loading")
    ap.add_argument("--db", default=None, help="SQLite file (default: resolved from env/config.yaml)")
    args = ap.parse_args(argv)

    setup_logging(load_config().log_level)
    ensure_schema(args.db)
    res = seed_load(args.csv, reset=args.reset, db_path=args.db)
    print({"message": "ok", **res})
    return res


if __name__ == "__main__":
    main()
