"""
Create the schema and optionally load the seed questions.

Usage:
  python -m truthordare.scripts.init_db [--seed] [--seeds truthordare/seeds/questions.csv]
"""
from __future__ import annotations

import argparse
import logging
import os

from truthordare.db import connect_with_retry, load_settings
from truthordare.logs import LogContext
from truthordare.services.backup_svc import import_questions_csv

DEFAULT_SEEDS = os.path.join(os.path.dirname(os.path.dirname(__file__)), "seeds", "questions.csv")


def main():
    ap = argparse.ArgumentParser(description="Initialize the truth-or-dare database")
    ap.add_argument("--seed", action="store_true", help="load seed questions after creating the schema")
    ap.add_argument("--seeds", default=DEFAULT_SEEDS, help="seed CSV (language,type,task,tags)")
    args = ap.parse_args()

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    db = connect_with_retry(settings)
    db.ensure_schema()
    print({"message": "schema ok", "db_path": db.path})

    if args.seed:
        log = LogContext("SEED_QUESTIONS", db, user="script")
        res = import_questions_csv(db, args.seeds, log)
        log.write("OK")
        print({"message": "ok", **res})


if __name__ == "__main__":
    main()
