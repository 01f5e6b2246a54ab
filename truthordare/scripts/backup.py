"""
Export questions (with tags) to CSV, or import them back.

Usage:
  python -m truthordare.scripts.backup export [backup.csv]
  python -m truthordare.scripts.backup import [backup.csv]
"""
from __future__ import annotations

import argparse
import logging

from truthordare.db import connect_with_retry, load_settings
from truthordare.logs import LogContext
from truthordare.services.backup_svc import export_questions_csv, import_questions_csv

DEFAULT_FILE = "backup.csv"


def main():
    ap = argparse.ArgumentParser(description="Export / import truth-or-dare questions as CSV")
    ap.add_argument("action", choices=["export", "import"])
    ap.add_argument("file", nargs="?", default=DEFAULT_FILE)
    args = ap.parse_args()

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    db = connect_with_retry(settings)
    db.ensure_schema()

    if args.action == "export":
        n = export_questions_csv(db, args.file)
        print(f"Database exported successfully to {args.file} ({n} questions).")
    else:
        log = LogContext("IMPORT_QUESTIONS", db, user="script")
        try:
            res = import_questions_csv(db, args.file, log)
        except Exception as e:
            log.write("ERROR", str(e))
            raise
        log.write("OK")
        print(f"Database imported successfully from {args.file} ({res['created_question']} questions).")


if __name__ == "__main__":
    main()
