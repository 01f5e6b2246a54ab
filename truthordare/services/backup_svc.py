from __future__ import annotations

# truthordare/services/backup_svc.py
import pandas as pd

from ..db import Database
from ..logs import LogContext
from ..repository.question_repo import TAG_SEPARATOR
from .question_svc import add_question, get_questions

CSV_COLUMNS = ["language", "type", "task", "tags"]


def export_questions_csv(db: Database, path: str) -> int:
    """把全部题目（含标签，逗号拼接）导出为 CSV，返回行数。"""
    items = get_questions(db)
    df = pd.DataFrame(
        [
            {"language": q.language, "type": q.type, "task": q.task, "tags": TAG_SEPARATOR.join(q.tags)}
            for q in items
        ],
        columns=CSV_COLUMNS,
    )
    df.to_csv(path, index=False, encoding="utf-8")
    return len(df)


def import_questions_csv(db: Database, path: str, log: LogContext | None = None) -> dict:
    """
    从 CSV 导入题目；CSV 要含列：language, type, task，可选 tags（逗号分隔）。
    每行单独一个事务写入；遇到校验失败的行直接抛出 ValueError（含行号）。
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [c for c in CSV_COLUMNS[:3] if c not in df.columns]
    if missing:
        raise ValueError(f"missing_columns: {','.join(missing)}")

    created = 0
    for idx, r in df.iterrows():
        tags = [t for t in str(r.get("tags", "")).split(TAG_SEPARATOR) if t.strip()]
        try:
            add_question(db, r["language"], r["type"].strip(), r["task"], tags)
        except ValueError as e:
            raise ValueError(f"row {idx + 2}: {e}") from e
        created += 1

    if log is not None:
        log.set_entity("QUESTION_CSV", path)
        log.set_after({"created_question": created})
    return {"created_question": created}
