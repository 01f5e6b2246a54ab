"""
题目数据访问层：按条件查询题目、列出标签、在单个事务中创建题目及其标签。

Functions take an open connection from `Database.connect()`; they never open
or share connections themselves.
"""
from __future__ import annotations

import sqlite3
from sqlite3 import Connection
from typing import Iterable

from ..db import deadline, is_interrupted, transaction
from ..domain.models import Question, QueryCriteria, QuestionType
from ..domain.query_builder import build_question_query
from ..errors import MappingError, QueryError, QueryTimeoutError, TransactionError
from . import tag_repo

TAG_SEPARATOR = ","
_QUESTION_TYPES = {t.value for t in QuestionType}


def _query_error(what: str, e: sqlite3.Error) -> QueryError:
    if is_interrupted(e):
        return QueryTimeoutError(f"{what}: deadline exceeded")
    return QueryError(f"{what}: {e}")


def row_to_question(row) -> Question:
    """Map a (id, language, type, task, tags) row; tags is comma-joined or NULL."""
    try:
        qid, language, qtype, task, tags = row["id"], row["language"], row["type"], row["task"], row["tags"]
    except (IndexError, KeyError, TypeError) as e:
        raise MappingError(f"unexpected question row shape: {e}") from e
    if isinstance(qid, bool) or not isinstance(qid, int):
        raise MappingError(f"question id is not an integer: {qid!r}")
    for name, value in (("language", language), ("type", qtype), ("task", task)):
        if not isinstance(value, str):
            raise MappingError(f"question {qid} has non-text {name}: {value!r}")
    if qtype not in _QUESTION_TYPES:
        raise MappingError(f"question {qid} has unknown type {qtype!r}")
    if tags is None:
        tag_list: list[str] = []
    elif isinstance(tags, str):
        tag_list = [t for t in tags.split(TAG_SEPARATOR) if t]
    else:
        raise MappingError(f"question {qid} has non-text tags: {tags!r}")
    return Question(id=qid, language=language, type=qtype, task=task, tags=tag_list)


def find_questions(conn: Connection, criteria: QueryCriteria, timeout: float | None = None) -> list[Question]:
    built = build_question_query(criteria)
    try:
        with deadline(conn, timeout):
            rows = conn.execute(built.sql, built.params).fetchall()
    except sqlite3.Error as e:
        raise _query_error("failed to fetch questions", e) from e
    return [row_to_question(r) for r in rows]


def list_tags(conn: Connection, timeout: float | None = None) -> list[str]:
    try:
        with deadline(conn, timeout):
            return tag_repo.list_names(conn)
    except sqlite3.Error as e:
        raise _query_error("failed to fetch tags", e) from e


def insert_question(conn: Connection, language: str, qtype: str, task: str) -> int:
    cur = conn.execute(
        "INSERT INTO questions(language, type, task) VALUES (?, ?, ?)",
        (language, qtype, task),
    )
    return int(cur.lastrowid)


def create_question(
    conn: Connection,
    language: str,
    qtype: str,
    task: str,
    tags: Iterable[str],
    timeout: float | None = None,
) -> int:
    """
    在一个事务里写入题目、按需创建标签并建立关联；任何一步失败都整体回滚。

    Returns the new question id. Raises TransactionError naming the failed step.
    """
    step = "begin transaction"
    try:
        with transaction(conn):
            with deadline(conn, timeout):
                step = "insert question"
                question_id = insert_question(conn, language, qtype, task)
                for name in tags:
                    step = f"upsert tag {name!r}"
                    tag_id = tag_repo.ensure_tag(conn, name)
                    step = f"link tag {name!r}"
                    tag_repo.link(conn, question_id, tag_id)
                step = "commit"
    except (sqlite3.Error, LookupError) as e:
        msg = "deadline exceeded" if isinstance(e, sqlite3.Error) and is_interrupted(e) else str(e)
        raise TransactionError(step, msg) from e
    return question_id
