from __future__ import annotations

# truthordare/services/question_svc.py
import logging
from typing import Iterable

from ..db import Database
from ..domain.models import Question, QueryCriteria, QuestionType
from ..domain.query_builder import normalize_tags
from ..errors import TruthOrDareError
from ..logs import LogContext
from ..repository import question_repo
from ..repository.question_repo import TAG_SEPARATOR

logger = logging.getLogger(__name__)

MAX_LANGUAGE_LEN = 50
MAX_TAG_LEN = 50


def _validate_question(language: str, qtype: str, task: str,
                       tags: Iterable[str] | None) -> tuple[str, str, str, tuple[str, ...]]:
    """Normalize input for a new question; raises ValueError with a short code."""
    language = (language or "").strip()
    if not language:
        raise ValueError("language_required")
    if len(language) > MAX_LANGUAGE_LEN:
        raise ValueError("language_too_long")
    if qtype not in {t.value for t in QuestionType}:
        raise ValueError("type_must_be_truth_or_dare")
    task = (task or "").strip()
    if not task:
        raise ValueError("task_required")
    names = normalize_tags(tags)
    for name in names:
        if TAG_SEPARATOR in name:
            raise ValueError(f"tag_contains_separator: {name}")
        if len(name) > MAX_TAG_LEN:
            raise ValueError(f"tag_too_long: {name}")
    return language, qtype, task, names


def get_questions(
    db: Database,
    language: str | None = None,
    qtype: str | None = None,
    tags: Iterable[str] | None = None,
    match_all_tags: bool = False,
) -> list[Question]:
    criteria = QueryCriteria.of(language, qtype, normalize_tags(tags), match_all_tags)
    with db.connect() as conn:
        try:
            return question_repo.find_questions(conn, criteria, timeout=db.query_timeout)
        except TruthOrDareError as e:
            logger.error("Failed to fetch questions %s: %s", criteria, e)
            raise


def get_tags(db: Database) -> list[str]:
    with db.connect() as conn:
        try:
            return question_repo.list_tags(conn, timeout=db.query_timeout)
        except TruthOrDareError as e:
            logger.error("Failed to fetch tags: %s", e)
            raise


def add_question(
    db: Database,
    language: str,
    qtype: str,
    task: str,
    tags: Iterable[str] | None = None,
    log: LogContext | None = None,
) -> Question:
    """校验后写入题目及标签（单事务），返回新建的题目。"""
    language, qtype, task, names = _validate_question(language, qtype, task, tags)
    with db.connect() as conn:
        try:
            qid = question_repo.create_question(conn, language, qtype, task, names, timeout=db.query_timeout)
        except TruthOrDareError as e:
            logger.error("Failed to add question (%s/%s): %s", language, qtype, e)
            raise
    created = Question(id=qid, language=language, type=qtype, task=task, tags=list(names))
    if log is not None:
        log.set_entity("QUESTION", str(qid))
        log.set_after(created.to_dict())
    return created
