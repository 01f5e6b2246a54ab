from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..db import Database
from ..errors import TruthOrDareError
from ..logs import LogContext
from ..services.question_svc import add_question, get_questions
from .base import get_db

router = APIRouter()


class QuestionOut(BaseModel):
    id: int
    language: str
    type: str
    task: str
    tags: List[str] = Field(default_factory=list)


class QuestionCreate(BaseModel):
    language: str
    type: str  # truth / dare
    task: str
    tags: List[str] = Field(default_factory=list)


def _split_tags(values: Optional[List[str]]) -> list[str]:
    # 同时支持 ?tags=a&tags=b 与 ?tags=a,b
    out: list[str] = []
    for v in values or []:
        out.extend(p.strip() for p in v.split(",") if p.strip())
    return out


@router.get("/api/questions", response_model=List[QuestionOut])
def api_questions(
    language: Optional[str] = Query(None, description="ISO language code, e.g. en, de"),
    qtype: Optional[str] = Query(None, alias="type", description="truth / dare"),
    tags: Optional[List[str]] = Query(None, description="repeat or comma-separate"),
    match_all_tags: bool = Query(False, alias="matchAllTags"),
    db: Database = Depends(get_db),
):
    try:
        items = get_questions(db, language, qtype, _split_tags(tags), match_all_tags)
    except TruthOrDareError:
        raise HTTPException(status_code=500, detail="Failed to fetch questions")
    return [q.to_dict() for q in items]


@router.post("/api/questions", status_code=201, response_model=QuestionOut)
def api_question_create(body: QuestionCreate, db: Database = Depends(get_db)):
    log = LogContext("CREATE_QUESTION", db)
    log.set_payload(body.model_dump())
    try:
        created = add_question(db, body.language, body.type, body.task, body.tags, log)
    except ValueError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except TruthOrDareError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=500, detail="Failed to add question")
    log.write("OK")
    return created.to_dict()
