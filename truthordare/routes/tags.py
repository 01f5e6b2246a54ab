from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..db import Database
from ..errors import TruthOrDareError
from ..services.question_svc import get_tags
from .base import get_db

router = APIRouter()


@router.get("/api/tags", response_model=list[str])
def api_tags(db: Database = Depends(get_db)):
    try:
        return get_tags(db)
    except TruthOrDareError:
        raise HTTPException(status_code=500, detail="Failed to fetch tags")
