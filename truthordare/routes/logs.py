from __future__ import annotations

from fastapi import APIRouter, Depends

from ..db import Database
from ..logs import search_operation_logs
from .base import get_db

router = APIRouter()


@router.get("/api/logs/search")
def api_logs_search(
    page: int = 1,
    size: int = 20,
    action: str | None = None,
    query: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
    db: Database = Depends(get_db),
):
    total, items = search_operation_logs(db, query, action, ts_from, ts_to, page, size)
    return {"total": total, "items": items}
