"""
操作日志：写操作（建题、导入等）的审计记录，存于 operation_log 表。

Audit rows are best effort. A failed insert is logged and dropped, so the
outcome of the operation being audited never depends on the audit table.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
import sqlite3
import time
import uuid
from typing import Any

from .db import Database
from .errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200

_COLUMNS = (
    "ts", "user", "action", "entity_type", "entity_id", "request_id",
    "before_json", "after_json", "payload_json", "result", "err_msg", "latency_ms",
)
_INSERT_SQL = (
    f"INSERT INTO operation_log({','.join(_COLUMNS)}) "
    f"VALUES({','.join(':' + c for c in _COLUMNS)})"
)


def _to_json(obj: Any) -> str | None:
    return None if obj is None else json.dumps(obj, ensure_ascii=False, default=str)


class LogContext:
    """Collects what one write operation did, then `write()`s it once."""

    def __init__(self, action: str, db: Database, user: str = "anonymous"):
        self.action = action
        self.db = db
        self.user = user
        self.request_id = str(uuid.uuid4())
        self._started = time.perf_counter()
        self.entity: tuple[str | None, str | None] = (None, None)
        self.before = self.after = self.payload = None

    def set_entity(self, etype: str, eid: str):
        self.entity = (etype, eid)

    def set_before(self, obj): self.before = obj
    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def record(self, result: str, err: str | None) -> dict:
        etype, eid = self.entity
        return {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(),
            "user": self.user,
            "action": self.action,
            "entity_type": etype,
            "entity_id": eid,
            "request_id": self.request_id,
            "before_json": _to_json(self.before),
            "after_json": _to_json(self.after),
            "payload_json": _to_json(self.payload),
            "result": result,
            "err_msg": err,
            "latency_ms": int((time.perf_counter() - self._started) * 1000),
        }

    def write(self, result: str = "OK", err: str | None = None) -> bool:
        """Store the audit row. Returns False (and logs) if it could not be stored."""
        rec = self.record(result, err)
        logger.info("%s %s entity=%s/%s %dms%s", self.action, result, rec["entity_type"],
                    rec["entity_id"], rec["latency_ms"], f" err={err}" if err else "")
        try:
            with self.db.connect() as conn:
                conn.execute(_INSERT_SQL, rec)
        except (sqlite3.Error, DatabaseConnectionError):
            logger.exception("operation_log write failed for %s (request %s)", self.action, self.request_id)
            return False
        return True


def search_operation_logs(db: Database, q: str | None, action: str | None, ts_from: str | None,
                          ts_to: str | None, page: int, size: int) -> tuple[int, list[dict]]:
    filters: list[tuple[str, list]] = []
    if q:
        like = f"%{q}%"
        filters.append(("(payload_json LIKE ? OR before_json LIKE ? OR after_json LIKE ?)", [like] * 3))
    if action:
        filters.append(("action = ?", [action]))
    if ts_from:
        filters.append(("ts >= ?", [ts_from]))
    if ts_to:
        filters.append(("ts <= ?", [ts_to]))

    where = " WHERE " + " AND ".join(f for f, _ in filters) if filters else ""
    params = [v for _, vals in filters for v in vals]
    page = max(page, 1)
    size = min(max(size, 1), MAX_PAGE_SIZE)

    with db.connect() as conn:
        total = conn.execute(f"SELECT COUNT(1) AS cnt FROM operation_log{where}", params).fetchone()["cnt"]
        rows = conn.execute(
            f"SELECT * FROM operation_log{where} ORDER BY ts DESC, id DESC LIMIT ? OFFSET ?",
            [*params, size, (page - 1) * size],
        ).fetchall()
    return total, [dict(r) for r in rows]
