from __future__ import annotations

from sqlite3 import Connection


def list_names(conn: Connection) -> list[str]:
    return [r["name"] for r in conn.execute("SELECT name FROM tags ORDER BY id").fetchall()]


def get_id(conn: Connection, name: str) -> int | None:
    row = conn.execute("SELECT id FROM tags WHERE name=?", (name,)).fetchone()
    return None if row is None else int(row["id"])


def ensure_tag(conn: Connection, name: str) -> int:
    """Insert the tag unless it exists (atomic upsert) and return its id."""
    conn.execute(
        "INSERT INTO tags(name) VALUES (?) ON CONFLICT(name) DO NOTHING",
        (name,),
    )
    tag_id = get_id(conn, name)
    if tag_id is None:
        raise LookupError(f"tag {name!r} missing after upsert")
    return tag_id


def link(conn: Connection, question_id: int, tag_id: int) -> None:
    conn.execute(
        "INSERT INTO question_tags(question_id, tag_id) VALUES (?, ?) "
        "ON CONFLICT(question_id, tag_id) DO NOTHING",
        (question_id, tag_id),
    )
