import sys
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from truthordare.db import Database
from truthordare.repository import question_repo


@pytest.fixture()
def db(tmp_path):
    # Fresh temp DB per test; never touches a real database
    database = Database(str(tmp_path / "truthordare_test.db"))
    database.ensure_schema()
    return database


@pytest.fixture()
def conn(db):
    with db.connect() as c:
        yield c


@pytest.fixture()
def add(conn):
    """Insert a question through the transactional write path, return its id."""
    def _add(language, qtype, task, tags=()):
        return question_repo.create_question(conn, language, qtype, task, list(tags))
    return _add


@pytest.fixture()
def client(db):
    from fastapi.testclient import TestClient
    from truthordare.api import create_app
    return TestClient(create_app(db))
