from __future__ import annotations

# truthordare/db.py
import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

import yaml

from .errors import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)

# 设置解析顺序：
# 1) 环境变量 TOD_*（最高优先级）
# 2) config.yaml 的 test_db_path（当检测到测试环境时）
# 3) config.yaml 的 db_path 及其它键
# 4) 兜底：项目根 truthordare.db
_PACKAGE_DIR = os.path.dirname(__file__)
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)
_ROOT_DB = os.path.join(_PROJECT_ROOT, "truthordare.db")
SCHEMA_PATH = os.path.join(_PACKAGE_DIR, "schema.sql")

# progress handler 每执行多少条 VM 指令检查一次 deadline
_PROGRESS_STEPS = 1000


@dataclass(frozen=True)
class Settings:
    db_path: str
    connect_attempts: int = 10
    connect_retry_delay: float = 5.0
    query_timeout: float | None = 10.0
    busy_timeout: float = 5.0
    log_level: str = "INFO"


def _read_config_yaml(cfg_path: str | None = None) -> dict:
    cfg_path = cfg_path or os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read {cfg_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"{cfg_path} must contain a mapping")
    return cfg


def _is_test_env() -> bool:
    return (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)


def _pick(env_key: str, cfg: dict, cfg_key: str):
    v = os.environ.get(env_key)
    if v is not None and v.strip():
        return v.strip()
    v = cfg.get(cfg_key)
    if isinstance(v, str):
        return v.strip() or None
    return v


def _as_number(name: str, raw, cast, minimum: float, default):
    if raw is None:
        return default
    try:
        value = cast(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(cfg_path: str | None = None) -> Settings:
    """Resolve storage settings from the environment and config.yaml."""
    cfg = _read_config_yaml(cfg_path)

    env_path = os.environ.get("TOD_DB_PATH")
    cfg_db = cfg.get("db_path")
    cfg_test = cfg.get("test_db_path")
    if env_path is not None:
        path = env_path.strip()
        if not path:
            raise ConfigurationError("TOD_DB_PATH is set but empty")
    elif _is_test_env() and isinstance(cfg_test, str) and cfg_test.strip():
        path = cfg_test.strip()
    elif isinstance(cfg_db, str) and cfg_db.strip():
        path = cfg_db.strip()
    elif cfg_db is not None:
        raise ConfigurationError(f"db_path must be a non-empty string, got {cfg_db!r}")
    else:
        path = _ROOT_DB

    timeout_raw = _pick("TOD_QUERY_TIMEOUT", cfg, "query_timeout")
    query_timeout = _as_number("query_timeout", timeout_raw, float, 0, 10.0)
    # 0 表示不限时
    if query_timeout == 0:
        query_timeout = None

    level = str(_pick("TOD_LOG_LEVEL", cfg, "log_level") or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"unknown log_level {level!r}")

    return Settings(
        db_path=path,
        connect_attempts=_as_number("connect_attempts", _pick("TOD_CONNECT_ATTEMPTS", cfg, "connect_attempts"), int, 1, 10),
        connect_retry_delay=_as_number("connect_retry_delay", _pick("TOD_CONNECT_RETRY_DELAY", cfg, "connect_retry_delay"), float, 0, 5.0),
        query_timeout=query_timeout,
        busy_timeout=_as_number("busy_timeout", cfg.get("busy_timeout"), float, 0, 5.0),
        log_level=level,
    )


class Database:
    """Owned handle to the SQLite database; one connection per `connect()` call."""

    def __init__(self, path: str, busy_timeout: float = 5.0, query_timeout: float | None = None):
        self.path = path
        self.busy_timeout = busy_timeout
        self.query_timeout = query_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.db_path, busy_timeout=settings.busy_timeout, query_timeout=settings.query_timeout)

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self.path,
                timeout=self.busy_timeout,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"cannot open database {self.path}: {e}") from e
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            conn.close()
            raise DatabaseConnectionError(f"cannot use database {self.path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        获取 SQLite 连接（autocommit 模式，事务通过 `transaction()` 显式开启）。
        打开 foreign_keys，设置 row_factory 为 Row。
        """
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    def ping(self) -> None:
        with self.connect() as conn:
            try:
                conn.execute("SELECT 1").fetchone()
            except sqlite3.Error as e:
                raise DatabaseConnectionError(f"database {self.path} not usable: {e}") from e

    def ensure_schema(self, schema_path: str = SCHEMA_PATH) -> None:
        with open(schema_path, "r", encoding="utf-8") as f:
            ddl = f.read()
        with self.connect() as conn:
            try:
                conn.executescript(ddl)
            except sqlite3.Error as e:
                raise DatabaseConnectionError(f"cannot apply schema to {self.path}: {e}") from e


def connect_with_retry(settings: Settings, sleep: Callable[[float], None] = time.sleep) -> Database:
    """Open the database at startup, retrying `connect_attempts` times."""
    dirn = os.path.dirname(settings.db_path)
    if dirn and not os.path.isdir(dirn):
        try:
            os.makedirs(dirn, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"cannot create directory for {settings.db_path}: {e}") from e

    db = Database.from_settings(settings)
    last_err: DatabaseConnectionError | None = None
    for attempt in range(1, settings.connect_attempts + 1):
        try:
            db.ping()
            logger.info("Connected to the database at %s", settings.db_path)
            return db
        except DatabaseConnectionError as e:
            last_err = e
            logger.warning(
                "Failed to connect to database (attempt %d/%d): %s",
                attempt, settings.connect_attempts, e,
            )
            if attempt < settings.connect_attempts:
                sleep(settings.connect_retry_delay)
    raise DatabaseConnectionError(
        f"failed to connect to database after {settings.connect_attempts} attempts: {last_err}"
    ) from last_err


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """BEGIN IMMEDIATE ... COMMIT, or ROLLBACK on any exception."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


@contextmanager
def deadline(conn: sqlite3.Connection, timeout: float | None) -> Iterator[sqlite3.Connection]:
    """Interrupt statements on `conn` once `timeout` seconds have passed."""
    if timeout is None:
        yield conn
        return
    expires = time.monotonic() + timeout
    conn.set_progress_handler(lambda: 1 if time.monotonic() >= expires else 0, _PROGRESS_STEPS)
    try:
        yield conn
    finally:
        conn.set_progress_handler(None, _PROGRESS_STEPS)


def is_interrupted(err: sqlite3.Error) -> bool:
    return isinstance(err, sqlite3.OperationalError) and "interrupted" in str(err)
