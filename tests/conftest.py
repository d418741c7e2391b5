from __future__ import annotations

import sqlite3
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from control_combustible.core.metrics import metrics_registry
from control_combustible.infrastructure.db import get_connection
from control_combustible.infrastructure.migrations import run_migrations
from control_combustible.infrastructure.sqlite_session import SqliteStoreSession


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    metrics_registry.reset()
    yield
    metrics_registry.reset()


@pytest.fixture
def connection() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def session(connection: sqlite3.Connection) -> SqliteStoreSession:
    return SqliteStoreSession(connection)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "control_combustible.db"
    conn = get_connection(path)
    run_migrations(conn)
    conn.close()
    return path


@pytest.fixture
def connection_factory(db_path: Path) -> Callable[[], sqlite3.Connection]:
    def _factory() -> sqlite3.Connection:
        return get_connection(db_path)

    return _factory


@pytest.fixture
def file_session(connection_factory: Callable[[], sqlite3.Connection]) -> SqliteStoreSession:
    conn = connection_factory()
    yield SqliteStoreSession(conn)
    conn.close()
