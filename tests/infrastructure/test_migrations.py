from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from control_combustible.infrastructure.migrations import MigrationRunner, run_migrations


def _tablas(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


def test_run_migrations_crea_el_esquema_completo() -> None:
    conn = sqlite3.connect(":memory:")

    aplicadas = run_migrations(conn)

    assert aplicadas == [1]
    assert {"sites", "equipment", "fuel_events", "accounts", "sync_outbox", "schema_migrations"} <= _tablas(conn)
    assert conn.execute("PRAGMA user_version").fetchone()[0] == 1


def test_run_migrations_es_idempotente() -> None:
    conn = sqlite3.connect(":memory:")
    run_migrations(conn)

    assert run_migrations(conn) == []


def test_rollback_revierte_la_ultima_migracion() -> None:
    conn = sqlite3.connect(":memory:")
    runner = MigrationRunner(conn)
    runner.apply_all()

    revertidas = runner.rollback()

    assert revertidas == [1]
    assert "fuel_events" not in _tablas(conn)
    assert runner.status() == [{"version": 1, "name": "esquema_inicial", "applied": False}]


def test_migracion_sin_down_falla_al_descubrir(tmp_path: Path) -> None:
    (tmp_path / "001_demo.up.sql").write_text("CREATE TABLE demo (id INTEGER);", encoding="utf-8")

    with pytest.raises(FileNotFoundError, match="001_demo.up.sql"):
        MigrationRunner(sqlite3.connect(":memory:"), tmp_path)
