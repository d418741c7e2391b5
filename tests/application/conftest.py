from __future__ import annotations

import sqlite3
from collections.abc import Callable

import pytest

from control_combustible.application.fleet_use_cases import FleetUseCases
from control_combustible.application.outbox import OutboxQueue
from control_combustible.application.sync_engine import SyncEngine
from control_combustible.infrastructure.sqlite_session import SqliteStoreSession, session_scope_factory
from tests.e2e_sync.fakes import FakeConnectivity, FakeSyncConfigStore, FakeTransport


@pytest.fixture
def config_store() -> FakeSyncConfigStore:
    return FakeSyncConfigStore(webhook_url="https://script.google.com/macros/s/demo/exec")


@pytest.fixture
def connectivity() -> FakeConnectivity:
    return FakeConnectivity(online=True)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fleet(file_session: SqliteStoreSession) -> FleetUseCases:
    return FleetUseCases(file_session, OutboxQueue(file_session.outbox))


@pytest.fixture
def make_engine(
    connection_factory: Callable[[], sqlite3.Connection],
    config_store: FakeSyncConfigStore,
    connectivity: FakeConnectivity,
    transport: FakeTransport,
):
    engines: list[SyncEngine] = []

    def _factory(**kwargs) -> SyncEngine:
        engine = SyncEngine(
            session_scope_factory(connection_factory),
            config_store,
            connectivity,
            transport.factory,
            **kwargs,
        )
        engines.append(engine)
        return engine

    yield _factory
    for engine in engines:
        engine.stop(timeout=1)


@pytest.fixture
def obra_y_equipo(fleet: FleetUseCases) -> tuple[str, str]:
    obra = fleet.create_site(name="Autovía A-7")
    equipo = fleet.save_equipment(site_id=obra.id, name="Camión 12", category="Camión")
    return obra.id, equipo.id
