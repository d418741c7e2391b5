from __future__ import annotations

from functools import partial
from pathlib import Path

import pytest

from control_combustible.bootstrap.container import AppContainer, build_container
from control_combustible.bootstrap.settings import Settings
from control_combustible.infrastructure.db import get_connection
from tests.e2e_sync.fakes import FakeConnectivity, FakeRemoteSheet, FakeSyncConfigStore, FakeTransport


@pytest.fixture
def remote_sheet() -> FakeRemoteSheet:
    return FakeRemoteSheet()


@pytest.fixture
def make_container(tmp_path: Path, remote_sheet: FakeRemoteSheet):
    containers: list[AppContainer] = []

    def _factory(
        name: str = "dispositivo",
        *,
        online: bool = True,
        config_store: FakeSyncConfigStore | None = None,
    ) -> tuple[AppContainer, FakeConnectivity, FakeTransport]:
        db_path = tmp_path / f"{name}.db"
        connectivity = FakeConnectivity(online=online)
        transport = FakeTransport(remote_sheet)
        container = build_container(
            Settings(db_path=db_path, config_dir=tmp_path / name, sync_interval_seconds=3600),
            connection_factory=partial(get_connection, db_path),
            config_store=config_store or FakeSyncConfigStore(webhook_url="https://example.com/exec"),
            connectivity=connectivity,
            transport_factory=transport.factory,
        )
        containers.append(container)
        return container, connectivity, transport

    yield _factory
    for container in containers:
        container.close()
