from __future__ import annotations

from dataclasses import dataclass
from functools import partial
import sqlite3
from typing import Callable

from control_combustible.application.auth import AuthService
from control_combustible.application.fleet_use_cases import FleetUseCases
from control_combustible.application.outbox import OutboxQueue
from control_combustible.application.remote_export import RemoteExportService
from control_combustible.application.remote_import import RemoteImportService
from control_combustible.application.sync_engine import SyncEngine
from control_combustible.application.sync_settings import SyncSettingsService
from control_combustible.bootstrap.settings import Settings, load_settings
from control_combustible.domain.ports import ConnectivityProbePort, RemoteTransport, SyncConfigStorePort
from control_combustible.domain.sync_models import TransportConfig
from control_combustible.infrastructure.db import get_connection
from control_combustible.infrastructure.health_probes import SocketConnectivityProbe
from control_combustible.infrastructure.local_config import SyncConfigStore
from control_combustible.infrastructure.migrations import run_migrations
from control_combustible.infrastructure.seed import ensure_admin_account
from control_combustible.infrastructure.sqlite_session import SqliteStoreSession, session_scope_factory
from control_combustible.infrastructure.transport_factory import build_transport

ConnectionFactory = Callable[[], sqlite3.Connection]
TransportFactory = Callable[[TransportConfig], RemoteTransport]


@dataclass
class AppContainer:
    settings: Settings
    connection: sqlite3.Connection
    config_store: SyncConfigStorePort
    session: SqliteStoreSession
    outbox: OutboxQueue
    sync_engine: SyncEngine
    sync_settings: SyncSettingsService
    fleet: FleetUseCases
    auth: AuthService
    remote_import: RemoteImportService
    remote_export: RemoteExportService

    def close(self) -> None:
        self.sync_engine.stop()
        self.connection.close()


def build_container(
    settings: Settings | None = None,
    *,
    connection_factory: ConnectionFactory | None = None,
    config_store: SyncConfigStorePort | None = None,
    connectivity: ConnectivityProbePort | None = None,
    transport_factory: TransportFactory | None = None,
) -> AppContainer:
    settings = settings or load_settings()
    connection_factory = connection_factory or partial(get_connection, settings.db_path)
    config_store = config_store or SyncConfigStore(settings.config_dir)
    connectivity = connectivity or SocketConnectivityProbe()
    transport_factory = transport_factory or partial(
        build_transport,
        timeout_seconds=settings.http_timeout_seconds,
        on_spreadsheet_created=config_store.set_spreadsheet_id,
    )

    connection = connection_factory()
    run_migrations(connection)
    ensure_admin_account(connection)
    session = SqliteStoreSession(connection)

    sync_engine = SyncEngine(
        session_scope_factory(connection_factory),
        config_store,
        connectivity,
        transport_factory,
        interval_seconds=settings.sync_interval_seconds,
        max_retries=settings.max_retries,
    )
    outbox = OutboxQueue(
        session.outbox,
        wake=sync_engine.request_sync,
        is_online=lambda: sync_engine.is_online,
    )

    return AppContainer(
        settings=settings,
        connection=connection,
        config_store=config_store,
        session=session,
        outbox=outbox,
        sync_engine=sync_engine,
        sync_settings=SyncSettingsService(config_store),
        fleet=FleetUseCases(session, outbox),
        auth=AuthService(session.accounts),
        remote_import=RemoteImportService(session, config_store, transport_factory),
        remote_export=RemoteExportService(session, config_store, transport_factory),
    )
