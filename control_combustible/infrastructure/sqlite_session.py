from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
import sqlite3

from control_combustible.domain.ports import StoreSessionPort
from control_combustible.infrastructure.repos_outbox_sqlite import OutboxRepositorySQLite
from control_combustible.infrastructure.repos_sqlite import (
    AccountRepositorySQLite,
    EquipmentRepositorySQLite,
    FuelEventRepositorySQLite,
    SiteRepositorySQLite,
)
from control_combustible.infrastructure.sqlite_uow import transaccion


class SqliteStoreSession(StoreSessionPort):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.sites = SiteRepositorySQLite(connection)
        self.equipment = EquipmentRepositorySQLite(connection)
        self.fuel_events = FuelEventRepositorySQLite(connection)
        self.accounts = AccountRepositorySQLite(connection)
        self.outbox = OutboxRepositorySQLite(connection)

    def transaction(self):
        return transaccion(self.connection)


def session_scope_factory(
    connection_factory: Callable[[], sqlite3.Connection],
) -> Callable[[], AbstractContextManager[SqliteStoreSession]]:
    """Devuelve una fábrica de sesiones que abren y cierran su propia conexión."""

    @contextmanager
    def _scope() -> Iterator[SqliteStoreSession]:
        connection = connection_factory()
        try:
            yield SqliteStoreSession(connection)
        finally:
            connection.close()

    return _scope
