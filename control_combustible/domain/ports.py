from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

from control_combustible.domain.models import (
    Account,
    Equipment,
    FuelEvent,
    OutboxEntry,
    OutboxStatus,
    Site,
    SyncStatus,
)
from control_combustible.domain.sync_models import PushResult


class SiteRepository(Protocol):
    def list_all(self) -> list[Site]:
        ...

    def get_by_id(self, site_id: str) -> Site | None:
        ...

    def create(self, site: Site) -> Site:
        ...

    def delete(self, site_id: str) -> None:
        ...


class EquipmentRepository(Protocol):
    def list_all(self) -> list[Equipment]:
        ...

    def get_by_id(self, equipment_id: str) -> Equipment | None:
        ...

    def create(self, equipment: Equipment) -> Equipment:
        ...

    def update(self, equipment: Equipment) -> Equipment:
        ...

    def delete(self, equipment_id: str) -> None:
        ...


class FuelEventRepository(Protocol):
    def list_all(self) -> list[FuelEvent]:
        ...

    def get_by_id(self, event_id: str) -> FuelEvent | None:
        ...

    def exists(self, event_id: str) -> bool:
        ...

    def list_by_equipment(self, equipment_id: str) -> list[FuelEvent]:
        ...

    def list_by_sync_status(self, status: SyncStatus) -> list[FuelEvent]:
        ...

    def create(self, event: FuelEvent) -> FuelEvent:
        ...

    def update(self, event: FuelEvent) -> FuelEvent:
        ...

    def delete(self, event_id: str) -> None:
        ...

    def mark_sync_status(self, event_id: str, status: SyncStatus) -> None:
        ...

    def mark_synced_if_settled(self, event_id: str) -> bool:
        ...


class AccountRepository(Protocol):
    def list_all(self) -> list[Account]:
        ...

    def count(self) -> int:
        ...

    def get_by_id(self, account_id: str) -> Account | None:
        ...

    def get_by_email(self, email: str) -> Account | None:
        ...

    def create(self, account: Account) -> Account:
        ...

    def update(self, account: Account) -> Account:
        ...

    def delete(self, account_id: str) -> None:
        ...


class OutboxRepository(Protocol):
    def add(self, entry: OutboxEntry) -> OutboxEntry:
        ...

    def remove(self, entry_id: int) -> None:
        ...

    def get_by_id(self, entry_id: int) -> OutboxEntry | None:
        ...

    def list_by_status(self, status: OutboxStatus) -> list[OutboxEntry]:
        ...

    def record_attempt(self, entry_id: int, *, retry_count: int, last_attempt: str, status: OutboxStatus) -> None:
        ...

    def reset_errors(self) -> int:
        ...

    def count_by_status(self) -> dict[str, int]:
        ...


class SyncConfigStorePort(Protocol):
    def get_spreadsheet_id(self) -> str | None:
        ...

    def set_spreadsheet_id(self, spreadsheet_id: str | None) -> None:
        ...

    def get_webhook_url(self) -> str | None:
        ...

    def set_webhook_url(self, url: str | None) -> None:
        ...

    def get_credential(self) -> dict[str, Any] | None:
        ...

    def set_credential(self, credential: dict[str, Any] | None) -> None:
        ...


class RemoteTransport(Protocol):
    """Contrato estrecho hacia la hoja remota: empujar y leer lotes de filas."""

    def push(self, records: list[dict[str, Any]]) -> PushResult:
        ...

    def pull(self) -> list[dict[str, Any]]:
        ...


class ConnectivityProbePort(Protocol):
    def is_online(self) -> bool:
        ...


class StoreSessionPort(Protocol):
    """Repositorios que comparten una misma conexión y su transacción."""

    sites: SiteRepository
    equipment: EquipmentRepository
    fuel_events: FuelEventRepository
    accounts: AccountRepository
    outbox: OutboxRepository

    def transaction(self) -> AbstractContextManager[Any]:
        ...
