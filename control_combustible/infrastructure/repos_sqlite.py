from __future__ import annotations

import json
import logging
import sqlite3
from typing import Iterable

from control_combustible.core.errors import PersistenceError
from control_combustible.domain.models import (
    Account,
    EntityType,
    Equipment,
    FuelEvent,
    MeasurementKind,
    OutboxStatus,
    RecordStatus,
    Role,
    Site,
    SyncStatus,
)
from control_combustible.domain.ports import (
    AccountRepository,
    EquipmentRepository,
    FuelEventRepository,
    SiteRepository,
)
from control_combustible.infrastructure.sqlite_uow import transaccion

logger = logging.getLogger(__name__)

_FUEL_EVENT_COLUMNS = (
    "id",
    "site_id",
    "equipment_id",
    "event_date",
    "current_reading",
    "previous_reading",
    "liters",
    "fuel_type",
    "price_per_liter",
    "total_cost",
    "average_consumption",
    "cost_per_unit",
    "operator_name",
    "invoice_ref",
    "requisition_ref",
    "notes",
    "sync_status",
    "created_at",
    "updated_at",
    "last_updated_by",
)

_EQUIPMENT_COLUMNS = (
    "id",
    "site_id",
    "name",
    "category",
    "plate",
    "make",
    "model",
    "year",
    "measurement_kind",
    "default_fuel_type",
    "status",
    "created_at",
    "updated_at",
)


def _execute_with_validation(
    connection: sqlite3.Connection, sql: str, params: Iterable[object], context: str
) -> sqlite3.Cursor:
    expected = sql.count("?")
    params_list = list(params)
    if expected != len(params_list):
        raise ValueError(
            f"SQL param mismatch for {context}: expected {expected} placeholders, got {len(params_list)} parameters."
        )
    return connection.execute(sql, tuple(params_list))


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _update_sql(table: str, columns: tuple[str, ...]) -> str:
    assignments = ", ".join(f"{column} = ?" for column in columns if column != "id")
    return f"UPDATE {table} SET {assignments} WHERE id = ?"


def _float_or_zero(value: object) -> float:
    return 0.0 if value is None else float(value)


def _row_to_site(row: sqlite3.Row) -> Site:
    return Site(
        id=row["id"],
        name=row["name"],
        address=row["address"] or "",
        status=RecordStatus(row["status"]),
        created_at=row["created_at"],
    )


def _row_to_equipment(row: sqlite3.Row) -> Equipment:
    return Equipment(
        id=row["id"],
        site_id=row["site_id"],
        name=row["name"],
        category=row["category"] or "",
        plate=row["plate"] or "",
        make=row["make"] or "",
        model=row["model"] or "",
        year=row["year"],
        measurement_kind=MeasurementKind(row["measurement_kind"]),
        default_fuel_type=row["default_fuel_type"] or "",
        status=RecordStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _equipment_values(equipment: Equipment) -> tuple[object, ...]:
    return (
        equipment.id,
        equipment.site_id,
        equipment.name,
        equipment.category,
        equipment.plate,
        equipment.make,
        equipment.model,
        equipment.year,
        equipment.measurement_kind.value,
        equipment.default_fuel_type,
        equipment.status.value,
        equipment.created_at,
        equipment.updated_at,
    )


def _row_to_fuel_event(row: sqlite3.Row) -> FuelEvent:
    return FuelEvent(
        id=row["id"],
        site_id=row["site_id"],
        equipment_id=row["equipment_id"],
        event_date=row["event_date"],
        current_reading=_float_or_zero(row["current_reading"]),
        previous_reading=_float_or_zero(row["previous_reading"]),
        liters=_float_or_zero(row["liters"]),
        fuel_type=row["fuel_type"] or "",
        price_per_liter=_float_or_zero(row["price_per_liter"]),
        total_cost=_float_or_zero(row["total_cost"]),
        average_consumption=_float_or_zero(row["average_consumption"]),
        cost_per_unit=_float_or_zero(row["cost_per_unit"]),
        operator_name=row["operator_name"] or "",
        invoice_ref=row["invoice_ref"] or "",
        requisition_ref=row["requisition_ref"] or "",
        notes=row["notes"] or "",
        sync_status=SyncStatus(row["sync_status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_updated_by=row["last_updated_by"],
    )


def _fuel_event_values(event: FuelEvent) -> tuple[object, ...]:
    return (
        event.id,
        event.site_id,
        event.equipment_id,
        event.event_date,
        event.current_reading,
        event.previous_reading,
        event.liters,
        event.fuel_type,
        event.price_per_liter,
        event.total_cost,
        event.average_consumption,
        event.cost_per_unit,
        event.operator_name,
        event.invoice_ref,
        event.requisition_ref,
        event.notes,
        event.sync_status.value,
        event.created_at,
        event.updated_at,
        event.last_updated_by,
    )


def _without_id(values: tuple[object, ...]) -> tuple[object, ...]:
    return (*values[1:], values[0])


class SiteRepositorySQLite(SiteRepository):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def list_all(self) -> list[Site]:
        rows = self._connection.execute(
            "SELECT id, name, address, status, created_at FROM sites ORDER BY name"
        ).fetchall()
        return [_row_to_site(row) for row in rows]

    def get_by_id(self, site_id: str) -> Site | None:
        row = self._connection.execute(
            "SELECT id, name, address, status, created_at FROM sites WHERE id = ?",
            (site_id,),
        ).fetchone()
        return _row_to_site(row) if row else None

    def create(self, site: Site) -> Site:
        with transaccion(self._connection):
            _execute_with_validation(
                self._connection,
                "INSERT INTO sites (id, name, address, status, created_at) VALUES (?, ?, ?, ?, ?)",
                (site.id, site.name, site.address, site.status.value, site.created_at),
                "sites.create",
            )
        return site

    def delete(self, site_id: str) -> None:
        with transaccion(self._connection):
            self._connection.execute("DELETE FROM sites WHERE id = ?", (site_id,))


class EquipmentRepositorySQLite(EquipmentRepository):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def list_all(self) -> list[Equipment]:
        rows = self._connection.execute(
            f"SELECT {', '.join(_EQUIPMENT_COLUMNS)} FROM equipment ORDER BY name"
        ).fetchall()
        return [_row_to_equipment(row) for row in rows]

    def get_by_id(self, equipment_id: str) -> Equipment | None:
        row = self._connection.execute(
            f"SELECT {', '.join(_EQUIPMENT_COLUMNS)} FROM equipment WHERE id = ?",
            (equipment_id,),
        ).fetchone()
        return _row_to_equipment(row) if row else None

    def create(self, equipment: Equipment) -> Equipment:
        with transaccion(self._connection):
            _execute_with_validation(
                self._connection,
                _insert_sql("equipment", _EQUIPMENT_COLUMNS),
                _equipment_values(equipment),
                "equipment.create",
            )
        return equipment

    def update(self, equipment: Equipment) -> Equipment:
        with transaccion(self._connection):
            cursor = _execute_with_validation(
                self._connection,
                _update_sql("equipment", _EQUIPMENT_COLUMNS),
                _without_id(_equipment_values(equipment)),
                "equipment.update",
            )
            if cursor.rowcount == 0:
                raise PersistenceError(f"Equipo no encontrado: {equipment.id}")
        return equipment

    def delete(self, equipment_id: str) -> None:
        with transaccion(self._connection):
            self._connection.execute("DELETE FROM equipment WHERE id = ?", (equipment_id,))


class FuelEventRepositorySQLite(FuelEventRepository):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._select = f"SELECT {', '.join(_FUEL_EVENT_COLUMNS)} FROM fuel_events"

    def list_all(self) -> list[FuelEvent]:
        rows = self._connection.execute(
            f"{self._select} ORDER BY event_date DESC, created_at DESC"
        ).fetchall()
        return [_row_to_fuel_event(row) for row in rows]

    def get_by_id(self, event_id: str) -> FuelEvent | None:
        row = self._connection.execute(f"{self._select} WHERE id = ?", (event_id,)).fetchone()
        return _row_to_fuel_event(row) if row else None

    def exists(self, event_id: str) -> bool:
        row = self._connection.execute("SELECT 1 FROM fuel_events WHERE id = ?", (event_id,)).fetchone()
        return row is not None

    def list_by_equipment(self, equipment_id: str) -> list[FuelEvent]:
        rows = self._connection.execute(
            f"{self._select} WHERE equipment_id = ? ORDER BY event_date ASC, created_at ASC",
            (equipment_id,),
        ).fetchall()
        return [_row_to_fuel_event(row) for row in rows]

    def list_by_sync_status(self, status: SyncStatus) -> list[FuelEvent]:
        rows = self._connection.execute(
            f"{self._select} WHERE sync_status = ? ORDER BY created_at",
            (status.value,),
        ).fetchall()
        return [_row_to_fuel_event(row) for row in rows]

    def create(self, event: FuelEvent) -> FuelEvent:
        with transaccion(self._connection):
            _execute_with_validation(
                self._connection,
                _insert_sql("fuel_events", _FUEL_EVENT_COLUMNS),
                _fuel_event_values(event),
                "fuel_events.create",
            )
        return event

    def update(self, event: FuelEvent) -> FuelEvent:
        with transaccion(self._connection):
            cursor = _execute_with_validation(
                self._connection,
                _update_sql("fuel_events", _FUEL_EVENT_COLUMNS),
                _without_id(_fuel_event_values(event)),
                "fuel_events.update",
            )
            if cursor.rowcount == 0:
                raise PersistenceError(f"Repostaje no encontrado: {event.id}")
        return event

    def delete(self, event_id: str) -> None:
        with transaccion(self._connection):
            self._connection.execute("DELETE FROM fuel_events WHERE id = ?", (event_id,))

    def mark_sync_status(self, event_id: str, status: SyncStatus) -> None:
        with transaccion(self._connection):
            cursor = self._connection.execute(
                "UPDATE fuel_events SET sync_status = ? WHERE id = ?",
                (status.value, event_id),
            )
        if cursor.rowcount == 0:
            logger.debug("mark_sync_status sin fila local: id=%s status=%s", event_id, status.value)

    def mark_synced_if_settled(self, event_id: str) -> bool:
        """Marca SYNCED solo si no queda otra entrada PENDING del repostaje en la outbox."""
        with transaccion(self._connection):
            cursor = self._connection.execute(
                """
                UPDATE fuel_events SET sync_status = ?
                WHERE id = ?
                  AND NOT EXISTS (
                    SELECT 1 FROM sync_outbox
                    WHERE entity_type = ? AND entity_id = ? AND status = ?
                  )
                """,
                (
                    SyncStatus.SYNCED.value,
                    event_id,
                    EntityType.FUEL_EVENT.value,
                    event_id,
                    OutboxStatus.PENDING.value,
                ),
            )
        return cursor.rowcount > 0


class AccountRepositorySQLite(AccountRepository):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        try:
            site_ids = json.loads(row["permitted_site_ids"] or "[]")
        except json.JSONDecodeError:
            logger.warning("permitted_site_ids corrupto para la cuenta %s", row["id"])
            site_ids = []
        return Account(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            credential=row["credential"],
            role=Role(row["role"]),
            permitted_site_ids=tuple(str(site_id) for site_id in site_ids),
            created_at=row["created_at"],
        )

    def list_all(self) -> list[Account]:
        rows = self._connection.execute(
            "SELECT id, name, email, credential, role, permitted_site_ids, created_at FROM accounts ORDER BY name"
        ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def count(self) -> int:
        return int(self._connection.execute("SELECT COUNT(*) FROM accounts").fetchone()[0])

    def get_by_id(self, account_id: str) -> Account | None:
        row = self._connection.execute(
            "SELECT id, name, email, credential, role, permitted_site_ids, created_at FROM accounts WHERE id = ?",
            (account_id,),
        ).fetchone()
        return self._row_to_account(row) if row else None

    def get_by_email(self, email: str) -> Account | None:
        row = self._connection.execute(
            "SELECT id, name, email, credential, role, permitted_site_ids, created_at FROM accounts WHERE email = ?",
            (email,),
        ).fetchone()
        return self._row_to_account(row) if row else None

    def create(self, account: Account) -> Account:
        with transaccion(self._connection):
            _execute_with_validation(
                self._connection,
                """
                INSERT INTO accounts (id, name, email, credential, role, permitted_site_ids, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    account.id,
                    account.name,
                    account.email,
                    account.credential,
                    account.role.value,
                    json.dumps(list(account.permitted_site_ids)),
                    account.created_at,
                ),
                "accounts.create",
            )
        return account

    def update(self, account: Account) -> Account:
        with transaccion(self._connection):
            _execute_with_validation(
                self._connection,
                """
                UPDATE accounts
                SET name = ?, email = ?, credential = ?, role = ?, permitted_site_ids = ?
                WHERE id = ?
                """,
                (
                    account.name,
                    account.email,
                    account.credential,
                    account.role.value,
                    json.dumps(list(account.permitted_site_ids)),
                    account.id,
                ),
                "accounts.update",
            )
        return account

    def delete(self, account_id: str) -> None:
        with transaccion(self._connection):
            self._connection.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
