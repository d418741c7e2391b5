from __future__ import annotations

import logging
import sqlite3

from control_combustible.domain.models import EntityType, OutboxAction, OutboxEntry, OutboxStatus
from control_combustible.domain.ports import OutboxRepository
from control_combustible.infrastructure.sqlite_uow import transaccion

logger = logging.getLogger(__name__)

_SELECT_OUTBOX = """
    SELECT id, entity_type, entity_id, action, payload_json, retry_count, last_attempt, status
    FROM sync_outbox
"""


def _row_to_entry(row: sqlite3.Row) -> OutboxEntry:
    return OutboxEntry(
        id=int(row["id"]),
        entity_type=EntityType(row["entity_type"]),
        entity_id=row["entity_id"],
        action=OutboxAction(row["action"]),
        payload_json=row["payload_json"],
        retry_count=int(row["retry_count"] or 0),
        last_attempt=row["last_attempt"],
        status=OutboxStatus(row["status"]),
    )


class OutboxRepositorySQLite(OutboxRepository):
    """Tabla `sync_outbox`: libro de mutaciones locales pendientes de confirmar."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def add(self, entry: OutboxEntry) -> OutboxEntry:
        with transaccion(self._connection):
            cursor = self._connection.execute(
                """
                INSERT INTO sync_outbox (entity_type, entity_id, action, payload_json, retry_count, last_attempt, status)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entity_type.value,
                    entry.entity_id,
                    entry.action.value,
                    entry.payload_json,
                    entry.retry_count,
                    entry.last_attempt,
                    entry.status.value,
                ),
            )
        return OutboxEntry(
            id=int(cursor.lastrowid),
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            action=entry.action,
            payload_json=entry.payload_json,
            retry_count=entry.retry_count,
            last_attempt=entry.last_attempt,
            status=entry.status,
        )

    def remove(self, entry_id: int) -> None:
        with transaccion(self._connection):
            self._connection.execute("DELETE FROM sync_outbox WHERE id = ?", (entry_id,))

    def get_by_id(self, entry_id: int) -> OutboxEntry | None:
        row = self._connection.execute(f"{_SELECT_OUTBOX} WHERE id = ?", (entry_id,)).fetchone()
        return _row_to_entry(row) if row else None

    def list_by_status(self, status: OutboxStatus) -> list[OutboxEntry]:
        rows = self._connection.execute(
            f"{_SELECT_OUTBOX} WHERE status = ? ORDER BY id ASC",
            (status.value,),
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def record_attempt(self, entry_id: int, *, retry_count: int, last_attempt: str, status: OutboxStatus) -> None:
        with transaccion(self._connection):
            self._connection.execute(
                "UPDATE sync_outbox SET retry_count = ?, last_attempt = ?, status = ? WHERE id = ?",
                (retry_count, last_attempt, status.value, entry_id),
            )

    def reset_errors(self) -> int:
        with transaccion(self._connection):
            cursor = self._connection.execute(
                "UPDATE sync_outbox SET status = ?, retry_count = 0 WHERE status = ?",
                (OutboxStatus.PENDING.value, OutboxStatus.ERROR.value),
            )
        logger.info("Entradas de outbox reactivadas: %s", cursor.rowcount)
        return int(cursor.rowcount)

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in OutboxStatus}
        rows = self._connection.execute(
            "SELECT status, COUNT(*) AS total FROM sync_outbox GROUP BY status"
        ).fetchall()
        for row in rows:
            counts[row["status"]] = int(row["total"])
        return counts
