from __future__ import annotations

import sqlite3

from control_combustible.domain.models import EntityType, OutboxAction, OutboxEntry, OutboxStatus
from control_combustible.infrastructure.repos_outbox_sqlite import OutboxRepositorySQLite


def _entrada(entity_id: str, action: OutboxAction = OutboxAction.CREATE) -> OutboxEntry:
    return OutboxEntry(
        id=None,
        entity_type=EntityType.FUEL_EVENT,
        entity_id=entity_id,
        action=action,
        payload_json='{"id": "%s"}' % entity_id,
    )


def test_add_asigna_id_autoincremental(connection: sqlite3.Connection) -> None:
    repo = OutboxRepositorySQLite(connection)

    primera = repo.add(_entrada("a"))
    segunda = repo.add(_entrada("b"))

    assert primera.id is not None
    assert segunda.id > primera.id
    assert repo.get_by_id(primera.id).entity_id == "a"


def test_list_by_status_respeta_orden_de_insercion(connection: sqlite3.Connection) -> None:
    repo = OutboxRepositorySQLite(connection)
    for entity_id in ("c", "a", "b"):
        repo.add(_entrada(entity_id))

    pendientes = repo.list_by_status(OutboxStatus.PENDING)

    assert [entry.entity_id for entry in pendientes] == ["c", "a", "b"]
    assert all(entry.retry_count == 0 for entry in pendientes)


def test_record_attempt_y_reset_errors(connection: sqlite3.Connection) -> None:
    repo = OutboxRepositorySQLite(connection)
    entry = repo.add(_entrada("a"))

    repo.record_attempt(entry.id, retry_count=5, last_attempt="2025-01-01T00:00:00Z", status=OutboxStatus.ERROR)

    assert repo.count_by_status() == {"PENDING": 0, "ERROR": 1}
    fallida = repo.get_by_id(entry.id)
    assert fallida.retry_count == 5
    assert fallida.last_attempt == "2025-01-01T00:00:00Z"

    assert repo.reset_errors() == 1
    reactivada = repo.get_by_id(entry.id)
    assert reactivada.status is OutboxStatus.PENDING
    assert reactivada.retry_count == 0


def test_remove_elimina_la_entrada(connection: sqlite3.Connection) -> None:
    repo = OutboxRepositorySQLite(connection)
    entry = repo.add(_entrada("a", OutboxAction.DELETE))

    repo.remove(entry.id)

    assert repo.get_by_id(entry.id) is None
    assert repo.count_by_status() == {"PENDING": 0, "ERROR": 0}
