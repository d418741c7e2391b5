from __future__ import annotations

import json

from control_combustible.application.outbox import OutboxQueue
from control_combustible.domain.models import EntityType, OutboxAction, OutboxStatus
from control_combustible.infrastructure.sqlite_session import SqliteStoreSession


def test_enqueue_guarda_pendiente_y_despierta_si_hay_red(session: SqliteStoreSession) -> None:
    avisos: list[str] = []
    cola = OutboxQueue(session.outbox, wake=lambda: avisos.append("wake"), is_online=lambda: True)

    entrada = cola.enqueue(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {"id": "ev-1", "liters": 20})

    assert entrada.status is OutboxStatus.PENDING
    assert entrada.retry_count == 0
    assert json.loads(entrada.payload_json) == {"id": "ev-1", "liters": 20}
    assert avisos == ["wake"]


def test_enqueue_sin_red_no_despierta_al_motor(session: SqliteStoreSession) -> None:
    avisos: list[str] = []
    cola = OutboxQueue(session.outbox, wake=lambda: avisos.append("wake"), is_online=lambda: False)

    cola.enqueue(EntityType.EQUIPMENT, "eq-1", OutboxAction.UPDATE, {"id": "eq-1"})

    assert avisos == []
    assert cola.counts() == {"PENDING": 1, "ERROR": 0}


def test_append_no_despierta_al_motor(session: SqliteStoreSession) -> None:
    avisos: list[str] = []
    cola = OutboxQueue(session.outbox, wake=lambda: avisos.append("wake"), is_online=lambda: True)

    cola.append(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {})

    assert avisos == []


def test_list_pending_en_orden_y_dequeue(session: SqliteStoreSession) -> None:
    cola = OutboxQueue(session.outbox)
    primera = cola.append(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {})
    cola.append(EntityType.FUEL_EVENT, "ev-2", OutboxAction.CREATE, {})

    cola.dequeue(primera.id)

    assert [entrada.entity_id for entrada in cola.list_pending()] == ["ev-2"]


def test_register_failure_escala_a_error_al_llegar_al_limite(session: SqliteStoreSession) -> None:
    cola = OutboxQueue(session.outbox)
    entrada = cola.append(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {})

    resultados = []
    for _ in range(5):
        actual = session.outbox.get_by_id(entrada.id)
        resultados.append(cola.register_failure(actual, max_retries=5))

    assert resultados == [False, False, False, False, True]
    atascada = cola.list_stuck()
    assert len(atascada) == 1
    assert atascada[0].retry_count == 5
    assert atascada[0].last_attempt is not None
    assert cola.list_pending() == []


def test_requeue_stuck_reactiva_entradas_en_error(session: SqliteStoreSession) -> None:
    cola = OutboxQueue(session.outbox)
    entrada = cola.append(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {})
    cola.register_failure(entrada, max_retries=1)

    assert cola.requeue_stuck() == 1

    pendiente = cola.list_pending()[0]
    assert pendiente.retry_count == 0


def test_discard_elimina_una_entrada(session: SqliteStoreSession) -> None:
    cola = OutboxQueue(session.outbox)
    entrada = cola.append(EntityType.FUEL_EVENT, "ev-1", OutboxAction.CREATE, {})

    assert cola.discard(entrada.id)
    assert not cola.discard(entrada.id)
    assert cola.counts() == {"PENDING": 0, "ERROR": 0}
