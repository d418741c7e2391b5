from __future__ import annotations

from collections.abc import Callable
import json
import logging
from typing import Any

from control_combustible.domain.models import EntityType, OutboxAction, OutboxEntry, OutboxStatus
from control_combustible.domain.ports import OutboxRepository
from control_combustible.domain.time_utils import now_iso

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


class OutboxQueue:
    """Cola durable de mutaciones locales pendientes de enviar.

    `enqueue` guarda y avisa al motor de sync; `append` solo guarda y se usa
    dentro de la transacción de un caso de uso, que llama a `wake_if_online`
    tras el commit para que el hilo de sync vea la fila ya confirmada.
    """

    def __init__(
        self,
        repository: OutboxRepository,
        *,
        wake: Callable[[], Any] | None = None,
        is_online: Callable[[], bool] | None = None,
    ) -> None:
        self._repository = repository
        self._wake = wake
        self._is_online = is_online

    def enqueue(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: OutboxAction,
        payload: dict[str, Any],
    ) -> OutboxEntry:
        entry = self.append(entity_type, entity_id, action, payload)
        self.wake_if_online()
        return entry

    def append(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: OutboxAction,
        payload: dict[str, Any],
    ) -> OutboxEntry:
        entry = self._repository.add(
            OutboxEntry(
                id=None,
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                payload_json=json.dumps(payload, ensure_ascii=False),
            )
        )
        logger.debug("Outbox +%s %s %s (id=%s)", action.value, entity_type.value, entity_id, entry.id)
        return entry

    def wake_if_online(self) -> bool:
        if self._wake is None:
            return False
        if self._is_online is not None and not self._is_online():
            logger.debug("Sin conexión: el motor de sync no se despierta")
            return False
        self._wake()
        return True

    def dequeue(self, entry_id: int) -> None:
        self._repository.remove(entry_id)

    def discard(self, entry_id: int) -> bool:
        if self._repository.get_by_id(entry_id) is None:
            return False
        self._repository.remove(entry_id)
        logger.info("Entrada de outbox descartada manualmente: %s", entry_id)
        return True

    def list_pending(self) -> list[OutboxEntry]:
        return self._repository.list_by_status(OutboxStatus.PENDING)

    def list_stuck(self) -> list[OutboxEntry]:
        return self._repository.list_by_status(OutboxStatus.ERROR)

    def requeue_stuck(self) -> int:
        return self._repository.reset_errors()

    def counts(self) -> dict[str, int]:
        return self._repository.count_by_status()

    def register_failure(self, entry: OutboxEntry, *, max_retries: int = DEFAULT_MAX_RETRIES) -> bool:
        """Suma un intento fallido. Devuelve True si la entrada pasa a ERROR."""
        retry_count = entry.retry_count + 1
        escalated = retry_count >= max_retries
        self._repository.record_attempt(
            entry.id,
            retry_count=retry_count,
            last_attempt=now_iso(),
            status=OutboxStatus.ERROR if escalated else OutboxStatus.PENDING,
        )
        if escalated:
            logger.warning(
                "Entrada de outbox %s (%s %s) en ERROR tras %s intentos",
                entry.id,
                entry.entity_type.value,
                entry.entity_id,
                retry_count,
            )
        return escalated
