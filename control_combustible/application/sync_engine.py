from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
import json
import logging
import threading

from control_combustible.application.outbox import DEFAULT_MAX_RETRIES, OutboxQueue
from control_combustible.application.sync_payloads import ReferenceNames
from control_combustible.application.sync_settings import resolve_transport_config
from control_combustible.core.metrics import medir_tiempo, metrics_registry
from control_combustible.core.observability import OperationContext
from control_combustible.domain.models import EntityType, OutboxAction, OutboxEntry, SyncStatus
from control_combustible.domain.ports import (
    ConnectivityProbePort,
    RemoteTransport,
    StoreSessionPort,
    SyncConfigStorePort,
)
from control_combustible.domain.sync_models import (
    DRAIN_BUSY,
    DRAIN_COMPLETED,
    DRAIN_EMPTY,
    DRAIN_FAILED,
    DRAIN_SKIPPED_OFFLINE,
    DRAIN_SKIPPED_UNAUTHORIZED,
    DrainReport,
    PushResult,
    TransportConfig,
    Unconfigured,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30


def _partition(
    pending: list[OutboxEntry],
) -> tuple[list[OutboxEntry], list[OutboxEntry], list[OutboxEntry]]:
    deletes: list[OutboxEntry] = []
    fuel_batch: list[OutboxEntry] = []
    equipment: list[OutboxEntry] = []
    for entry in pending:
        if entry.action is OutboxAction.DELETE:
            deletes.append(entry)
        elif entry.entity_type is EntityType.FUEL_EVENT:
            fuel_batch.append(entry)
        else:
            equipment.append(entry)
    return deletes, fuel_batch, equipment


class SyncEngine:
    """Vacía la outbox hacia la hoja remota.

    Disparadores: temporizador, reconexión, aviso tras encolar y sync manual.
    Solo puede haber un pase en curso; un disparo mientras se vacía la cola no
    hace nada. Cada pase trabaja con su propia sesión (y conexión SQLite), que
    se cierra al terminar.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractContextManager[StoreSessionPort]],
        config_store: SyncConfigStorePort,
        connectivity: ConnectivityProbePort,
        transport_factory: Callable[[TransportConfig], RemoteTransport],
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._session_factory = session_factory
        self._config_store = config_store
        self._connectivity = connectivity
        self._transport_factory = transport_factory
        self._interval_seconds = interval_seconds
        self._max_retries = max_retries
        self._state_lock = threading.Lock()
        self._syncing = False
        self._online = False
        self._stop_event = threading.Event()
        self._timer: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None

    @property
    def is_syncing(self) -> bool:
        with self._state_lock:
            return self._syncing

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.is_alive()

    def start(self) -> None:
        if self.running:
            return
        # Un temporizador que siga vivo tras stop() conserva su evento activado.
        self._stop_event = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sync-drain")
        self._timer = threading.Thread(
            target=self._run_timer, args=(self._stop_event,), name="sync-timer", daemon=True
        )
        self._timer.start()
        logger.info("Motor de sync iniciado (intervalo=%ss)", self._interval_seconds)
        self.request_sync(trigger="arranque")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._timer is not None:
            self._timer.join(timeout)
            self._timer = None
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None
        logger.info("Motor de sync detenido")

    def on_connectivity_changed(self, online: bool) -> Future[DrainReport] | None:
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("Conexión restablecida")
            return self.request_sync(trigger="reconexion")
        return None

    def request_sync(self, trigger: str = "aviso") -> Future[DrainReport] | None:
        """Lanza un pase en segundo plano sin bloquear a quien llama."""
        executor = self._executor
        if executor is None:
            logger.debug("Motor de sync parado: disparo %s ignorado", trigger)
            return None
        if self.is_syncing:
            return None
        try:
            return executor.submit(self._run_background_pass, trigger)
        except RuntimeError:
            logger.debug("Motor de sync deteniéndose: disparo %s ignorado", trigger)
            return None

    def sync_now(self) -> DrainReport:
        """Pase manual en el hilo de quien llama; los errores del pase se propagan."""
        return self.drain(trigger="manual")

    def drain(self, trigger: str = "manual") -> DrainReport:
        if not self._try_begin():
            logger.debug("Sync ya en curso: disparo %s ignorado", trigger)
            return DrainReport(status=DRAIN_BUSY)
        try:
            with OperationContext("sync_drain"):
                return self._drain_pass(trigger)
        finally:
            self._finish()

    def _try_begin(self) -> bool:
        with self._state_lock:
            if self._syncing:
                return False
            self._syncing = True
            return True

    def _finish(self) -> None:
        with self._state_lock:
            self._syncing = False

    def _run_timer(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_seconds):
            was_online = self._online
            if not self._probe_online():
                continue
            if not was_online:
                logger.info("Conexión restablecida")
            self._run_background_pass("temporizador")

    def _run_background_pass(self, trigger: str) -> DrainReport:
        try:
            return self.drain(trigger)
        except Exception as exc:  # los pases en segundo plano no propagan
            logger.error("Fallo en el pase de sync", exc_info=exc, extra={"extra": {"trigger": trigger}})
            return DrainReport(status=DRAIN_FAILED, errors=[str(exc)])

    def _probe_online(self) -> bool:
        self._online = bool(self._connectivity.is_online())
        return self._online

    def _drain_pass(self, trigger: str) -> DrainReport:
        if not self._probe_online():
            logger.info("Sync omitido: sin conexión (origen=%s)", trigger)
            return DrainReport(status=DRAIN_SKIPPED_OFFLINE)
        config = resolve_transport_config(self._config_store)
        if isinstance(config, Unconfigured):
            logger.info("Sync omitido: no hay webhook ni cuenta de Google conectada")
            return DrainReport(status=DRAIN_SKIPPED_UNAUTHORIZED)
        metrics_registry.incrementar("drains_ejecutados")
        with self._session_factory() as session:
            return self._process(session, config, trigger)

    @medir_tiempo("latency.drain_ms")
    def _process(self, session: StoreSessionPort, config: TransportConfig, trigger: str) -> DrainReport:
        queue = OutboxQueue(session.outbox)
        pending = queue.list_pending()
        if not pending:
            return DrainReport(status=DRAIN_EMPTY)

        deletes, fuel_batch, equipment_entries = _partition(pending)
        for entry in deletes:
            queue.dequeue(entry.id)
            logger.debug("DELETE %s %s retirado sin envío remoto", entry.entity_type.value, entry.entity_id)

        synced = retried = escalated = 0
        errors: list[str] = []
        if fuel_batch:
            synced, retried, escalated, error = self._push_fuel_batch(session, queue, config, fuel_batch)
            if error:
                errors.append(error)

        for entry in equipment_entries:
            queue.dequeue(entry.id)

        metrics_registry.incrementar("outbox_entradas_sincronizadas", synced)
        metrics_registry.incrementar("outbox_entradas_error", escalated)
        report = DrainReport(
            status=DRAIN_COMPLETED,
            pending_snapshot=len(pending),
            synced=synced,
            retried=retried,
            escalated=escalated,
            dropped_deletes=len(deletes),
            dropped_equipment=len(equipment_entries),
            push_calls=1 if fuel_batch else 0,
            errors=errors,
        )
        logger.info(
            "Sync %s: pendientes=%s enviados=%s reintentos=%s en_error=%s",
            trigger,
            report.pending_snapshot,
            report.synced,
            report.retried,
            report.escalated,
        )
        return report

    def _push_fuel_batch(
        self,
        session: StoreSessionPort,
        queue: OutboxQueue,
        config: TransportConfig,
        batch: list[OutboxEntry],
    ) -> tuple[int, int, int, str | None]:
        names = ReferenceNames(session.equipment, session.sites)
        records = [names.enrich(json.loads(entry.payload_json)) for entry in batch]
        error: str | None = None
        try:
            result = self._transport_factory(config).push(records)
        except Exception as exc:  # cualquier fallo del transporte cuenta como intento fallido
            logger.error(
                "Fallo al enviar repostajes",
                exc_info=exc,
                extra={"extra": {"transport": config.kind, "entries": len(batch)}},
            )
            result = PushResult(success=False)
            error = str(exc) or exc.__class__.__name__

        if result.success:
            self._persist_spreadsheet_id(result)
            with session.transaction():
                for entry in batch:
                    queue.dequeue(entry.id)
                # Una edición encolada durante el envío deja el repostaje en PENDING.
                for event_id in dict.fromkeys(entry.entity_id for entry in batch):
                    session.fuel_events.mark_synced_if_settled(event_id)
            return len(batch), 0, 0, None

        retried = escalated = 0
        with session.transaction():
            for entry in batch:
                if queue.register_failure(entry, max_retries=self._max_retries):
                    session.fuel_events.mark_sync_status(entry.entity_id, SyncStatus.ERROR)
                    escalated += 1
                else:
                    retried += 1
        return 0, retried, escalated, error or "El envío remoto no se completó."

    def _persist_spreadsheet_id(self, result: PushResult) -> None:
        if not result.spreadsheet_id:
            return
        if result.spreadsheet_id == self._config_store.get_spreadsheet_id():
            return
        self._config_store.set_spreadsheet_id(result.spreadsheet_id)
        logger.info("Spreadsheet ID guardado: %s", result.spreadsheet_id)
