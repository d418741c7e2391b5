from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from control_combustible.application.sync_payloads import fuel_event_from_record
from control_combustible.application.sync_settings import resolve_transport_config
from control_combustible.core.metrics import medir_tiempo, metrics_registry
from control_combustible.core.observability import OperationContext
from control_combustible.domain.models import Account, Role, SyncStatus
from control_combustible.domain.ports import RemoteTransport, StoreSessionPort, SyncConfigStorePort
from control_combustible.domain.sheets_errors import SheetsCredentialsError
from control_combustible.domain.sync_models import TransportConfig, Unconfigured
from control_combustible.domain.time_utils import now_iso

logger = logging.getLogger(__name__)


def filter_for_account(records: list[dict[str, Any]], account: Account) -> list[dict[str, Any]]:
    if account.role is not Role.OPERATOR:
        return records
    permitted = set(account.permitted_site_ids)
    return [record for record in records if record.get("site_id") in permitted]


class RemoteImportService:
    """Trae los repostajes de la hoja remota y añade los que no existen en local.

    Los registros locales nunca se sobrescriben: una segunda importación sobre
    los mismos datos remotos no inserta nada.
    """

    def __init__(
        self,
        session: StoreSessionPort,
        config_store: SyncConfigStorePort,
        transport_factory: Callable[[TransportConfig], RemoteTransport],
    ) -> None:
        self._session = session
        self._config_store = config_store
        self._transport_factory = transport_factory

    @medir_tiempo("latency.importacion_ms")
    def import_remote(self, account: Account) -> int:
        with OperationContext("importacion_remota"):
            config = resolve_transport_config(self._config_store)
            if isinstance(config, Unconfigured):
                raise SheetsCredentialsError("No hay webhook ni cuenta de Google configurada.")
            records = self._transport_factory(config).pull()
            with_id = [record for record in records if str(record.get("id") or "").strip()]
            if len(with_id) < len(records):
                logger.warning("Filas remotas sin ID ignoradas: %s", len(records) - len(with_id))
            visible = filter_for_account(with_id, account)

            inserted = 0
            with self._session.transaction():
                for record in visible:
                    if self._session.fuel_events.exists(record["id"]):
                        continue
                    self._session.fuel_events.create(
                        fuel_event_from_record(record, created_at=now_iso(), sync_status=SyncStatus.SYNCED)
                    )
                    inserted += 1

            metrics_registry.incrementar("importaciones_registros", inserted)
            logger.info(
                "Importación remota: filas=%s visibles=%s insertadas=%s",
                len(records),
                len(visible),
                inserted,
            )
            return inserted
