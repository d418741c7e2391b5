from __future__ import annotations

from collections.abc import Callable
import logging

from control_combustible.application.sync_payloads import ReferenceNames, fuel_event_payload
from control_combustible.application.sync_settings import resolve_transport_config
from control_combustible.core.observability import OperationContext
from control_combustible.domain.ports import RemoteTransport, StoreSessionPort, SyncConfigStorePort
from control_combustible.domain.sheets_errors import SheetsCredentialsError
from control_combustible.domain.sync_models import PushResult, TransportConfig, Unconfigured

logger = logging.getLogger(__name__)


class RemoteExportService:
    """Exportación manual de todos los repostajes locales. No toca la outbox."""

    def __init__(
        self,
        session: StoreSessionPort,
        config_store: SyncConfigStorePort,
        transport_factory: Callable[[TransportConfig], RemoteTransport],
    ) -> None:
        self._session = session
        self._config_store = config_store
        self._transport_factory = transport_factory

    def export_all(self) -> PushResult:
        with OperationContext("exportacion_manual"):
            config = resolve_transport_config(self._config_store)
            if isinstance(config, Unconfigured):
                raise SheetsCredentialsError("No hay webhook ni cuenta de Google configurada.")
            events = self._session.fuel_events.list_all()
            if not events:
                logger.info("Exportación manual: no hay repostajes locales")
                return PushResult(success=True, spreadsheet_id=self._config_store.get_spreadsheet_id())
            names = ReferenceNames(self._session.equipment, self._session.sites)
            records = [names.enrich(fuel_event_payload(event)) for event in events]
            result = self._transport_factory(config).push(records)
            if result.spreadsheet_id and result.spreadsheet_id != self._config_store.get_spreadsheet_id():
                self._config_store.set_spreadsheet_id(result.spreadsheet_id)
                logger.info("Spreadsheet ID guardado: %s", result.spreadsheet_id)
            logger.info("Exportación manual: %s repostajes enviados", len(records))
            return result
