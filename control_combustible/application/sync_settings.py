from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from control_combustible.domain.ports import SyncConfigStorePort
from control_combustible.domain.services import ValidacionError, extract_spreadsheet_id
from control_combustible.domain.sync_models import ApiTokenConfig, TransportConfig, Unconfigured, WebhookConfig

logger = logging.getLogger(__name__)

_CREDENTIAL_KEYS = ("refresh_token", "client_id", "client_secret")


def resolve_transport_config(store: SyncConfigStorePort) -> TransportConfig:
    """El webhook tiene prioridad; la API solo se usa con credencial guardada."""
    webhook_url = store.get_webhook_url()
    if webhook_url:
        return WebhookConfig(url=webhook_url)
    credential = store.get_credential()
    if credential:
        return ApiTokenConfig(credential=credential, spreadsheet_id=store.get_spreadsheet_id())
    return Unconfigured()


@dataclass(frozen=True)
class SyncSettingsView:
    transport: str
    spreadsheet_id: str | None
    webhook_url: str | None
    google_connected: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "transport": self.transport,
            "spreadsheet_id": self.spreadsheet_id,
            "webhook_url": self.webhook_url,
            "google_connected": self.google_connected,
        }


class SyncSettingsService:
    def __init__(self, store: SyncConfigStorePort) -> None:
        self._store = store

    def get_spreadsheet_id(self) -> str | None:
        return self._store.get_spreadsheet_id()

    def set_spreadsheet_id(self, value: str | None) -> str | None:
        spreadsheet_id = extract_spreadsheet_id(value) if value else None
        self._store.set_spreadsheet_id(spreadsheet_id)
        logger.info("Spreadsheet ID actualizado: %s", spreadsheet_id or "(vacío)")
        return spreadsheet_id

    def get_webhook_url(self) -> str | None:
        return self._store.get_webhook_url()

    def set_webhook_url(self, url: str | None) -> None:
        cleaned = (url or "").strip()
        if cleaned and not cleaned.lower().startswith(("http://", "https://")):
            raise ValidacionError("La URL del webhook debe empezar por http:// o https://.")
        self._store.set_webhook_url(cleaned or None)
        logger.info("Webhook %s", "configurado" if cleaned else "eliminado")

    def connect_google(self, credential: dict[str, Any]) -> None:
        missing = [key for key in _CREDENTIAL_KEYS if not credential.get(key)]
        if missing:
            raise ValidacionError(f"Credencial de Google incompleta, faltan: {', '.join(missing)}.")
        self._store.set_credential(credential)
        logger.info("Cuenta de Google conectada")

    def disconnect(self) -> None:
        self._store.set_credential(None)
        logger.info("Cuenta de Google desconectada")

    def transport_config(self) -> TransportConfig:
        return resolve_transport_config(self._store)

    def describe(self) -> SyncSettingsView:
        return SyncSettingsView(
            transport=self.transport_config().kind,
            spreadsheet_id=self._store.get_spreadsheet_id(),
            webhook_url=self._store.get_webhook_url(),
            google_connected=self._store.get_credential() is not None,
        )
