from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from control_combustible.bootstrap.settings import resolve_appdata_dir
from control_combustible.domain.ports import SyncConfigStorePort

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "sync_config.json"

_KEY_SPREADSHEET_ID = "spreadsheet_id"
_KEY_WEBHOOK_URL = "webhook_url"
_KEY_CREDENTIAL = "credential"


class SyncConfigStore(SyncConfigStorePort):
    """Configuración remota persistida en JSON: hoja, webhook y credencial.

    Cada clave es opcional y se lee/escribe de forma independiente. El motor de
    sync escribe el ID de hoja desde su hilo mientras la interfaz puede estar
    guardando la URL del webhook, por eso las escrituras van bajo lock.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or resolve_appdata_dir()
        self._config_path = self._base_dir / CONFIG_FILENAME
        self._lock = threading.Lock()

    def get_spreadsheet_id(self) -> str | None:
        return self._get_text(_KEY_SPREADSHEET_ID)

    def set_spreadsheet_id(self, spreadsheet_id: str | None) -> None:
        self._set(_KEY_SPREADSHEET_ID, (spreadsheet_id or "").strip() or None)

    def get_webhook_url(self) -> str | None:
        return self._get_text(_KEY_WEBHOOK_URL)

    def set_webhook_url(self, url: str | None) -> None:
        self._set(_KEY_WEBHOOK_URL, (url or "").strip() or None)

    def get_credential(self) -> dict[str, Any] | None:
        value = self._read_payload().get(_KEY_CREDENTIAL)
        if isinstance(value, dict) and value:
            return value
        return None

    def set_credential(self, credential: dict[str, Any] | None) -> None:
        self._set(_KEY_CREDENTIAL, credential or None)

    def _get_text(self, key: str) -> str | None:
        value = self._read_payload().get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            payload = self._read_payload()
            if value is None:
                payload.pop(key, None)
            else:
                payload[key] = value
            self._write_payload(payload)

    def _read_payload(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            payload = json.loads(self._config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.exception("No se pudo leer %s: %s", CONFIG_FILENAME, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write_payload(self, payload: dict[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._config_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self._config_path)
