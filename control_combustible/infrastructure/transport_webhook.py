from __future__ import annotations

import logging
from typing import Any

import requests

from control_combustible.domain.ports import RemoteTransport
from control_combustible.domain.sheets_errors import RemoteFormatError, WebhookTransportError
from control_combustible.domain.sync_models import PushResult
from control_combustible.domain.time_utils import now_iso
from control_combustible.infrastructure.sheet_row_layout import records_to_rows, rows_to_records

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60


class WebhookTransport(RemoteTransport):
    """Script publicado como aplicación web: POST para exportar filas, GET para leerlas.

    El script no devuelve nada útil en el POST, así que cualquier respuesta cuenta
    como éxito; solo un fallo de red se considera error.
    """

    def __init__(self, url: str, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds

    def push(self, records: list[dict[str, Any]]) -> PushResult:
        rows = records_to_rows(records, now_iso())
        try:
            requests.post(
                self._url,
                json={"action": "export", "records": rows},
                headers={"Content-Type": "application/json"},
                timeout=self._timeout_seconds,
            )
        except requests.exceptions.Timeout as exc:
            raise WebhookTransportError("El webhook no respondió a tiempo.") from exc
        except requests.exceptions.RequestException as exc:
            raise WebhookTransportError("Fallo al enviar datos al webhook. Verifica la URL.") from exc
        logger.info("Webhook: %s filas enviadas", len(rows))
        return PushResult(success=True)

    def pull(self) -> list[dict[str, Any]]:
        try:
            response = requests.get(self._url, timeout=self._timeout_seconds)
        except requests.exceptions.RequestException as exc:
            raise WebhookTransportError("No se pudo contactar con el webhook. Verifica la URL.") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteFormatError(
                "La URL del webhook no devolvió un JSON válido. "
                "Comprueba que el script esté publicado con acceso para cualquier usuario."
            ) from exc
        if not isinstance(payload, dict) or not payload.get("success"):
            raise RemoteFormatError("El webhook respondió con error al leer los datos.")
        data = payload.get("data") or []
        if not isinstance(data, list):
            raise RemoteFormatError("El webhook devolvió un campo 'data' que no es una lista de filas.")
        return rows_to_records(data)
