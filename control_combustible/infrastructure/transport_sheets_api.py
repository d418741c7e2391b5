from __future__ import annotations

import logging
from typing import Any, Callable

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials

from control_combustible.bootstrap.logging import log_operational_error
from control_combustible.core.errors import TransientExternalError
from control_combustible.domain.ports import RemoteTransport
from control_combustible.domain.sheets_errors import (
    SheetsCredentialsError,
    SheetsNotFoundError,
    SheetsPermissionError,
)
from control_combustible.domain.sync_models import PushResult
from control_combustible.domain.time_utils import now_iso
from control_combustible.infrastructure.sheet_row_layout import HEADER_ROW, records_to_rows, rows_to_records
from control_combustible.infrastructure.sheets_errors import map_gspread_exception

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
SPREADSHEET_TITLE = "Control Combustible - Repostajes"


def build_credentials(credential: dict[str, Any] | None) -> Credentials:
    if not credential:
        raise SheetsCredentialsError("No hay cuenta de Google conectada.")
    try:
        credentials = Credentials.from_authorized_user_info(credential, SCOPES)
    except ValueError as exc:
        raise SheetsCredentialsError("La credencial de Google guardada está incompleta.") from exc
    if credentials.expired and not credentials.refresh_token:
        raise SheetsCredentialsError("La sesión de Google ha caducado y no se puede renovar.")
    return credentials


class SheetsApiTransport(RemoteTransport):
    def __init__(
        self,
        credential: dict[str, Any] | None,
        spreadsheet_id: str | None = None,
        *,
        timeout_seconds: float | None = None,
        on_spreadsheet_created: Callable[[str], None] | None = None,
    ) -> None:
        self._credential = credential
        self._spreadsheet_id = spreadsheet_id
        self._timeout_seconds = timeout_seconds
        self._on_spreadsheet_created = on_spreadsheet_created

    @property
    def spreadsheet_id(self) -> str | None:
        return self._spreadsheet_id

    def push(self, records: list[dict[str, Any]]) -> PushResult:
        rows = records_to_rows(records, now_iso())
        client = self._authorize()
        created = False
        try:
            if self._spreadsheet_id:
                spreadsheet = client.open_by_key(self._spreadsheet_id)
            else:
                spreadsheet = client.create(SPREADSHEET_TITLE)
                spreadsheet.sheet1.append_row(list(HEADER_ROW), value_input_option="RAW")
                self._spreadsheet_id = spreadsheet.id
                created = True
                logger.info("Hoja remota creada: %s", spreadsheet.id)
                # El ID queda guardado aunque falle el envío de filas.
                if self._on_spreadsheet_created is not None:
                    self._on_spreadsheet_created(spreadsheet.id)
            if rows:
                spreadsheet.sheet1.append_rows(rows, value_input_option="RAW")
        except (gspread.exceptions.GSpreadException, GoogleAuthError) as exc:
            self._raise_mapped(exc, "push")
        except requests.exceptions.RequestException as exc:
            raise TransientExternalError("No se pudo contactar con Google Sheets.") from exc
        logger.info("Google Sheets: %s filas añadidas", len(rows))
        return PushResult(success=True, spreadsheet_id=self._spreadsheet_id, created=created)

    def pull(self) -> list[dict[str, Any]]:
        if not self._spreadsheet_id:
            raise SheetsNotFoundError("Spreadsheet ID no configurado.")
        client = self._authorize()
        try:
            values = client.open_by_key(self._spreadsheet_id).sheet1.get_all_values()
        except (gspread.exceptions.GSpreadException, GoogleAuthError) as exc:
            self._raise_mapped(exc, "pull")
        except requests.exceptions.RequestException as exc:
            raise TransientExternalError("No se pudo contactar con Google Sheets.") from exc
        return rows_to_records(values)

    def _authorize(self) -> gspread.Client:
        credentials = build_credentials(self._credential)
        try:
            client = gspread.authorize(credentials)
        except GoogleAuthError as exc:
            raise map_gspread_exception(exc) from exc
        if self._timeout_seconds:
            client.set_timeout(self._timeout_seconds)
        return client

    def _raise_mapped(self, exc: Exception, operation: str) -> None:
        mapped = map_gspread_exception(exc)
        if isinstance(mapped, SheetsPermissionError):
            log_operational_error(
                logger,
                "Sin permisos sobre la hoja de Google",
                exc=mapped,
                extra={"operation": operation, "spreadsheet_id": self._spreadsheet_id},
            )
        raise mapped from exc
