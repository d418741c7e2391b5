from __future__ import annotations

import gspread
import pytest
from google.auth.exceptions import RefreshError

from control_combustible.domain.sheets_errors import (
    SheetsApiDisabledError,
    SheetsConfigError,
    SheetsCredentialsError,
    SheetsNotFoundError,
    SheetsPermissionError,
    SheetsRateLimitError,
)
from control_combustible.infrastructure.sheets_errors import map_gspread_exception


class _Response:
    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text


@pytest.mark.parametrize(
    ("status_code", "text", "esperado"),
    [
        (429, "[429] Quota exceeded. RESOURCE_EXHAUSTED", SheetsRateLimitError),
        (403, "Google Sheets API has not been used in project 123 before or it is disabled", SheetsApiDisabledError),
        (404, "Requested entity was not found.", SheetsNotFoundError),
        (403, "The caller does not have permission. PERMISSION_DENIED", SheetsPermissionError),
        (401, "Request had invalid authentication credentials. UNAUTHENTICATED", SheetsCredentialsError),
        (400, "Unable to parse range", SheetsConfigError),
    ],
)
def test_map_gspread_exception_clasifica_api_error(status_code: int, text: str, esperado: type) -> None:
    mapped = map_gspread_exception(gspread.exceptions.APIError(_Response(status_code, text)))

    assert type(mapped) is esperado


def test_refresh_error_es_error_de_credenciales() -> None:
    mapped = map_gspread_exception(RefreshError("invalid_grant"))

    assert isinstance(mapped, SheetsCredentialsError)


def test_spreadsheet_not_found_se_mapea() -> None:
    assert isinstance(map_gspread_exception(gspread.exceptions.SpreadsheetNotFound()), SheetsNotFoundError)


def test_errores_ya_mapeados_se_devuelven_tal_cual() -> None:
    original = SheetsPermissionError("sin permiso")

    assert map_gspread_exception(original) is original
