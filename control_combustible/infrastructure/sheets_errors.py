from __future__ import annotations

import json

import gspread
from google.auth.exceptions import DefaultCredentialsError, RefreshError

from control_combustible.domain.sheets_errors import (
    SheetsApiDisabledError,
    SheetsConfigError,
    SheetsCredentialsError,
    SheetsNotFoundError,
    SheetsPermissionError,
    SheetsRateLimitError,
)

_RATE_LIMIT_TOKENS = (
    "[429]",
    "resource_exhausted",
    "rate_limit_exceeded",
    "quota exceeded",
)


def extract_response_status_code(ex: Exception) -> int | None:
    response = getattr(ex, "response", None)
    return getattr(response, "status_code", None)


def _api_error_text(ex: gspread.exceptions.APIError) -> str:
    response = getattr(ex, "response", None)
    text = getattr(response, "text", "") if response is not None else ""
    return (text or str(ex)).strip().lower()


def classify_api_error(text_lower: str, status_code: int | None) -> Exception:
    if status_code in {429, 500, 503} or any(token in text_lower for token in _RATE_LIMIT_TOKENS):
        return SheetsRateLimitError("Límite de Google Sheets alcanzado. Se reintentará en el próximo ciclo.")
    if "google sheets api has not been used" in text_lower or "it is disabled" in text_lower:
        return SheetsApiDisabledError("La API de Google Sheets no está habilitada en el proyecto de Google Cloud.")
    if status_code == 404 or "[404]" in text_lower or "requested entity was not found" in text_lower:
        return SheetsNotFoundError("El Spreadsheet ID no es válido o la hoja no existe.")
    if status_code == 401 or "[401]" in text_lower or "unauthenticated" in text_lower:
        return SheetsCredentialsError("La sesión de Google ha caducado. Vuelve a conectar la cuenta.")
    if status_code == 403 or "[403]" in text_lower or "permission_denied" in text_lower:
        return SheetsPermissionError("La cuenta conectada no tiene permiso sobre la hoja.")
    return SheetsConfigError(text_lower)


def map_gspread_exception(ex: Exception) -> Exception:
    if isinstance(ex, SheetsConfigError | SheetsRateLimitError):
        return ex
    if isinstance(ex, gspread.exceptions.SpreadsheetNotFound):
        return SheetsNotFoundError("El Spreadsheet ID no es válido o la hoja no existe.")
    if isinstance(ex, gspread.exceptions.APIError):
        return classify_api_error(_api_error_text(ex), extract_response_status_code(ex))
    if isinstance(ex, RefreshError):
        return SheetsCredentialsError("No se pudo renovar el token de Google. Vuelve a conectar la cuenta.")
    if isinstance(ex, json.JSONDecodeError | DefaultCredentialsError | KeyError | ValueError):
        return SheetsCredentialsError("La credencial de Google guardada no es válida.")
    return SheetsConfigError(str(ex))
