from __future__ import annotations

from control_combustible.core.errors import ExternalServiceError, InfraError, TransientExternalError


class SheetsConfigError(InfraError):
    pass


class SheetsApiDisabledError(SheetsConfigError):
    pass


class SheetsPermissionError(SheetsConfigError):
    pass


class SheetsNotFoundError(SheetsConfigError):
    pass


class SheetsCredentialsError(SheetsConfigError):
    pass


class SheetsRateLimitError(TransientExternalError):
    pass


class WebhookTransportError(TransientExternalError):
    pass


class RemoteFormatError(ExternalServiceError):
    """La respuesta remota no tiene el formato esperado (p. ej. no es JSON)."""
