from __future__ import annotations

from typing import Callable

from control_combustible.domain.ports import RemoteTransport
from control_combustible.domain.sync_models import ApiTokenConfig, TransportConfig, WebhookConfig
from control_combustible.infrastructure.transport_sheets_api import SheetsApiTransport
from control_combustible.infrastructure.transport_webhook import DEFAULT_TIMEOUT_SECONDS, WebhookTransport


def build_transport(
    config: TransportConfig,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    on_spreadsheet_created: Callable[[str], None] | None = None,
) -> RemoteTransport:
    if isinstance(config, WebhookConfig):
        return WebhookTransport(config.url, timeout_seconds=timeout_seconds)
    if isinstance(config, ApiTokenConfig):
        return SheetsApiTransport(
            config.credential,
            config.spreadsheet_id,
            timeout_seconds=timeout_seconds,
            on_spreadsheet_created=on_spreadsheet_created,
        )
    raise ValueError("No se puede construir un transporte sin configuración remota.")
