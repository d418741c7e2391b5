from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Union

TRANSPORT_WEBHOOK = "webhook"
TRANSPORT_API = "api"
TRANSPORT_UNCONFIGURED = "unconfigured"


@dataclass(frozen=True)
class WebhookConfig:
    url: str

    @property
    def kind(self) -> str:
        return TRANSPORT_WEBHOOK


@dataclass(frozen=True)
class ApiTokenConfig:
    credential: dict[str, Any]
    spreadsheet_id: str | None = None

    @property
    def kind(self) -> str:
        return TRANSPORT_API


@dataclass(frozen=True)
class Unconfigured:
    @property
    def kind(self) -> str:
        return TRANSPORT_UNCONFIGURED


TransportConfig = Union[WebhookConfig, ApiTokenConfig, Unconfigured]


@dataclass(frozen=True)
class PushResult:
    success: bool
    spreadsheet_id: str | None = None
    created: bool = False


DRAIN_COMPLETED = "COMPLETED"
DRAIN_EMPTY = "EMPTY"
DRAIN_BUSY = "BUSY"
DRAIN_SKIPPED_OFFLINE = "SKIPPED_OFFLINE"
DRAIN_SKIPPED_UNAUTHORIZED = "SKIPPED_UNAUTHORIZED"
DRAIN_FAILED = "FAILED"


@dataclass(frozen=True)
class DrainReport:
    status: str
    pending_snapshot: int = 0
    synced: int = 0
    retried: int = 0
    escalated: int = 0
    dropped_deletes: int = 0
    dropped_equipment: int = 0
    push_calls: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ran(self) -> bool:
        return self.status in {DRAIN_COMPLETED, DRAIN_EMPTY}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
