from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SyncStatus(str, Enum):
    PENDING = "PENDING"
    SYNCED = "SYNCED"
    ERROR = "ERROR"


class OutboxStatus(str, Enum):
    PENDING = "PENDING"
    ERROR = "ERROR"


class EntityType(str, Enum):
    EQUIPMENT = "EQUIPMENT"
    FUEL_EVENT = "FUELEVENT"


class OutboxAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class MeasurementKind(str, Enum):
    DISTANCE = "DISTANCE"
    HOURS = "HOURS"


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Role(str, Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"


@dataclass(frozen=True)
class Site:
    id: str
    name: str
    address: str
    status: RecordStatus
    created_at: str


@dataclass(frozen=True)
class Equipment:
    """Unidad de la flota asignada a una obra.

    `measurement_kind` indica si la lectura de los repostajes es un odómetro
    (DISTANCE) o un horómetro (HOURS); el cálculo de consumo es el mismo.
    """

    id: str
    site_id: str
    name: str
    category: str
    plate: str
    make: str
    model: str
    year: Optional[int]
    measurement_kind: MeasurementKind
    default_fuel_type: str
    status: RecordStatus
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class FuelEvent:
    """Repostaje registrado en campo.

    Los campos derivados (`previous_reading`, `total_cost`,
    `average_consumption`, `cost_per_unit`) se calculan al guardar y quedan
    cacheados; no se recalculan cuando cambia el histórico posterior.
    """

    id: str
    site_id: str
    equipment_id: str
    event_date: str
    current_reading: float
    previous_reading: float
    liters: float
    fuel_type: str
    price_per_liter: float
    total_cost: float
    average_consumption: float
    cost_per_unit: float
    operator_name: str
    invoice_ref: str
    requisition_ref: str
    notes: str
    sync_status: SyncStatus
    created_at: str
    updated_at: Optional[str] = None
    last_updated_by: Optional[str] = None

    @property
    def distance(self) -> float:
        if self.previous_reading <= 0:
            return 0.0
        return self.current_reading - self.previous_reading


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    email: str
    credential: str
    role: Role
    permitted_site_ids: tuple[str, ...]
    created_at: str

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def can_access_site(self, site_id: str) -> bool:
        if self.role is Role.OPERATOR:
            return site_id in self.permitted_site_ids
        return not self.permitted_site_ids or site_id in self.permitted_site_ids


@dataclass(frozen=True)
class OutboxEntry:
    id: Optional[int]
    entity_type: EntityType
    entity_id: str
    action: OutboxAction
    payload_json: str
    retry_count: int = 0
    last_attempt: Optional[str] = None
    status: OutboxStatus = OutboxStatus.PENDING
