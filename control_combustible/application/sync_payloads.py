from __future__ import annotations

from dataclasses import asdict
from typing import Any

from control_combustible.domain.models import Equipment, FuelEvent, SyncStatus
from control_combustible.domain.ports import EquipmentRepository, SiteRepository

MISSING_REFERENCE = "N/A"


def fuel_event_payload(event: FuelEvent) -> dict[str, Any]:
    payload = asdict(event)
    payload["sync_status"] = event.sync_status.value
    return payload


def equipment_payload(equipment: Equipment) -> dict[str, Any]:
    payload = asdict(equipment)
    payload["measurement_kind"] = equipment.measurement_kind.value
    payload["status"] = equipment.status.value
    return payload


def fuel_event_from_record(record: dict[str, Any], *, created_at: str, sync_status: SyncStatus) -> FuelEvent:
    """Construye un repostaje desde una fila remota ya mapeada."""
    return FuelEvent(
        id=record["id"],
        site_id=record.get("site_id", ""),
        equipment_id=record.get("equipment_id", ""),
        event_date=record.get("event_date", ""),
        current_reading=float(record.get("current_reading") or 0.0),
        previous_reading=0.0,
        liters=float(record.get("liters") or 0.0),
        fuel_type=record.get("fuel_type", ""),
        price_per_liter=float(record.get("price_per_liter") or 0.0),
        total_cost=float(record.get("total_cost") or 0.0),
        average_consumption=float(record.get("average_consumption") or 0.0),
        cost_per_unit=float(record.get("cost_per_unit") or 0.0),
        operator_name=record.get("operator_name", ""),
        invoice_ref=record.get("invoice_ref", ""),
        requisition_ref=record.get("requisition_ref", ""),
        notes=record.get("notes", ""),
        sync_status=sync_status,
        created_at=created_at,
    )


class ReferenceNames:
    """Resuelve nombres de equipo y obra para las filas remotas.

    Un equipo u obra borrados no rompen el envío: se usa el marcador "N/A".
    """

    def __init__(self, equipment: EquipmentRepository, sites: SiteRepository) -> None:
        self._equipment = equipment
        self._sites = sites
        self._equipment_cache: dict[str, Equipment | None] = {}
        self._site_names: dict[str, str] = {}

    def equipment_name(self, equipment_id: str) -> str:
        equipment = self._lookup_equipment(equipment_id)
        return equipment.name if equipment else MISSING_REFERENCE

    def equipment_category(self, equipment_id: str) -> str:
        equipment = self._lookup_equipment(equipment_id)
        return equipment.category if equipment else MISSING_REFERENCE

    def site_name(self, site_id: str) -> str:
        if site_id not in self._site_names:
            site = self._sites.get_by_id(site_id) if site_id else None
            self._site_names[site_id] = site.name if site else MISSING_REFERENCE
        return self._site_names[site_id]

    def enrich(self, payload: dict[str, Any]) -> dict[str, Any]:
        equipment_id = str(payload.get("equipment_id") or "")
        site_id = str(payload.get("site_id") or "")
        return {
            **payload,
            "equipment_name": self.equipment_name(equipment_id),
            "equipment_category": self.equipment_category(equipment_id),
            "site_name": self.site_name(site_id),
        }

    def _lookup_equipment(self, equipment_id: str) -> Equipment | None:
        if equipment_id not in self._equipment_cache:
            self._equipment_cache[equipment_id] = self._equipment.get_by_id(equipment_id) if equipment_id else None
        return self._equipment_cache[equipment_id]
