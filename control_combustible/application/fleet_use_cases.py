from __future__ import annotations

from dataclasses import dataclass
import logging
import uuid
from typing import Iterable

from control_combustible.application.outbox import OutboxQueue
from control_combustible.application.sync_payloads import ReferenceNames, equipment_payload, fuel_event_payload
from control_combustible.domain.models import (
    Account,
    EntityType,
    Equipment,
    FuelEvent,
    MeasurementKind,
    OutboxAction,
    RecordStatus,
    Site,
    SyncStatus,
)
from control_combustible.domain.ports import StoreSessionPort
from control_combustible.domain.services import (
    FuelSummary,
    ValidacionError,
    compute_fuel_metrics,
    find_previous_reading,
    summarize,
    validar_equipo,
    validar_obra,
    validar_repostaje,
)
from control_combustible.domain.time_utils import now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FuelEventView:
    event: FuelEvent
    equipment_name: str
    site_name: str


class FleetUseCases:
    """Altas, cambios y bajas de obras, equipos y repostajes.

    Cada mutación de equipo o repostaje escribe la entidad y su entrada de
    outbox en la misma transacción; el aviso al motor de sync se da después
    del commit.
    """

    def __init__(self, session: StoreSessionPort, outbox: OutboxQueue) -> None:
        self._session = session
        self._outbox = outbox

    # Obras

    def create_site(self, *, name: str, address: str = "", status: RecordStatus = RecordStatus.ACTIVE) -> Site:
        site = Site(id=str(uuid.uuid4()), name=name.strip(), address=address.strip(), status=status, created_at=now_iso())
        validar_obra(site)
        self._session.sites.create(site)
        logger.info("Obra creada: %s", site.name)
        return site

    def list_sites(self, account: Account | None = None) -> list[Site]:
        sites = self._session.sites.list_all()
        if account is None:
            return sites
        return [site for site in sites if account.can_access_site(site.id)]

    def delete_site(self, site_id: str) -> None:
        self._session.sites.delete(site_id)
        logger.info("Obra eliminada: %s", site_id)

    # Equipos

    def save_equipment(
        self,
        *,
        site_id: str,
        name: str,
        category: str = "",
        plate: str = "",
        make: str = "",
        model: str = "",
        year: int | None = None,
        measurement_kind: MeasurementKind = MeasurementKind.DISTANCE,
        default_fuel_type: str = "",
        status: RecordStatus = RecordStatus.ACTIVE,
        equipment_id: str | None = None,
    ) -> Equipment:
        now = now_iso()
        existing = self._session.equipment.get_by_id(equipment_id) if equipment_id else None
        if equipment_id and existing is None:
            raise ValidacionError(f"Equipo no encontrado: {equipment_id}")
        equipment = Equipment(
            id=equipment_id or str(uuid.uuid4()),
            site_id=site_id,
            name=name.strip(),
            category=category.strip(),
            plate=plate.strip(),
            make=make.strip(),
            model=model.strip(),
            year=year,
            measurement_kind=measurement_kind,
            default_fuel_type=default_fuel_type,
            status=status,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        validar_equipo(equipment)
        action = OutboxAction.UPDATE if existing else OutboxAction.CREATE
        with self._session.transaction():
            if existing:
                self._session.equipment.update(equipment)
            else:
                self._session.equipment.create(equipment)
            self._outbox.append(EntityType.EQUIPMENT, equipment.id, action, equipment_payload(equipment))
        self._outbox.wake_if_online()
        return equipment

    def delete_equipment(self, equipment_id: str) -> None:
        # Los repostajes del equipo se conservan con la referencia colgando.
        with self._session.transaction():
            self._session.equipment.delete(equipment_id)
            self._outbox.append(EntityType.EQUIPMENT, equipment_id, OutboxAction.DELETE, {"id": equipment_id})
        self._outbox.wake_if_online()
        logger.info("Equipo eliminado: %s", equipment_id)

    def list_equipment(self, account: Account | None = None) -> list[Equipment]:
        equipment = self._session.equipment.list_all()
        if account is None:
            return equipment
        return [item for item in equipment if account.can_access_site(item.site_id)]

    # Repostajes

    def record_fuel_event(
        self,
        *,
        site_id: str,
        equipment_id: str,
        event_date: str,
        current_reading: float,
        liters: float,
        price_per_liter: float,
        fuel_type: str = "",
        operator_name: str = "",
        invoice_ref: str = "",
        requisition_ref: str = "",
        notes: str = "",
        event_id: str | None = None,
        updated_by: str | None = None,
    ) -> FuelEvent:
        validar_repostaje(
            site_id=site_id,
            equipment_id=equipment_id,
            event_date=event_date,
            current_reading=current_reading,
            liters=liters,
            price_per_liter=price_per_liter,
        )
        existing = self._session.fuel_events.get_by_id(event_id) if event_id else None
        if event_id and existing is None:
            raise ValidacionError(f"Repostaje no encontrado: {event_id}")
        now = now_iso()
        created_at = existing.created_at if existing else now
        previous_reading = find_previous_reading(
            self._session.fuel_events.list_by_equipment(equipment_id),
            event_date=event_date,
            created_at=created_at,
            exclude_id=event_id,
        )
        metrics = compute_fuel_metrics(
            current_reading=current_reading,
            previous_reading=previous_reading,
            liters=liters,
            price_per_liter=price_per_liter,
        )
        event = FuelEvent(
            id=event_id or str(uuid.uuid4()),
            site_id=site_id,
            equipment_id=equipment_id,
            event_date=event_date,
            current_reading=current_reading,
            previous_reading=metrics.previous_reading,
            liters=liters,
            fuel_type=fuel_type,
            price_per_liter=price_per_liter,
            total_cost=metrics.total_cost,
            average_consumption=metrics.average_consumption,
            cost_per_unit=metrics.cost_per_unit,
            operator_name=operator_name.strip(),
            invoice_ref=invoice_ref.strip(),
            requisition_ref=requisition_ref.strip(),
            notes=notes.strip(),
            sync_status=SyncStatus.PENDING,
            created_at=created_at,
            updated_at=now if existing else None,
            last_updated_by=updated_by if existing else None,
        )
        action = OutboxAction.UPDATE if existing else OutboxAction.CREATE
        with self._session.transaction():
            if existing:
                self._session.fuel_events.update(event)
            else:
                self._session.fuel_events.create(event)
            self._outbox.append(EntityType.FUEL_EVENT, event.id, action, fuel_event_payload(event))
        self._outbox.wake_if_online()
        logger.info(
            "Repostaje %s: equipo=%s litros=%s distancia=%s",
            "actualizado" if existing else "registrado",
            equipment_id,
            liters,
            metrics.distance,
        )
        return event

    def delete_fuel_event(self, event_id: str) -> None:
        with self._session.transaction():
            self._session.fuel_events.delete(event_id)
            self._outbox.append(EntityType.FUEL_EVENT, event_id, OutboxAction.DELETE, {"id": event_id})
        self._outbox.wake_if_online()

    def list_fuel_events(self, account: Account | None = None) -> list[FuelEventView]:
        names = ReferenceNames(self._session.equipment, self._session.sites)
        events = self._session.fuel_events.list_all()
        if account is not None:
            events = [event for event in events if account.can_access_site(event.site_id)]
        return [
            FuelEventView(
                event=event,
                equipment_name=names.equipment_name(event.equipment_id),
                site_name=names.site_name(event.site_id),
            )
            for event in events
        ]

    def summarize(self, events: Iterable[FuelEvent]) -> FuelSummary:
        return summarize(events)
