from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
import re
from typing import Iterable

from control_combustible.core.errors import ValidationError
from control_combustible.domain.models import Equipment, FuelEvent, Site

logger = logging.getLogger(__name__)

_SPREADSHEET_URL_PATTERN = re.compile(r"/d/([A-Za-z0-9_-]+)")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class ValidacionError(ValidationError):
    pass


@dataclass(frozen=True)
class FuelMetrics:
    previous_reading: float
    distance: float
    total_cost: float
    average_consumption: float
    cost_per_unit: float


def compute_fuel_metrics(
    *,
    current_reading: float,
    previous_reading: float,
    liters: float,
    price_per_liter: float,
) -> FuelMetrics:
    """Calcula los derivados de un repostaje.

    Una lectura anterior de 0 equivale a "sin predecesor": la distancia queda
    en 0 y, con ella, el consumo medio y el coste por unidad.
    """
    total_cost = liters * price_per_liter
    distance = current_reading - previous_reading if previous_reading > 0 else 0.0
    average_consumption = distance / liters if distance > 0 and liters > 0 else 0.0
    cost_per_unit = total_cost / distance if distance > 0 else 0.0
    return FuelMetrics(
        previous_reading=previous_reading,
        distance=distance,
        total_cost=total_cost,
        average_consumption=average_consumption,
        cost_per_unit=cost_per_unit,
    )


def find_previous_reading(
    history: Iterable[FuelEvent],
    *,
    event_date: str,
    created_at: str,
    exclude_id: str | None = None,
) -> float:
    """Devuelve la lectura del repostaje inmediatamente anterior de un equipo.

    El histórico se ordena por (fecha, created_at) ascendente y se toma el
    último registro estrictamente anterior a la posición del nuevo repostaje.
    """
    position = (event_date, created_at)
    ordered = sorted(
        (event for event in history if event.id != exclude_id),
        key=lambda event: (event.event_date, event.created_at),
    )
    predecessor: FuelEvent | None = None
    for event in ordered:
        if (event.event_date, event.created_at) < position:
            predecessor = event
        else:
            break
    if predecessor is None:
        return 0.0
    logger.debug(
        "Lectura anterior resuelta: equipo=%s predecesor=%s lectura=%s",
        predecessor.equipment_id,
        predecessor.id,
        predecessor.current_reading,
    )
    return predecessor.current_reading


def validar_fecha_iso(value: str) -> None:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidacionError(f"Fecha inválida: {value!r}. Usa el formato AAAA-MM-DD.") from exc


def validar_repostaje(
    *,
    site_id: str,
    equipment_id: str,
    event_date: str,
    current_reading: float,
    liters: float,
    price_per_liter: float,
) -> None:
    if not site_id.strip():
        raise ValidacionError("Selecciona la obra.")
    if not equipment_id.strip():
        raise ValidacionError("Selecciona el equipo.")
    validar_fecha_iso(event_date)
    for campo, valor in {
        "lectura": current_reading,
        "litros": liters,
        "precio por litro": price_per_liter,
    }.items():
        if valor < 0:
            raise ValidacionError(f"El campo {campo} no puede ser negativo.")


def validar_equipo(equipment: Equipment) -> None:
    if not equipment.site_id.strip():
        raise ValidacionError("Selecciona una obra para el equipo.")
    if not equipment.name.strip():
        raise ValidacionError("El nombre del equipo es obligatorio.")
    if equipment.year is not None and equipment.year < 0:
        raise ValidacionError("El año del equipo no puede ser negativo.")


def validar_obra(site: Site) -> None:
    if not site.name.strip():
        raise ValidacionError("El nombre de la obra es obligatorio.")


def validar_email(email: str) -> None:
    if not _EMAIL_PATTERN.match(email.strip()):
        raise ValidacionError(f"Email inválido: {email!r}.")


def extract_spreadsheet_id(value: str) -> str:
    """Acepta un ID o una URL completa de Google Sheets y devuelve el ID."""
    cleaned = value.strip()
    match = _SPREADSHEET_URL_PATTERN.search(cleaned)
    if match:
        return match.group(1)
    return cleaned


@dataclass(frozen=True)
class FuelSummary:
    total_cost: float
    total_liters: float
    average_consumption: float
    consumption_by_fuel: dict[str, float]
    events: int


def summarize(events: Iterable[FuelEvent]) -> FuelSummary:
    items = list(events)
    if not items:
        return FuelSummary(0.0, 0.0, 0.0, {}, 0)
    by_fuel: dict[str, list[float]] = {}
    for event in items:
        by_fuel.setdefault(event.fuel_type, []).append(event.average_consumption)
    return FuelSummary(
        total_cost=sum(event.total_cost for event in items),
        total_liters=sum(event.liters for event in items),
        average_consumption=sum(event.average_consumption for event in items) / len(items),
        consumption_by_fuel={fuel: sum(values) / len(values) for fuel, values in by_fuel.items()},
        events=len(items),
    )
