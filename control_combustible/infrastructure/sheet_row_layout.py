from __future__ import annotations

import logging
from typing import Any, Sequence

logger = logging.getLogger(__name__)

# Orden y número de columnas compartidos con las hojas ya existentes.
ROW_FIELDS: tuple[str, ...] = (
    "id",
    "event_date",
    "site_id",
    "site_name",
    "equipment_id",
    "equipment_name",
    "equipment_category",
    "current_reading",
    "liters",
    "fuel_type",
    "price_per_liter",
    "total_cost",
    "average_consumption",
    "cost_per_unit",
    "operator_name",
    "invoice_ref",
    "requisition_ref",
    "notes",
    "synced_at",
)

HEADER_ROW: tuple[str, ...] = (
    "ID",
    "Fecha",
    "ID Obra",
    "Obra",
    "ID Equipo",
    "Equipo",
    "Tipo Equipo",
    "Lectura",
    "Litros",
    "Combustible",
    "Precio/Litro",
    "Coste Total",
    "Consumo Medio",
    "Coste por Unidad",
    "Responsable",
    "Factura",
    "Requisición",
    "Observaciones",
    "Fecha Sync",
)

COLUMN_COUNT = len(ROW_FIELDS)

NUMERIC_FIELDS = frozenset(
    {
        "current_reading",
        "liters",
        "price_per_liter",
        "total_cost",
        "average_consumption",
        "cost_per_unit",
    }
)


def record_to_row(record: dict[str, Any], synced_at: str) -> list[Any]:
    values = {**record, "synced_at": synced_at}
    row: list[Any] = []
    for field_name in ROW_FIELDS:
        value = values.get(field_name)
        if value is None:
            value = 0 if field_name in NUMERIC_FIELDS else ""
        row.append(value)
    return row


def records_to_rows(records: Sequence[dict[str, Any]], synced_at: str) -> list[list[Any]]:
    return [record_to_row(record, synced_at) for record in records]


def coerce_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        pass
    try:
        return float(text.replace(".", "").replace(",", "."))
    except ValueError:
        logger.warning("Valor numérico no interpretable en fila remota: %r", value)
        return 0.0


def row_to_record(row: Sequence[Any]) -> dict[str, Any]:
    """Convierte una fila posicional de la hoja en un registro con forma de repostaje."""
    padded = list(row)[:COLUMN_COUNT] + [""] * max(0, COLUMN_COUNT - len(row))
    record: dict[str, Any] = {}
    for field_name, raw in zip(ROW_FIELDS, padded):
        if field_name in NUMERIC_FIELDS:
            record[field_name] = coerce_number(raw)
        else:
            record[field_name] = "" if raw is None else str(raw).strip()
    return record


def rows_to_records(rows: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    """Descarta la cabecera y mapea el resto de filas no vacías."""
    return [row_to_record(row) for row in rows[1:] if any(str(cell).strip() for cell in row)]
