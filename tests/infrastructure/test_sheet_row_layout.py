from __future__ import annotations

from control_combustible.infrastructure.sheet_row_layout import (
    COLUMN_COUNT,
    HEADER_ROW,
    coerce_number,
    record_to_row,
    row_to_record,
    rows_to_records,
)


def test_cabecera_tiene_diecinueve_columnas() -> None:
    assert COLUMN_COUNT == 19
    assert HEADER_ROW[0] == "ID"
    assert HEADER_ROW[-1] == "Fecha Sync"


def test_record_to_row_ordena_columnas_y_anade_fecha_sync() -> None:
    registro = {
        "id": "ev-1",
        "event_date": "2025-02-01",
        "site_id": "obra-1",
        "site_name": "Autovía",
        "equipment_id": "eq-1",
        "equipment_name": "Camión 7",
        "equipment_category": "Camión",
        "current_reading": 1200.0,
        "liters": 80.0,
        "fuel_type": "Diésel",
        "price_per_liter": 1.6,
        "total_cost": 128.0,
        "average_consumption": 3.5,
        "cost_per_unit": 0.45,
        "operator_name": "Luis",
        "invoice_ref": "F-9",
        "requisition_ref": "R-2",
        "notes": "ok",
        "sync_status": "PENDING",
    }

    fila = record_to_row(registro, "2025-02-01T10:00:00Z")

    assert len(fila) == 19
    assert fila[:3] == ["ev-1", "2025-02-01", "obra-1"]
    assert fila[7] == 1200.0
    assert fila[14] == "Luis"
    assert fila[-1] == "2025-02-01T10:00:00Z"


def test_record_to_row_rellena_ausentes() -> None:
    fila = record_to_row({"id": "ev-1"}, "t")

    assert fila[3] == ""
    assert fila[8] == 0


def test_row_to_record_rellena_filas_cortas_y_convierte_numeros() -> None:
    registro = row_to_record(["ev-1", "2025-01-01", "obra-1", "Obra", "eq-1", "Equipo", "Tipo", "150", "1.234,5"])

    assert registro["id"] == "ev-1"
    assert registro["current_reading"] == 150.0
    assert registro["liters"] == 1234.5
    assert registro["price_per_liter"] == 0.0
    assert registro["notes"] == ""


def test_coerce_number_valores_no_numericos_son_cero() -> None:
    assert coerce_number("") == 0.0
    assert coerce_number(None) == 0.0
    assert coerce_number("abc") == 0.0
    assert coerce_number(7) == 7.0


def test_rows_to_records_descarta_cabecera_y_filas_vacias() -> None:
    filas = [list(HEADER_ROW), ["ev-1", "2025-01-01"], ["", "", ""], ["ev-2"]]

    registros = rows_to_records(filas)

    assert [registro["id"] for registro in registros] == ["ev-1", "ev-2"]
