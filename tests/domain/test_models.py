from __future__ import annotations

from dataclasses import replace

from control_combustible.domain.models import Account, FuelEvent, Role, SyncStatus
from control_combustible.domain.sync_models import (
    DRAIN_BUSY,
    DRAIN_COMPLETED,
    DRAIN_EMPTY,
    ApiTokenConfig,
    DrainReport,
    Unconfigured,
    WebhookConfig,
)


def _cuenta(role: Role, obras: tuple[str, ...] = ()) -> Account:
    return Account(
        id="acc-1",
        name="Ana",
        email="ana@example.com",
        credential="secreto",
        role=role,
        permitted_site_ids=obras,
        created_at="2025-01-01T00:00:00Z",
    )


def test_operador_solo_accede_a_obras_permitidas() -> None:
    cuenta = _cuenta(Role.OPERATOR, ("obra-1",))

    assert cuenta.can_access_site("obra-1")
    assert not cuenta.can_access_site("obra-2")


def test_operador_sin_obras_no_accede_a_nada() -> None:
    assert not _cuenta(Role.OPERATOR).can_access_site("obra-1")


def test_admin_sin_lista_no_tiene_restricciones() -> None:
    cuenta = _cuenta(Role.ADMIN)

    assert cuenta.is_admin
    assert cuenta.can_access_site("cualquiera")


def test_distancia_del_repostaje_depende_de_la_lectura_anterior() -> None:
    evento = FuelEvent(
        id="ev-1",
        site_id="obra-1",
        equipment_id="eq-1",
        event_date="2025-01-01",
        current_reading=250,
        previous_reading=100,
        liters=30,
        fuel_type="Diésel",
        price_per_liter=1.5,
        total_cost=45,
        average_consumption=5,
        cost_per_unit=0.3,
        operator_name="",
        invoice_ref="",
        requisition_ref="",
        notes="",
        sync_status=SyncStatus.PENDING,
        created_at="2025-01-01T00:00:00Z",
    )

    assert evento.distance == 150
    assert replace(evento, previous_reading=0).distance == 0


def test_variantes_de_transporte_exponen_su_tipo() -> None:
    assert WebhookConfig(url="https://script").kind == "webhook"
    assert ApiTokenConfig(credential={"token": "x"}).kind == "api"
    assert Unconfigured().kind == "unconfigured"


def test_drain_report_indica_si_el_pase_se_ejecuto() -> None:
    assert DrainReport(status=DRAIN_COMPLETED).ran
    assert DrainReport(status=DRAIN_EMPTY).ran
    assert not DrainReport(status=DRAIN_BUSY).ran
    assert DrainReport(status=DRAIN_COMPLETED, synced=2).to_dict()["synced"] == 2
