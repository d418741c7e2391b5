from __future__ import annotations

import json

import pytest

from control_combustible.application.fleet_use_cases import FleetUseCases
from control_combustible.application.outbox import OutboxQueue
from control_combustible.domain.models import Account, EntityType, OutboxAction, OutboxStatus, Role, SyncStatus
from control_combustible.domain.services import ValidacionError
from control_combustible.infrastructure.sqlite_session import SqliteStoreSession


@pytest.fixture
def casos(session: SqliteStoreSession) -> FleetUseCases:
    return FleetUseCases(session, OutboxQueue(session.outbox))


@pytest.fixture
def equipo(casos: FleetUseCases) -> tuple[str, str]:
    obra = casos.create_site(name="Puerto de Algeciras")
    equipo = casos.save_equipment(site_id=obra.id, name="Retro 3", category="Retroexcavadora")
    return obra.id, equipo.id


def _repostar(casos: FleetUseCases, equipo: tuple[str, str], lectura: float, fecha: str, **extra):
    return casos.record_fuel_event(
        site_id=equipo[0],
        equipment_id=equipo[1],
        event_date=fecha,
        current_reading=lectura,
        liters=extra.pop("liters", 20),
        price_per_liter=extra.pop("price_per_liter", 1.5),
        **extra,
    )


def _acciones(session: SqliteStoreSession) -> list[tuple[EntityType, OutboxAction]]:
    return [(e.entity_type, e.action) for e in session.outbox.list_by_status(OutboxStatus.PENDING)]


def test_repostaje_calcula_metricas_con_lectura_anterior(casos, equipo) -> None:
    _repostar(casos, equipo, 100, "2025-01-01")
    segundo = _repostar(casos, equipo, 250, "2025-01-02", liters=30)

    assert segundo.previous_reading == 100
    assert segundo.total_cost == pytest.approx(45.0)
    assert segundo.average_consumption == pytest.approx(5.0)
    assert segundo.cost_per_unit == pytest.approx(0.3)
    assert segundo.sync_status is SyncStatus.PENDING


def test_repostaje_escribe_entidad_y_outbox(casos, equipo, session) -> None:
    evento = _repostar(casos, equipo, 100, "2025-01-01")

    assert session.fuel_events.get_by_id(evento.id) is not None
    assert _acciones(session) == [
        (EntityType.EQUIPMENT, OutboxAction.CREATE),
        (EntityType.FUEL_EVENT, OutboxAction.CREATE),
    ]
    carga = json.loads(session.outbox.list_by_status(OutboxStatus.PENDING)[1].payload_json)
    assert carga["id"] == evento.id
    assert carga["sync_status"] == "PENDING"


def test_editar_repostaje_conserva_created_at_y_se_excluye_del_historial(casos, equipo, session) -> None:
    evento = _repostar(casos, equipo, 100, "2025-01-01")

    editado = _repostar(casos, equipo, 120, "2025-01-01", event_id=evento.id, updated_by="admin@obra.es")

    assert editado.created_at == evento.created_at
    assert editado.previous_reading == 0
    assert editado.last_updated_by == "admin@obra.es"
    assert _acciones(session)[-1] == (EntityType.FUEL_EVENT, OutboxAction.UPDATE)
    assert session.fuel_events.get_by_id(evento.id).current_reading == 120


def test_editar_repostaje_inexistente_falla(casos, equipo) -> None:
    with pytest.raises(ValidacionError):
        _repostar(casos, equipo, 100, "2025-01-01", event_id="no-existe")


def test_repostaje_invalido_no_escribe_nada(casos, equipo, session) -> None:
    with pytest.raises(ValidacionError):
        _repostar(casos, equipo, 100, "2025-01-01", liters=-1)

    assert session.fuel_events.list_all() == []
    assert len(_acciones(session)) == 1


def test_borrar_equipo_deja_repostajes_con_na(casos, equipo, session) -> None:
    evento = _repostar(casos, equipo, 100, "2025-01-01")

    casos.delete_equipment(equipo[1])

    vistas = casos.list_fuel_events()
    assert [vista.event.id for vista in vistas] == [evento.id]
    assert vistas[0].equipment_name == "N/A"
    assert vistas[0].site_name == "Puerto de Algeciras"
    assert _acciones(session)[-1] == (EntityType.EQUIPMENT, OutboxAction.DELETE)


def test_borrar_obra_conserva_equipos_y_repostajes(casos, equipo, session) -> None:
    evento = _repostar(casos, equipo, 100, "2025-01-01")
    pendientes_antes = _acciones(session)

    casos.delete_site(equipo[0])

    assert casos.list_sites() == []
    assert session.equipment.get_by_id(equipo[1]) is not None
    vistas = casos.list_fuel_events()
    assert [vista.event.id for vista in vistas] == [evento.id]
    assert vistas[0].site_name == "N/A"
    assert vistas[0].equipment_name == "Retro 3"
    assert _acciones(session) == pendientes_antes


def test_borrar_repostaje_encola_delete(casos, equipo, session) -> None:
    evento = _repostar(casos, equipo, 100, "2025-01-01")

    casos.delete_fuel_event(evento.id)

    assert session.fuel_events.get_by_id(evento.id) is None
    ultima = session.outbox.list_by_status(OutboxStatus.PENDING)[-1]
    assert ultima.action is OutboxAction.DELETE
    assert json.loads(ultima.payload_json) == {"id": evento.id}


def test_editar_equipo_encola_update(casos, equipo, session) -> None:
    actualizado = casos.save_equipment(site_id=equipo[0], name="Retro 3B", equipment_id=equipo[1])

    assert session.equipment.get_by_id(equipo[1]).name == "Retro 3B"
    assert actualizado.created_at == session.equipment.get_by_id(equipo[1]).created_at
    assert _acciones(session)[-1] == (EntityType.EQUIPMENT, OutboxAction.UPDATE)


def test_operador_solo_ve_sus_obras(casos, equipo) -> None:
    otra = casos.create_site(name="Variante de Lorca")
    otro_equipo = casos.save_equipment(site_id=otra.id, name="Dumper 7")
    _repostar(casos, equipo, 100, "2025-01-01")
    casos.record_fuel_event(
        site_id=otra.id,
        equipment_id=otro_equipo.id,
        event_date="2025-01-01",
        current_reading=50,
        liters=10,
        price_per_liter=1.5,
    )
    operador = Account(
        id="op-1",
        name="Operador",
        email="op@obra.es",
        credential="x",
        role=Role.OPERATOR,
        permitted_site_ids=(otra.id,),
        created_at="2025-01-01T00:00:00Z",
    )

    assert [sitio.id for sitio in casos.list_sites(operador)] == [otra.id]
    assert [item.id for item in casos.list_equipment(operador)] == [otro_equipo.id]
    assert [vista.site_name for vista in casos.list_fuel_events(operador)] == ["Variante de Lorca"]
    assert len(casos.list_fuel_events()) == 2


def test_aviso_al_motor_tras_el_commit(session) -> None:
    avisos: list[int] = []

    def _wake() -> None:
        avisos.append(len(session.outbox.list_by_status(OutboxStatus.PENDING)))

    casos = FleetUseCases(session, OutboxQueue(session.outbox, wake=_wake, is_online=lambda: True))
    obra = casos.create_site(name="Autovía A-7")

    casos.save_equipment(site_id=obra.id, name="Camión 12")

    assert avisos == [1]
