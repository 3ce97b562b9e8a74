import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetshop.models import Base
from fleetshop.db import crud
from fleetshop.services.status_machine import TransitionKind, plan_transition


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


def test_format_order_number():
    assert crud.format_order_number(0, 2025) == "OS-250001"
    assert crud.format_order_number(41, 2026) == "OS-260042"


async def test_create_work_order_records_creation_event(db):
    wo = await crud.create_work_order(
        db, "Aguardando Mecânico",
        vehicle_info="ABC-1234 Volvo FH", actor_id="u1", actor_name="Ana",
    )
    assert wo.id is not None
    assert wo.number.startswith("OS-")
    assert len(wo.events) == 1
    event = wo.events[0]
    assert (event.event_type, event.from_label, event.to_label) == ("Criação", "Sistema", "Oficina")
    assert event.seq == 1
    assert event.actor_name == "Ana"


async def test_creation_event_names_intake_department(db):
    warehouse = await crud.create_work_order(db, "Em Análise")
    external = await crud.create_work_order(db, "Serviço Externo")
    assert warehouse.events[0].to_label == "Almoxarifado"
    assert external.events[0].to_label == "Oficina"


async def test_order_numbers_are_sequential_and_skip_used(db):
    first = await crud.create_work_order(db, "Aguardando Mecânico")
    second = await crud.create_work_order(db, "Aguardando Mecânico")
    assert int(second.number[5:]) == int(first.number[5:]) + 1

    # One row left, so the count-based label would collide with the second order.
    await crud.delete_work_order(db, first)
    third = await crud.create_work_order(db, "Aguardando Mecânico")
    assert int(third.number[5:]) == int(second.number[5:]) + 1


async def test_list_by_status_and_search(db):
    await crud.create_work_order(db, "Em Serviço", vehicle_info="Scania R450", mechanic_info="João (m1)")
    await crud.create_work_order(db, "Em Análise", vehicle_info="Volvo FH")

    workshop = await crud.list_work_orders(db, ["Em Serviço"])
    assert [wo.vehicle_info for wo in workshop] == ["Scania R450"]

    found = await crud.search_work_orders(db, "joão")
    assert len(found) == 1
    found = await crud.search_work_orders(db, "VOLVO")
    assert len(found) == 1
    assert len(await crud.search_work_orders(db, "")) == 2


async def test_apply_transition_writes_status_note_and_event(db):
    wo = await crud.create_work_order(db, "Em Serviço")
    planned = plan_transition(TransitionKind.SEND_TO_WAREHOUSE, wo.status, wo.events, note="filtro de óleo")

    await crud.apply_transition(db, wo, planned)
    fetched = await crud.get_work_order(db, wo.id)
    assert fetched.status == "Em Análise"
    assert fetched.warehouse_notes == "filtro de óleo"
    assert [e.event_type for e in fetched.events] == ["Criação", "Envio para Almoxarifado"]
    assert fetched.events[-1].seq == 2


async def test_reassign_mechanic_clears_rank(db):
    wo = await crud.create_work_order(db, "Em Serviço", mechanic_id="m1", mechanic_info="Ana (m1)")
    await crud.set_execution_order(db, wo, 3)

    await crud.reassign_mechanic(db, wo, "m2", "Bruno (m2)")
    assert wo.mechanic_id == "m2"
    assert wo.execution_order is None
    assert wo.events[-1].note == "Mecânico alterado para Bruno (m2)"


async def test_add_observation_keeps_status(db):
    wo = await crud.create_work_order(db, "Em Aprovação")
    await crud.add_observation(db, wo, "Cotação enviada", "Compras", "u2", "Bia")
    assert wo.status == "Em Aprovação"
    event = wo.events[-1]
    assert (event.event_type, event.department, event.note) == ("Observação", "Compras", "Cotação enviada")


async def test_list_assigned_skips_unassigned(db):
    await crud.create_work_order(db, "Em Serviço", mechanic_id="m1", mechanic_info="Ana (m1)")
    await crud.create_work_order(db, "Em Serviço")
    await crud.create_work_order(db, "Em Serviço", mechanic_id="")
    assigned = await crud.list_assigned_work_orders(db)
    assert [wo.mechanic_id for wo in assigned] == ["m1"]


async def test_oil_change_records(db):
    await crud.create_oil_change(db, "v1", 0, 10000, 20000)
    await crud.create_oil_change(db, "v1", 10000, 15000, 20000, service_type="Atualização de Km")
    await crud.create_oil_change(db, "v2", 0, 500, 10500)

    records = await crud.list_oil_changes(db, "v1")
    assert [r.current_km for r in records] == [15000, 10000]
    last_change = await crud.get_last_oil_record(db, "v1", "Troca de Óleo")
    assert last_change.current_km == 10000


async def test_create_and_find_user(db):
    user = await crud.create_user(db, "ana", "hash", role="oficina")
    assert user.display_name == "ana"
    assert (await crud.get_user_by_login(db, "ana")).id == user.id
    assert await crud.get_user_by_login(db, "nobody") is None


async def test_vehicle_registry(db):
    truck = await crud.create_vehicle(db, "abc-1234", brand="Volvo", model="FH", department="Obras")
    await crud.create_vehicle(db, "XYZ-9876", brand="Scania", model="R450")
    assert truck.plate == "ABC-1234"
    assert truck.label == "ABC-1234 Volvo FH"
    assert (await crud.get_vehicle_by_plate(db, "abc-1234")).id == truck.id

    assert [v.plate for v in await crud.list_vehicles(db)] == ["ABC-1234", "XYZ-9876"]
    assert [v.plate for v in await crud.list_vehicles(db, "obras")] == ["ABC-1234"]

    await crud.update_vehicle(db, truck, model="FH 540", year=None)
    assert truck.model == "FH 540"
    await crud.delete_vehicle(db, truck)
    assert await crud.get_vehicle(db, truck.id) is None


async def test_work_order_takes_label_from_registered_vehicle(db):
    truck = await crud.create_vehicle(db, "ABC-1234", brand="Volvo", model="FH", current_km=81000)
    wo = await crud.create_work_order(db, "Aguardando Mecânico", vehicle_id=truck.id)
    assert (wo.vehicle_info, wo.current_km) == ("ABC-1234 Volvo FH", "81000")


async def test_product_search(db):
    await crud.create_product(db, "Pastilha de freio", category="Freios", location="A1")
    await crud.create_product(db, "Óleo 15W40", category="Lubrificantes", location="B2")
    assert [p.description for p in await crud.list_products(db, "freio")] == ["Pastilha de freio"]
    assert [p.description for p in await crud.list_products(db, "b2")] == ["Óleo 15W40"]
