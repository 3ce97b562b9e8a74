import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetshop.db import crud
from fleetshop.errors import InsufficientStockError, InventoryError, RecordNotFoundError
from fleetshop.models import Base
from fleetshop.services import inventory


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def stock(db):
    oil = await crud.create_product(db, "Óleo 15W40", category="Lubrificantes", unit="L")
    filt = await crud.create_product(db, "Filtro de óleo", category="Filtros")
    truck = await crud.create_vehicle(db, "abc-1234", brand="Volvo", model="FH")
    return oil, filt, truck


async def test_entry_adds_stock_and_snapshots_description(db, stock):
    oil, _, _ = stock
    entry = await inventory.record_entry(db, oil.id, 20, responsible_id="u1", responsible_name="Ana")
    assert entry.product_description == "Óleo 15W40"
    assert (await crud.get_product(db, oil.id)).stock == 20


async def test_entry_rejects_bad_quantity_and_unknown_product(db, stock):
    oil, _, _ = stock
    with pytest.raises(InventoryError):
        await inventory.record_entry(db, oil.id, 0)
    with pytest.raises(RecordNotFoundError):
        await inventory.record_entry(db, "missing", 5)
    assert (await crud.get_product(db, oil.id)).stock == 0


async def test_update_entry_same_product_moves_by_difference(db, stock):
    oil, _, truck = stock
    entry = await inventory.record_entry(db, oil.id, 10)
    await inventory.record_exit(db, oil.id, 4, truck.id)

    await inventory.update_entry(db, entry.id, oil.id, 12)
    assert (await crud.get_product(db, oil.id)).stock == 8


async def test_update_entry_to_other_product(db, stock):
    oil, filt, _ = stock
    entry = await inventory.record_entry(db, oil.id, 10)
    updated = await inventory.update_entry(db, entry.id, filt.id, 3)
    assert updated.product_description == "Filtro de óleo"
    assert (await crud.get_product(db, oil.id)).stock == 0
    assert (await crud.get_product(db, filt.id)).stock == 3


async def test_delete_entry_never_goes_negative(db, stock):
    oil, _, truck = stock
    entry = await inventory.record_entry(db, oil.id, 5)
    await inventory.record_exit(db, oil.id, 3, truck.id)
    await inventory.delete_entry(db, entry.id)
    assert (await crud.get_product(db, oil.id)).stock == 0
    assert await crud.list_stock_entries(db) == []


async def test_exit_issues_parts_to_vehicle(db, stock):
    oil, _, truck = stock
    await inventory.record_entry(db, oil.id, 10)
    record = await inventory.record_exit(db, oil.id, 6, truck.id, note="troca preventiva")
    assert (record.vehicle_plate, record.vehicle_model, record.category) == ("ABC-1234", "FH", "Lubrificantes")
    assert (await crud.get_product(db, oil.id)).stock == 4
    assert [e.id for e in await crud.list_stock_exits(db, vehicle_id=truck.id)] == [record.id]


async def test_exit_beyond_stock_is_rejected_untouched(db, stock):
    oil, _, truck = stock
    await inventory.record_entry(db, oil.id, 2)
    with pytest.raises(InsufficientStockError) as exc:
        await inventory.record_exit(db, oil.id, 3, truck.id)
    assert exc.value.available == 2
    assert (await crud.get_product(db, oil.id)).stock == 2
    assert await crud.list_stock_exits(db) == []


async def test_exit_requires_registered_vehicle(db, stock):
    oil, _, _ = stock
    await inventory.record_entry(db, oil.id, 2)
    with pytest.raises(RecordNotFoundError):
        await inventory.record_exit(db, oil.id, 1, "missing")


async def test_update_exit_same_product(db, stock):
    oil, _, truck = stock
    await inventory.record_entry(db, oil.id, 10)
    record = await inventory.record_exit(db, oil.id, 4, truck.id)

    await inventory.update_exit(db, record.id, oil.id, 7, truck.id)
    assert (await crud.get_product(db, oil.id)).stock == 3

    await inventory.update_exit(db, record.id, oil.id, 2, truck.id)
    assert (await crud.get_product(db, oil.id)).stock == 8

    with pytest.raises(InsufficientStockError):
        await inventory.update_exit(db, record.id, oil.id, 11, truck.id)
    assert (await crud.get_product(db, oil.id)).stock == 8


async def test_update_exit_other_product_returns_old_parts(db, stock):
    oil, filt, truck = stock
    await inventory.record_entry(db, oil.id, 10)
    await inventory.record_entry(db, filt.id, 5)
    record = await inventory.record_exit(db, oil.id, 4, truck.id)

    updated = await inventory.update_exit(db, record.id, filt.id, 2, truck.id)
    assert updated.product_description == "Filtro de óleo"
    assert (await crud.get_product(db, oil.id)).stock == 10
    assert (await crud.get_product(db, filt.id)).stock == 3


async def test_delete_exit_returns_parts(db, stock):
    oil, _, truck = stock
    await inventory.record_entry(db, oil.id, 10)
    record = await inventory.record_exit(db, oil.id, 4, truck.id)
    await inventory.delete_exit(db, record.id)
    assert (await crud.get_product(db, oil.id)).stock == 10


async def test_reset_stock_counts_changed_products(db, stock):
    oil, filt, _ = stock
    await inventory.record_entry(db, oil.id, 10)
    assert await inventory.reset_stock(db) == 1
    db.expire_all()
    assert [p.stock for p in await crud.list_products(db)] == [0, 0]
    assert len(await crud.list_stock_entries(db)) == 1
