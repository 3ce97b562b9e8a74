"""Stock movements: entries add to a product's stock, exits issue parts to vehicles.

Every movement and the stock change it causes are committed together. Checks
run before anything is touched, so a rejected movement leaves stock as it was.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.db import crud
from fleetshop.errors import InsufficientStockError, InventoryError, RecordNotFoundError
from fleetshop.models import Product, StockEntry, StockExit, Vehicle

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _product(db: AsyncSession, product_id: str) -> Product:
    product = await crud.get_product(db, product_id)
    if product is None:
        raise RecordNotFoundError("Product", product_id)
    return product


async def _vehicle(db: AsyncSession, vehicle_id: str) -> Vehicle:
    vehicle = await crud.get_vehicle(db, vehicle_id)
    if vehicle is None:
        raise RecordNotFoundError("Vehicle", vehicle_id)
    return vehicle


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise InventoryError(f"Quantity must be positive, got {quantity}")


def _adjust(product: Product, delta: int) -> None:
    product.stock += delta
    product.updated_at = _now()


def _withdraw(product: Product, quantity: int) -> None:
    """Entries being undone never drive stock below zero."""
    product.stock = max(0, product.stock - quantity)
    product.updated_at = _now()


# ── Entries ──────────────────────────────────────────────

async def record_entry(
    db: AsyncSession,
    product_id: str,
    quantity: int,
    responsible_id: str = "",
    responsible_name: str = "",
    entered_at: datetime | None = None,
) -> StockEntry:
    _check_quantity(quantity)
    product = await _product(db, product_id)
    entry = StockEntry(
        product_id=product.id,
        product_description=product.description,
        quantity=quantity,
        responsible_id=responsible_id,
        responsible_name=responsible_name,
        entered_at=entered_at or _now(),
    )
    _adjust(product, quantity)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    logger.info("Stock entry: %d x %s (now %d)", quantity, product.description, product.stock)
    return entry


async def update_entry(
    db: AsyncSession,
    entry_id: str,
    product_id: str,
    quantity: int,
    responsible_id: str = "",
    responsible_name: str = "",
) -> StockEntry:
    """Move stock by the difference, or between products when the product changed. Date is kept."""
    _check_quantity(quantity)
    entry = await crud.get_stock_entry(db, entry_id)
    if entry is None:
        raise RecordNotFoundError("Stock entry", entry_id)
    product = await _product(db, product_id)
    if product.id == entry.product_id:
        _withdraw(product, entry.quantity - quantity)
    else:
        old_product = await crud.get_product(db, entry.product_id)
        if old_product is not None:
            _withdraw(old_product, entry.quantity)
        _adjust(product, quantity)
    entry.product_id = product.id
    entry.product_description = product.description
    entry.quantity = quantity
    entry.responsible_id = responsible_id
    entry.responsible_name = responsible_name
    await db.commit()
    await db.refresh(entry)
    return entry


async def delete_entry(db: AsyncSession, entry_id: str) -> None:
    entry = await crud.get_stock_entry(db, entry_id)
    if entry is None:
        raise RecordNotFoundError("Stock entry", entry_id)
    product = await crud.get_product(db, entry.product_id)
    if product is not None:
        _withdraw(product, entry.quantity)
    await db.delete(entry)
    await db.commit()


# ── Exits ────────────────────────────────────────────────

async def record_exit(
    db: AsyncSession,
    product_id: str,
    quantity: int,
    vehicle_id: str,
    responsible_id: str = "",
    responsible_name: str = "",
    note: str = "",
    work_order_id: str | None = None,
    unit_value: float | None = None,
    exited_at: datetime | None = None,
) -> StockExit:
    _check_quantity(quantity)
    product = await _product(db, product_id)
    vehicle = await _vehicle(db, vehicle_id)
    if product.stock < quantity:
        raise InsufficientStockError(product.description, product.stock, quantity)

    record = StockExit(
        product_id=product.id,
        product_description=product.description,
        category=product.category,
        quantity=quantity,
        unit_value=unit_value,
        responsible_id=responsible_id,
        responsible_name=responsible_name,
        vehicle_id=vehicle.id,
        vehicle_plate=vehicle.plate,
        vehicle_model=vehicle.model,
        work_order_id=work_order_id,
        note=note,
        exited_at=exited_at or _now(),
    )
    _adjust(product, -quantity)
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info(
        "Stock exit: %d x %s to %s (now %d)",
        quantity, product.description, vehicle.plate, product.stock,
    )
    return record


async def update_exit(
    db: AsyncSession,
    exit_id: str,
    product_id: str,
    quantity: int,
    vehicle_id: str,
    responsible_id: str = "",
    responsible_name: str = "",
    note: str = "",
) -> StockExit:
    """Re-issue an exit. The same product moves by the difference only."""
    _check_quantity(quantity)
    record = await crud.get_stock_exit(db, exit_id)
    if record is None:
        raise RecordNotFoundError("Stock exit", exit_id)
    product = await _product(db, product_id)
    vehicle = await _vehicle(db, vehicle_id)

    if product.id == record.product_id:
        diff = quantity - record.quantity
        if diff > 0 and product.stock < diff:
            raise InsufficientStockError(product.description, product.stock, diff)
        _adjust(product, -diff)
    else:
        if product.stock < quantity:
            raise InsufficientStockError(product.description, product.stock, quantity)
        old_product = await crud.get_product(db, record.product_id)
        if old_product is not None:
            _adjust(old_product, record.quantity)
        _adjust(product, -quantity)

    record.product_id = product.id
    record.product_description = product.description
    record.category = product.category
    record.quantity = quantity
    record.vehicle_id = vehicle.id
    record.vehicle_plate = vehicle.plate
    record.vehicle_model = vehicle.model
    record.responsible_id = responsible_id
    record.responsible_name = responsible_name
    record.note = note
    record.updated_at = _now()
    await db.commit()
    await db.refresh(record)
    return record


async def delete_exit(db: AsyncSession, exit_id: str) -> None:
    """Remove an exit and return its parts to stock."""
    record = await crud.get_stock_exit(db, exit_id)
    if record is None:
        raise RecordNotFoundError("Stock exit", exit_id)
    product = await crud.get_product(db, record.product_id)
    if product is not None:
        _adjust(product, record.quantity)
    await db.delete(record)
    await db.commit()


async def reset_stock(db: AsyncSession) -> int:
    """Zero every product with positive stock; returns how many were changed."""
    result = await db.execute(
        update(Product)
        .where(Product.stock > 0)
        .values(stock=0, updated_at=_now())
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    logger.warning("Stock reset: %d products zeroed", result.rowcount)
    return result.rowcount
