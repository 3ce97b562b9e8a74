"""CRUD operations for work orders, vehicles, inventory, oil changes and users."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.models import (
    WorkOrder, WorkOrderEvent, OilChange, User,
    Vehicle, Product, StockEntry, StockExit,
)
from fleetshop.models.oil_change import OIL_CHANGE
from fleetshop.services.status_machine import (
    ROUTABLE_DEPARTMENTS,
    Department,
    HistoryEntry,
    PlannedTransition,
    department_of,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Work orders ──────────────────────────────────────────

def format_order_number(existing_count: int, year: int) -> str:
    """OS-<2-digit year><4-digit sequence>, e.g. OS-250042."""
    return f"OS-{str(year)[-2:]}{existing_count + 1:04d}"


def _intake_department(status: str) -> Department:
    """Queue a new order lands in; external and closed orders start at the workshop."""
    dept = department_of(status)
    return dept if dept in ROUTABLE_DEPARTMENTS else Department.WORKSHOP


def _add_event(wo: WorkOrder, entry: HistoryEntry) -> WorkOrderEvent:
    """Append one history row; rows are never edited afterwards."""
    event = WorkOrderEvent(
        seq=len(wo.events) + 1,
        event_type=entry.event_type,
        from_label=entry.from_label,
        to_label=entry.to_label,
        status=entry.status,
        note=entry.note,
        department=entry.department,
        actor_id=entry.actor_id,
        actor_name=entry.actor_name,
    )
    wo.events.append(event)
    return event


async def count_work_orders(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(WorkOrder))
    return result.scalar_one()


async def _next_order_number(db: AsyncSession) -> str:
    number = format_order_number(await count_work_orders(db), _now().year)
    # Deleted orders shrink the count; step past labels still in use.
    while (await db.execute(select(WorkOrder.id).where(WorkOrder.number == number))).first():
        prefix, seq = number[:5], int(number[5:])
        number = f"{prefix}{seq + 1:04d}"
    return number


async def create_work_order(
    db: AsyncSession,
    status: str,
    vehicle_id: str = "",
    vehicle_info: str = "",
    requester_id: str = "",
    requester_info: str = "",
    mechanic_id: str | None = None,
    mechanic_info: str = "",
    priority: str = "Média",
    current_km: str = "",
    reported_defects: str = "",
    parts_services: str = "",
    actor_id: str = "",
    actor_name: str = "",
) -> WorkOrder:
    if vehicle_id and not vehicle_info:
        vehicle = await get_vehicle(db, vehicle_id)
        if vehicle is not None:
            vehicle_info = vehicle.label
            current_km = current_km or str(vehicle.current_km)
    wo = WorkOrder(
        number=await _next_order_number(db),
        status=status,
        vehicle_id=vehicle_id,
        vehicle_info=vehicle_info,
        requester_id=requester_id,
        requester_info=requester_info,
        mechanic_id=mechanic_id,
        mechanic_info=mechanic_info,
        priority=priority,
        current_km=current_km,
        reported_defects=reported_defects,
        parts_services=parts_services,
    )
    _add_event(wo, HistoryEntry(
        event_type="Criação",
        from_label="Sistema",
        to_label=_intake_department(status).value,
        status=status,
        note="Ordem de serviço criada",
        actor_id=actor_id,
        actor_name=actor_name,
    ))
    db.add(wo)
    await db.commit()
    return wo


async def get_work_order(db: AsyncSession, wo_id: str) -> WorkOrder | None:
    return await db.get(WorkOrder, wo_id)


async def list_work_orders(db: AsyncSession, statuses: list[str] | None = None) -> list[WorkOrder]:
    query = select(WorkOrder).order_by(WorkOrder.created_at.desc())
    if statuses is not None:
        query = query.where(WorkOrder.status.in_(statuses))
    result = await db.execute(query)
    return list(result.scalars().all())


async def search_work_orders(db: AsyncSession, text: str) -> list[WorkOrder]:
    if not text:
        return await list_work_orders(db)
    pattern = f"%{text.lower()}%"
    result = await db.execute(
        select(WorkOrder)
        .where(or_(
            func.lower(WorkOrder.number).like(pattern),
            func.lower(WorkOrder.vehicle_info).like(pattern),
            func.lower(WorkOrder.requester_info).like(pattern),
            func.lower(WorkOrder.mechanic_info).like(pattern),
            func.lower(WorkOrder.status).like(pattern),
        ))
        .order_by(WorkOrder.created_at.desc())
    )
    return list(result.scalars().all())


async def list_assigned_work_orders(db: AsyncSession) -> list[WorkOrder]:
    """Every order with an assignee, closed ones included."""
    result = await db.execute(
        select(WorkOrder)
        .where(WorkOrder.mechanic_id.is_not(None), WorkOrder.mechanic_id != "")
        .order_by(WorkOrder.execution_order, WorkOrder.number)
    )
    return list(result.scalars().all())


async def apply_transition(db: AsyncSession, wo: WorkOrder, planned: PlannedTransition) -> WorkOrder:
    """Status change, note field and history row in one commit."""
    wo.status = planned.to_status.value
    if planned.note_field:
        setattr(wo, planned.note_field, planned.note)
    wo.updated_at = _now()
    _add_event(wo, planned.entry)
    await db.commit()
    return wo


async def record_status_change(
    db: AsyncSession, wo: WorkOrder, status: str, entry: HistoryEntry,
) -> WorkOrder:
    wo.status = status
    wo.updated_at = _now()
    _add_event(wo, entry)
    await db.commit()
    return wo


async def set_execution_order(db: AsyncSession, wo: WorkOrder, rank: int | None) -> WorkOrder:
    wo.execution_order = rank
    wo.updated_at = _now()
    await db.commit()
    return wo


async def reassign_mechanic(
    db: AsyncSession, wo: WorkOrder, mechanic_id: str, mechanic_info: str,
) -> WorkOrder:
    wo.mechanic_id = mechanic_id
    wo.mechanic_info = mechanic_info
    # Ranked again at the end of the new queue on the next planning load.
    wo.execution_order = None
    wo.updated_at = _now()
    _add_event(wo, HistoryEntry(
        event_type="Alteração de Mecânico",
        note=f"Mecânico alterado para {mechanic_info}",
    ))
    await db.commit()
    return wo


async def add_observation(
    db: AsyncSession, wo: WorkOrder, text: str, department: str,
    actor_id: str = "", actor_name: str = "",
) -> WorkOrder:
    _add_event(wo, HistoryEntry(
        event_type="Observação",
        status=wo.status,
        note=text,
        department=department,
        actor_id=actor_id,
        actor_name=actor_name,
    ))
    wo.updated_at = _now()
    await db.commit()
    return wo


async def delete_work_order(db: AsyncSession, wo: WorkOrder) -> None:
    await db.delete(wo)
    await db.commit()


# ── Vehicles ─────────────────────────────────────────────

async def create_vehicle(db: AsyncSession, plate: str, **fields) -> Vehicle:
    vehicle = Vehicle(plate=plate.upper(), **fields)
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


async def get_vehicle(db: AsyncSession, vehicle_id: str) -> Vehicle | None:
    return await db.get(Vehicle, vehicle_id)


async def get_vehicle_by_plate(db: AsyncSession, plate: str) -> Vehicle | None:
    result = await db.execute(select(Vehicle).where(Vehicle.plate == plate.upper()))
    return result.scalars().first()


async def list_vehicles(db: AsyncSession, text: str = "") -> list[Vehicle]:
    query = select(Vehicle).order_by(Vehicle.plate)
    if text:
        pattern = f"%{text.lower()}%"
        query = query.where(or_(
            func.lower(Vehicle.plate).like(pattern),
            func.lower(Vehicle.model).like(pattern),
            func.lower(Vehicle.brand).like(pattern),
            func.lower(Vehicle.department).like(pattern),
        ))
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_vehicle(db: AsyncSession, vehicle: Vehicle, **kwargs) -> Vehicle:
    for k, v in kwargs.items():
        if v is not None:
            setattr(vehicle, k, v.upper() if k == "plate" else v)
    vehicle.updated_at = _now()
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


async def delete_vehicle(db: AsyncSession, vehicle: Vehicle) -> None:
    await db.delete(vehicle)
    await db.commit()


# ── Products and stock movements ─────────────────────────

async def create_product(db: AsyncSession, description: str, **fields) -> Product:
    product = Product(description=description, **fields)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    return product


async def get_product(db: AsyncSession, product_id: str) -> Product | None:
    return await db.get(Product, product_id)


async def list_products(db: AsyncSession, text: str = "") -> list[Product]:
    query = select(Product).order_by(Product.description)
    if text:
        pattern = f"%{text.lower()}%"
        query = query.where(or_(
            func.lower(Product.description).like(pattern),
            func.lower(Product.category).like(pattern),
            func.lower(Product.unit).like(pattern),
            func.lower(Product.location).like(pattern),
        ))
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_product(db: AsyncSession, product: Product, **kwargs) -> Product:
    """Catalogue fields only; stock moves through entries and exits."""
    for k, v in kwargs.items():
        if v is not None:
            setattr(product, k, v)
    product.updated_at = _now()
    await db.commit()
    await db.refresh(product)
    return product


async def delete_product(db: AsyncSession, product: Product) -> None:
    await db.delete(product)
    await db.commit()


async def get_stock_entry(db: AsyncSession, entry_id: str) -> StockEntry | None:
    return await db.get(StockEntry, entry_id)


async def list_stock_entries(db: AsyncSession, product_id: str | None = None) -> list[StockEntry]:
    query = select(StockEntry).order_by(StockEntry.entered_at.desc(), StockEntry.id.desc())
    if product_id is not None:
        query = query.where(StockEntry.product_id == product_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_stock_exit(db: AsyncSession, exit_id: str) -> StockExit | None:
    return await db.get(StockExit, exit_id)


async def list_stock_exits(
    db: AsyncSession, product_id: str | None = None, vehicle_id: str | None = None,
) -> list[StockExit]:
    query = select(StockExit).order_by(StockExit.exited_at.desc(), StockExit.id.desc())
    if product_id is not None:
        query = query.where(StockExit.product_id == product_id)
    if vehicle_id is not None:
        query = query.where(StockExit.vehicle_id == vehicle_id)
    result = await db.execute(query)
    return list(result.scalars().all())


# ── Oil changes ──────────────────────────────────────────

async def list_oil_changes(db: AsyncSession, vehicle_id: str) -> list[OilChange]:
    result = await db.execute(
        select(OilChange)
        .where(OilChange.vehicle_id == vehicle_id)
        .order_by(OilChange.changed_at.desc(), OilChange.id.desc())
    )
    return list(result.scalars().all())


async def get_last_oil_record(
    db: AsyncSession, vehicle_id: str, service_type: str | None = None,
) -> OilChange | None:
    query = select(OilChange).where(OilChange.vehicle_id == vehicle_id)
    if service_type is not None:
        query = query.where(OilChange.service_type == service_type)
    result = await db.execute(
        query.order_by(OilChange.changed_at.desc(), OilChange.id.desc()).limit(1)
    )
    return result.scalars().first()


async def create_oil_change(
    db: AsyncSession,
    vehicle_id: str,
    previous_km: int,
    current_km: int,
    next_change_km: int,
    service_type: str = OIL_CHANGE,
    note: str = "",
    changed_at: datetime | None = None,
) -> OilChange:
    record = OilChange(
        vehicle_id=vehicle_id,
        previous_km=previous_km,
        current_km=current_km,
        next_change_km=next_change_km,
        service_type=service_type,
        note=note,
        changed_at=changed_at or _now(),
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


# ── Users ────────────────────────────────────────────────

async def create_user(
    db: AsyncSession,
    login: str,
    password_hash: str,
    display_name: str = "",
    role: str = "basico",
    custom_permissions: dict | None = None,
) -> User:
    user = User(
        login=login,
        password_hash=password_hash,
        display_name=display_name or login,
        role=role,
        custom_permissions=custom_permissions,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user_by_login(db: AsyncSession, login: str) -> User | None:
    result = await db.execute(select(User).where(User.login == login))
    return result.scalars().first()
