"""Work-order store used by the workflow and planning services.

Every method opens its own session, so calls can be batched with
``asyncio.gather``. Write methods report failure as ``False`` / ``None``
instead of raising.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetshop.db import crud
from fleetshop.models import WorkOrder
from fleetshop.services.planning import MechanicQueue, PlannedOrder, mechanic_name_from_label
from fleetshop.services.status_machine import HistoryEntry, PlannedTransition

logger = logging.getLogger(__name__)


def to_planned_order(wo: WorkOrder) -> PlannedOrder:
    return PlannedOrder(
        id=wo.id,
        number=wo.number,
        status=wo.status,
        mechanic_id=wo.mechanic_id or "",
        mechanic_info=wo.mechanic_info,
        vehicle_info=wo.vehicle_info,
        priority=wo.priority,
        execution_order=wo.execution_order,
    )


class WorkOrderStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ── Reads ────────────────────────────────────────────

    async def get_work_order(self, order_id: str) -> WorkOrder | None:
        async with self._session_factory() as db:
            return await crud.get_work_order(db, order_id)

    async def list_work_orders(self, statuses: list[str] | None = None) -> list[WorkOrder]:
        async with self._session_factory() as db:
            return await crud.list_work_orders(db, statuses)

    async def search_work_orders(self, text: str) -> list[WorkOrder]:
        async with self._session_factory() as db:
            return await crud.search_work_orders(db, text)

    async def list_work_orders_grouped_by_mechanic(self) -> list[MechanicQueue]:
        """One queue per assignee, closed orders included, sorted by mechanic name."""
        async with self._session_factory() as db:
            orders = await crud.list_assigned_work_orders(db)

        grouped: dict[str, list[PlannedOrder]] = {}
        names: dict[str, str] = {}
        for wo in orders:
            if not wo.mechanic_id:
                logger.warning("Work order %s has no assignee; skipped", wo.number)
                continue
            grouped.setdefault(wo.mechanic_id, []).append(to_planned_order(wo))
            names.setdefault(wo.mechanic_id, mechanic_name_from_label(wo.mechanic_info))

        queues = [
            MechanicQueue(id=mid, name=names[mid], orders=tuple(items))
            for mid, items in grouped.items()
        ]
        return sorted(queues, key=lambda q: q.name.lower())

    # ── Writes ───────────────────────────────────────────

    async def create_work_order(self, **fields) -> WorkOrder:
        async with self._session_factory() as db:
            return await crud.create_work_order(db, **fields)

    async def update_work_order_execution_order(self, order_id: str, rank: int) -> bool:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    logger.warning("Execution order update: %s not found", order_id)
                    return False
                await crud.set_execution_order(db, wo, rank)
                return True
        except SQLAlchemyError:
            logger.exception("Failed to set execution order of %s to %d", order_id, rank)
            return False

    async def reassign_work_order_mechanic(
        self, order_id: str, mechanic_id: str, mechanic_label: str,
    ) -> bool:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    logger.warning("Reassignment: %s not found", order_id)
                    return False
                await crud.reassign_mechanic(db, wo, mechanic_id, mechanic_label)
                return True
        except SQLAlchemyError:
            logger.exception("Failed to reassign %s to %s", order_id, mechanic_id)
            return False

    async def update_work_order_status(
        self,
        order_id: str,
        new_status: str,
        note: str | None = None,
        actor_id: str | None = None,
        actor_name: str | None = None,
    ) -> WorkOrder | None:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    return None
                if wo.status == new_status:
                    return wo
                entry = HistoryEntry(
                    event_type="Mudança de Status",
                    from_label=wo.status,
                    to_label=new_status,
                    status=new_status,
                    note=note or f'Status alterado de "{wo.status}" para "{new_status}"',
                    actor_id=actor_id or "",
                    actor_name=actor_name or "",
                )
                return await crud.record_status_change(db, wo, new_status, entry)
        except SQLAlchemyError:
            logger.exception("Failed to update status of %s", order_id)
            return None

    async def apply_transition(self, order_id: str, planned: PlannedTransition) -> WorkOrder | None:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    return None
                return await crud.apply_transition(db, wo, planned)
        except SQLAlchemyError:
            logger.exception("Failed to apply %s to %s", planned.kind.value, order_id)
            return None

    async def append_work_order_observation(
        self,
        order_id: str,
        text: str,
        department_label: str,
        actor_id: str = "",
        actor_name: str = "",
    ) -> bool:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    return False
                await crud.add_observation(db, wo, text, department_label, actor_id, actor_name)
                return True
        except SQLAlchemyError:
            logger.exception("Failed to add observation to %s", order_id)
            return False

    async def delete_work_order(self, order_id: str) -> bool:
        try:
            async with self._session_factory() as db:
                wo = await crud.get_work_order(db, order_id)
                if wo is None:
                    return False
                await crud.delete_work_order(db, wo)
                return True
        except SQLAlchemyError:
            logger.exception("Failed to delete %s", order_id)
            return False
