"""Runs operator actions on work orders and reloads the affected queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from fleetshop.db.store import WorkOrderStore
from fleetshop.errors import WorkOrderNotFoundError
from fleetshop.models import WorkOrder
from fleetshop.services.notifications import Notification
from fleetshop.services.status_machine import (
    DEPARTMENT_STATUSES,
    ROUTABLE_DEPARTMENTS,
    Department,
    TransitionKind,
    WorkOrderStatus,
    filter_queue,
    plan_transition,
)

logger = logging.getLogger(__name__)


def external_service_note(supplier: str, service: str, note: str = "") -> str:
    lines = [f"Fornecedor: {supplier}", f"Serviço solicitado: {service}"]
    if note:
        lines.append(note)
    return "\n".join(lines)


@dataclass
class ActionResult:
    notification: Notification
    order: WorkOrder | None = None
    queue: list[WorkOrder] = field(default_factory=list)


class WorkflowService:
    def __init__(self, store: WorkOrderStore):
        self.store = store

    async def list_queue(self, department: Department) -> list[WorkOrder]:
        statuses = [s.value for s in DEPARTMENT_STATUSES[department]]
        if department in ROUTABLE_DEPARTMENTS:
            statuses.append(WorkOrderStatus.EXTERNAL_SERVICE.value)
        orders = await self.store.list_work_orders(statuses)
        return filter_queue(orders, department)

    async def _get(self, order_id: str) -> WorkOrder:
        wo = await self.store.get_work_order(order_id)
        if wo is None:
            raise WorkOrderNotFoundError(order_id)
        return wo

    async def _reload(self, department: Department, result: ActionResult) -> ActionResult:
        try:
            result.queue = await self.list_queue(department)
        except SQLAlchemyError:
            logger.exception("Reloading the %s queue failed", department.value)
            result.notification = Notification.error(
                "Could not reload the queue",
                "The change was saved but the list could not be refreshed.",
            )
        return result

    async def transition(
        self,
        order_id: str,
        kind: TransitionKind,
        target: str | None = None,
        note: str = "",
        actor_id: str = "",
        actor_name: str = "",
        supplier: str = "",
        service: str = "",
    ) -> ActionResult:
        """Apply one operator action.

        Raises WorkOrderNotFoundError and IllegalTransitionError before anything
        is written. A store failure becomes an error notification.
        """
        wo = await self._get(order_id)
        if kind is TransitionKind.SEND_TO_EXTERNAL_SERVICE:
            note = external_service_note(supplier, service, note)
        planned = plan_transition(
            kind, wo.status, wo.events, target,
            note=note, actor_id=actor_id, actor_name=actor_name,
        )

        updated = await self.store.apply_transition(order_id, planned)
        if updated is None:
            result = ActionResult(Notification.error(
                "Could not update work order", f"Order {wo.number} was not changed. Try again.",
            ))
            return await self._reload(planned.source, result)

        logger.info(
            "%s: %s -> %s (%s)", updated.number, planned.from_status, planned.to_status.value, kind.value,
        )
        result = ActionResult(
            Notification.success(
                "Work order updated",
                f"Order {updated.number} is now {planned.to_status.value}",
            ),
            order=updated,
        )
        return await self._reload(planned.source, result)

    async def add_observation(
        self,
        order_id: str,
        text: str,
        department: Department,
        actor_id: str = "",
        actor_name: str = "",
    ) -> ActionResult:
        await self._get(order_id)
        if not text.strip():
            return ActionResult(Notification.error("Observation is empty", "Write a note before saving."))

        ok = await self.store.append_work_order_observation(
            order_id, text.strip(), department.value, actor_id, actor_name,
        )
        if not ok:
            return ActionResult(Notification.error("Could not add observation", "Try again."))
        result = ActionResult(
            Notification.success("Observation added", f"Note recorded for {department.value}"),
            order=await self.store.get_work_order(order_id),
        )
        return await self._reload(department, result)

    async def delete(self, order_id: str) -> ActionResult:
        wo = await self._get(order_id)
        if not await self.store.delete_work_order(order_id):
            return ActionResult(Notification.error("Could not delete work order", "Try again."))
        logger.info("Deleted work order %s", wo.number)
        return ActionResult(Notification.success("Work order deleted", f"Order {wo.number} was removed"))
