"""Planning board API: per-mechanic queues, drag-and-drop reorder and reassignment."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fleetshop.dependencies import get_planning_session, require_permission
from fleetshop.schemas import (
    MechanicMoveRequest,
    MechanicQueueRead,
    NotificationRead,
    PlanningActionResponse,
    PlanningBoardRead,
    ReassignRequest,
    ReorderRequest,
)
from fleetshop.services.notifications import Notification
from fleetshop.services.planning import PlanningSession

router = APIRouter(prefix="/api/planning", tags=["planning"])

_can_edit = require_permission("manutencoes", "editar", "planejamento")


def _board(session: PlanningSession) -> PlanningBoardRead:
    return PlanningBoardRead(
        mechanics=[MechanicQueueRead.model_validate(q) for q in session.ordered_mechanics()],
        mechanic_order=list(session.mechanic_order),
    )


def _response(session: PlanningSession, notification: Notification | None) -> PlanningActionResponse:
    return PlanningActionResponse(
        notification=NotificationRead.model_validate(notification) if notification else None,
        board=_board(session),
    )


@router.get("", response_model=PlanningActionResponse)
async def get_board(session: PlanningSession = Depends(get_planning_session)):
    notification = None
    if not session.loaded:
        notification = await session.load()
    return _response(session, notification)


@router.post("/reload", response_model=PlanningActionResponse)
async def reload_board(session: PlanningSession = Depends(get_planning_session)):
    return _response(session, await session.reload())


@router.post("/reorder", response_model=PlanningActionResponse)
async def reorder(
    body: ReorderRequest,
    auth=Depends(_can_edit),
    session: PlanningSession = Depends(get_planning_session),
):
    notification = await session.reorder(body.mechanic_id, body.order_id, body.over_order_id)
    return _response(session, notification)


@router.post("/reassign", response_model=PlanningActionResponse)
async def reassign(
    body: ReassignRequest,
    auth=Depends(_can_edit),
    session: PlanningSession = Depends(get_planning_session),
):
    notification = await session.reassign(body.order_id, body.to_mechanic_id)
    return _response(session, notification)


@router.post("/mechanics/order", response_model=PlanningActionResponse)
async def move_mechanic(
    body: MechanicMoveRequest,
    session: PlanningSession = Depends(get_planning_session),
):
    return _response(session, session.move_mechanic(body.mechanic_id, body.over_id))
