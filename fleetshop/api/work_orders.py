"""Work order API: department queues, transitions, observations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from fleetshop.db.store import WorkOrderStore
from fleetshop.dependencies import get_store, get_workflow, require_permission
from fleetshop.errors import IllegalTransitionError, WorkOrderNotFoundError
from fleetshop.schemas import (
    ActionResponse,
    NotificationRead,
    ObservationCreate,
    TransitionRequest,
    WorkOrderCreate,
    WorkOrderRead,
)
from fleetshop.services.auth import AuthContext
from fleetshop.services.permissions import allowed_work_order_tabs
from fleetshop.services.status_machine import TRANSITIONS, Department, available_transitions
from fleetshop.services.workflow import ActionResult, WorkflowService

router = APIRouter(prefix="/api/work-orders", tags=["work_orders"])


def _department(slug: str) -> Department:
    try:
        return Department.from_slug(slug)
    except ValueError:
        raise HTTPException(400, f"Unknown department tab: {slug}")


def _check_tab(auth: AuthContext, department: Department):
    if auth.role != "admin" and department.slug not in allowed_work_order_tabs(auth.permissions):
        raise HTTPException(403, f"No access to the {department.slug} tab")


def _response(result: ActionResult) -> ActionResponse:
    return ActionResponse(
        notification=NotificationRead.model_validate(result.notification),
        order=WorkOrderRead.from_order(result.order) if result.order else None,
        queue=[WorkOrderRead.from_order(wo) for wo in result.queue],
    )


@router.post("", status_code=201, response_model=WorkOrderRead)
async def create_work_order(
    body: WorkOrderCreate,
    auth: AuthContext = Depends(require_permission("ordemServico", "criar")),
    store: WorkOrderStore = Depends(get_store),
):
    fields = body.model_dump()
    fields["status"] = body.status.value
    wo = await store.create_work_order(
        **fields, actor_id=auth.user_id, actor_name=auth.display_name,
    )
    return WorkOrderRead.from_order(wo)


@router.get("", response_model=list[WorkOrderRead])
async def list_queue(
    tab: str = Query(default="oficina"),
    auth: AuthContext = Depends(require_permission("ordemServico", "visualizar")),
    workflow: WorkflowService = Depends(get_workflow),
):
    department = _department(tab)
    _check_tab(auth, department)
    return [WorkOrderRead.from_order(wo) for wo in await workflow.list_queue(department)]


@router.get("/search", response_model=list[WorkOrderRead])
async def search_work_orders(
    q: str = Query(default=""),
    auth: AuthContext = Depends(require_permission("ordemServico", "visualizar")),
    store: WorkOrderStore = Depends(get_store),
):
    return [WorkOrderRead.from_order(wo) for wo in await store.search_work_orders(q)]


@router.get("/{wo_id}", response_model=WorkOrderRead)
async def get_work_order(
    wo_id: str,
    auth: AuthContext = Depends(require_permission("ordemServico", "visualizar")),
    store: WorkOrderStore = Depends(get_store),
):
    wo = await store.get_work_order(wo_id)
    if not wo:
        raise HTTPException(404, "Work order not found")
    return WorkOrderRead.from_order(wo)


@router.delete("/{wo_id}", response_model=ActionResponse)
async def delete_work_order(
    wo_id: str,
    auth: AuthContext = Depends(require_permission("ordemServico", "excluir")),
    workflow: WorkflowService = Depends(get_workflow),
):
    try:
        return _response(await workflow.delete(wo_id))
    except WorkOrderNotFoundError:
        raise HTTPException(404, "Work order not found")


@router.get("/{wo_id}/transitions")
async def list_transitions(
    wo_id: str,
    auth: AuthContext = Depends(require_permission("ordemServico", "visualizar")),
    store: WorkOrderStore = Depends(get_store),
):
    wo = await store.get_work_order(wo_id)
    if not wo:
        raise HTTPException(404, "Work order not found")
    return [
        {
            "kind": kind.value,
            "targets": [s.value for s in TRANSITIONS[kind].targets if s.value != wo.status],
            "default_target": TRANSITIONS[kind].default_target.value if TRANSITIONS[kind].default_target else None,
        }
        for kind in available_transitions(wo.status, wo.events)
    ]


@router.post("/{wo_id}/transitions", response_model=ActionResponse)
async def transition_work_order(
    wo_id: str,
    body: TransitionRequest,
    auth: AuthContext = Depends(require_permission("ordemServico", "editar")),
    workflow: WorkflowService = Depends(get_workflow),
):
    try:
        result = await workflow.transition(
            wo_id, body.kind,
            target=body.target,
            note=body.note,
            actor_id=auth.user_id,
            actor_name=auth.display_name,
            supplier=body.supplier,
            service=body.service,
        )
    except WorkOrderNotFoundError:
        raise HTTPException(404, "Work order not found")
    except IllegalTransitionError as e:
        raise HTTPException(409, str(e))
    return _response(result)


@router.post("/{wo_id}/observations", response_model=ActionResponse)
async def add_observation(
    wo_id: str,
    body: ObservationCreate,
    auth: AuthContext = Depends(require_permission("ordemServico", "visualizar")),
    workflow: WorkflowService = Depends(get_workflow),
):
    department = _department(body.department)
    try:
        result = await workflow.add_observation(
            wo_id, body.text, department,
            actor_id=auth.user_id, actor_name=auth.display_name,
        )
    except WorkOrderNotFoundError:
        raise HTTPException(404, "Work order not found")
    return _response(result)
