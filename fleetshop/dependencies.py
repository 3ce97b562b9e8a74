"""FastAPI dependency providers for auth, permissions and shared services."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.config import get_settings
from fleetshop.db.engine import async_session_factory, get_db
from fleetshop.db.store import WorkOrderStore
from fleetshop.schemas import MechanicQueueRead, WSMessage
from fleetshop.services.auth import AuthContext, get_current_user
from fleetshop.services.permissions import can
from fleetshop.services.planning import PlanningBoard, PlanningSession, PlanningSessions
from fleetshop.services.workflow import WorkflowService
from fleetshop.services.ws_manager import ws_manager


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Require a valid authenticated session. Returns AuthContext."""
    return await get_current_user(request, db)


def require_permission(module: str, action: str, page: str | None = None):
    """Factory: returns a dependency that enforces a module action (and page)."""
    async def _check(auth: AuthContext = Depends(require_auth)) -> AuthContext:
        if auth.role != "admin" and not can(auth.permissions, module, action, page):
            raise HTTPException(403, "Insufficient permissions")
        return auth
    return _check


# ── Work-order store and planning sessions ───────────────

_store = WorkOrderStore(async_session_factory)


def get_store() -> WorkOrderStore:
    return _store


def get_workflow(store: WorkOrderStore = Depends(get_store)) -> WorkflowService:
    return WorkflowService(store)


def planning_channel(session_id: str) -> str:
    return f"planning:{session_id}"


def board_payload(board: PlanningBoard) -> dict:
    return {
        "mechanics": [MechanicQueueRead.model_validate(q).model_dump() for q in board.mechanics],
    }


def _planning_broadcaster(session_id: str):
    async def _on_reload(board: PlanningBoard) -> None:
        message = WSMessage(event="planning_reloaded", data=board_payload(board))
        await ws_manager.publish(planning_channel(session_id), message)
    return _on_reload


planning_sessions = PlanningSessions(
    _store,
    reconcile_delay=get_settings().planning.reconcile_delay_seconds,
    listener_factory=_planning_broadcaster,
)


def get_planning_sessions() -> PlanningSessions:
    return planning_sessions


async def get_planning_session(
    auth: AuthContext = Depends(require_permission("manutencoes", "visualizar", "planejamento")),
    sessions: PlanningSessions = Depends(get_planning_sessions),
) -> PlanningSession:
    """The caller's planning session, loaded on first use."""
    session = sessions.get(auth.session_id)
    if not session.loaded:
        await session.load()
    return session
