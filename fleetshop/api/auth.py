"""Auth API: login, logout, current user, route checks."""

from __future__ import annotations

from pydantic import BaseModel
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.config import get_settings
from fleetshop.db.engine import get_db
from fleetshop.dependencies import require_auth, get_planning_sessions
from fleetshop.services.auth import (
    AuthContext, SESSION_COOKIE_NAME,
    authenticate, create_session, remove_session,
)
from fleetshop.services.permissions import allowed_work_order_tabs, check_route
from fleetshop.services.planning import PlanningSessions

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    login: str
    password: str


class RouteCheckRequest(BaseModel):
    path: str


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, body.login, body.password)
    if not user:
        return JSONResponse(status_code=401, content={"detail": "Invalid credentials"})

    ip = request.client.host if request.client else ""
    token = await create_session(user, db, ip_address=ip)

    response = JSONResponse(content={"ok": True, "user_id": user.id, "role": user.role})
    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        httponly=True, samesite="lax",
        max_age=86400 * get_settings().auth.session_max_age_days,
    )
    return response


@router.post("/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    sessions: PlanningSessions = Depends(get_planning_sessions),
):
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        session_id = await remove_session(token, db)
        if session_id:
            await sessions.discard(session_id)
    response = JSONResponse(content={"ok": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/me")
async def me(auth: AuthContext = Depends(require_auth)):
    return {
        "user_id": auth.user_id,
        "display_name": auth.display_name,
        "role": auth.role,
        "permissions": auth.permissions,
        "work_order_tabs": allowed_work_order_tabs(auth.permissions),
    }


@router.post("/check-route")
async def check_route_access(
    body: RouteCheckRequest,
    auth: AuthContext = Depends(require_auth),
):
    return {"path": body.path, "allowed": check_route(auth.role, auth.permissions, body.path)}
