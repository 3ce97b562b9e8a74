from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fleetshop.db.engine import async_session_factory
from fleetshop.dependencies import planning_channel
from fleetshop.services.auth import SESSION_COOKIE_NAME, validate_session
from fleetshop.services.ws_manager import ws_manager

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/planning")
async def planning_updates(websocket: WebSocket):
    # Same session cookie as the HTTP API
    token = websocket.cookies.get(SESSION_COOKIE_NAME, "")
    found = None
    if token:
        async with async_session_factory() as db:
            found = await validate_session(token, db)
    if not found:
        await websocket.close(code=4001, reason="Unauthorized")
        return
    _, session = found

    channel = planning_channel(session.id)
    await ws_manager.connect(channel, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(channel, websocket)
