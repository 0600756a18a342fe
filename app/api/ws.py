"""
Keep-alive WebSocket.

Clients connect to /ws?token=<Firebase ID token>. The server answers "ping" with "pong" and
sends {"type": "keepalive"} after ws_keepalive_seconds of client silence. Nothing else is pushed.
"""
import asyncio
import logging
from typing import Dict, Optional, Set
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from app.core.config import settings
from app.core.errors import AppError
from app.services import auth

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Open sockets per user uid."""

    def __init__(self):
        self._connections: Dict[str, Set[WebSocket]] = {}

    def add(self, uid: str, websocket: WebSocket) -> None:
        self._connections.setdefault(uid, set()).add(websocket)

    def remove(self, uid: str, websocket: WebSocket) -> None:
        sockets = self._connections.get(uid)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._connections[uid]

    def count(self, uid: Optional[str] = None) -> int:
        if uid is not None:
            return len(self._connections.get(uid, ()))
        return sum(len(s) for s in self._connections.values())


manager = ConnectionManager()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    try:
        principal = await asyncio.to_thread(auth.verify_token, token)
    except AppError as e:
        logger.info(f"WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    manager.add(principal.uid, websocket)
    logger.info(f"WebSocket connected for {principal.uid} ({manager.count()} open)")
    try:
        while True:
            try:
                message = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=settings.ws_keepalive_seconds,
                )
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "keepalive"})
                continue
            if message.strip().lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.remove(principal.uid, websocket)
        logger.info(f"WebSocket closed for {principal.uid}")
