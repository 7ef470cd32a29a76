# app/common/websocket.py

import logging
from typing import Any, Dict, List

from fastapi import WebSocket

from app.common.events import FriendshipEvent

log = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        # key=user_id, value=that user's open sockets (one per tab/device)
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket):
        # accept() is done by the endpoint
        self.active_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket):
        sockets = self.active_connections.get(user_id)
        if not sockets:
            return
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            del self.active_connections[user_id]

    def get_online_ids(self) -> List[str]:
        return list(self.active_connections.keys())

    async def send_personal_json(self, payload: Dict[str, Any], user_id: str):
        for websocket in list(self.active_connections.get(user_id, ())):
            try:
                await websocket.send_json(payload)
            except Exception:
                log.warning("Dropping realtime connection for %s", user_id)
                self.disconnect(user_id, websocket)

    async def handle_event(self, event: FriendshipEvent):
        """Tell both parties which views went stale."""
        payload = {
            "type": "invalidate",
            "event": event.type,
            "friendship_id": event.friendship_id,
            "paths": list(event.paths),
        }
        for user_id in event.user_ids:
            await self.send_personal_json(payload, user_id)


manager = ConnectionManager()
