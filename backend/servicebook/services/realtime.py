# backend/servicebook/services/realtime.py
"""
In-process fan-out of notification events to connected websockets.

Every message is a JSON object {"event": <name>, "data": {...}}. A user may
have several sockets open (tabs/devices); admins additionally receive the
admin-wide events.
"""
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionHub:
    def __init__(self):
        self._by_user: dict[int, list[WebSocket]] = defaultdict(list)
        self._admins: set[int] = set()

    async def connect(self, ws: WebSocket, user_id: int, is_admin: bool = False) -> None:
        await ws.accept()
        self._by_user[user_id].append(ws)
        if is_admin:
            self._admins.add(user_id)
        logger.info("Websocket connected for user %s (%d open)", user_id, len(self._by_user[user_id]))

    def disconnect(self, ws: WebSocket, user_id: int) -> None:
        conns = self._by_user.get(user_id, [])
        if ws in conns:
            conns.remove(ws)
        if not conns:
            self._by_user.pop(user_id, None)
            self._admins.discard(user_id)
        logger.info("Websocket disconnected for user %s", user_id)

    def is_online(self, user_id: int) -> bool:
        return bool(self._by_user.get(user_id))

    async def send_to_user(self, user_id: int, event: str, data: dict) -> int:
        """Returns the number of sockets that received the event."""
        delivered = 0
        for ws in list(self._by_user.get(user_id, [])):
            try:
                await ws.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.warning("Dropping dead websocket for user %s: %s", user_id, e)
                self.disconnect(ws, user_id)
        return delivered

    async def send_to_admins(self, event: str, data: dict) -> int:
        delivered = 0
        for admin_id in list(self._admins):
            delivered += await self.send_to_user(admin_id, event, data)
        return delivered


hub = ConnectionHub()
