"""In-process WebSocket hub for "new notification" and "new chat message" pushes.

Delivery is best effort: no ordering, no replay, and a socket that fails a
send is dropped. Clients deduplicate by notification or message id.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Any, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification:new"
MESSAGE_EVENT = "message:new"


class NotificationHub:
    """Tracks open sockets per user id."""

    def __init__(self) -> None:
        self._connections: dict[uuid.UUID, set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.debug("Realtime socket opened for user %s", user_id)

    def disconnect(self, user_id: uuid.UUID, websocket: WebSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            self._connections.pop(user_id, None)

    def connection_count(self) -> int:
        return sum(len(sockets) for sockets in self._connections.values())

    def is_connected(self, user_id: uuid.UUID) -> bool:
        return bool(self._connections.get(user_id))

    async def send_to_user(self, user_id: uuid.UUID, message: dict[str, Any]) -> int:
        """Push *message* to every socket of *user_id*.  Returns sockets reached."""
        delivered = 0
        for websocket in list(self._connections.get(user_id, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception:
                logger.warning("Dropping realtime socket for user %s", user_id, exc_info=True)
                self.disconnect(user_id, websocket)
        return delivered

    async def deliver(
        self,
        deliveries: Iterable[tuple[list[uuid.UUID], dict[str, Any]]],
        event: str = NOTIFICATION_EVENT,
    ) -> None:
        """Fan out ``(recipient_ids, payload)`` pairs; never raises."""
        try:
            for recipient_ids, payload in deliveries:
                message = {"event": event, "data": payload}
                for user_id in recipient_ids:
                    if self.is_connected(user_id):
                        await self.send_to_user(user_id, message)
        except Exception:
            logger.exception("Failed to broadcast %s", event)


hub = NotificationHub()
