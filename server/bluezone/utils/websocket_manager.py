import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol


logger = logging.getLogger(__name__)


class Connection(Protocol):

    async def send_json(self, data: Any) -> None: ...


def envelope(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": event, "data": payload}


class ConnectionManager:
    """
    Process-local registry of live connections, one room per user id.

    Created once per application (see `create_app`) and handed to request
    handlers through `app.state`; it holds no persistent state.
    """

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[Connection]] = {}
        self._owners: Dict[int, str] = {}
        self._lock = asyncio.Lock()

    def is_online(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    def online_users(self) -> List[str]:
        return list(self.active_connections)

    def user_for(self, connection: Connection) -> Optional[str]:
        return self._owners.get(id(connection))

    async def join(self, connection: Connection, user_id: str) -> bool:
        """Register `connection` under `user_id`; True if the user just came online."""
        async with self._lock:
            if self._owners.get(id(connection)) is not None:
                return False
            self._owners[id(connection)] = user_id
            connections = self.active_connections.setdefault(user_id, [])
            came_online = not connections
            connections.append(connection)
            logger.info("User %s connected (%d open)", user_id, len(connections))
            # presence broadcasts are sent under the lock, in state-change order
            if came_online:
                await self._broadcast_except(user_id, "user:online", {"userId": user_id})
        return came_online

    async def leave(self, connection: Connection) -> Optional[str]:
        """Deregister `connection`; returns the user id if that was their last connection."""
        async with self._lock:
            user_id = self._owners.pop(id(connection), None)
            if user_id is None:
                return None
            connections = self.active_connections.get(user_id, [])
            try:
                connections.remove(connection)
            except ValueError:
                pass
            went_offline = not connections
            logger.info("User %s disconnected", user_id)
            if went_offline:
                self.active_connections.pop(user_id, None)
                await self._broadcast_except(user_id, "user:offline", {"userId": user_id})
        return user_id if went_offline else None

    async def deliver_to_user(self, user_id: str, event: str, payload: Dict[str, Any]) -> int:
        """Send to every open connection of `user_id`; returns how many were reached."""
        delivered = 0
        for conn in list(self.active_connections.get(user_id, [])):
            try:
                await conn.send_json(envelope(event, payload))
                delivered += 1
            except Exception:
                logger.warning("Delivery of %s to user %s failed", event, user_id, exc_info=True)
        return delivered

    async def relay(self, event: str, from_connection: Connection, payload: Dict[str, Any]) -> int:
        """Forward an ephemeral signal to `payload["recipientId"]`, stamped with the sender id."""
        sender_id = self.user_for(from_connection)
        recipient_id = payload.get("recipientId")
        if sender_id is None or not recipient_id:
            return 0
        data = {**payload, "userId": sender_id}
        return await self.deliver_to_user(recipient_id, event, data)

    async def _broadcast_except(self, user_id: str, event: str, payload: Dict[str, Any]) -> None:
        for other in list(self.active_connections):
            if other != user_id:
                await self.deliver_to_user(other, event, payload)
