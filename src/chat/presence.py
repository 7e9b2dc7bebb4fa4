"""Presence and room registry for live connections."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from utils.logging import logger

SendFunc = Callable[[str, Dict[str, Any]], Awaitable[None]]


@dataclass(eq=False)
class Connection:
    """One authenticated live connection."""

    id: str
    user_id: str
    username: str
    transport_send: SendFunc
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        # Frames on one socket must not interleave
        async with self._send_lock:
            await self.transport_send(event, data)


class RoomRegistry:
    """Tracks which connections are joined to which conversation room.

    Registry mutations never await, so each connection event is applied
    atomically on the event loop. Created once per process by the API
    lifespan and closed on shutdown.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._memberships: Dict[str, Set[str]] = {}

    def register(self, connection: Connection) -> None:
        self._connections[connection.id] = connection
        self._memberships.setdefault(connection.id, set())
        logger.info(f"User {connection.username} connected with connection ID {connection.id}")

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def members(self, conversation_id) -> Set[str]:
        return set(self._rooms.get(str(conversation_id), ()))

    def rooms_of(self, connection_id: str) -> Set[str]:
        return set(self._memberships.get(connection_id, ()))

    def join(self, connection_id: str, conversation_id) -> None:
        if connection_id not in self._connections:
            raise KeyError(f"Unknown connection {connection_id}")
        room = str(conversation_id)
        self._rooms.setdefault(room, set()).add(connection_id)
        self._memberships[connection_id].add(room)
        logger.debug(f"Connection {connection_id} joined room {room}")

    def leave(self, connection_id: str, conversation_id) -> None:
        room = str(conversation_id)
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        self._memberships.get(connection_id, set()).discard(room)
        logger.debug(f"Connection {connection_id} left room {room}")

    async def broadcast(self, conversation_id, event: str, payload: Dict[str, Any], exclude: Optional[str] = None) -> int:
        """Deliver an event to every member of a room except ``exclude``.

        Returns the number of successful deliveries. A failed send is logged
        and does not stop delivery to the other members.
        """
        recipients: List[Connection] = [
            self._connections[connection_id]
            for connection_id in self._rooms.get(str(conversation_id), ())
            if connection_id != exclude and connection_id in self._connections
        ]
        if not recipients:
            return 0

        results = await asyncio.gather(*(connection.send(event, payload) for connection in recipients), return_exceptions=True)

        delivered = 0
        for connection, result in zip(recipients, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to deliver {event} to connection {connection.id}: {str(result)}")
            else:
                delivered += 1
        return delivered

    async def notify_typing_state(self, conversation_id, connection_id: str, is_typing: bool) -> int:
        connection = self._connections.get(connection_id)
        if connection is None:
            return 0
        return await self.broadcast(
            conversation_id,
            "user_typing",
            {
                "userId": connection.user_id,
                "username": connection.username,
                "conversationId": str(conversation_id),
                "isTyping": is_typing,
            },
            exclude=connection_id,
        )

    async def disconnect(self, connection_id: str) -> None:
        """Release every membership of a connection, then tell each room it left."""
        connection = self._connections.pop(connection_id, None)
        rooms = self._memberships.pop(connection_id, set())
        for room in rooms:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._rooms[room]

        if connection is None:
            return

        logger.info(f"User {connection.username} disconnected")
        for room in rooms:
            await self.broadcast(room, "user_offline", {"userId": connection.user_id, "username": connection.username, "conversationId": room})

    def close(self) -> None:
        logger.info(f"Closing room registry with {len(self._connections)} open connections")
        self._connections.clear()
        self._rooms.clear()
        self._memberships.clear()
