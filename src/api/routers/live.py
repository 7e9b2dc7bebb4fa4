"""Live channel: a bidirectional WebSocket carrying conversation events.

Frames in both directions are JSON objects ``{"event": ..., "data": {...}}``.
A client frame may carry an ``ack`` token, in which case the outcome of that
event comes back as exactly one ``ack`` frame echoing the token. Without an
``ack`` a successful event is answered with its named event, and a failure
with an ``error`` event.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple, Type, TypeVar
from uuid import UUID, uuid4

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api.dependencies import Services, parse_conversation_id
from api.errors import describe_validation_errors
from api.models import ChatRequest, ConversationRef, LiveConversationCreate
from api.security import authenticate
from chat.coordinator import MessageCoordinator, message_payload
from chat.errors import ChatError, InternalError, UnauthenticatedError, ValidationError
from chat.presence import Connection, RoomRegistry
from database.user_store.models.user import User
from settings import settings
from utils.logging import logger
from utils.text import is_blank

router = APIRouter(tags=["live"])

# Close code sent when the handshake token is rejected
UNAUTHENTICATED_CLOSE_CODE = 4401

# Extra time granted to sends still running when their connection closes
IN_FLIGHT_GRACE_SECONDS = 5.0

Reply = Optional[Tuple[str, Dict[str, Any]]]
EventModel = TypeVar("EventModel", bound=BaseModel)


def parse_event(model: Type[EventModel], data: Dict[str, Any]) -> EventModel:
    """Validate event data with the same request models the REST routes use."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(describe_validation_errors(e.errors()))


async def settle_in_flight(tasks: Set[asyncio.Task], timeout: float) -> None:
    """Let sends started on a closed connection finish, cancelling any still running after ``timeout``."""
    if not tasks:
        return
    pending: Set[asyncio.Task] = set(tasks)
    try:
        _, pending = await asyncio.wait(pending, timeout=timeout)
    finally:
        for task in pending:
            task.cancel()
    if pending:
        logger.warning(f"Cancelled {len(pending)} unfinished send(s) after connection closed")



class LiveSession:
    """Dispatches the client events of one live connection."""

    def __init__(self, connection: Connection, user: User, coordinator: MessageCoordinator, rooms: RoomRegistry):
        self.connection = connection
        self.user = user
        self.coordinator = coordinator
        self.rooms = rooms
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Reply]]] = {
            "create_conversation": self.create_conversation,
            "send_message": self.send_message,
            "join_conversation": self.join_conversation,
            "leave_conversation": self.leave_conversation,
            "typing_start": self.typing_start,
            "typing_stop": self.typing_stop,
        }

    async def dispatch(self, frame: Any) -> None:
        if not isinstance(frame, dict):
            await self._fail(None, ValidationError("Frames must be JSON objects"), None)
            return

        event = frame.get("event")
        data = frame.get("data") or {}
        ack = frame.get("ack")
        conversation_id = data.get("conversationId") if isinstance(data, dict) else None

        handler = self.handlers.get(event)
        if handler is None:
            await self._fail(ack, ValidationError(f"Unknown event: {event}"), conversation_id)
            return
        if not isinstance(data, dict):
            await self._fail(ack, ValidationError("Event data must be an object"), conversation_id)
            return

        try:
            reply = await handler(data)
        except ChatError as e:
            await self._fail(ack, e, conversation_id)
            return
        except Exception as e:
            logger.error(f"Live event {event} failed for user {self.user.id}: {str(e)}", exc_info=True)
            await self._fail(ack, InternalError(), conversation_id)
            return

        if ack is not None:
            await self._send("ack", {"ack": ack, "success": True, "data": reply[1] if reply else None})
        elif reply is not None:
            await self._send(*reply)

    async def create_conversation(self, data: Dict[str, Any]) -> Reply:
        request = parse_event(LiveConversationCreate, data)
        conversation, messages = await self.coordinator.create_conversation(self.user, request.initial_message)
        if not is_blank(request.title):
            conversation = await self.coordinator.rename_conversation(self.user, conversation.id, request.title)

        self.rooms.join(self.connection.id, conversation.id)
        return "conversation_created", {
            "conversation": {
                "id": str(conversation.id),
                "title": conversation.title,
                "createdAt": conversation.created_at.isoformat(),
                "messages": [message_payload(message) for message in messages],
            }
        }

    async def send_message(self, data: Dict[str, Any]) -> Reply:
        request = parse_event(ChatRequest, data)
        conversation_id = parse_conversation_id(request.conversation_id)
        exchange = await self.coordinator.send_message(self.user, conversation_id, request.message, origin=self.connection.id)
        payload = exchange.to_payload()
        # Without an ack the sender's single copy arrives as assistant_message
        return "assistant_message", {**payload["assistantMessage"], "conversationId": payload["conversationId"], "userMessage": payload["userMessage"]}

    async def join_conversation(self, data: Dict[str, Any]) -> Reply:
        conversation_id = self._room(data)
        await self.coordinator.get_conversation(self.user, conversation_id)
        self.rooms.join(self.connection.id, conversation_id)
        return "conversation_joined", {"conversationId": str(conversation_id), "message": "Successfully joined conversation"}

    async def leave_conversation(self, data: Dict[str, Any]) -> Reply:
        conversation_id = self._room(data)
        self.rooms.leave(self.connection.id, conversation_id)
        return "conversation_left", {"conversationId": str(conversation_id), "message": "Successfully left conversation"}

    async def typing_start(self, data: Dict[str, Any]) -> Reply:
        await self._typing(data, True)
        return None

    async def typing_stop(self, data: Dict[str, Any]) -> Reply:
        await self._typing(data, False)
        return None

    @staticmethod
    def _room(data: Dict[str, Any]) -> UUID:
        return parse_conversation_id(parse_event(ConversationRef, data).conversation_id)

    async def _typing(self, data: Dict[str, Any], is_typing: bool) -> None:
        conversation_id = self._room(data)
        if str(conversation_id) not in self.rooms.rooms_of(self.connection.id):
            raise ValidationError("Join the conversation before sending typing updates")
        await self.rooms.notify_typing_state(conversation_id, self.connection.id, is_typing)

    async def _fail(self, ack: Optional[str], error: ChatError, conversation_id: Optional[str]) -> None:
        if ack is not None:
            await self._send("ack", {"ack": ack, "success": False, "error": error.to_payload()})
        else:
            payload = error.to_payload()
            if conversation_id:
                payload["conversationId"] = conversation_id
            await self._send("error", payload)

    async def _send(self, event: str, data: Dict[str, Any]) -> None:
        try:
            await self.connection.send(event, data)
        except Exception as e:
            logger.warning(f"Could not send {event} to connection {self.connection.id}: {str(e)}")


@router.websocket("/ws")
async def live_channel(websocket: WebSocket, token: Optional[str] = Query(None)) -> None:
    """Authenticate once at connect time, then serve client events until disconnect."""
    services: Services = websocket.app.state.services

    try:
        user = await authenticate(token, services.user_manager)
    except UnauthenticatedError as e:
        logger.info(f"Rejected live connection: {e.message}")
        await websocket.close(code=UNAUTHENTICATED_CLOSE_CODE, reason=e.message)
        return

    await websocket.accept()

    async def transport_send(event: str, data: Dict[str, Any]) -> None:
        await websocket.send_json({"event": event, "data": data})

    connection = Connection(id=uuid4().hex, user_id=str(user.id), username=user.username, transport_send=transport_send)
    services.rooms.register(connection)
    session = LiveSession(connection, user, services.coordinator, services.rooms)
    in_flight: Set[asyncio.Task] = set()

    try:
        await connection.send(
            "connected",
            {
                "success": True,
                "message": "Successfully connected to chat server",
                "connectionId": connection.id,
                "user": user.public_view(),
            },
        )

        while True:
            frame = await websocket.receive_json()
            if isinstance(frame, dict) and frame.get("event") == "send_message":
                # Completions are slow; keep reading typing and room events meanwhile
                task = asyncio.create_task(session.dispatch(frame))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
            else:
                await session.dispatch(frame)

    except WebSocketDisconnect:
        pass
    except ValueError as e:
        logger.warning(f"Closing connection {connection.id} after malformed frame: {str(e)}")
    finally:
        try:
            await services.rooms.disconnect(connection.id)
        finally:
            await settle_in_flight(in_flight, settings.llm_timeout_seconds + IN_FLIGHT_GRACE_SECONDS)
