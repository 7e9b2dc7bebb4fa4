"""Chat router for synchronous message sends."""

from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.dependencies import Services, get_current_user, get_services, parse_conversation_id
from api.models import ChatRequest, ChatResponse, MessageResponse
from database.user_store.models.user import User
from utils.logging import logger

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def send_message(
    request: ChatRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
    connection_id: Optional[str] = Header(None, alias="X-Connection-Id"),
) -> ChatResponse:
    """Send a message and wait for the assistant's reply.

    Live connections joined to the conversation receive the exchange as
    broadcasts. When ``X-Connection-Id`` names one of the caller's own live
    connections, that connection is left out since it receives this response.
    """
    origin = None
    if connection_id:
        connection = services.rooms.get(connection_id)
        if connection is not None and connection.user_id == str(user.id):
            origin = connection_id
        else:
            logger.debug(f"Ignoring X-Connection-Id {connection_id} that does not belong to user {user.id}")

    exchange = await services.coordinator.send_message(user, parse_conversation_id(request.conversation_id), request.message, origin=origin)
    return ChatResponse(
        conversation_id=exchange.conversation_id,
        user_message=MessageResponse.from_message(exchange.user_message),
        assistant_message=MessageResponse.from_message(exchange.assistant_message),
    )
