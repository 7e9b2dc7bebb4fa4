"""Conversation router for handling conversation operations."""

from fastapi import APIRouter, Depends, status

from api.dependencies import get_coordinator, get_current_user, parse_conversation_id
from api.models import (
    ConversationCreate,
    ConversationHeader,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummaryResponse,
    ConversationUpdate,
    MessageListResponse,
    MessageResponse,
    StatusResponse,
)
from chat.coordinator import MessageCoordinator
from database.user_store.models.user import User

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: ConversationCreate,
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> ConversationResponse:
    """Create a conversation, with its first message when one is given."""
    conversation, messages = await coordinator.create_conversation(user, request.initial_message)
    return ConversationResponse.from_conversation(conversation, messages)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> ConversationListResponse:
    """List the caller's conversations, most recently updated first."""
    summaries = await coordinator.list_conversations(user)
    return ConversationListResponse(conversations=[ConversationSummaryResponse.from_summary(summary) for summary in summaries])


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> MessageListResponse:
    """List all messages in a conversation, oldest first."""
    conversation, messages = await coordinator.list_messages(user, parse_conversation_id(conversation_id))
    return MessageListResponse(
        conversation=ConversationHeader(id=str(conversation.id), title=conversation.title),
        messages=[MessageResponse.from_message(message) for message in messages],
    )


@router.put("/{conversation_id}/title", response_model=ConversationResponse)
async def rename_conversation(
    conversation_id: str,
    request: ConversationUpdate,
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> ConversationResponse:
    """Rename a conversation."""
    conversation = await coordinator.rename_conversation(user, parse_conversation_id(conversation_id), request.title)
    return ConversationResponse.from_conversation(conversation)


@router.delete("/{conversation_id}", response_model=StatusResponse)
async def delete_conversation(
    conversation_id: str,
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> StatusResponse:
    """Archive a conversation."""
    await coordinator.delete_conversation(user, parse_conversation_id(conversation_id))
    return StatusResponse(message="Conversation deleted successfully")


@router.delete("/{conversation_id}/clear", response_model=StatusResponse)
async def clear_conversation(
    conversation_id: str,
    user: User = Depends(get_current_user),
    coordinator: MessageCoordinator = Depends(get_coordinator),
) -> StatusResponse:
    """Delete every message of a conversation but keep the conversation."""
    await coordinator.clear_conversation(user, parse_conversation_id(conversation_id))
    return StatusResponse(message="Conversation cleared successfully")
