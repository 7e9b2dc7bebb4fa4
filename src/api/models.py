"""API request and response models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from database.conversation_store.models.conversation import Conversation, ConversationSummary
from database.conversation_store.models.message import Message
from database.user_store.models.user import User


class ApiModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(ApiModel):
    """Request model for registering a user."""

    username: str = Field(..., min_length=1, max_length=64, description="Unique display name")
    email: str = Field(..., min_length=3, max_length=254, description="Login email")
    password: str = Field(..., min_length=1, description="Plain-text password")


class LoginRequest(ApiModel):
    """Request model for logging in."""

    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Plain-text password")


class UserResponse(ApiModel):
    id: str = Field(..., description="User identifier")
    username: str = Field(..., description="Display name")
    email: str = Field(..., description="Login email")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=str(user.id), username=user.username, email=user.email)


class AuthResponse(ApiModel):
    """Response model for register and login."""

    user: UserResponse = Field(..., description="Authenticated user")
    token: str = Field(..., description="Bearer token for REST and the live channel")


class MessageResponse(ApiModel):
    """Response model for a stored message."""

    id: str = Field(..., description="Message identifier")
    content: str = Field(..., description="Content of the message")
    role: str = Field(..., description="Role of the message sender")
    timestamp: datetime = Field(..., description="Creation timestamp")
    tokens: Optional[int] = Field(default=None, description="Estimated token count of an assistant reply")

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=str(message.id),
            content=message.content,
            role=message.role.value,
            timestamp=message.created_at,
            tokens=message.tokens,
        )


class ConversationCreate(ApiModel):
    """Request model for creating a conversation."""

    initial_message: Optional[str] = Field(default=None, description="Optional first user message")


class LiveConversationCreate(ConversationCreate):
    """Live-channel variant of conversation creation, which may also name the conversation."""

    title: Optional[str] = Field(default=None, description="Optional title overriding the derived one")


class ConversationRef(ApiModel):
    """Live-channel payload naming a conversation room."""

    conversation_id: str = Field(..., description="Conversation identifier")


class ConversationResponse(ApiModel):
    """Response model for a newly created conversation."""

    id: str = Field(..., description="Conversation identifier")
    title: str = Field(..., description="Title of the conversation")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    messages: List[MessageResponse] = Field(default_factory=list, description="Messages created with the conversation")

    @classmethod
    def from_conversation(cls, conversation: Conversation, messages: Optional[List[Message]] = None) -> "ConversationResponse":
        return cls(
            id=str(conversation.id),
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            messages=[MessageResponse.from_message(message) for message in messages or []],
        )


class ConversationSummaryResponse(ApiModel):
    """Listing entry for a conversation."""

    id: str = Field(..., description="Conversation identifier")
    title: str = Field(..., description="Title of the conversation")
    message_count: int = Field(..., description="Number of messages")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> "ConversationSummaryResponse":
        return cls(
            id=str(summary.id),
            title=summary.title,
            message_count=summary.message_count,
            created_at=summary.created_at,
            updated_at=summary.updated_at,
        )


class ConversationListResponse(ApiModel):
    """Response model for listing conversations."""

    conversations: List[ConversationSummaryResponse] = Field(..., description="Conversations, most recently updated first")


class ConversationHeader(ApiModel):
    id: str
    title: str


class MessageListResponse(ApiModel):
    """Response model for listing a conversation's messages."""

    conversation: ConversationHeader = Field(..., description="Conversation the messages belong to")
    messages: List[MessageResponse] = Field(..., description="Messages, oldest first")


class ConversationUpdate(ApiModel):
    """Request model for renaming a conversation."""

    title: str = Field(..., description="New title for the conversation")


class StatusResponse(ApiModel):
    success: bool = True
    message: str


class ChatRequest(ApiModel):
    """Chat request model."""

    conversation_id: str = Field(..., description="Conversation identifier")
    message: str = Field(..., description="The message content")


class ChatResponse(ApiModel):
    """Chat response model."""

    conversation_id: str = Field(..., description="Conversation identifier")
    user_message: MessageResponse = Field(..., description="The stored user message")
    assistant_message: MessageResponse = Field(..., description="The stored assistant reply")


class HealthResponse(ApiModel):
    success: bool = True
    message: str
    timestamp: datetime
