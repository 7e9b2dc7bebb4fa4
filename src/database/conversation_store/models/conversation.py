"""Conversation model for chat history."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.base import OwnedDocument, PydanticUUID
from utils.text import DEFAULT_TITLE


class ConversationState(str, Enum):
    """Lifecycle of a conversation.

    ACTIVE -> CLEARED when its messages are wiped, CLEARED -> ACTIVE on the next
    message, and either -> ARCHIVED on delete. ARCHIVED is terminal.
    """

    ACTIVE = "active"
    CLEARED = "cleared"
    ARCHIVED = "archived"


class Conversation(OwnedDocument):
    """Model representing a chat conversation."""

    title: str = Field(default=DEFAULT_TITLE, description="Title of the conversation")
    message_ids: List[PydanticUUID] = Field(default_factory=list, description="Ordered references to the conversation's messages")
    state: ConversationState = Field(default=ConversationState.ACTIVE, description="Lifecycle state")
    last_message_at: Optional[datetime] = Field(default=None, description="Creation time of the newest message")

    @property
    def message_count(self) -> int:
        return len(self.message_ids)

    @property
    def has_default_title(self) -> bool:
        return not self.title or self.title == DEFAULT_TITLE

    @property
    def is_archived(self) -> bool:
        return self.state == ConversationState.ARCHIVED


class ConversationSummary(BaseModel):
    """Listing view of a conversation, without message bodies."""

    id: PydanticUUID
    title: str
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSummary":
        return cls(
            id=conversation.id,
            title=conversation.title or DEFAULT_TITLE,
            message_count=conversation.message_count,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
