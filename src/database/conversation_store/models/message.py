"""Message model for chat history."""

from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from models.base import OwnedDocument, PydanticUUID


class MessageRole(str, Enum):
    """Enum for message roles."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(OwnedDocument):
    """Model representing one immutable turn of a conversation."""

    conversation_id: PydanticUUID = Field(..., description="ID of the conversation this message belongs to")
    role: MessageRole = Field(..., description="Role of the message sender")
    content: str = Field(..., description="Text of the message")
    tokens: Optional[int] = Field(default=None, description="Estimated token count, assistant messages only")

    def to_history(self) -> Dict[str, str]:
        """Shape used to seed a completion session."""
        return {"role": self.role.value, "content": self.content}
