"""Models for conversation store."""

from database.conversation_store.models.conversation import Conversation, ConversationState, ConversationSummary
from database.conversation_store.models.message import Message, MessageRole

__all__ = ["Conversation", "ConversationState", "ConversationSummary", "Message", "MessageRole"]
