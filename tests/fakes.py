"""In-memory stand-ins for MongoDB and the chat provider, used by coordinator and API tests."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from chat.presence import Connection
from database.conversation_store.conversation_manager import ConversationManager
from database.conversation_store.exceptions import (
    ConversationNotFoundError,
    DatabaseError,
    InvalidConversationError,
    InvalidMessageError,
)
from database.conversation_store.models.conversation import Conversation, ConversationState, ConversationSummary
from database.conversation_store.models.message import Message, MessageRole
from database.user_store.exceptions import UserExistsError, UserNotFoundError
from database.user_store.models.user import User
from models.base import utcnow
from utils.text import DEFAULT_TITLE, TITLE_MAX_LENGTH, derive_title, is_blank


class ScriptedChatModel(BaseChatModel):
    """Chat model that replays scripted replies and records every prompt.

    A reply may be a string or an exception instance, which is raised instead.
    """

    replies: List[Any] = Field(default_factory=list)
    calls: List[List[BaseMessage]] = Field(default_factory=list)
    delay: float = 0.0

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        raise NotImplementedError("ScriptedChatModel is async only")

    async def _agenerate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, BaseException):
            raise reply
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=reply))])


class InMemoryConversationStore:
    """Dict-backed implementation of the ``ConversationManager`` interface.

    Every operation yields to the event loop once, so concurrent callers
    interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self.conversations: Dict[str, Conversation] = {}
        self.messages: Dict[str, Message] = {}
        self.fail_appends_for_role: Optional[MessageRole] = None

    def _owned(self, user_id: str, conversation_id) -> Conversation:
        conversation = self.conversations.get(str(conversation_id))
        if conversation is None or conversation.user_id != user_id or conversation.is_archived:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    def _messages_of(self, conversation_id) -> List[Message]:
        found = [m for m in self.messages.values() if str(m.conversation_id) == str(conversation_id)]
        return sorted(found, key=lambda m: m.created_at)

    async def create_conversation(self, user_id: str, initial_message: Optional[str] = None) -> Tuple[Conversation, List[Message]]:
        await asyncio.sleep(0)
        has_message = not is_blank(initial_message)
        conversation = Conversation(user_id=user_id, title=derive_title(initial_message) if has_message else DEFAULT_TITLE)
        self.conversations[str(conversation.id)] = conversation
        messages = []
        if has_message:
            messages.append(await self.append_message(user_id, conversation.id, MessageRole.USER, initial_message))
        return conversation.model_copy(deep=True), messages

    async def get_conversation(self, user_id: str, conversation_id: UUID) -> Conversation:
        await asyncio.sleep(0)
        return self._owned(user_id, conversation_id).model_copy(deep=True)

    async def list_conversations(self, user_id: str) -> List[ConversationSummary]:
        await asyncio.sleep(0)
        live = [c for c in self.conversations.values() if c.user_id == user_id and not c.is_archived]
        live.sort(key=lambda c: c.updated_at, reverse=True)
        return [ConversationSummary.from_conversation(c) for c in live]

    async def rename_conversation(self, user_id: str, conversation_id: UUID, title: str) -> Conversation:
        if is_blank(title):
            raise InvalidConversationError("Title cannot be empty")
        await asyncio.sleep(0)
        conversation = self._owned(user_id, conversation_id)
        conversation.title = title.strip()[:TITLE_MAX_LENGTH]
        conversation.updated_at = utcnow()
        return conversation.model_copy(deep=True)

    async def bootstrap_title(self, user_id: str, conversation_id: UUID, text: str) -> bool:
        await asyncio.sleep(0)
        conversation = self._owned(user_id, conversation_id)
        if not conversation.has_default_title:
            return False
        conversation.title = derive_title(text)
        return True

    async def soft_delete(self, user_id: str, conversation_id: UUID) -> None:
        await asyncio.sleep(0)
        conversation = self._owned(user_id, conversation_id)
        conversation.state = ConversationState.ARCHIVED

    async def clear(self, user_id: str, conversation_id: UUID) -> None:
        await asyncio.sleep(0)
        conversation = self._owned(user_id, conversation_id)
        for message in self._messages_of(conversation_id):
            del self.messages[str(message.id)]
        conversation.message_ids = []
        conversation.state = ConversationState.CLEARED

    async def append_message(self, user_id: str, conversation_id: UUID, role: MessageRole, content: str, tokens: Optional[int] = None) -> Message:
        if is_blank(content):
            raise InvalidMessageError("Message cannot be empty")
        await asyncio.sleep(0)
        conversation = self._owned(user_id, conversation_id)
        if self.fail_appends_for_role == role:
            raise DatabaseError("write failed")

        created_at = ConversationManager._next_timestamp(conversation)
        message = Message(
            user_id=user_id,
            conversation_id=conversation.id,
            role=role,
            content=content,
            tokens=tokens,
            created_at=created_at,
            updated_at=created_at,
        )
        self.messages[str(message.id)] = message
        conversation.message_ids.append(message.id)
        conversation.last_message_at = created_at
        conversation.updated_at = created_at
        conversation.state = ConversationState.ACTIVE
        return message

    async def list_messages(self, user_id: str, conversation_id: UUID) -> List[Message]:
        await asyncio.sleep(0)
        self._owned(user_id, conversation_id)
        return self._messages_of(conversation_id)

    async def recent_messages(self, user_id: str, conversation_id: UUID, limit: int, before: Optional[datetime] = None) -> List[Message]:
        await asyncio.sleep(0)
        messages = self._messages_of(conversation_id)
        if before is not None:
            messages = [m for m in messages if m.created_at < before]
        return messages[-limit:] if limit else []

    def stored(self, conversation_id) -> List[Message]:
        return self._messages_of(conversation_id)


class InMemoryUserStore:
    """Dict-backed implementation of the ``UserManager`` interface."""

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}

    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        email = email.strip().lower()
        if any(u.email == email or u.username == username for u in self.users.values()):
            raise UserExistsError("User already exists with this email or username")
        user = User(username=username, email=email, password_hash=password_hash)
        self.users[str(user.id)] = user
        return user

    async def get_user(self, user_id) -> User:
        user = self.users.get(str(user_id))
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def get_user_by_email(self, email: str) -> User:
        email = email.strip().lower()
        for user in self.users.values():
            if user.email == email:
                return user
        raise UserNotFoundError("User not found")


class RecordingConnection:
    """Builds a ``Connection`` whose outgoing frames are kept in ``frames``."""

    def __init__(self, connection_id: str, user: User):
        self.frames: List[Tuple[str, Dict[str, Any]]] = []

        async def transport_send(event: str, data: Dict[str, Any]) -> None:
            self.frames.append((event, data))

        self.connection = Connection(id=connection_id, user_id=str(user.id), username=user.username, transport_send=transport_send)

    @property
    def id(self) -> str:
        return self.connection.id

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [data for event, data in self.frames if event == name]
