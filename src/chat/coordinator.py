"""Message coordinator shared by the REST API and the live channel."""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from uuid import UUID

from chat.errors import EmptyMessageError, InternalError, NotFoundError, ValidationError
from chat.gateway import CompletionGateway
from chat.locks import KeyedLock
from chat.presence import RoomRegistry
from chat.session_cache import SessionCache
from database.conversation_store.conversation_manager import ConversationManager
from database.conversation_store.exceptions import (
    ConversationNotFoundError,
    ConversationStoreError,
    InvalidConversationError,
    InvalidMessageError,
)
from database.conversation_store.models.conversation import Conversation, ConversationSummary
from database.conversation_store.models.message import Message, MessageRole
from database.user_store.models.user import User
from utils.logging import logger
from utils.text import is_blank


def message_payload(message: Message) -> Dict[str, Any]:
    """Wire shape of a stored message."""
    payload = {
        "id": str(message.id),
        "content": message.content,
        "role": message.role.value,
        "timestamp": message.created_at.isoformat(),
    }
    if message.role == MessageRole.ASSISTANT:
        payload["tokens"] = message.tokens
    return payload


@dataclass
class Exchange:
    """A completed user turn and the assistant reply to it."""

    conversation_id: str
    user_message: Message
    assistant_message: Message

    def to_payload(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "userMessage": message_payload(self.user_message),
            "assistantMessage": message_payload(self.assistant_message),
        }


@contextmanager
def store_errors() -> Iterator[None]:
    """Translate store exceptions into the user-facing error taxonomy."""
    try:
        yield
    except ConversationNotFoundError:
        raise NotFoundError()
    except (InvalidConversationError, InvalidMessageError) as e:
        raise ValidationError(str(e))
    except ConversationStoreError as e:
        logger.error(f"Conversation store failure: {str(e)}", exc_info=True)
        raise InternalError()


class MessageCoordinator:
    """Runs every conversation operation for both transports.

    A send persists the user message, asks the completion gateway for a
    reply, persists the reply and publishes both to the conversation's room.
    Sends, deletes and clears on one conversation are serialized by a
    per-conversation lock. Different conversations proceed in parallel.
    """

    def __init__(
        self,
        store: ConversationManager,
        gateway: CompletionGateway,
        rooms: RoomRegistry,
        session_cache: SessionCache,
        history_limit: int = 20,
        locks: Optional[KeyedLock] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.rooms = rooms
        self.session_cache = session_cache
        self.history_limit = history_limit
        self.locks = locks or KeyedLock()

    async def send_message(self, user: User, conversation_id: UUID, text: str, origin: Optional[str] = None) -> Exchange:
        """Run one user turn to completion.

        ``origin`` is the live connection that initiated the send, if any. It
        gets the exchange as the return value and is left out of every
        broadcast, so no recipient sees the same exchange twice.
        """
        if is_blank(text):
            raise EmptyMessageError()

        user_id = str(user.id)
        key = str(conversation_id)

        async with self.locks.hold(key):
            with store_errors():
                conversation = await self.store.get_conversation(user_id, conversation_id)

                if conversation.has_default_title:
                    await self.store.bootstrap_title(user_id, conversation_id, text)

                user_message = await self.store.append_message(user_id, conversation_id, MessageRole.USER, text)

            await self.rooms.broadcast(
                key,
                "user_message",
                {**message_payload(user_message), "conversationId": key, "userId": user_id, "username": user.username},
                exclude=origin,
            )

            with store_errors():
                context = await self.store.recent_messages(user_id, conversation_id, self.history_limit, before=user_message.created_at)
            history = [message.to_history() for message in context]

            await self.rooms.broadcast(key, "assistant_typing", {"conversationId": key, "isTyping": True}, exclude=origin)
            try:
                completion = await self.gateway.complete(key, text, history)
            finally:
                await self.rooms.broadcast(key, "assistant_typing", {"conversationId": key, "isTyping": False}, exclude=origin)

            try:
                assistant_message = await self.store.append_message(
                    user_id, conversation_id, MessageRole.ASSISTANT, completion.text, tokens=completion.tokens
                )
            except ConversationStoreError as e:
                # The reply exists only in this log line from here on
                logger.error(f"Reply for conversation {key} was generated but not stored: {str(e)}. Reply: {completion.text!r}", exc_info=True)
                self.session_cache.invalidate(key)
                raise InternalError("Your reply could not be saved. Please resend your message.")

            exchange = Exchange(conversation_id=key, user_message=user_message, assistant_message=assistant_message)
            await self.rooms.broadcast(
                key,
                "assistant_message",
                {**message_payload(assistant_message), "conversationId": key},
                exclude=origin,
            )

        logger.info(f"Completed exchange in conversation {key}")
        return exchange

    async def create_conversation(self, user: User, initial_message: Optional[str] = None) -> Tuple[Conversation, List[Message]]:
        with store_errors():
            return await self.store.create_conversation(str(user.id), initial_message)

    async def get_conversation(self, user: User, conversation_id: UUID) -> Conversation:
        with store_errors():
            return await self.store.get_conversation(str(user.id), conversation_id)

    async def list_conversations(self, user: User) -> List[ConversationSummary]:
        with store_errors():
            return await self.store.list_conversations(str(user.id))

    async def list_messages(self, user: User, conversation_id: UUID) -> Tuple[Conversation, List[Message]]:
        with store_errors():
            conversation = await self.store.get_conversation(str(user.id), conversation_id)
            messages = await self.store.list_messages(str(user.id), conversation_id)
        return conversation, messages

    async def rename_conversation(self, user: User, conversation_id: UUID, title: str) -> Conversation:
        if is_blank(title):
            raise ValidationError("Title cannot be empty")
        with store_errors():
            return await self.store.rename_conversation(str(user.id), conversation_id, title)

    async def delete_conversation(self, user: User, conversation_id: UUID) -> None:
        """Archive a conversation and drop its completion session."""
        async with self.locks.hold(conversation_id):
            with store_errors():
                await self.store.soft_delete(str(user.id), conversation_id)
            self.session_cache.invalidate(conversation_id)

    async def clear_conversation(self, user: User, conversation_id: UUID) -> None:
        """Wipe a conversation's messages and drop its completion session."""
        async with self.locks.hold(conversation_id):
            with store_errors():
                await self.store.clear(str(user.id), conversation_id)
            self.session_cache.invalidate(conversation_id)
