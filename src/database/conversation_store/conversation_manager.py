"""Manager for conversation and message operations."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import pymongo
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ReturnDocument

from database.conversation_store.exceptions import (
    ConversationNotFoundError,
    DatabaseError,
    InvalidConversationError,
    InvalidMessageError,
)
from database.conversation_store.models.conversation import (
    Conversation,
    ConversationState,
    ConversationSummary,
)
from database.conversation_store.models.message import Message, MessageRole
from models.base import utcnow
from utils.logging import logger
from utils.text import DEFAULT_TITLE, TITLE_MAX_LENGTH, derive_title, is_blank

# Smallest step MongoDB can represent between two datetimes
TIMESTAMP_STEP = timedelta(milliseconds=1)


class ConversationManager:
    """Manager for conversation and message operations.

    Every operation that takes a ``user_id`` only ever touches conversations
    owned by that user. Missing, archived and foreign conversations all raise
    ``ConversationNotFoundError`` so callers cannot probe for existence.
    """

    DATABASE: str = "chatsync"
    COLLECTION_CONVERSATIONS: str = "conversations"
    COLLECTION_MESSAGES: str = "messages"
    COLLECTION_USERS: str = "users"

    def __init__(self, mongodb_client: AsyncIOMotorClient, database_name: Optional[str] = None) -> None:
        """Initialize manager with MongoDB client.
        Note: Use ConversationManager.setup() to create a properly initialized instance."""
        self.client = mongodb_client
        self._db: AsyncIOMotorDatabase = self.client.get_database(database_name or self.DATABASE)
        self._conversations: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_CONVERSATIONS)
        self._messages: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_MESSAGES)
        self._users: AsyncIOMotorCollection = self._db.get_collection(self.COLLECTION_USERS)

    @classmethod
    async def setup(cls, mongodb_client: AsyncIOMotorClient, database_name: Optional[str] = None) -> "ConversationManager":
        """Factory method to create and setup a ConversationManager instance."""
        try:
            manager = cls(mongodb_client, database_name)

            await manager._conversations.create_indexes(
                [
                    # Listing a user's conversations, newest first
                    pymongo.IndexModel([("user_id", 1), ("state", 1), ("updated_at", -1)], background=True),
                    # Ownership lookups
                    pymongo.IndexModel([("user_id", 1), ("_id", 1)], background=True),
                ]
            )

            await manager._messages.create_indexes(
                [
                    # Ordered message listing and history windows
                    pymongo.IndexModel(
                        [("conversation_id", 1), ("created_at", 1)],
                        background=True,
                    ),
                    pymongo.IndexModel(
                        [("user_id", 1), ("conversation_id", 1), ("_id", 1)],
                        background=True,
                    ),
                ]
            )

            return manager

        except Exception as e:
            raise DatabaseError(f"Failed to setup indexes: {str(e)}")

    @staticmethod
    def _owned(user_id: str, conversation_id: UUID) -> Dict[str, Any]:
        """Filter matching a live conversation owned by the user."""
        return {
            "_id": str(conversation_id),
            "user_id": user_id,
            "state": {"$ne": ConversationState.ARCHIVED.value},
        }

    @staticmethod
    def _next_timestamp(conversation: Conversation) -> datetime:
        """Creation time for the next message, strictly after the previous one."""
        created_at = utcnow()
        if conversation.last_message_at is not None and created_at <= conversation.last_message_at:
            created_at = conversation.last_message_at + TIMESTAMP_STEP
        return created_at

    async def create_conversation(self, user_id: str, initial_message: Optional[str] = None) -> Tuple[Conversation, List[Message]]:
        """Creates a conversation, plus its first user message when one is given.

        The title is derived from the initial message, or left at the default
        title so the first send can replace it.
        """
        try:
            has_message = not is_blank(initial_message)
            conversation = Conversation(
                user_id=user_id,
                title=derive_title(initial_message) if has_message else DEFAULT_TITLE,
            )
            logger.info(f"Creating conversation '{conversation.title}' for user {user_id}")

            messages: List[Message] = []
            if has_message:
                message = Message(
                    user_id=user_id,
                    conversation_id=conversation.id,
                    role=MessageRole.USER,
                    content=initial_message,
                    created_at=conversation.created_at,
                    updated_at=conversation.created_at,
                )
                conversation.message_ids.append(message.id)
                conversation.last_message_at = message.created_at
                messages.append(message)

            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await self._conversations.insert_one(conversation.model_dump(by_alias=True), session=session)

                    if messages:
                        await self._messages.insert_many([m.model_dump(by_alias=True) for m in messages], session=session)

                    await self._users.update_one(
                        {"_id": user_id},
                        {"$push": {"conversation_ids": str(conversation.id)}},
                        session=session,
                    )

            logger.info(f"Conversation created with ID: {conversation.id}")
            return conversation, messages

        except Exception as e:
            raise DatabaseError(f"Failed to create conversation: {str(e)}")

    async def get_conversation(self, user_id: str, conversation_id: UUID) -> Conversation:
        """Retrieves a specific conversation."""
        try:
            logger.debug(f"Getting conversation {conversation_id} for user {user_id}")
            doc = await self._conversations.find_one(self._owned(user_id, conversation_id))
            if not doc:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
            return Conversation.model_validate(doc)

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to get conversation: {str(e)}")

    async def list_conversations(self, user_id: str) -> List[ConversationSummary]:
        """Lists a user's live conversations, most recently updated first."""
        try:
            logger.info(f"Listing conversations for user {user_id}")
            cursor = self._conversations.find(
                {"user_id": user_id, "state": {"$ne": ConversationState.ARCHIVED.value}},
            )
            cursor = cursor.sort([("updated_at", -1)])

            summaries = []
            async for doc in cursor:
                summaries.append(ConversationSummary.from_conversation(Conversation.model_validate(doc)))
            return summaries

        except Exception as e:
            raise DatabaseError(f"Failed to list conversations: {str(e)}")

    async def rename_conversation(self, user_id: str, conversation_id: UUID, title: str) -> Conversation:
        """Sets a new title, trimmed to the maximum title length."""
        if is_blank(title):
            raise InvalidConversationError("Title cannot be empty")

        try:
            logger.info(f"Renaming conversation {conversation_id} for user {user_id}")
            doc = await self._conversations.find_one_and_update(
                self._owned(user_id, conversation_id),
                {"$set": {"title": title.strip()[:TITLE_MAX_LENGTH], "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
            return Conversation.model_validate(doc)

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to rename conversation: {str(e)}")

    async def bootstrap_title(self, user_id: str, conversation_id: UUID, text: str) -> bool:
        """Replaces the default title with one derived from ``text``.

        The update is conditional on the title still being the default, so a
        title that has already been set is never overwritten.
        """
        try:
            query = self._owned(user_id, conversation_id)
            query["title"] = {"$in": [DEFAULT_TITLE, "", None]}
            result = await self._conversations.update_one(query, {"$set": {"title": derive_title(text)}})
            if result.modified_count:
                logger.info(f"Auto-titled conversation {conversation_id}")
            return result.modified_count > 0

        except Exception as e:
            raise DatabaseError(f"Failed to set conversation title: {str(e)}")

    async def soft_delete(self, user_id: str, conversation_id: UUID) -> None:
        """Archives a conversation. Its messages stay in storage."""
        try:
            logger.info(f"Archiving conversation {conversation_id} for user {user_id}")
            result = await self._conversations.update_one(
                self._owned(user_id, conversation_id),
                {"$set": {"state": ConversationState.ARCHIVED.value, "updated_at": utcnow()}},
            )
            if result.matched_count == 0:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to delete conversation: {str(e)}")

    async def clear(self, user_id: str, conversation_id: UUID) -> None:
        """Deletes every message of a conversation, keeping the conversation and its title."""
        try:
            logger.info(f"Clearing conversation {conversation_id} for user {user_id}")
            await self.get_conversation(user_id, conversation_id)

            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await self._messages.delete_many(
                        {"user_id": user_id, "conversation_id": str(conversation_id)},
                        session=session,
                    )

                    result = await self._conversations.update_one(
                        self._owned(user_id, conversation_id),
                        {
                            "$set": {
                                "message_ids": [],
                                "state": ConversationState.CLEARED.value,
                                "updated_at": utcnow(),
                            }
                        },
                        session=session,
                    )

                    if result.matched_count == 0:
                        raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to clear conversation: {str(e)}")

    async def append_message(
        self,
        user_id: str,
        conversation_id: UUID,
        role: MessageRole,
        content: str,
        tokens: Optional[int] = None,
    ) -> Message:
        """Appends a message and records it on the conversation."""
        if is_blank(content):
            raise InvalidMessageError("Message cannot be empty")

        try:
            logger.info(f"Appending {role.value} message to conversation {conversation_id}")
            conversation = await self.get_conversation(user_id, conversation_id)

            created_at = self._next_timestamp(conversation)
            message = Message(
                user_id=user_id,
                conversation_id=conversation_id,
                role=role,
                content=content,
                tokens=tokens,
                created_at=created_at,
                updated_at=created_at,
            )

            async with await self.client.start_session() as session:
                async with session.start_transaction():
                    await self._messages.insert_one(message.model_dump(by_alias=True), session=session)

                    result = await self._conversations.update_one(
                        self._owned(user_id, conversation_id),
                        {
                            "$push": {"message_ids": str(message.id)},
                            "$set": {
                                "updated_at": created_at,
                                "last_message_at": created_at,
                                "state": ConversationState.ACTIVE.value,
                            },
                        },
                        session=session,
                    )

                    if result.matched_count == 0:
                        raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

            logger.debug(f"Message created with ID: {message.id}")
            return message

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to append message: {str(e)}")

    async def list_messages(self, user_id: str, conversation_id: UUID) -> List[Message]:
        """Lists all messages in a conversation, oldest first."""
        try:
            logger.info(f"Listing messages for conversation {conversation_id}")
            await self.get_conversation(user_id, conversation_id)

            cursor = self._messages.find({"user_id": user_id, "conversation_id": str(conversation_id)})
            cursor = cursor.sort([("created_at", 1)])

            messages = []
            async for doc in cursor:
                messages.append(Message.model_validate(doc))
            return messages

        except ConversationNotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to list messages: {str(e)}")

    async def recent_messages(
        self,
        user_id: str,
        conversation_id: UUID,
        limit: int,
        before: Optional[datetime] = None,
    ) -> List[Message]:
        """Returns the newest ``limit`` messages, oldest first.

        With ``before`` only messages created strictly earlier are considered.
        """
        try:
            query: Dict[str, Any] = {"user_id": user_id, "conversation_id": str(conversation_id)}
            if before is not None:
                query["created_at"] = {"$lt": before}

            cursor = self._messages.find(query).sort([("created_at", -1)]).limit(limit)

            messages = []
            async for doc in cursor:
                messages.append(Message.model_validate(doc))
            messages.reverse()
            return messages

        except Exception as e:
            raise DatabaseError(f"Failed to load recent messages: {str(e)}")
