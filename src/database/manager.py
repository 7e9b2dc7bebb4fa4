"""Database setup and initialization."""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from database.conversation_store.conversation_manager import ConversationManager
from database.user_store.user_manager import UserManager
from utils.logging import logger


class DatabaseManager:
    """Owns the MongoDB client and the store managers built on it.

    One instance is created per process by the API lifespan.
    """

    def __init__(self, connection_string: str, database_name: str):
        logger.info("Initializing DatabaseManager")
        self._client = AsyncIOMotorClient(connection_string, tz_aware=True, uuidRepresentation="standard")
        self._client.get_io_loop = asyncio.get_running_loop
        self._database_name = database_name
        self._conversation_manager: Optional[ConversationManager] = None
        self._user_manager: Optional[UserManager] = None

    async def setup_conversation_manager(self) -> ConversationManager:
        """Initialize and return the conversation manager."""
        if self._conversation_manager is None:
            logger.info("Setting up conversation manager")
            self._conversation_manager = await ConversationManager.setup(self._client, self._database_name)
        return self._conversation_manager

    async def setup_user_manager(self) -> UserManager:
        """Initialize and return the user manager."""
        if self._user_manager is None:
            logger.info("Setting up user manager")
            self._user_manager = await UserManager.setup(self._client, self._database_name)
        return self._user_manager

    def close(self):
        """Close database connection."""
        logger.info("Closing database connection")
        if self._client:
            self._client.close()
