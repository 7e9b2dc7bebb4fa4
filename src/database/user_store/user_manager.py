"""Manager for user accounts."""

from typing import Optional
from uuid import UUID

import pymongo
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError

from database.user_store.exceptions import UserExistsError, UserNotFoundError, UserStoreError
from database.user_store.models.user import User
from utils.logging import logger


class UserManager:
    """Manager for user accounts."""

    DATABASE: str = "chatsync"
    COLLECTION_USERS: str = "users"

    def __init__(self, mongodb_client: AsyncIOMotorClient, database_name: Optional[str] = None) -> None:
        self.client = mongodb_client
        self._users: AsyncIOMotorCollection = self.client.get_database(database_name or self.DATABASE).get_collection(self.COLLECTION_USERS)

    @classmethod
    async def setup(cls, mongodb_client: AsyncIOMotorClient, database_name: Optional[str] = None) -> "UserManager":
        """Factory method to create a UserManager with its unique indexes."""
        try:
            manager = cls(mongodb_client, database_name)
            await manager._users.create_indexes(
                [
                    pymongo.IndexModel([("email", 1)], unique=True, background=True),
                    pymongo.IndexModel([("username", 1)], unique=True, background=True),
                ]
            )
            return manager
        except Exception as e:
            raise UserStoreError(f"Failed to setup indexes: {str(e)}")

    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        """Registers a new user. Email and username must both be unused."""
        email = email.strip().lower()
        try:
            existing = await self._users.find_one({"$or": [{"email": email}, {"username": username}]}, projection={"_id": 1})
            if existing:
                raise UserExistsError("User already exists with this email or username")

            user = User(username=username, email=email, password_hash=password_hash)
            await self._users.insert_one(user.model_dump(by_alias=True))
            logger.info(f"User registered with ID: {user.id}")
            return user

        except UserExistsError:
            raise
        except DuplicateKeyError:
            raise UserExistsError("User already exists with this email or username")
        except Exception as e:
            raise UserStoreError(f"Failed to create user: {str(e)}")

    async def get_user(self, user_id: UUID) -> User:
        try:
            doc = await self._users.find_one({"_id": str(user_id)})
        except Exception as e:
            raise UserStoreError(f"Failed to get user: {str(e)}")
        if not doc:
            raise UserNotFoundError(f"User {user_id} not found")
        return User.model_validate(doc)

    async def get_user_by_email(self, email: str) -> User:
        try:
            doc = await self._users.find_one({"email": email.strip().lower()})
        except Exception as e:
            raise UserStoreError(f"Failed to get user: {str(e)}")
        if not doc:
            raise UserNotFoundError("User not found")
        return User.model_validate(doc)
