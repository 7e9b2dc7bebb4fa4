"""API dependencies."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.security import authenticate
from chat.coordinator import MessageCoordinator
from chat.errors import NotFoundError, UnauthenticatedError
from chat.presence import RoomRegistry
from database.manager import DatabaseManager
from database.user_store.models.user import User
from database.user_store.user_manager import UserManager

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Process-wide components shared by every request and live connection."""

    user_manager: UserManager
    coordinator: MessageCoordinator
    rooms: RoomRegistry
    database_manager: Optional[DatabaseManager] = None

    def close(self) -> None:
        self.rooms.close()
        self.coordinator.session_cache.clear()
        if self.database_manager is not None:
            self.database_manager.close()


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_user_manager(services: Services = Depends(get_services)) -> UserManager:
    return services.user_manager


async def get_coordinator(services: Services = Depends(get_services)) -> MessageCoordinator:
    return services.coordinator


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    user_manager: UserManager = Depends(get_user_manager),
) -> User:
    """Resolve the bearer credential to the calling user."""
    if credentials is None:
        raise UnauthenticatedError("No token provided or invalid header format")
    return await authenticate(credentials.credentials, user_manager)


def parse_conversation_id(conversation_id: str) -> UUID:
    """Malformed ids are reported the same way as unknown ones."""
    try:
        return UUID(conversation_id)
    except (AttributeError, TypeError, ValueError):
        raise NotFoundError()
