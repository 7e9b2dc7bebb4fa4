"""Shared fixtures wiring the chat core against in-memory stores."""

import pytest

from api.dependencies import Services
from api.security import hash_password
from chat.coordinator import MessageCoordinator
from chat.gateway import CompletionGateway
from chat.presence import RoomRegistry
from chat.session_cache import SessionCache
from database.user_store.models.user import User
from tests.fakes import InMemoryConversationStore, InMemoryUserStore, ScriptedChatModel


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def alice(user_store: InMemoryUserStore) -> User:
    user = User(username="alice", email="alice@example.com", password_hash=hash_password("wonderland"))
    user_store.users[str(user.id)] = user
    return user


@pytest.fixture
def bob(user_store: InMemoryUserStore) -> User:
    user = User(username="bob", email="bob@example.com", password_hash=hash_password("builder"))
    user_store.users[str(user.id)] = user
    return user


@pytest.fixture
def chat_model() -> ScriptedChatModel:
    return ScriptedChatModel()


@pytest.fixture
def session_cache() -> SessionCache:
    return SessionCache(max_entries=100, ttl_seconds=None)


@pytest.fixture
def gateway(chat_model: ScriptedChatModel, session_cache: SessionCache) -> CompletionGateway:
    return CompletionGateway(chat_model, session_cache, timeout_seconds=1.0)


@pytest.fixture
def rooms() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def coordinator(store, gateway, rooms, session_cache) -> MessageCoordinator:
    return MessageCoordinator(store, gateway, rooms, session_cache, history_limit=20)


@pytest.fixture
def services(user_store, coordinator, rooms) -> Services:
    return Services(user_manager=user_store, coordinator=coordinator, rooms=rooms)
