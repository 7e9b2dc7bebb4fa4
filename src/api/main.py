"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import Services
from api.errors import register_exception_handlers
from api.routers import auth, chat, conversation, health, live
from chat.coordinator import MessageCoordinator
from chat.gateway import CompletionGateway
from chat.llm import build_chat_model
from chat.presence import RoomRegistry
from chat.session_cache import SessionCache
from database.manager import DatabaseManager
from settings import settings
from utils.logging import logger


async def build_services() -> Services:
    """Wire the process-wide components against MongoDB and the configured model."""
    database_manager = DatabaseManager(settings.database_connection_string, settings.database_name)
    conversation_db = await database_manager.setup_conversation_manager()
    user_db = await database_manager.setup_user_manager()

    session_cache = SessionCache(max_entries=settings.session_cache_max_entries, ttl_seconds=settings.session_cache_ttl_seconds)
    gateway = CompletionGateway(build_chat_model(settings), session_cache, timeout_seconds=settings.llm_timeout_seconds)
    rooms = RoomRegistry()
    coordinator = MessageCoordinator(conversation_db, gateway, rooms, session_cache, history_limit=settings.history_limit)

    return Services(user_manager=user_db, coordinator=coordinator, rooms=rooms, database_manager=database_manager)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is None:
        app.state.services = await build_services()
    logger.info(f"{settings.api_title} started ({settings.environment})")

    yield

    logger.info("Shutting down")
    app.state.services.close()


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create FastAPI application.

    Pass ``services`` to run against pre-built components instead of MongoDB.
    """
    app = FastAPI(title=settings.api_title, version=settings.api_version, description=settings.api_description, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(conversation.router)
    app.include_router(chat.router)
    app.include_router(live.router)

    return app


app = create_app()
