"""App settings."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from constants import (
    CORS_ORIGINS,
    DATABASE_CONNECTION_STRING,
    DATABASE_NAME,
    ENVIRONMENT,
    HISTORY_LIMIT,
    IS_LOCAL,
    JWT_EXPIRE_DAYS,
    JWT_SECRET,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    LOGGING_LEVEL,
    SESSION_CACHE_MAX_ENTRIES,
    SESSION_CACHE_TTL_SECONDS,
)


class Settings(BaseSettings):
    """Service settings."""

    # Defaults already come from the environment via constants
    model_config = SettingsConfigDict(env_prefix="CHATSYNC_")

    # API settings
    api_title: str = "Chatsync API"
    api_version: str = "1.0.0"
    api_description: str = "Multi-turn LLM chat over REST and a live WebSocket channel"
    host: str = "0.0.0.0"
    port: int = 8000
    is_local: bool = IS_LOCAL
    environment: str = ENVIRONMENT
    cors_origins: List[str] = CORS_ORIGINS

    # Logging
    logging_level: int = LOGGING_LEVEL

    # Database settings
    database_connection_string: str = DATABASE_CONNECTION_STRING
    database_name: str = DATABASE_NAME

    # Credentials
    jwt_secret: str = JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = JWT_EXPIRE_DAYS

    # LLM settings
    llm_provider: str = LLM_PROVIDER
    llm_model: str = LLM_MODEL
    llm_temperature: float = LLM_TEMPERATURE
    llm_max_tokens: int = LLM_MAX_TOKENS
    llm_timeout_seconds: float = LLM_TIMEOUT_SECONDS

    # Conversation settings
    history_limit: int = HISTORY_LIMIT
    session_cache_max_entries: int = SESSION_CACHE_MAX_ENTRIES
    session_cache_ttl_seconds: float = SESSION_CACHE_TTL_SECONDS


settings = Settings()
