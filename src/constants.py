"""Constants for the application."""

import logging
import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "t", "yes", "y")


def _get_list(name: str, default: str = "") -> List[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


# App settings
IS_LOCAL = _get_bool("IS_LOCAL")
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOGGING_LEVEL = getattr(logging, os.environ.get("LOGGING_LEVEL", "INFO").upper(), logging.INFO)
CORS_ORIGINS = _get_list("CORS_ORIGINS", "http://localhost:5173")

# MongoDB settings
DATABASE_CONNECTION_STRING = os.environ.get("DATABASE_CONNECTION_STRING", "mongodb://localhost:27017")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "chatsync")

# Credential settings
JWT_SECRET = os.environ.get("JWT_SECRET", "change-me")
JWT_EXPIRE_DAYS = int(os.environ.get("JWT_EXPIRE_DAYS", "30"))

# LLM settings
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "openai")
LLM_MODEL = os.environ.get("LLM_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "2048"))
LLM_TIMEOUT_SECONDS = float(os.environ.get("LLM_TIMEOUT_SECONDS", "30"))

# Conversation settings
HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", "20"))
SESSION_CACHE_MAX_ENTRIES = int(os.environ.get("SESSION_CACHE_MAX_ENTRIES", "1000"))
SESSION_CACHE_TTL_SECONDS = float(os.environ.get("SESSION_CACHE_TTL_SECONDS", "3600"))
