"""Models for user store."""

from database.user_store.models.user import User

__all__ = ["User"]
