"""Exceptions for user store operations."""


class UserStoreError(Exception):
    """Base exception for user store errors."""

    pass


class UserNotFoundError(UserStoreError):
    """Raised when a user is not found."""

    pass


class UserExistsError(UserStoreError):
    """Raised when the email or username is already registered."""

    pass
