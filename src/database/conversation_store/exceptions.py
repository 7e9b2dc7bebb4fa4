"""Exceptions for conversation store operations."""


class ConversationStoreError(Exception):
    """Base exception for conversation store errors."""

    pass


class ConversationNotFoundError(ConversationStoreError):
    """Raised when a conversation is missing, archived, or owned by someone else."""

    pass


class InvalidConversationError(ConversationStoreError):
    """Raised when conversation data is invalid."""

    pass


class InvalidMessageError(ConversationStoreError):
    """Raised when message data is invalid."""

    pass


class DatabaseError(ConversationStoreError):
    """Raised when a database operation fails."""

    pass
