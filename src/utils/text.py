"""Text utility functions."""

import math

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_LENGTH = 50


def derive_title(message: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """Build a conversation title from the first characters of a message.

    Returns the default title when the message is empty or whitespace.
    """
    if not message:
        return DEFAULT_TITLE
    title = message.strip()[:max_length]
    return title or DEFAULT_TITLE


def is_blank(text: str) -> bool:
    return not text or not text.strip()


def estimate_tokens(text: str) -> int:
    """Rough token count for a completion: one token per four characters."""
    return math.ceil(len(text) / 4)
