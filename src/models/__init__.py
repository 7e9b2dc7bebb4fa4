"""Models package for shared document types."""

from .base import BaseDocument, OwnedDocument, PydanticUUID, utcnow

__all__ = [
    "BaseDocument",
    "OwnedDocument",
    "PydanticUUID",
    "utcnow",
]
