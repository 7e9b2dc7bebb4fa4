"""User model."""

from typing import List

from pydantic import Field

from models.base import BaseDocument, PydanticUUID


class User(BaseDocument):
    """Registered account. Owns the conversations listed in ``conversation_ids``."""

    username: str = Field(..., description="Display name, unique")
    email: str = Field(..., description="Login email, unique")
    password_hash: str = Field(..., description="bcrypt hash of the password")
    conversation_ids: List[PydanticUUID] = Field(default_factory=list, description="Conversations owned by the user")

    def public_view(self) -> dict:
        return {"id": str(self.id), "username": self.username, "email": self.email}
