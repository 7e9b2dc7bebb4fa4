"""Password hashing and bearer token issuance."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from chat.errors import UnauthenticatedError
from database.user_store.exceptions import UserNotFoundError
from database.user_store.models.user import User
from database.user_store.user_manager import UserManager
from settings import settings


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user_id, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed bearer token for a user."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.jwt_expire_days))
    to_encode: Dict[str, Any] = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Return the user id carried by a valid token.

    Raises:
        UnauthenticatedError: if the token is malformed, badly signed or expired
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise UnauthenticatedError("Token verification failed or expired")


async def authenticate(token: Optional[str], user_manager: UserManager) -> User:
    """Resolve a bearer token to its user. Used by REST and the live channel alike."""
    if not token or token in ("null", "undefined"):
        raise UnauthenticatedError("Token missing or invalid")

    user_id = decode_access_token(token)
    try:
        return await user_manager.get_user(user_id)
    except UserNotFoundError:
        raise UnauthenticatedError("User not found for this token")
