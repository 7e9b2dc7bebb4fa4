"""Registration and login."""

from fastapi import APIRouter, Depends, status

from api.dependencies import get_user_manager
from api.models import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from api.security import create_access_token, hash_password, verify_password
from chat.errors import InternalError, UnauthenticatedError, ValidationError
from database.user_store.exceptions import UserExistsError, UserNotFoundError, UserStoreError
from database.user_store.user_manager import UserManager
from utils.logging import logger

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, user_manager: UserManager = Depends(get_user_manager)) -> AuthResponse:
    """Create an account and return a bearer token for it."""
    try:
        user = await user_manager.create_user(request.username.strip(), request.email, hash_password(request.password))
    except UserExistsError as e:
        raise ValidationError(str(e))
    except UserStoreError as e:
        logger.error(f"Failed to register user: {str(e)}")
        raise InternalError()

    return AuthResponse(user=UserResponse.from_user(user), token=create_access_token(user.id))


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, user_manager: UserManager = Depends(get_user_manager)) -> AuthResponse:
    """Exchange email and password for a bearer token."""
    try:
        user = await user_manager.get_user_by_email(request.email)
    except UserNotFoundError:
        raise UnauthenticatedError("Invalid credentials")
    except UserStoreError as e:
        logger.error(f"Failed to load user for login: {str(e)}")
        raise InternalError()

    if not verify_password(request.password, user.password_hash):
        raise UnauthenticatedError("Invalid credentials")

    logger.info(f"User {user.id} logged in")
    return AuthResponse(user=UserResponse.from_user(user), token=create_access_token(user.id))
