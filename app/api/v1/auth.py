"""Login, token verification, current user, and self-service password change."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.deps import Principal, get_directory, require_auth
from app.core.errors import InvalidInput
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    UserResponse,
)
from app.services.user_directory import UserDirectory

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns a JWT and the user.
    Include the token in the Authorization header as: Bearer <token>
    """
    if not body.username or not body.password:
        raise InvalidInput("Username and password required")
    token, user = directory.login(body.username, body.password)
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.get("/verify", response_model=UserResponse)
def verify_token(
    principal: Annotated[Principal, Depends(require_auth)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserResponse:
    """Check that the bearer token is valid and return the user it was issued to."""
    return UserResponse.model_validate(directory.get_user(principal.subject_id))


@router.get("/me", response_model=UserResponse)
def get_me(
    principal: Annotated[Principal, Depends(require_auth)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserResponse:
    return UserResponse.model_validate(directory.get_user(principal.subject_id))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    principal: Annotated[Principal, Depends(require_auth)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> MessageResponse:
    if not body.current_password or not body.new_password:
        raise InvalidInput("Current password and new password required")
    directory.change_own_password(principal.subject_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
