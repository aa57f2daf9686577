"""Admin-only user management (list, create, update, delete)."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.v1.deps import Principal, get_directory, require_admin
from app.schemas.auth import (
    CreateUserRequest,
    MessageResponse,
    UpdateUserRequest,
    UserResponse,
)
from app.services.user_directory import UserDirectory

router = APIRouter()


@router.get("", response_model=list[UserResponse])
def list_users(
    _admin: Annotated[Principal, Depends(require_admin)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in directory.list_users()]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    _admin: Annotated[Principal, Depends(require_admin)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserResponse:
    """Create a user. 400 for missing/short fields, 409 if the username is taken."""
    user = directory.create_user(body.username, body.email, body.password, body.is_admin)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    body: UpdateUserRequest,
    _admin: Annotated[Principal, Depends(require_admin)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> UserResponse:
    """Update email, password and/or admin flag. Omitted fields are left unchanged."""
    user = directory.update_user(
        user_id,
        email=body.email,
        password=body.password,
        is_admin=body.is_admin,
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    _admin: Annotated[Principal, Depends(require_admin)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
) -> MessageResponse:
    """Delete a user. 404 if unknown, 403 when it is the last admin."""
    directory.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
