"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ChangePasswordRequest,
    CreateUserRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    UpdateUserRequest,
    UserResponse,
)
from app.schemas.health import HealthResponse

__all__ = [
    "ChangePasswordRequest",
    "CreateUserRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "UpdateUserRequest",
    "UserResponse",
]
