"""Request/response schemas for auth and user-management endpoints."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """JSON uses camelCase (isAdmin, currentPassword); Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Request fields default to "" so that missing and empty values are reported the
# same way (400 with a specific message) by the service layer.


class LoginRequest(_CamelModel):
    """Credentials for login."""

    username: str = Field(default="", max_length=255, description="Username")
    password: str = Field(default="", max_length=128, description="Password")


class UserResponse(_CamelModel):
    """User as returned to clients (never includes the password hash)."""

    id: str
    username: str
    email: str | None = None
    is_admin: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class LoginResponse(_CamelModel):
    """Bearer token returned after successful login, plus the user it belongs to."""

    token: str = Field(..., description="JWT access token; send as 'Authorization: Bearer <token>'")
    user: UserResponse


class ChangePasswordRequest(_CamelModel):
    current_password: str = Field(default="", max_length=128)
    new_password: str = Field(default="", max_length=128)


class CreateUserRequest(_CamelModel):
    """Admin request to create a user."""

    username: str = Field(default="", max_length=255)
    email: str | None = Field(default=None, max_length=255)
    password: str = Field(default="", max_length=128)
    is_admin: bool = False


class UpdateUserRequest(_CamelModel):
    """Admin request to update a user; omitted fields are left unchanged."""

    email: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)
    is_admin: bool | None = None


class MessageResponse(BaseModel):
    message: str
