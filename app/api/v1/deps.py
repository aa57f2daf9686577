"""Request dependencies: application context, and the require_auth / require_admin guards."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from app.core.context import AppContext
from app.core.security import TokenError
from app.services.user_directory import UserDirectory


@dataclass(frozen=True)
class Principal:
    """Authenticated identity taken from a verified bearer token."""

    subject_id: str
    username: str
    is_admin: bool


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


def get_directory(ctx: Annotated[AppContext, Depends(get_context)]) -> UserDirectory:
    return ctx.directory


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_auth(
    ctx: Annotated[AppContext, Depends(get_context)],
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """
    Dependency: require 'Authorization: Bearer <token>' with a valid, unexpired token.

    The header must be exactly two space-separated parts with the literal scheme
    'Bearer'. Raises 401 otherwise. The token is not checked against the store,
    so it stays valid until expiry even if the user changes.
    """
    if not authorization:
        raise _unauthorized("Authorization header required")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise _unauthorized("Invalid authorization header format")
    try:
        claims = ctx.tokens.verify(parts[1])
    except TokenError:
        raise _unauthorized("Invalid or expired token")
    return Principal(
        subject_id=claims.subject_id,
        username=claims.username,
        is_admin=claims.is_admin,
    )


def require_admin(
    principal: Annotated[Principal, Depends(require_auth)],
) -> Principal:
    """Dependency: require an authenticated principal with the admin flag. Raises 403 for non-admin."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal
