"""User directory: login, self-service password change, and admin user management."""

import logging
import secrets
import sys
from typing import TYPE_CHECKING

from app.core.errors import Conflict, InvalidInput, NotFound, Unauthorized
from app.core.security import (
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    PasswordHasher,
    TokenService,
)
from app.models import User
from app.services.user_store import UNSET, UserStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"

# Same message for unknown username and wrong password (no username enumeration).
INVALID_CREDENTIALS = "Invalid username or password"


def _validate_new_password(password: str | None, message: str) -> str:
    if not password or len(password) < PASSWORD_MIN_LEN:
        raise InvalidInput(message)
    return password


class UserDirectory:
    """Business rules for users; composes the store, the password hasher and the token service."""

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        # Compared against when the username is unknown so both failure paths cost one bcrypt check.
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    def login(self, username: str, password: str) -> tuple[str, User]:
        """Return (token, user) for valid credentials; raise Unauthorized otherwise."""
        try:
            user = self.store.find_by_username(username)
        except NotFound:
            self.hasher.verify(password, self._dummy_hash)
            logger.info("Login failed", extra={"login_status": "failure"})
            raise Unauthorized(INVALID_CREDENTIALS) from None
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed", extra={"login_status": "failure"})
            raise Unauthorized(INVALID_CREDENTIALS)
        token = self.tokens.issue(user)
        logger.info("Login succeeded", extra={"login_status": "success", "user_id": user.id})
        return token, user

    def get_user(self, user_id: str) -> User:
        return self.store.find_by_id(user_id)

    def change_own_password(self, principal_id: str, current_password: str, new_password: str) -> User:
        """Change the caller's own password after checking the current one."""
        _validate_new_password(
            new_password, f"New password must be at least {PASSWORD_MIN_LEN} characters"
        )
        user = self.store.find_by_id(principal_id)
        if not self.hasher.verify(current_password or "", user.password_hash):
            raise Unauthorized("Current password is incorrect")
        updated = self.store.update_fields(user.id, password_hash=self.hasher.hash(new_password))
        logger.info("Password changed", extra={"user_id": user.id})
        return updated

    def list_users(self) -> list[User]:
        return self.store.list_all()

    def create_user(
        self,
        username: str,
        email: str | None,
        password: str,
        is_admin: bool = False,
    ) -> User:
        """Create a user; raises InvalidInput for bad fields and Conflict for a taken username."""
        username = (username or "").strip()
        if not username or not password:
            raise InvalidInput("Username and password required")
        if len(username) > USERNAME_MAX_LEN:
            raise InvalidInput("Invalid username length")
        _validate_new_password(password, f"Password must be at least {PASSWORD_MIN_LEN} characters")
        user = User(
            username=username,
            email=email or None,
            password_hash=self.hasher.hash(password),
            is_admin=bool(is_admin),
        )
        user_id = self.store.insert(user)
        logger.info(
            "User created",
            extra={"user_id": user_id, "username": username, "is_admin": bool(is_admin)},
        )
        return self.store.find_by_id(user_id)

    def update_user(
        self,
        user_id: str,
        *,
        email: str | None = None,
        password: str | None = None,
        is_admin: bool | None = None,
    ) -> User:
        """
        Update email, password and/or admin flag; omitted (None) fields are left unchanged.
        An empty password string is treated as omitted and an empty email clears it.
        updated_at is always refreshed.
        """
        changes: dict[str, object] = {
            "email": UNSET if email is None else (email or None),
            "is_admin": UNSET if is_admin is None else is_admin,
            "password_hash": UNSET,
        }
        if password:
            _validate_new_password(password, f"Password must be at least {PASSWORD_MIN_LEN} characters")
            changes["password_hash"] = self.hasher.hash(password)
        user = self.store.update_fields(user_id, **changes)
        logger.info(
            "User updated",
            extra={
                "user_id": user_id,
                "fields": sorted(k for k, v in changes.items() if v is not UNSET),
            },
        )
        return user

    def delete_user(self, user_id: str) -> None:
        """Delete a user; the last remaining admin cannot be deleted (Forbidden)."""
        self.store.delete(user_id, protect_last_admin=True)
        logger.info("User deleted", extra={"user_id": user_id})


def bootstrap_default_admin(directory: UserDirectory, settings: "Settings") -> User | None:
    """
    Create the default administrator when the store is empty. Idempotent.

    The password comes from DEFAULT_ADMIN_PASSWORD; when unset a random one is generated
    and printed once to stderr (never to the log) so the operator can log in and change it.
    Returns the created user, or None when users already exist.
    """
    if directory.store.count_all() > 0:
        return None

    generated = settings.DEFAULT_ADMIN_PASSWORD is None
    if generated:
        password = secrets.token_urlsafe(18)
    else:
        password = settings.DEFAULT_ADMIN_PASSWORD.get_secret_value()

    try:
        user = directory.create_user(DEFAULT_ADMIN_USERNAME, None, password, is_admin=True)
    except Conflict:
        logger.info("Default admin already created by another process; skipping.")
        return None

    if generated:
        print(
            f"Default admin user '{DEFAULT_ADMIN_USERNAME}' password: {password}",
            file=sys.stderr,
            flush=True,
        )
        logger.warning(
            "Created default admin user '%s' with a generated password printed to stderr "
            "(change it immediately via POST /auth/change-password)",
            DEFAULT_ADMIN_USERNAME,
        )
    else:
        logger.warning(
            "Created default admin user '%s' from DEFAULT_ADMIN_PASSWORD; change it after first login.",
            DEFAULT_ADMIN_USERNAME,
        )
    return user
