"""Credential store: persistence of User rows behind a small, timeout-bounded API."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import Conflict, Forbidden, NotFound, ServiceUnavailable
from app.models import Base, User
from app.models.user import utcnow

logger = logging.getLogger(__name__)

# Sentinel for "leave this column unchanged" in update_fields (None is a valid email).
UNSET = object()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class UserStore:
    """
    All reads and writes of the users table.

    Every public method runs in its own short transaction. Infrastructure failures
    (connection refused, pool or statement timeout) surface as ServiceUnavailable.
    """

    def __init__(self, engine: Engine, session_factory: sessionmaker[Session]) -> None:
        self._engine = engine
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except (PoolTimeoutError, DBAPIError) as e:
            session.rollback()
            logger.error("Database operation failed: %s", type(e).__name__)
            raise ServiceUnavailable("Database unavailable") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_schema(self) -> None:
        """Create the users table and its unique username index if they do not exist."""
        try:
            Base.metadata.create_all(self._engine)
        except (PoolTimeoutError, DBAPIError) as e:
            raise ServiceUnavailable("Database unavailable") from e

    def find_by_username(self, username: str) -> User:
        with self._session() as session:
            user = session.scalars(select(User).where(User.username == username)).first()
        if user is None:
            raise NotFound("User not found")
        return user

    def find_by_id(self, user_id: str) -> User:
        with self._session() as session:
            user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def list_all(self) -> list[User]:
        with self._session() as session:
            return list(session.scalars(select(User).order_by(User.created_at, User.username)))

    def count_all(self) -> int:
        with self._session() as session:
            return session.scalar(select(func.count()).select_from(User)) or 0

    def count_admins(self) -> int:
        with self._session() as session:
            return (
                session.scalar(
                    select(func.count()).select_from(User).where(User.is_admin.is_(True))
                )
                or 0
            )

    def insert(self, user: User) -> str:
        """
        Insert a new user and return its id.
        Raises Conflict when the username is taken (unique constraint, no pre-check).
        """
        now = utcnow()
        user.created_at = user.created_at or now
        user.updated_at = user.updated_at or now
        try:
            with self._session() as session:
                session.add(user)
                session.flush()
                user_id = user.id
        except IntegrityError as e:
            raise Conflict("Username already exists") from e
        return user_id

    def update_fields(
        self,
        user_id: str,
        *,
        email: object = UNSET,
        password_hash: object = UNSET,
        is_admin: object = UNSET,
    ) -> User:
        """
        Update only the given columns; updated_at is always refreshed and never moves backwards.
        Raises NotFound for an unknown id.
        """
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            if email is not UNSET:
                user.email = email
            if password_hash is not UNSET:
                user.password_hash = password_hash
            if is_admin is not UNSET:
                user.is_admin = bool(is_admin)
            now = utcnow()
            previous = _as_utc(user.updated_at) if user.updated_at else now
            user.updated_at = max(now, previous)
        return user

    def delete(self, user_id: str, *, protect_last_admin: bool = False) -> None:
        """
        Delete a user. Raises NotFound for an unknown id.

        With protect_last_admin, the admin count check and the delete happen in one
        transaction holding row locks on every admin (the whole database on SQLite,
        via BEGIN IMMEDIATE), so two concurrent deletions of the last two admins
        cannot both succeed. Raises Forbidden for the last admin.
        """
        admin_ids: list[str] = []
        with self._session() as session:
            if protect_last_admin:
                admin_ids = list(
                    session.scalars(
                        select(User.id).where(User.is_admin.is_(True)).with_for_update()
                    )
                )
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            if protect_last_admin and user.is_admin and len(admin_ids) <= 1:
                raise Forbidden("Cannot delete the last admin user")
            session.delete(user)
