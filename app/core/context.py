"""Application context: every long-lived collaborator, built once at startup and injected."""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from app.core.config import Settings
from app.core.database import build_engine, build_session_factory
from app.core.security import PasswordHasher, TokenService
from app.services.upstream_proxy import UpstreamProxy, build_upstream_proxies
from app.services.user_directory import UserDirectory
from app.services.user_store import UserStore


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    engine: Engine
    store: UserStore
    hasher: PasswordHasher
    tokens: TokenService
    directory: UserDirectory
    upstreams: dict[str, UpstreamProxy]

    def close(self) -> None:
        self.engine.dispose()


def build_context(settings: Settings) -> AppContext:
    """Wire store, hasher, token service and directory from validated settings."""
    engine = build_engine(settings)
    store = UserStore(engine, build_session_factory(engine))
    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    tokens = TokenService(
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
    return AppContext(
        settings=settings,
        engine=engine,
        store=store,
        hasher=hasher,
        tokens=tokens,
        directory=UserDirectory(store, hasher, tokens),
        upstreams=build_upstream_proxies(settings),
    )
