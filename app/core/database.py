"""Database engine and session factory construction."""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings


def _serialize_sqlite_transactions(engine: Engine) -> None:
    """
    Start every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers its own BEGIN until the first write, so a read-then-write
    transaction (the last-admin check) would not hold the write lock while reading.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(settings: Settings) -> Engine:
    """
    Create the SQLAlchemy engine with bounded connect, pool and statement timeouts.

    In-memory SQLite shares a single connection across threads (used by tests and local runs).
    SQLite transactions take the database write lock up front; the connect timeout bounds the wait.
    """
    url = settings.DATABASE_URL
    timeout = settings.DB_TIMEOUT_SEC
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=settings.DEBUG, **kwargs)
        _serialize_sqlite_transactions(engine)
        return engine
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=timeout,
        echo=settings.DEBUG,
        connect_args={
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        },
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Rows are handed back to services after commit, so keep attributes loaded.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def check_db_connected(engine: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
