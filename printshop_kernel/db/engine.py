"""
Engine and session management for the print-shop database.

One module-level engine and session factory, set up by
``init_engine_from_url``.  Two backends are supported:

    PostgreSQL  READ COMMITTED; every read-modify-write on a budget, order
                or sequence counter takes ``SELECT ... FOR UPDATE``.
    SQLite      Development and tests.  pysqlite's implicit transactions
                are switched off and every transaction opens with
                ``BEGIN IMMEDIATE``, so writers queue on the database lock
                (FOR UPDATE compiles to nothing there).  Foreign keys are
                enforced on every connection.

A SQLite writer that waits longer than ``sqlite_busy_timeout`` fails with
OperationalError ("database is locked").
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from printshop_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    Call ``reset_engine()`` first when re-initializing, so pooled
    connections of the old engine are released.
    """
    global _engine, _SessionFactory

    options: dict[str, Any] = {
        "echo": echo,
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
        "pool_pre_ping": True,
    }
    sqlite = database_url.startswith("sqlite")
    if sqlite:
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": sqlite_busy_timeout,
        }
    else:
        options["pool_recycle"] = pool_recycle
        options["isolation_level"] = "READ COMMITTED"

    _engine = create_engine(database_url, **options)
    if sqlite:
        _install_sqlite_locking(_engine)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
        },
    )
    return _engine


def _install_sqlite_locking(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-operation sessions; each thread opens its own."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, roll back and re-raise on
    error, close either way.

    Usage:
        with session_scope(factory) as session:
            session.add(budget)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every table registered on ``Base.metadata``."""
    from printshop_kernel.db.base import Base
    import printshop_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None
