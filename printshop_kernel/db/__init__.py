"""Database layer - engine, declarative base and session scope."""

from printshop_kernel.db.base import Base, Identifier, TrackedBase
from printshop_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    reset_engine,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "Identifier",
]
