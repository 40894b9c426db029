"""
Declarative base for the print-shop schema.

Every table gets a storage-assigned integer ``id``; budgets and orders are
addressed by it throughout the workflow API.  Prices are Numeric(14, 2)
and every timestamp column is timezone-aware.  Nothing in this module
imports from models, domain or services.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns
Identifier = BigInteger().with_variant(Integer(), "sqlite")

Money = Numeric(14, 2)
Timestamp = DateTime(timezone=True)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Money,
        datetime: Timestamp,
        int: Identifier,
    }

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)


class TrackedBase(Base):
    """Adds server-side ``created_at``/``updated_at`` stamps to a table."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        Timestamp, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        Timestamp, server_default=func.now(), onupdate=func.now(), nullable=False
    )
