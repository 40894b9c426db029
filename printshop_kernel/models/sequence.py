"""
Module: printshop_kernel.models.sequence
Responsibility: Keyed counter rows backing document numbering.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per counter key (``ORDER``, ``BUDGET``, or ``ORDER:202510``
      when counters reset each period).
    - current_value only ever increases, and only through
      SequenceService.next_value.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from printshop_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row holds the last value issued for its key.  Row-level locking
    plus a compare-and-swap update keep the value strictly increasing under
    concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
