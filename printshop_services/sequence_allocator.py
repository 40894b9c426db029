"""
printshop_services.sequence_allocator -- human-facing document numbers.

Responsibility:
    ``next(type_key)`` issues the next ``DocumentNumber`` for a document
    type (``ORDER``, ``BUDGET``).  Each call runs in its own session and
    commits immediately, independent of whatever the caller is doing.

Architecture position:
    Services layer.  Wraps ``printshop_kernel.services.SequenceService``
    (locked read plus compare-and-swap) with transaction ownership,
    numbering schemes and error translation.

Invariants enforced:
    - Two callers never receive the same number for the same counter key.
    - A committed number is consumed: if the caller's later work fails,
      the number is not returned to the pool and never reissued.
    - Counters never wrap.

Failure modes:
    - SequenceExhaustedError -- next value would pass the scheme maximum.
    - AllocationFailedError -- counter storage unavailable, lock timeout,
      or a lost compare-and-swap.
    - ValueError -- no numbering scheme for the requested type (caller bug).

Callers must not hold an open write transaction on the same database
while calling ``next``: on SQLite that transaction would hold the lock the
allocator is waiting for.
"""

from __future__ import annotations

from collections.abc import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_kernel.domain.numbering import (
    DEFAULT_SCHEMES,
    DocumentNumber,
    NumberingScheme,
)
from printshop_kernel.exceptions import (
    AllocationFailedError,
    ConflictDetectedError,
    SequenceExhaustedError,
)
from printshop_kernel.logging_config import get_logger
from printshop_kernel.services.sequence_service import SequenceService

logger = get_logger("services.sequence_allocator")


class SequenceAllocator:
    """Issues document numbers, one committed transaction per number."""

    ORDER = "ORDER"
    BUDGET = "BUDGET"

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        schemes: Mapping[str, NumberingScheme] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._schemes = dict(schemes or DEFAULT_SCHEMES)
        self._clock = clock or SystemClock()

    def scheme(self, type_key: str) -> NumberingScheme:
        try:
            return self._schemes[type_key]
        except KeyError:
            raise ValueError(f"No numbering scheme for document type {type_key!r}") from None

    def next(self, type_key: str) -> DocumentNumber:
        """
        Issue the next number for ``type_key``.

        Postconditions:
            The counter advance is committed before this returns.

        Raises:
            SequenceExhaustedError: counter would pass its maximum.
            AllocationFailedError: storage fault or lost race.
        """
        scheme = self.scheme(type_key)
        at = self._clock.now()
        counter_key = scheme.counter_key(at)

        session = self._session_factory()
        try:
            value = SequenceService(session).next_value(
                counter_key, max_value=scheme.effective_max
            )
            session.commit()
        except SequenceExhaustedError:
            session.rollback()
            raise
        except ConflictDetectedError as exc:
            session.rollback()
            raise AllocationFailedError(
                counter_key, "concurrent counter update", details=exc.details
            ) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "sequence_allocation_failed",
                extra={"sequence_key": counter_key},
                exc_info=True,
            )
            raise AllocationFailedError(
                counter_key, "counter storage unavailable", details=str(exc)
            ) from exc
        finally:
            session.close()

        number = scheme.render(value, at)
        logger.info(
            "document_number_issued",
            extra={
                "sequence_key": counter_key,
                "value": value,
                "numero_pedido": number.text,
            },
        )
        return number

    def current(self, type_key: str) -> int | None:
        """Last value issued for ``type_key`` in the current period."""
        scheme = self.scheme(type_key)
        session = self._session_factory()
        try:
            return SequenceService(session).current_value(
                scheme.counter_key(self._clock.now())
            )
        finally:
            session.close()
