"""
SequenceService -- counter advance for document numbering.

Responsibility:
    Advances the keyed counter row behind every order and budget number.
    The advance is one serialized step: the counter row is read under
    ``SELECT ... FOR UPDATE`` and written back with a compare-and-swap
    ``UPDATE ... WHERE current_value = :seen``.  Reading the largest issued
    number and adding one is never done.

Architecture position:
    Kernel > Services.  Flush-only; ``SequenceAllocator`` in
    ``printshop_services`` owns the transaction and commits it on its own, so
    an issued value is never handed out twice even if the caller's later
    work rolls back.

Failure modes:
    - IntegrityError on concurrent counter creation: handled with a
      savepoint and a locked re-read.
    - SequenceExhaustedError when the next value would pass ``max_value``.
    - ConflictDetectedError if the compare-and-swap matches no row (only
      possible where row locks are not honoured).
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printshop_kernel.exceptions import ConflictDetectedError, SequenceExhaustedError
from printshop_kernel.logging_config import get_logger
from printshop_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Transactional counter advance.

    Guarantees:
        - Returned values for a key are strictly increasing and never
          repeat within committed history.
        - Values never wrap: passing ``max_value`` is an error.

    Usage:
        value = SequenceService(session).next_value("ORDER", max_value=9999)
        session.commit()
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_key: str, max_value: int | None = None) -> int:
        """
        Advance ``sequence_key`` by one and return the new value.

        Preconditions:
            - The caller is inside an active transaction.

        Raises:
            SequenceExhaustedError: The next value would exceed max_value.
            ConflictDetectedError: The compare-and-swap lost a race.
        """
        seen = self._locked_value(sequence_key)

        if seen is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_key, current_value=0))
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_key": sequence_key},
                )
                savepoint.rollback()
            seen = self._locked_value(sequence_key)
            assert seen is not None

        candidate = seen + 1
        if max_value is not None and candidate > max_value:
            logger.warning(
                "sequence_exhausted",
                extra={"sequence_key": sequence_key, "max_value": max_value},
            )
            raise SequenceExhaustedError(sequence_key, max_value)

        result = self._session.execute(
            update(SequenceCounter)
            .where(
                SequenceCounter.name == sequence_key,
                SequenceCounter.current_value == seen,
            )
            .values(current_value=candidate)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictDetectedError(
                "SequenceCounter",
                sequence_key,
                details=f"counter moved away from {seen}",
            )

        logger.debug(
            "sequence_allocated",
            extra={"sequence_key": sequence_key, "value": candidate},
        )
        return candidate

    def current_value(self, sequence_key: str) -> int | None:
        """Last issued value, or None if the key was never used."""
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_key)
        ).scalar_one_or_none()

    def _locked_value(self, sequence_key: str) -> int | None:
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_key)
            .with_for_update()
        ).scalar_one_or_none()
