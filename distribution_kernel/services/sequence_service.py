"""
SequenceService -- monotonic document numbers via locked counter rows.

Responsibility:
    Hands out order and receipt numbers (``PD-2024-000001``,
    ``RB-2024-000001``).  Each (prefix, year) pair has its own counter row,
    locked with ``SELECT ... FOR UPDATE`` while it is incremented.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by OrderAllocatorService and ReceiptFactory.

Invariants enforced:
    Numbers are unique and strictly increasing per sequence.  The
    aggregate-max-plus-one pattern is never used; the locked counter row
    is the sole source of truth.  The increment is only visible after the
    caller's transaction commits, and a rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence (always > 0).

        Locks the sequence row (or creates it on first use), increments it
        and returns the new value.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use.  Another transaction may create the row at the same
            # time, so insert inside a savepoint and fall back to the lock.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_number(self, prefix: str, year: int, width: int = 6) -> str:
        """Next document number for ``prefix`` in ``year``: PREFIX-YYYY-NNNNNN."""
        value = self.next_value(f"{prefix}:{year}")
        return f"{prefix}-{year}-{value:0{width}d}"

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
