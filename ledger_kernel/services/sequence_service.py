"""
SequenceService -- per-tenant monotonic counters via locked rows.

Responsibility:
    Hands out entry numbers ("journal_number:<period>") and the per-tenant
    creation order ("journal_entry").  Uses the sequence_counters table with
    row-level locking (``SELECT ... FOR UPDATE``) so two concurrent posters
    can never receive the same value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by
    JournalWriter and ReversalService.

Invariants enforced:
    - The aggregate MAX()+1 pattern is never used; the locked counter row is
      the only source of the next value.
    - The increment joins the caller's transaction: a rolled-back posting
      returns its number, a committed one never repeats it.

Failure modes:
    - IntegrityError on a concurrent first use of a counter, absorbed with a
      savepoint rollback and a locked re-read.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Transactional counters scoped to one tenant.

    Non-goals:
        - Does NOT commit; the caller owns the transaction.

    Usage:
        seq = SequenceService(session, tenant_id).next_value("journal_entry")
    """

    JOURNAL_ENTRY = "journal_entry"

    def __init__(self, session: Session, tenant_id: UUID):
        self._session = session
        self._tenant_id = tenant_id

    @staticmethod
    def number_sequence(period_id: UUID) -> str:
        """Counter name for entry numbers inside one period."""
        return f"journal_number:{period_id}"

    def _locked(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(
                SequenceCounter.tenant_id == self._tenant_id,
                SequenceCounter.name == sequence_name,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row, increment it and return the new value.

        Preconditions:
            - The caller is inside an active transaction.
        Postconditions:
            - Returns an int > 0, strictly greater than every value
              previously handed out for (tenant, sequence_name).
            - The counter row stays locked until the transaction ends.
        """
        counter = self._locked(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    tenant_id=self._tenant_id,
                    name=sequence_name,
                    current_value=1,
                )
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
                counter = self._locked(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing (None if never used)."""
        counter = self._session.execute(
            select(SequenceCounter).where(
                SequenceCounter.tenant_id == self._tenant_id,
                SequenceCounter.name == sequence_name,
            )
        ).scalar_one_or_none()
        return counter.current_value if counter else None
