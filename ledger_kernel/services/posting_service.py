"""
PostingService -- the transactional entry point for journal writes.

Responsibility:
    Wraps every create / post / reverse / cancel in one savepoint so the
    header, its lines, the number and the counter increment are persisted
    together or not at all.  Commits when ``auto_commit`` is on.

Architecture position:
    Kernel > Services -- facade over JournalWriter and ReversalService.
    Collaborators (invoicing, payments, recurring entries) call this class;
    they never touch the ORM directly.

Invariants enforced:
    - Atomicity: a failed call leaves no partial rows and no consumed
      number, because the savepoint is rolled back before the error
      propagates.
    - Every log record emitted inside a call carries tenant_id, actor_id and
      a fresh correlation_id.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from datetime import date
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import JournalEntryInfo, LineSpec
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.journal_writer import JournalWriter
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService

logger = get_logger("services.posting")

T = TypeVar("T")


class PostingService:
    """
    Atomic posting facade for one tenant.

    Contract:
        Each public method is one unit of work.  With auto_commit=False (the
        default) the caller's transaction decides; the savepoint still makes
        the unit all-or-nothing inside it.

    Usage:
        service = PostingService(session, tenant_id, clock, auto_commit=True)
        entry = service.submit(
            entry_date=date(2024, 4, 10),
            narration="Office rent",
            origin="manual",
            lines=[LineSpec.dr(rent_id, "25000"), LineSpec.cr(bank_id, "25000")],
            actor_id=actor_id,
            post=True,
        )
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        auto_commit: bool = False,
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._writer = JournalWriter(session, tenant_id, self._clock)
        self._reversals = ReversalService(session, tenant_id, self._clock)

    def _run(self, operation: str, actor_id: UUID, fn: Callable[[], T]) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            tenant_id=str(self._tenant_id),
            actor_id=str(actor_id),
        ):
            t0 = time.monotonic()
            try:
                with self._session.begin_nested():
                    result = fn()
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "posting_failed",
                    extra={
                        "operation": operation,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise
            logger.info(
                "posting_completed",
                extra={
                    "operation": operation,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def submit(
        self,
        entry_date: date,
        narration: str | None,
        origin: str,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        post: bool = False,
        period_id: UUID | None = None,
        source_reference: str | None = None,
    ) -> JournalEntryInfo:
        """
        Validate and store a transaction.

        Returns:
            The stored entry (draft, or posted when post=True).

        Raises:
            UnbalancedEntryError, InvalidAccountError, other ValidationError
            subclasses; PeriodNotFoundError, LockedPeriodError.
        """
        return self._run(
            "submit",
            actor_id,
            lambda: self._writer.create_entry(
                entry_date=entry_date,
                narration=narration,
                lines=lines,
                actor_id=actor_id,
                origin=origin,
                period_id=period_id,
                post=post,
                source_reference=source_reference,
            ),
        )

    def update_draft(
        self,
        entry_id: UUID,
        actor_id: UUID,
        entry_date: date | None = None,
        narration: str | None = None,
        lines: Sequence[LineSpec] | None = None,
    ) -> JournalEntryInfo:
        return self._run(
            "update_draft",
            actor_id,
            lambda: self._writer.update_draft(
                entry_id, actor_id, entry_date=entry_date, narration=narration, lines=lines
            ),
        )

    def post(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """Post a draft."""
        return self._run("post", actor_id, lambda: self._writer.post_entry(entry_id, actor_id))

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> ReversalResult:
        """Reverse a posted entry with a contra-entry."""
        return self._run(
            "reverse",
            actor_id,
            lambda: self._reversals.reverse(
                entry_id, actor_id, reversal_date=reversal_date, reason=reason
            ),
        )

    def cancel(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """Cancel a draft."""
        return self._run("cancel", actor_id, lambda: self._reversals.cancel(entry_id, actor_id))

    def apply_settlement(self, entry_id: UUID, amount, actor_id: UUID) -> JournalEntryInfo:
        return self._run(
            "apply_settlement",
            actor_id,
            lambda: self._writer.apply_settlement(entry_id, amount, actor_id),
        )

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo:
        return self._writer.get_entry(entry_id)
