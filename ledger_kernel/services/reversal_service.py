"""
ReversalService -- undoing journal entries without rewriting history.

Responsibility:
    Reverses posted entries with a contra-entry and cancels drafts.  Both
    operations leave the original row in place with status REVERSED.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes JournalWriter (numbers,
    DTOs) and PeriodService (period resolution and lock checks).

Invariants enforced:
    - A posted entry is reversed at most once; its lines never change.
    - The contra-entry swaps debit and credit on every line, is POSTED,
      carries origin "reversal" and reversal_of_id, and takes a fresh number
      from the period of the reversal date.  Original plus contra-entry net
      to zero on every account.
    - Reversal and cancellation require settled_amount == 0.
    - A cancelled draft keeps its number; the number is never reissued.

Failure modes:
    - EntryNotFoundError: No such entry in the tenant.
    - EntryNotPostedError: reverse() on a draft.
    - EntryNotDraftError: cancel() on a posted entry.
    - EntryAlreadyReversedError: Entry already reversed or cancelled.
    - EntrySettledError: Settlements recorded against the entry.
    - LockedPeriodError / PeriodNotFoundError: Target period unusable.

Audit relevance:
    Both entries stay visible in every ledger; balance queries include
    POSTED and REVERSED statuses so the pair nets out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import JournalEntryInfo
from ledger_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryNotDraftError,
    EntryNotPostedError,
    EntrySettledError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.journal_writer import JournalWriter, entry_to_info
from ledger_kernel.services.period_service import PeriodService

logger = get_logger("services.reversal")

REVERSAL_ORIGIN = "reversal"


@dataclass(frozen=True)
class ReversalResult:
    """Immutable result of a successful reversal."""

    original: JournalEntryInfo
    reversal: JournalEntryInfo

    @property
    def original_entry_id(self) -> UUID:
        return self.original.id

    @property
    def reversal_entry_id(self) -> UUID:
        return self.reversal.id


class ReversalService(BaseService[JournalEntry]):
    """
    Reverses posted entries and cancels drafts.

    Non-goals:
        - Does NOT call session.commit() -- caller controls boundaries.
        - Does NOT handle partial (line-level) reversals.
    """

    def __init__(self, session, tenant_id: UUID, clock: Clock | None = None):
        super().__init__(session, tenant_id, clock)
        self._writer = JournalWriter(session, tenant_id, self.clock)
        self._periods = PeriodService(session, tenant_id, self.clock)

    def _check_reversible(self, entry: JournalEntry) -> None:
        if entry.status == JournalEntryStatus.REVERSED:
            raise EntryAlreadyReversedError(
                str(entry.id),
                str(entry.reversed_by_id) if entry.reversed_by_id else None,
            )
        if entry.settled_amount != ZERO:
            raise EntrySettledError(str(entry.id), str(entry.settled_amount))

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> ReversalResult:
        """
        Reverse a posted entry with a contra-entry.

        Args:
            entry_id: Posted entry to undo.
            actor_id: Who is reversing.
            reversal_date: Date of the contra-entry; defaults to the
                original entry date.
            reason: Free text stored in the contra-entry narration.
        """
        entry = self._writer.lock_entry(entry_id)
        if entry.status == JournalEntryStatus.DRAFT:
            raise EntryNotPostedError(str(entry_id), entry.status)
        self._check_reversible(entry)

        effective_date = reversal_date or entry.entry_date
        # The original's period must still be open too
        period, _ = self._periods.resolve_many_for_write(
            [(effective_date, None), (entry.entry_date, entry.period_id)]
        )

        seq, entry_number = self._writer.allocate_number(period.id, period.period_code)
        narration = f"Reversal of {entry.entry_number}"
        if reason:
            narration = f"{narration}: {reason}"

        now = self.clock.now()
        contra = JournalEntry(
            tenant_id=self.tenant_id,
            period_id=period.id,
            entry_number=entry_number,
            seq=seq,
            entry_date=effective_date,
            posting_date=self.clock.today(),
            posted_at=now,
            narration=narration,
            origin=REVERSAL_ORIGIN,
            source_reference=entry.entry_number,
            status=JournalEntryStatus.POSTED.value,
            total_debit=entry.total_credit,
            total_credit=entry.total_debit,
            settled_amount=ZERO,
            reversal_of_id=entry.id,
            created_by_id=actor_id,
        )
        contra.lines = [
            JournalLine(
                tenant_id=self.tenant_id,
                account_id=line.account_id,
                party_id=line.party_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
                line_seq=line.line_seq,
                created_by_id=actor_id,
            )
            for line in entry.lines
        ]
        self.session.add(contra)
        self.session.flush()

        entry.status = JournalEntryStatus.REVERSED.value
        entry.reversed_by_id = contra.id
        entry.reversed_at = now
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "journal_entry_reversed",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "reversal_entry_id": str(contra.id),
                "reversal_number": entry_number,
                "reversal_date": str(effective_date),
            },
        )
        return ReversalResult(original=entry_to_info(entry), reversal=entry_to_info(contra))

    def cancel(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """
        Abandon a draft: its lines are removed and the status becomes
        REVERSED.  The entry number stays allocated.
        """
        entry = self._writer.lock_entry(entry_id)
        if entry.status == JournalEntryStatus.POSTED:
            raise EntryNotDraftError(str(entry_id), entry.status)
        self._check_reversible(entry)
        self._periods.resolve_for_write(entry.entry_date, entry.period_id)

        # Lines go while the stored status is still DRAFT
        entry.lines.clear()
        self.session.flush()

        entry.status = JournalEntryStatus.REVERSED.value
        entry.reversed_at = self.clock.now()
        entry.total_debit = ZERO
        entry.total_credit = ZERO
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "journal_draft_cancelled",
            extra={"entry_id": str(entry_id), "entry_number": entry.entry_number},
        )
        return entry_to_info(entry)
