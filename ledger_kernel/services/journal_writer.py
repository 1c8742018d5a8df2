"""
JournalWriter -- validated creation, editing and posting of journal entries.

Responsibility:
    Turns a list of LineSpec into a persisted, numbered JournalEntry with
    ordered JournalLine rows.  Every check runs before any row is written.

Architecture position:
    Kernel > Services -- imperative shell.  Uses PeriodService to resolve
    and lock-check the period, SequenceService for numbers, and the pure
    amounts helpers for the balance rule.

Invariants enforced:
    - At least one line; amounts non-negative; no 0/0 line.
    - Every line hits an existing, active, leaf account of the tenant.
    - Every party referenced exists in the tenant and is active.
    - |sum(debit) - sum(credit)| < 0.01.
    - entry_number = JV/{period_code}/{NNNN} from the locked per-period
      counter, allocated in the same transaction as the insert.
    - Flush-only: never commits.

Failure modes:
    - MissingFieldError, InvalidLineError, InvalidAccountError,
      InvalidPartyError, UnbalancedEntryError (before any write).
    - PeriodNotFoundError, DateOutsidePeriodError, LockedPeriodError.
    - EntryNotFoundError, EntryNotDraftError on existing entries.

Audit relevance:
    Numbers handed out are never reused, even when the draft that received
    one is later cancelled.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.amounts import ZERO, to_decimal, within_tolerance
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import JournalEntryInfo, JournalLineInfo, LineSpec
from ledger_kernel.exceptions import (
    DateOutsidePeriodError,
    EntryNotDraftError,
    EntryNotFoundError,
    EntryNotPostedError,
    InvalidAccountError,
    InvalidLineError,
    InvalidPartyError,
    MissingFieldError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.models.party import Party
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal_writer")

ENTRY_NUMBER_PREFIX = "JV"


def format_entry_number(period_code: str, number: int) -> str:
    return f"{ENTRY_NUMBER_PREFIX}/{period_code}/{number:04d}"


def entry_to_info(entry: JournalEntry) -> JournalEntryInfo:
    """Convert an ORM JournalEntry (with lines) to its DTO."""
    return JournalEntryInfo(
        id=entry.id,
        entry_number=entry.entry_number,
        period_id=entry.period_id,
        seq=entry.seq,
        entry_date=entry.entry_date,
        status=JournalEntryStatus(entry.status).value,
        origin=entry.origin,
        narration=entry.narration,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        settled_amount=entry.settled_amount,
        lines=tuple(
            JournalLineInfo(
                id=line.id,
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                line_seq=line.line_seq,
                party_id=line.party_id,
                description=line.description,
            )
            for line in entry.lines
        ),
        posting_date=entry.posting_date,
        posted_at=entry.posted_at,
        source_reference=entry.source_reference,
        reversal_of_id=entry.reversal_of_id,
        reversed_by_id=entry.reversed_by_id,
    )


class JournalWriter(BaseService[JournalEntry]):
    """
    Validates and writes journal entries for one tenant.

    Contract:
        create_entry() either writes a complete, numbered entry or raises
        before anything reaches the session.

    Non-goals:
        - Does NOT call session.commit() -- caller controls boundaries
          (PostingService wraps each call in a savepoint).
        - Does NOT reverse posted entries (ReversalService).

    Usage:
        writer = JournalWriter(session, tenant_id, clock)
        info = writer.create_entry(
            entry_date=date(2024, 4, 1),
            narration="Capital introduced",
            lines=[LineSpec.dr(bank_id, "1000"), LineSpec.cr(capital_id, "1000")],
            actor_id=actor_id,
            post=True,
        )
    """

    def __init__(self, session, tenant_id: UUID, clock: Clock | None = None):
        super().__init__(session, tenant_id, clock)
        self._periods = PeriodService(session, tenant_id, self.clock)
        self._sequences = SequenceService(session, tenant_id)

    # -- validation ---------------------------------------------------------

    def validate_lines(self, lines: Sequence[LineSpec]) -> tuple[Decimal, Decimal]:
        """
        Check every posting rule that does not depend on the period.

        Returns:
            (total_debit, total_credit)
        """
        if not lines:
            raise MissingFieldError("lines")

        total_debit = ZERO
        total_credit = ZERO
        for index, spec in enumerate(lines):
            if spec.debit < ZERO or spec.credit < ZERO:
                raise InvalidLineError(index, "amounts must not be negative")
            if spec.debit == ZERO and spec.credit == ZERO:
                raise InvalidLineError(index, "debit and credit are both zero")
            total_debit += spec.debit
            total_credit += spec.credit

        self._validate_accounts(lines)
        self._validate_parties(lines)

        if not within_tolerance(total_debit, total_credit):
            logger.warning(
                "unbalanced_entry_rejected",
                extra={"total_debit": str(total_debit), "total_credit": str(total_credit)},
            )
            raise UnbalancedEntryError(
                str(total_debit), str(total_credit), str(total_debit - total_credit)
            )
        return total_debit, total_credit

    def _validate_accounts(self, lines: Sequence[LineSpec]) -> None:
        wanted = {spec.account_id for spec in lines}
        found = {
            account.id: account
            for account in self.session.execute(
                select(Account).where(
                    Account.tenant_id == self.tenant_id,
                    Account.id.in_(wanted),
                )
            ).scalars()
        }
        for spec in lines:
            account = found.get(spec.account_id)
            if account is None:
                raise InvalidAccountError(str(spec.account_id), "account not found")
            if not account.is_active:
                raise InvalidAccountError(str(spec.account_id), f"account {account.code} is inactive")
            if account.is_group:
                raise InvalidAccountError(
                    str(spec.account_id), f"account {account.code} is a group account"
                )

    def _validate_parties(self, lines: Sequence[LineSpec]) -> None:
        wanted = {spec.party_id for spec in lines if spec.party_id is not None}
        if not wanted:
            return
        found = {
            party.id: party
            for party in self.session.execute(
                select(Party).where(Party.tenant_id == self.tenant_id, Party.id.in_(wanted))
            ).scalars()
        }
        for party_id in wanted:
            party = found.get(party_id)
            if party is None:
                raise InvalidPartyError(str(party_id), "party not found")
            if not party.is_active:
                raise InvalidPartyError(str(party_id), f"party {party.party_code} is inactive")

    # -- helpers ------------------------------------------------------------

    def _get_orm(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        stmt = select(JournalEntry).where(
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.id == entry_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def lock_entry(self, entry_id: UUID) -> JournalEntry:
        """ORM entry of the tenant, row locked FOR UPDATE."""
        return self._get_orm(entry_id, for_update=True)

    def _build_lines(self, lines: Sequence[LineSpec], actor_id: UUID) -> list[JournalLine]:
        return [
            JournalLine(
                tenant_id=self.tenant_id,
                account_id=spec.account_id,
                party_id=spec.party_id,
                debit=spec.debit,
                credit=spec.credit,
                description=spec.description,
                line_seq=index,
                created_by_id=actor_id,
            )
            for index, spec in enumerate(lines, start=1)
        ]

    def allocate_number(self, period_id: UUID, period_code: str) -> tuple[int, str]:
        """
        Next (seq, entry_number) pair.

        Must run before the new entry is added to the session so autoflush
        never sees a half-built row.
        """
        seq = self._sequences.next_value(SequenceService.JOURNAL_ENTRY)
        number = self._sequences.next_value(SequenceService.number_sequence(period_id))
        return seq, format_entry_number(period_code, number)

    def _mark_posted(self, entry: JournalEntry) -> None:
        entry.status = JournalEntryStatus.POSTED.value
        entry.posting_date = self.clock.today()
        entry.posted_at = self.clock.now()

    # -- public API ---------------------------------------------------------

    def create_entry(
        self,
        entry_date: date,
        narration: str | None,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        origin: str = "manual",
        period_id: UUID | None = None,
        post: bool = False,
        source_reference: str | None = None,
    ) -> JournalEntryInfo:
        """
        Create a journal entry, as a draft or posted immediately.

        Preconditions:
            - Called inside a transaction (the counter row lock lives there).
        Postconditions:
            - Entry and lines flushed; status DRAFT, or POSTED when post=True.

        Raises:
            ValidationError subclasses before any write.
            PeriodNotFoundError, DateOutsidePeriodError, LockedPeriodError.
        """
        if not origin:
            raise MissingFieldError("origin")
        total_debit, total_credit = self.validate_lines(lines)
        period = self._periods.resolve_for_write(entry_date, period_id)

        seq, entry_number = self.allocate_number(period.id, period.period_code)
        entry = JournalEntry(
            tenant_id=self.tenant_id,
            period_id=period.id,
            entry_number=entry_number,
            seq=seq,
            entry_date=entry_date,
            narration=narration,
            origin=origin,
            source_reference=source_reference,
            status=JournalEntryStatus.DRAFT.value,
            total_debit=total_debit,
            total_credit=total_credit,
            settled_amount=ZERO,
            created_by_id=actor_id,
        )
        entry.lines = self._build_lines(lines, actor_id)
        if post:
            self._mark_posted(entry)
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_entry_created",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry_number,
                "seq": seq,
                "status": entry.status,
                "origin": origin,
                "entry_date": str(entry_date),
                "line_count": len(entry.lines),
                "total_debit": str(total_debit),
            },
        )
        return entry_to_info(entry)

    def update_draft(
        self,
        entry_id: UUID,
        actor_id: UUID,
        entry_date: date | None = None,
        narration: str | None = None,
        lines: Sequence[LineSpec] | None = None,
    ) -> JournalEntryInfo:
        """
        Edit a draft in place; the number and period stay the same.

        Raises:
            EntryNotDraftError: Entry is posted or reversed.
            DateOutsidePeriodError: New date leaves the entry's period.
        """
        entry = self._get_orm(entry_id, for_update=True)
        if entry.status != JournalEntryStatus.DRAFT:
            raise EntryNotDraftError(str(entry_id), entry.status)

        new_date = entry_date or entry.entry_date
        new_lines = lines
        if new_lines is None:
            new_lines = [
                LineSpec(
                    account_id=line.account_id,
                    debit=line.debit,
                    credit=line.credit,
                    party_id=line.party_id,
                    description=line.description,
                )
                for line in entry.lines
            ]
        total_debit, total_credit = self.validate_lines(new_lines)
        try:
            self._periods.resolve_for_write(new_date, entry.period_id)
        except DateOutsidePeriodError:
            logger.warning(
                "draft_date_outside_period",
                extra={"entry_id": str(entry_id), "entry_date": str(new_date)},
            )
            raise

        if lines is not None:
            entry.lines.clear()
            self.session.flush()
            entry.lines = self._build_lines(lines, actor_id)
        entry.entry_date = new_date
        if narration is not None:
            entry.narration = narration
        entry.total_debit = total_debit
        entry.total_credit = total_credit
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "journal_draft_updated",
            extra={"entry_id": str(entry_id), "entry_number": entry.entry_number},
        )
        return entry_to_info(entry)

    def post_entry(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """
        Post a draft: revalidate, check the period lock, stamp posting time.

        Raises:
            EntryNotDraftError: Entry is not a draft.
            LockedPeriodError: The entry's period was locked meanwhile.
        """
        entry = self._get_orm(entry_id, for_update=True)
        if entry.status != JournalEntryStatus.DRAFT:
            raise EntryNotDraftError(str(entry_id), entry.status)

        specs = [
            LineSpec(
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                party_id=line.party_id,
            )
            for line in entry.lines
        ]
        self.validate_lines(specs)
        self._periods.resolve_for_write(entry.entry_date, entry.period_id)

        self._mark_posted(entry)
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry_id),
                "entry_number": entry.entry_number,
                "posted_at": str(entry.posted_at),
            },
        )
        return entry_to_info(entry)

    def apply_settlement(self, entry_id: UUID, amount, actor_id: UUID) -> JournalEntryInfo:
        """
        Record an amount settled against a posted entry.

        A non-zero settlement blocks reversal.  Negative amounts undo
        earlier settlements; the running total may not go below zero or
        above the entry total.
        """
        amount = to_decimal(amount)
        entry = self._get_orm(entry_id, for_update=True)
        if entry.status != JournalEntryStatus.POSTED:
            raise EntryNotPostedError(str(entry_id), entry.status)

        settled = entry.settled_amount + amount
        if settled < ZERO or settled > entry.total_debit:
            raise ValidationError(
                f"Settled amount {settled} outside 0..{entry.total_debit} for entry {entry.entry_number}"
            )
        entry.settled_amount = settled
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "settlement_applied",
            extra={
                "entry_id": str(entry_id),
                "amount": str(amount),
                "settled_amount": str(settled),
            },
        )
        return entry_to_info(entry)

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo:
        return entry_to_info(self._get_orm(entry_id))

    def get_by_number(self, period_id: UUID, entry_number: str) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.period_id == period_id,
                JournalEntry.entry_number == entry_number,
            )
        ).scalar_one_or_none()
        return entry_to_info(entry) if entry else None
