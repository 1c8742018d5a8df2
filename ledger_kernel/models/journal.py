"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries (transactions) and their
    lines -- the single source of financial truth.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - entry_number is unique per (tenant, period) and comes from a locked
      sequence counter (services/sequence_service.py), never MAX+1.
    - seq is unique per tenant; (entry_date, seq, line_seq) is the stable
      replay order of every running balance.
    - Balance (sum debit == sum credit within 0.01) is checked by
      JournalWriter before any row is written; total_debit/total_credit are
      the denormalized result.
    - Posted entries and their lines are immutable (db/immutability.py).

Audit relevance:
    Balances are never stored; every report recomputes from these rows.
    Entries in status POSTED and REVERSED both count; a reversed posted entry
    is neutralized by its contra-entry (reversal_of_id), not by deletion.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UTCDateTime, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """
    Lifecycle status of a journal entry.

    DRAFT: editable, excluded from balances.
    POSTED: final, included in balances.
    REVERSED: either an abandoned draft (no lines) or a posted entry undone
        by a contra-entry; still included in balances.
    """

    DRAFT = "draft"
    POSTED = "posted"
    REVERSED = "reversed"


# Statuses whose lines count toward balances
BALANCE_STATUSES = (JournalEntryStatus.POSTED.value, JournalEntryStatus.REVERSED.value)


class JournalEntry(TrackedBase):
    """
    A dated, numbered transaction.

    Contract:
        Once POSTED, only the reversal bookkeeping fields and settled_amount
        may change.

    Guarantees:
        - entry_number has the form JV/{period_code}/{NNNN}.
        - lines are returned in line_seq order.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "period_id", "entry_number", name="uq_journal_entry_number"
        ),
        UniqueConstraint("tenant_id", "seq", name="uq_journal_entry_seq"),
        Index("idx_journal_entry_tenant_date", "tenant_id", "entry_date"),
        Index("idx_journal_entry_tenant_status", "tenant_id", "status"),
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_periods.id"),
        nullable=False,
    )

    entry_number: Mapped[str] = mapped_column(String(40), nullable=False)

    # Per-tenant creation order; tie-breaker within a date
    seq: Mapped[int] = mapped_column(nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    posting_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    narration: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # manual, invoice, payment, recurring, reversal, ...
    origin: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")

    source_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(20),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )

    total_debit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    total_credit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    # Linked-settlement state maintained by collaborators; blocks reversal
    settled_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    reversed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reversed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalEntryStatus.REVERSED

    @property
    def line_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def line_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


class JournalLine(TrackedBase):
    """
    One debit and/or credit against a leaf account.

    Contract:
        debit and credit are non-negative and not both zero.  By convention
        exactly one of them is non-zero.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_journal_line_entry", "journal_entry_id"),
        Index("idx_journal_line_tenant_account", "tenant_id", "account_id"),
        Index("idx_journal_line_tenant_party", "tenant_id", "party_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    party_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("parties.id"),
        nullable=True,
    )

    debit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    credit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return f"<JournalLine Dr {self.debit} Cr {self.credit}>"

    @property
    def net(self) -> Decimal:
        """Debit-positive signed amount."""
        return self.debit - self.credit
