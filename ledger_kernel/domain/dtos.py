"""
DTOs -- immutable data crossing the service/selector boundary.

Responsibility:
    Frozen dataclasses returned by every public service and selector method,
    plus LineSpec, the input shape of a journal line.  Callers never receive
    ORM instances.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Conversion from ORM rows happens in
    the services/selectors (``_to_dto`` helpers), never here.

Failure modes:
    - ValueError on a LineSpec with a float amount.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO, to_decimal
from ledger_kernel.domain.hierarchy import AccountNode, TreeNode


@dataclass(frozen=True)
class LineSpec:
    """
    One requested journal line.

    Exactly one of debit/credit should be non-zero; a 0/0 line is rejected by
    JournalWriter.  Amounts are coerced to Decimal; floats are refused.
    """

    account_id: UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    party_id: UUID | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "debit", to_decimal(self.debit))
            object.__setattr__(self, "credit", to_decimal(self.credit))
        except TypeError as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def dr(cls, account_id: UUID, amount, **kwargs) -> LineSpec:
        return cls(account_id=account_id, debit=amount, **kwargs)

    @classmethod
    def cr(cls, account_id: UUID, amount, **kwargs) -> LineSpec:
        return cls(account_id=account_id, credit=amount, **kwargs)


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    code: str
    name: str
    account_type: str
    parent_id: UUID | None
    is_group: bool
    level: int
    is_system: bool
    is_active: bool
    opening_balance: Decimal
    opening_side: str
    taxonomy_code: str | None
    description: str | None = None

    def to_node(self) -> AccountNode:
        return AccountNode(
            id=self.id,
            code=self.code,
            name=self.name,
            account_type=self.account_type,
            parent_id=self.parent_id,
            is_group=self.is_group,
            level=self.level,
            is_active=self.is_active,
            is_system=self.is_system,
            opening_balance=self.opening_balance,
            opening_side=self.opening_side,
            taxonomy_code=self.taxonomy_code,
        )


@dataclass(frozen=True)
class AccountListing:
    """Flat, code-ordered list plus the parent -> children forest."""

    accounts: tuple[AccountInfo, ...]
    tree: tuple[TreeNode, ...]

    def by_code(self, code: str) -> AccountInfo | None:
        for account in self.accounts:
            if account.code == code:
                return account
        return None


@dataclass(frozen=True)
class PeriodInfo:
    id: UUID
    period_code: str
    name: str
    start_date: date
    end_date: date
    is_locked: bool
    locked_at: datetime | None = None

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date


@dataclass(frozen=True)
class PartyInfo:
    id: UUID
    party_code: str
    party_type: str
    name: str
    is_active: bool
    opening_balance: Decimal
    opening_side: str
    current_balance: Decimal
    tax_id: str | None = None


@dataclass(frozen=True)
class JournalLineInfo:
    id: UUID
    account_id: UUID
    debit: Decimal
    credit: Decimal
    line_seq: int
    party_id: UUID | None = None
    description: str | None = None


@dataclass(frozen=True)
class JournalEntryInfo:
    id: UUID
    entry_number: str
    period_id: UUID
    seq: int
    entry_date: date
    status: str
    origin: str
    narration: str | None
    total_debit: Decimal
    total_credit: Decimal
    settled_amount: Decimal
    lines: tuple[JournalLineInfo, ...] = field(default_factory=tuple)
    posting_date: date | None = None
    posted_at: datetime | None = None
    source_reference: str | None = None
    reversal_of_id: UUID | None = None
    reversed_by_id: UUID | None = None

    @property
    def is_posted(self) -> bool:
        return self.status == "posted"

    @property
    def is_draft(self) -> bool:
        return self.status == "draft"

    @property
    def is_reversed(self) -> bool:
        return self.status == "reversed"
