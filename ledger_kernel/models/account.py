"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the per-tenant chart of accounts, a
    forest of group (aggregation) and leaf (postable) accounts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique within a tenant (uq_account_tenant_code).
    - level = 1 for roots, parent.level + 1 otherwise (maintained by
      AccountService on create and on every parent change).

Failure modes:
    - IntegrityError on a concurrent duplicate code (AccountService checks
      first and raises DuplicateCodeError).

Audit relevance:
    is_system accounts are seeded by chart templates and keep their code,
    category and taxonomy mapping for the life of the tenant.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class AccountType(str, Enum):
    """Account category; decides statement placement and normal side."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class BalanceSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


NORMAL_SIDE: dict[AccountType, BalanceSide] = {
    AccountType.ASSET: BalanceSide.DEBIT,
    AccountType.EXPENSE: BalanceSide.DEBIT,
    AccountType.LIABILITY: BalanceSide.CREDIT,
    AccountType.EQUITY: BalanceSide.CREDIT,
    AccountType.INCOME: BalanceSide.CREDIT,
}


class Account(TrackedBase):
    """
    A node of the chart of accounts.

    Contract:
        Group accounts aggregate; only leaf accounts (is_group=False) may be
        referenced by journal lines.  parent_id always points to an account
        of the same tenant.

    Guarantees:
        - (tenant_id, code) is unique.
        - opening_balance is a non-negative magnitude on opening_side.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_parent", "tenant_id", "parent_id"),
        Index("idx_account_tenant_type", "tenant_id", "account_type"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    is_group: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    opening_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    opening_side: Mapped[BalanceSide] = mapped_column(String(10), nullable=False)

    # Statement line code (see ledger_reporting.taxonomy); null = inherit/rules
    taxonomy_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def normal_side(self) -> BalanceSide:
        return NORMAL_SIDE[AccountType(self.account_type)]

    @property
    def is_postable(self) -> bool:
        return self.is_active and not self.is_group
