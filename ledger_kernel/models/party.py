"""
Module: ledger_kernel.models.party
Responsibility: ORM persistence for counterparties (customers, vendors,
    employees, others) that journal lines may reference.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - party_code is unique per tenant (uq_party_tenant_code).
    - current_balance is a cache; the authoritative balance is always the
      fold over the party's posted lines (selectors/running_balance_selector).

Audit relevance:
    Party statements (receivable/payable ledgers) are derived from journal
    lines carrying party_id; nothing here is a source of financial truth.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UTCDateTime


class PartyType(str, Enum):
    """
    Counterparty classification.

    Customers and others are receivable-style (debit balances are amounts
    owed to us); vendors and employees are payable-style.
    """

    CUSTOMER = "customer"
    VENDOR = "vendor"
    EMPLOYEE = "employee"
    OTHER = "other"


PAYABLE_PARTY_TYPES = frozenset({PartyType.VENDOR.value, PartyType.EMPLOYEE.value})


class Party(TrackedBase):
    """
    External entity the tenant transacts with.

    Guarantees:
        - (tenant_id, party_code) is unique.
        - opening_balance is a magnitude on opening_side.
    """

    __tablename__ = "parties"

    __table_args__ = (
        UniqueConstraint("tenant_id", "party_code", name="uq_party_tenant_code"),
        Index("idx_party_tenant_type", "tenant_id", "party_type"),
    )

    party_code: Mapped[str] = mapped_column(String(50), nullable=False)

    party_type: Mapped[PartyType] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    opening_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    opening_side: Mapped[str] = mapped_column(String(10), nullable=False, default="debit")

    # Signed (debit positive) cache of the running-balance fold
    current_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    balance_refreshed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    @property
    def is_payable_style(self) -> bool:
        return self.party_type in PAYABLE_PARTY_TYPES

    def __repr__(self) -> str:
        return f"<Party {self.party_code}: {self.name} ({self.party_type})>"
