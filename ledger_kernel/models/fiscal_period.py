"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for accounting periods -- the date ranges
    that own journal entry numbering and scope every trial balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - period_code is unique per tenant; periods of one tenant do not overlap
      (checked by PeriodService at creation).
    - A locked period accepts no create/post/reverse/cancel.

Audit relevance:
    Locking a period freezes its numbers; reports over a locked period are
    stable because nothing can be added to it.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class FiscalPeriod(TrackedBase):
    """
    Accounting period (typically a financial year).

    Guarantees:
        - start_date <= end_date, both inclusive (enforced by PeriodService).
        - lock()/unlock() take the timestamp from an injected clock.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "period_code", name="uq_period_tenant_code"),
        Index("idx_period_tenant_dates", "tenant_id", "start_date", "end_date"),
    )

    # Period identifier used in entry numbers (e.g. "2024-25", "FY2024")
    period_code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    locked_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    locked_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        state = "locked" if self.is_locked else "open"
        return f"<FiscalPeriod {self.period_code}: {state}>"

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def lock(self, actor_id: UUID, locked_at: datetime) -> None:
        self.is_locked = True
        self.locked_at = locked_at
        self.locked_by_id = actor_id

    def unlock(self) -> None:
        self.is_locked = False
        self.locked_at = None
        self.locked_by_id = None
