"""
Module: ledger_kernel.models.sequence_counter
Responsibility: Named, per-tenant counter rows used for entry numbering and
    creation order.  Read and incremented only under SELECT ... FOR UPDATE
    by services/sequence_service.py.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from uuid import UUID

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class SequenceCounter(Base):
    """
    Sequence counter table.

    One row per (tenant, name), e.g. "journal_entry" for creation order or
    "journal_number:<period id>" for per-period entry numbers.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_sequence_tenant_name"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
