"""
PeriodService -- accounting period lifecycle and posting-date validation.

Responsibility:
    Creates non-overlapping periods per tenant, locks/unlocks them, and
    resolves/validates the period a journal entry belongs to.

Architecture position:
    Kernel > Services -- imperative shell.  Called by JournalWriter and
    ReversalService before any journal row is written, and by the selectors'
    callers to resolve a period for reporting.

Invariants enforced:
    - Periods of one tenant never overlap.
    - Locked periods reject every journal write (LockedPeriodError).
    - Several period rows are always locked in ascending id order.
    - Flush-only: never commits.

Failure modes:
    - PeriodNotFoundError: no period of the tenant covers the date / id.
    - DateOutsidePeriodError: explicit period does not contain the date.
    - LockedPeriodError: period is locked.
    - PeriodOverlapError / DuplicateCodeError on creation.
"""

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import PeriodInfo
from ledger_kernel.exceptions import (
    DateOutsidePeriodError,
    DuplicateCodeError,
    LockedPeriodError,
    MissingFieldError,
    PeriodNotFoundError,
    PeriodOverlapError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[FiscalPeriod]):
    """
    Service for accounting periods of one tenant.

    Guarantees:
        - All public methods return PeriodInfo DTOs.
        - Lock state is read with the period row locked (FOR UPDATE) when
          resolving a period for a write, so a concurrent lock is honoured.
    """

    def _to_dto(self, period: FiscalPeriod) -> PeriodInfo:
        return PeriodInfo(
            id=period.id,
            period_code=period.period_code,
            name=period.name,
            start_date=period.start_date,
            end_date=period.end_date,
            is_locked=period.is_locked,
            locked_at=period.locked_at,
        )

    def create_period(
        self,
        period_code: str,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
    ) -> PeriodInfo:
        """
        Create a new accounting period.

        Raises:
            MissingFieldError: Empty period_code.
            ValueError: start_date > end_date.
            DuplicateCodeError: period_code already used by the tenant.
            PeriodOverlapError: Date range intersects an existing period.
        """
        if not period_code:
            raise MissingFieldError("period_code")
        if start_date > end_date:
            raise ValueError(
                f"start_date ({start_date}) cannot be after end_date ({end_date})"
            )

        existing = self.session.execute(
            select(FiscalPeriod.id).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.period_code == period_code,
            )
        ).first()
        if existing is not None:
            raise DuplicateCodeError("Period", period_code)

        overlapping = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.start_date <= end_date,
                FiscalPeriod.end_date >= start_date,
            )
        ).scalars().first()
        if overlapping is not None:
            raise PeriodOverlapError(period_code, overlapping.period_code)

        period = FiscalPeriod(
            tenant_id=self.tenant_id,
            period_code=period_code,
            name=name,
            start_date=start_date,
            end_date=end_date,
            is_locked=False,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "period_code": period_code,
                "start_date": str(start_date),
                "end_date": str(end_date),
            },
        )
        return self._to_dto(period)

    def _get_orm(self, period_id: UUID, for_update: bool = False) -> FiscalPeriod:
        stmt = select(FiscalPeriod).where(
            FiscalPeriod.tenant_id == self.tenant_id,
            FiscalPeriod.id == period_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        period = self.session.execute(stmt).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def _get_for_date_orm(self, entry_date: date) -> FiscalPeriod | None:
        return self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.start_date <= entry_date,
                FiscalPeriod.end_date >= entry_date,
            )
        ).scalar_one_or_none()

    def get_period(self, period_id: UUID) -> PeriodInfo:
        return self._to_dto(self._get_orm(period_id))

    def get_period_by_code(self, period_code: str) -> PeriodInfo | None:
        period = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.period_code == period_code,
            )
        ).scalar_one_or_none()
        return self._to_dto(period) if period else None

    def get_period_for_date(self, entry_date: date) -> PeriodInfo | None:
        period = self._get_for_date_orm(entry_date)
        return self._to_dto(period) if period else None

    def list_periods(self) -> list[PeriodInfo]:
        result = self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.tenant_id == self.tenant_id)
            .order_by(FiscalPeriod.start_date)
        )
        return [self._to_dto(p) for p in result.scalars().all()]

    def resolve_for_write(self, entry_date: date, period_id: UUID | None = None) -> FiscalPeriod:
        """
        Period that a journal write with this date belongs to.

        Preconditions: called inside the posting transaction.
        Postconditions: returns an unlocked period containing entry_date,
            with the row locked FOR UPDATE.

        Raises:
            PeriodNotFoundError: No such period / no period covers the date.
            DateOutsidePeriodError: Explicit period does not contain the date.
            LockedPeriodError: Period is locked.
        """
        if period_id is not None:
            period = self._get_orm(period_id, for_update=True)
            if not period.contains_date(entry_date):
                raise DateOutsidePeriodError(str(entry_date), period.period_code)
        else:
            period = self._get_for_date_orm(entry_date)
            if period is None:
                raise PeriodNotFoundError(str(entry_date))
            period = self._get_orm(period.id, for_update=True)

        if period.is_locked:
            logger.warning(
                "posting_into_locked_period_rejected",
                extra={"period_code": period.period_code, "entry_date": str(entry_date)},
            )
            raise LockedPeriodError(period.period_code, str(entry_date))
        return period

    def lock_period(self, period_id: UUID, actor_id: UUID) -> PeriodInfo:
        """Lock a period; idempotent."""
        period = self._get_orm(period_id, for_update=True)
        if not period.is_locked:
            period.lock(actor_id, self.clock.now())
            period.updated_by_id = actor_id
            self.session.flush()
            logger.info("period_locked", extra={"period_code": period.period_code})
        return self._to_dto(period)

    def unlock_period(self, period_id: UUID, actor_id: UUID) -> PeriodInfo:
        """Unlock a period; idempotent."""
        period = self._get_orm(period_id, for_update=True)
        if period.is_locked:
            period.unlock()
            period.updated_by_id = actor_id
            self.session.flush()
            logger.info("period_unlocked", extra={"period_code": period.period_code})
        return self._to_dto(period)

    def resolve_many_for_write(
        self,
        targets: Sequence[tuple[date, UUID | None]],
    ) -> list[FiscalPeriod]:
        """
        resolve_for_write for several (entry_date, period_id) pairs.

        Period rows are locked in ascending id order whatever the order of
        targets, so writers that need the same periods queue on the same
        row first.  Returns the periods in the order of targets.
        """
        period_ids: list[UUID] = []
        for entry_date, period_id in targets:
            if period_id is None:
                found = self._get_for_date_orm(entry_date)
                if found is None:
                    raise PeriodNotFoundError(str(entry_date))
                period_id = found.id
            period_ids.append(period_id)

        locked: dict[UUID, FiscalPeriod] = {}
        for period_id, (entry_date, _) in sorted(zip(period_ids, targets), key=lambda pair: pair[0]):
            locked[period_id] = self.resolve_for_write(entry_date, period_id)
        return [locked[period_id] for period_id in period_ids]
