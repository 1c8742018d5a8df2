"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Trial balance and per-account balances derived from journal
    lines.  SQL does the summing; domain/balances.py does the opening /
    period / closing arithmetic and the group rollup.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Only lines of entries in status POSTED or REVERSED count (a reversed
      posted entry is neutralized by its contra-entry, which also counts).
    - opening covers the period start up to the day before from_date;
      period covers from_date..as_of_date inclusive.
    - Accounts are included when active, or when they carry an opening
      balance or any activity.
    - An unbalanced trial balance is flagged (is_balanced=False), logged
      and emitted as IntegrityWarning; it is never raised.

Audit relevance:
    No stored balance is ever read.  Identical journal rows always produce
    the identical report.
"""

import warnings
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from ledger_kernel.domain.amounts import ZERO
from ledger_kernel.domain.balances import (
    AccountMovement,
    CategorySummary,
    TrialBalance,
    compute_trial_balance,
    summarize_by_type,
)
from ledger_kernel.exceptions import AccountNotFoundError, IntegrityWarning, PeriodNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import BALANCE_STATUSES, JournalEntry, JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


@dataclass(frozen=True)
class AccountBalance:
    """Closing balance of a single account (debit positive)."""

    account_id: UUID
    account_code: str
    as_of_date: date
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


class LedgerSelector(BaseSelector[JournalLine]):
    """
    Read-only balance queries over journal lines.

    Usage:
        tb = LedgerSelector(session, tenant_id).trial_balance(period_id)
        assert tb.is_balanced
    """

    def _period(self, period_id: UUID) -> FiscalPeriod:
        period = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.id == period_id,
            )
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return period

    def movements(
        self,
        period_id: UUID,
        from_date: date,
        as_of_date: date,
    ) -> dict[UUID, AccountMovement]:
        """
        Sum lines per account into a prior bucket (date < from_date) and a
        period bucket (from_date <= date <= as_of_date), within one period.
        """
        before = JournalEntry.entry_date < from_date
        inside = JournalEntry.entry_date >= from_date

        def _sum(column, condition):
            return func.coalesce(func.sum(case((condition, column), else_=ZERO)), ZERO)

        query = (
            select(
                JournalLine.account_id,
                _sum(JournalLine.debit, before).label("prior_debit"),
                _sum(JournalLine.credit, before).label("prior_credit"),
                _sum(JournalLine.debit, inside).label("period_debit"),
                _sum(JournalLine.credit, inside).label("period_credit"),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.tenant_id == self.tenant_id,
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.period_id == period_id,
                JournalEntry.status.in_(BALANCE_STATUSES),
                JournalEntry.entry_date <= as_of_date,
            )
            .group_by(JournalLine.account_id)
        )

        return {
            row.account_id: AccountMovement(
                account_id=row.account_id,
                prior_debit=Decimal(str(row.prior_debit)),
                prior_credit=Decimal(str(row.prior_credit)),
                period_debit=Decimal(str(row.period_debit)),
                period_credit=Decimal(str(row.period_credit)),
            )
            for row in self.session.execute(query)
        }

    def trial_balance(
        self,
        period_id: UUID,
        as_of_date: date | None = None,
        from_date: date | None = None,
        non_zero_only: bool = False,
    ) -> TrialBalance:
        """
        Trial balance of a period.

        Args:
            period_id: Period to report on.
            as_of_date: Last date included (default: period end).
            from_date: First date of the period bucket (default: period
                start).  Earlier lines of the period fold into opening.
            non_zero_only: Drop rows whose every bucket is zero.
        """
        period = self._period(period_id)
        as_of_date = as_of_date or period.end_date
        from_date = from_date or period.start_date
        if from_date > as_of_date:
            raise ValueError(f"from_date ({from_date}) is after as_of_date ({as_of_date})")

        movements = self.movements(period.id, from_date, as_of_date)
        nodes = [
            node
            for node in AccountSelector(self.session, self.tenant_id).nodes()
            if node.is_active
            or node.is_group
            or node.opening_balance != ZERO
            or node.id in movements
        ]

        tb = compute_trial_balance(
            period_id=period.id,
            period_code=period.period_code,
            from_date=from_date,
            as_of_date=as_of_date,
            accounts=nodes,
            movements=movements,
        )

        logger.info(
            "trial_balance_computed",
            extra={
                "period_code": period.period_code,
                "as_of_date": str(as_of_date),
                "row_count": len(tb.rows),
                "closing_debit": str(tb.totals.closing_debit),
                "closing_credit": str(tb.totals.closing_credit),
                "is_balanced": tb.is_balanced,
            },
        )
        if not tb.is_balanced:
            logger.warning(
                "trial_balance_out_of_balance",
                extra={
                    "period_code": period.period_code,
                    "difference": str(tb.totals.difference),
                },
            )
            warnings.warn(
                IntegrityWarning("trial_balance", str(tb.totals.difference)),
                stacklevel=2,
            )

        return tb.non_zero() if non_zero_only else tb

    def summary(
        self,
        period_id: UUID,
        as_of_date: date | None = None,
        from_date: date | None = None,
    ) -> CategorySummary:
        """Closing totals by category and the accounting-equation check."""
        return summarize_by_type(self.trial_balance(period_id, as_of_date, from_date))

    def account_balance(
        self,
        account_id: UUID,
        period_id: UUID,
        as_of_date: date | None = None,
    ) -> AccountBalance:
        """Closing balance of one leaf account, opening balance included."""
        account = AccountSelector(self.session, self.tenant_id).get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        period = self._period(period_id)
        as_of_date = as_of_date or period.end_date

        row = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit), ZERO),
                func.coalesce(func.sum(JournalLine.credit), ZERO),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.tenant_id == self.tenant_id,
                JournalLine.account_id == account_id,
                JournalEntry.period_id == period.id,
                JournalEntry.status.in_(BALANCE_STATUSES),
                JournalEntry.entry_date <= as_of_date,
            )
        ).one()
        debit_total = Decimal(str(row[0]))
        credit_total = Decimal(str(row[1]))
        opening = account.to_node().signed_opening
        return AccountBalance(
            account_id=account_id,
            account_code=account.code,
            as_of_date=as_of_date,
            debit_total=debit_total,
            credit_total=credit_total,
            balance=opening + debit_total - credit_total,
        )
