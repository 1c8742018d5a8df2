"""
Reporting Service (``ledger_reporting.service``).

Responsibility
--------------
Orchestrates statement generation -- trial balance, balance sheet, income
statement, cash-flow statement and account rollup -- by bridging the
kernel selectors (``LedgerSelector``, ``AccountSelector``) to the pure
functions in ``statements.py`` and the ``AccountClassifier``.  This is a
**read-only** service.

Architecture position
---------------------
**Reporting layer** -- depends on ``ledger_kernel``; the kernel never
imports from here.  Rule sets are handed in by the caller (see
``ledger_config.bridges.build_reporting_service``).

Invariants enforced
-------------------
* Read-only -- no mutations, no locks.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* A balance sheet that does not balance is returned with
  ``is_balanced=False``, logged and emitted as ``IntegrityWarning``.

Failure modes
-------------
* ``PeriodNotFoundError`` -- unknown period for the tenant.
* ``ValueError`` -- from_date after as_of_date, or a rule targeting an
  unknown taxonomy code.
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.balances import TrialBalance, summarize_by_type
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.hierarchy import index_by_id
from ledger_kernel.exceptions import IntegrityWarning
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_reporting.classifier import AccountClassifier, ClassificationResult, ClassificationRule
from ledger_reporting.config import ReportingConfig
from ledger_reporting.models import (
    AccountRollupLine,
    CashFlowStatement,
    FinancialStatement,
    IncomeStatement,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_reporting.statements import (
    build_account_rollup,
    build_balance_sheet,
    build_cash_flow_statement,
    build_income_statement,
    render_to_dict,
)

logger = get_logger("reporting.service")


class ReportingService:
    """
    Financial statement generation for one tenant.

    Contract
    --------
    * Every public method returns a frozen report DTO.
    * All methods are read-only.

    Non-goals
    ---------
    * Does NOT post entries or enforce period locks.
    * Does NOT consolidate tenants or translate currencies.

    Usage:
        service = ReportingService(session, tenant_id, clock, rules=rules)
        bs = service.get_statement(period_id, date(2025, 3, 31))
        assert bs.is_balanced
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        rules: Sequence[ClassificationRule] = (),
        cash_flow_rules: Sequence[ClassificationRule] = (),
    ):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._rules = tuple(rules)
        self._cash_flow_rules = tuple(cash_flow_rules)
        self._ledger = LedgerSelector(session, tenant_id)
        self._accounts = AccountSelector(session, tenant_id)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _build_metadata(self, report_type: ReportType, tb: TrialBalance) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.default_currency,
            as_of_date=tb.as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_code=tb.period_code,
            from_date=tb.from_date,
        )

    def classify_accounts(self) -> ClassificationResult:
        """Taxonomy line of every leaf account, plus the unmapped ones."""
        return AccountClassifier(self._accounts.nodes(), self._rules).classify_all()

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(
        self,
        period_id: UUID,
        as_of_date: date | None = None,
        from_date: date | None = None,
    ) -> TrialBalanceReport:
        """Trial balance with category totals and the equation check."""
        tb = self._ledger.trial_balance(
            period_id,
            as_of_date=as_of_date,
            from_date=from_date,
            non_zero_only=self._config.trial_balance_non_zero_only,
        )
        report = TrialBalanceReport(
            metadata=self._build_metadata(ReportType.TRIAL_BALANCE, tb),
            trial_balance=tb,
            summary=summarize_by_type(tb),
        )
        logger.info(
            "trial_balance_generated",
            extra={
                "period_code": tb.period_code,
                "as_of_date": tb.as_of_date.isoformat(),
                "line_count": len(tb.rows),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def balance_sheet(
        self,
        period_id: UUID,
        as_of_date: date | None = None,
    ) -> FinancialStatement:
        """
        Generate the Schedule III balance sheet.

        Args:
            period_id: Period to report on.
            as_of_date: Report date (default: period end).

        Returns:
            FinancialStatement with assets = liabilities + equity + profit
            verification.
        """
        tb = self._ledger.trial_balance(period_id, as_of_date=as_of_date)
        statement = build_balance_sheet(
            tb,
            self.classify_accounts(),
            self._build_metadata(ReportType.BALANCE_SHEET, tb),
            include_zero=self._config.include_zero_balances,
        )

        logger.info(
            "balance_sheet_generated",
            extra={
                "period_code": tb.period_code,
                "as_of_date": tb.as_of_date.isoformat(),
                "total_assets": str(statement.total_assets),
                "total_l_and_e": str(statement.total_equity_and_liabilities),
                "unmapped_count": len(statement.unmapped),
                "is_balanced": statement.is_balanced,
            },
        )
        if not statement.is_balanced:
            logger.warning(
                "balance_sheet_out_of_balance",
                extra={
                    "period_code": tb.period_code,
                    "difference": str(statement.difference),
                },
            )
            warnings.warn(
                IntegrityWarning("balance_sheet", str(statement.difference)),
                stacklevel=2,
            )
        return statement

    def get_statement(self, period_id: UUID, as_of_date: date | None = None) -> FinancialStatement:
        """Balance sheet of the period as of a date."""
        return self.balance_sheet(period_id, as_of_date)

    def income_statement(
        self,
        period_id: UUID,
        from_date: date | None = None,
        as_of_date: date | None = None,
    ) -> IncomeStatement:
        """Profit and loss over from_date..as_of_date (default: whole period)."""
        tb = self._ledger.trial_balance(period_id, as_of_date=as_of_date, from_date=from_date)
        report = build_income_statement(
            tb,
            self.classify_accounts(),
            self._build_metadata(ReportType.INCOME_STATEMENT, tb),
            include_zero=self._config.include_zero_balances,
        )
        logger.info(
            "income_statement_generated",
            extra={
                "period_code": tb.period_code,
                "from_date": tb.from_date.isoformat(),
                "as_of_date": tb.as_of_date.isoformat(),
                "total_income": str(report.total_income),
                "total_expenses": str(report.total_expenses),
                "profit_after_tax": str(report.profit_after_tax),
            },
        )
        return report

    def cash_flow(
        self,
        period_id: UUID,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> CashFlowStatement:
        """Indirect-method cash-flow statement over from_date..to_date."""
        tb = self._ledger.trial_balance(period_id, as_of_date=to_date, from_date=from_date)
        nodes = self._accounts.nodes()
        classification = AccountClassifier(nodes, self._rules).classify_all()
        report = build_cash_flow_statement(
            tb,
            classification,
            index_by_id(nodes),
            self._cash_flow_rules,
            self._build_metadata(ReportType.CASH_FLOW, tb),
        )
        logger.info(
            "cash_flow_generated",
            extra={
                "period_code": tb.period_code,
                "from_date": tb.from_date.isoformat(),
                "to_date": tb.as_of_date.isoformat(),
                "net_change_in_cash": str(report.net_change_in_cash),
                "reconciles": report.reconciles,
                "unclassified_count": len(report.unclassified),
            },
        )
        if not report.reconciles:
            logger.warning(
                "cash_flow_not_reconciled",
                extra={
                    "opening_cash": str(report.opening_cash),
                    "closing_cash": str(report.closing_cash),
                    "unclassified_codes": [a.account_code for a in report.unclassified],
                },
            )
        return report

    def account_rollup(
        self,
        period_id: UUID,
        as_of_date: date | None = None,
    ) -> tuple[AccountRollupLine, ...]:
        """Natural closing amount of every account, groups rolled up."""
        tb = self._ledger.trial_balance(period_id, as_of_date=as_of_date)
        return build_account_rollup(tb)

    def to_dict(self, report: object) -> dict:
        """Convert any report DTO to a plain dict for JSON serialization."""
        return render_to_dict(report)
