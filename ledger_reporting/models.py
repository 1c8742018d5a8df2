"""
Financial Reporting Domain Models (``ledger_reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for report outputs: trial balance report,
balance sheet (``FinancialStatement``), income statement, cash-flow
statement and the account rollup.

Architecture position
---------------------
**Reporting layer** -- pure data definitions with ZERO I/O.  Built by
``ledger_reporting.statements`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Statement amounts are natural-side positive: debit-positive for assets
  and expenses, credit-positive for liabilities, equity and income.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO
from ledger_kernel.domain.balances import CategorySummary, TrialBalance

PROFIT_LINE_LABEL = "Profit for the period"


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    INCOME_STATEMENT = "income_statement"
    CASH_FLOW = "cash_flow"
    ACCOUNT_ROLLUP = "account_rollup"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO format timestamp from injected clock
    period_code: str | None = None
    from_date: date | None = None


# =========================================================================
# Trial Balance Report
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceReport:
    """Trial balance with the category summary beside it."""

    metadata: ReportMetadata
    trial_balance: TrialBalance
    summary: CategorySummary

    @property
    def is_balanced(self) -> bool:
        return self.trial_balance.is_balanced


# =========================================================================
# Statement tree
# =========================================================================


@dataclass(frozen=True)
class StatementAccountLine:
    """One account's contribution to a statement line."""

    account_id: UUID
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class StatementNode:
    """
    A taxonomy line with its amount.

    ``amount`` = sum of ``accounts`` + sum of ``children`` amounts.
    """

    code: str
    name: str
    amount: Decimal
    children: tuple[StatementNode, ...] = field(default_factory=tuple)
    accounts: tuple[StatementAccountLine, ...] = field(default_factory=tuple)

    def find(self, code: str) -> StatementNode | None:
        if self.code == code:
            return self
        for child in self.children:
            found = child.find(code)
            if found is not None:
                return found
        return None

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class FinancialStatement:
    """
    Balance sheet as of a date.

    ``difference = total_assets - (total_liabilities + total_equity +
    net_profit)``; the statement balances when it is within one cent.
    """

    metadata: ReportMetadata
    assets: StatementNode
    liabilities: StatementNode
    equity: StatementNode
    net_profit: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    difference: Decimal
    is_balanced: bool
    unmapped: tuple[StatementAccountLine, ...] = field(default_factory=tuple)

    @property
    def total_equity_and_liabilities(self) -> Decimal:
        return self.total_liabilities + self.total_equity + self.net_profit

    @property
    def equity_lines(self) -> tuple[tuple[str, Decimal], ...]:
        """Equity lines as presented, ending with the profit line."""
        lines = tuple((child.name, child.amount) for child in self.equity.children)
        return lines + ((PROFIT_LINE_LABEL, self.net_profit),)


# =========================================================================
# Income Statement
# =========================================================================


@dataclass(frozen=True)
class IncomeStatement:
    """Statement of profit and loss over a date range."""

    metadata: ReportMetadata
    income: StatementNode
    expenses: StatementNode
    tax: StatementNode
    total_income: Decimal
    total_expenses: Decimal
    profit_before_tax: Decimal
    tax_expense: Decimal
    profit_after_tax: Decimal
    unmapped: tuple[StatementAccountLine, ...] = field(default_factory=tuple)


# =========================================================================
# Cash Flow Statement
# =========================================================================


@dataclass(frozen=True)
class CashFlowLine:
    """One bucket of the cash-flow statement."""

    bucket: str
    label: str
    amount: Decimal
    accounts: tuple[StatementAccountLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CashFlowSection:
    label: str
    lines: tuple[CashFlowLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)


@dataclass(frozen=True)
class CashFlowStatement:
    """
    Cash-flow statement, indirect method.

    Operating = net profit + non-cash adjustments + working-capital
    changes.  ``reconciles`` holds when opening cash plus the net change
    equals closing cash within one cent.
    """

    metadata: ReportMetadata
    net_profit: Decimal
    adjustments: CashFlowSection
    working_capital: CashFlowSection
    investing: CashFlowSection
    financing: CashFlowSection
    opening_cash: Decimal
    closing_cash: Decimal
    reconciles: bool
    unclassified: tuple[StatementAccountLine, ...] = field(default_factory=tuple)

    @property
    def net_cash_from_operating(self) -> Decimal:
        return self.net_profit + self.adjustments.total + self.working_capital.total

    @property
    def net_cash_from_investing(self) -> Decimal:
        return self.investing.total

    @property
    def net_cash_from_financing(self) -> Decimal:
        return self.financing.total

    @property
    def net_change_in_cash(self) -> Decimal:
        return (
            self.net_cash_from_operating
            + self.net_cash_from_investing
            + self.net_cash_from_financing
        )


# =========================================================================
# Account rollup
# =========================================================================


@dataclass(frozen=True)
class AccountRollupLine:
    """An account with its natural closing amount; groups include descendants."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    parent_id: UUID | None
    level: int
    is_group: bool
    amount: Decimal
