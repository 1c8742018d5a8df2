"""
Pure financial statement transformation functions.

These functions turn a trial balance plus an account classification into
structured statements.  ZERO I/O.  ZERO side effects.

All monetary values are Decimal.  All inputs/outputs are frozen dataclasses.

Functions in this module follow the ledger_kernel/domain/ purity convention:
- No database access
- No clock access
- No file I/O
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO, within_tolerance
from ledger_kernel.domain.balances import TrialBalance, TrialBalanceRow, summarize_by_type
from ledger_kernel.domain.hierarchy import AccountNode
from ledger_reporting.classifier import ClassificationResult, ClassificationRule, first_match
from ledger_reporting.models import (
    AccountRollupLine,
    CashFlowLine,
    CashFlowSection,
    CashFlowStatement,
    FinancialStatement,
    IncomeStatement,
    ReportMetadata,
    StatementAccountLine,
    StatementNode,
)
from ledger_reporting.taxonomy import (
    BALANCE_SHEET_SECTIONS,
    DEBIT_POSITIVE_SECTIONS,
    ROOT_CODES,
    Section,
    children_of,
    get_node,
    section_of,
)

PROFIT_AND_LOSS_TYPES = frozenset({"income", "expense"})
BALANCE_SHEET_TYPES = frozenset({"asset", "liability", "equity"})

# Cash-flow buckets
CASH_BUCKET = "cash"
ADJUSTMENT_BUCKETS = ("non_cash",)
WORKING_CAPITAL_BUCKETS = (
    "receivables",
    "inventories",
    "other_current_assets",
    "payables",
    "other_current_liabilities",
)
INVESTING_BUCKETS = ("fixed_assets", "investments", "other_non_current_assets")
FINANCING_BUCKETS = ("borrowings", "equity")
CASH_FLOW_BUCKETS = frozenset(
    (CASH_BUCKET,)
    + ADJUSTMENT_BUCKETS
    + WORKING_CAPITAL_BUCKETS
    + INVESTING_BUCKETS
    + FINANCING_BUCKETS
)

BUCKET_LABELS = {
    "non_cash": "Depreciation, amortisation and other non-cash items",
    "receivables": "(Increase)/decrease in trade receivables",
    "inventories": "(Increase)/decrease in inventories",
    "other_current_assets": "(Increase)/decrease in other current assets",
    "payables": "Increase/(decrease) in trade payables",
    "other_current_liabilities": "Increase/(decrease) in other liabilities and provisions",
    "fixed_assets": "Purchase/sale of fixed assets",
    "investments": "Purchase/sale of investments",
    "other_non_current_assets": "Other non-current assets and advances",
    "borrowings": "Proceeds/repayment of borrowings",
    "equity": "Proceeds from issue of shares and other equity",
}


# =========================================================================
# Sign conventions
# =========================================================================


def natural_amount(net: Decimal, section: Section) -> Decimal:
    """Debit-positive net shown positive on the section's normal side."""
    if section in DEBIT_POSITIVE_SECTIONS:
        return net
    return -net


def _account_line(row: TrialBalanceRow, amount: Decimal) -> StatementAccountLine:
    return StatementAccountLine(
        account_id=row.account_id,
        account_code=row.account_code,
        account_name=row.account_name,
        amount=amount,
    )


# =========================================================================
# 1. STATEMENT TREE
# =========================================================================


def build_statement_node(
    code: str,
    contributions: Mapping[str, Sequence[StatementAccountLine]],
) -> StatementNode:
    """
    Build the statement subtree rooted at ``code``.

    Each account line counts toward the node it is mapped to and, through
    the recursive sum, toward every ancestor node.
    """
    node = get_node(code)
    children = tuple(build_statement_node(child.code, contributions) for child in children_of(code))
    accounts = tuple(sorted(contributions.get(code, ()), key=lambda line: line.account_code))
    amount = sum((line.amount for line in accounts), ZERO) + sum(
        (child.amount for child in children), ZERO
    )
    return StatementNode(
        code=node.code,
        name=node.name,
        amount=amount,
        children=children,
        accounts=accounts,
    )


def _contributions(
    rows: Sequence[TrialBalanceRow],
    classification: ClassificationResult,
    sections: frozenset[Section],
    net_of,
    include_zero: bool,
) -> dict[str, list[StatementAccountLine]]:
    by_code: dict[str, list[StatementAccountLine]] = defaultdict(list)
    for row in rows:
        code = classification.code_for(row.account_id)
        if code is None:
            continue
        section = section_of(code)
        if section not in sections:
            continue
        amount = natural_amount(net_of(row), section)
        if amount == ZERO and not include_zero:
            continue
        by_code[code].append(_account_line(row, amount))
    return by_code


def _unmapped(
    rows: Sequence[TrialBalanceRow],
    classification: ClassificationResult,
    account_types: frozenset[str],
    amount_of,
) -> tuple[StatementAccountLine, ...]:
    unmapped_ids = {a.id for a in classification.unmapped}
    return tuple(
        _account_line(row, amount_of(row))
        for row in rows
        if row.account_id in unmapped_ids and row.account_type in account_types
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def build_balance_sheet(
    trial_balance: TrialBalance,
    classification: ClassificationResult,
    metadata: ReportMetadata,
    include_zero: bool = False,
) -> FinancialStatement:
    """
    Build the balance sheet from closing balances.

    Net profit comes from the category totals of every income and expense
    leaf, and is presented as its own equity line.
    """
    rows = trial_balance.leaf_rows
    contributions = _contributions(
        rows,
        classification,
        BALANCE_SHEET_SECTIONS,
        lambda row: row.closing_net,
        include_zero,
    )
    assets = build_statement_node(ROOT_CODES[Section.ASSETS], contributions)
    liabilities = build_statement_node(ROOT_CODES[Section.LIABILITIES], contributions)
    equity = build_statement_node(ROOT_CODES[Section.EQUITY], contributions)

    net_profit = summarize_by_type(trial_balance).net_profit
    difference = assets.amount - (liabilities.amount + equity.amount + net_profit)

    return FinancialStatement(
        metadata=metadata,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        net_profit=net_profit,
        total_assets=assets.amount,
        total_liabilities=liabilities.amount,
        total_equity=equity.amount,
        difference=difference,
        is_balanced=within_tolerance(difference),
        unmapped=_unmapped(
            rows,
            classification,
            BALANCE_SHEET_TYPES,
            lambda row: row.natural_closing,
        ),
    )


# =========================================================================
# 3. INCOME STATEMENT
# =========================================================================


def _period_net(row: TrialBalanceRow) -> Decimal:
    return row.period_debit - row.period_credit


def build_income_statement(
    trial_balance: TrialBalance,
    classification: ClassificationResult,
    metadata: ReportMetadata,
    include_zero: bool = False,
) -> IncomeStatement:
    """
    Build the statement of profit and loss from period movements
    (from_date..as_of_date of the trial balance).
    """
    rows = trial_balance.leaf_rows
    contributions = _contributions(
        rows,
        classification,
        frozenset({Section.INCOME, Section.EXPENSES, Section.TAX}),
        _period_net,
        include_zero,
    )
    income = build_statement_node(ROOT_CODES[Section.INCOME], contributions)
    expenses = build_statement_node(ROOT_CODES[Section.EXPENSES], contributions)
    tax = build_statement_node(ROOT_CODES[Section.TAX], contributions)

    profit_before_tax = income.amount - expenses.amount

    def _natural_movement(row: TrialBalanceRow) -> Decimal:
        net = _period_net(row)
        return -net if row.account_type == "income" else net

    return IncomeStatement(
        metadata=metadata,
        income=income,
        expenses=expenses,
        tax=tax,
        total_income=income.amount,
        total_expenses=expenses.amount,
        profit_before_tax=profit_before_tax,
        tax_expense=tax.amount,
        profit_after_tax=profit_before_tax - tax.amount,
        unmapped=_unmapped(rows, classification, PROFIT_AND_LOSS_TYPES, _natural_movement),
    )


# =========================================================================
# 4. CASH FLOW STATEMENT
# =========================================================================


def build_cash_flow_statement(
    trial_balance: TrialBalance,
    classification: ClassificationResult,
    accounts: Mapping[UUID, AccountNode],
    cash_flow_rules: Sequence[ClassificationRule],
    metadata: ReportMetadata,
) -> CashFlowStatement:
    """
    Build the cash-flow statement using the indirect method.

    Steps:
    1. Net profit = income - expenses moved in the window
    2. Every balance-sheet leaf is bucketed by the first matching rule
       (rules see the account and its resolved taxonomy code)
    3. Cash impact of a non-cash bucket = -(debit - credit movement):
       an asset increase is an outflow, a liability/equity increase an
       inflow
    4. Cash accounts supply opening and closing cash

    Balance-sheet leaves no rule matches are listed as unclassified and
    left out, so the statement will not reconcile until they are mapped.
    """
    net_profit = ZERO
    opening_cash = ZERO
    closing_cash = ZERO
    bucket_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    bucket_accounts: dict[str, list[StatementAccountLine]] = defaultdict(list)
    unclassified: list[StatementAccountLine] = []

    for row in trial_balance.leaf_rows:
        movement = _period_net(row)
        if row.account_type in PROFIT_AND_LOSS_TYPES:
            net_profit -= movement
            continue

        account = accounts.get(row.account_id)
        rule = None
        if account is not None:
            rule = first_match(cash_flow_rules, account, classification.code_for(row.account_id))
        if rule is None:
            if movement != ZERO or row.opening_net != ZERO:
                unclassified.append(_account_line(row, -movement))
            continue

        bucket = rule.target
        if bucket not in CASH_FLOW_BUCKETS:
            raise ValueError(f"Rule '{rule.name}' targets unknown cash-flow bucket '{bucket}'")
        if bucket == CASH_BUCKET:
            opening_cash += row.opening_net
            closing_cash += row.closing_net
            continue
        bucket_totals[bucket] += -movement
        if movement != ZERO:
            bucket_accounts[bucket].append(_account_line(row, -movement))

    def _section(label: str, buckets: Sequence[str]) -> CashFlowSection:
        return CashFlowSection(
            label=label,
            lines=tuple(
                CashFlowLine(
                    bucket=bucket,
                    label=BUCKET_LABELS[bucket],
                    amount=bucket_totals[bucket],
                    accounts=tuple(sorted(bucket_accounts[bucket], key=lambda a: a.account_code)),
                )
                for bucket in buckets
            ),
        )

    adjustments = _section("Adjustments for non-cash items", ADJUSTMENT_BUCKETS)
    working_capital = _section("Changes in working capital", WORKING_CAPITAL_BUCKETS)
    investing = _section("Cash flows from investing activities", INVESTING_BUCKETS)
    financing = _section("Cash flows from financing activities", FINANCING_BUCKETS)

    net_change = (
        net_profit + adjustments.total + working_capital.total + investing.total + financing.total
    )

    return CashFlowStatement(
        metadata=metadata,
        net_profit=net_profit,
        adjustments=adjustments,
        working_capital=working_capital,
        investing=investing,
        financing=financing,
        opening_cash=opening_cash,
        closing_cash=closing_cash,
        reconciles=within_tolerance(opening_cash + net_change, closing_cash),
        unclassified=tuple(sorted(unclassified, key=lambda a: a.account_code)),
    )


# =========================================================================
# 5. ACCOUNT ROLLUP
# =========================================================================


def build_account_rollup(trial_balance: TrialBalance) -> tuple[AccountRollupLine, ...]:
    """Natural closing amount of every account; groups carry their subtree."""
    return tuple(
        AccountRollupLine(
            account_id=row.account_id,
            account_code=row.account_code,
            account_name=row.account_name,
            account_type=row.account_type,
            parent_id=row.parent_id,
            level=row.level,
            is_group=row.is_group,
            amount=row.natural_closing,
        )
        for row in trial_balance.rows
    )


# =========================================================================
# 6. SERIALIZATION
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Decimal and UUID become strings, dates ISO strings, enums their value;
    nested dataclasses become nested dicts and tuples lists.
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
