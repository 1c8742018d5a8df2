"""
Balances -- pure trial-balance computation.

Responsibility:
    Turns per-account raw movements (what the database summed) into trial
    balance rows with opening / period / closing buckets, rolls leaf values
    up into group accounts, and totals the leaves.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    selectors/ledger_selector.py after it has aggregated journal lines.

Invariants enforced:
    - closing = opening + period (per account, on signed nets).
    - Each bucket net is shown in exactly one of its Dr/Cr columns.
    - Totals include leaf accounts only; group rows never double count.
    - is_balanced <=> |closing debit total - closing credit total| < 0.01.
    - Deterministic: identical inputs give identical outputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.amounts import ZERO, expand, within_tolerance
from ledger_kernel.domain.hierarchy import AccountNode, rollup_amounts

DEBIT_NORMAL_TYPES = frozenset({"asset", "expense"})


@dataclass(frozen=True)
class AccountMovement:
    """Raw sums for one account: before the window and inside it."""

    account_id: UUID
    prior_debit: Decimal = ZERO
    prior_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    parent_id: UUID | None
    level: int
    is_group: bool
    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal

    @property
    def opening_net(self) -> Decimal:
        return self.opening_debit - self.opening_credit

    @property
    def closing_net(self) -> Decimal:
        return self.closing_debit - self.closing_credit

    @property
    def natural_closing(self) -> Decimal:
        """Closing balance positive on the account type's normal side."""
        if self.account_type in DEBIT_NORMAL_TYPES:
            return self.closing_net
        return -self.closing_net

    @property
    def is_zero(self) -> bool:
        return all(
            v == ZERO
            for v in (
                self.opening_debit,
                self.opening_credit,
                self.period_debit,
                self.period_credit,
                self.closing_debit,
                self.closing_credit,
            )
        )


@dataclass(frozen=True)
class TrialBalanceTotals:
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO

    @property
    def difference(self) -> Decimal:
        return self.closing_debit - self.closing_credit


@dataclass(frozen=True)
class TrialBalance:
    period_id: UUID
    period_code: str
    from_date: date
    as_of_date: date
    rows: tuple[TrialBalanceRow, ...]
    totals: TrialBalanceTotals
    is_balanced: bool

    def non_zero(self) -> TrialBalance:
        """Same report without rows whose every bucket is zero."""
        return replace(self, rows=tuple(r for r in self.rows if not r.is_zero))

    def row_for(self, account_code: str) -> TrialBalanceRow | None:
        for row in self.rows:
            if row.account_code == account_code:
                return row
        return None

    @property
    def leaf_rows(self) -> tuple[TrialBalanceRow, ...]:
        return tuple(r for r in self.rows if not r.is_group)


@dataclass(frozen=True)
class CategorySummary:
    """Closing natural balances by category and the accounting equation."""

    assets: Decimal
    liabilities: Decimal
    equity: Decimal
    income: Decimal
    expenses: Decimal

    @property
    def net_profit(self) -> Decimal:
        return self.income - self.expenses

    @property
    def equation_difference(self) -> Decimal:
        return self.assets - self.liabilities - self.equity - self.net_profit

    @property
    def is_balanced(self) -> bool:
        return within_tolerance(self.equation_difference)


def compute_trial_balance(
    *,
    period_id: UUID,
    period_code: str,
    from_date: date,
    as_of_date: date,
    accounts: Iterable[AccountNode],
    movements: Mapping[UUID, AccountMovement],
) -> TrialBalance:
    """
    Build a trial balance from account snapshots and raw movements.

    opening = configured opening (debit +) + prior_debit - prior_credit
    period  = period_debit / period_credit, kept gross
    closing = opening + period_debit - period_credit
    """
    accounts = sorted(accounts, key=lambda a: a.code)
    opening_net: dict[UUID, Decimal] = {}
    period_debit: dict[UUID, Decimal] = {}
    period_credit: dict[UUID, Decimal] = {}
    closing_net: dict[UUID, Decimal] = {}
    for account in accounts:
        if account.is_group:
            continue
        mv = movements.get(account.id) or AccountMovement(account_id=account.id)
        opening = account.signed_opening + mv.prior_debit - mv.prior_credit
        opening_net[account.id] = opening
        period_debit[account.id] = mv.period_debit
        period_credit[account.id] = mv.period_credit
        closing_net[account.id] = opening + mv.period_debit - mv.period_credit

    rolled_opening = rollup_amounts(accounts, opening_net)
    rolled_pd = rollup_amounts(accounts, period_debit)
    rolled_pc = rollup_amounts(accounts, period_credit)
    rolled_closing = rollup_amounts(accounts, closing_net)

    rows = []
    totals = dict.fromkeys(
        (
            "opening_debit",
            "opening_credit",
            "period_debit",
            "period_credit",
            "closing_debit",
            "closing_credit",
        ),
        ZERO,
    )
    for account in accounts:
        opening = expand(rolled_opening[account.id])
        closing = expand(rolled_closing[account.id])
        row = TrialBalanceRow(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            parent_id=account.parent_id,
            level=account.level,
            is_group=account.is_group,
            opening_debit=opening.debit,
            opening_credit=opening.credit,
            period_debit=rolled_pd[account.id],
            period_credit=rolled_pc[account.id],
            closing_debit=closing.debit,
            closing_credit=closing.credit,
        )
        rows.append(row)
        if not account.is_group:
            totals["opening_debit"] += row.opening_debit
            totals["opening_credit"] += row.opening_credit
            totals["period_debit"] += row.period_debit
            totals["period_credit"] += row.period_credit
            totals["closing_debit"] += row.closing_debit
            totals["closing_credit"] += row.closing_credit

    tb_totals = TrialBalanceTotals(**totals)
    return TrialBalance(
        period_id=period_id,
        period_code=period_code,
        from_date=from_date,
        as_of_date=as_of_date,
        rows=tuple(rows),
        totals=tb_totals,
        is_balanced=within_tolerance(tb_totals.closing_debit, tb_totals.closing_credit),
    )


def summarize_by_type(trial_balance: TrialBalance) -> CategorySummary:
    """Sum closing natural balances of leaf rows per account category."""
    sums = {t: ZERO for t in ("asset", "liability", "equity", "income", "expense")}
    for row in trial_balance.leaf_rows:
        if row.account_type in sums:
            sums[row.account_type] += row.natural_closing
    return CategorySummary(
        assets=sums["asset"],
        liabilities=sums["liability"],
        equity=sums["equity"],
        income=sums["income"],
        expenses=sums["expense"],
    )
