"""
Module: ledger_kernel.selectors.running_balance_selector
Responsibility: Account and party ledgers -- chronological line listings
    with a running balance folded from an opening seed.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Replay order is (entry_date, seq, line_seq); the fold is therefore
      deterministic however the rows were inserted.
    - seed = configured opening (signed by side) + every counted line before
      from_date inside the period filter, so the closing balance matches
      the trial balance closing for the same range.
    - balance += debit - credit per line; each line carries the signed
      balance, its magnitude and its side label (zero is labelled debit).
    - Group accounts fold over all of their leaf descendants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.amounts import ZERO, side_of, signed
from ledger_kernel.domain.hierarchy import descendant_ids
from ledger_kernel.exceptions import AccountNotFoundError, PartyNotFoundError, PeriodNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import BALANCE_STATUSES, JournalEntry, JournalLine
from ledger_kernel.models.party import PAYABLE_PARTY_TYPES, Party
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.running_balance")

RECEIVABLE_STYLE = "receivable"
PAYABLE_STYLE = "payable"


@dataclass(frozen=True)
class LedgerLine:
    entry_id: UUID
    entry_number: str
    entry_date: date
    narration: str | None
    description: str | None
    account_id: UUID
    debit: Decimal
    credit: Decimal
    balance: Decimal

    @property
    def balance_side(self) -> str:
        return side_of(self.balance).value

    @property
    def balance_amount(self) -> Decimal:
        return abs(self.balance)


@dataclass(frozen=True)
class LedgerStatement:
    """Opening seed, ordered lines with running balance, closing balance."""

    opening_balance: Decimal
    closing_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    lines: tuple[LedgerLine, ...] = field(default_factory=tuple)
    from_date: date | None = None
    to_date: date | None = None

    @property
    def closing_side(self) -> str:
        return side_of(self.closing_balance).value


@dataclass(frozen=True)
class PartyStatement:
    """
    Party ledger plus gross totals read in the party's own terms.

    Receivable-style parties (customers, others): charged = debits,
    settled = credits.  Payable-style (vendors, employees): the reverse.
    """

    party_id: UUID
    party_code: str
    party_type: str
    style: str
    ledger: LedgerStatement
    gross_charged: Decimal
    gross_settled: Decimal

    @property
    def outstanding(self) -> Decimal:
        return self.gross_charged - self.gross_settled


def fold(seed: Decimal, rows) -> tuple[list[LedgerLine], Decimal, Decimal, Decimal]:
    """
    Fold ordered rows into ledger lines.

    Returns:
        (lines, closing_balance, total_debit, total_credit)
    """
    balance = seed
    total_debit = ZERO
    total_credit = ZERO
    lines: list[LedgerLine] = []
    for row in rows:
        balance = balance + row.debit - row.credit
        total_debit += row.debit
        total_credit += row.credit
        lines.append(
            LedgerLine(
                entry_id=row.entry_id,
                entry_number=row.entry_number,
                entry_date=row.entry_date,
                narration=row.narration,
                description=row.description,
                account_id=row.account_id,
                debit=row.debit,
                credit=row.credit,
                balance=balance,
            )
        )
    return lines, balance, total_debit, total_credit


class RunningBalanceSelector(BaseSelector[JournalLine]):
    """
    Running-balance ledgers for accounts and parties.

    Usage:
        stmt = RunningBalanceSelector(session, tenant_id).account_ledger(
            bank_id, period_id=period.id,
        )
        stmt.lines[-1].balance == stmt.closing_balance
    """

    def _resolve_window(
        self,
        period_id: UUID | None,
        from_date: date | None,
        to_date: date | None,
    ) -> tuple[date | None, date | None]:
        if period_id is None:
            return from_date, to_date
        period = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.id == period_id,
            )
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(period_id))
        return from_date or period.start_date, to_date or period.end_date

    def _base_filters(self, period_id: UUID | None):
        filters = [
            JournalLine.tenant_id == self.tenant_id,
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.status.in_(BALANCE_STATUSES),
        ]
        if period_id is not None:
            filters.append(JournalEntry.period_id == period_id)
        return filters

    def _rows(self, filters, from_date: date | None, to_date: date | None):
        query = (
            select(
                JournalEntry.id.label("entry_id"),
                JournalEntry.entry_number,
                JournalEntry.entry_date,
                JournalEntry.narration,
                JournalLine.description,
                JournalLine.account_id,
                JournalLine.debit,
                JournalLine.credit,
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*filters)
        )
        if from_date is not None:
            query = query.where(JournalEntry.entry_date >= from_date)
        if to_date is not None:
            query = query.where(JournalEntry.entry_date <= to_date)
        query = query.order_by(JournalEntry.entry_date, JournalEntry.seq, JournalLine.line_seq)
        return self.session.execute(query).all()

    def _brought_forward(self, filters, from_date: date | None) -> Decimal:
        if from_date is None:
            return ZERO
        total = self.session.execute(
            select(func.coalesce(func.sum(JournalLine.debit - JournalLine.credit), ZERO))
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*filters, JournalEntry.entry_date < from_date)
        ).scalar_one()
        return Decimal(str(total))

    def _statement(
        self,
        filters,
        configured_opening: Decimal,
        from_date: date | None,
        to_date: date | None,
    ) -> LedgerStatement:
        seed = configured_opening + self._brought_forward(filters, from_date)
        lines, closing, total_debit, total_credit = fold(seed, self._rows(filters, from_date, to_date))
        return LedgerStatement(
            opening_balance=seed,
            closing_balance=closing,
            total_debit=total_debit,
            total_credit=total_credit,
            lines=tuple(lines),
            from_date=from_date,
            to_date=to_date,
        )

    def account_ledger(
        self,
        account_id: UUID,
        period_id: UUID | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> LedgerStatement:
        """
        Ledger of one account; a group account folds over its leaves.

        Args:
            account_id: Leaf or group account.
            period_id: Restrict to one period (dates default to its bounds).
            from_date: Lines before this date are folded into the opening.
            to_date: Last date listed.
        """
        accounts = AccountSelector(self.session, self.tenant_id)
        account = accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))

        if account.is_group:
            nodes = accounts.nodes()
            members = descendant_ids(account.id, nodes)
            leaves = [n for n in nodes if n.id in members and not n.is_group]
        else:
            leaves = [account.to_node()]
        leaf_ids = [n.id for n in leaves]
        configured_opening = sum((n.signed_opening for n in leaves), ZERO)

        from_date, to_date = self._resolve_window(period_id, from_date, to_date)
        filters = self._base_filters(period_id)
        filters.append(JournalLine.account_id.in_(leaf_ids))

        statement = self._statement(filters, configured_opening, from_date, to_date)
        logger.debug(
            "account_ledger_built",
            extra={
                "account_code": account.code,
                "line_count": len(statement.lines),
                "closing_balance": str(statement.closing_balance),
            },
        )
        return statement

    def party_ledger(
        self,
        party_id: UUID,
        period_id: UUID | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> PartyStatement:
        """Ledger of every line referencing the party, with gross totals."""
        party = self.session.execute(
            select(Party).where(Party.tenant_id == self.tenant_id, Party.id == party_id)
        ).scalar_one_or_none()
        if party is None:
            raise PartyNotFoundError(str(party_id))

        from_date, to_date = self._resolve_window(period_id, from_date, to_date)
        filters = self._base_filters(period_id)
        filters.append(JournalLine.party_id == party_id)

        ledger = self._statement(
            filters, signed(party.opening_balance, party.opening_side), from_date, to_date
        )
        if party.party_type in PAYABLE_PARTY_TYPES:
            style = PAYABLE_STYLE
            charged, settled = ledger.total_credit, ledger.total_debit
        else:
            style = RECEIVABLE_STYLE
            charged, settled = ledger.total_debit, ledger.total_credit

        return PartyStatement(
            party_id=party.id,
            party_code=party.party_code,
            party_type=str(party.party_type),
            style=style,
            ledger=ledger,
            gross_charged=charged,
            gross_settled=settled,
        )
