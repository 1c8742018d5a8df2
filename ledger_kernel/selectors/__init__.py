"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.account_selector import AccountSelector, account_to_info
from ledger_kernel.selectors.ledger_selector import AccountBalance, LedgerSelector
from ledger_kernel.selectors.running_balance_selector import (
    LedgerLine,
    LedgerStatement,
    PartyStatement,
    RunningBalanceSelector,
)

__all__ = [
    "AccountBalance",
    "AccountSelector",
    "LedgerLine",
    "LedgerSelector",
    "LedgerStatement",
    "PartyStatement",
    "RunningBalanceSelector",
    "account_to_info",
]
