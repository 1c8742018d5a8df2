"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import NORMAL_SIDE, Account, AccountType, BalanceSide
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import (
    BALANCE_STATUSES,
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
)
from ledger_kernel.models.party import PAYABLE_PARTY_TYPES, Party, PartyType
from ledger_kernel.models.sequence_counter import SequenceCounter

__all__ = [
    "Account",
    "AccountType",
    "BalanceSide",
    "NORMAL_SIDE",
    "FiscalPeriod",
    "JournalEntry",
    "JournalLine",
    "JournalEntryStatus",
    "BALANCE_STATUSES",
    "Party",
    "PartyType",
    "PAYABLE_PARTY_TYPES",
    "SequenceCounter",
]
