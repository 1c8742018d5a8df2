"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.journal_writer import JournalWriter
from ledger_kernel.services.party_service import PartyService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.posting_service import PostingService
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService
from ledger_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountService",
    "JournalWriter",
    "PartyService",
    "PeriodService",
    "PostingService",
    "ReversalResult",
    "ReversalService",
    "SequenceService",
]
