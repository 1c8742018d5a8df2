"""
Reversal of posted entries and cancellation of drafts.

Verifies:
- A reversal is a new posted contra-entry with swapped sides; the pair nets
  to zero in every balance
- An entry can be reversed once; drafts are cancelled, not reversed
- Recorded settlements block reversal and stay within 0..total
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import (
    EntryAlreadyReversedError,
    EntryNotDraftError,
    EntryNotPostedError,
    EntrySettledError,
    ValidationError,
)


@pytest.fixture
def rent_entry(post):
    return post(
        date(2024, 5, 1),
        ("5610", "25000", 0),
        ("1242", 0, "25000"),
        narration="May rent",
    )


class TestReverse:

    def test_contra_entry_swaps_sides(self, posting_service, rent_entry, chart, test_actor_id):
        result = posting_service.reverse(rent_entry.id, test_actor_id, reason="Duplicate booking")

        contra = result.reversal
        assert contra.is_posted
        assert contra.origin == "reversal"
        assert contra.narration == "Reversal of JV/2024-25/0001: Duplicate booking"
        assert contra.source_reference == rent_entry.entry_number
        assert contra.reversal_of_id == rent_entry.id
        assert contra.entry_number == "JV/2024-25/0002"
        assert contra.entry_date == rent_entry.entry_date
        assert [(l.account_id, l.debit, l.credit) for l in contra.lines] == [
            (chart["5610"].id, Decimal("0"), Decimal("25000")),
            (chart["1242"].id, Decimal("25000"), Decimal("0")),
        ]

    def test_original_marked_reversed(self, posting_service, rent_entry, test_actor_id):
        result = posting_service.reverse(rent_entry.id, test_actor_id)
        assert result.original.is_reversed
        assert result.original.reversed_by_id == result.reversal_entry_id
        assert result.original.entry_number == rent_entry.entry_number
        # Original lines stay in place
        assert len(result.original.lines) == 2

    def test_narration_without_reason(self, posting_service, rent_entry, test_actor_id):
        result = posting_service.reverse(rent_entry.id, test_actor_id)
        assert result.reversal.narration == "Reversal of JV/2024-25/0001"

    def test_pair_nets_to_zero(self, posting_service, rent_entry, ledger_selector, chart, fiscal_year, test_actor_id):
        posting_service.reverse(rent_entry.id, test_actor_id)
        tb = ledger_selector.trial_balance(fiscal_year.id)
        rent = tb.row_for("5610")
        assert rent.period_debit == Decimal("25000")
        assert rent.period_credit == Decimal("25000")
        assert rent.closing_net == Decimal("0")
        assert tb.is_balanced

    def test_reversal_on_a_later_date(self, posting_service, rent_entry, test_actor_id):
        result = posting_service.reverse(rent_entry.id, test_actor_id, reversal_date=date(2024, 6, 1))
        assert result.reversal.entry_date == date(2024, 6, 1)
        assert result.reversal.period_id == rent_entry.period_id

    def test_reversal_into_next_period_numbered_there(
        self, posting_service, period_service, rent_entry, test_actor_id,
    ):
        nxt = period_service.create_period(
            "2025-26", "FY 2025-26", date(2025, 4, 1), date(2026, 3, 31), test_actor_id,
        )
        result = posting_service.reverse(rent_entry.id, test_actor_id, reversal_date=date(2025, 4, 2))
        assert result.reversal.period_id == nxt.id
        assert result.reversal.entry_number == "JV/2025-26/0001"

    def test_cannot_reverse_twice(self, posting_service, rent_entry, test_actor_id):
        first = posting_service.reverse(rent_entry.id, test_actor_id)
        with pytest.raises(EntryAlreadyReversedError) as exc:
            posting_service.reverse(rent_entry.id, test_actor_id)
        assert exc.value.reversed_by_id == str(first.reversal_entry_id)

    def test_draft_cannot_be_reversed(self, post, posting_service, test_actor_id):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        with pytest.raises(EntryNotPostedError):
            posting_service.reverse(draft.id, test_actor_id)

    def test_reversal_is_logged(self, posting_service, rent_entry, test_actor_id, captured_logs):
        posting_service.reverse(rent_entry.id, test_actor_id)
        reversed_logs = [r for r in captured_logs() if r["message"] == "journal_entry_reversed"]
        assert len(reversed_logs) == 1
        assert reversed_logs[0]["reversal_number"] == "JV/2024-25/0002"


class TestSettlement:

    def test_settlement_blocks_reversal(self, posting_service, rent_entry, test_actor_id):
        posting_service.apply_settlement(rent_entry.id, "1000", test_actor_id)
        with pytest.raises(EntrySettledError):
            posting_service.reverse(rent_entry.id, test_actor_id)

    def test_undone_settlement_allows_reversal(self, posting_service, rent_entry, test_actor_id):
        posting_service.apply_settlement(rent_entry.id, "1000", test_actor_id)
        entry = posting_service.apply_settlement(rent_entry.id, "-1000", test_actor_id)
        assert entry.settled_amount == Decimal("0")
        assert posting_service.reverse(rent_entry.id, test_actor_id).original.is_reversed

    def test_settlement_cannot_exceed_total(self, posting_service, rent_entry, test_actor_id):
        with pytest.raises(ValidationError):
            posting_service.apply_settlement(rent_entry.id, "25000.01", test_actor_id)

    def test_settlement_cannot_go_negative(self, posting_service, rent_entry, test_actor_id):
        with pytest.raises(ValidationError):
            posting_service.apply_settlement(rent_entry.id, "-1", test_actor_id)

    def test_settlement_needs_posted_entry(self, post, posting_service, test_actor_id):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        with pytest.raises(EntryNotPostedError):
            posting_service.apply_settlement(draft.id, "5", test_actor_id)


class TestCancelDraft:

    def test_cancel_keeps_number_and_clears_lines(self, post, posting_service, test_actor_id):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        cancelled = posting_service.cancel(draft.id, test_actor_id)
        assert cancelled.is_reversed
        assert cancelled.entry_number == draft.entry_number
        assert cancelled.lines == ()
        assert cancelled.total_debit == Decimal("0")

    def test_cancelled_number_is_not_reused(self, post, posting_service, test_actor_id):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        posting_service.cancel(draft.id, test_actor_id)
        nxt = post(date(2024, 5, 2), ("5610", 10, 0), ("1242", 0, 10))
        assert nxt.entry_number == "JV/2024-25/0002"

    def test_posted_entry_cannot_be_cancelled(self, posting_service, rent_entry, test_actor_id):
        with pytest.raises(EntryNotDraftError):
            posting_service.cancel(rent_entry.id, test_actor_id)

    def test_cancel_twice_rejected(self, post, posting_service, test_actor_id):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        posting_service.cancel(draft.id, test_actor_id)
        with pytest.raises(EntryAlreadyReversedError):
            posting_service.cancel(draft.id, test_actor_id)

    def test_cancelled_draft_never_reaches_balances(
        self, post, posting_service, ledger_selector, chart, fiscal_year, test_actor_id,
    ):
        draft = post(date(2024, 5, 1), ("5610", 10, 0), ("1242", 0, 10), post=False)
        posting_service.cancel(draft.id, test_actor_id)
        tb = ledger_selector.trial_balance(fiscal_year.id)
        assert tb.row_for("5610").period_debit == Decimal("0")
