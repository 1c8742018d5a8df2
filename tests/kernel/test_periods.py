"""
Accounting periods: creation rules and the lock that freezes a period.

Verifies:
- Period codes are unique and date ranges never overlap within a tenant
- Dates resolve to the single period that contains them
- A locked period rejects new postings, posting of drafts and reversals
- Unlocking reopens the period; lock and unlock are idempotent
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import (
    DateOutsidePeriodError,
    DuplicateCodeError,
    LockedPeriodError,
    MissingFieldError,
    PeriodNotFoundError,
    PeriodOverlapError,
)
from ledger_kernel.services.period_service import PeriodService


class TestCreatePeriod:

    def test_create(self, fiscal_year):
        assert fiscal_year.period_code == "2024-25"
        assert fiscal_year.is_locked is False
        assert fiscal_year.contains_date(date(2024, 4, 1))
        assert fiscal_year.contains_date(date(2025, 3, 31))
        assert not fiscal_year.contains_date(date(2025, 4, 1))

    def test_duplicate_code_rejected(self, period_service, fiscal_year, test_actor_id):
        with pytest.raises(DuplicateCodeError):
            period_service.create_period(
                "2024-25", "Again", date(2026, 4, 1), date(2027, 3, 31), test_actor_id,
            )

    def test_overlap_rejected(self, period_service, fiscal_year, test_actor_id):
        with pytest.raises(PeriodOverlapError) as exc:
            period_service.create_period(
                "2025-H1", "Overlap", date(2025, 3, 1), date(2025, 9, 30), test_actor_id,
            )
        assert exc.value.existing_period == "2024-25"

    def test_adjacent_period_allowed(self, period_service, fiscal_year, test_actor_id):
        nxt = period_service.create_period(
            "2025-26", "FY 2025-26", date(2025, 4, 1), date(2026, 3, 31), test_actor_id,
        )
        assert [p.period_code for p in period_service.list_periods()] == ["2024-25", "2025-26"]
        assert period_service.get_period_for_date(date(2025, 4, 1)).id == nxt.id

    def test_inverted_range_rejected(self, period_service, test_actor_id):
        with pytest.raises(ValueError):
            period_service.create_period(
                "bad", "Bad", date(2025, 3, 31), date(2024, 4, 1), test_actor_id,
            )

    def test_empty_code_rejected(self, period_service, test_actor_id):
        with pytest.raises(MissingFieldError):
            period_service.create_period("", "x", date(2024, 4, 1), date(2024, 4, 30), test_actor_id)

    def test_other_tenant_may_reuse_range(
        self, session, fiscal_year, other_tenant_id, deterministic_clock, test_actor_id,
    ):
        other = PeriodService(session, other_tenant_id, deterministic_clock)
        created = other.create_period("2024-25", "FY", date(2024, 4, 1), date(2025, 3, 31), test_actor_id)
        assert created.id != fiscal_year.id


class TestPeriodLookup:

    def test_get_by_code(self, period_service, fiscal_year):
        assert period_service.get_period_by_code("2024-25").id == fiscal_year.id

    def test_date_outside_every_period(self, period_service, fiscal_year):
        assert period_service.get_period_for_date(date(2030, 1, 1)) is None

    def test_posting_without_period_rejected(self, posting_service, chart, test_actor_id):
        with pytest.raises(PeriodNotFoundError):
            posting_service.submit(
                entry_date=date(2030, 1, 1),
                narration="No period",
                origin="manual",
                lines=[LineSpec.dr(chart["1242"].id, "10"), LineSpec.cr(chart["3110"].id, "10")],
                actor_id=test_actor_id,
                post=True,
            )

    def test_explicit_period_must_contain_date(
        self, posting_service, period_service, chart, fiscal_year, test_actor_id,
    ):
        nxt = period_service.create_period(
            "2025-26", "FY 2025-26", date(2025, 4, 1), date(2026, 3, 31), test_actor_id,
        )
        with pytest.raises(DateOutsidePeriodError):
            posting_service.submit(
                entry_date=date(2024, 5, 1),
                narration="Wrong period",
                origin="manual",
                lines=[LineSpec.dr(chart["1242"].id, "10"), LineSpec.cr(chart["3110"].id, "10")],
                actor_id=test_actor_id,
                period_id=nxt.id,
            )


class TestPeriodLock:

    def test_lock_is_idempotent(self, period_service, fiscal_year, test_actor_id, deterministic_clock):
        first = period_service.lock_period(fiscal_year.id, test_actor_id)
        second = period_service.lock_period(fiscal_year.id, test_actor_id)
        assert first.is_locked and second.is_locked
        assert second.locked_at == first.locked_at

    def test_locked_at_is_aware_after_reload(
        self, session, period_service, fiscal_year, test_actor_id, deterministic_clock,
    ):
        period_service.lock_period(fiscal_year.id, test_actor_id)
        session.expire_all()
        reloaded = period_service.get_period(fiscal_year.id)
        assert reloaded.locked_at == deterministic_clock.now()
        assert reloaded.locked_at.utcoffset() == timedelta(0)

    def test_locked_period_rejects_posting(self, period_service, fiscal_year, post, test_actor_id):
        period_service.lock_period(fiscal_year.id, test_actor_id)
        with pytest.raises(LockedPeriodError) as exc:
            post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        assert exc.value.period_code == "2024-25"

    def test_locked_period_rejects_posting_a_draft(
        self, period_service, posting_service, fiscal_year, post, test_actor_id,
    ):
        draft = post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100), post=False)
        period_service.lock_period(fiscal_year.id, test_actor_id)
        with pytest.raises(LockedPeriodError):
            posting_service.post(draft.id, test_actor_id)

    def test_locked_period_rejects_reversal(
        self, period_service, posting_service, fiscal_year, post, test_actor_id,
    ):
        entry = post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        period_service.lock_period(fiscal_year.id, test_actor_id)
        with pytest.raises(LockedPeriodError):
            posting_service.reverse(entry.id, test_actor_id)

    def test_reversal_into_open_period_needs_original_period_open(
        self, period_service, posting_service, fiscal_year, post, test_actor_id,
    ):
        entry = post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        period_service.create_period(
            "2025-26", "FY 2025-26", date(2025, 4, 1), date(2026, 3, 31), test_actor_id,
        )
        period_service.lock_period(fiscal_year.id, test_actor_id)
        with pytest.raises(LockedPeriodError):
            posting_service.reverse(entry.id, test_actor_id, reversal_date=date(2025, 4, 5))

    def test_unlock_reopens(self, period_service, fiscal_year, post, test_actor_id):
        period_service.lock_period(fiscal_year.id, test_actor_id)
        reopened = period_service.unlock_period(fiscal_year.id, test_actor_id)
        assert reopened.is_locked is False
        entry = post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        assert entry.is_posted

    def test_lock_unknown_period(self, period_service, test_actor_id):
        with pytest.raises(PeriodNotFoundError):
            period_service.lock_period(uuid4(), test_actor_id)

    def test_rejection_is_logged(self, period_service, fiscal_year, post, test_actor_id, captured_logs):
        period_service.lock_period(fiscal_year.id, test_actor_id)
        with pytest.raises(LockedPeriodError):
            post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        assert any(
            r["message"] == "posting_into_locked_period_rejected" and r["period_code"] == "2024-25"
            for r in captured_logs()
        )


class TestMultiPeriodLocking:

    @pytest.fixture
    def next_year(self, period_service, fiscal_year, test_actor_id):
        return period_service.create_period(
            "2025-26", "FY 2025-26", date(2025, 4, 1), date(2026, 3, 31), test_actor_id,
        )

    @pytest.fixture
    def lock_order(self, monkeypatch):
        """Record the period ids in the order their rows are locked."""
        calls = []
        original = PeriodService.resolve_for_write

        def recording(service, entry_date, period_id=None):
            calls.append(period_id)
            return original(service, entry_date, period_id)

        monkeypatch.setattr(PeriodService, "resolve_for_write", recording)
        return calls

    def test_rows_locked_in_id_order(self, period_service, fiscal_year, next_year, lock_order):
        forward = [(date(2024, 6, 1), fiscal_year.id), (date(2025, 6, 1), None)]
        backward = list(reversed(forward))

        first = period_service.resolve_many_for_write(forward)
        order_forward = list(lock_order)
        lock_order.clear()
        second = period_service.resolve_many_for_write(backward)

        assert order_forward == sorted([fiscal_year.id, next_year.id])
        assert lock_order == order_forward
        assert [p.id for p in first] == [fiscal_year.id, next_year.id]
        assert [p.id for p in second] == [next_year.id, fiscal_year.id]

    def test_unknown_date_fails_before_any_lock(self, period_service, fiscal_year, lock_order):
        with pytest.raises(PeriodNotFoundError):
            period_service.resolve_many_for_write(
                [(date(2024, 6, 1), fiscal_year.id), (date(2030, 1, 1), None)]
            )
        assert lock_order == []

    def test_cross_period_reversal_locks_in_id_order(
        self, posting_service, fiscal_year, next_year, post, test_actor_id, lock_order,
    ):
        entry = post(date(2024, 6, 30), ("1242", 100, 0), ("3110", 0, 100))
        lock_order.clear()
        result = posting_service.reverse(entry.id, test_actor_id, reversal_date=date(2025, 4, 5))
        assert result.reversal.entry_number == "JV/2025-26/0001"
        assert lock_order == sorted([fiscal_year.id, next_year.id])
