"""
Tests for reconciling the client's optimistic booking cache with the ledger.
"""
import time
from datetime import date, timedelta

import pytest

from app.schemas.reconciliation import CacheDriftDirection
from app.services.booking_transaction import commit_booking, release_booking
from app.services.reconciliation import (
    ReconciliationCancelled,
    compute_reconciliation,
    reconcile,
    server_truth,
)
from tests.fixtures import STUDENT_ID

D1 = date(2026, 3, 10)
D2 = date(2026, 3, 11)
D3 = date(2026, 3, 12)


class TestServerTruth:
    def test_every_date_in_range_has_an_entry(self):
        truth = server_truth([], D1, D3)
        assert truth == {D1: False, D2: False, D3: False}

    def test_only_bookings_with_an_id_count(self):
        bookings = [
            {"id": 1, "trip_date": D1},
            {"trip_date": D2},
            {"id": "", "trip_date": D3},
        ]
        assert server_truth(bookings, D1, D3) == {D1: True, D2: False, D3: False}

    def test_cancelled_and_out_of_range_bookings_are_ignored(self):
        bookings = [
            {"id": 1, "trip_date": D1, "status": "cancelled"},
            {"id": 2, "trip_date": D3 + timedelta(days=1)},
            {"id": 3, "trip_date": "2026-03-11"},
        ]
        assert server_truth(bookings, D1, D3) == {D1: False, D2: True, D3: False}


class TestComputeReconciliation:
    def test_server_booking_missing_from_cache_is_added(self):
        result = compute_reconciliation({D1: True}, D1, D1, {})
        assert result.corrected_cache == {D1: True}
        assert len(result.diff) == 1
        change = result.diff[0]
        assert change.trip_date == D1
        assert change.cached is False
        assert change.server is True
        assert change.direction == CacheDriftDirection.ADDED

    def test_phantom_cache_entry_is_removed(self):
        result = compute_reconciliation({D1: False}, D1, D1, {D1: True})
        assert result.corrected_cache == {D1: False}
        assert [c.direction for c in result.diff] == [CacheDriftDirection.REMOVED]

    def test_both_directions_in_one_pass(self):
        result = compute_reconciliation(
            {D1: True, D2: False, D3: True},
            D1,
            D3,
            {D1: True, D2: True, D3: False},
        )
        assert {(c.trip_date, c.direction) for c in result.diff} == {
            (D2, CacheDriftDirection.REMOVED),
            (D3, CacheDriftDirection.ADDED),
        }
        assert result.corrected_cache == {D1: True, D2: False, D3: True}

    def test_entries_outside_range_are_left_alone(self):
        outside = D3 + timedelta(days=30)
        result = compute_reconciliation({D1: False}, D1, D1, {D1: True, outside: True})
        assert result.corrected_cache[outside] is True
        assert [c.trip_date for c in result.diff] == [D1]

    def test_reconciling_the_corrected_cache_is_a_no_op(self):
        truth = {D1: True, D2: False}
        first = compute_reconciliation(truth, D1, D2, {D2: True})
        second = compute_reconciliation(truth, D1, D2, first.corrected_cache)
        assert not first.in_sync
        assert second.in_sync
        assert second.corrected_cache == first.corrected_cache

    def test_expired_deadline_cancels(self):
        with pytest.raises(ReconciliationCancelled):
            compute_reconciliation({}, D1, D3, {}, deadline=time.monotonic() - 1)


class TestReconcileAgainstLedger:
    def test_detects_drift_after_cancellation(self, test_db, test_student, make_schedule, now):
        kept = make_schedule(days_ahead=3)
        dropped = make_schedule(days_ahead=4)
        bookings = {}
        for schedule in (kept, dropped):
            bookings[schedule.schedule_id] = commit_booking(
                test_db,
                student_id=STUDENT_ID,
                schedule_id=schedule.schedule_id,
                route_id=schedule.route_id,
                trip_date=schedule.schedule_date,
                now=now,
            ).booking
        cancelled = bookings[dropped.schedule_id]
        release_booking(test_db, student_id=STUDENT_ID, booking_id=cancelled.booking_id, now=now)

        # the client still believes in the cancelled trip and never heard of the kept one
        cache = {dropped.schedule_date: True}
        result = reconcile(
            test_db,
            student_id=STUDENT_ID,
            date_from=kept.schedule_date,
            date_to=dropped.schedule_date,
            client_cache=cache,
        )

        assert result.corrected_cache == {kept.schedule_date: True, dropped.schedule_date: False}
        assert {(c.trip_date, c.direction) for c in result.diff} == {
            (kept.schedule_date, CacheDriftDirection.ADDED),
            (dropped.schedule_date, CacheDriftDirection.REMOVED),
        }

        again = reconcile(
            test_db,
            student_id=STUDENT_ID,
            date_from=kept.schedule_date,
            date_to=dropped.schedule_date,
            client_cache=result.corrected_cache,
        )
        assert again.in_sync

    def test_no_bookings_means_all_false(self, test_db, test_student, today):
        result = reconcile(
            test_db,
            student_id=STUDENT_ID,
            date_from=today,
            date_to=today + timedelta(days=2),
            client_cache={},
        )
        assert set(result.corrected_cache.values()) == {False}
        assert result.in_sync

    def test_expired_deadline_raises_before_querying(self, test_db, test_student, today):
        with pytest.raises(ReconciliationCancelled):
            reconcile(
                test_db,
                student_id=STUDENT_ID,
                date_from=today,
                date_to=today,
                client_cache={},
                deadline=time.monotonic() - 1,
            )
