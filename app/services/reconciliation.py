"""
Reconciliation of a client's optimistic booking-status cache.

The client keeps date -> "has confirmed booking" to make bookings feel
instant. reconcile() compares that map against the ledger for a date range
and returns the corrected map plus every date that drifted, in either
direction. It only reads, so calling it again with unchanged server state
yields an empty diff.
"""
import time
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from sqlalchemy.orm import Session

from app.crud.booking import booking_crud
from app.schemas.reconciliation import CacheChange, CacheDriftDirection, ReconciliationResult
from app.utils.booking_utils import is_confirmed_booking


class ReconciliationCancelled(Exception):
    """The caller's deadline passed before reconciliation finished."""


def _check_deadline(deadline: Optional[float]) -> None:
    # deadline is a time.monotonic() value
    if deadline is not None and time.monotonic() > deadline:
        raise ReconciliationCancelled("Reconciliation deadline exceeded")


def _days(date_from: date, date_to: date) -> Iterator[date]:
    day = date_from
    while day <= date_to:
        yield day
        day += timedelta(days=1)


def _trip_date(booking: Any) -> Optional[date]:
    if isinstance(booking, Mapping):
        value = booking.get("trip_date")
    else:
        value = getattr(booking, "trip_date", None)
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return None
    return value if isinstance(value, date) else None


def server_truth(bookings: Iterable[Any], date_from: date, date_to: date) -> Dict[date, bool]:
    """date -> True where a booking with a valid id exists; every date in range is present."""
    truth = {day: False for day in _days(date_from, date_to)}
    for booking in bookings:
        if not is_confirmed_booking(booking):
            continue
        trip_date = _trip_date(booking)
        if trip_date is not None and date_from <= trip_date <= date_to:
            truth[trip_date] = True
    return truth


def compute_reconciliation(
    truth: Mapping[date, bool],
    date_from: date,
    date_to: date,
    client_cache: Mapping[date, bool],
    deadline: Optional[float] = None,
) -> ReconciliationResult:
    # Entries outside the range are carried over untouched
    corrected = dict(client_cache)
    diff = []
    for day in _days(date_from, date_to):
        _check_deadline(deadline)
        server_value = bool(truth.get(day, False))
        cached_value = bool(client_cache.get(day, False))
        if server_value != cached_value:
            diff.append(CacheChange(
                trip_date=day,
                cached=cached_value,
                server=server_value,
                direction=CacheDriftDirection.ADDED if server_value else CacheDriftDirection.REMOVED,
            ))
        corrected[day] = server_value
    return ReconciliationResult(corrected_cache=corrected, diff=diff)


def reconcile(
    db: Session,
    *,
    student_id: str,
    date_from: date,
    date_to: date,
    client_cache: Mapping[date, bool],
    deadline: Optional[float] = None,
) -> ReconciliationResult:
    _check_deadline(deadline)
    bookings = booking_crud.get_confirmed_in_range(
        db, student_id=student_id, date_from=date_from, date_to=date_to
    )
    _check_deadline(deadline)
    truth = server_truth(bookings, date_from, date_to)
    return compute_reconciliation(truth, date_from, date_to, client_cache, deadline)
