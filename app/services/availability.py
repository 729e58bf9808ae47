"""
Availability classification for calendar rendering.

classify() is a pure function: it maps one date's schedule (or its absence),
the student's booking payload, and the current time to a DateStatus. Rules
are checked in a fixed priority order and the first match wins:

    1. no schedule                           -> unavailable
    2. cancelled or booking disabled         -> disabled
    3. completed                             -> completed
    4. confirmed booking with a valid id     -> booked
    5. optimistic cache says booked          -> booked
    6. composite availability flag is false  -> closed
    7. booking window closed                 -> closed
    8. no seats left                         -> full
    9. not scheduled / in progress           -> unavailable
   10. otherwise                             -> available
"""
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional

from app.models.schedule import BOOKABLE_SCHEDULE_STATUSES, ScheduleStatusEnum
from app.schemas.schedule import CalendarDay, DateAvailability, DateStatus, ScheduleAvailability
from app.utils.booking_utils import is_confirmed_booking
from common_utils import to_ist_naive


def classify(
    schedule: Optional[ScheduleAvailability],
    booking: Optional[Any],
    now: datetime,
    *,
    cached_booked: bool = False,
) -> DateAvailability:
    if schedule is None:
        return DateAvailability(status=DateStatus.UNAVAILABLE, reason="No trip scheduled for this date")

    if schedule.is_disabled:
        if schedule.status == ScheduleStatusEnum.CANCELLED:
            reason = schedule.disabled_reason or "Schedule cancelled"
        else:
            reason = schedule.disabled_reason or "Booking disabled by admin"
        return DateAvailability(status=DateStatus.DISABLED, reason=reason)

    if schedule.status == ScheduleStatusEnum.COMPLETED:
        return DateAvailability(status=DateStatus.COMPLETED, reason="Trip completed")

    # A partial payload without an id is not a booking
    if is_confirmed_booking(booking) or cached_booked:
        return DateAvailability(status=DateStatus.BOOKED)

    if not schedule.is_booking_available:
        return DateAvailability(
            status=DateStatus.CLOSED,
            reason=schedule.booking_disabled_reason or "Booking not available",
        )

    deadline_passed = (
        schedule.booking_deadline is not None
        and to_ist_naive(now) > to_ist_naive(schedule.booking_deadline)
    )
    if deadline_passed or not schedule.is_booking_window_open:
        return DateAvailability(status=DateStatus.CLOSED, reason="Booking window closed")

    if schedule.available_seats <= 0:
        return DateAvailability(status=DateStatus.FULL, reason="No seats available")

    if schedule.status not in BOOKABLE_SCHEDULE_STATUSES:
        return DateAvailability(status=DateStatus.UNAVAILABLE, reason="Trip not running")

    return DateAvailability(status=DateStatus.AVAILABLE)


def build_calendar(
    schedules: Iterable[ScheduleAvailability],
    date_from: date,
    date_to: date,
    now: datetime,
    cached_booked: Optional[Mapping[date, bool]] = None,
) -> List[CalendarDay]:
    """
    One CalendarDay per date in [date_from, date_to]. When a date has several
    trips, the first one (by departure) is shown unless a later one is booked.
    """
    cached_booked = cached_booked or {}
    by_date = {}
    for schedule in schedules:
        current = by_date.get(schedule.schedule_date)
        if current is None or (
            not is_confirmed_booking(current.user_booking) and is_confirmed_booking(schedule.user_booking)
        ):
            by_date[schedule.schedule_date] = schedule

    days = []
    day = date_from
    while day <= date_to:
        schedule = by_date.get(day)
        result = classify(
            schedule,
            schedule.user_booking if schedule else None,
            now,
            cached_booked=bool(cached_booked.get(day, False)),
        )
        days.append(CalendarDay(trip_date=day, status=result.status, reason=result.reason, schedule=schedule))
        day += timedelta(days=1)
    return days
