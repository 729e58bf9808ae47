"""
Booking window and composite availability for a schedule.

The window closes at the schedule's explicit booking deadline, or, when it
has none, at BOOKING_WINDOW_END_HOUR on the day BOOKING_WINDOW_DAYS_BEFORE
days ahead of the trip. All times are naive IST wall time.
"""
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from app.config import settings
from app.models.schedule import Schedule, ScheduleStatusEnum
from app.schemas.schedule import ScheduleAvailability
from app.utils.booking_utils import booking_payload
from common_utils import to_ist_naive


def effective_deadline(
    schedule_date: date,
    booking_deadline: Optional[datetime] = None,
    *,
    window_enabled: Optional[bool] = None,
    days_before: Optional[int] = None,
    end_hour: Optional[int] = None,
) -> Optional[datetime]:
    if booking_deadline is not None:
        return to_ist_naive(booking_deadline)

    if window_enabled is None:
        window_enabled = settings.BOOKING_WINDOW_ENABLED
    if not window_enabled:
        return None

    if days_before is None:
        days_before = settings.BOOKING_WINDOW_DAYS_BEFORE
    if end_hour is None:
        end_hour = settings.BOOKING_WINDOW_END_HOUR

    cutoff_day = schedule_date - timedelta(days=days_before)
    return datetime.combine(cutoff_day, time(hour=end_hour))


def is_window_open(deadline: Optional[datetime], now: datetime) -> bool:
    if deadline is None:
        return True
    return to_ist_naive(now) <= deadline


def build_availability(schedule: Schedule, now: datetime, user_booking: Optional[Any] = None) -> ScheduleAvailability:
    """
    Server-side view of a schedule for one student.

    is_booking_available follows a fixed precedence (past date, approval,
    cancelled/disabled, completed) and the first failing gate supplies
    booking_disabled_reason. Seat exhaustion and the window are reported
    through their own fields so a calendar can tell "full" from "closed".
    """
    local_now = to_ist_naive(now)
    deadline = effective_deadline(schedule.schedule_date, schedule.booking_deadline)
    window_open = is_window_open(deadline, local_now)

    is_past = schedule.schedule_date < local_now.date()
    is_cancelled = schedule.status == ScheduleStatusEnum.CANCELLED
    is_disabled = is_cancelled or not schedule.booking_enabled

    reason = None
    if is_past:
        reason = "Past date"
    elif not schedule.admin_approved:
        reason = "Trip not approved by administration for student booking"
    elif is_disabled:
        if is_cancelled:
            reason = schedule.disabled_reason or "Schedule cancelled"
        else:
            reason = schedule.disabled_reason or "Booking disabled by admin"
    elif schedule.status == ScheduleStatusEnum.COMPLETED:
        reason = "Schedule completed"

    if user_booking is not None and not isinstance(user_booking, dict):
        user_booking = booking_payload(user_booking)

    return ScheduleAvailability(
        schedule_id=schedule.schedule_id,
        route_id=schedule.route_id,
        schedule_date=schedule.schedule_date,
        departure_time=schedule.departure_time,
        arrival_time=schedule.arrival_time,
        total_seats=schedule.total_seats,
        booked_seats=schedule.booked_seats or 0,
        available_seats=schedule.available_seats,
        status=schedule.status,
        admin_approved=bool(schedule.admin_approved),
        booking_enabled=schedule.booking_enabled is not False,
        booking_deadline=deadline,
        disabled_reason=schedule.disabled_reason,
        special_instructions=schedule.special_instructions,
        is_booking_window_open=window_open,
        is_booking_available=reason is None,
        booking_disabled_reason=reason,
        user_booking=user_booking,
    )
