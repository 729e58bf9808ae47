"""
Pre-conditions for reserving a seat.

evaluate() has no side effects and runs every check, returning all
violations in a fixed order; callers showing a single message use the first.
It is run for UI validation and again inside the booking transaction.
"""
from datetime import datetime
from typing import List, Optional

from app.models.schedule import BOOKABLE_SCHEDULE_STATUSES, ScheduleStatusEnum
from app.schemas.booking import DenyReason, PolicyDecision, PolicyViolation
from app.schemas.schedule import ScheduleAvailability, StudentRouteAllocation
from common_utils import get_ist_today, to_ist_naive


def _violation(code: DenyReason, message: str) -> PolicyViolation:
    return PolicyViolation(code=code, message=message)


def _window_closed(schedule: ScheduleAvailability, now: datetime) -> bool:
    if not schedule.is_booking_window_open:
        return True
    if schedule.booking_deadline is None:
        return False
    return to_ist_naive(now) > to_ist_naive(schedule.booking_deadline)


def evaluate(
    schedule: Optional[ScheduleAvailability],
    allocation: Optional[StudentRouteAllocation],
    student_id: str,
    now: datetime,
) -> PolicyDecision:
    if schedule is None:
        return PolicyDecision.deny([_violation(DenyReason.SCHEDULE_NOT_FOUND, "Schedule not found")])

    violations: List[PolicyViolation] = []

    if not schedule.admin_approved:
        violations.append(_violation(
            DenyReason.NOT_APPROVED,
            "Trip not approved by administration for student booking",
        ))

    if not schedule.booking_enabled:
        violations.append(_violation(
            DenyReason.BOOKING_DISABLED,
            schedule.disabled_reason or "Booking disabled by admin",
        ))

    if schedule.status not in BOOKABLE_SCHEDULE_STATUSES:
        violations.append(_violation(
            DenyReason.TRIP_NOT_ACTIVE,
            f"Trip is {schedule.status.value} and no longer accepts bookings",
        ))

    if schedule.status == ScheduleStatusEnum.CANCELLED:
        violations.append(_violation(
            DenyReason.TRIP_CANCELLED,
            schedule.disabled_reason or "Schedule cancelled",
        ))
    elif _window_closed(schedule, now):
        if schedule.booking_deadline is not None:
            message = f"Booking deadline passed at {to_ist_naive(schedule.booking_deadline):%Y-%m-%d %H:%M}"
        else:
            message = "Booking window is closed"
        violations.append(_violation(DenyReason.WINDOW_CLOSED, message))

    if not schedule.is_booking_available:
        violations.append(_violation(
            DenyReason.BOOKING_UNAVAILABLE,
            schedule.booking_disabled_reason or "Booking not available for this schedule",
        ))

    if schedule.available_seats <= 0:
        violations.append(_violation(DenyReason.NO_SEATS, "No seats available for this schedule"))

    if allocation is None or allocation.route_id is None or allocation.student_id != student_id:
        violations.append(_violation(DenyReason.NO_ALLOCATION, "No route assigned to student"))
    elif not allocation.transport_enrolled:
        violations.append(_violation(
            DenyReason.NOT_ENROLLED,
            "Student is not enrolled for transport services",
        ))
    elif allocation.route_id != schedule.route_id:
        violations.append(_violation(
            DenyReason.ROUTE_MISMATCH,
            "Schedule is not on the student's allocated route",
        ))
    elif allocation.fee_paid_until is None or allocation.fee_paid_until < schedule.schedule_date:
        violations.append(_violation(
            DenyReason.FEE_UNPAID,
            "Unable to verify payment status: transport fee not paid for the term covering this trip",
        ))

    # Server date, never the client's
    if schedule.schedule_date < get_ist_today(now):
        violations.append(_violation(DenyReason.PAST_DATE, "Cannot book a trip on a past date"))

    if violations:
        return PolicyDecision.deny(violations)
    return PolicyDecision.allow()
