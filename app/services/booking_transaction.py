"""
Seat-accounting transactions: committing a booking and releasing it.

Each attempt runs in one database transaction. The booking row is inserted
and the seat counters are debited with a compare-and-swap on the booked
count read under the schedule row lock; if the swap misses, the insert is
rolled back and the attempt reports a conflict. A conflict is retried once
against fresh state, then surfaced.
"""
import uuid
from datetime import date, datetime
from typing import Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import get_logger
from app.crud.booking import booking_crud
from app.crud.schedule import schedule_crud
from app.crud.student import student_crud
from app.models.booking import Booking, BookingStatusEnum, PaymentStatusEnum
from app.models.schedule import ScheduleStatusEnum
from app.schemas.booking import (
    BookingOutcome,
    BookingResponse,
    BookingResult,
    DenyReason,
    PolicyViolation,
    ReleaseOutcome,
    ReleaseResult,
)
from app.services.booking_policy import evaluate
from app.services.booking_window import build_availability
from common_utils import get_current_ist_time, get_ist_today

logger = get_logger(__name__)

# Silent retries after a lost seat race. Not configurable.
MAX_CONFLICT_RETRIES = 1


def allocate_seat_label(booked_seats: int, taken: Set[str], prefix: Optional[str] = None) -> str:
    """
    Lowest free label numbered from booked_seats + 1 upward.

    Sequential while nobody has cancelled; after a cancellation the freed
    number is not reused until the count catches up again.
    """
    prefix = settings.SEAT_LABEL_PREFIX if prefix is None else prefix
    number = max(booked_seats, 0) + 1
    while f"{prefix}{number}" in taken:
        number += 1
    return f"{prefix}{number}"


def make_ticket_code(student_id: str, now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"TKT-{millis}-{student_id[-4:]}-{uuid.uuid4().hex[:6].upper()}"


def _denied(code: DenyReason, message: str) -> BookingResult:
    return BookingResult(
        outcome=BookingOutcome.DENIED,
        violations=[PolicyViolation(code=code, message=message)],
        message=message,
    )


def _already_booked(existing: Booking) -> BookingResult:
    return BookingResult(
        outcome=BookingOutcome.ALREADY_BOOKED,
        booking=BookingResponse.model_validate(existing),
        message=f"You already have a confirmed booking for this trip ({existing.trip_date})",
    )


def _attempt_commit(
    db: Session,
    *,
    student_id: str,
    schedule_id: int,
    route_id: int,
    trip_date: date,
    boarding_stop: Optional[str],
    amount: Optional[float],
    now: datetime,
) -> BookingResult:
    try:
        schedule = schedule_crud.get_for_update(db, schedule_id=schedule_id)
        if schedule is None:
            db.rollback()
            return _denied(DenyReason.SCHEDULE_NOT_FOUND, "Schedule not found")

        if schedule.route_id != route_id or schedule.schedule_date != trip_date:
            db.rollback()
            return _denied(
                DenyReason.SCHEDULE_MISMATCH,
                "Route or trip date does not match the selected schedule",
            )

        # A repeated commit returns the original booking whatever the seat/window state now is
        existing = booking_crud.get_confirmed(db, student_id=student_id, schedule_id=schedule_id)
        if existing:
            result = _already_booked(existing)
            db.rollback()
            return result

        allocation = student_crud.get_allocation(db, student_id=student_id)
        decision = evaluate(build_availability(schedule, now), allocation, student_id, now)
        if not decision.allowed:
            db.rollback()
            return BookingResult(
                outcome=BookingOutcome.DENIED,
                violations=decision.violations,
                message=decision.reason.message,
            )

        expected_booked = schedule.booked_seats or 0
        seat_number = allocate_seat_label(
            expected_booked, booking_crud.taken_seat_labels(db, schedule_id=schedule_id)
        )
        fare = amount if amount is not None else (schedule.route.fare if schedule.route else 0.0)

        db_booking = Booking(
            student_id=student_id,
            schedule_id=schedule.schedule_id,
            route_id=schedule.route_id,
            trip_date=schedule.schedule_date,
            booking_date=get_ist_today(now),
            boarding_stop=boarding_stop or allocation.boarding_stop,
            seat_number=seat_number,
            amount=fare,
            ticket_code=make_ticket_code(student_id, now),
            status=BookingStatusEnum.CONFIRMED,
            payment_status=PaymentStatusEnum.PAID,  # payment captured before commit is called
        )
        booking_crud.add(db, db_obj=db_booking)

        if not booking_crud.debit_seat(db, schedule_id=schedule_id, expected_booked=expected_booked):
            db.rollback()
            logger.warning(
                f"Seat debit lost a race: schedule_id={schedule_id}, student_id={student_id}, "
                f"expected_booked={expected_booked}"
            )
            return BookingResult(
                outcome=BookingOutcome.CONFLICT,
                message="The seat was taken by a concurrent booking",
            )

        db.commit()
        db.refresh(db_booking)
        logger.info(
            f"Booking {db_booking.booking_id} confirmed: student_id={student_id}, "
            f"schedule_id={schedule_id}, seat={seat_number}"
        )
        return BookingResult(
            outcome=BookingOutcome.CONFIRMED,
            booking=BookingResponse.model_validate(db_booking),
            message="Booking created successfully",
        )

    except IntegrityError as e:
        # Unique index on confirmed (student, schedule): a parallel request won
        db.rollback()
        try:
            existing = booking_crud.get_confirmed(db, student_id=student_id, schedule_id=schedule_id)
        except SQLAlchemyError as lookup_error:
            db.rollback()
            logger.exception(f"Could not re-read booking after integrity conflict on schedule_id={schedule_id}")
            return BookingResult(outcome=BookingOutcome.FATAL, message=f"Failed to create booking: {lookup_error}")
        if existing:
            return _already_booked(existing)
        logger.warning(f"Integrity conflict while booking schedule_id={schedule_id}: {e.orig}")
        return BookingResult(outcome=BookingOutcome.CONFLICT, message="Booking conflicted with a concurrent change")

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while booking schedule_id={schedule_id} for student_id={student_id}")
        return BookingResult(outcome=BookingOutcome.FATAL, message=f"Failed to create booking: {e}")


def commit_booking(
    db: Session,
    *,
    student_id: str,
    schedule_id: int,
    route_id: int,
    trip_date: date,
    boarding_stop: Optional[str] = None,
    amount: Optional[float] = None,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Validate and commit one booking.

    Outcomes: confirmed, already_booked (with the existing booking), denied
    (policy violations, not retried), conflict (after one silent retry) and
    fatal (storage error, not retried).
    """
    now = now or get_current_ist_time()
    max_attempts = 1 + MAX_CONFLICT_RETRIES

    result = None
    for attempt in range(1, max_attempts + 1):
        result = _attempt_commit(
            db,
            student_id=student_id,
            schedule_id=schedule_id,
            route_id=route_id,
            trip_date=trip_date,
            boarding_stop=boarding_stop,
            amount=amount,
            now=now,
        )
        result.attempts = attempt
        if result.outcome != BookingOutcome.CONFLICT:
            break
        if attempt < max_attempts:
            logger.info(f"Retrying booking for schedule_id={schedule_id} against fresh state")

    if result.outcome == BookingOutcome.CONFLICT:
        logger.warning(f"Booking conflict surfaced after {result.attempts} attempts: schedule_id={schedule_id}")
    return result


def _release_denied(code: DenyReason, message: str) -> ReleaseResult:
    return ReleaseResult(
        outcome=ReleaseOutcome.DENIED,
        violations=[PolicyViolation(code=code, message=message)],
        message=message,
    )


def release_booking(
    db: Session,
    *,
    student_id: str,
    booking_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReleaseResult:
    """
    Cancel a confirmed booking and give its seat back, atomically.

    Refunds are handled by the payments module.
    """
    now = now or get_current_ist_time()
    try:
        booking = booking_crud.get_by_id(db, booking_id=booking_id)
        if not booking:
            return ReleaseResult(outcome=ReleaseOutcome.NOT_FOUND, message="Booking not found")

        if booking.student_id != student_id:
            return _release_denied(DenyReason.NOT_OWNER, "You can only cancel your own bookings")

        if booking.status == BookingStatusEnum.CANCELLED:
            return _release_denied(DenyReason.ALREADY_CANCELLED, "Booking is already cancelled")

        if booking.trip_date < get_ist_today(now):
            return _release_denied(DenyReason.PAST_DATE, "Cannot cancel past bookings")

        schedule = schedule_crud.get_for_update(db, schedule_id=booking.schedule_id)
        if schedule is not None and schedule.status == ScheduleStatusEnum.COMPLETED:
            db.rollback()
            return _release_denied(DenyReason.TRIP_FINISHED, "Trip already completed")

        if not booking_crud.mark_cancelled(
            db, booking_id=booking_id, reason=reason or "Cancelled by student"
        ):
            db.rollback()
            return ReleaseResult(
                outcome=ReleaseOutcome.CONFLICT,
                message="Booking was changed by another request",
            )

        if not booking_crud.credit_seat(db, schedule_id=booking.schedule_id):
            db.rollback()
            logger.error(
                f"Seat ledger has no booked seat to release: schedule_id={booking.schedule_id}, "
                f"booking_id={booking_id}"
            )
            return ReleaseResult(
                outcome=ReleaseOutcome.FATAL,
                message="Seat ledger is out of balance for this schedule",
            )

        db.commit()
        db.refresh(booking)
        logger.info(f"Booking {booking_id} cancelled by student {student_id}; seat released")
        return ReleaseResult(
            outcome=ReleaseOutcome.RELEASED,
            booking=BookingResponse.model_validate(booking),
            message="Booking successfully cancelled",
        )

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error while cancelling booking_id={booking_id}")
        return ReleaseResult(outcome=ReleaseOutcome.FATAL, message=f"Failed to cancel booking: {e}")
