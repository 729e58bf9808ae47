from datetime import date
from typing import Optional, List, Set
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatusEnum
from app.models.schedule import Schedule
from app.crud.base import CRUDBase


class CRUDBooking(CRUDBase[Booking]):
    """
    Booking ledger: booking rows plus the seat counters on their schedule.

    Mutating methods only flush; the caller owns the transaction so a booking
    insert and its seat debit commit or roll back together.
    """

    def get_by_id(self, db: Session, *, booking_id: int) -> Optional[Booking]:
        return self.get(db, booking_id)

    def get_confirmed(self, db: Session, *, student_id: str, schedule_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.student_id == student_id,
                Booking.schedule_id == schedule_id,
                Booking.status == BookingStatusEnum.CONFIRMED,
            )
            .first()
        )

    def get_by_student(
        self,
        db: Session,
        *,
        student_id: str,
        status: Optional[BookingStatusEnum] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        return (
            self.query_by(db, student_id=student_id, status=status)
            .order_by(Booking.trip_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_confirmed_in_range(
        self, db: Session, *, student_id: str, date_from: date, date_to: date
    ) -> List[Booking]:
        """Confirmed bookings whose schedule falls in the range (inclusive)"""
        return (
            db.query(Booking)
            .join(Schedule, Schedule.schedule_id == Booking.schedule_id)
            .filter(
                Booking.student_id == student_id,
                Booking.status == BookingStatusEnum.CONFIRMED,
                Schedule.schedule_date >= date_from,
                Schedule.schedule_date <= date_to,
            )
            .all()
        )

    def taken_seat_labels(self, db: Session, *, schedule_id: int) -> Set[str]:
        rows = (
            db.query(Booking.seat_number)
            .filter(
                Booking.schedule_id == schedule_id,
                Booking.status == BookingStatusEnum.CONFIRMED,
            )
            .all()
        )
        return {row[0] for row in rows if row[0]}

    def add(self, db: Session, *, db_obj: Booking) -> Booking:
        db.add(db_obj)
        db.flush()
        return db_obj

    def debit_seat(self, db: Session, *, schedule_id: int, expected_booked: int) -> bool:
        """
        Take one seat, compare-and-swap on the booked count read by the caller.

        Returns False when another commit changed the counters first or no
        seat is left; the counters are untouched in that case.
        """
        updated = (
            db.query(Schedule)
            .filter(
                Schedule.schedule_id == schedule_id,
                Schedule.booked_seats == expected_booked,
                Schedule.available_seats > 0,
                Schedule.booked_seats < Schedule.total_seats,
            )
            .update(
                {
                    Schedule.booked_seats: Schedule.booked_seats + 1,
                    Schedule.available_seats: Schedule.available_seats - 1,
                    Schedule.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def credit_seat(self, db: Session, *, schedule_id: int) -> bool:
        """Give one seat back; inverse of debit_seat"""
        updated = (
            db.query(Schedule)
            .filter(
                Schedule.schedule_id == schedule_id,
                Schedule.booked_seats > 0,
                Schedule.available_seats < Schedule.total_seats,
            )
            .update(
                {
                    Schedule.booked_seats: Schedule.booked_seats - 1,
                    Schedule.available_seats: Schedule.available_seats + 1,
                    Schedule.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def mark_cancelled(self, db: Session, *, booking_id: int, reason: Optional[str] = None) -> bool:
        """confirmed -> cancelled; False if the booking was not confirmed anymore"""
        updated = (
            db.query(Booking)
            .filter(
                Booking.booking_id == booking_id,
                Booking.status == BookingStatusEnum.CONFIRMED,
            )
            .update(
                {
                    Booking.status: BookingStatusEnum.CANCELLED,
                    Booking.reason: reason,
                    Booking.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1


booking_crud = CRUDBooking(Booking)
