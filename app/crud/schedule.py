from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatusEnum
from app.models.route import Route, RouteStatusEnum
from app.models.schedule import Schedule
from app.crud.base import CRUDBase


class CRUDSchedule(CRUDBase[Schedule]):
    def get_by_id(self, db: Session, *, schedule_id: int) -> Optional[Schedule]:
        return self.get(db, schedule_id)

    def get_for_update(self, db: Session, *, schedule_id: int) -> Optional[Schedule]:
        """Row-locked read of a schedule (no-op lock on SQLite)"""
        return (
            db.query(Schedule)
            .filter(Schedule.schedule_id == schedule_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def get_route_schedules(
        self,
        db: Session,
        *,
        route_id: int,
        date_from: date,
        date_to: date,
        student_id: Optional[str] = None,
    ) -> List[Tuple[Schedule, Optional[Booking]]]:
        """
        Schedules of an active route in [date_from, date_to], each paired with
        the student's confirmed booking for it (or None).

        A booking matches a schedule by schedule id, or failing that by
        (trip date, route).
        """
        schedules = (
            db.query(Schedule)
            .join(Route, Route.route_id == Schedule.route_id)
            .filter(
                Schedule.route_id == route_id,
                Schedule.schedule_date >= date_from,
                Schedule.schedule_date <= date_to,
                Route.status == RouteStatusEnum.ACTIVE,
            )
            .order_by(Schedule.schedule_date.asc(), Schedule.departure_time.asc())
            .all()
        )
        if not student_id or not schedules:
            return [(schedule, None) for schedule in schedules]

        schedule_ids = [s.schedule_id for s in schedules]
        bookings = (
            db.query(Booking)
            .filter(
                Booking.student_id == student_id,
                Booking.status == BookingStatusEnum.CONFIRMED,
                or_(
                    Booking.schedule_id.in_(schedule_ids),
                    (Booking.route_id == route_id)
                    & (Booking.trip_date >= date_from)
                    & (Booking.trip_date <= date_to),
                ),
            )
            .all()
        )
        by_schedule = {b.schedule_id: b for b in bookings}
        by_trip = {(b.trip_date, b.route_id): b for b in bookings}

        joined = []
        for schedule in schedules:
            booking = by_schedule.get(schedule.schedule_id) or by_trip.get(
                (schedule.schedule_date, schedule.route_id)
            )
            joined.append((schedule, booking))
        return joined


schedule_crud = CRUDSchedule(Schedule)
