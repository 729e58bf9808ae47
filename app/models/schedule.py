from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Time, Text,
    ForeignKey, Enum, func, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.database.session import Base
from enum import Enum as PyEnum


class ScheduleStatusEnum(str, PyEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that still accept bookings
BOOKABLE_SCHEDULE_STATUSES = (ScheduleStatusEnum.SCHEDULED, ScheduleStatusEnum.IN_PROGRESS)


class Schedule(Base):
    """One dated trip of a route. Seat counters form the seat ledger."""
    __tablename__ = "schedules"
    __table_args__ = (
        Index("ix_schedules_route_date", "route_id", "schedule_date"),
        CheckConstraint("booked_seats >= 0", name="ck_schedules_booked_non_negative"),
        CheckConstraint("booked_seats <= total_seats", name="ck_schedules_booked_within_total"),
        CheckConstraint("available_seats = total_seats - booked_seats", name="ck_schedules_seat_ledger"),
        {"extend_existing": True},
    )

    schedule_id = Column(Integer, primary_key=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.route_id", ondelete="CASCADE"), nullable=False)

    schedule_date = Column(Date, nullable=False)
    departure_time = Column(Time, nullable=True)
    arrival_time = Column(Time, nullable=True)

    # Seat ledger
    total_seats = Column(Integer, nullable=False)
    booked_seats = Column(Integer, nullable=False, default=0)
    available_seats = Column(Integer, nullable=False)

    status = Column(
        Enum(ScheduleStatusEnum, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=ScheduleStatusEnum.SCHEDULED,
        nullable=False,
        index=True,
    )

    # Gating flags
    admin_approved = Column(Boolean, default=False, nullable=False)  # set by admin approval workflow
    booking_enabled = Column(Boolean, default=True, nullable=False)
    booking_deadline = Column(DateTime, nullable=True)  # server-local (IST) wall time
    disabled_reason = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    route = relationship("Route", back_populates="schedules")
    bookings = relationship("Booking", back_populates="schedule")
