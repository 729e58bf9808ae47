from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Float,
    ForeignKey, Enum, func, Text, Index, text
)
from sqlalchemy.orm import relationship
from app.database.session import Base
from enum import Enum as PyEnum


class BookingStatusEnum(str, PyEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatusEnum(str, PyEnum):
    PAID = "paid"
    PENDING = "pending"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one confirmed booking per student per schedule; cancelled rows are history
        Index(
            "uq_bookings_student_schedule_confirmed",
            "student_id",
            "schedule_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        Index("ix_bookings_student_trip_date", "student_id", "trip_date"),
        {"extend_existing": True},
    )

    booking_id = Column(Integer, primary_key=True, index=True)

    # Scope
    student_id = Column(String(64), ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("schedules.schedule_id", ondelete="CASCADE"), nullable=False)
    route_id = Column(Integer, ForeignKey("routes.route_id", ondelete="CASCADE"), nullable=False)

    # Booking details
    trip_date = Column(Date, nullable=False)
    booking_date = Column(Date, nullable=False)  # server date the reservation was made
    boarding_stop = Column(String(150), nullable=True)
    seat_number = Column(String(10), nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    ticket_code = Column(String(64), nullable=False, unique=True)

    status = Column(
        Enum(BookingStatusEnum, native_enum=False, values_callable=_enum_values),
        default=BookingStatusEnum.CONFIRMED,
        nullable=False,
        index=True,
    )
    payment_status = Column(
        Enum(PaymentStatusEnum, native_enum=False, values_callable=_enum_values),
        default=PaymentStatusEnum.PAID,
        nullable=False,
    )

    # Audit & lifecycle
    reason = Column(Text, nullable=True)  # reason for cancellation

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    student = relationship("Student", back_populates="bookings")
    schedule = relationship("Schedule", back_populates="bookings")
    route = relationship("Route")
