from pydantic import BaseModel, ConfigDict, Field, computed_field
from datetime import date, datetime, time
from typing import Any, Dict, Optional
from enum import Enum

from app.models.schedule import ScheduleStatusEnum


class DateStatus(str, Enum):
    UNAVAILABLE = "unavailable"  # no trip on this date
    DISABLED = "disabled"        # cancelled or blocked by an administrator
    COMPLETED = "completed"
    BOOKED = "booked"
    CLOSED = "closed"            # booking window closed or booking unavailable
    FULL = "full"
    AVAILABLE = "available"


class ScheduleAvailability(BaseModel):
    """
    A schedule as seen by one student: ledger state, gating flags, the
    server-computed booking window and availability, and the student's own
    confirmed booking (raw, may be partial) joined in.
    """
    schedule_id: int
    route_id: int
    schedule_date: date
    departure_time: Optional[time] = None
    arrival_time: Optional[time] = None
    total_seats: int
    booked_seats: int = 0
    available_seats: int
    status: ScheduleStatusEnum
    admin_approved: bool = False
    booking_enabled: bool = True
    booking_deadline: Optional[datetime] = None
    disabled_reason: Optional[str] = None
    special_instructions: Optional[str] = None

    is_booking_window_open: bool = True
    is_booking_available: bool = True
    booking_disabled_reason: Optional[str] = None

    user_booking: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_disabled(self) -> bool:
        """Cancelled, or blocked for booking by an administrator"""
        return self.status == ScheduleStatusEnum.CANCELLED or not self.booking_enabled


class DateAvailability(BaseModel):
    status: DateStatus
    reason: Optional[str] = None


class CalendarDay(BaseModel):
    trip_date: date
    status: DateStatus
    reason: Optional[str] = None
    schedule: Optional[ScheduleAvailability] = None


class StudentRouteAllocation(BaseModel):
    student_id: str
    route_id: Optional[int] = Field(None, description="Allocated route; None when unallocated")
    boarding_stop: Optional[str] = None
    transport_enrolled: bool = True
    fee_paid_until: Optional[date] = Field(None, description="Last trip date covered by a settled transport fee")

    model_config = ConfigDict(from_attributes=True)
