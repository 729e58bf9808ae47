from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional
from enum import Enum

from app.models.booking import BookingStatusEnum, PaymentStatusEnum


class DenyReason(str, Enum):
    SCHEDULE_NOT_FOUND = "SCHEDULE_NOT_FOUND"
    NOT_APPROVED = "NOT_APPROVED"
    BOOKING_DISABLED = "BOOKING_DISABLED"
    TRIP_NOT_ACTIVE = "TRIP_NOT_ACTIVE"
    TRIP_CANCELLED = "TRIP_CANCELLED"
    WINDOW_CLOSED = "WINDOW_CLOSED"
    BOOKING_UNAVAILABLE = "BOOKING_UNAVAILABLE"
    NO_SEATS = "NO_SEATS"
    NO_ALLOCATION = "NO_ALLOCATION"
    NOT_ENROLLED = "NOT_ENROLLED"
    ROUTE_MISMATCH = "ROUTE_MISMATCH"
    FEE_UNPAID = "FEE_UNPAID"
    PAST_DATE = "PAST_DATE"
    SCHEDULE_MISMATCH = "SCHEDULE_MISMATCH"
    # release only
    NOT_OWNER = "NOT_OWNER"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    TRIP_FINISHED = "TRIP_FINISHED"


class PolicyViolation(BaseModel):
    code: DenyReason
    message: str


class PolicyDecision(BaseModel):
    allowed: bool
    violations: List[PolicyViolation] = Field(default_factory=list)

    @property
    def reason(self) -> Optional[PolicyViolation]:
        """First violation, the one a UI shows"""
        return self.violations[0] if self.violations else None

    @property
    def codes(self) -> List[DenyReason]:
        return [v.code for v in self.violations]

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, violations: List[PolicyViolation]) -> "PolicyDecision":
        return cls(allowed=False, violations=violations)


class BookingCreate(BaseModel):
    schedule_id: int
    route_id: int
    trip_date: date
    boarding_stop: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0, description="Defaults to the route fare")


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    booking_id: int
    student_id: str
    schedule_id: int
    route_id: int
    trip_date: date
    booking_date: date
    boarding_stop: Optional[str] = None
    seat_number: str
    amount: float
    ticket_code: str
    status: BookingStatusEnum
    payment_status: PaymentStatusEnum
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_BOOKED = "already_booked"
    DENIED = "denied"
    CONFLICT = "conflict"
    FATAL = "fatal"


class BookingResult(BaseModel):
    outcome: BookingOutcome
    booking: Optional[BookingResponse] = None
    violations: List[PolicyViolation] = Field(default_factory=list)
    message: str = ""
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome in (BookingOutcome.CONFIRMED, BookingOutcome.ALREADY_BOOKED)

    @property
    def reason(self) -> Optional[PolicyViolation]:
        return self.violations[0] if self.violations else None


class ReleaseOutcome(str, Enum):
    RELEASED = "released"
    NOT_FOUND = "not_found"
    DENIED = "denied"
    CONFLICT = "conflict"
    FATAL = "fatal"


class ReleaseResult(BaseModel):
    outcome: ReleaseOutcome
    booking: Optional[BookingResponse] = None
    violations: List[PolicyViolation] = Field(default_factory=list)
    message: str = ""

    @property
    def reason(self) -> Optional[PolicyViolation]:
        return self.violations[0] if self.violations else None
