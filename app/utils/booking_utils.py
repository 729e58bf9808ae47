"""
Helpers for reading booking presence out of upstream payloads.

Booking payloads reach the engine from several places: ORM rows, the
schedule join, and client-supplied JSON. A payload only counts as a booking
when it carries a non-empty identity; anything else is treated as absent.
"""
from collections.abc import Mapping
from typing import Any, Dict, Optional

from app.models.booking import Booking, BookingStatusEnum


def _field(booking: Any, *names: str) -> Any:
    for name in names:
        if isinstance(booking, Mapping):
            if name in booking:
                return booking[name]
        elif hasattr(booking, name):
            return getattr(booking, name)
    return None


def booking_identity(booking: Any) -> Optional[str]:
    """Return the booking id as a string, or None for absent/malformed payloads."""
    if booking is None:
        return None
    raw = _field(booking, "id", "booking_id")
    if raw is None or isinstance(raw, bool):
        return None
    value = str(raw).strip()
    return value or None


def is_confirmed_booking(booking: Any) -> bool:
    """True when the payload has an identity and is not marked as anything but confirmed."""
    if booking_identity(booking) is None:
        return False
    status = _field(booking, "status")
    if status is None:
        return True
    status = getattr(status, "value", status)
    return str(status).lower() == BookingStatusEnum.CONFIRMED.value


def booking_payload(booking: Booking) -> Dict[str, Any]:
    """Compact payload joined onto a schedule for the booking's owner."""
    return {
        "id": booking.booking_id,
        "status": booking.status.value if booking.status else None,
        "seat_number": booking.seat_number,
        "ticket_code": booking.ticket_code,
        "payment_status": booking.payment_status.value if booking.payment_status else None,
    }
