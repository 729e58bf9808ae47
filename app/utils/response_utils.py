import re
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder

from app.core.logging_config import get_logger
from app.schemas.base import create_error_response, create_success_response

logger = get_logger(__name__)


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        return jsonable_encoder(create_error_response(message, error_code, details))

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))


# Constraint violations of the booking ledger, matched on either the
# PostgreSQL constraint name or the SQLite column list.
_LEDGER_VIOLATIONS: Tuple[Tuple[Tuple[str, ...], str, str], ...] = (
    (
        ("uq_bookings_student_schedule_confirmed", "bookings.student_id, bookings.schedule_id"),
        "ALREADY_BOOKED",
        "A confirmed booking already exists for this trip",
    ),
    (
        ("ck_schedules_",),
        "SEAT_LEDGER_VIOLATION",
        "Seat counters would become inconsistent",
    ),
    (
        ("bookings_ticket_code_key", "bookings.ticket_code"),
        "DUPLICATE_TICKET",
        "Ticket code collision, please retry",
    ),
)


def _key_values(error_msg: str) -> Dict[str, str]:
    match = re.search(r"Key \((.*?)\)=\((.*?)\)", error_msg)
    if not match:
        return {}
    columns = match.group(1).split(", ")
    values = match.group(2).split(", ")
    return {col: val for col, val in zip(columns, values)}


def handle_db_error(error: Exception) -> HTTPException:
    """Convert database errors to HTTP exceptions with detailed info"""
    error_msg = str(error).strip().replace("\n", " ")
    lowered = error_msg.lower()

    for needles, error_code, message in _LEDGER_VIOLATIONS:
        if any(needle in error_msg for needle in needles):
            logger.warning(f"Booking ledger constraint hit ({error_code}): {error_msg}")
            detail = ResponseWrapper.error(
                message=message,
                error_code=error_code,
                details={"db_error": error_msg},
            )
            return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    if "duplicate key" in lowered or "unique constraint" in lowered:
        detail = ResponseWrapper.error(
            message="Resource already exists with the same values",
            error_code="DUPLICATE_RESOURCE",
            details={"db_error": error_msg, "conflicting_fields": _key_values(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    if "foreign key" in lowered:
        detail = ResponseWrapper.error(
            message="Referenced resource not found",
            error_code="FOREIGN_KEY_VIOLATION",
            details={"db_error": error_msg, "conflicting_fields": _key_values(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

    logger.error(f"Database operation failed: {error_msg}")
    detail = ResponseWrapper.error(
        message="Database operation failed",
        error_code="DATABASE_ERROR",
        details={"db_error": error_msg},
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def handle_http_error(error: Exception) -> HTTPException:
    """Re-wrap a bare HTTPException (or anything else) in the error envelope"""
    if isinstance(error, HTTPException):
        detail = getattr(error, "detail", str(error))
        if isinstance(detail, dict) and detail.get("success") is not None:
            return error

        detail = ResponseWrapper.error(
            message=str(detail),
            error_code="HTTP_ERROR",
            details={"original_error": detail},
        )
        return HTTPException(status_code=error.status_code, detail=detail, headers=error.headers)

    logger.exception(f"Unexpected error while serving a booking request: {error}")
    detail = ResponseWrapper.error(
        message="Unexpected server error",
        error_code="INTERNAL_SERVER_ERROR",
        details={"original_error": str(error)},
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
