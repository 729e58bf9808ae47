import time
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import get_logger
from app.crud.booking import booking_crud
from app.database.session import get_db
from app.models.booking import BookingStatusEnum
from app.schemas.base import BaseResponse, ListResponse
from app.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingOutcome,
    BookingResponse,
    DenyReason,
    ReleaseOutcome,
)
from app.schemas.reconciliation import ReconcileRequest, ReconciliationResult
from app.services.booking_transaction import commit_booking, release_booking
from app.services.reconciliation import ReconciliationCancelled, reconcile
from app.utils.response_utils import ResponseWrapper, handle_db_error, handle_http_error
from common_utils.auth.permission_checker import PermissionChecker

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])

_BOOKING_ERROR_STATUS = {
    BookingOutcome.DENIED: status.HTTP_400_BAD_REQUEST,
    BookingOutcome.CONFLICT: status.HTTP_409_CONFLICT,
    BookingOutcome.FATAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_RELEASE_ERROR_STATUS = {
    ReleaseOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReleaseOutcome.DENIED: status.HTTP_400_BAD_REQUEST,
    ReleaseOutcome.CONFLICT: status.HTTP_409_CONFLICT,
    ReleaseOutcome.FATAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _result_error(status_code: int, result, default_code: str) -> HTTPException:
    reason = result.reason
    return HTTPException(
        status_code=status_code,
        detail=ResponseWrapper.error(
            message=result.message or (reason.message if reason else "Request failed"),
            error_code=reason.code.value if reason else default_code,
            details={
                "outcome": result.outcome.value,
                "violations": [v.model_dump(mode="json") for v in result.violations],
            },
        ),
    )


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=BaseResponse[BookingResponse])
def create_booking(
    response: Response,
    booking: BookingCreate,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.create"], user_type="student")),
):
    """
    Reserve one seat on a schedule for the calling student.

    A repeated request for a trip the student already holds returns the
    existing booking with 200 instead of creating a second one.
    """
    try:
        student_id = user_data.get("user_id")
        logger.info(
            f"Attempting to book schedule_id={booking.schedule_id} for student_id={student_id} "
            f"on {booking.trip_date}"
        )

        result = commit_booking(
            db,
            student_id=student_id,
            schedule_id=booking.schedule_id,
            route_id=booking.route_id,
            trip_date=booking.trip_date,
            boarding_stop=booking.boarding_stop,
            amount=booking.amount,
        )

        if result.outcome == BookingOutcome.CONFIRMED:
            return ResponseWrapper.created(data=result.booking, message=result.message)

        if result.outcome == BookingOutcome.ALREADY_BOOKED:
            response.status_code = status.HTTP_200_OK
            return ResponseWrapper.success(data=result.booking, message=result.message)

        default_code = "BOOKING_CONFLICT" if result.outcome == BookingOutcome.CONFLICT else "BOOKING_FAILED"
        raise _result_error(_BOOKING_ERROR_STATUS[result.outcome], result, default_code)

    except HTTPException as e:
        logger.warning(f"HTTPException during booking creation: {e.detail}")
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error occurred while creating booking")
        raise handle_db_error(e)

    except Exception:
        db.rollback()
        logger.exception("Unexpected error occurred while creating booking")
        raise HTTPException(
            status_code=500,
            detail=ResponseWrapper.error(message="Internal Server Error", error_code="INTERNAL_ERROR"),
        )


@router.patch("/cancel/{booking_id}", response_model=BaseResponse[BookingResponse])
def cancel_booking(
    booking_id: int = Path(..., description="Booking ID to cancel"),
    payload: Optional[BookingCancel] = Body(None),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.update"], user_type="student")),
):
    """
    Cancel one of the caller's confirmed bookings and free its seat.
    Past trips and completed trips cannot be cancelled.
    """
    try:
        student_id = user_data.get("user_id")
        logger.info(f"Attempting to cancel booking_id={booking_id} by student_id={student_id}")

        result = release_booking(
            db,
            student_id=student_id,
            booking_id=booking_id,
            reason=payload.reason if payload else None,
        )

        if result.outcome == ReleaseOutcome.RELEASED:
            return ResponseWrapper.success(data=result.booking, message=result.message)

        status_code = _RELEASE_ERROR_STATUS[result.outcome]
        if result.reason and result.reason.code == DenyReason.NOT_OWNER:
            status_code = status.HTTP_403_FORBIDDEN
        default_code = "BOOKING_NOT_FOUND" if result.outcome == ReleaseOutcome.NOT_FOUND else "CANCEL_FAILED"
        raise _result_error(status_code, result, default_code)

    except HTTPException as e:
        logger.warning(f"HTTPException during booking cancellation: {e.detail}")
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error while cancelling booking")
        raise handle_db_error(e)

    except Exception:
        db.rollback()
        logger.exception("Unexpected error while cancelling booking")
        raise HTTPException(
            status_code=500,
            detail=ResponseWrapper.error(message="Internal Server Error", error_code="INTERNAL_ERROR"),
        )


@router.get("/student", response_model=ListResponse[BookingResponse])
def get_student_bookings(
    status_filter: Optional[BookingStatusEnum] = Query(None, alias="status", description="confirmed or cancelled"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.read"], user_type="student")),
):
    try:
        student_id = user_data.get("user_id")
        bookings = booking_crud.get_by_student(
            db, student_id=student_id, status=status_filter, skip=skip, limit=limit
        )
        logger.info(f"Fetched {len(bookings)} bookings for student_id={student_id}")
        return ResponseWrapper.success(
            data=[BookingResponse.model_validate(b) for b in bookings],
            message="Bookings fetched successfully",
        )

    except HTTPException as e:
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        logger.exception("Database error while fetching student bookings")
        raise handle_db_error(e)


@router.post("/reconcile", response_model=BaseResponse[ReconciliationResult])
def reconcile_booking_cache(
    request: ReconcileRequest,
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.read"], user_type="student")),
):
    """
    Compare the client's date -> booked cache with the ledger and return the
    corrected cache together with every date that drifted.
    """
    try:
        student_id = user_data.get("user_id")
        span = (request.date_to - request.date_from).days + 1
        if span > settings.RECONCILE_MAX_RANGE_DAYS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=ResponseWrapper.error(
                    message=f"Date range may cover at most {settings.RECONCILE_MAX_RANGE_DAYS} days",
                    error_code="RANGE_TOO_LARGE",
                ),
            )

        timeout = request.timeout_seconds or settings.RECONCILE_DEFAULT_TIMEOUT_SECONDS
        result = reconcile(
            db,
            student_id=student_id,
            date_from=request.date_from,
            date_to=request.date_to,
            client_cache=request.cache,
            deadline=time.monotonic() + timeout,
        )
        if result.diff:
            logger.info(
                f"Booking cache drift for student_id={student_id}: "
                f"{[(c.trip_date.isoformat(), c.direction.value) for c in result.diff]}"
            )
        return ResponseWrapper.success(
            data=result.model_dump(mode="json"),
            message="Cache in sync" if result.in_sync else f"{len(result.diff)} date(s) corrected",
        )

    except ReconciliationCancelled as e:
        logger.warning(f"Reconciliation timed out: {e}")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=ResponseWrapper.error(message=str(e), error_code="RECONCILE_TIMEOUT"),
        )

    except HTTPException as e:
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        logger.exception("Database error while reconciling booking cache")
        raise handle_db_error(e)
