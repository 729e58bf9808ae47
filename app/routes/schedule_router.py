from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import get_logger
from app.crud.schedule import schedule_crud
from app.crud.student import student_crud
from app.database.session import get_db
from app.schemas.base import BaseResponse, ListResponse
from app.schemas.booking import PolicyDecision
from app.schemas.schedule import CalendarDay
from app.services.availability import build_calendar
from app.services.booking_policy import evaluate
from app.services.booking_window import build_availability
from app.utils.response_utils import ResponseWrapper, handle_db_error, handle_http_error
from common_utils import get_current_ist_time, get_ist_today
from common_utils.auth.permission_checker import PermissionChecker

logger = get_logger(__name__)
router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("/calendar", response_model=ListResponse[CalendarDay])
def get_calendar(
    date_from: Optional[date] = Query(None, description="Defaults to today"),
    date_to: Optional[date] = Query(None, description="Defaults to CALENDAR_DEFAULT_RANGE_DAYS after date_from"),
    booked_dates: Optional[List[date]] = Query(None, description="Dates the client already believes are booked"),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.read"], user_type="student")),
):
    """
    Per-date availability of the caller's allocated route.

    Every date in the range gets an entry; dates without a trip are
    reported as unavailable.
    """
    try:
        student_id = user_data.get("user_id")
        now = get_current_ist_time()
        date_from = date_from or get_ist_today(now)
        date_to = date_to or date_from + timedelta(days=settings.CALENDAR_DEFAULT_RANGE_DAYS - 1)

        if date_to < date_from:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=ResponseWrapper.error(
                    message="date_to must not be before date_from",
                    error_code="INVALID_DATE_RANGE",
                ),
            )
        if (date_to - date_from).days + 1 > settings.RECONCILE_MAX_RANGE_DAYS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=ResponseWrapper.error(
                    message=f"Date range may cover at most {settings.RECONCILE_MAX_RANGE_DAYS} days",
                    error_code="RANGE_TOO_LARGE",
                ),
            )

        allocation = student_crud.get_allocation(db, student_id=student_id)
        if allocation is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=ResponseWrapper.error(
                    message="No route assigned to student",
                    error_code="NO_ALLOCATION",
                ),
            )

        rows = schedule_crud.get_route_schedules(
            db,
            route_id=allocation.route_id,
            date_from=date_from,
            date_to=date_to,
            student_id=student_id,
        )
        schedules = [build_availability(schedule, now, booking) for schedule, booking in rows]
        days = build_calendar(
            schedules,
            date_from,
            date_to,
            now,
            cached_booked={d: True for d in booked_dates or []},
        )

        logger.info(
            f"Calendar for student_id={student_id} route_id={allocation.route_id}: "
            f"{len(schedules)} schedules over {len(days)} days"
        )
        return ResponseWrapper.success(data=days, message="Calendar fetched successfully")

    except HTTPException as e:
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        logger.exception("Database error while building calendar")
        raise handle_db_error(e)


@router.get("/{schedule_id}/eligibility", response_model=BaseResponse[PolicyDecision])
def get_booking_eligibility(
    schedule_id: int = Path(..., description="Schedule to check"),
    db: Session = Depends(get_db),
    user_data=Depends(PermissionChecker(["booking.read"], user_type="student")),
):
    """Every reason the caller could not book this schedule right now, in display order"""
    try:
        student_id = user_data.get("user_id")
        now = get_current_ist_time()

        schedule = schedule_crud.get_by_id(db, schedule_id=schedule_id)
        availability = build_availability(schedule, now) if schedule else None
        allocation = student_crud.get_allocation(db, student_id=student_id)
        decision = evaluate(availability, allocation, student_id, now)

        message = "Booking allowed" if decision.allowed else decision.reason.message
        return ResponseWrapper.success(data=decision, message=message)

    except HTTPException as e:
        raise handle_http_error(e)

    except SQLAlchemyError as e:
        logger.exception("Database error while checking booking eligibility")
        raise handle_db_error(e)
