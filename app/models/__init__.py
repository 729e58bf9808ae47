# Import all models here for easier access
from app.models.route import Route, RouteStatusEnum
from app.models.student import Student
from app.models.schedule import Schedule, ScheduleStatusEnum, BOOKABLE_SCHEDULE_STATUSES
from app.models.booking import Booking, BookingStatusEnum, PaymentStatusEnum
