from app.crud.base import CRUDBase
from app.crud.booking import booking_crud
from app.crud.schedule import schedule_crud
from app.crud.student import student_crud
