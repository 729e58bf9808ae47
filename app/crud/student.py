from typing import Optional
from sqlalchemy.orm import Session

from app.models.student import Student
from app.schemas.schedule import StudentRouteAllocation
from app.crud.base import CRUDBase


class CRUDStudent(CRUDBase[Student]):
    def get_allocation(self, db: Session, *, student_id: str) -> Optional[StudentRouteAllocation]:
        """
        Route allocation for a student, or None when the student is unknown,
        inactive, or has no allocated route.
        """
        student = self.query_by(db, student_id=student_id, is_active=True).first()
        if not student or student.allocated_route_id is None:
            return None
        return StudentRouteAllocation(
            student_id=student.student_id,
            route_id=student.allocated_route_id,
            boarding_stop=student.boarding_stop,
            transport_enrolled=bool(student.transport_enrolled),
            fee_paid_until=student.fee_paid_until,
        )


student_crud = CRUDStudent(Student)
