from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, func
)
from sqlalchemy.orm import relationship
from app.database.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = {"extend_existing": True}

    # Subject id issued by the external identity provider
    student_id = Column(String(64), primary_key=True, index=True)

    name = Column(String(150), nullable=False)
    email = Column(String(150), nullable=True)

    # Route allocation (managed by transport administration)
    allocated_route_id = Column(Integer, ForeignKey("routes.route_id", ondelete="SET NULL"), nullable=True)
    boarding_stop = Column(String(150), nullable=True)
    transport_enrolled = Column(Boolean, default=True, nullable=False)
    # Last date covered by a settled term fee, kept by the payments module
    fee_paid_until = Column(Date, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    allocated_route = relationship("Route", back_populates="students")
    bookings = relationship("Booking", back_populates="student")
