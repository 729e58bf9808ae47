from sqlalchemy import (
    Column, Integer, String, DateTime, Time, Float, Enum, func
)
from sqlalchemy.orm import relationship
from app.database.session import Base
from enum import Enum as PyEnum


class RouteStatusEnum(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Route(Base):
    """Route master data. Owned by the route administration module; read-only here."""
    __tablename__ = "routes"
    __table_args__ = {"extend_existing": True}

    route_id = Column(Integer, primary_key=True, index=True)
    route_number = Column(String(20), nullable=False, unique=True)
    route_name = Column(String(150), nullable=False)
    start_location = Column(String(255), nullable=True)
    end_location = Column(String(255), nullable=True)

    fare = Column(Float, nullable=False, default=0.0)  # fixed per-route amount
    departure_time = Column(Time, nullable=True)
    arrival_time = Column(Time, nullable=True)
    total_capacity = Column(Integer, nullable=False, default=40)

    status = Column(
        Enum(RouteStatusEnum, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=RouteStatusEnum.ACTIVE,
        nullable=False,
    )

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    schedules = relationship("Schedule", back_populates="route")
    students = relationship("Student", back_populates="allocated_route")
