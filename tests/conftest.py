"""
Pytest configuration and fixtures for testing.
"""
from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.session import Base, get_db
from app.models.route import Route, RouteStatusEnum
from app.models.schedule import Schedule, ScheduleStatusEnum
from app.models.student import Student
from common_utils import get_current_ist_time, get_ist_today
from common_utils.auth.utils import create_access_token
from main import app
from tests.fixtures import OTHER_STUDENT_ID, STUDENT_ID, STUDENT_PERMISSIONS


# Test database URL - using in-memory SQLite for tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh test database for each test function.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(test_db):
    """
    Create a test client with the database dependency overridden.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def now():
    """Current server time in IST"""
    return get_current_ist_time()


@pytest.fixture
def today(now):
    return get_ist_today(now)


@pytest.fixture
def student_token():
    return create_access_token(user_id=STUDENT_ID, user_type="student", permissions=STUDENT_PERMISSIONS)


@pytest.fixture
def other_student_token():
    return create_access_token(user_id=OTHER_STUDENT_ID, user_type="student", permissions=STUDENT_PERMISSIONS)


@pytest.fixture
def admin_token():
    return create_access_token(user_id="ADM-1", user_type="admin", permissions=STUDENT_PERMISSIONS)


@pytest.fixture
def auth_headers(student_token):
    return {"Authorization": f"Bearer {student_token}"}


@pytest.fixture
def test_route(test_db):
    route = Route(
        route_number="R-12",
        route_name="North Campus Loop",
        start_location="Main Gate",
        end_location="North Campus",
        fare=45.0,
        departure_time=time(7, 30),
        arrival_time=time(8, 15),
        total_capacity=40,
        status=RouteStatusEnum.ACTIVE,
    )
    test_db.add(route)
    test_db.commit()
    test_db.refresh(route)
    return route


@pytest.fixture
def other_route(test_db):
    route = Route(route_number="R-20", route_name="South Campus Express", fare=30.0)
    test_db.add(route)
    test_db.commit()
    test_db.refresh(route)
    return route


def _add_student(db, student_id, route, **overrides):
    values = dict(
        student_id=student_id,
        name=f"Student {student_id[-4:]}",
        email=f"{student_id.lower()}@campus.example",
        allocated_route_id=route.route_id if route is not None else None,
        boarding_stop="Library Stop",
        transport_enrolled=True,
        fee_paid_until=date(2099, 12, 31),
        is_active=True,
    )
    values.update(overrides)
    student = Student(**values)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@pytest.fixture
def test_student(test_db, test_route):
    return _add_student(test_db, STUDENT_ID, test_route)


@pytest.fixture
def other_student(test_db, test_route):
    return _add_student(test_db, OTHER_STUDENT_ID, test_route, boarding_stop="Hostel Stop")


@pytest.fixture
def make_student(test_db):
    def _make(student_id, route, **overrides):
        return _add_student(test_db, student_id, route, **overrides)
    return _make


@pytest.fixture
def make_schedule(test_db, test_route, today):
    """
    Factory for schedules on test_route. Defaults describe a bookable trip
    three days out: approved, enabled, scheduled, seats left and a
    deadline a day before departure.
    """
    def _make(days_ahead=3, total_seats=40, booked_seats=0, route=None, **overrides):
        route = route or test_route
        trip_date = today + timedelta(days=days_ahead)
        values = dict(
            route_id=route.route_id,
            schedule_date=trip_date,
            departure_time=time(7, 30),
            arrival_time=time(8, 15),
            total_seats=total_seats,
            booked_seats=booked_seats,
            available_seats=total_seats - booked_seats,
            status=ScheduleStatusEnum.SCHEDULED,
            admin_approved=True,
            booking_enabled=True,
            booking_deadline=datetime.combine(trip_date - timedelta(days=1), time(19, 0)),
        )
        values.update(overrides)
        schedule = Schedule(**values)
        test_db.add(schedule)
        test_db.commit()
        test_db.refresh(schedule)
        return schedule
    return _make


@pytest.fixture
def test_schedule(make_schedule):
    return make_schedule()
