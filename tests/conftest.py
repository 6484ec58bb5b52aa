"""
Shared fixtures: in-memory database, auth contexts, record factories, API client
"""

import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_PASSWORD"] = "test-admin-password"

from datetime import datetime

import pytest

from backend.database import SessionLocal, create_schema, drop_all_tables
from backend.services.driver_service import DriverService
from backend.services.employee_service import EmployeeService
from backend.services.rent_plan_service import RentPlanService
from backend.services.vehicle_service import VehicleService
from shared.auth import AuthContext, AuthToken
from shared.enums import UserRole, VehicleStatus


NOW = datetime(2025, 9, 20, 10, 0, 0)


@pytest.fixture(autouse=True)
def schema():
    create_schema()
    yield
    drop_all_tables()


@pytest.fixture
def db(schema):
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def admin():
    return AuthContext(user_id=1, username="admin", role=UserRole.ADMIN)


@pytest.fixture
def manager():
    return AuthContext(user_id=2, username="manager", role=UserRole.MANAGER)


@pytest.fixture
def driver_auth():
    return AuthContext(user_id=7, username="ravi", role=UserRole.DRIVER)


@pytest.fixture
def viewer():
    return AuthContext(user_id=9, username="viewer", role=UserRole.VIEWER)


@pytest.fixture
def make_plan(db, admin):
    def _make(name="Wagon R", security_deposit=2000, daily=None, weekly=None):
        if daily is None and weekly is None:
            daily = [{"trips": "0-59", "rentDay": 500}]
            weekly = [{"trips": "0-59", "weeklyRent": 3000, "accidentalCover": 105}]
        return RentPlanService.create_plan(
            admin, db,
            name=name,
            security_deposit=security_deposit,
            daily_rent_slabs=daily or [],
            weekly_rent_slabs=weekly or [],
        )
    return _make


@pytest.fixture
def make_vehicle(db, admin):
    counter = {"n": 0}

    def _make(registration=None, status=VehicleStatus.ACTIVE):
        counter["n"] += 1
        return VehicleService.create_vehicle(
            admin, db,
            registration_number=registration or f"DL01AB{1000 + counter['n']}",
            brand="Maruti",
            model="Wagon R",
            status=status,
        )
    return _make


@pytest.fixture
def make_driver(db, admin):
    counter = {"n": 0}

    def _make(name=None, mobile="auto", username=None):
        counter["n"] += 1
        if mobile == "auto":
            mobile = f"98765{counter['n']:05d}"
        return DriverService.create_driver(
            admin, db,
            name=name or f"Driver {counter['n']}",
            mobile=mobile,
            username=username or f"driver{counter['n']}",
        )
    return _make


@pytest.fixture
def make_employee(db, admin):
    def _make(full_name="Anita Sharma", salary=30000):
        return EmployeeService.create_employee(admin, db, full_name=full_name, salary=salary)
    return _make


@pytest.fixture
def client(schema):
    from server_api.app import app

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


def bearer(user_id: int, username: str, role: UserRole) -> dict:
    return {"Authorization": f"Bearer {AuthToken.create_token(user_id, username, role)}"}


@pytest.fixture
def admin_headers():
    return bearer(1, "admin", UserRole.ADMIN)


@pytest.fixture
def driver_headers():
    return bearer(7, "ravi", UserRole.DRIVER)
