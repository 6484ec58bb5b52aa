"""
FleetRent - Demo data
A rent plan, two vehicles, two drivers and a staff member
"""

from datetime import date
from loguru import logger

from backend.database import get_db
from backend.models.driver import Driver
from backend.services.assignment_service import AssignmentCoordinator
from backend.services.driver_service import DriverService
from backend.services.employee_service import EmployeeService
from backend.services.rent_plan_service import RentPlanService
from backend.services.vehicle_service import VehicleService
from shared.auth import AuthContext
from shared.enums import KycStatus, VehicleStatus


DEMO_PLAN = {
    "name": "Wagon R CNG",
    "vehicle_type": "hatchback",
    "security_deposit": 2000,
    "daily_rent_slabs": [
        {"trips": "0-59", "rentDay": 650},
        {"trips": "60-89", "rentDay": 550},
        {"trips": "90+", "rentDay": 500},
    ],
    "weekly_rent_slabs": [
        {"trips": "0-59", "weeklyRent": 4200, "accidentalCover": 105},
        {"trips": "60+", "weeklyRent": 3000, "accidentalCover": 105},
    ],
}

DEMO_VEHICLES = [
    {"registration_number": "DL01AB1234", "brand": "Maruti", "model": "Wagon R", "category": "hatchback", "year": 2022},
    {"registration_number": "DL01CD5678", "brand": "Maruti", "model": "Dzire", "category": "sedan", "year": 2023},
]

DEMO_DRIVERS = [
    {"name": "Ravi Kumar", "mobile": "9876500001", "username": "ravi", "license_no": "DL-0420110012345"},
    {"name": "Suresh Yadav", "mobile": "9876500002", "username": "suresh", "license_no": "DL-0420150067890"},
]


def seed_demo_data() -> bool:
    """Create demo records; skipped when drivers already exist"""
    auth = AuthContext.system()

    with get_db() as db:
        if db.query(Driver).count():
            logger.info("Demo data skipped: database already has drivers")
            return False

        plan = RentPlanService.create_plan(auth, db, **DEMO_PLAN)

        vehicles = [
            VehicleService.create_vehicle(auth, db, status=VehicleStatus.ACTIVE, **data)
            for data in DEMO_VEHICLES
        ]
        drivers = [
            DriverService.create_driver(
                auth, db, kyc_status=KycStatus.ACTIVE, join_date=date.today(), **data
            )
            for data in DEMO_DRIVERS
        ]

        for driver, vehicle in zip(drivers, vehicles):
            AssignmentCoordinator.assign_vehicle(auth, db, driver.id, vehicle.id)
        AssignmentCoordinator.assign_plan(auth, db, drivers[0].id, plan.id)

        EmployeeService.create_employee(
            auth, db,
            full_name="Anita Sharma",
            salary=30000,
            department="Operations",
            join_date=date(2024, 4, 1),
        )

    logger.success(f"Demo data created: 1 plan, {len(vehicles)} vehicles, {len(drivers)} drivers, 1 staff member")
    return True
