"""
FleetRent - Driver Service
Business logic for driver management
"""

from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from loguru import logger

from backend.models.driver import Driver
from backend.models.vehicle import Vehicle
from backend.models.rent_plan import RentPlan
from backend.models.audit import AuditLog
from backend.services.assignment_service import AssignmentCoordinator
from shared.auth import AuthContext, require_permission
from shared.enums import Permission, KycStatus
from shared.errors import NotFoundError, ValidationError


# Fields written directly; vehicle and plan go through the coordinator
DIRECT_FIELDS = ("name", "mobile", "username", "license_no", "kyc_status", "join_date", "status", "notes")


def _get_driver(db: Session, driver_id: int) -> Driver:
    driver = db.get(Driver, driver_id)
    if driver is None:
        raise NotFoundError("Driver", driver_id)
    return driver


def _check_mobile(db: Session, mobile: Optional[str], driver_id: Optional[int] = None) -> None:
    if not mobile:
        return
    query = db.query(Driver).filter(Driver.mobile == mobile)
    if driver_id is not None:
        query = query.filter(Driver.id != driver_id)
    if query.first():
        raise ValidationError(f"Mobile number already registered: {mobile}")


def _kyc(value) -> KycStatus:
    try:
        return KycStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid KYC status: {value!r}")


class DriverService:
    """Driver management service"""

    @staticmethod
    @require_permission(Permission.DRIVER_CREATE)
    def create_driver(
        auth: AuthContext,
        db: Session,
        name: str,
        mobile: Optional[str] = None,
        username: Optional[str] = None,
        license_no: Optional[str] = None,
        kyc_status=KycStatus.PENDING,
        join_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Driver:
        if not name or not name.strip():
            raise ValidationError("Driver name is required")
        _check_mobile(db, mobile)

        driver = Driver(
            name=name.strip(),
            mobile=mobile or None,
            username=username,
            license_no=license_no,
            kyc_status=_kyc(kyc_status),
            join_date=join_date,
            status="active",
            notes=notes,
        )
        db.add(driver)
        db.flush()

        db.add(AuditLog.from_auth(
            auth, "create_driver", "driver", driver.id,
            f"Driver created: {driver.name} ({driver.mobile or '-'})",
            new_values=driver.to_dict(),
        ))

        logger.info(f"User {auth.username} created driver: {driver.name} (id={driver.id})")
        return driver

    @staticmethod
    @require_permission(Permission.DRIVER_VIEW)
    def get_driver(auth: AuthContext, db: Session, driver_id: int) -> Driver:
        return _get_driver(db, driver_id)

    @staticmethod
    @require_permission(Permission.DRIVER_VIEW)
    def list_drivers(auth: AuthContext, db: Session) -> List[Driver]:
        return db.query(Driver).order_by(Driver.name).all()

    @staticmethod
    @require_permission(Permission.DRIVER_EDIT)
    def update_driver(auth: AuthContext, db: Session, driver_id: int, **updates) -> Driver:
        """
        Partial update. `vehicle_assigned` takes a registration number and
        `current_plan` a rent plan name; empty values clear them.
        """
        driver = _get_driver(db, driver_id)

        old_values = driver.to_dict()
        changed = {}
        for field in DIRECT_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field == "name" and not (value or "").strip():
                raise ValidationError("Driver name is required")
            if field == "mobile":
                _check_mobile(db, value, driver.id)
                value = value or None
            if field == "kyc_status":
                value = _kyc(value)
            setattr(driver, field, value)
            changed[field] = value.value if isinstance(value, KycStatus) else value

        if changed:
            db.add(AuditLog.from_auth(
                auth, "update_driver", "driver", driver.id,
                f"Driver updated: {driver.name}",
                old_values={k: old_values.get(k) for k in changed},
                new_values={k: str(v) if isinstance(v, date) else v for k, v in changed.items()},
            ))
            db.flush()
            logger.info(f"User {auth.username} updated driver {driver.id}: {list(changed)}")

        if "vehicle_assigned" in updates:
            registration = (updates["vehicle_assigned"] or "").strip()
            vehicle_id = None
            if registration:
                vehicle = db.query(Vehicle).filter(Vehicle.registration_number == registration).first()
                if vehicle is None:
                    raise NotFoundError("Vehicle", registration)
                vehicle_id = vehicle.id
            AssignmentCoordinator.assign_vehicle(auth, db, driver.id, vehicle_id)

        if "current_plan" in updates:
            plan_name = (updates["current_plan"] or "").strip()
            plan_id = None
            if plan_name:
                plan = db.query(RentPlan).filter(RentPlan.name == plan_name).first()
                if plan is None:
                    raise NotFoundError("Rent plan", plan_name)
                plan_id = plan.id
            AssignmentCoordinator.assign_plan(auth, db, driver.id, plan_id)

        return driver
