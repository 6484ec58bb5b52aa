"""
FleetRent - Vehicle Service
Business logic for vehicle management
"""

from sqlalchemy.orm import Session
from typing import List, Optional
from loguru import logger

from backend.models.driver import Driver
from backend.models.vehicle import Vehicle
from backend.models.audit import AuditLog
from backend.services.assignment_service import AssignmentCoordinator
from shared.auth import AuthContext, require_permission
from shared.enums import Permission, VehicleStatus
from shared.errors import NotFoundError, ValidationError


DIRECT_FIELDS = ("registration_number", "brand", "model", "category", "year", "notes")


def _get_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    return vehicle


def _normalize_registration(value: Optional[str]) -> str:
    registration = (value or "").strip().upper()
    if not registration:
        raise ValidationError("Registration number is required")
    return registration


class VehicleService:
    """Vehicle management service"""

    @staticmethod
    @require_permission(Permission.VEHICLE_CREATE)
    def create_vehicle(
        auth: AuthContext,
        db: Session,
        registration_number: str,
        brand: Optional[str] = None,
        model: Optional[str] = None,
        category: Optional[str] = None,
        year: Optional[int] = None,
        status=VehicleStatus.PENDING,
        notes: Optional[str] = None,
    ) -> Vehicle:
        registration = _normalize_registration(registration_number)
        if db.query(Vehicle).filter(Vehicle.registration_number == registration).first():
            raise ValidationError(f"Vehicle already registered: {registration}")
        try:
            status = VehicleStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid vehicle status: {status!r}")

        vehicle = Vehicle(
            registration_number=registration,
            brand=brand,
            model=model,
            category=category,
            year=year,
            status=status,
            notes=notes,
        )
        db.add(vehicle)
        db.flush()

        db.add(AuditLog.from_auth(
            auth, "create_vehicle", "vehicle", vehicle.id,
            f"Vehicle created: {registration}",
            new_values=vehicle.to_dict(),
        ))

        logger.info(f"User {auth.username} created vehicle: {registration} (id={vehicle.id})")
        return vehicle

    @staticmethod
    @require_permission(Permission.VEHICLE_VIEW)
    def get_vehicle(auth: AuthContext, db: Session, vehicle_id: int) -> Vehicle:
        return _get_vehicle(db, vehicle_id)

    @staticmethod
    @require_permission(Permission.VEHICLE_VIEW)
    def list_vehicles(auth: AuthContext, db: Session, status: Optional[str] = None) -> List[Vehicle]:
        query = db.query(Vehicle)
        if status:
            try:
                query = query.filter(Vehicle.status == VehicleStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid vehicle status: {status!r}")
        return query.order_by(Vehicle.registration_number).all()

    @staticmethod
    @require_permission(Permission.VEHICLE_EDIT)
    def update_vehicle(auth: AuthContext, db: Session, vehicle_id: int, **updates) -> Vehicle:
        """
        Partial update. `assigned_driver` (driver id or None) and `status`
        are applied through the assignment coordinator.
        """
        vehicle = _get_vehicle(db, vehicle_id)

        old_values = vehicle.to_dict()
        changed = {}
        for field in DIRECT_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field == "registration_number":
                value = _normalize_registration(value)
                clash = db.query(Vehicle).filter(
                    Vehicle.registration_number == value, Vehicle.id != vehicle.id
                ).first()
                if clash:
                    raise ValidationError(f"Vehicle already registered: {value}")
                # Drivers refer to vehicles by registration number
                if vehicle.assigned_driver is not None:
                    holder = db.get(Driver, vehicle.assigned_driver)
                    if holder is not None and holder.vehicle_assigned == vehicle.registration_number:
                        holder.vehicle_assigned = value
            setattr(vehicle, field, value)
            changed[field] = value

        if changed:
            db.add(AuditLog.from_auth(
                auth, "update_vehicle", "vehicle", vehicle.id,
                f"Vehicle updated: {vehicle.registration_number}",
                old_values={k: old_values.get(k) for k in changed},
                new_values=changed,
            ))
            db.flush()
            logger.info(f"User {auth.username} updated vehicle {vehicle.id}: {list(changed)}")

        if "assigned_driver" in updates:
            driver_id = updates["assigned_driver"]
            if driver_id is None:
                if vehicle.assigned_driver is not None:
                    AssignmentCoordinator.assign_vehicle(auth, db, vehicle.assigned_driver, None)
                    vehicle.assigned_driver = None
            else:
                AssignmentCoordinator.assign_vehicle(auth, db, int(driver_id), vehicle.id)

        if "status" in updates:
            AssignmentCoordinator.set_vehicle_status(auth, db, vehicle.id, updates["status"])

        return vehicle
