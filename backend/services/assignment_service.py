"""
FleetRent - Assignment Coordinator
Keeps driver, vehicle and plan selection records consistent when an
assignment or a vehicle status changes
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from datetime import datetime
from loguru import logger

from backend.models.driver import Driver
from backend.models.vehicle import Vehicle
from backend.models.rent_plan import RentPlan
from backend.models.audit import AuditLog
from backend.calc.rent import unit_rent
from backend.services.plan_selection_service import (
    PlanSelectionService,
    transition_selection,
    open_selections_for_driver,
    OPEN_STATUSES,
)
from backend.models.plan_selection import PlanSelection
from shared.auth import AuthContext, require_permission
from shared.enums import Permission, PlanType, SelectionStatus, VehicleStatus
from shared.errors import (
    FleetError,
    NotFoundError,
    InvalidTransitionError,
    DuplicateSelectionError,
    PartialWriteError,
)
from shared.utils import utcnow


def _lock_driver(db: Session, driver_id: int) -> Driver:
    driver = db.query(Driver).filter(Driver.id == driver_id).with_for_update().first()
    if driver is None:
        raise NotFoundError("Driver", driver_id)
    return driver


def _lock_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).with_for_update().first()
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    return vehicle


def current_vehicle(db: Session, driver: Driver) -> Optional[Vehicle]:
    """The vehicle a driver holds, by registration number or by back-reference"""
    if driver.vehicle_assigned:
        vehicle = db.query(Vehicle).filter(Vehicle.registration_number == driver.vehicle_assigned).first()
        if vehicle is not None:
            return vehicle
    return db.query(Vehicle).filter(Vehicle.assigned_driver == driver.id).first()


def release_selections(db: Session, driver: Driver, vehicle: Vehicle, now: datetime) -> list:
    """Pause a driver's open selections on a vehicle they no longer hold and unlink them"""
    released = []
    for selection in open_selections_for_driver(db, driver):
        if selection.vehicle_id not in (vehicle.id, None):
            continue
        transition_selection(selection, SelectionStatus.INACTIVE, now)
        selection.vehicle_id = None
        released.append(selection.id)
    return released


def first_slab(plan: RentPlan):
    """(plan type, slab) a new assignment bills on: the first daily slab, else the first weekly one"""
    if plan.daily_rent_slabs:
        return PlanType.DAILY, plan.daily_rent_slabs[0]
    if plan.weekly_rent_slabs:
        return PlanType.WEEKLY, plan.weekly_rent_slabs[0]
    return None, None


class AssignmentCoordinator:
    """Cross-record updates for driver/vehicle/plan assignments"""

    @staticmethod
    @require_permission(Permission.DRIVER_EDIT, Permission.VEHICLE_EDIT)
    def assign_vehicle(
        auth: AuthContext,
        db: Session,
        driver_id: int,
        vehicle_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> Driver:
        """
        Point a driver at a vehicle (or at none) and the vehicle back at the
        driver, in one transaction. A vehicle held by someone else is taken
        from them; the driver's previous vehicle is released.

        A driver who loses a vehicle has their open selections on it paused
        at `now` and unlinked, so rent stops and later status changes on
        that vehicle no longer reach them.
        """
        driver = _lock_driver(db, driver_id)
        previous = current_vehicle(db, driver)
        now = now or utcnow()
        old_values = {
            "vehicleAssigned": driver.vehicle_assigned or "",
            "previousVehicleId": previous.id if previous else None,
        }
        paused = []

        if vehicle_id is None:
            driver.vehicle_assigned = None
            if previous is not None:
                if previous.assigned_driver == driver.id:
                    previous.assigned_driver = None
                paused = release_selections(db, driver, previous, now)
            description = f"Vehicle unassigned from driver {driver.name}"
            new_values = {"vehicleAssigned": "", "vehicleId": None, "selectionsPaused": paused}
        else:
            vehicle = _lock_vehicle(db, vehicle_id)

            if vehicle.assigned_driver is not None and vehicle.assigned_driver != driver.id:
                holder = _lock_driver(db, vehicle.assigned_driver)
                if holder.vehicle_assigned == vehicle.registration_number:
                    holder.vehicle_assigned = None
                paused = release_selections(db, holder, vehicle, now)
                logger.info(
                    f"Vehicle {vehicle.registration_number} moved from driver {holder.id} to driver {driver.id}"
                )

            if previous is not None and previous.id != vehicle.id and previous.assigned_driver == driver.id:
                previous.assigned_driver = None

            driver.vehicle_assigned = vehicle.registration_number
            vehicle.assigned_driver = driver.id

            # Rent on open selections is gated on this vehicle's status from now on
            for selection in open_selections_for_driver(db, driver):
                selection.vehicle_id = vehicle.id

            description = f"Vehicle {vehicle.registration_number} assigned to driver {driver.name}"
            new_values = {
                "vehicleAssigned": vehicle.registration_number,
                "vehicleId": vehicle.id,
                "selectionsPaused": paused,
            }

        db.add(AuditLog.from_auth(
            auth, "assign_vehicle", "driver", driver.id, description,
            old_values=old_values, new_values=new_values,
        ))
        db.flush()

        logger.info(f"User {auth.username}: {description}")
        return driver

    @staticmethod
    @require_permission(Permission.DRIVER_EDIT)
    def assign_plan(
        auth: AuthContext,
        db: Session,
        driver_id: int,
        plan_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Set a driver's current plan from a rent plan and open a matching plan
        selection when the driver has none of that plan type.

        The driver update is committed before the selection is created. If
        the selection fails, PartialWriteError names both sides.
        """
        driver = _lock_driver(db, driver_id)
        old_values = {
            "currentPlan": driver.current_plan,
            "planAmount": driver.plan_amount,
            "planType": driver.plan_type.value if driver.plan_type else None,
        }

        if plan_id is None:
            driver.current_plan = None
            driver.plan_amount = None
            driver.plan_type = None
            db.add(AuditLog.from_auth(
                auth, "assign_plan", "driver", driver.id,
                f"Plan cleared for driver {driver.name}",
                old_values=old_values,
                new_values={"currentPlan": None, "planAmount": None, "planType": None},
            ))
            db.flush()
            logger.info(f"User {auth.username} cleared plan for driver {driver.id}")
            return {"driver": driver, "selection": None, "selectionCreated": False}

        plan = db.get(RentPlan, plan_id)
        if plan is None:
            raise NotFoundError("Rent plan", plan_id)

        plan_type, slab = first_slab(plan)
        driver.current_plan = plan.name
        driver.plan_type = plan_type
        driver.plan_amount = unit_rent(plan_type, slab) if plan_type else None

        db.add(AuditLog.from_auth(
            auth, "assign_plan", "driver", driver.id,
            f"Plan {plan.name} assigned to driver {driver.name}",
            old_values=old_values,
            new_values={
                "currentPlan": driver.current_plan,
                "planAmount": driver.plan_amount,
                "planType": plan_type.value if plan_type else None,
            },
        ))
        db.flush()

        if plan_type is None or not driver.mobile:
            logger.info(f"Driver {driver.id} has no mobile or plan {plan.name} has no slabs; no plan selection opened")
            return {"driver": driver, "selection": None, "selectionCreated": False}

        # First write is durable on its own
        db.commit()

        slabs = plan.daily_rent_slabs if plan_type == PlanType.DAILY else plan.weekly_rent_slabs
        try:
            selection = PlanSelectionService.create_selection(
                auth,
                db,
                plan_name=plan.name,
                plan_type=plan_type,
                driver_mobile=driver.mobile,
                security_deposit=plan.security_deposit,
                rent_slabs=slabs,
                selected_rent_slab=slab,
                driver_username=driver.username,
                driver_id=driver.id,
                now=now,
            )
            db.flush()
        except DuplicateSelectionError as e:
            logger.info(f"Driver {driver.id} keeps existing selection: {e.message}")
            return {"driver": driver, "selection": None, "selectionCreated": False}
        except (FleetError, PermissionError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Plan {plan.name} saved on driver {driver.id} but plan selection failed: {e}")
            raise PartialWriteError("driver plan", "plan selection", cause=e) from e

        return {"driver": driver, "selection": selection, "selectionCreated": True}

    @staticmethod
    @require_permission(Permission.VEHICLE_EDIT)
    def set_vehicle_status(
        auth: AuthContext,
        db: Session,
        vehicle_id: int,
        status,
        now: Optional[datetime] = None,
    ) -> Vehicle:
        """
        Change a vehicle's status and carry it to the selections it rents:
        inactive/suspended pause active selections, active resumes paused ones.
        """
        vehicle = _lock_vehicle(db, vehicle_id)
        try:
            target = VehicleStatus(status)
        except ValueError:
            raise InvalidTransitionError(
                f"Invalid vehicle status: {status!r}. Allowed: {', '.join(s.value for s in VehicleStatus)}"
            )

        old_status = vehicle.status.value
        vehicle.status = target
        now = now or utcnow()

        query = db.query(PlanSelection).filter(PlanSelection.status.in_(OPEN_STATUSES))
        if vehicle.assigned_driver is not None:
            query = query.filter(
                (PlanSelection.vehicle_id == vehicle.id)
                | ((PlanSelection.driver_id == vehicle.assigned_driver) & PlanSelection.vehicle_id.is_(None))
            )
        else:
            query = query.filter(PlanSelection.vehicle_id == vehicle.id)

        changed = []
        for selection in query.all():
            if target in (VehicleStatus.INACTIVE, VehicleStatus.SUSPENDED):
                if transition_selection(selection, SelectionStatus.INACTIVE, now):
                    changed.append(selection.id)
            elif target == VehicleStatus.ACTIVE:
                if transition_selection(selection, SelectionStatus.ACTIVE, now):
                    changed.append(selection.id)

        db.add(AuditLog.from_auth(
            auth, "set_vehicle_status", "vehicle", vehicle.id,
            f"Vehicle {vehicle.registration_number} status: {old_status} -> {target.value}",
            old_values={"status": old_status},
            new_values={"status": target.value, "selectionsChanged": changed},
        ))
        db.flush()

        logger.info(
            f"User {auth.username} set vehicle {vehicle.registration_number} {old_status} -> {target.value}; "
            f"{len(changed)} plan selection(s) updated"
        )
        return vehicle
