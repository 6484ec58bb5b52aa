from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from backend.models.audit import AuditLog
from backend.models.driver import Driver
from backend.models.plan_selection import PlanSelection
from backend.services.assignment_service import AssignmentCoordinator
from backend.services.driver_service import DriverService
from backend.services.plan_selection_service import PlanSelectionService
from backend.services.vehicle_service import VehicleService
from shared.enums import PlanType, SelectionStatus, VehicleStatus
from shared.errors import InvalidTransitionError, NotFoundError, PartialWriteError


NOW = datetime(2025, 9, 20, 10, 0, 0)
DAY = timedelta(days=1)


# Vehicle assignment

def test_assign_vehicle_links_both_sides(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle(registration="DL01AB1234")

    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, vehicle.id)

    assert driver.vehicle_assigned == "DL01AB1234"
    assert vehicle.assigned_driver == driver.id


def test_reassign_releases_previous_vehicle(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    first, second = make_vehicle(), make_vehicle()

    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, first.id)
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, second.id)

    assert driver.vehicle_assigned == second.registration_number
    assert second.assigned_driver == driver.id
    assert first.assigned_driver is None


def test_unassign_clears_both_sides(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle()
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, vehicle.id)

    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, None)

    assert not driver.vehicle_assigned
    assert vehicle.assigned_driver is None
    assert driver.to_dict()["vehicleAssigned"] == ""


def test_taking_a_held_vehicle_clears_the_other_driver(db, admin, make_driver, make_vehicle):
    holder, taker = make_driver(), make_driver()
    vehicle = make_vehicle()
    AssignmentCoordinator.assign_vehicle(admin, db, holder.id, vehicle.id)

    AssignmentCoordinator.assign_vehicle(admin, db, taker.id, vehicle.id)

    assert vehicle.assigned_driver == taker.id
    assert taker.vehicle_assigned == vehicle.registration_number
    assert holder.vehicle_assigned is None


def test_assign_unknown_vehicle_or_driver(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle()
    with pytest.raises(NotFoundError):
        AssignmentCoordinator.assign_vehicle(admin, db, driver.id, 999)
    with pytest.raises(NotFoundError):
        AssignmentCoordinator.assign_vehicle(admin, db, 999, vehicle.id)


def test_viewer_cannot_assign(db, viewer, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle()
    with pytest.raises(PermissionError):
        AssignmentCoordinator.assign_vehicle(viewer, db, driver.id, vehicle.id)


def test_assignment_is_audited(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle()
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, vehicle.id)

    entry = db.query(AuditLog).filter(AuditLog.action == "assign_vehicle").one()
    assert entry.entity_id == driver.id
    assert entry.new_values["vehicleId"] == vehicle.id


def test_update_driver_routes_vehicle_by_registration(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle(registration="KA05XY9999")

    DriverService.update_driver(admin, db, driver.id, vehicle_assigned="KA05XY9999", notes="night shift")
    assert vehicle.assigned_driver == driver.id
    assert driver.notes == "night shift"

    with pytest.raises(NotFoundError):
        DriverService.update_driver(admin, db, driver.id, vehicle_assigned="NOPE")

    DriverService.update_driver(admin, db, driver.id, vehicle_assigned="")
    assert vehicle.assigned_driver is None
    assert not driver.vehicle_assigned


def test_update_vehicle_routes_assigned_driver(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle()

    VehicleService.update_vehicle(admin, db, vehicle.id, assigned_driver=driver.id)
    assert driver.vehicle_assigned == vehicle.registration_number

    VehicleService.update_vehicle(admin, db, vehicle.id, assigned_driver=None)
    assert vehicle.assigned_driver is None
    assert not driver.vehicle_assigned


def test_renaming_registration_follows_driver(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    vehicle = make_vehicle(registration="DL01AB0001")
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, vehicle.id)

    VehicleService.update_vehicle(admin, db, vehicle.id, registration_number="dl01ab0002")

    assert vehicle.registration_number == "DL01AB0002"
    assert driver.vehicle_assigned == "DL01AB0002"


# Plan assignment

def test_assign_plan_sets_fields_and_opens_selection(db, admin, make_driver, make_plan):
    driver = make_driver()
    plan = make_plan()

    result = AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id, now=NOW)

    assert driver.current_plan == plan.name
    assert driver.plan_type == PlanType.DAILY
    assert driver.plan_amount == 500
    assert result["selectionCreated"] is True
    selection = result["selection"]
    assert selection.driver_mobile == driver.mobile
    assert selection.plan_type == PlanType.DAILY
    assert selection.security_deposit == 2000
    assert selection.rent_start_date == NOW


def test_weekly_only_plan(db, admin, make_driver, make_plan):
    driver = make_driver()
    plan = make_plan(weekly=[{"weeklyRent": 3000, "accidentalCover": 105}])

    result = AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    assert driver.plan_type == PlanType.WEEKLY
    assert driver.plan_amount == 3000
    assert result["selection"].plan_type == PlanType.WEEKLY


def test_reassigning_plan_does_not_duplicate_selection(db, admin, make_driver, make_plan):
    driver = make_driver()
    plan = make_plan()
    AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    again = AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    assert again["selectionCreated"] is False
    assert driver.current_plan == plan.name
    assert db.query(PlanSelection).filter(PlanSelection.driver_mobile == driver.mobile).count() == 1


def test_assign_plan_without_mobile_skips_selection(db, admin, make_driver, make_plan):
    driver = make_driver(mobile=None)
    plan = make_plan()

    result = AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    assert driver.current_plan == plan.name
    assert result["selection"] is None
    assert db.query(PlanSelection).count() == 0


def test_clear_plan(db, admin, make_driver, make_plan):
    driver = make_driver()
    plan = make_plan()
    AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    AssignmentCoordinator.assign_plan(admin, db, driver.id, None)

    assert driver.current_plan is None
    assert driver.plan_amount is None
    assert driver.plan_type is None


def test_unknown_plan(db, admin, make_driver):
    driver = make_driver()
    with pytest.raises(NotFoundError):
        AssignmentCoordinator.assign_plan(admin, db, driver.id, 999)


def test_failed_selection_reports_partial_write(db, admin, make_driver, make_plan, monkeypatch):
    driver = make_driver()
    plan = make_plan()

    def broken(*args, **kwargs):
        raise OperationalError("INSERT INTO plan_selections", {}, Exception("disk I/O error"))

    monkeypatch.setattr(PlanSelectionService, "create_selection", broken)

    with pytest.raises(PartialWriteError) as excinfo:
        AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id)

    assert excinfo.value.succeeded == "driver plan"
    assert excinfo.value.failed == "plan selection"
    assert excinfo.value.to_dict()["error"] == "partial_write"

    # The driver side survived the rollback of the failed write
    stored = db.get(Driver, driver.id)
    assert stored.current_plan == plan.name
    assert db.query(AuditLog).filter(AuditLog.action == "assign_plan").count() == 1


def test_update_driver_routes_plan_by_name(db, admin, make_driver, make_plan):
    driver = make_driver()
    make_plan(name="Dzire Weekly", weekly=[{"weeklyRent": 4200}])

    DriverService.update_driver(admin, db, driver.id, current_plan="Dzire Weekly")
    assert driver.plan_type == PlanType.WEEKLY
    assert driver.plan_amount == 4200

    with pytest.raises(NotFoundError):
        DriverService.update_driver(admin, db, driver.id, current_plan="Missing")


# Vehicle status cascade

@pytest.fixture
def on_the_road(db, admin, make_driver, make_vehicle, make_plan):
    driver = make_driver()
    vehicle = make_vehicle()
    plan = make_plan()
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, vehicle.id)
    selection = AssignmentCoordinator.assign_plan(admin, db, driver.id, plan.id, now=NOW)["selection"]
    return vehicle, selection


def test_suspending_vehicle_pauses_selection(db, admin, on_the_road):
    vehicle, selection = on_the_road

    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "suspended", now=NOW + 4 * DAY)

    assert vehicle.status == VehicleStatus.SUSPENDED
    assert selection.status == SelectionStatus.INACTIVE
    assert selection.rent_paused_date == NOW + 4 * DAY


def test_reactivating_vehicle_resumes_selection(db, admin, on_the_road):
    vehicle, selection = on_the_road
    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "inactive", now=NOW + 2 * DAY)

    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "active", now=NOW + 6 * DAY)

    assert selection.status == SelectionStatus.ACTIVE
    assert selection.rent_start_date == NOW
    assert selection.rent_paused_date is None


def test_vehicle_status_leaves_closed_selections_alone(db, admin, on_the_road):
    vehicle, selection = on_the_road
    PlanSelectionService.set_status(admin, db, selection.id, "completed", now=NOW + DAY)

    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "inactive", now=NOW + 2 * DAY)
    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "active", now=NOW + 3 * DAY)

    assert selection.status == SelectionStatus.COMPLETED


def test_invalid_vehicle_status(db, admin, make_vehicle):
    vehicle = make_vehicle()
    with pytest.raises(InvalidTransitionError):
        AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "scrapped")


# Losing a vehicle

def test_taking_a_vehicle_stops_the_previous_holders_rent(db, admin, make_driver, on_the_road):
    vehicle, selection = on_the_road
    taker = make_driver()

    AssignmentCoordinator.assign_vehicle(admin, db, taker.id, vehicle.id, now=NOW + 2 * DAY)

    assert selection.status == SelectionStatus.INACTIVE
    assert selection.rent_paused_date == NOW + 2 * DAY
    assert selection.vehicle_id is None
    summary = PlanSelectionService.rent_summary(admin, db, selection.id, now=NOW + 10 * DAY)
    assert summary["totalDue"] == 0


def test_new_holders_vehicle_status_does_not_reach_previous_holder(db, admin, make_driver, on_the_road):
    vehicle, selection = on_the_road
    taker = make_driver()
    AssignmentCoordinator.assign_vehicle(admin, db, taker.id, vehicle.id, now=NOW + 2 * DAY)

    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "suspended", now=NOW + 5 * DAY)
    assert selection.rent_paused_date == NOW + 2 * DAY

    AssignmentCoordinator.assign_vehicle(admin, db, taker.id, None, now=NOW + 6 * DAY)
    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "active", now=NOW + 7 * DAY)

    assert selection.status == SelectionStatus.INACTIVE
    summary = PlanSelectionService.rent_summary(admin, db, selection.id, now=NOW + 40 * DAY)
    assert summary["totalDue"] == 0


def test_unassigning_pauses_the_drivers_selections(db, admin, on_the_road):
    vehicle, selection = on_the_road
    driver_id = vehicle.assigned_driver

    AssignmentCoordinator.assign_vehicle(admin, db, driver_id, None, now=NOW + 3 * DAY)
    AssignmentCoordinator.set_vehicle_status(admin, db, vehicle.id, "active", now=NOW + 4 * DAY)

    assert selection.status == SelectionStatus.INACTIVE
    assert selection.rent_paused_date == NOW + 3 * DAY
    assert selection.vehicle_id is None

    entry = db.query(AuditLog).filter(AuditLog.action == "assign_vehicle").order_by(AuditLog.id.desc()).first()
    assert entry.new_values["selectionsPaused"] == [selection.id]


def test_switching_vehicles_keeps_rent_running(db, admin, make_vehicle, on_the_road):
    vehicle, selection = on_the_road
    replacement = make_vehicle()

    AssignmentCoordinator.assign_vehicle(admin, db, vehicle.assigned_driver, replacement.id, now=NOW + DAY)

    assert selection.status == SelectionStatus.ACTIVE
    assert selection.vehicle_id == replacement.id
    assert vehicle.assigned_driver is None
