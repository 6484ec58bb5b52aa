import pytest

from backend.services.assignment_service import AssignmentCoordinator
from backend.services.audit_service import AuditService


def test_entries_are_newest_first_and_filterable(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    first, second = make_vehicle(), make_vehicle()
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, first.id)
    AssignmentCoordinator.assign_vehicle(admin, db, driver.id, second.id)

    entries = AuditService.list_entries(admin, db, entity_type="driver", entity_id=driver.id, action="assign_vehicle")

    assert [e.new_values["vehicleId"] for e in entries] == [second.id, first.id]
    assert entries[0].to_dict()["entityType"] == "driver"


def test_limit_is_applied(db, admin, make_driver, make_vehicle):
    driver = make_driver()
    for _ in range(3):
        AssignmentCoordinator.assign_vehicle(admin, db, driver.id, make_vehicle().id)

    assert len(AuditService.list_entries(admin, db, action="assign_vehicle", limit=2)) == 2


def test_manager_cannot_read_audit_trail(db, manager):
    with pytest.raises(PermissionError):
        AuditService.list_entries(manager, db)
