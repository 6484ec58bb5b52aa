from datetime import datetime, timedelta

from backend.calc.rent import (
    compute_rent_summary,
    compute_total_payment,
    rent_entries,
    unit_rent,
    accidental_cover,
)
from backend.models.plan_selection import PlanSelection
from shared.config import RENT_ENTRY_CAP_DAYS
from shared.enums import PlanType, SelectionStatus, PaymentType, VehicleStatus


NOW = datetime(2025, 9, 20, 10, 0, 0)
DAY = timedelta(days=1)


def selection(**overrides):
    fields = dict(
        plan_name="Wagon R",
        plan_type=PlanType.DAILY,
        driver_mobile="9876500001",
        security_deposit=2000.0,
        selected_rent_slab={"trips": "0-59", "rentDay": 500},
        status=SelectionStatus.ACTIVE,
        rent_start_date=NOW - 10 * DAY,
        rent_paused_date=None,
        payment_type=PaymentType.RENT,
        paid_amount=None,
    )
    fields.update(overrides)
    return PlanSelection(**fields)


def test_not_started_without_rent_start_date():
    summary = compute_rent_summary(selection(rent_start_date=None), NOW, VehicleStatus.ACTIVE)
    assert summary == {"totalDays": 0, "rentPerDay": 0, "totalDue": 0, "hasStarted": False}


def test_not_started_when_vehicle_not_active():
    for status in (VehicleStatus.INACTIVE, VehicleStatus.PENDING, VehicleStatus.SUSPENDED, None):
        summary = compute_rent_summary(selection(), NOW, status)
        assert summary["hasStarted"] is False
        assert summary["totalDue"] == 0


def test_daily_plan_accrues_per_elapsed_day():
    sel = selection(payment_type=PaymentType.SECURITY, paid_amount=0)
    summary = compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)
    assert summary == {"totalDays": 10, "rentPerDay": 500, "totalDue": 5000, "hasStarted": True}


def test_paused_selection_stops_at_pause_date():
    sel = selection(status=SelectionStatus.INACTIVE, rent_paused_date=NOW - 3 * DAY)

    summary = compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)
    assert summary["totalDays"] == 7
    assert summary["totalDue"] == 3500

    later = compute_rent_summary(sel, NOW + 30 * DAY, VehicleStatus.ACTIVE)
    assert later["totalDays"] == 7


def test_terminal_selection_stops_at_pause_date():
    sel = selection(status=SelectionStatus.COMPLETED, rent_paused_date=NOW - 4 * DAY)
    assert compute_rent_summary(sel, NOW + 10 * DAY, VehicleStatus.ACTIVE)["totalDays"] == 6


def test_partial_days_are_not_billed():
    sel = selection(rent_start_date=NOW - timedelta(days=2, hours=23))
    assert compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)["totalDays"] == 2


def test_start_in_future_clamps_to_zero_days():
    sel = selection(rent_start_date=NOW + 2 * DAY)
    summary = compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)
    assert summary["totalDays"] == 0
    assert summary["totalDue"] == 0


def test_rent_payment_reduces_due_but_never_below_zero():
    partly = compute_rent_summary(selection(paid_amount=1200), NOW, VehicleStatus.ACTIVE)
    assert partly["totalDue"] == 3800

    overpaid = compute_rent_summary(selection(paid_amount=999999), NOW, VehicleStatus.ACTIVE)
    assert overpaid["totalDue"] == 0


def test_security_payment_does_not_count_against_rent():
    sel = selection(payment_type=PaymentType.SECURITY, paid_amount=2000)
    assert compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)["totalDue"] == 5000


def test_weekly_plan_uses_weekly_rent_per_calendar_day():
    sel = selection(
        plan_type=PlanType.WEEKLY,
        selected_rent_slab={"weeklyRent": 3000, "accidentalCover": 105},
        rent_start_date=NOW - 2 * DAY,
    )
    summary = compute_rent_summary(sel, NOW, VehicleStatus.ACTIVE)
    assert summary["rentPerDay"] == 3000
    assert summary["totalDue"] == 6000


def test_total_payment_weekly_includes_cover():
    sel = selection(
        plan_type=PlanType.WEEKLY,
        selected_rent_slab={"weeklyRent": 3000, "accidentalCover": 105},
        security_deposit=2000,
    )
    assert compute_total_payment(sel) == 5105


def test_total_payment_daily_has_no_cover():
    assert compute_total_payment(selection()) == 2500


def test_weekly_cover_defaults_when_missing():
    assert accidental_cover(PlanType.WEEKLY, {"weeklyRent": 3000}) == 105
    assert accidental_cover(PlanType.WEEKLY, {"weeklyRent": 3000, "accidentalCover": ""}) == 105
    assert accidental_cover(PlanType.DAILY, {"rentDay": 500, "accidentalCover": 105}) == 0


def test_unit_rent_accepts_numeric_strings():
    assert unit_rent(PlanType.DAILY, {"rentDay": "650"}) == 650
    assert unit_rent(PlanType.WEEKLY, {}) == 0


def test_rent_entries_one_line_per_day():
    entries = rent_entries(NOW - 3 * DAY, 3, 500)
    assert [e["date"] for e in entries] == ["2025-09-17", "2025-09-18", "2025-09-19"]
    assert all(e["amount"] == 500 for e in entries)


def test_rent_entries_are_capped():
    assert len(rent_entries(NOW, RENT_ENTRY_CAP_DAYS + 50, 1)) == RENT_ENTRY_CAP_DAYS
