"""
FleetRent - Rent Accrual Calculations
Pure functions: no database access, the caller supplies `now` and the vehicle status
"""

from datetime import timedelta

from shared.config import DEFAULT_ACCIDENTAL_COVER, RENT_ENTRY_CAP_DAYS
from shared.enums import PlanType, SelectionStatus, PaymentType, VehicleStatus


ONE_DAY = timedelta(days=1)


def to_amount(value) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def unit_rent(plan_type, slab) -> float:
    """Rent for one billing unit: rentDay on daily plans, weeklyRent on weekly plans"""
    slab = slab or {}
    if PlanType(plan_type) == PlanType.WEEKLY:
        return to_amount(slab.get("weeklyRent"))
    return to_amount(slab.get("rentDay"))


def accidental_cover(plan_type, slab) -> float:
    """Cover fee, charged on weekly plans only"""
    if PlanType(plan_type) != PlanType.WEEKLY:
        return 0.0
    cover = (slab or {}).get("accidentalCover")
    if cover is None or cover == "":
        return DEFAULT_ACCIDENTAL_COVER
    return float(cover)


def not_started_summary() -> dict:
    return {"totalDays": 0, "rentPerDay": 0, "totalDue": 0, "hasStarted": False}


def accrual_end(selection, now):
    """Paused and terminal selections stop counting at rent_paused_date"""
    status = SelectionStatus(selection.status)
    if status != SelectionStatus.ACTIVE and selection.rent_paused_date is not None:
        return selection.rent_paused_date
    return now


def billable_days(start, end) -> int:
    return max(0, (end - start) // ONE_DAY)


def rent_paid_amount(selection) -> float:
    """The latest manual payment counts against rent only when it was a rent payment"""
    if selection.paid_amount is None:
        return 0.0
    if PaymentType(selection.payment_type) != PaymentType.RENT:
        return 0.0
    return float(selection.paid_amount)


def compute_rent_summary(selection, now, vehicle_status) -> dict:
    """
    Running rent owed on a plan selection.

    Days are whole calendar days between rent_start_date and the accrual end,
    whatever the plan period; rentPerDay is the rent for one billing unit.
    """
    if selection.rent_start_date is None:
        return not_started_summary()
    if vehicle_status is None or VehicleStatus(vehicle_status) != VehicleStatus.ACTIVE:
        return not_started_summary()

    rent_per_day = unit_rent(selection.plan_type, selection.selected_rent_slab)
    end = accrual_end(selection, now)
    total_days = billable_days(selection.rent_start_date, end)

    gross_due = total_days * rent_per_day
    total_due = max(0.0, gross_due - rent_paid_amount(selection))

    return {
        "totalDays": total_days,
        "rentPerDay": rent_per_day,
        "totalDue": total_due,
        "hasStarted": True,
    }


def compute_total_payment(selection) -> float:
    """One-time amount owed at booking: deposit + one unit of rent + cover"""
    slab = selection.selected_rent_slab
    return (
        to_amount(selection.security_deposit)
        + unit_rent(selection.plan_type, slab)
        + accidental_cover(selection.plan_type, slab)
    )


def rent_entries(start, total_days: int, rent_per_day: float) -> list:
    """Per-day ledger lines for a rent summary, one per billable day"""
    entries = []
    day = start.date() if hasattr(start, "date") else start
    for _ in range(min(total_days, RENT_ENTRY_CAP_DAYS)):
        entries.append({"date": day.isoformat(), "amount": rent_per_day})
        day = day + ONE_DAY
    return entries
