"""
FleetRent - Payment Reconciliation
Breakdown of what a plan selection still owes and how an admin payment is split
"""

from backend.calc.rent import compute_rent_summary, accidental_cover, unit_rent, to_amount
from shared.enums import AdminPaymentType, PaymentType
from shared.utils import round2


# Order in which a "total" payment settles outstanding amounts
ALLOCATION_ORDER = (
    ("depositPaid", "depositDue"),
    ("rentPaid", "rentDue"),
    ("accidentalCoverPaid", "accidentalCoverDue"),
    ("extraAmountPaid", "extraAmountDue"),
)


def tracked_payments(selection):
    """
    (deposit paid, rent paid). Ledger totals win; when nothing has been
    tracked the latest manual payment is attributed by its payment type.
    """
    deposit_paid = to_amount(selection.deposit_paid)
    rent_paid = to_amount(selection.rent_paid)
    if deposit_paid == 0 and rent_paid == 0:
        manual = to_amount(selection.paid_amount)
        if PaymentType(selection.payment_type) == PaymentType.SECURITY:
            deposit_paid = manual
        else:
            rent_paid = manual
    return deposit_paid, rent_paid


def compute_payment_details(selection, now, vehicle_status) -> dict:
    summary = compute_rent_summary(selection, now, vehicle_status)
    days = summary["totalDays"]
    rent_per_day = unit_rent(selection.plan_type, selection.selected_rent_slab)
    total_rent = days * rent_per_day

    deposit = to_amount(selection.security_deposit)
    adjustment = to_amount(selection.adjustment_amount)
    deposit_paid, rent_paid = tracked_payments(selection)

    deposit_due = max(0.0, deposit - deposit_paid)
    rent_due = max(0.0, total_rent - rent_paid - adjustment)

    cover = accidental_cover(selection.plan_type, selection.selected_rent_slab)
    cover_paid = to_amount(selection.accidental_cover_paid)
    cover_due = max(0.0, cover - cover_paid)

    extra = to_amount(selection.extra_amount)
    extra_paid = to_amount(selection.extra_amount_paid)
    extra_due = max(0.0, extra - extra_paid)

    paid_amount = to_amount(selection.paid_amount) + to_amount(selection.admin_paid_amount)

    return {
        "days": days,
        "rentPerDay": rent_per_day,
        "totalRent": round2(total_rent),
        "depositDue": round2(deposit_due),
        "rentDue": round2(rent_due),
        "accidentalCover": cover,
        "accidentalCoverDue": round2(cover_due),
        "extraAmount": extra,
        "extraAmountDue": round2(extra_due),
        "adjustment": adjustment,
        "paidAmount": round2(paid_amount),
        "totalDepositPaid": round2(deposit_paid),
        "totalRentPaid": round2(rent_paid),
        "extraAmountPaid": extra_paid,
        "accidentalCoverPaid": cover_paid,
        "totalPayable": round2(deposit_due + rent_due + cover_due + extra_due),
    }


def allocate_payment(amount: float, payment_type, details: dict) -> dict:
    """Split an admin payment into deposit/rent/cover/extra portions"""
    allocation = {paid_key: 0.0 for paid_key, _ in ALLOCATION_ORDER}
    payment_type = AdminPaymentType(payment_type)

    if payment_type == AdminPaymentType.SECURITY:
        allocation["depositPaid"] = amount
        remaining = 0.0
    elif payment_type == AdminPaymentType.RENT:
        allocation["rentPaid"] = amount
        remaining = 0.0
    else:
        remaining = amount
        for paid_key, due_key in ALLOCATION_ORDER:
            due = details.get(due_key, 0.0)
            if due > 0 and remaining > 0:
                portion = min(remaining, due)
                allocation[paid_key] = portion
                remaining -= portion

    allocation["unallocated"] = round2(remaining)
    return allocation
