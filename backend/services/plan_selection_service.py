"""
FleetRent - Plan Selection Service
Plan selection lifecycle, rent accrual reads and payment reconciliation
"""

from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from loguru import logger

from backend.models.driver import Driver
from backend.models.vehicle import Vehicle
from backend.models.plan_selection import PlanSelection
from backend.models.audit import AuditLog
from backend.calc.rent import compute_rent_summary, compute_total_payment, rent_entries
from backend.calc.payments import compute_payment_details, allocate_payment
from shared.auth import AuthContext, require_permission
from shared.enums import Permission, PlanType, SelectionStatus, PaymentType, AdminPaymentType
from shared.errors import NotFoundError, InvalidTransitionError, DuplicateSelectionError, ValidationError
from shared.utils import utcnow, isoformat, round2


OPEN_STATUSES = (SelectionStatus.ACTIVE, SelectionStatus.INACTIVE)


def transition_selection(selection: PlanSelection, target: SelectionStatus, now: datetime) -> bool:
    """
    Move a selection to `target`. Returns False when it already is there.

    Leaving active stamps rent_paused_date. Reactivation clears the pause
    stamp and keeps the original rent_start_date. Completed and cancelled
    are terminal.
    """
    current = selection.status
    if current == target:
        return False
    if current.is_terminal:
        raise InvalidTransitionError(
            f"Plan selection {selection.id} is {current.value} and cannot become {target.value}"
        )

    if current == SelectionStatus.ACTIVE:
        selection.rent_paused_date = now
    if target == SelectionStatus.ACTIVE:
        selection.rent_paused_date = None
        if selection.rent_start_date is None:
            selection.rent_start_date = now

    selection.status = target
    return True


def find_open_selection(db: Session, driver_mobile: str, plan_type: PlanType) -> Optional[PlanSelection]:
    return db.query(PlanSelection).filter(
        PlanSelection.driver_mobile == driver_mobile,
        PlanSelection.plan_type == plan_type,
        PlanSelection.status.in_(OPEN_STATUSES),
    ).first()


def open_selections_for_driver(db: Session, driver: Driver) -> List[PlanSelection]:
    query = db.query(PlanSelection).filter(PlanSelection.status.in_(OPEN_STATUSES))
    if driver.mobile:
        query = query.filter(
            (PlanSelection.driver_id == driver.id) | (PlanSelection.driver_mobile == driver.mobile)
        )
    else:
        query = query.filter(PlanSelection.driver_id == driver.id)
    return query.all()


def resolve_vehicle_status(db: Session, selection: PlanSelection):
    """Status of the vehicle the selection rents, or None when no vehicle is linked"""
    vehicle = None
    if selection.vehicle_id is not None:
        vehicle = db.get(Vehicle, selection.vehicle_id)
    elif selection.driver_id is not None:
        vehicle = db.query(Vehicle).filter(Vehicle.assigned_driver == selection.driver_id).first()
    return vehicle.status if vehicle is not None else None


def _get_selection(db: Session, selection_id: int) -> PlanSelection:
    selection = db.get(PlanSelection, selection_id)
    if selection is None:
        raise NotFoundError("Plan selection", selection_id)
    return selection


def _positive_amount(value, field: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number. Got: {value!r}")
    if amount <= 0:
        raise ValidationError(f"{field} must be a positive number. Got: {value!r}")
    return amount


class PlanSelectionService:
    """Plan selection management service"""

    @staticmethod
    @require_permission(Permission.SELECTION_CREATE)
    def create_selection(
        auth: AuthContext,
        db: Session,
        plan_name: str,
        plan_type,
        driver_mobile: str,
        security_deposit: float = 0.0,
        rent_slabs: Optional[list] = None,
        selected_rent_slab: Optional[dict] = None,
        driver_username: Optional[str] = None,
        driver_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PlanSelection:
        """Book a plan for a driver; rent starts accruing immediately"""
        if not plan_name:
            raise ValidationError("Plan name is required")
        if not driver_mobile:
            raise ValidationError("Driver mobile is required")
        try:
            plan_type = PlanType(plan_type)
        except ValueError:
            raise ValidationError(f"Invalid plan type: {plan_type!r}")
        if security_deposit is not None and float(security_deposit) < 0:
            raise ValidationError("Security deposit cannot be negative")

        existing = find_open_selection(db, driver_mobile, plan_type)
        if existing:
            raise DuplicateSelectionError(
                f"Driver {driver_mobile} already has an open {plan_type.value} plan "
                f"(selection {existing.id}). Complete or cancel it first."
            )

        driver = db.get(Driver, driver_id) if driver_id is not None else None
        if driver is None:
            driver = db.query(Driver).filter(Driver.mobile == driver_mobile).first()

        vehicle_id = None
        if driver is not None:
            vehicle = db.query(Vehicle).filter(Vehicle.assigned_driver == driver.id).first()
            vehicle_id = vehicle.id if vehicle else None

        now = now or utcnow()
        selection = PlanSelection(
            driver_id=driver.id if driver else None,
            vehicle_id=vehicle_id,
            driver_mobile=driver_mobile,
            driver_username=driver_username or (driver.username if driver else None),
            plan_name=plan_name,
            plan_type=plan_type,
            security_deposit=float(security_deposit or 0),
            rent_slabs=list(rent_slabs or []),
            selected_rent_slab=dict(selected_rent_slab) if selected_rent_slab else None,
            selected_date=now,
            status=SelectionStatus.ACTIVE,
            rent_start_date=now,
            payment_type=PaymentType.RENT,
        )
        db.add(selection)
        db.flush()

        db.add(AuditLog.from_auth(
            auth, "create_plan_selection", "plan_selection", selection.id,
            f"Plan selected: {plan_name} ({plan_type.value}) for {driver_mobile}",
            new_values=selection.to_dict(),
        ))

        logger.info(
            f"User {auth.username} created plan selection {selection.id}: "
            f"{plan_name} ({plan_type.value}) for {driver_mobile}, total at booking {compute_total_payment(selection)}"
        )
        return selection

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def get_selection(auth: AuthContext, db: Session, selection_id: int) -> PlanSelection:
        return _get_selection(db, selection_id)

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def list_selections(auth: AuthContext, db: Session, page: int = 1, limit: int = 50) -> List[PlanSelection]:
        """Newest first, paginated"""
        page = max(1, page)
        limit = max(1, min(limit, 500))
        return (
            db.query(PlanSelection)
            .order_by(PlanSelection.selected_date.desc(), PlanSelection.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def count_selections(auth: AuthContext, db: Session) -> int:
        return db.query(PlanSelection).count()

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def list_by_mobile(auth: AuthContext, db: Session, driver_mobile: str) -> List[PlanSelection]:
        return (
            db.query(PlanSelection)
            .filter(PlanSelection.driver_mobile == driver_mobile)
            .order_by(PlanSelection.selected_date.desc(), PlanSelection.id.desc())
            .all()
        )

    @staticmethod
    @require_permission(Permission.SELECTION_EDIT)
    def set_status(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        new_status,
        now: Optional[datetime] = None,
    ) -> PlanSelection:
        """Administrator status change; leaving active pauses accrual"""
        selection = _get_selection(db, selection_id)
        try:
            target = SelectionStatus(new_status)
        except ValueError:
            raise InvalidTransitionError(
                f"Invalid status: {new_status!r}. Allowed: {', '.join(s.value for s in SelectionStatus)}"
            )

        old_status = selection.status.value
        if not transition_selection(selection, target, now or utcnow()):
            return selection

        db.add(AuditLog.from_auth(
            auth, "set_selection_status", "plan_selection", selection.id,
            f"Plan selection status: {old_status} -> {target.value}",
            old_values={"status": old_status},
            new_values={
                "status": target.value,
                "rentPausedDate": isoformat(selection.rent_paused_date),
            },
        ))
        db.flush()

        logger.info(f"User {auth.username} set plan selection {selection.id} status {old_status} -> {target.value}")
        return selection

    @staticmethod
    @require_permission(Permission.PAYMENT_RECORD)
    def record_payment(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        payment_type,
        paid_amount,
        now: Optional[datetime] = None,
    ) -> PlanSelection:
        """Store the latest manual payment and what it was for"""
        selection = _get_selection(db, selection_id)
        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            raise ValidationError(f"Invalid payment type: {payment_type!r}. Must be rent or security")

        if paid_amount is None:
            amount = None
        else:
            try:
                amount = float(paid_amount)
            except (TypeError, ValueError):
                raise ValidationError(f"Paid amount must be a number. Got: {paid_amount!r}")
            if amount < 0:
                raise ValidationError("Paid amount cannot be negative")

        old_values = {"paymentType": selection.payment_type.value, "paidAmount": selection.paid_amount}
        selection.payment_type = payment_type
        selection.paid_amount = amount
        selection.payment_date = now or utcnow()

        db.add(AuditLog.from_auth(
            auth, "record_payment", "plan_selection", selection.id,
            f"Payment recorded: {amount} ({payment_type.value})",
            old_values=old_values,
            new_values={"paymentType": payment_type.value, "paidAmount": amount},
        ))
        db.flush()

        logger.info(f"User {auth.username} recorded {payment_type.value} payment {amount} on selection {selection.id}")
        return selection

    @staticmethod
    @require_permission(Permission.PAYMENT_RECORD)
    def record_admin_payment(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        amount,
        payment_type=AdminPaymentType.RENT,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Cash-desk payment. `total` payments settle deposit, then rent, then
        accidental cover, then extra charges. Returns the ledger entry.
        """
        selection = _get_selection(db, selection_id)
        amount = _positive_amount(amount, "Payment amount")
        try:
            payment_type = AdminPaymentType(payment_type)
        except ValueError:
            raise ValidationError(f"Invalid payment type: {payment_type!r}. Must be security, rent or total")

        now = now or utcnow()
        details = compute_payment_details(selection, now, resolve_vehicle_status(db, selection))
        allocation = allocate_payment(amount, payment_type, details)

        entry = {
            "date": now.isoformat(),
            "amount": amount,
            "type": payment_type.value,
            "depositPaid": allocation["depositPaid"],
            "rentPaid": allocation["rentPaid"],
            "accidentalCoverPaid": allocation["accidentalCoverPaid"],
            "extraAmountPaid": allocation["extraAmountPaid"],
            "unallocated": allocation["unallocated"],
        }

        # JSON columns are replaced, not mutated in place
        selection.admin_payments = list(selection.admin_payments or []) + [entry]
        selection.admin_paid_amount = round2((selection.admin_paid_amount or 0) + amount)
        selection.deposit_paid = round2((selection.deposit_paid or 0) + allocation["depositPaid"])
        selection.rent_paid = round2((selection.rent_paid or 0) + allocation["rentPaid"])
        selection.accidental_cover_paid = round2(
            (selection.accidental_cover_paid or 0) + allocation["accidentalCoverPaid"]
        )
        selection.extra_amount_paid = round2((selection.extra_amount_paid or 0) + allocation["extraAmountPaid"])

        db.add(AuditLog.from_auth(
            auth, "record_admin_payment", "plan_selection", selection.id,
            f"Admin payment {amount} ({payment_type.value})",
            new_values=entry,
        ))
        db.flush()

        if allocation["unallocated"] > 0:
            logger.warning(
                f"Admin payment on selection {selection.id} exceeds amount due by {allocation['unallocated']}"
            )
        logger.info(f"User {auth.username} recorded admin payment {amount} ({payment_type.value}) on selection {selection.id}")
        return entry

    @staticmethod
    @require_permission(Permission.PAYMENT_RECORD)
    def add_extra_charge(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        amount,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> PlanSelection:
        """Fines, damages and other one-off charges"""
        selection = _get_selection(db, selection_id)
        amount = _positive_amount(amount, "Extra amount")
        now = now or utcnow()

        selection.extra_amount = round2((selection.extra_amount or 0) + amount)
        selection.extra_amounts = list(selection.extra_amounts or []) + [
            {"amount": amount, "reason": reason or "", "date": now.isoformat()}
        ]

        db.add(AuditLog.from_auth(
            auth, "add_extra_charge", "plan_selection", selection.id,
            f"Extra charge {amount}: {reason or '-'}",
            new_values={"extraAmount": selection.extra_amount},
        ))
        db.flush()

        logger.info(f"User {auth.username} added extra charge {amount} to selection {selection.id}")
        return selection

    @staticmethod
    @require_permission(Permission.PAYMENT_RECORD)
    def add_adjustment(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        amount,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> PlanSelection:
        """Credit against rent due; a negative amount reverses an earlier credit"""
        selection = _get_selection(db, selection_id)
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError(f"Adjustment amount must be a number. Got: {amount!r}")
        if amount == 0:
            raise ValidationError("Adjustment amount cannot be zero")
        now = now or utcnow()

        selection.adjustment_amount = round2((selection.adjustment_amount or 0) + amount)
        selection.adjustments = list(selection.adjustments or []) + [
            {"amount": amount, "reason": reason or "", "date": now.isoformat()}
        ]

        db.add(AuditLog.from_auth(
            auth, "add_adjustment", "plan_selection", selection.id,
            f"Adjustment {amount}: {reason or '-'}",
            new_values={"adjustmentAmount": selection.adjustment_amount},
        ))
        db.flush()

        logger.info(f"User {auth.username} added adjustment {amount} to selection {selection.id}")
        return selection

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def rent_summary(
        auth: AuthContext,
        db: Session,
        selection_id: int,
        now: Optional[datetime] = None,
        include_entries: bool = False,
    ) -> dict:
        """Live rent figures, computed on every read"""
        selection = _get_selection(db, selection_id)
        now = now or utcnow()
        summary = compute_rent_summary(selection, now, resolve_vehicle_status(db, selection))

        summary["status"] = selection.status.value
        summary["startDate"] = isoformat(selection.rent_start_date)
        summary["asOfDate"] = now.date().isoformat()
        if include_entries:
            summary["entries"] = (
                rent_entries(selection.rent_start_date, summary["totalDays"], summary["rentPerDay"])
                if summary["hasStarted"] else []
            )
        return summary

    @staticmethod
    @require_permission(Permission.SELECTION_VIEW)
    def payment_details(auth: AuthContext, db: Session, selection_id: int, now: Optional[datetime] = None) -> dict:
        selection = _get_selection(db, selection_id)
        details = compute_payment_details(selection, now or utcnow(), resolve_vehicle_status(db, selection))
        details["totalAtBooking"] = compute_total_payment(selection)
        return details

    @staticmethod
    @require_permission(Permission.SELECTION_DELETE)
    def delete_selection(auth: AuthContext, db: Session, selection_id: int) -> None:
        selection = _get_selection(db, selection_id)

        db.add(AuditLog.from_auth(
            auth, "delete_plan_selection", "plan_selection", selection.id,
            f"Plan selection deleted: {selection.plan_name} for {selection.driver_mobile}",
            old_values=selection.to_dict(),
        ))

        db.delete(selection)
        db.flush()
        logger.warning(f"User {auth.username} deleted plan selection {selection_id}")
