"""
FleetRent - Rent Plan Service
"""

from sqlalchemy.orm import Session
from typing import List, Optional
from loguru import logger

from backend.models.rent_plan import RentPlan
from backend.models.audit import AuditLog
from shared.auth import AuthContext, require_permission
from shared.enums import Permission
from shared.errors import NotFoundError, ValidationError


SLAB_FIELDS = ("trips", "rentDay", "weeklyRent", "accidentalCover", "acceptanceRate")


def _clean_slabs(slabs, label: str) -> list:
    cleaned = []
    for index, slab in enumerate(slabs or []):
        if not isinstance(slab, dict):
            raise ValidationError(f"{label} slab {index + 1} must be an object")
        unknown = set(slab) - set(SLAB_FIELDS)
        if unknown:
            raise ValidationError(f"{label} slab {index + 1} has unknown fields: {sorted(unknown)}")
        cleaned.append(dict(slab))
    return cleaned


class RentPlanService:
    """Rent plan catalog"""

    @staticmethod
    @require_permission(Permission.PLAN_CREATE)
    def create_plan(
        auth: AuthContext,
        db: Session,
        name: str,
        security_deposit: float = 0.0,
        daily_rent_slabs: Optional[list] = None,
        weekly_rent_slabs: Optional[list] = None,
        vehicle_type: Optional[str] = None,
    ) -> RentPlan:
        if not name or not name.strip():
            raise ValidationError("Plan name is required")
        name = name.strip()
        if db.query(RentPlan).filter(RentPlan.name == name).first():
            raise ValidationError(f"Rent plan already exists: {name}")
        if float(security_deposit or 0) < 0:
            raise ValidationError("Security deposit cannot be negative")

        plan = RentPlan(
            name=name,
            vehicle_type=vehicle_type,
            security_deposit=float(security_deposit or 0),
            daily_rent_slabs=_clean_slabs(daily_rent_slabs, "Daily"),
            weekly_rent_slabs=_clean_slabs(weekly_rent_slabs, "Weekly"),
            status="active",
        )
        db.add(plan)
        db.flush()

        db.add(AuditLog.from_auth(
            auth, "create_rent_plan", "rent_plan", plan.id,
            f"Rent plan created: {name}",
            new_values=plan.to_dict(),
        ))

        logger.info(f"User {auth.username} created rent plan: {name}")
        return plan

    @staticmethod
    @require_permission(Permission.PLAN_VIEW)
    def get_plan(auth: AuthContext, db: Session, plan_id: int) -> RentPlan:
        plan = db.get(RentPlan, plan_id)
        if plan is None:
            raise NotFoundError("Rent plan", plan_id)
        return plan

    @staticmethod
    @require_permission(Permission.PLAN_VIEW)
    def get_plan_by_name(auth: AuthContext, db: Session, name: str) -> RentPlan:
        plan = db.query(RentPlan).filter(RentPlan.name == name).first()
        if plan is None:
            raise NotFoundError("Rent plan", name)
        return plan

    @staticmethod
    @require_permission(Permission.PLAN_VIEW)
    def list_plans(auth: AuthContext, db: Session) -> List[RentPlan]:
        return db.query(RentPlan).order_by(RentPlan.name).all()
