"""
FleetRent - Plan Selection Model
A driver's booking of a rent plan with its own accrual lifecycle
"""

from sqlalchemy import Column, Integer, String, Float, JSON, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func

from backend.database import Base
from shared.enums import PlanType, SelectionStatus, PaymentType
from shared.utils import isoformat


class PlanSelection(Base):
    """Plan selection record"""

    __tablename__ = "plan_selections"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Links
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True, index=True)

    # Denormalized for lookup without a join
    driver_mobile = Column(String(20), nullable=False, index=True)
    driver_username = Column(String(50), nullable=True)

    # Plan snapshot
    plan_name = Column(String(100), nullable=False)
    plan_type = Column(SQLEnum(PlanType), nullable=False)
    security_deposit = Column(Float, default=0.0, nullable=False)
    rent_slabs = Column(JSON, default=list, nullable=False)
    selected_rent_slab = Column(JSON, nullable=True)
    selected_date = Column(DateTime, nullable=False)

    # Lifecycle
    status = Column(SQLEnum(SelectionStatus), default=SelectionStatus.ACTIVE, nullable=False, index=True)
    rent_start_date = Column(DateTime, nullable=True)
    rent_paused_date = Column(DateTime, nullable=True)

    # Latest manually recorded payment
    payment_type = Column(SQLEnum(PaymentType), default=PaymentType.RENT, nullable=False)
    paid_amount = Column(Float, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    # Admin payment ledger and cumulative allocations
    admin_paid_amount = Column(Float, default=0.0, nullable=False)
    deposit_paid = Column(Float, default=0.0, nullable=False)
    rent_paid = Column(Float, default=0.0, nullable=False)
    accidental_cover_paid = Column(Float, default=0.0, nullable=False)
    extra_amount_paid = Column(Float, default=0.0, nullable=False)
    admin_payments = Column(JSON, default=list, nullable=False)

    # Extra charges and adjustments (credits against rent)
    extra_amount = Column(Float, default=0.0, nullable=False)
    extra_amounts = Column(JSON, default=list, nullable=False)
    adjustment_amount = Column(Float, default=0.0, nullable=False)
    adjustments = Column(JSON, default=list, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<PlanSelection(id={self.id}, mobile='{self.driver_mobile}', plan='{self.plan_name}', "
            f"type='{self.plan_type}', status='{self.status}')>"
        )

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "driverId": self.driver_id,
            "vehicleId": self.vehicle_id,
            "driverMobile": self.driver_mobile,
            "driverUsername": self.driver_username,
            "planName": self.plan_name,
            "planType": self.plan_type.value,
            "securityDeposit": self.security_deposit,
            "rentSlabs": list(self.rent_slabs or []),
            "selectedRentSlab": self.selected_rent_slab,
            "selectedDate": isoformat(self.selected_date),
            "status": self.status.value,
            "rentStartDate": isoformat(self.rent_start_date),
            "rentPausedDate": isoformat(self.rent_paused_date),
            "paymentType": self.payment_type.value,
            "paidAmount": self.paid_amount,
            "paymentDate": isoformat(self.payment_date),
            "adminPaidAmount": self.admin_paid_amount,
            "depositPaid": self.deposit_paid,
            "rentPaid": self.rent_paid,
            "accidentalCoverPaid": self.accidental_cover_paid,
            "extraAmountPaid": self.extra_amount_paid,
            "adminPayments": list(self.admin_payments or []),
            "extraAmount": self.extra_amount,
            "extraAmounts": list(self.extra_amounts or []),
            "adjustmentAmount": self.adjustment_amount,
            "adjustments": list(self.adjustments or []),
        }
