"""
FleetRent - Driver Model
"""

from sqlalchemy import Column, Integer, String, Date, Float, Text, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func

from backend.database import Base
from shared.enums import KycStatus, PlanType


class Driver(Base):
    """Driver model"""

    __tablename__ = "drivers"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Personal Information
    name = Column(String(100), nullable=False, index=True)
    mobile = Column(String(20), unique=True, nullable=True, index=True)
    username = Column(String(50), nullable=True)

    # License & KYC
    license_no = Column(String(50), nullable=True)
    kyc_status = Column(SQLEnum(KycStatus), default=KycStatus.PENDING, nullable=False)

    # Employment
    join_date = Column(Date, nullable=True)
    status = Column(String(20), default="active", nullable=False)

    # Plan (denormalized from the rent plan at assignment time)
    current_plan = Column(String(100), nullable=True)
    plan_amount = Column(Float, nullable=True)
    plan_type = Column(SQLEnum(PlanType), nullable=True)

    # Vehicle registration number, not the vehicle's internal id
    vehicle_assigned = Column(String(20), nullable=True, index=True)

    # Notes
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', mobile='{self.mobile}', vehicle='{self.vehicle_assigned}')>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "mobile": self.mobile,
            "username": self.username,
            "licenseNumber": self.license_no,
            "kycStatus": self.kyc_status.value if self.kyc_status else None,
            "joinDate": self.join_date.isoformat() if self.join_date else None,
            "status": self.status,
            "currentPlan": self.current_plan,
            "planAmount": self.plan_amount,
            "planType": self.plan_type.value if self.plan_type else None,
            "vehicleAssigned": self.vehicle_assigned or "",
            "notes": self.notes,
        }
