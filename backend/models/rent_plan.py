"""
FleetRent - Rent Plan Model
Reference data: per-plan daily and weekly rent slabs keyed by trip volume
"""

from sqlalchemy import Column, Integer, String, Float, JSON, DateTime
from sqlalchemy.sql import func

from backend.database import Base


class RentPlan(Base):
    """Rent plan with its slab catalog"""

    __tablename__ = "rent_plans"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(100), unique=True, nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=True)
    security_deposit = Column(Float, default=0.0, nullable=False)

    # Slab = {trips, rentDay, weeklyRent, accidentalCover, acceptanceRate}
    daily_rent_slabs = Column(JSON, default=list, nullable=False)
    weekly_rent_slabs = Column(JSON, default=list, nullable=False)

    status = Column(String(20), default="active", nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RentPlan(id={self.id}, name='{self.name}', deposit={self.security_deposit})>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "vehicleType": self.vehicle_type,
            "securityDeposit": self.security_deposit,
            "dailyRentSlabs": list(self.daily_rent_slabs or []),
            "weeklyRentSlabs": list(self.weekly_rent_slabs or []),
            "status": self.status,
        }
