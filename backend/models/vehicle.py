"""
FleetRent - Vehicle Model
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func

from backend.database import Base
from shared.enums import VehicleStatus


class Vehicle(Base):
    """Vehicle model"""

    __tablename__ = "vehicles"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Vehicle Information
    registration_number = Column(String(20), unique=True, nullable=False, index=True)
    brand = Column(String(50), nullable=True)
    model = Column(String(50), nullable=True)
    category = Column(String(50), nullable=True)
    year = Column(Integer, nullable=True)

    # Status gates rent accrual
    status = Column(SQLEnum(VehicleStatus), default=VehicleStatus.PENDING, nullable=False)

    # Driver's internal id
    assigned_driver = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True)

    # Notes
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, registration='{self.registration_number}', status='{self.status}', driver={self.assigned_driver})>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "registrationNumber": self.registration_number,
            "brand": self.brand,
            "model": self.model,
            "category": self.category,
            "year": self.year,
            "status": self.status.value,
            "assignedDriver": self.assigned_driver,
            "notes": self.notes,
        }
