"""
FleetRent - Employee (Staff) Model
"""

from sqlalchemy import Column, Integer, String, Date, Float, Boolean, Text, DateTime
from sqlalchemy.sql import func

from backend.database import Base


class Employee(Base):
    """Staff member paid from attendance"""

    __tablename__ = "employees"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Personal Information
    full_name = Column(String(100), nullable=False, index=True)
    mobile = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)

    # Employment
    username = Column(String(50), unique=True, nullable=True)
    department = Column(String(100), nullable=True)
    join_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Default monthly salary, copied onto each new salary sheet
    salary = Column(Float, default=0.0, nullable=False)

    # Notes
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.full_name}', salary={self.salary})>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "fullName": self.full_name,
            "mobile": self.mobile,
            "email": self.email,
            "username": self.username,
            "department": self.department,
            "joinDate": self.join_date.isoformat() if self.join_date else None,
            "isActive": self.is_active,
            "salary": self.salary,
            "notes": self.notes,
        }
