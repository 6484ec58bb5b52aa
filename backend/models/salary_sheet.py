"""
FleetRent - Salary Sheet Model
Per staff member and month: the attendance map plus its cached summary
"""

from sqlalchemy import Column, Integer, Float, JSON, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from backend.database import Base


class SalarySheet(Base):
    """Monthly attendance ledger for one staff member"""

    __tablename__ = "salary_sheets"
    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="uq_salary_sheet_employee_month"),
    )

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Staff reference
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    # Period
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    # {"1": "P", "2": "A", ...}; JSON keys are always strings
    attendance_map = Column(JSON, default=dict, nullable=False)

    # Base monthly salary for this sheet
    salary_amount = Column(Float, default=0.0, nullable=False)

    # Cache of the summary derived from attendance_map and salary_amount
    summary = Column(JSON, default=dict, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<SalarySheet(id={self.id}, employee_id={self.employee_id}, period='{self.year}-{self.month:02d}')>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "staffId": self.employee_id,
            "month": self.month,
            "year": self.year,
            "attendanceMap": dict(self.attendance_map or {}),
            "salaryAmount": self.salary_amount,
            "summary": dict(self.summary or {}),
        }
