"""
FleetRent - Models Package
"""

from backend.models.driver import Driver
from backend.models.vehicle import Vehicle
from backend.models.rent_plan import RentPlan
from backend.models.plan_selection import PlanSelection
from backend.models.employee import Employee
from backend.models.salary_sheet import SalarySheet
from backend.models.audit import AuditLog

__all__ = [
    "Driver",
    "Vehicle",
    "RentPlan",
    "PlanSelection",
    "Employee",
    "SalarySheet",
    "AuditLog",
]
