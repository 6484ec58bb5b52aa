"""
FleetRent - Employee Service
Staff records; salaries are handled by the payroll service
"""

from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from loguru import logger

from backend.models.employee import Employee
from backend.models.audit import AuditLog
from shared.auth import AuthContext, require_permission
from shared.enums import Permission
from shared.errors import NotFoundError, ValidationError


class EmployeeService:
    """Staff management service"""

    @staticmethod
    @require_permission(Permission.STAFF_CREATE)
    def create_employee(
        auth: AuthContext,
        db: Session,
        full_name: str,
        salary: float = 0.0,
        mobile: Optional[str] = None,
        email: Optional[str] = None,
        username: Optional[str] = None,
        department: Optional[str] = None,
        join_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Employee:
        if not full_name or not full_name.strip():
            raise ValidationError("Full name is required")
        if float(salary or 0) < 0:
            raise ValidationError("Salary cannot be negative")
        if username and db.query(Employee).filter(Employee.username == username).first():
            raise ValidationError(f"Username already in use: {username}")

        employee = Employee(
            full_name=full_name.strip(),
            mobile=mobile,
            email=email,
            username=username,
            department=department,
            join_date=join_date,
            is_active=True,
            salary=float(salary or 0),
            notes=notes,
        )
        db.add(employee)
        db.flush()

        db.add(AuditLog.from_auth(
            auth, "create_employee", "employee", employee.id,
            f"Staff member created: {employee.full_name}",
            new_values=employee.to_dict(),
        ))

        logger.info(f"User {auth.username} created staff member: {employee.full_name} (id={employee.id})")
        return employee

    @staticmethod
    @require_permission(Permission.STAFF_VIEW)
    def get_employee(auth: AuthContext, db: Session, employee_id: int) -> Employee:
        employee = db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Staff member", employee_id)
        return employee

    @staticmethod
    @require_permission(Permission.STAFF_VIEW)
    def list_employees(auth: AuthContext, db: Session, active_only: bool = True) -> List[Employee]:
        query = db.query(Employee)
        if active_only:
            query = query.filter(Employee.is_active.is_(True))
        return query.order_by(Employee.full_name).all()
