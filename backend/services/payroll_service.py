"""
FleetRent - Payroll Service
Monthly attendance sheets and the salary derived from them
"""

from sqlalchemy.orm import Session
from loguru import logger

from backend.models.employee import Employee
from backend.models.salary_sheet import SalarySheet
from backend.models.audit import AuditLog
from backend.calc.payroll import (
    compute_summary,
    normalize_attendance_map,
    prefilled_month,
    to_storage_map,
    validate_code,
    validate_day,
)
from shared.auth import AuthContext, require_permission
from shared.enums import Permission
from shared.errors import NotFoundError, ReadOnlyDayError, ValidationError
from shared.utils import is_sunday, validate_month


def _check_period(year: int, month: int) -> None:
    try:
        validate_month(int(year), int(month))
    except (TypeError, ValueError) as e:
        raise ValidationError(str(e))


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Staff member", employee_id)
    return employee


def _salary(value) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Salary must be a number. Got: {value!r}")
    if amount < 0:
        raise ValidationError("Salary cannot be negative")
    return amount


def _refresh_summary(sheet: SalarySheet) -> None:
    sheet.summary = compute_summary(sheet.attendance_map, sheet.year, sheet.month, sheet.salary_amount)


def get_or_create_sheet(db: Session, employee: Employee, year: int, month: int) -> SalarySheet:
    """Fetch a month's sheet; the first read creates it with Sundays marked S"""
    sheet = db.query(SalarySheet).filter(
        SalarySheet.employee_id == employee.id,
        SalarySheet.month == month,
        SalarySheet.year == year,
    ).first()
    if sheet is not None:
        return sheet

    sheet = SalarySheet(
        employee_id=employee.id,
        month=month,
        year=year,
        attendance_map=to_storage_map(prefilled_month(year, month)),
        salary_amount=float(employee.salary or 0),
    )
    _refresh_summary(sheet)
    db.add(sheet)
    db.flush()

    logger.debug(f"Salary sheet created for staff {employee.id}, {year}-{month:02d}")
    return sheet


class PayrollService:
    """Attendance and salary management"""

    @staticmethod
    @require_permission(Permission.SALARY_VIEW)
    def get_salary_sheet(auth: AuthContext, db: Session, employee_id: int, year: int, month: int) -> SalarySheet:
        _check_period(year, month)
        employee = _get_employee(db, employee_id)
        return get_or_create_sheet(db, employee, int(year), int(month))

    @staticmethod
    @require_permission(Permission.SALARY_EDIT)
    def save_salary(
        auth: AuthContext,
        db: Session,
        employee_id: int,
        year: int,
        month: int,
        attendance_map: dict,
        salary_amount=None,
    ) -> SalarySheet:
        """Replace a month's attendance (and optionally its salary) and recompute"""
        _check_period(year, month)
        year, month = int(year), int(month)
        employee = _get_employee(db, employee_id)

        normalized = prefilled_month(year, month)
        normalized.update(normalize_attendance_map(attendance_map, year, month))

        sheet = get_or_create_sheet(db, employee, year, month)
        old_summary = dict(sheet.summary or {})
        sheet.attendance_map = to_storage_map(normalized)
        if salary_amount is not None:
            sheet.salary_amount = _salary(salary_amount)
        _refresh_summary(sheet)

        db.add(AuditLog.from_auth(
            auth, "save_salary", "salary_sheet", sheet.id,
            f"Salary sheet saved for {employee.full_name}, {year}-{month:02d}",
            old_values=old_summary,
            new_values=sheet.summary,
        ))
        db.flush()

        logger.info(
            f"User {auth.username} saved salary sheet for staff {employee.id} {year}-{month:02d}: "
            f"total {sheet.summary['totalSalary']}"
        )
        return sheet

    @staticmethod
    @require_permission(Permission.SALARY_EDIT)
    def set_day_code(
        auth: AuthContext,
        db: Session,
        employee_id: int,
        year: int,
        month: int,
        day: int,
        code: str,
    ) -> SalarySheet:
        """Mark one day; Sundays are read-only"""
        _check_period(year, month)
        year, month = int(year), int(month)
        code = validate_code(code)
        day = validate_day(year, month, day)
        if is_sunday(year, month, day):
            raise ReadOnlyDayError(f"{year}-{month:02d}-{day:02d} is a Sunday and cannot be edited")

        employee = _get_employee(db, employee_id)
        sheet = get_or_create_sheet(db, employee, year, month)

        old_code = (sheet.attendance_map or {}).get(str(day))
        updated = dict(sheet.attendance_map or {})
        updated[str(day)] = code
        sheet.attendance_map = to_storage_map({int(k): v for k, v in updated.items()})
        _refresh_summary(sheet)

        db.add(AuditLog.from_auth(
            auth, "set_day_code", "salary_sheet", sheet.id,
            f"Attendance {year}-{month:02d}-{day:02d} for {employee.full_name}: {old_code or '-'} -> {code}",
            old_values={"day": day, "code": old_code},
            new_values={"day": day, "code": code},
        ))
        db.flush()

        logger.info(f"User {auth.username} set {year}-{month:02d}-{day:02d} to {code} for staff {employee.id}")
        return sheet

    @staticmethod
    @require_permission(Permission.SALARY_EDIT)
    def set_salary_amount(
        auth: AuthContext,
        db: Session,
        employee_id: int,
        year: int,
        month: int,
        salary_amount,
        update_default: bool = False,
    ) -> SalarySheet:
        """Change a month's base salary; `update_default` also changes the staff default"""
        _check_period(year, month)
        year, month = int(year), int(month)
        amount = _salary(salary_amount)
        employee = _get_employee(db, employee_id)
        sheet = get_or_create_sheet(db, employee, year, month)

        old_amount = sheet.salary_amount
        sheet.salary_amount = amount
        if update_default:
            employee.salary = amount
        _refresh_summary(sheet)

        db.add(AuditLog.from_auth(
            auth, "set_salary_amount", "salary_sheet", sheet.id,
            f"Salary for {employee.full_name}, {year}-{month:02d}: {old_amount} -> {amount}",
            old_values={"salaryAmount": old_amount},
            new_values={"salaryAmount": amount, "totalSalary": sheet.summary["totalSalary"]},
        ))
        db.flush()

        logger.info(f"User {auth.username} set salary {amount} for staff {employee.id} {year}-{month:02d}")
        return sheet
