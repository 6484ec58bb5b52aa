"""
FleetRent - Attendance to Payroll Calculations
"""

from typing import Dict

from shared.config import ATTENDANCE_CODES
from shared.enums import AttendanceCode
from shared.errors import InvalidCodeError, ReadOnlyDayError, ValidationError
from shared.utils import days_in_month, is_sunday, round2


# Summary bucket per code; every day lands in exactly one
SUMMARY_BUCKETS = {
    AttendanceCode.PRESENT.value: "present",
    AttendanceCode.ABSENT.value: "absent",
    AttendanceCode.HALF_DAY.value: "halfDays",
    AttendanceCode.CASUAL_LEAVE.value: "casualLeave",
    AttendanceCode.HOLIDAY.value: "holiday",
    AttendanceCode.SUNDAY.value: "sunday",
    AttendanceCode.LOSS_OF_PAY.value: "lop",
}

# Paid in full: present, casual leave, holiday. H is paid at half.
FULL_PAY_CODES = ("P", "CL", "HD")


def validate_code(code) -> str:
    if not isinstance(code, str):
        raise InvalidCodeError(f"Invalid attendance code: {code!r}")
    normalized = code.strip().upper()
    if normalized not in ATTENDANCE_CODES:
        raise InvalidCodeError(f"Invalid attendance code: {code!r}. Allowed: {', '.join(ATTENDANCE_CODES)}")
    return normalized


def validate_day(year: int, month: int, day) -> int:
    try:
        day = int(day)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid day: {day!r}")
    last = days_in_month(year, month)
    if not (1 <= day <= last):
        raise ValidationError(f"Day must be between 1 and {last}. Got: {day}")
    return day


def default_code(year: int, month: int, day: int) -> str:
    return "S" if is_sunday(year, month, day) else "A"


def normalize_attendance_map(raw, year: int, month: int) -> Dict[int, str]:
    """
    Integer-keyed, validated copy of an attendance map.
    Sundays may only carry S.
    """
    normalized = {}
    for key, code in (raw or {}).items():
        day = validate_day(year, month, key)
        code = validate_code(code)
        if is_sunday(year, month, day) and code != "S":
            raise ReadOnlyDayError(f"{year}-{month:02d}-{day:02d} is a Sunday and is always S")
        normalized[day] = code
    return normalized


def to_storage_map(attendance_map: Dict[int, str]) -> Dict[str, str]:
    return {str(day): code for day, code in sorted(attendance_map.items())}


def prefilled_month(year: int, month: int) -> Dict[int, str]:
    """A fresh month: Sundays marked S, other days left to default"""
    return {
        day: "S"
        for day in range(1, days_in_month(year, month) + 1)
        if is_sunday(year, month, day)
    }


def working_days(year: int, month: int) -> int:
    return sum(
        1 for day in range(1, days_in_month(year, month) + 1)
        if not is_sunday(year, month, day)
    )


def compute_summary(attendance_map, year: int, month: int, monthly_salary: float) -> dict:
    """
    Tally a month of attendance and prorate the monthly salary over the
    non-Sunday days. Missing days default to S on Sundays and A otherwise.
    """
    counts = {bucket: 0 for bucket in SUMMARY_BUCKETS.values()}
    lookup = {int(day): code for day, code in (attendance_map or {}).items()}

    for day in range(1, days_in_month(year, month) + 1):
        if is_sunday(year, month, day):
            code = "S"
        else:
            code = validate_code(lookup.get(day, "A"))
        counts[SUMMARY_BUCKETS[code]] += 1

    total_working_days = working_days(year, month)
    monthly_salary = float(monthly_salary or 0)
    if monthly_salary <= 0 or total_working_days == 0:
        salary_per_day = 0.0
    else:
        salary_per_day = monthly_salary / total_working_days

    full_days = sum(counts[SUMMARY_BUCKETS[code]] for code in FULL_PAY_CODES)
    total_salary = round2(full_days * salary_per_day + counts["halfDays"] * (salary_per_day / 2))

    return {
        "present": counts["present"],
        "absent": counts["absent"],
        "halfDays": counts["halfDays"],
        "casualLeave": counts["casualLeave"],
        "holiday": counts["holiday"],
        "sunday": counts["sunday"],
        "lop": counts["lop"],
        "totalSalary": total_salary,
    }
