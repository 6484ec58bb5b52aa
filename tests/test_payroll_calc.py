import pytest

from backend.calc.payroll import (
    compute_summary,
    normalize_attendance_map,
    prefilled_month,
    validate_code,
    validate_day,
    working_days,
)
from shared.errors import InvalidCodeError, ReadOnlyDayError, ValidationError
from shared.utils import days_in_month


# September 2025: 30 days, Sundays on the 7th, 14th, 21st and 28th
YEAR, MONTH = 2025, 9
SUNDAYS = (7, 14, 21, 28)
WORKDAYS = [d for d in range(1, 31) if d not in SUNDAYS]

BUCKETS = ("present", "absent", "halfDays", "casualLeave", "holiday", "sunday", "lop")


def example_month():
    codes = ["P"] * 22 + ["H"] * 2 + ["CL"] + ["LOP"]
    return {str(day): code for day, code in zip(WORKDAYS, codes)}


def test_prorated_salary_example():
    summary = compute_summary(example_month(), YEAR, MONTH, 30000)
    assert summary == {
        "present": 22,
        "absent": 0,
        "halfDays": 2,
        "casualLeave": 1,
        "holiday": 0,
        "sunday": 4,
        "lop": 1,
        "totalSalary": 27692.31,
    }


def test_summary_is_idempotent():
    first = compute_summary(example_month(), YEAR, MONTH, 30000)
    second = compute_summary(example_month(), YEAR, MONTH, 30000)
    assert first == second


@pytest.mark.parametrize("attendance", [
    {},
    {"1": "P"},
    {"7": "S", "8": "H", "9": "HD", "10": "CL"},
    {str(d): "LOP" for d in WORKDAYS},
])
def test_every_day_lands_in_one_bucket(attendance):
    summary = compute_summary(attendance, YEAR, MONTH, 26000)
    assert sum(summary[b] for b in BUCKETS) == days_in_month(YEAR, MONTH)


def test_missing_days_default_to_absent_and_sunday():
    summary = compute_summary({}, YEAR, MONTH, 30000)
    assert summary["absent"] == 26
    assert summary["sunday"] == 4
    assert summary["totalSalary"] == 0


def test_full_attendance_pays_full_salary():
    summary = compute_summary({str(d): "P" for d in WORKDAYS}, YEAR, MONTH, 26000)
    assert summary["totalSalary"] == 26000


def test_holidays_and_leave_are_paid():
    attendance = {str(d): "P" for d in WORKDAYS}
    attendance["1"] = "HD"
    attendance["2"] = "CL"
    assert compute_summary(attendance, YEAR, MONTH, 26000)["totalSalary"] == 26000


def test_zero_or_negative_salary_pays_nothing():
    full = {str(d): "P" for d in WORKDAYS}
    assert compute_summary(full, YEAR, MONTH, 0)["totalSalary"] == 0
    assert compute_summary(full, YEAR, MONTH, -100)["totalSalary"] == 0


def test_sunday_entries_in_map_are_ignored():
    summary = compute_summary({"7": "P"}, YEAR, MONTH, 30000)
    assert summary["present"] == 0
    assert summary["sunday"] == 4


def test_invalid_code_in_map_is_rejected():
    with pytest.raises(InvalidCodeError):
        compute_summary({"1": "X"}, YEAR, MONTH, 30000)


def test_validate_code_normalizes_case():
    assert validate_code(" cl ") == "CL"
    with pytest.raises(InvalidCodeError):
        validate_code("WFH")
    with pytest.raises(InvalidCodeError):
        validate_code(None)


def test_validate_day_range():
    assert validate_day(YEAR, MONTH, "30") == 30
    with pytest.raises(ValidationError):
        validate_day(YEAR, MONTH, 31)
    with pytest.raises(ValidationError):
        validate_day(YEAR, MONTH, "first")


def test_normalize_rejects_non_s_on_sunday():
    with pytest.raises(ReadOnlyDayError):
        normalize_attendance_map({"14": "P"}, YEAR, MONTH)
    assert normalize_attendance_map({"14": "s", "15": "p"}, YEAR, MONTH) == {14: "S", 15: "P"}


def test_prefilled_month_marks_sundays():
    assert prefilled_month(2026, 2) == {1: "S", 8: "S", 15: "S", 22: "S"}
    assert working_days(2026, 2) == 24
