"""
FleetRent - Request Schemas
Pydantic models for API request bodies. Wire names are camelCase;
model_dump() yields the snake_case names the services take.
"""

from datetime import date
from typing import Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from shared.utils import parse_date


Number = Union[float, int, str]


def _to_date(value):
    if isinstance(value, str):
        return parse_date(value) if value.strip() else None
    return value


# Accepts DD.MM.YYYY and DD-MM-YYYY as well as ISO dates
DateInput = Annotated[Optional[date], BeforeValidator(_to_date)]


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def changes(self) -> dict:
        """Only the fields the client actually sent"""
        return self.model_dump(exclude_unset=True)


# Drivers
class DriverCreate(RequestModel):
    name: str
    mobile: Optional[str] = None
    username: Optional[str] = None
    license_no: Optional[str] = Field(None, alias="licenseNumber")
    kyc_status: str = Field("pending", alias="kycStatus")
    join_date: DateInput = Field(None, alias="joinDate")
    notes: Optional[str] = None


class DriverUpdate(RequestModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    username: Optional[str] = None
    license_no: Optional[str] = Field(None, alias="licenseNumber")
    kyc_status: Optional[str] = Field(None, alias="kycStatus")
    join_date: DateInput = Field(None, alias="joinDate")
    status: Optional[str] = None
    notes: Optional[str] = None
    # Registration number; "" or null unassigns
    vehicle_assigned: Optional[str] = Field(None, alias="vehicleAssigned")
    # Rent plan name; "" or null clears
    current_plan: Optional[str] = Field(None, alias="currentPlan")


class AssignVehicle(RequestModel):
    vehicle_id: Optional[int] = Field(None, alias="vehicleId")


class AssignPlan(RequestModel):
    plan_id: Optional[int] = Field(None, alias="planId")


# Vehicles
class VehicleCreate(RequestModel):
    registration_number: str = Field(..., alias="registrationNumber")
    brand: Optional[str] = None
    model: Optional[str] = None
    category: Optional[str] = None
    year: Optional[int] = None
    status: str = "pending"
    notes: Optional[str] = None


class VehicleUpdate(RequestModel):
    registration_number: Optional[str] = Field(None, alias="registrationNumber")
    brand: Optional[str] = None
    model: Optional[str] = None
    category: Optional[str] = None
    year: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    assigned_driver: Optional[int] = Field(None, alias="assignedDriver")


class StatusUpdate(RequestModel):
    status: str


# Rent plans
class RentSlab(RequestModel):
    trips: Optional[Number] = None
    rentDay: Optional[Number] = None
    weeklyRent: Optional[Number] = None
    accidentalCover: Optional[Number] = None
    acceptanceRate: Optional[Number] = None


class RentPlanCreate(RequestModel):
    name: str
    vehicle_type: Optional[str] = Field(None, alias="vehicleType")
    security_deposit: float = Field(0.0, alias="securityDeposit", ge=0)
    daily_rent_slabs: List[RentSlab] = Field(default_factory=list, alias="dailyRentSlabs")
    weekly_rent_slabs: List[RentSlab] = Field(default_factory=list, alias="weeklyRentSlabs")

    def slabs(self, name: str) -> list:
        return [slab.model_dump(exclude_none=True) for slab in getattr(self, name)]


# Plan selections
class PlanSelectionCreate(RequestModel):
    plan_name: str = Field(..., alias="planName")
    plan_type: str = Field(..., alias="planType")
    security_deposit: float = Field(0.0, alias="securityDeposit", ge=0)
    rent_slabs: List[RentSlab] = Field(default_factory=list, alias="rentSlabs")
    selected_rent_slab: Optional[RentSlab] = Field(None, alias="selectedRentSlab")
    driver_mobile: str = Field(..., alias="driverMobile")
    driver_username: Optional[str] = Field(None, alias="driverUsername")


class ConfirmPayment(RequestModel):
    payment_type: str = Field("rent", alias="paymentType")
    paid_amount: Optional[float] = Field(None, alias="paidAmount")


class SelectionPatch(RequestModel):
    status: Optional[str] = None
    payment_type: Optional[str] = Field(None, alias="paymentType")
    paid_amount: Optional[float] = Field(None, alias="paidAmount")
    extra_amount: Optional[float] = Field(None, alias="extraAmount")
    extra_reason: str = Field("", alias="extraReason")
    adjustment_amount: Optional[float] = Field(None, alias="adjustmentAmount")
    adjustment_reason: str = Field("", alias="adjustmentReason")
    admin_paid_amount: Optional[float] = Field(None, alias="adminPaidAmount")
    admin_payment_type: str = Field("rent", alias="adminPaymentType")

    def has_payment(self) -> bool:
        return bool({"payment_type", "paid_amount"} & self.model_fields_set)


class TokenRequest(RequestModel):
    admin_password: str = Field(..., alias="adminPassword")
    user_id: int = Field(..., alias="userId")
    username: str
    role: str


# Staff and payroll
class StaffCreate(RequestModel):
    full_name: str = Field(..., alias="fullName")
    salary: float = Field(0.0, ge=0)
    mobile: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    department: Optional[str] = None
    join_date: DateInput = Field(None, alias="joinDate")
    notes: Optional[str] = None


class SalarySave(RequestModel):
    attendance_map: Dict[str, str] = Field(default_factory=dict, alias="attendanceMap")
    salary_amount: Optional[float] = Field(None, alias="salaryAmount")


class AttendanceUpdate(RequestModel):
    day: int
    code: str


class SalaryAmountUpdate(RequestModel):
    salary_amount: float = Field(..., alias="salaryAmount")
    update_default: bool = Field(False, alias="updateDefault")
