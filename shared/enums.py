"""
FleetRent - Enums and Constants
Type-safe enumerations for the application
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles"""
    SUPER_ADMIN = "super_admin"  # System owner, all permissions
    ADMIN = "admin"               # Fleet admin, assignments, payroll
    MANAGER = "manager"           # Fleet manager, day-to-day operations
    DRIVER = "driver"             # Driver portal, own plan selections
    VIEWER = "viewer"             # Read-only access


class Permission(str, Enum):
    """Granular permissions"""
    # Driver management
    DRIVER_VIEW = "driver:view"
    DRIVER_CREATE = "driver:create"
    DRIVER_EDIT = "driver:edit"

    # Vehicle management
    VEHICLE_VIEW = "vehicle:view"
    VEHICLE_CREATE = "vehicle:create"
    VEHICLE_EDIT = "vehicle:edit"

    # Rent plans
    PLAN_VIEW = "plan:view"
    PLAN_CREATE = "plan:create"

    # Plan selections
    SELECTION_VIEW = "selection:view"
    SELECTION_CREATE = "selection:create"
    SELECTION_EDIT = "selection:edit"
    SELECTION_DELETE = "selection:delete"
    PAYMENT_RECORD = "payment:record"

    # Staff & payroll
    STAFF_VIEW = "staff:view"
    STAFF_CREATE = "staff:create"
    SALARY_VIEW = "salary:view"
    SALARY_EDIT = "salary:edit"

    # System
    AUDIT_VIEW = "audit:view"


# Role-to-Permission mapping
ROLE_PERMISSIONS = {
    UserRole.SUPER_ADMIN: [p for p in Permission],  # All permissions

    UserRole.ADMIN: [p for p in Permission],

    UserRole.MANAGER: [
        # Driver
        Permission.DRIVER_VIEW,
        Permission.DRIVER_CREATE,
        Permission.DRIVER_EDIT,
        # Vehicle
        Permission.VEHICLE_VIEW,
        Permission.VEHICLE_EDIT,
        # Plans
        Permission.PLAN_VIEW,
        Permission.SELECTION_VIEW,
        Permission.SELECTION_CREATE,
        Permission.SELECTION_EDIT,
        Permission.PAYMENT_RECORD,
        # Staff
        Permission.STAFF_VIEW,
        Permission.SALARY_VIEW,
        Permission.SALARY_EDIT,
    ],

    UserRole.DRIVER: [
        Permission.PLAN_VIEW,
        Permission.SELECTION_VIEW,
        Permission.SELECTION_CREATE,
    ],

    UserRole.VIEWER: [
        Permission.DRIVER_VIEW,
        Permission.VEHICLE_VIEW,
        Permission.PLAN_VIEW,
        Permission.SELECTION_VIEW,
        Permission.STAFF_VIEW,
        Permission.SALARY_VIEW,
    ],
}


class VehicleStatus(str, Enum):
    """Vehicle availability; rent accrues only while active"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    SUSPENDED = "suspended"


class KycStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class PlanType(str, Enum):
    """Rent plan billing period"""
    DAILY = "daily"
    WEEKLY = "weekly"


class SelectionStatus(str, Enum):
    """Plan selection lifecycle"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        """Open selections can still accrue rent"""
        return self in (SelectionStatus.ACTIVE, SelectionStatus.INACTIVE)

    @property
    def is_terminal(self) -> bool:
        return not self.is_open


class PaymentType(str, Enum):
    """What a manually recorded payment was for"""
    SECURITY = "security"
    RENT = "rent"


class AdminPaymentType(str, Enum):
    """Admin (cash desk) payment; TOTAL is split across what is due"""
    SECURITY = "security"
    RENT = "rent"
    TOTAL = "total"


class AttendanceCode(str, Enum):
    """Per-day attendance codes on a salary sheet"""
    PRESENT = "P"
    ABSENT = "A"
    HALF_DAY = "H"
    CASUAL_LEAVE = "CL"
    HOLIDAY = "HD"
    SUNDAY = "S"
    LOSS_OF_PAY = "LOP"
