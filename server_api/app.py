"""
FleetRent - HTTP API
Flask JSON API over the FleetRent services. Bearer JWT auth.
"""

from datetime import datetime
from functools import wraps

from flask import Flask, request, jsonify, g
from pydantic import ValidationError as SchemaError
from loguru import logger

from backend.database import get_db
from backend.services.assignment_service import AssignmentCoordinator
from backend.services.audit_service import AuditService
from backend.services.driver_service import DriverService
from backend.services.vehicle_service import VehicleService
from backend.services.rent_plan_service import RentPlanService
from backend.services.plan_selection_service import PlanSelectionService
from backend.services.employee_service import EmployeeService
from backend.services.payroll_service import PayrollService
from shared.auth import AuthContext, AuthToken
from shared.config import settings
from shared.enums import UserRole
from shared.errors import FleetError
from shared import schemas


# Flask app
app = Flask(__name__)
app.config['SECRET_KEY'] = settings.secret_key
app.json.sort_keys = False

# Error kind -> HTTP status; anything unlisted is a client error
ERROR_STATUS = {
    'not_found': 404,
    'partial_write': 500,
}


# ============================================================================
# Authentication
# ============================================================================

def require_auth(f):
    """Decorator to require a valid bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return jsonify({'error': 'unauthorized', 'message': 'Bearer token required'}), 401

        auth = AuthContext.from_token(header[len('Bearer '):].strip())
        if auth is None:
            return jsonify({'error': 'unauthorized', 'message': 'Invalid or expired token'}), 401

        g.auth = auth
        return f(*args, **kwargs)
    return decorated_function


def body(model):
    """Validate the JSON request body against a request schema"""
    return model.model_validate(request.get_json(silent=True) or {})


def query_flag(name: str) -> bool:
    return request.args.get(name, '').lower() in ('1', 'true', 'yes')


# ============================================================================
# Error Handlers
# ============================================================================

@app.errorhandler(FleetError)
def handle_fleet_error(e: FleetError):
    status = ERROR_STATUS.get(e.kind, 400)
    if status >= 500:
        logger.error(f"{request.method} {request.path} failed: {e}")
    return jsonify(e.to_dict()), status


@app.errorhandler(PermissionError)
def handle_permission_error(e: PermissionError):
    logger.warning(f"Forbidden {request.method} {request.path} for {getattr(g, 'auth', None)}: {e}")
    return jsonify({'error': 'forbidden', 'message': str(e)}), 403


@app.errorhandler(SchemaError)
def handle_schema_error(e: SchemaError):
    details = [
        {'field': '.'.join(str(p) for p in err['loc']), 'message': err['msg']}
        for err in e.errors()
    ]
    return jsonify({'error': 'validation_error', 'message': 'Invalid request body', 'details': details}), 400


# ============================================================================
# Health & Tokens
# ============================================================================

@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'ok',
        'app': settings.app_name,
        'version': settings.app_version,
        'timestamp': datetime.now().isoformat(),
    })


@app.route('/admin/tokens', methods=['POST'])
def create_token():
    """Issue a bearer token (protected by the admin password)"""
    data = body(schemas.TokenRequest)
    if data.admin_password != settings.admin_password:
        return jsonify({'error': 'forbidden', 'message': 'Invalid admin password'}), 403

    try:
        role = UserRole(data.role)
    except ValueError:
        return jsonify({'error': 'validation_error', 'message': f'Unknown role: {data.role}'}), 400

    token = AuthToken.create_token(data.user_id, data.username, role)
    logger.info(f"Token issued for {data.username} (role={role.value})")
    return jsonify({'token': token, 'role': role.value}), 201


# ============================================================================
# Drivers
# ============================================================================

@app.route('/api/drivers', methods=['GET'])
@require_auth
def list_drivers():
    with get_db() as db:
        drivers = DriverService.list_drivers(g.auth, db)
        return jsonify([d.to_dict() for d in drivers])


@app.route('/api/drivers', methods=['POST'])
@require_auth
def create_driver():
    data = body(schemas.DriverCreate)
    with get_db() as db:
        driver = DriverService.create_driver(g.auth, db, **data.model_dump())
        return jsonify(driver.to_dict()), 201


@app.route('/api/drivers/<int:driver_id>', methods=['GET'])
@require_auth
def get_driver(driver_id):
    with get_db() as db:
        return jsonify(DriverService.get_driver(g.auth, db, driver_id).to_dict())


@app.route('/api/drivers/<int:driver_id>', methods=['PATCH', 'PUT'])
@require_auth
def update_driver(driver_id):
    data = body(schemas.DriverUpdate)
    with get_db() as db:
        driver = DriverService.update_driver(g.auth, db, driver_id, **data.changes())
        return jsonify(driver.to_dict())


@app.route('/api/drivers/<int:driver_id>/vehicle', methods=['PUT'])
@require_auth
def assign_vehicle(driver_id):
    data = body(schemas.AssignVehicle)
    with get_db() as db:
        driver = AssignmentCoordinator.assign_vehicle(g.auth, db, driver_id, data.vehicle_id)
        return jsonify(driver.to_dict())


@app.route('/api/drivers/<int:driver_id>/plan', methods=['PUT'])
@require_auth
def assign_plan(driver_id):
    data = body(schemas.AssignPlan)
    with get_db() as db:
        result = AssignmentCoordinator.assign_plan(g.auth, db, driver_id, data.plan_id)
        selection = result['selection']
        return jsonify({
            'driver': result['driver'].to_dict(),
            'selection': selection.to_dict() if selection else None,
            'selectionCreated': result['selectionCreated'],
        })


# ============================================================================
# Vehicles
# ============================================================================

@app.route('/api/vehicles', methods=['GET'])
@require_auth
def list_vehicles():
    with get_db() as db:
        vehicles = VehicleService.list_vehicles(g.auth, db, status=request.args.get('status'))
        return jsonify([v.to_dict() for v in vehicles])


@app.route('/api/vehicles', methods=['POST'])
@require_auth
def create_vehicle():
    data = body(schemas.VehicleCreate)
    with get_db() as db:
        vehicle = VehicleService.create_vehicle(g.auth, db, **data.model_dump())
        return jsonify(vehicle.to_dict()), 201


@app.route('/api/vehicles/<int:vehicle_id>', methods=['GET'])
@require_auth
def get_vehicle(vehicle_id):
    with get_db() as db:
        return jsonify(VehicleService.get_vehicle(g.auth, db, vehicle_id).to_dict())


@app.route('/api/vehicles/<int:vehicle_id>', methods=['PATCH', 'PUT'])
@require_auth
def update_vehicle(vehicle_id):
    data = body(schemas.VehicleUpdate)
    with get_db() as db:
        vehicle = VehicleService.update_vehicle(g.auth, db, vehicle_id, **data.changes())
        return jsonify(vehicle.to_dict())


@app.route('/api/vehicles/<int:vehicle_id>/status', methods=['PUT'])
@require_auth
def set_vehicle_status(vehicle_id):
    data = body(schemas.StatusUpdate)
    with get_db() as db:
        vehicle = AssignmentCoordinator.set_vehicle_status(g.auth, db, vehicle_id, data.status)
        return jsonify(vehicle.to_dict())


# ============================================================================
# Rent Plans
# ============================================================================

@app.route('/api/rent-plans', methods=['GET'])
@require_auth
def list_rent_plans():
    with get_db() as db:
        return jsonify([p.to_dict() for p in RentPlanService.list_plans(g.auth, db)])


@app.route('/api/rent-plans', methods=['POST'])
@require_auth
def create_rent_plan():
    data = body(schemas.RentPlanCreate)
    with get_db() as db:
        plan = RentPlanService.create_plan(
            g.auth, db,
            name=data.name,
            security_deposit=data.security_deposit,
            daily_rent_slabs=data.slabs('daily_rent_slabs'),
            weekly_rent_slabs=data.slabs('weekly_rent_slabs'),
            vehicle_type=data.vehicle_type,
        )
        return jsonify(plan.to_dict()), 201


@app.route('/api/rent-plans/<int:plan_id>', methods=['GET'])
@require_auth
def get_rent_plan(plan_id):
    with get_db() as db:
        return jsonify(RentPlanService.get_plan(g.auth, db, plan_id).to_dict())


# ============================================================================
# Driver Plan Selections
# ============================================================================

@app.route('/api/driver-plan-selections', methods=['POST'])
@app.route('/api/driver-plan-selections/public', methods=['POST'])
@require_auth
def create_plan_selection():
    data = body(schemas.PlanSelectionCreate)
    with get_db() as db:
        selection = PlanSelectionService.create_selection(
            g.auth, db,
            plan_name=data.plan_name,
            plan_type=data.plan_type,
            driver_mobile=data.driver_mobile,
            security_deposit=data.security_deposit,
            rent_slabs=[s.model_dump(exclude_none=True) for s in data.rent_slabs],
            selected_rent_slab=data.selected_rent_slab.model_dump(exclude_none=True) if data.selected_rent_slab else None,
            driver_username=data.driver_username or (g.auth.username if g.auth.role == UserRole.DRIVER else None),
        )
        return jsonify(selection.to_dict()), 201


@app.route('/api/driver-plan-selections', methods=['GET'])
@require_auth
def list_plan_selections():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 50, type=int)
    with get_db() as db:
        selections = PlanSelectionService.list_selections(g.auth, db, page=page, limit=limit)
        total = PlanSelectionService.count_selections(g.auth, db)
        return jsonify({
            'data': [s.to_dict() for s in selections],
            'pagination': {'page': page, 'limit': limit, 'total': total},
        })


@app.route('/api/driver-plan-selections/by-mobile/<mobile>', methods=['GET'])
@require_auth
def list_plan_selections_by_mobile(mobile):
    with get_db() as db:
        selections = PlanSelectionService.list_by_mobile(g.auth, db, mobile)
        return jsonify([s.to_dict() for s in selections])


@app.route('/api/driver-plan-selections/<int:selection_id>', methods=['GET'])
@require_auth
def get_plan_selection(selection_id):
    with get_db() as db:
        selection = PlanSelectionService.get_selection(g.auth, db, selection_id)
        result = selection.to_dict()
        result['paymentDetails'] = PlanSelectionService.payment_details(g.auth, db, selection_id)
        return jsonify(result)


@app.route('/api/driver-plan-selections/<int:selection_id>', methods=['PATCH'])
@require_auth
def patch_plan_selection(selection_id):
    """Status change, manual payment, extra charges, adjustments and admin payments"""
    data = body(schemas.SelectionPatch)
    with get_db() as db:
        if data.status is not None:
            PlanSelectionService.set_status(g.auth, db, selection_id, data.status)
        if data.has_payment():
            PlanSelectionService.record_payment(
                g.auth, db, selection_id, data.payment_type or 'rent', data.paid_amount
            )
        if data.extra_amount is not None:
            PlanSelectionService.add_extra_charge(g.auth, db, selection_id, data.extra_amount, data.extra_reason)
        if data.adjustment_amount is not None:
            PlanSelectionService.add_adjustment(
                g.auth, db, selection_id, data.adjustment_amount, data.adjustment_reason
            )
        if data.admin_paid_amount is not None:
            PlanSelectionService.record_admin_payment(
                g.auth, db, selection_id, data.admin_paid_amount, data.admin_payment_type
            )
        selection = PlanSelectionService.get_selection(g.auth, db, selection_id)
        result = selection.to_dict()
        result['paymentDetails'] = PlanSelectionService.payment_details(g.auth, db, selection_id)
        return jsonify(result)


@app.route('/api/driver-plan-selections/<int:selection_id>/confirm-payment', methods=['POST'])
@require_auth
def confirm_payment(selection_id):
    data = body(schemas.ConfirmPayment)
    with get_db() as db:
        selection = PlanSelectionService.record_payment(
            g.auth, db, selection_id, data.payment_type, data.paid_amount
        )
        return jsonify(selection.to_dict())


@app.route('/api/driver-plan-selections/<int:selection_id>/status', methods=['PUT'])
@require_auth
def set_plan_selection_status(selection_id):
    data = body(schemas.StatusUpdate)
    with get_db() as db:
        selection = PlanSelectionService.set_status(g.auth, db, selection_id, data.status)
        return jsonify(selection.to_dict())


@app.route('/api/driver-plan-selections/<int:selection_id>/rent-summary', methods=['GET'])
@require_auth
def get_rent_summary(selection_id):
    with get_db() as db:
        return jsonify(PlanSelectionService.rent_summary(
            g.auth, db, selection_id, include_entries=query_flag('entries')
        ))


@app.route('/api/driver-plan-selections/<int:selection_id>', methods=['DELETE'])
@require_auth
def delete_plan_selection(selection_id):
    with get_db() as db:
        PlanSelectionService.delete_selection(g.auth, db, selection_id)
    return jsonify({'message': 'Plan selection deleted'})


# ============================================================================
# Staff & Payroll
# ============================================================================

@app.route('/api/staff', methods=['GET'])
@require_auth
def list_staff():
    with get_db() as db:
        employees = EmployeeService.list_employees(g.auth, db, active_only=not query_flag('all'))
        return jsonify([e.to_dict() for e in employees])


@app.route('/api/staff', methods=['POST'])
@require_auth
def create_staff():
    data = body(schemas.StaffCreate)
    with get_db() as db:
        employee = EmployeeService.create_employee(g.auth, db, **data.model_dump())
        return jsonify(employee.to_dict()), 201


@app.route('/api/staff/<int:staff_id>', methods=['GET'])
@require_auth
def get_staff(staff_id):
    with get_db() as db:
        return jsonify(EmployeeService.get_employee(g.auth, db, staff_id).to_dict())


@app.route('/api/staff/<int:staff_id>/salary/<int:month>/<int:year>', methods=['GET'])
@require_auth
def get_salary_sheet(staff_id, month, year):
    with get_db() as db:
        sheet = PayrollService.get_salary_sheet(g.auth, db, staff_id, year, month)
        return jsonify(sheet.to_dict())


@app.route('/api/staff/<int:staff_id>/salary/<int:month>/<int:year>', methods=['PUT'])
@require_auth
def save_salary_sheet(staff_id, month, year):
    data = body(schemas.SalarySave)
    with get_db() as db:
        sheet = PayrollService.save_salary(
            g.auth, db, staff_id, year, month, data.attendance_map, data.salary_amount
        )
        return jsonify(sheet.to_dict())


@app.route('/api/staff/<int:staff_id>/salary/<int:month>/<int:year>/attendance', methods=['PUT'])
@require_auth
def set_attendance(staff_id, month, year):
    data = body(schemas.AttendanceUpdate)
    with get_db() as db:
        sheet = PayrollService.set_day_code(g.auth, db, staff_id, year, month, data.day, data.code)
        return jsonify(sheet.to_dict())


@app.route('/api/staff/<int:staff_id>/salary/<int:month>/<int:year>/amount', methods=['PUT'])
@require_auth
def set_salary_amount(staff_id, month, year):
    data = body(schemas.SalaryAmountUpdate)
    with get_db() as db:
        sheet = PayrollService.set_salary_amount(
            g.auth, db, staff_id, year, month, data.salary_amount, update_default=data.update_default
        )
        return jsonify(sheet.to_dict())


# ============================================================================
# Audit Trail
# ============================================================================

@app.route('/api/audit-logs', methods=['GET'])
@require_auth
def list_audit_logs():
    with get_db() as db:
        entries = AuditService.list_entries(
            g.auth, db,
            entity_type=request.args.get('entityType'),
            entity_id=request.args.get('entityId', type=int),
            action=request.args.get('action'),
            limit=request.args.get('limit', 100, type=int),
        )
        return jsonify([e.to_dict() for e in entries])
