# Overview: Request decorators for API routes (acting-employee resolution).

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import InvalidInputError, UnauthorizedError
from .services.directory_service import find_active_employee

EMPLOYEE_HEADER = "X-Employee-Id"


def require_role(*roles: str):
    """
    Require the caller to be an active employee holding one of `roles`.

    The acting employee is named by the X-Employee-Id header (credentials are
    checked upstream of this service). Sets g.current_employee.

    Returns 403 if the header is missing, the employee is unknown or
    inactive, or holds none of the roles.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            employee_id = request.headers.get(EMPLOYEE_HEADER)
            if not employee_id:
                return jsonify({
                    "error": "Employee identification required",
                    "code": UnauthorizedError.code,
                    "details": {"header": EMPLOYEE_HEADER, "roles": list(roles)},
                }), 403

            employee = None
            last_error = None
            for role in roles:
                try:
                    employee = find_active_employee(role=role, employee_id=employee_id)
                    break
                except (UnauthorizedError, InvalidInputError) as e:
                    last_error = e

            if employee is None:
                current_app.logger.warning(
                    "Denied %s %s for employee %s (needs %s)",
                    request.method, request.path, employee_id, ", ".join(roles),
                )
                body = last_error.to_dict() if last_error else {"error": "Permission denied"}
                body["details"] = {"roles": list(roles)}
                return jsonify(body), 403

            g.current_employee = employee
            return f(*args, **kwargs)

        return decorated_function
    return decorator
