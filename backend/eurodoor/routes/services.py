# Overview: Flask API routes for after-sales service staff (service manager, supervisors, technicians).

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_SERVICE_MANAGER, ROLE_SUPERVISOR, ROLE_TECHNICIAN
from ..services import service_booking_service as bookings


services_bp = Blueprint("services", __name__, url_prefix="/api/services")


def _error(e: WorkflowError):
    return jsonify(e.to_dict()), e.status_code


def _internal(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@services_bp.get("/bookings")
@require_role(ROLE_SERVICE_MANAGER, ROLE_SUPERVISOR, ROLE_TECHNICIAN)
def list_bookings_route():
    """
    Service manager sees everything; supervisors and technicians see only
    bookings assigned to them.
    """
    try:
        employee = g.current_employee
        filters = {"service_status": request.args.get("service_status")}
        if employee.role == ROLE_SUPERVISOR:
            filters["supervisor_id"] = employee.id
        elif employee.role == ROLE_TECHNICIAN:
            filters["technician_id"] = employee.id
        rows = bookings.list_bookings(**filters)
        return jsonify({"bookings": [b.to_dict() for b in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list service bookings")


@services_bp.put("/bookings/<int:booking_id>/allocate")
@require_role(ROLE_SERVICE_MANAGER)
def allocate_route(booking_id: int):
    """Request body: {"supervisor_id": 4}"""
    try:
        data = request.get_json(silent=True) or {}
        booking = bookings.allocate_supervisor(booking_id, supervisor_id=data.get("supervisor_id"))
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("allocate supervisor")


@services_bp.put("/bookings/<int:booking_id>/assign-technician")
@require_role(ROLE_SUPERVISOR)
def assign_technician_route(booking_id: int):
    """Request body: {"technician_id": 9}"""
    try:
        data = request.get_json(silent=True) or {}
        booking = bookings.assign_technician(
            booking_id,
            supervisor_id=g.current_employee.id,
            technician_id=data.get("technician_id"),
        )
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("assign technician")


@services_bp.put("/bookings/<int:booking_id>/start")
@require_role(ROLE_TECHNICIAN)
def start_route(booking_id: int):
    try:
        booking = bookings.start_service(booking_id, technician_id=g.current_employee.id)
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("start service")


@services_bp.put("/bookings/<int:booking_id>/rendered")
@require_role(ROLE_TECHNICIAN)
def rendered_route(booking_id: int):
    try:
        booking = bookings.mark_rendered(booking_id, technician_id=g.current_employee.id)
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("mark service rendered")


@services_bp.put("/bookings/<int:booking_id>/supervisor-approve")
@require_role(ROLE_SUPERVISOR)
def supervisor_approve_route(booking_id: int):
    try:
        booking = bookings.supervisor_approve(booking_id, supervisor_id=g.current_employee.id)
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("approve service as supervisor")


@services_bp.put("/bookings/<int:booking_id>/confirm")
@require_role(ROLE_SERVICE_MANAGER)
def manager_confirm_route(booking_id: int):
    try:
        booking = bookings.manager_confirm(booking_id, manager_id=g.current_employee.id)
        return jsonify({"booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("confirm service")


@services_bp.get("/feedback")
@require_role(ROLE_SERVICE_MANAGER)
def list_feedback_route():
    try:
        unanswered = request.args.get("unanswered", "").lower() in ("1", "true", "yes")
        rows = bookings.list_service_feedback(unanswered_only=unanswered)
        return jsonify({"feedback": [f.to_dict() for f in rows]}), 200
    except Exception:
        return _internal("list service feedback")


@services_bp.put("/feedback/<int:feedback_id>/reply")
@require_role(ROLE_SERVICE_MANAGER)
def reply_feedback_route(feedback_id: int):
    """Request body: {"reply": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        feedback = bookings.reply_to_service_feedback(
            feedback_id,
            manager_id=g.current_employee.id,
            reply=data.get("reply"),
        )
        return jsonify({"feedback": feedback.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("reply to service feedback")
