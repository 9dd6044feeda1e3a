# Overview: Flask API routes for the dispatch manager and drivers.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_DISPATCH_MANAGER, ROLE_DRIVER
from ..services import order_service
from ..services import lifecycle_service as lc


dispatch_bp = Blueprint("dispatch", __name__, url_prefix="/api/dispatch")
driver_bp = Blueprint("driver", __name__, url_prefix="/api/driver")


# =============================================================================
# DISPATCH MANAGER
# =============================================================================

@dispatch_bp.get("/released-orders")
@require_role(ROLE_DISPATCH_MANAGER)
def released_orders_route():
    try:
        orders = order_service.list_orders(status=lc.ORDER_RELEASED)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list released orders")
        return jsonify({"error": "Internal server error"}), 500


@dispatch_bp.put("/assign/<int:order_id>")
@require_role(ROLE_DISPATCH_MANAGER)
def assign_driver_route(order_id: int):
    """Request body: {"driver_id": 7}"""
    try:
        data = request.get_json(silent=True) or {}
        dispatch = order_service.assign_driver(order_id, driver_id=data.get("driver_id"))
        return jsonify({"message": "Driver assigned", "dispatch": dispatch.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign driver")
        return jsonify({"error": "Internal server error"}), 500


@dispatch_bp.get("/feedbacks")
@require_role(ROLE_DISPATCH_MANAGER)
def feedbacks_route():
    try:
        unanswered = request.args.get("unanswered", "").lower() in ("1", "true", "yes")
        rows = order_service.list_feedback(unanswered_only=unanswered)
        return jsonify({"feedbacks": [f.to_dict() for f in rows]}), 200
    except Exception:
        current_app.logger.exception("Failed to list feedback")
        return jsonify({"error": "Internal server error"}), 500


@dispatch_bp.put("/reply/<int:feedback_id>")
@require_role(ROLE_DISPATCH_MANAGER)
def reply_feedback_route(feedback_id: int):
    """Request body: {"reply": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        feedback = order_service.reply_to_feedback(
            feedback_id,
            dispatch_manager_id=g.current_employee.id,
            reply=data.get("reply"),
        )
        return jsonify({"feedback": feedback.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reply to feedback")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# DRIVER
# =============================================================================

@driver_bp.get("/assigned")
@require_role(ROLE_DRIVER)
def assigned_route():
    try:
        rows = order_service.list_dispatches(driver_id=g.current_employee.id)
        return jsonify({"dispatches": [d.to_dict() for d in rows]}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list assigned dispatches")
        return jsonify({"error": "Internal server error"}), 500


@driver_bp.put("/delivered/<int:dispatch_id>")
@require_role(ROLE_DRIVER)
def delivered_route(dispatch_id: int):
    try:
        dispatch = order_service.mark_delivered(dispatch_id, driver_id=g.current_employee.id)
        return jsonify({"message": "Order marked as delivered", "dispatch": dispatch.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark dispatch delivered")
        return jsonify({"error": "Internal server error"}), 500
