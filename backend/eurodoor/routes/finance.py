# Overview: Flask API routes for the finance manager; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_FINANCE_MANAGER
from ..services import order_service, procurement_service, service_booking_service
from ..services import lifecycle_service as lc


finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


@finance_bp.get("/placed-orders")
@require_role(ROLE_FINANCE_MANAGER)
def placed_orders_route():
    """Placed orders with a captured (paid) but unconfirmed payment."""
    try:
        orders = order_service.list_orders_awaiting_confirmation()
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list placed orders")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.put("/confirm-payment/<int:payment_id>")
@require_role(ROLE_FINANCE_MANAGER)
def confirm_payment_route(payment_id: int):
    try:
        payment = order_service.confirm_payment(payment_id, employee_id=g.current_employee.id)
        return jsonify({"message": "Payment confirmed", "payment": payment.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to confirm payment")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/confirmed-payments")
@require_role(ROLE_FINANCE_MANAGER)
def confirmed_payments_route():
    try:
        payments = order_service.list_payments(status=lc.ORDER_PAYMENT_CONFIRMED)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except Exception:
        current_app.logger.exception("Failed to list confirmed payments")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/unpaid-supplies")
@require_role(ROLE_FINANCE_MANAGER)
def unpaid_supplies_route():
    """Accepted raw material deliveries awaiting payment."""
    try:
        rows = procurement_service.list_requests(status=lc.RAW_ACCEPTED, payment_status=lc.PAYMENT_UNPAID)
        return jsonify({"requests": [r.to_dict() for r in rows]}), 200
    except Exception:
        current_app.logger.exception("Failed to list unpaid supplies")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/service-bookings/pending")
@require_role(ROLE_FINANCE_MANAGER)
def pending_bookings_route():
    try:
        rows = service_booking_service.list_bookings(payment_status=lc.BOOKING_PAYMENT_PENDING)
        return jsonify({"bookings": [b.to_dict() for b in rows]}), 200
    except Exception:
        current_app.logger.exception("Failed to list pending service bookings")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.put("/service-bookings/<int:booking_id>/confirm-payment")
@require_role(ROLE_FINANCE_MANAGER)
def confirm_booking_payment_route(booking_id: int):
    try:
        booking = service_booking_service.confirm_booking_payment(booking_id)
        return jsonify({"message": "Service payment confirmed", "booking": booking.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to confirm service booking payment")
        return jsonify({"error": "Internal server error"}), 500
