# Overview: Flask API routes for customers (browsing, cart, checkout, orders, bookings, feedback).

"""
Customer API

Customers are identified by customer_id in the path or body; customer
login is handled outside this service.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import WorkflowError
from ..services import order_service, receipt_service, service_booking_service
from ..services.service_booking_service import LOCATION_FIELDS


customer_bp = Blueprint("customer", __name__, url_prefix="/api/customer")


def _error(e: WorkflowError):
    return jsonify(e.to_dict()), e.status_code


def _internal(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@customer_bp.get("/products")
def products_route():
    try:
        return jsonify({"products": [p.to_dict() for p in order_service.list_active_products()]}), 200
    except Exception:
        return _internal("list products")


# =============================================================================
# CART / CHECKOUT
# =============================================================================

@customer_bp.post("/cart/add")
def add_to_cart_route():
    """Request body: {"customer_id": 1, "product_id": 3, "quantity": 2}"""
    try:
        data = request.get_json(silent=True) or {}
        cart = order_service.add_to_cart(
            data.get("customer_id"),
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
        )
        return jsonify({"cart": cart.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("add to cart")


@customer_bp.get("/cart/<int:customer_id>")
def get_cart_route(customer_id: int):
    try:
        cart = order_service.get_cart(customer_id)
        return jsonify({"cart": cart.to_dict() if cart else None}), 200
    except Exception:
        return _internal("load cart")


@customer_bp.post("/checkout")
def checkout_route():
    """Request body: {"customer_id": 1, "payment_code": "MPE1JF2CTD", "amount_paid_cents": 2500000}"""
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.checkout(
            data.get("customer_id"),
            payment_code=data.get("payment_code"),
            amount_paid_cents=data.get("amount_paid_cents"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("checkout")


@customer_bp.get("/orders/<int:customer_id>")
def list_orders_route(customer_id: int):
    try:
        orders = order_service.list_orders(customer_id=customer_id)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list customer orders")


@customer_bp.post("/feedback/<int:order_id>")
def submit_feedback_route(order_id: int):
    """Request body: {"customer_id": 1, "message": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        feedback = order_service.submit_feedback(
            order_id,
            customer_id=data.get("customer_id"),
            message=data.get("message"),
        )
        return jsonify({"feedback": feedback.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("submit feedback")


@customer_bp.get("/receipt/<int:order_id>")
def order_receipt_route(order_id: int):
    try:
        return jsonify({"receipt": receipt_service.build_order_receipt(order_id)}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("build order receipt")


# =============================================================================
# SERVICE BOOKINGS
# =============================================================================

@customer_bp.post("/service-bookings")
def create_booking_route():
    """
    Request body:
    {
        "customer_id": 1,
        "door_type": "Glass Panel Door",
        "price_cents": 500000,
        "payment_code": "MPE1JF2CTD",
        "location_details": {"address": "...", "city": "...", "county": "...",
                             "postal_code": "...", "instructions": "..."}
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        location = data.get("location_details") or {k: data.get(k) for k in LOCATION_FIELDS}
        booking = service_booking_service.create_booking(
            data.get("customer_id"),
            door_type=data.get("door_type"),
            price_cents=data.get("price_cents"),
            payment_code=data.get("payment_code"),
            location=location,
        )
        return jsonify({"booking": booking.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("create service booking")


@customer_bp.get("/service-bookings/<int:customer_id>")
def list_bookings_route(customer_id: int):
    try:
        rows = service_booking_service.list_bookings(customer_id=customer_id)
        return jsonify({"bookings": [b.to_dict() for b in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list service bookings")


@customer_bp.post("/service-bookings/<int:booking_id>/feedback")
def service_feedback_route(booking_id: int):
    """Request body: {"customer_id": 1, "message": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        feedback = service_booking_service.submit_service_feedback(
            booking_id,
            customer_id=data.get("customer_id"),
            message=data.get("message"),
        )
        return jsonify({"feedback": feedback.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("submit service feedback")


@customer_bp.get("/service-bookings/<int:booking_id>/receipt")
def service_receipt_route(booking_id: int):
    try:
        return jsonify({"receipt": receipt_service.build_service_receipt(booking_id)}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("build service receipt")
