# Overview: Receipt payloads handed to the external document renderer.

from __future__ import annotations

from ..errors import InvalidStateError
from ..time_utils import to_utc_z
from . import lifecycle_service as lc
from .order_service import get_order, get_order_receipt
from .procurement_service import get_request
from .service_booking_service import get_booking, get_service_receipt

COMPANY_NAME = "EuroDoor"


def _customer_block(customer) -> dict:
    return {
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
    }


def build_order_receipt(order_id: int) -> dict:
    """Customer receipt for a confirmed order; issues the Receipt record on first call."""
    receipt = get_order_receipt(order_id)
    order = get_order(order_id)
    payment = order.payment

    lines = [
        {
            "product_id": item.product_id,
            "title": item.title,
            "quantity": item.quantity,
            "unit_price_cents": item.price_cents,
            "subtotal_cents": item.line_total_cents,
        }
        for item in order.items
    ]

    return {
        "company": COMPANY_NAME,
        "title": "Order Receipt",
        "receipt_id": receipt.id,
        "order_id": order.id,
        "customer": _customer_block(order.customer),
        "lines": lines,
        "total_cents": order.total_cents,
        "payment": {
            "payment_id": payment.id,
            "code": payment.code,
            "amount_paid_cents": payment.amount_paid_cents,
            "status": payment.status,
            "confirmed_at": to_utc_z(payment.confirmed_at) if payment.confirmed_at else None,
        },
        "order_status": order.status,
        "generated_at": to_utc_z(receipt.generated_at),
    }


def build_supply_receipt(request_id: int) -> dict:
    """Supplier payment receipt; only available once finance has paid the supply."""
    req = get_request(request_id)
    if req.payment_status != lc.PAYMENT_PAID:
        raise InvalidStateError(f"Raw material request {req.id} payment not completed yet")

    return {
        "company": COMPANY_NAME,
        "title": "Supply Payment Receipt",
        "request_id": req.id,
        "supplier": req.supplier,
        "material_name": req.material_name,
        "quantity": req.quantity,
        "unit": req.unit,
        "unit_cost_cents": req.unit_cost_cents,
        "total_cost_cents": req.total_cost_cents,
        "lines": [
            {
                "title": req.material_name,
                "quantity": req.quantity,
                "unit_price_cents": req.unit_cost_cents,
                "subtotal_cents": req.total_cost_cents,
            }
        ],
        "total_cents": req.total_cost_cents,
        "payment": {
            "code": req.payment_code,
            "amount_paid_cents": req.amount_paid_cents,
            "status": req.payment_status,
            "paid_on": to_utc_z(req.payment_date) if req.payment_date else None,
        },
    }


def build_service_receipt(booking_id: int) -> dict:
    receipt = get_service_receipt(booking_id)
    booking = get_booking(booking_id)

    return {
        "company": COMPANY_NAME,
        "title": "Service Receipt",
        "receipt_id": receipt.id,
        "booking_id": booking.id,
        "customer": _customer_block(booking.customer),
        "door_type": booking.door_type,
        "location_details": booking.location_dict(),
        "lines": [
            {
                "title": f"Service: {booking.door_type}",
                "quantity": 1,
                "unit_price_cents": booking.price_cents,
                "subtotal_cents": booking.price_cents,
            }
        ],
        "total_cents": booking.price_cents,
        "payment": {
            "code": receipt.code,
            "amount_paid_cents": receipt.amount_paid_cents,
            "status": booking.payment_status,
        },
        "service_status": booking.service_status,
        "generated_at": to_utc_z(receipt.generated_at),
    }
