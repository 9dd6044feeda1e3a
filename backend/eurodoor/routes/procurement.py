# Overview: Flask API routes for raw material procurement; parses input and returns JSON responses.

"""
Raw Material Procurement API

    POST /api/procurement/requests                      inventory raises a purchase
    GET  /api/procurement/requests?status=&payment_status=
    PUT  /api/procurement/requests/<id>/respond         supplier approves (unit cost) or rejects
    PUT  /api/procurement/requests/<id>/supply          supplier delivers
    PUT  /api/procurement/requests/<id>/inventory-decision
    PUT  /api/procurement/requests/<id>/pay             finance pays
    GET  /api/procurement/requests/<id>/receipt

Supplier steps carry no employee header: suppliers are external parties.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_FINANCE_MANAGER, ROLE_INVENTORY_MANAGER
from ..services import procurement_service, receipt_service


procurement_bp = Blueprint("procurement", __name__, url_prefix="/api/procurement")


@procurement_bp.post("/requests")
@require_role(ROLE_INVENTORY_MANAGER)
def create_request_route():
    """
    Request body:
    {
        "material_name": "Steel sheet",
        "quantity": 100,
        "unit": "pcs",
        "supplier": "Mabati Ltd",
        "note": "optional"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        req = procurement_service.create_request(
            material_name=data.get("material_name"),
            quantity=data.get("quantity"),
            unit=data.get("unit"),
            supplier=data.get("supplier"),
            note=data.get("note"),
        )
        return jsonify({"request": req.to_dict()}), 201
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create raw material request")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.get("/requests")
def list_requests_route():
    try:
        rows = procurement_service.list_requests(
            status=request.args.get("status"),
            payment_status=request.args.get("payment_status"),
        )
        return jsonify({"requests": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list raw material requests")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.put("/requests/<int:request_id>/respond")
def supplier_respond_route(request_id: int):
    """Request body: {"decision": "approved"|"rejected", "unit_cost_cents": 5000}"""
    try:
        data = request.get_json(silent=True) or {}
        req = procurement_service.supplier_respond(
            request_id,
            decision=data.get("decision"),
            unit_cost_cents=data.get("unit_cost_cents"),
        )
        return jsonify({"request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record supplier response")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.put("/requests/<int:request_id>/supply")
def mark_supplied_route(request_id: int):
    try:
        req = procurement_service.mark_supplied(request_id)
        return jsonify({"request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark raw material request supplied")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.put("/requests/<int:request_id>/inventory-decision")
@require_role(ROLE_INVENTORY_MANAGER)
def inventory_decision_route(request_id: int):
    """Request body: {"decision": "accepted"|"rejected-by-inventory"}"""
    try:
        data = request.get_json(silent=True) or {}
        req = procurement_service.inventory_decide(request_id, decision=data.get("decision"))
        return jsonify({"request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record inventory decision")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.put("/requests/<int:request_id>/pay")
@require_role(ROLE_FINANCE_MANAGER)
def pay_route(request_id: int):
    """Request body: {"payment_code": "A2B3CDEFGH"}"""
    try:
        data = request.get_json(silent=True) or {}
        req = procurement_service.pay(request_id, payment_code=data.get("payment_code"))
        return jsonify({"message": "Payment successful", "request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to pay raw material request")
        return jsonify({"error": "Internal server error"}), 500


@procurement_bp.get("/requests/<int:request_id>/receipt")
def supply_receipt_route(request_id: int):
    try:
        return jsonify({"receipt": receipt_service.build_supply_receipt(request_id)}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build supply receipt")
        return jsonify({"error": "Internal server error"}), 500
