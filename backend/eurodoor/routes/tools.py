# Overview: Flask API routes for the tool store and technician tool requests.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_INVENTORY_MANAGER, ROLE_TECHNICIAN
from ..services import tool_service


tools_bp = Blueprint("tools", __name__, url_prefix="/api/tools")


@tools_bp.post("/")
@require_role(ROLE_INVENTORY_MANAGER)
def add_tool_route():
    """Request body: {"name": "Drill", "unit": "pcs", "quantity_available": 5}"""
    try:
        data = request.get_json(silent=True) or {}
        tool = tool_service.add_tool(
            name=data.get("name"),
            unit=data.get("unit"),
            quantity_available=data.get("quantity_available", 0),
        )
        return jsonify({"tool": tool.to_dict()}), 201
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add tool")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.get("/")
def list_tools_route():
    try:
        return jsonify({"tools": [t.to_dict() for t in tool_service.list_tools()]}), 200
    except Exception:
        current_app.logger.exception("Failed to list tools")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.post("/requests")
@require_role(ROLE_TECHNICIAN)
def create_tool_request_route():
    """Request body: {"tools": [{"tool_id": 1, "quantity_requested": 2}, ...]}"""
    try:
        data = request.get_json(silent=True) or {}
        req = tool_service.create_tool_request(email=g.current_employee.email, tools=data.get("tools"))
        return jsonify({"request": req.to_dict()}), 201
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create tool request")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.get("/requests")
@require_role(ROLE_INVENTORY_MANAGER, ROLE_TECHNICIAN)
def list_tool_requests_route():
    """Technicians only ever see their own requests."""
    try:
        email = request.args.get("technician_email")
        if g.current_employee.role == ROLE_TECHNICIAN:
            email = g.current_employee.email
        rows = tool_service.list_tool_requests(status=request.args.get("status"), technician_email=email)
        return jsonify({"requests": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list tool requests")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.put("/requests/<int:request_id>/approve")
@require_role(ROLE_INVENTORY_MANAGER)
def approve_tool_request_route(request_id: int):
    """Request body: {"tools": [{"tool_id": 1, "quantity_approved": 2}, ...]}"""
    try:
        data = request.get_json(silent=True) or {}
        req = tool_service.approve_tool_request(request_id, approvals=data.get("tools"))
        return jsonify({"message": "Request approved", "request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve tool request")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.put("/requests/<int:request_id>/reject")
@require_role(ROLE_INVENTORY_MANAGER)
def reject_tool_request_route(request_id: int):
    try:
        req = tool_service.reject_tool_request(request_id)
        return jsonify({"request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject tool request")
        return jsonify({"error": "Internal server error"}), 500


@tools_bp.put("/requests/<int:request_id>/return")
@require_role(ROLE_TECHNICIAN)
def return_tools_route(request_id: int):
    """Request body: {"tools": [{"tool_id": 1, "quantity_returned": 1}, ...]}"""
    try:
        data = request.get_json(silent=True) or {}
        req = tool_service.get_tool_request(request_id)
        if req.technician_email != g.current_employee.email:
            return jsonify({"error": "Tool request belongs to another technician", "code": "UNAUTHORIZED"}), 403
        req = tool_service.return_tools(request_id, returns=data.get("tools"))
        return jsonify({"message": "Tools returned successfully", "request": req.to_dict()}), 200
    except WorkflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to return tools")
        return jsonify({"error": "Internal server error"}), 500
