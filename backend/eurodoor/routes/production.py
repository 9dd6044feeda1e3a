# Overview: Flask API routes for door production; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_role
from ..errors import WorkflowError
from ..models.directory import ROLE_BLACKSMITH, ROLE_INVENTORY_MANAGER, ROLE_PRODUCTION_MANAGER
from ..services import production_service, stock_service


production_bp = Blueprint("production", __name__, url_prefix="/api/production")


def _error(e: WorkflowError):
    return jsonify(e.to_dict()), e.status_code


def _internal(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PRODUCTION REQUESTS
# =============================================================================

@production_bp.post("/requests")
@require_role(ROLE_INVENTORY_MANAGER)
def create_production_request_route():
    """Request body: {"door_name": "Glass", "quantity": 20, "description": "..."}"""
    try:
        data = request.get_json(silent=True) or {}
        req = production_service.create_production_request(
            door_name=data.get("door_name"),
            quantity=data.get("quantity"),
            description=data.get("description"),
        )
        return jsonify({"production_request": req.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("create production request")


@production_bp.get("/requests")
def list_production_requests_route():
    try:
        rows = production_service.list_production_requests(status=request.args.get("status"))
        return jsonify({"production_requests": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list production requests")


@production_bp.put("/requests/<int:request_id>/request-door")
@require_role(ROLE_INVENTORY_MANAGER)
def request_door_route(request_id: int):
    try:
        req = production_service.request_door(request_id)
        return jsonify({"production_request": req.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("request door")


@production_bp.put("/requests/<int:request_id>/approve-door")
@require_role(ROLE_PRODUCTION_MANAGER)
def approve_door_route(request_id: int):
    try:
        req = production_service.approve_door(request_id)
        return jsonify({"production_request": req.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("approve door")


@production_bp.post("/requests/<int:request_id>/assign-blacksmith-task")
@require_role(ROLE_PRODUCTION_MANAGER)
def assign_blacksmith_task_route(request_id: int):
    try:
        task = production_service.assign_blacksmith_task(request_id)
        return jsonify({"message": "Task assigned to blacksmith", "task": task.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("assign blacksmith task")


# =============================================================================
# BLACKSMITH TASKS
# =============================================================================

@production_bp.get("/tasks")
@require_role(ROLE_BLACKSMITH, ROLE_PRODUCTION_MANAGER)
def list_tasks_route():
    try:
        rows = production_service.list_tasks(status=request.args.get("status"))
        return jsonify({"tasks": [t.to_dict() for t in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list tasks")


@production_bp.put("/tasks/<int:task_id>/start")
@require_role(ROLE_BLACKSMITH)
def start_task_route(task_id: int):
    try:
        task = production_service.start_task(task_id)
        return jsonify({"task": task.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("start task")


@production_bp.put("/tasks/<int:task_id>/complete")
@require_role(ROLE_BLACKSMITH)
def complete_task_route(task_id: int):
    try:
        task = production_service.complete_task(task_id)
        return jsonify({"message": "Task marked as completed", "task": task.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("complete task")


@production_bp.put("/tasks/<int:task_id>/approve")
@require_role(ROLE_PRODUCTION_MANAGER)
def approve_task_route(task_id: int):
    try:
        task = production_service.approve_task(task_id)
        return jsonify({"message": "Task approved and product stored", "task": task.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("approve task")


@production_bp.get("/product-store")
def product_store_route():
    try:
        rows = stock_service.list_stock(stock_service.GOODS_PRODUCT_STORE)
        return jsonify({"products": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list product store")


# =============================================================================
# MATERIAL RELEASE
# =============================================================================

@production_bp.post("/release-requests")
@require_role(ROLE_PRODUCTION_MANAGER)
def create_release_request_route():
    """Request body: {"material_name": "OakDoor", "quantity": 5}"""
    try:
        data = request.get_json(silent=True) or {}
        rel = production_service.create_release_request(
            material_name=data.get("material_name"),
            quantity=data.get("quantity"),
        )
        return jsonify({"release_request": rel.to_dict()}), 201
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("create material release request")


@production_bp.get("/release-requests")
def list_release_requests_route():
    try:
        rows = production_service.list_release_requests(status=request.args.get("status"))
        return jsonify({"release_requests": [r.to_dict() for r in rows]}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("list material release requests")


@production_bp.put("/release-requests/<int:release_id>/release")
@require_role(ROLE_INVENTORY_MANAGER)
def release_material_route(release_id: int):
    try:
        rel = production_service.release(release_id)
        return jsonify({"message": "Material released", "release_request": rel.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("release material")


@production_bp.put("/release-requests/<int:release_id>/decision")
@require_role(ROLE_PRODUCTION_MANAGER)
def decide_release_route(release_id: int):
    """Request body: {"decision": "approved"|"rejected"}"""
    try:
        data = request.get_json(silent=True) or {}
        rel = production_service.decide_release(release_id, decision=data.get("decision"))
        return jsonify({"release_request": rel.to_dict()}), 200
    except WorkflowError as e:
        return _error(e)
    except Exception:
        return _internal("decide material release")
