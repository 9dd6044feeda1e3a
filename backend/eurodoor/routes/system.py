# backend/eurodoor/routes/system.py
"""
System health endpoint.

Reports database reachability plus a few workflow queue depths, useful
when checking a deployment.
"""

import time
from flask import Blueprint, jsonify, current_app
from ..extensions import db
from ..models import Employee, Order, RawMaterialRequest, ToolRequest
from ..services import lifecycle_service as lc
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        employee_count = db.session.query(Employee).count()
        placed_orders = db.session.query(Order).filter_by(status=lc.ORDER_PLACED).count()
        open_supplies = (
            db.session.query(RawMaterialRequest)
            .filter(RawMaterialRequest.status.in_([lc.RAW_PENDING, lc.RAW_APPROVED, lc.RAW_SUPPLIED]))
            .count()
        )
        pending_tool_requests = db.session.query(ToolRequest).filter_by(status=lc.TOOL_PENDING).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "employees": employee_count,
                "placed_orders": placed_orders,
                "open_supply_requests": open_supplies,
                "pending_tool_requests": pending_tool_requests,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status = "healthy" if database["status"] == "healthy" else "unhealthy"
    body = {"status": status, "checked_at": to_utc_z(utcnow()), "checks": {"database": database}}
    return jsonify(body), (200 if status == "healthy" else 503)
