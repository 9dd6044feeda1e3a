# Overview: Door production pipeline: production requests, blacksmith tasks, material releases.

"""
Production Pipeline

ProductionRequest:  pending -> door-requested -> door-approved -> door-assigned
                    -> in-production -> completed -> approved
AssignedTask:       assigned -> in-production -> completed -> approved
MaterialRelease:    pending -> released -> approved|rejected

Task steps are mirrored onto the linked production request whenever the
request can legally make the same move. Approving a task credits the
product store with the finished doors.
"""

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import AssignedTask, MaterialReleaseRequest, ProductionRequest
from ..time_utils import utcnow
from ..validation import coerce_int, require_decision, require_text
from . import lifecycle_service as lc
from .concurrency import lock_for_update, run_with_retry
from .stock_service import StockKey, credit, debit, query


def _locked(model, row_id: int, label: str):
    row = lock_for_update(db.session.query(model).filter_by(id=row_id)).first()
    if not row:
        raise NotFoundError(f"{label} {row_id} not found")
    return row


def _move(machine: lc.StateMachine, row, to_status: str) -> None:
    machine.require_transition(row.status, to_status)
    current_app.logger.info("%s %s: %s -> %s", machine.name.capitalize(), row.id, row.status, to_status)
    row.status = to_status


# =============================================================================
# PRODUCTION REQUESTS
# =============================================================================

def create_production_request(*, door_name: Any, quantity: Any, description: Any) -> ProductionRequest:
    door_name = require_text(door_name, "door_name", max_length=255)
    quantity = coerce_int(quantity, "quantity", minimum=1)
    description = require_text(description, "description", max_length=1024)

    def _op():
        req = ProductionRequest(
            door_name=door_name,
            quantity=quantity,
            description=description,
            status=lc.PROD_PENDING,
        )
        db.session.add(req)
        db.session.commit()
        current_app.logger.info("Production request %s created: %s x%d", req.id, door_name, quantity)
        return req

    return run_with_retry(_op)


def list_production_requests(*, status: str | None = None) -> list[ProductionRequest]:
    q = db.session.query(ProductionRequest)
    if status:
        lc.PRODUCTION_REQUEST.validate_status(status)
        q = q.filter(ProductionRequest.status == status)
    return q.order_by(ProductionRequest.created_at.desc(), ProductionRequest.id.desc()).all()


def _advance_request(request_id: int, to_status: str) -> ProductionRequest:
    def _op():
        req = _locked(ProductionRequest, request_id, "Production request")
        _move(lc.PRODUCTION_REQUEST, req, to_status)
        db.session.commit()
        return req

    return run_with_retry(_op)


def request_door(request_id: int) -> ProductionRequest:
    return _advance_request(request_id, lc.PROD_DOOR_REQUESTED)


def approve_door(request_id: int) -> ProductionRequest:
    return _advance_request(request_id, lc.PROD_DOOR_APPROVED)


def assign_blacksmith_task(request_id: int) -> AssignedTask:
    """door-approved -> door-assigned, spawning one AssignedTask linked back to the request."""
    def _op():
        req = _locked(ProductionRequest, request_id, "Production request")
        _move(lc.PRODUCTION_REQUEST, req, lc.PROD_DOOR_ASSIGNED)
        task = AssignedTask(
            production_request_id=req.id,
            door_name=req.door_name,
            quantity=req.quantity,
            description=req.description,
            status=lc.TASK_ASSIGNED,
        )
        db.session.add(task)
        db.session.commit()
        current_app.logger.info("Task %s assigned from production request %s", task.id, req.id)
        return task

    return run_with_retry(_op)


# =============================================================================
# ASSIGNED TASKS
# =============================================================================

def list_tasks(*, status: str | None = None) -> list[AssignedTask]:
    q = db.session.query(AssignedTask)
    if status:
        lc.ASSIGNED_TASK.validate_status(status)
        q = q.filter(AssignedTask.status == status)
    return q.order_by(AssignedTask.assigned_at.desc(), AssignedTask.id.desc()).all()


def _mirror_to_request(task: AssignedTask, to_status: str) -> None:
    if task.production_request_id is None:
        return
    req = _locked(ProductionRequest, task.production_request_id, "Production request")
    if lc.PRODUCTION_REQUEST.can_transition(req.status, to_status):
        _move(lc.PRODUCTION_REQUEST, req, to_status)


def _task_step(task: AssignedTask, to_status: str) -> None:
    _move(lc.ASSIGNED_TASK, task, to_status)
    _mirror_to_request(task, to_status)


def start_task(task_id: int) -> AssignedTask:
    def _op():
        task = _locked(AssignedTask, task_id, "Task")
        _task_step(task, lc.TASK_IN_PRODUCTION)
        db.session.commit()
        return task

    return run_with_retry(_op)


def complete_task(task_id: int) -> AssignedTask:
    """Blacksmith marks work done. An `assigned` task passes through in-production."""
    def _op():
        task = _locked(AssignedTask, task_id, "Task")
        if task.status == lc.TASK_ASSIGNED:
            _task_step(task, lc.TASK_IN_PRODUCTION)
        _task_step(task, lc.TASK_COMPLETED)
        task.completed_at = utcnow()
        db.session.commit()
        return task

    return run_with_retry(_op)


def approve_task(task_id: int) -> AssignedTask:
    """completed -> approved; the finished doors land in the product store."""
    def _op():
        task = _locked(AssignedTask, task_id, "Task")
        _task_step(task, lc.TASK_APPROVED)
        task.approved_at = utcnow()
        credit(
            StockKey.product_store(task.door_name, task.description),
            task.quantity,
            source_type="assigned_task",
            source_id=task.id,
        )
        db.session.commit()
        return task

    return run_with_retry(_op)


# =============================================================================
# MATERIAL RELEASE
# =============================================================================

def create_release_request(*, material_name: Any, quantity: Any) -> MaterialReleaseRequest:
    material_name = require_text(material_name, "material_name", max_length=255)
    quantity = coerce_int(quantity, "quantity", minimum=1)

    def _op():
        rel = MaterialReleaseRequest(material_name=material_name, quantity=quantity, status=lc.RELEASE_PENDING)
        db.session.add(rel)
        db.session.commit()
        current_app.logger.info("Material release request %s created: %s x%d", rel.id, material_name, quantity)
        return rel

    return run_with_retry(_op)


def list_release_requests(*, status: str | None = None) -> list[MaterialReleaseRequest]:
    q = db.session.query(MaterialReleaseRequest)
    if status:
        lc.MATERIAL_RELEASE.validate_status(status)
        q = q.filter(MaterialReleaseRequest.status == status)
    return q.order_by(MaterialReleaseRequest.requested_at.desc(), MaterialReleaseRequest.id.desc()).all()


def _require_raw_stock(rel: MaterialReleaseRequest) -> None:
    available = query(StockKey.raw_material(rel.material_name))
    if available < int(rel.quantity):
        raise InsufficientStockError(
            f"Insufficient stock for {rel.material_name}: available {available}, requested {rel.quantity}",
            details={"item": rel.material_name, "available": available, "requested": int(rel.quantity)},
        )


def release(release_id: int) -> MaterialReleaseRequest:
    """
    Inventory releases material to production: pending -> released.

    Stock is checked here but only deducted on approval.
    """
    def _op():
        rel = _locked(MaterialReleaseRequest, release_id, "Material release request")
        lc.MATERIAL_RELEASE.require_transition(rel.status, lc.RELEASE_RELEASED)
        coerce_int(rel.quantity, "quantity", minimum=1)
        _require_raw_stock(rel)
        _move(lc.MATERIAL_RELEASE, rel, lc.RELEASE_RELEASED)
        rel.processed_at = utcnow()
        db.session.commit()
        return rel

    return run_with_retry(_op)


def decide_release(release_id: int, *, decision: Any) -> MaterialReleaseRequest:
    """
    Production approves or rejects a released batch.

    Approval re-checks on-hand raw material and debits it in the same
    transaction; rejection has no stock effect.
    """
    decision = require_decision(decision, (lc.RELEASE_APPROVED, lc.RELEASE_REJECTED))

    def _op():
        rel = _locked(MaterialReleaseRequest, release_id, "Material release request")
        lc.MATERIAL_RELEASE.require_transition(rel.status, decision)
        if decision == lc.RELEASE_APPROVED:
            debit(
                StockKey.raw_material(rel.material_name),
                rel.quantity,
                source_type="material_release_request",
                source_id=rel.id,
            )
        _move(lc.MATERIAL_RELEASE, rel, decision)
        rel.decided_at = utcnow()
        db.session.commit()
        return rel

    return run_with_retry(_op)
