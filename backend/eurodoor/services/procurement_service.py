# Overview: Raw material procurement workflow (supplier, inventory and finance steps).

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import RawMaterialRequest
from ..time_utils import utcnow
from ..validation import (
    coerce_int,
    require_decision,
    require_supply_payment_code,
    require_text,
)
from . import lifecycle_service as lc
from .concurrency import lock_for_update, run_with_retry
from .stock_service import StockKey, credit


def _get_locked(request_id: int) -> RawMaterialRequest:
    req = lock_for_update(db.session.query(RawMaterialRequest).filter_by(id=request_id)).first()
    if not req:
        raise NotFoundError(f"Raw material request {request_id} not found")
    return req


def _move(req: RawMaterialRequest, to_status: str) -> None:
    lc.RAW_MATERIAL_REQUEST.require_transition(req.status, to_status)
    current_app.logger.info("Raw material request %s: %s -> %s", req.id, req.status, to_status)
    req.status = to_status


def get_request(request_id: int) -> RawMaterialRequest:
    req = db.session.get(RawMaterialRequest, request_id)
    if not req:
        raise NotFoundError(f"Raw material request {request_id} not found")
    return req


def list_requests(*, status: str | None = None, payment_status: str | None = None) -> list[RawMaterialRequest]:
    q = db.session.query(RawMaterialRequest)
    if status:
        lc.RAW_MATERIAL_REQUEST.validate_status(status)
        q = q.filter(RawMaterialRequest.status == status)
    if payment_status:
        lc.SUPPLY_PAYMENT.validate_status(payment_status)
        q = q.filter(RawMaterialRequest.payment_status == payment_status)
    return q.order_by(RawMaterialRequest.created_at.desc(), RawMaterialRequest.id.desc()).all()


def create_request(
    *,
    material_name: Any,
    quantity: Any,
    unit: Any,
    supplier: Any,
    note: Any = None,
) -> RawMaterialRequest:
    material_name = require_text(material_name, "material_name", max_length=255)
    quantity = coerce_int(quantity, "quantity", minimum=1)
    unit = require_text(unit, "unit", max_length=32)
    supplier = require_text(supplier, "supplier", max_length=255)
    note = str(note).strip() if note else None

    def _op():
        req = RawMaterialRequest(
            material_name=material_name,
            quantity=quantity,
            unit=unit,
            supplier=supplier,
            note=note,
            status=lc.RAW_PENDING,
            payment_status=lc.PAYMENT_UNPAID,
        )
        db.session.add(req)
        db.session.commit()
        current_app.logger.info("Raw material request %s created for %s x%d", req.id, material_name, quantity)
        return req

    return run_with_retry(_op)


def supplier_respond(request_id: int, *, decision: Any, unit_cost_cents: Any = None) -> RawMaterialRequest:
    """
    Supplier approves (with a unit cost) or rejects a pending request.

    total_cost_cents = unit_cost_cents * quantity, fixed here.
    """
    decision = require_decision(decision, (lc.RAW_APPROVED, lc.RAW_REJECTED))
    if decision == lc.RAW_APPROVED:
        unit_cost_cents = coerce_int(unit_cost_cents, "unit_cost_cents", minimum=0)

    def _op():
        req = _get_locked(request_id)
        _move(req, decision)
        if decision == lc.RAW_APPROVED:
            req.unit_cost_cents = unit_cost_cents
            req.total_cost_cents = unit_cost_cents * int(req.quantity)
        db.session.commit()
        return req

    return run_with_retry(_op)


def mark_supplied(request_id: int) -> RawMaterialRequest:
    def _op():
        req = _get_locked(request_id)
        _move(req, lc.RAW_SUPPLIED)
        db.session.commit()
        return req

    return run_with_retry(_op)


def inventory_decide(request_id: int, *, decision: Any) -> RawMaterialRequest:
    """
    Inventory accepts or rejects a supplied delivery.

    Accepting lands the delivery as a new raw material lot and opens the
    request for payment. "rejected" is accepted as shorthand for
    rejected-by-inventory.
    """
    if decision == "rejected":
        decision = lc.RAW_REJECTED_BY_INVENTORY
    decision = require_decision(decision, (lc.RAW_ACCEPTED, lc.RAW_REJECTED_BY_INVENTORY))

    def _op():
        req = _get_locked(request_id)
        _move(req, decision)
        if decision == lc.RAW_ACCEPTED:
            credit(
                StockKey.raw_material(req.material_name),
                req.quantity,
                unit=req.unit,
                source_request_id=req.id,
                source_type="raw_material_request",
                source_id=req.id,
                note=f"Supply from {req.supplier}",
            )
            req.payment_status = lc.PAYMENT_UNPAID
        db.session.commit()
        return req

    return run_with_retry(_op)


def pay(request_id: int, *, payment_code: Any) -> RawMaterialRequest:
    """
    Finance pays an accepted supply in full.

    The payment code is validated before the request is even loaded.
    """
    payment_code = require_supply_payment_code(payment_code)

    def _op():
        req = _get_locked(request_id)
        if req.status != lc.RAW_ACCEPTED:
            raise InvalidStateError(
                f"Raw material request {req.id} is '{req.status}'; only accepted supplies can be paid",
                details={"status": req.status},
            )
        if not lc.SUPPLY_PAYMENT.can_transition(req.payment_status, lc.PAYMENT_PAID):
            raise InvalidStateError(
                f"Raw material request {req.id} is already {req.payment_status}",
                details={"payment_status": req.payment_status},
            )
        req.payment_status = lc.PAYMENT_PAID
        req.payment_code = payment_code
        req.amount_paid_cents = req.total_cost_cents
        req.payment_date = utcnow()
        db.session.commit()
        current_app.logger.info("Raw material request %s paid (%s cents)", req.id, req.amount_paid_cents)
        return req

    return run_with_retry(_op)
