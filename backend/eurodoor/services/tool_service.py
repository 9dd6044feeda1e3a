# Overview: Tool store and technician tool custody (request, approve, return).

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InsufficientStockError, InvalidInputError, InvalidStateError, NotFoundError
from ..extensions import db
from ..models import Tool, ToolRequest, ToolRequestLine
from ..models.directory import ROLE_TECHNICIAN
from ..time_utils import utcnow
from ..validation import coerce_int, require_text
from . import lifecycle_service as lc
from .concurrency import lock_for_update, run_with_retry
from .directory_service import find_active_employee
from .stock_service import StockKey, credit, debit, query


def _locked_request(request_id: int) -> ToolRequest:
    req = lock_for_update(db.session.query(ToolRequest).filter_by(id=request_id)).first()
    if not req:
        raise NotFoundError(f"Tool request {request_id} not found")
    return req


def _move(req: ToolRequest, to_status: str) -> None:
    lc.TOOL_REQUEST.require_transition(req.status, to_status)
    current_app.logger.info("Tool request %s: %s -> %s", req.id, req.status, to_status)
    req.status = to_status


def _line_quantities(entries: Any, field: str, *, minimum: int) -> dict[int, int]:
    """[{tool_id, <field>}, ...] -> {tool_id: qty}; each tool at most once."""
    if not isinstance(entries, list) or not entries:
        raise InvalidInputError("tools must be a non-empty list")
    result: dict[int, int] = {}
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidInputError(f"tools[{idx}] must be an object")
        tool_id = coerce_int(entry.get("tool_id"), f"tools[{idx}].tool_id")
        if tool_id in result:
            raise InvalidInputError(f"Tool {tool_id} listed more than once")
        result[tool_id] = coerce_int(entry.get(field), f"tools[{idx}].{field}", minimum=minimum)
    return result


# =============================================================================
# TOOL STORE
# =============================================================================

def add_tool(*, name: Any, unit: Any, quantity_available: Any = 0) -> Tool:
    name = require_text(name, "name", max_length=255)
    unit = require_text(unit, "unit", max_length=32)
    quantity = coerce_int(quantity_available, "quantity_available", minimum=0)

    def _op():
        tool = Tool(name=name, unit=unit, quantity_available=0)
        db.session.add(tool)
        db.session.flush()
        if quantity:
            credit(StockKey.tool(tool.id), quantity, source_type="tool", source_id=tool.id, note="Opening stock")
        db.session.commit()
        current_app.logger.info("Tool %s added: %s x%d", tool.id, name, quantity)
        return tool

    return run_with_retry(_op)


def list_tools() -> list[Tool]:
    return db.session.query(Tool).order_by(Tool.name.asc(), Tool.id.asc()).all()


# =============================================================================
# REQUESTS
# =============================================================================

def get_tool_request(request_id: int) -> ToolRequest:
    req = db.session.get(ToolRequest, request_id)
    if not req:
        raise NotFoundError(f"Tool request {request_id} not found")
    return req


def list_tool_requests(*, status: str | None = None, technician_email: str | None = None) -> list[ToolRequest]:
    q = db.session.query(ToolRequest)
    if status:
        lc.TOOL_REQUEST.validate_status(status)
        q = q.filter(ToolRequest.status == status)
    if technician_email:
        q = q.filter(ToolRequest.technician_email == technician_email.strip().lower())
    return q.order_by(ToolRequest.request_date.desc(), ToolRequest.id.desc()).all()


def create_tool_request(*, email: Any, tools: Any) -> ToolRequest:
    email = require_text(email, "email", max_length=255).lower()
    requested = _line_quantities(tools, "quantity_requested", minimum=1)

    def _op():
        technician = find_active_employee(role=ROLE_TECHNICIAN, email=email)
        req = ToolRequest(technician_email=technician.email, status=lc.TOOL_PENDING)
        for tool_id, qty in requested.items():
            if db.session.get(Tool, tool_id) is None:
                raise NotFoundError(f"Tool {tool_id} not found")
            req.lines.append(ToolRequestLine(tool_id=tool_id, quantity_requested=qty))
        db.session.add(req)
        db.session.commit()
        current_app.logger.info("Tool request %s created by %s", req.id, technician.email)
        return req

    return run_with_retry(_op)


def approve_tool_request(request_id: int, *, approvals: Any) -> ToolRequest:
    """
    Inventory approves a pending request line by line.

    Lines not mentioned are approved at 0, but at least one line must be
    above 0. If any tool is short, nothing is debited and the error lists
    every short tool.
    """
    approved = _line_quantities(approvals, "quantity_approved", minimum=0)

    def _op():
        req = _locked_request(request_id)
        lc.TOOL_REQUEST.require_transition(req.status, lc.TOOL_APPROVED)

        lines = {line.tool_id: line for line in req.lines}
        unknown = sorted(set(approved) - set(lines))
        if unknown:
            raise InvalidInputError(
                f"Tools not part of request {req.id}: {', '.join(str(t) for t in unknown)}",
                details={"tool_ids": unknown},
            )

        for tool_id, qty in approved.items():
            if qty > int(lines[tool_id].quantity_requested):
                raise InvalidInputError(
                    f"Approved quantity for tool {tool_id} exceeds requested ({lines[tool_id].quantity_requested})",
                    details={"tool_id": tool_id},
                )

        # At least one tool must be lent
        if not any(approved.values()):
            raise InvalidInputError(
                f"Approve at least one tool for request {req.id}, or reject it",
                details={"request_id": req.id},
            )

        short = []
        for tool_id, qty in approved.items():
            tool = lines[tool_id].tool
            available = query(StockKey.tool(tool_id))
            if qty > available:
                short.append({"tool_id": tool_id, "name": tool.name, "available": available, "requested": qty})
        if short:
            names = ", ".join(s["name"] for s in short)
            raise InsufficientStockError(f"Not enough {names} in inventory", details={"shortages": short})

        for tool_id, line in lines.items():
            qty = approved.get(tool_id, 0)
            line.quantity_approved = qty
            line.quantity_returned = 0
            line.return_status = lc.RETURN_NONE if qty else lc.RETURN_FULL
            if qty:
                debit(StockKey.tool(tool_id), qty, source_type="tool_request", source_id=req.id)

        _move(req, lc.TOOL_APPROVED)
        req.approved_at = utcnow()
        db.session.commit()
        return req

    return run_with_retry(_op)


def reject_tool_request(request_id: int) -> ToolRequest:
    def _op():
        req = _locked_request(request_id)
        _move(req, lc.TOOL_REJECTED)
        db.session.commit()
        return req

    return run_with_retry(_op)


def _return_status(line: ToolRequestLine) -> str:
    returned, approved = int(line.quantity_returned), int(line.quantity_approved)
    if returned >= approved:
        return lc.RETURN_FULL
    if returned > 0:
        return lc.RETURN_PARTIAL
    return lc.RETURN_NONE


def return_tools(request_id: int, *, returns: Any) -> ToolRequest:
    """
    Technician hands tools back; returns are cumulative across calls.

    The request becomes Returned once every line has returned its approved
    quantity.
    """
    returned = _line_quantities(returns, "quantity_returned", minimum=1)

    def _op():
        req = _locked_request(request_id)
        if req.status != lc.TOOL_APPROVED:
            raise InvalidStateError(
                f"Tool request {req.id} is '{req.status}'; only approved requests take returns",
                details={"status": req.status},
            )

        lines = {line.tool_id: line for line in req.lines}
        for tool_id, qty in returned.items():
            line = lines.get(tool_id)
            if line is None:
                raise InvalidInputError(f"Tool {tool_id} is not part of request {req.id}")
            outstanding = int(line.quantity_approved) - int(line.quantity_returned)
            if qty > outstanding:
                raise InvalidInputError(
                    f"Cannot return {qty} of tool {tool_id}; only {outstanding} outstanding",
                    details={"tool_id": tool_id, "outstanding": outstanding},
                )
            line.quantity_returned = int(line.quantity_returned) + qty
            credit(StockKey.tool(tool_id), qty, source_type="tool_request", source_id=req.id, note="Returned")

        for line in req.lines:
            line.return_status = _return_status(line)

        if all(line.return_status == lc.RETURN_FULL for line in req.lines):
            _move(req, lc.TOOL_RETURNED)
            req.returned_at = utcnow()
        db.session.commit()
        return req

    return run_with_retry(_op)
