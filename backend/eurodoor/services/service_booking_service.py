# Overview: After-sales service bookings, from booking through feedback.

"""
Service Booking Workflow

payment_status: pending -> confirmed
service_status: requested -> payment_confirmed -> allocated_to_supervisor
                -> technician_assigned -> in_progress -> rendered
                -> supervisor_approved -> service_manager_confirmed -> completed

One chain step per operation. Past payment_confirmed every step needs
payment_status=confirmed. Supervisor and technician steps must be taken by
the employee recorded on the booking.
"""

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InvalidStateError, NotFoundError, UnauthorizedError
from ..extensions import db
from ..models import ServiceBooking, ServiceFeedback, ServiceReceipt
from ..models.directory import ROLE_SERVICE_MANAGER, ROLE_SUPERVISOR, ROLE_TECHNICIAN
from ..time_utils import utcnow
from ..validation import require_customer_payment_code, require_price_cents, require_text
from . import lifecycle_service as lc
from .concurrency import lock_for_update, run_with_retry
from .directory_service import find_active_employee, get_customer

LOCATION_FIELDS = ("address", "city", "county", "postal_code", "instructions")


def _locked_booking(booking_id: int) -> ServiceBooking:
    booking = lock_for_update(db.session.query(ServiceBooking).filter_by(id=booking_id)).first()
    if not booking:
        raise NotFoundError(f"Service booking {booking_id} not found")
    return booking


def _step(booking: ServiceBooking, to_status: str) -> None:
    lc.SERVICE_BOOKING.require_transition(booking.service_status, to_status)
    if to_status != lc.SERVICE_PAYMENT_CONFIRMED and booking.payment_status != lc.BOOKING_PAYMENT_CONFIRMED:
        raise InvalidStateError(
            f"Service booking {booking.id} payment has not been confirmed",
            details={"payment_status": booking.payment_status},
        )
    current_app.logger.info(
        "Service booking %s: %s -> %s", booking.id, booking.service_status, to_status
    )
    booking.service_status = to_status


def _require_assigned(booking: ServiceBooking, attr: str, employee_id: int, label: str) -> None:
    if getattr(booking, attr) != employee_id:
        raise UnauthorizedError(
            f"{label} {employee_id} is not assigned to service booking {booking.id}",
            details={attr: getattr(booking, attr)},
        )


def get_booking(booking_id: int) -> ServiceBooking:
    booking = db.session.get(ServiceBooking, booking_id)
    if not booking:
        raise NotFoundError(f"Service booking {booking_id} not found")
    return booking


def list_bookings(
    *,
    customer_id: int | None = None,
    service_status: str | None = None,
    payment_status: str | None = None,
    supervisor_id: int | None = None,
    technician_id: int | None = None,
) -> list[ServiceBooking]:
    q = db.session.query(ServiceBooking)
    if customer_id is not None:
        q = q.filter(ServiceBooking.customer_id == customer_id)
    if service_status:
        lc.SERVICE_BOOKING.validate_status(service_status)
        q = q.filter(ServiceBooking.service_status == service_status)
    if payment_status:
        lc.BOOKING_PAYMENT.validate_status(payment_status)
        q = q.filter(ServiceBooking.payment_status == payment_status)
    if supervisor_id is not None:
        q = q.filter(ServiceBooking.supervisor_id == supervisor_id)
    if technician_id is not None:
        q = q.filter(ServiceBooking.technician_id == technician_id)
    return q.order_by(ServiceBooking.created_at.desc(), ServiceBooking.id.desc()).all()


def create_booking(
    customer_id: Any,
    *,
    door_type: Any,
    price_cents: Any,
    payment_code: Any,
    location: dict | None = None,
) -> ServiceBooking:
    payment_code = require_customer_payment_code(payment_code)
    door_type = require_text(door_type, "door_type", max_length=255)
    price_cents = require_price_cents(price_cents)
    location = location or {}
    cleaned_location = {
        field: (str(location[field]).strip() if location.get(field) else None)
        for field in LOCATION_FIELDS
    }

    def _op():
        customer = get_customer(customer_id)
        booking = ServiceBooking(
            customer_id=customer.id,
            door_type=door_type,
            price_cents=price_cents,
            payment_code=payment_code,
            payment_status=lc.BOOKING_PAYMENT_PENDING,
            service_status=lc.SERVICE_REQUESTED,
            **cleaned_location,
        )
        db.session.add(booking)
        db.session.commit()
        current_app.logger.info("Service booking %s created for customer %s", booking.id, customer.id)
        return booking

    return run_with_retry(_op)


def confirm_booking_payment(booking_id: int) -> ServiceBooking:
    """Finance confirms the booking payment; the customer's service receipt is issued."""
    def _op():
        booking = _locked_booking(booking_id)
        lc.BOOKING_PAYMENT.require_transition(booking.payment_status, lc.BOOKING_PAYMENT_CONFIRMED)
        booking.payment_status = lc.BOOKING_PAYMENT_CONFIRMED
        _step(booking, lc.SERVICE_PAYMENT_CONFIRMED)
        db.session.add(ServiceReceipt(
            customer_id=booking.customer_id,
            booking_id=booking.id,
            amount_paid_cents=booking.price_cents,
            code=booking.payment_code,
        ))
        db.session.commit()
        return booking

    return run_with_retry(_op)


def allocate_supervisor(booking_id: int, *, supervisor_id: Any) -> ServiceBooking:
    def _op():
        supervisor = find_active_employee(role=ROLE_SUPERVISOR, employee_id=supervisor_id)
        booking = _locked_booking(booking_id)
        _step(booking, lc.SERVICE_ALLOCATED)
        booking.supervisor_id = supervisor.id
        db.session.commit()
        return booking

    return run_with_retry(_op)


def assign_technician(booking_id: int, *, supervisor_id: Any, technician_id: Any) -> ServiceBooking:
    def _op():
        supervisor = find_active_employee(role=ROLE_SUPERVISOR, employee_id=supervisor_id)
        technician = find_active_employee(role=ROLE_TECHNICIAN, employee_id=technician_id)
        booking = _locked_booking(booking_id)
        _require_assigned(booking, "supervisor_id", supervisor.id, "Supervisor")
        _step(booking, lc.SERVICE_TECHNICIAN_ASSIGNED)
        booking.technician_id = technician.id
        db.session.commit()
        return booking

    return run_with_retry(_op)


def _technician_step(booking_id: int, technician_id: Any, to_status: str) -> ServiceBooking:
    def _op():
        technician = find_active_employee(role=ROLE_TECHNICIAN, employee_id=technician_id)
        booking = _locked_booking(booking_id)
        _require_assigned(booking, "technician_id", technician.id, "Technician")
        _step(booking, to_status)
        db.session.commit()
        return booking

    return run_with_retry(_op)


def start_service(booking_id: int, *, technician_id: Any) -> ServiceBooking:
    return _technician_step(booking_id, technician_id, lc.SERVICE_IN_PROGRESS)


def mark_rendered(booking_id: int, *, technician_id: Any) -> ServiceBooking:
    return _technician_step(booking_id, technician_id, lc.SERVICE_RENDERED)


def supervisor_approve(booking_id: int, *, supervisor_id: Any) -> ServiceBooking:
    def _op():
        supervisor = find_active_employee(role=ROLE_SUPERVISOR, employee_id=supervisor_id)
        booking = _locked_booking(booking_id)
        _require_assigned(booking, "supervisor_id", supervisor.id, "Supervisor")
        _step(booking, lc.SERVICE_SUPERVISOR_APPROVED)
        db.session.commit()
        return booking

    return run_with_retry(_op)


def manager_confirm(booking_id: int, *, manager_id: Any = None) -> ServiceBooking:
    def _op():
        if manager_id is not None:
            find_active_employee(role=ROLE_SERVICE_MANAGER, employee_id=manager_id)
        booking = _locked_booking(booking_id)
        _step(booking, lc.SERVICE_MANAGER_CONFIRMED)
        db.session.commit()
        return booking

    return run_with_retry(_op)


def submit_service_feedback(booking_id: int, *, customer_id: Any, message: Any) -> ServiceFeedback:
    """Feedback closes the booking: service_manager_confirmed -> completed."""
    message = require_text(message, "message")

    def _op():
        customer = get_customer(customer_id)
        booking = _locked_booking(booking_id)
        if booking.customer_id != customer.id:
            raise UnauthorizedError(f"Service booking {booking.id} does not belong to customer {customer.id}")
        if booking.service_status != lc.SERVICE_MANAGER_CONFIRMED:
            raise InvalidStateError(
                f"Feedback is only accepted once the service is confirmed (booking is '{booking.service_status}')",
                details={"service_status": booking.service_status},
            )
        feedback = ServiceFeedback(booking_id=booking.id, customer_id=customer.id, message=message)
        db.session.add(feedback)
        _step(booking, lc.SERVICE_COMPLETED)
        db.session.commit()
        return feedback

    return run_with_retry(_op)


def list_service_feedback(*, unanswered_only: bool = False) -> list[ServiceFeedback]:
    q = db.session.query(ServiceFeedback)
    if unanswered_only:
        q = q.filter(ServiceFeedback.reply.is_(None))
    return q.order_by(ServiceFeedback.created_at.desc(), ServiceFeedback.id.desc()).all()


def reply_to_service_feedback(feedback_id: int, *, manager_id: Any, reply: Any) -> ServiceFeedback:
    reply = require_text(reply, "reply")

    def _op():
        manager = find_active_employee(role=ROLE_SERVICE_MANAGER, employee_id=manager_id)
        feedback = lock_for_update(db.session.query(ServiceFeedback).filter_by(id=feedback_id)).first()
        if not feedback:
            raise NotFoundError(f"Service feedback {feedback_id} not found")
        if feedback.reply is not None:
            raise InvalidStateError(f"Service feedback {feedback.id} already has a reply")
        feedback.reply = reply
        feedback.service_manager_id = manager.id
        feedback.replied_at = utcnow()
        db.session.commit()
        return feedback

    return run_with_retry(_op)


def get_service_receipt(booking_id: int) -> ServiceReceipt:
    receipt = db.session.query(ServiceReceipt).filter_by(booking_id=booking_id).first()
    if not receipt:
        get_booking(booking_id)
        raise InvalidStateError(f"Service booking {booking_id} payment has not been confirmed")
    return receipt
