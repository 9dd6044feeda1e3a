"""
Service booking workflow tests.

Verifies:
- The booking walks the service chain one step at a time
- Nothing past payment confirmation happens before finance confirms
- Supervisor and technician steps belong to the assigned employee
- Feedback closes the booking and is answered at most once
"""

import pytest

from eurodoor.errors import InvalidStateError, NotFoundError, UnauthorizedError
from eurodoor.services import receipt_service, service_booking_service as svc

PAY_CODE = "SRV12ABCDE"


@pytest.fixture
def booking(customer):
    return svc.create_booking(
        customer.id,
        door_type="Sliding Glass Door",
        price_cents=350_000,
        payment_code=PAY_CODE,
        location={"address": "12 Moi Avenue", "city": "Nairobi", "instructions": "  Gate B  "},
    )


@pytest.fixture
def confirmed_booking(booking, service_manager, supervisor, technician):
    """A booking walked all the way to service manager confirmation."""
    svc.confirm_booking_payment(booking.id)
    svc.allocate_supervisor(booking.id, supervisor_id=supervisor.id)
    svc.assign_technician(booking.id, supervisor_id=supervisor.id, technician_id=technician.id)
    svc.start_service(booking.id, technician_id=technician.id)
    svc.mark_rendered(booking.id, technician_id=technician.id)
    svc.supervisor_approve(booking.id, supervisor_id=supervisor.id)
    return svc.manager_confirm(booking.id, manager_id=service_manager.id)


class TestBookingChain:

    def test_created_pending(self, db_session, booking):
        assert booking.service_status == "requested"
        assert booking.payment_status == "pending"
        assert booking.location_dict()["instructions"] == "Gate B"
        assert booking.location_dict()["county"] is None

    def test_steps_need_confirmed_payment(self, db_session, booking, supervisor):
        with pytest.raises(InvalidStateError):
            svc.allocate_supervisor(booking.id, supervisor_id=supervisor.id)

    def test_payment_confirmation_issues_receipt(self, db_session, booking, customer):
        booking = svc.confirm_booking_payment(booking.id)

        assert booking.payment_status == "confirmed"
        assert booking.service_status == "payment_confirmed"
        receipt = receipt_service.build_service_receipt(booking.id)
        assert receipt["total_cents"] == 350_000
        assert receipt["payment"]["code"] == PAY_CODE
        assert receipt["customer"]["name"] == customer.name

    def test_no_receipt_before_confirmation(self, db_session, booking):
        with pytest.raises(InvalidStateError):
            svc.get_service_receipt(booking.id)
        with pytest.raises(NotFoundError):
            svc.get_service_receipt(booking.id + 100)

    def test_confirm_payment_twice(self, db_session, booking):
        svc.confirm_booking_payment(booking.id)
        with pytest.raises(InvalidStateError):
            svc.confirm_booking_payment(booking.id)

    def test_full_chain(self, db_session, confirmed_booking, technician):
        assert confirmed_booking.service_status == "service_manager_confirmed"
        assert confirmed_booking.technician_id == technician.id
        assert [b.id for b in svc.list_bookings(technician_id=technician.id)] == [confirmed_booking.id]

    def test_cannot_skip_rendered(self, db_session, booking, supervisor, technician):
        svc.confirm_booking_payment(booking.id)
        svc.allocate_supervisor(booking.id, supervisor_id=supervisor.id)
        svc.assign_technician(booking.id, supervisor_id=supervisor.id, technician_id=technician.id)
        svc.start_service(booking.id, technician_id=technician.id)

        with pytest.raises(InvalidStateError):
            svc.supervisor_approve(booking.id, supervisor_id=supervisor.id)


class TestAssignedActors:

    def test_other_supervisor_cannot_assign(self, db_session, booking, supervisor, technician, make_employee):
        other = make_employee("Supervisor")
        svc.confirm_booking_payment(booking.id)
        svc.allocate_supervisor(booking.id, supervisor_id=supervisor.id)

        with pytest.raises(UnauthorizedError):
            svc.assign_technician(booking.id, supervisor_id=other.id, technician_id=technician.id)

    def test_other_technician_cannot_start(self, db_session, booking, supervisor, technician, make_employee):
        other = make_employee("Technician")
        svc.confirm_booking_payment(booking.id)
        svc.allocate_supervisor(booking.id, supervisor_id=supervisor.id)
        svc.assign_technician(booking.id, supervisor_id=supervisor.id, technician_id=technician.id)

        with pytest.raises(UnauthorizedError):
            svc.start_service(booking.id, technician_id=other.id)
        assert svc.get_booking(booking.id).service_status == "technician_assigned"

    def test_allocation_requires_supervisor_role(self, db_session, booking, technician):
        svc.confirm_booking_payment(booking.id)
        with pytest.raises(UnauthorizedError):
            svc.allocate_supervisor(booking.id, supervisor_id=technician.id)


class TestServiceFeedback:

    def test_feedback_completes_booking(self, db_session, confirmed_booking, customer):
        feedback = svc.submit_service_feedback(confirmed_booking.id, customer_id=customer.id, message="Tidy work")

        assert feedback.booking_id == confirmed_booking.id
        assert svc.get_booking(confirmed_booking.id).service_status == "completed"

    def test_feedback_too_early(self, db_session, booking, customer):
        with pytest.raises(InvalidStateError):
            svc.submit_service_feedback(booking.id, customer_id=customer.id, message="Where are you?")

    def test_feedback_owner_only(self, db_session, confirmed_booking, other_customer):
        with pytest.raises(UnauthorizedError):
            svc.submit_service_feedback(confirmed_booking.id, customer_id=other_customer.id, message="Hi")

    def test_reply_once(self, db_session, confirmed_booking, customer, service_manager):
        feedback = svc.submit_service_feedback(confirmed_booking.id, customer_id=customer.id, message="Tidy")
        svc.reply_to_service_feedback(feedback.id, manager_id=service_manager.id, reply="Thanks")

        with pytest.raises(InvalidStateError):
            svc.reply_to_service_feedback(feedback.id, manager_id=service_manager.id, reply="Again")
        assert svc.list_service_feedback(unanswered_only=True) == []
