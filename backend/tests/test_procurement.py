"""
Raw material procurement workflow tests.
"""

import pytest

from eurodoor.errors import InvalidInputError, InvalidPaymentCodeError, InvalidStateError, NotFoundError
from eurodoor.services import procurement_service, receipt_service, stock_service
from eurodoor.services.stock_service import StockKey


def _supplied_request(quantity=100, unit_cost_cents=50):
    req = procurement_service.create_request(
        material_name="Oak Timber", quantity=quantity, unit="planks", supplier="Timber Co"
    )
    procurement_service.supplier_respond(req.id, decision="approved", unit_cost_cents=unit_cost_cents)
    procurement_service.mark_supplied(req.id)
    return req


class TestSupplierSteps:

    def test_approval_fixes_total_cost(self, db_session):
        req = procurement_service.create_request(
            material_name="Oak Timber", quantity=100, unit="planks", supplier="Timber Co"
        )
        req = procurement_service.supplier_respond(req.id, decision="approved", unit_cost_cents=50)

        assert req.status == "approved"
        assert req.unit_cost_cents == 50
        assert req.total_cost_cents == 5000

    def test_rejection_is_terminal(self, db_session):
        req = procurement_service.create_request(
            material_name="Oak Timber", quantity=1, unit="planks", supplier="Timber Co"
        )
        procurement_service.supplier_respond(req.id, decision="rejected")

        with pytest.raises(InvalidStateError):
            procurement_service.mark_supplied(req.id)

    def test_cannot_supply_before_approval(self, db_session):
        req = procurement_service.create_request(
            material_name="Oak Timber", quantity=1, unit="planks", supplier="Timber Co"
        )
        with pytest.raises(InvalidStateError):
            procurement_service.mark_supplied(req.id)

    def test_negative_unit_cost_refused(self, db_session):
        req = procurement_service.create_request(
            material_name="Oak Timber", quantity=10, unit="planks", supplier="Timber Co"
        )

        with pytest.raises(InvalidInputError, match="unit_cost_cents must be >= 0"):
            procurement_service.supplier_respond(req.id, decision="approved", unit_cost_cents=-1)

        req = procurement_service.get_request(req.id)
        assert req.status == "pending"
        assert req.total_cost_cents is None

    def test_unknown_decision(self, db_session):
        with pytest.raises(InvalidInputError):
            procurement_service.supplier_respond(1, decision="maybe")

    def test_unknown_request(self, db_session):
        with pytest.raises(NotFoundError):
            procurement_service.mark_supplied(404)


class TestInventoryDecision:

    def test_accept_credits_raw_stock(self, db_session):
        req = _supplied_request(quantity=40)
        req = procurement_service.inventory_decide(req.id, decision="accepted")

        assert req.status == "accepted"
        assert req.payment_status == "unpaid"
        assert stock_service.query(StockKey.raw_material("oak timber")) == 40
        lots = stock_service.list_stock("raw_material")
        assert lots[0].source_request_id == req.id

    def test_rejected_alias(self, db_session):
        req = _supplied_request()
        req = procurement_service.inventory_decide(req.id, decision="rejected")

        assert req.status == "rejected-by-inventory"
        assert stock_service.query(StockKey.raw_material("Oak Timber")) == 0

    def test_accept_twice_credits_once(self, db_session):
        req = _supplied_request(quantity=10)
        procurement_service.inventory_decide(req.id, decision="accepted")

        with pytest.raises(InvalidStateError):
            procurement_service.inventory_decide(req.id, decision="accepted")
        assert stock_service.query(StockKey.raw_material("Oak Timber")) == 10


class TestSupplyPayment:

    def test_pay_accepted_supply(self, db_session):
        req = _supplied_request(quantity=100, unit_cost_cents=50)
        procurement_service.inventory_decide(req.id, decision="accepted")

        req = procurement_service.pay(req.id, payment_code="A2B3CDEFGH")

        assert req.payment_status == "paid"
        assert req.amount_paid_cents == 5000
        assert req.payment_code == "A2B3CDEFGH"
        assert req.payment_date is not None

    def test_bad_code_rejected_before_state_check(self, db_session):
        with pytest.raises(InvalidPaymentCodeError):
            procurement_service.pay(999, payment_code="short")

    def test_cannot_pay_unaccepted(self, db_session):
        req = _supplied_request()
        with pytest.raises(InvalidStateError):
            procurement_service.pay(req.id, payment_code="A2B3CDEFGH")

    def test_cannot_pay_twice(self, db_session):
        req = _supplied_request()
        procurement_service.inventory_decide(req.id, decision="accepted")
        procurement_service.pay(req.id, payment_code="A2B3CDEFGH")

        with pytest.raises(InvalidStateError, match="already paid"):
            procurement_service.pay(req.id, payment_code="B2C3DEFGHI")

    def test_supply_receipt_requires_payment(self, db_session):
        req = _supplied_request(quantity=100, unit_cost_cents=50)
        procurement_service.inventory_decide(req.id, decision="accepted")

        with pytest.raises(InvalidStateError):
            receipt_service.build_supply_receipt(req.id)

        procurement_service.pay(req.id, payment_code="A2B3CDEFGH")
        receipt = receipt_service.build_supply_receipt(req.id)
        assert receipt["total_cents"] == 5000
        assert receipt["lines"][0]["subtotal_cents"] == 5000

    def test_list_unpaid(self, db_session):
        paid = _supplied_request()
        procurement_service.inventory_decide(paid.id, decision="accepted")
        procurement_service.pay(paid.id, payment_code="A2B3CDEFGH")
        unpaid = _supplied_request()
        procurement_service.inventory_decide(unpaid.id, decision="accepted")

        rows = procurement_service.list_requests(status="accepted", payment_status="unpaid")
        assert [r.id for r in rows] == [unpaid.id]
