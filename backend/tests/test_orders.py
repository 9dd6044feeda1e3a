"""
Order workflow tests: cart snapshots, checkout, payment confirmation,
inventory release, dispatch, feedback and receipts.
"""

import pytest

from eurodoor.errors import (
    InsufficientStockError,
    InvalidInputError,
    InvalidPaymentCodeError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from eurodoor.models import Receipt
from eurodoor.services import order_service, receipt_service, stock_service
from eurodoor.services.stock_service import StockKey

PAY_CODE = "MPE1JF2CTD"


@pytest.fixture
def placed_order(customer, make_product):
    product = make_product("Oak Panel Door", price_cents=10_000, quantity=5)
    order_service.add_to_cart(customer.id, product_id=product.id, quantity=2)
    order = order_service.checkout(customer.id, payment_code=PAY_CODE, amount_paid_cents=20_000)
    return order, product


@pytest.fixture
def released_order(placed_order, finance_manager):
    order, product = placed_order
    order_service.confirm_payment(order.payment.id, employee_id=finance_manager.id)
    order_service.release_order(order.id)
    return order, product


# =============================================================================
# CART AND CHECKOUT
# =============================================================================

class TestCheckout:

    def test_cart_snapshot_survives_price_change(self, db_session, customer, make_product):
        product = make_product(price_cents=10_000)
        order_service.add_to_cart(customer.id, product_id=product.id, quantity=2)
        order_service.update_product_price(product.id, price_cents=15_000)

        order = order_service.checkout(customer.id, payment_code=PAY_CODE, amount_paid_cents=20_000)

        assert order.total_cents == 20_000
        assert order.items[0].price_cents == 10_000
        assert order.status == "placed"
        assert order.payment.status == "paid"
        assert order_service.get_cart(customer.id) is None

    def test_each_add_is_a_separate_line(self, db_session, customer, make_product):
        product = make_product()
        order_service.add_to_cart(customer.id, product_id=product.id, quantity=1)
        cart = order_service.add_to_cart(customer.id, product_id=product.id, quantity=1)

        assert len(cart.items) == 2
        assert cart.total_cents == 20_000

    def test_empty_cart(self, db_session, customer):
        with pytest.raises(InvalidStateError, match="Cart is empty"):
            order_service.checkout(customer.id, payment_code=PAY_CODE, amount_paid_cents=0)

    def test_underpayment_keeps_cart(self, db_session, customer, make_product):
        product = make_product(price_cents=10_000)
        order_service.add_to_cart(customer.id, product_id=product.id, quantity=1)

        with pytest.raises(InvalidInputError):
            order_service.checkout(customer.id, payment_code=PAY_CODE, amount_paid_cents=9_999)

        assert order_service.list_orders(customer_id=customer.id) == []
        assert len(order_service.get_cart(customer.id).items) == 1

    def test_bad_payment_code(self, db_session, customer):
        with pytest.raises(InvalidPaymentCodeError):
            order_service.checkout(customer.id, payment_code="NODIGITSXX", amount_paid_cents=0)

    def test_inactive_product_cannot_be_added(self, db_session, customer, make_product):
        product = make_product(status="inactive")
        with pytest.raises(InvalidStateError):
            order_service.add_to_cart(customer.id, product_id=product.id, quantity=1)
        assert order_service.list_active_products() == []

    def test_unknown_customer(self, db_session, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            order_service.add_to_cart(9999, product_id=product.id, quantity=1)


# =============================================================================
# CONFIRMATION AND RELEASE
# =============================================================================

class TestRelease:

    def test_release_requires_confirmed_payment(self, db_session, placed_order):
        order, product = placed_order

        with pytest.raises(InvalidStateError, match="not been confirmed"):
            order_service.release_order(order.id)
        assert stock_service.query(StockKey.product(product.id)) == 5

    def test_confirmation_queues_and_records_confirmer(self, db_session, placed_order, finance_manager):
        order, _ = placed_order
        assert [o.id for o in order_service.list_orders_awaiting_confirmation()] == [order.id]

        payment = order_service.confirm_payment(order.payment.id, employee_id=finance_manager.id)

        assert payment.status == "confirmed"
        assert payment.confirmed_by_employee_id == finance_manager.id
        assert order_service.list_orders_awaiting_confirmation() == []
        assert [o.id for o in order_service.list_orders_ready_for_release()] == [order.id]

    def test_confirm_twice(self, db_session, placed_order):
        order, _ = placed_order
        order_service.confirm_payment(order.payment.id)
        with pytest.raises(InvalidStateError):
            order_service.confirm_payment(order.payment.id)

    def test_release_deducts_once(self, db_session, released_order):
        order, product = released_order

        assert order_service.get_order(order.id).status == "released"
        assert stock_service.query(StockKey.product(product.id)) == 3

        with pytest.raises(InvalidStateError):
            order_service.release_order(order.id)
        assert stock_service.query(StockKey.product(product.id)) == 3
        assert len(stock_service.list_logs(related_order_id=order.id)) == 1

    def test_shortage_releases_nothing(self, db_session, customer, make_product):
        plenty = make_product("Glass Panel Door", quantity=10)
        scarce = make_product("Steel Security Door", quantity=1)
        order_service.add_to_cart(customer.id, product_id=plenty.id, quantity=2)
        order_service.add_to_cart(customer.id, product_id=scarce.id, quantity=1)
        order_service.add_to_cart(customer.id, product_id=scarce.id, quantity=1)
        order = order_service.checkout(customer.id, payment_code=PAY_CODE, amount_paid_cents=40_000)
        order_service.confirm_payment(order.payment.id)

        with pytest.raises(InsufficientStockError) as exc:
            order_service.release_order(order.id)

        shortages = exc.value.details["shortages"]
        assert [s["title"] for s in shortages] == ["Steel Security Door"]
        assert shortages[0]["requested"] == 2
        assert stock_service.query(StockKey.product(plenty.id)) == 10
        assert order_service.get_order(order.id).status == "placed"


# =============================================================================
# DISPATCH
# =============================================================================

class TestDispatch:

    def test_assign_and_deliver(self, db_session, released_order, driver):
        order, _ = released_order

        dispatch = order_service.assign_driver(order.id, driver_id=driver.id)
        assert order_service.get_order(order.id).status == "shipped"
        assert [d.id for d in order_service.list_dispatches(driver_id=driver.id)] == [dispatch.id]

        dispatch = order_service.mark_delivered(dispatch.id, driver_id=driver.id)
        assert dispatch.status == "delivered"
        assert order_service.get_order(order.id).status == "delivered"

    def test_cannot_assign_unreleased(self, db_session, placed_order, driver):
        order, _ = placed_order
        with pytest.raises(InvalidStateError):
            order_service.assign_driver(order.id, driver_id=driver.id)

    def test_assign_requires_driver_role(self, db_session, released_order, finance_manager):
        order, _ = released_order
        with pytest.raises(UnauthorizedError):
            order_service.assign_driver(order.id, driver_id=finance_manager.id)

    def test_other_driver_cannot_deliver(self, db_session, released_order, driver, make_employee):
        order, _ = released_order
        other = make_employee("Driver")
        dispatch = order_service.assign_driver(order.id, driver_id=driver.id)

        with pytest.raises(UnauthorizedError):
            order_service.mark_delivered(dispatch.id, driver_id=other.id)
        assert order_service.get_order(order.id).status == "shipped"

    def test_inactive_driver_refused(self, db_session, released_order, make_employee):
        order, _ = released_order
        inactive = make_employee("Driver", status="inactive")
        with pytest.raises(UnauthorizedError):
            order_service.assign_driver(order.id, driver_id=inactive.id)


# =============================================================================
# FEEDBACK AND RECEIPTS
# =============================================================================

class TestFeedback:

    def test_owner_only(self, db_session, placed_order, other_customer):
        order, _ = placed_order
        with pytest.raises(UnauthorizedError):
            order_service.submit_feedback(order.id, customer_id=other_customer.id, message="Late")

    def test_reply_once(self, db_session, placed_order, customer, dispatch_manager):
        order, _ = placed_order
        feedback = order_service.submit_feedback(order.id, customer_id=customer.id, message="Great door")
        assert [f.id for f in order_service.list_feedback(unanswered_only=True)] == [feedback.id]

        feedback = order_service.reply_to_feedback(
            feedback.id, dispatch_manager_id=dispatch_manager.id, reply="Thank you"
        )
        assert feedback.reply == "Thank you"
        assert feedback.dispatch_manager_id == dispatch_manager.id

        with pytest.raises(InvalidStateError):
            order_service.reply_to_feedback(feedback.id, dispatch_manager_id=dispatch_manager.id, reply="Again")
        assert order_service.list_feedback(unanswered_only=True) == []


class TestReceipts:

    def test_unconfirmed_order_has_no_receipt(self, db_session, placed_order):
        order, _ = placed_order
        with pytest.raises(InvalidStateError):
            receipt_service.build_order_receipt(order.id)

    def test_receipt_is_issued_once(self, db_session, released_order, customer):
        order, _ = released_order

        first = receipt_service.build_order_receipt(order.id)
        second = receipt_service.build_order_receipt(order.id)

        assert first["receipt_id"] == second["receipt_id"]
        assert db_session.query(Receipt).count() == 1
        assert first["customer"]["email"] == customer.email
        assert first["total_cents"] == 20_000
        assert first["lines"][0]["subtotal_cents"] == 20_000
        assert first["payment"]["code"] == PAY_CODE
