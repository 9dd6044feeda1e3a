# Overview: Catalog, cart, checkout, payment confirmation, release, dispatch and feedback.

"""
EuroDoor Order & Payment Workflow

    Cart --checkout--> Order(placed) + Payment(paid)
    Payment: paid -> confirmed                       (finance)
    Order:   placed -> released -> shipped -> delivered
             release needs a confirmed payment and debits catalog stock
             shipped when a driver is assigned (Dispatch created)
             delivered when that driver reports delivery

Prices are snapshotted onto cart lines at add time and carried onto order
lines at checkout; totals are never recomputed from the live catalog.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, InvalidInputError, InvalidStateError, NotFoundError, UnauthorizedError
from ..extensions import db
from ..models import Cart, CartItem, Dispatch, Feedback, Order, OrderItem, Payment, Product, Receipt
from ..models.directory import ROLE_DISPATCH_MANAGER, ROLE_DRIVER, ROLE_FINANCE_MANAGER
from ..time_utils import utcnow
from ..validation import coerce_int, require_customer_payment_code, require_price_cents, require_text
from . import lifecycle_service as lc
from .concurrency import lock_for_update, run_with_retry
from .directory_service import find_active_employee, get_customer
from .stock_service import StockKey, credit, debit

PRODUCT_ACTIVE = "active"
PRODUCT_INACTIVE = "inactive"


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
# CATALOG
# =============================================================================

def create_product(
    *,
    title: Any,
    price_cents: Any,
    description: Any = None,
    image_url: Any = None,
    quantity: Any = 0,
    status: str = PRODUCT_ACTIVE,
) -> Product:
    title = require_text(title, "title", max_length=255)
    price_cents = require_price_cents(price_cents)
    quantity = coerce_int(quantity, "quantity", minimum=0)
    if status not in (PRODUCT_ACTIVE, PRODUCT_INACTIVE):
        raise InvalidInputError(f"Invalid product status '{status}'")

    def _op():
        product = Product(
            title=title,
            description=(str(description).strip() if description else None),
            image_url=(str(image_url).strip() if image_url else None),
            price_cents=price_cents,
            quantity=0,
            status=status,
        )
        db.session.add(product)
        db.session.flush()
        if quantity:
            credit(StockKey.product(product.id), quantity, source_type="product", source_id=product.id,
                   note="Opening stock")
        db.session.commit()
        current_app.logger.info("Product %s created: %s", product.id, title)
        return product

    return run_with_retry(_op)


def restock_product(product_id: int, *, quantity: Any, note: str | None = None) -> Product:
    quantity = coerce_int(quantity, "quantity", minimum=1)

    def _op():
        product = credit(StockKey.product(product_id), quantity, source_type="product", source_id=product_id,
                         note=note or "Restock")
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product_price(product_id: int, *, price_cents: Any) -> Product:
    price_cents = require_price_cents(price_cents)

    def _op():
        product = _locked(Product, product_id, "Product")
        product.price_cents = price_cents
        db.session.commit()
        return product

    return run_with_retry(_op)


def list_active_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.status == PRODUCT_ACTIVE)
        .order_by(Product.title.asc(), Product.id.asc())
        .all()
    )


# =============================================================================
# CART / CHECKOUT
# =============================================================================

def get_cart(customer_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(customer_id=customer_id).first()


def add_to_cart(customer_id: Any, *, product_id: Any, quantity: Any) -> Cart:
    """Each call appends a new line carrying a snapshot of the product as it is now."""
    product_id = coerce_int(product_id, "product_id")
    quantity = coerce_int(quantity, "quantity", minimum=1)

    def _op():
        customer = get_customer(customer_id)
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if product.status != PRODUCT_ACTIVE:
            raise InvalidStateError(f"Product {product_id} is not available", details={"status": product.status})

        cart = lock_for_update(db.session.query(Cart).filter_by(customer_id=customer.id)).first()
        if cart is None:
            cart = Cart(customer_id=customer.id)
            db.session.add(cart)

        cart.items.append(CartItem(
            product_id=product.id,
            quantity=quantity,
            title=product.title,
            description=product.description,
            image_url=product.image_url,
            price_cents=product.price_cents,
        ))
        cart.updated_at = utcnow()
        db.session.commit()
        return cart

    return run_with_retry(_op, retry_on=(IntegrityError,))


def checkout(customer_id: Any, *, payment_code: Any, amount_paid_cents: Any) -> Order:
    """
    Turn the customer's cart into a placed order with a paid payment.

    Order, payment and cart deletion commit together; any failure leaves
    the cart untouched.
    """
    payment_code = require_customer_payment_code(payment_code)
    amount_paid_cents = coerce_int(amount_paid_cents, "amount_paid_cents", minimum=0)

    def _op():
        customer = get_customer(customer_id)
        cart = lock_for_update(db.session.query(Cart).filter_by(customer_id=customer.id)).first()
        if cart is None or not cart.items:
            raise InvalidStateError("Cart is empty")

        total = cart.total_cents
        if amount_paid_cents < total:
            raise InvalidInputError(
                f"Amount paid ({amount_paid_cents}) is less than order total ({total})",
                details={"amount_paid_cents": amount_paid_cents, "total_cents": total},
            )

        order = Order(customer_id=customer.id, total_cents=total, status=lc.ORDER_PLACED)
        for line in cart.items:
            order.items.append(OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                title=line.title,
                description=line.description,
                image_url=line.image_url,
                price_cents=line.price_cents,
            ))
        db.session.add(order)
        db.session.flush()

        db.session.add(Payment(
            order_id=order.id,
            customer_id=customer.id,
            code=payment_code,
            amount_paid_cents=amount_paid_cents,
            status=lc.ORDER_PAYMENT_PAID,
        ))
        db.session.delete(cart)
        db.session.commit()
        current_app.logger.info("Order %s placed by customer %s (%s cents)", order.id, customer.id, total)
        return order

    return run_with_retry(_op)


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def list_orders(*, customer_id: int | None = None, status: str | None = None) -> list[Order]:
    q = db.session.query(Order)
    if customer_id is not None:
        q = q.filter(Order.customer_id == customer_id)
    if status:
        lc.ORDER.validate_status(status)
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


# =============================================================================
# FINANCE
# =============================================================================

def list_orders_awaiting_confirmation() -> list[Order]:
    """Placed orders whose payment is captured but not yet confirmed."""
    return (
        db.session.query(Order)
        .join(Payment, Payment.order_id == Order.id)
        .filter(Order.status == lc.ORDER_PLACED, Payment.status == lc.ORDER_PAYMENT_PAID)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def list_payments(*, status: str | None = None) -> list[Payment]:
    q = db.session.query(Payment)
    if status:
        lc.ORDER_PAYMENT.validate_status(status)
        q = q.filter(Payment.status == status)
    return q.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def confirm_payment(payment_id: int, *, employee_id: Any = None) -> Payment:
    """paid -> confirmed. The order itself stays placed until inventory releases it."""
    def _op():
        confirmer = None
        if employee_id is not None:
            confirmer = find_active_employee(role=ROLE_FINANCE_MANAGER, employee_id=employee_id)
        payment = _locked(Payment, payment_id, "Payment")
        _move(lc.ORDER_PAYMENT, payment, lc.ORDER_PAYMENT_CONFIRMED)
        payment.confirmed_at = utcnow()
        payment.confirmed_by_employee_id = confirmer.id if confirmer else None
        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# INVENTORY RELEASE
# =============================================================================

def list_orders_ready_for_release() -> list[Order]:
    return (
        db.session.query(Order)
        .join(Payment, Payment.order_id == Order.id)
        .filter(Order.status == lc.ORDER_PLACED, Payment.status == lc.ORDER_PAYMENT_CONFIRMED)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def release_order(order_id: int) -> Order:
    """
    Inventory releases a paid order for dispatch.

    Every line is checked against catalog stock before anything is debited,
    so either all lines are drawn down or none are.
    """
    def _op():
        order = _locked(Order, order_id, "Order")
        lc.ORDER.require_transition(order.status, lc.ORDER_RELEASED)

        payment = order.payment
        if payment is None or payment.status != lc.ORDER_PAYMENT_CONFIRMED:
            raise InvalidStateError(
                f"Order {order.id} payment has not been confirmed",
                details={"payment_status": payment.status if payment else None},
            )

        needed: OrderedDict[int, int] = OrderedDict()
        for line in order.items:
            needed[line.product_id] = needed.get(line.product_id, 0) + int(line.quantity)

        shortages = []
        for product_id, qty in needed.items():
            product = _locked(Product, product_id, "Product")
            if int(product.quantity) <= 0 or int(product.quantity) < qty:
                shortages.append({
                    "product_id": product.id,
                    "title": product.title,
                    "available": int(product.quantity),
                    "requested": qty,
                })
        if shortages:
            names = ", ".join(s["title"] for s in shortages)
            raise InsufficientStockError(
                f"Insufficient stock to release order {order.id}: {names}",
                details={"shortages": shortages},
            )

        for line in order.items:
            debit(
                StockKey.product(line.product_id),
                line.quantity,
                related_order_id=order.id,
                source_type="order",
                source_id=order.id,
            )

        _move(lc.ORDER, order, lc.ORDER_RELEASED)
        order.released_at = utcnow()
        db.session.commit()
        return order

    return run_with_retry(_op)


# =============================================================================
# DISPATCH / DELIVERY
# =============================================================================

def assign_driver(order_id: int, *, driver_id: Any) -> Dispatch:
    def _op():
        driver = find_active_employee(role=ROLE_DRIVER, employee_id=driver_id)
        order = _locked(Order, order_id, "Order")
        lc.ORDER.require_transition(order.status, lc.ORDER_SHIPPED)

        dispatch = Dispatch(order_id=order.id, driver_id=driver.id, status=lc.DISPATCH_ASSIGNED)
        db.session.add(dispatch)
        _move(lc.ORDER, order, lc.ORDER_SHIPPED)
        order.shipped_at = utcnow()
        db.session.commit()
        current_app.logger.info("Order %s assigned to driver %s", order.id, driver.id)
        return dispatch

    return run_with_retry(_op)


def list_dispatches(*, driver_id: int | None = None, status: str | None = None) -> list[Dispatch]:
    q = db.session.query(Dispatch)
    if driver_id is not None:
        q = q.filter(Dispatch.driver_id == driver_id)
    if status:
        lc.DISPATCH.validate_status(status)
        q = q.filter(Dispatch.status == status)
    return q.order_by(Dispatch.created_at.desc(), Dispatch.id.desc()).all()


def mark_delivered(dispatch_id: int, *, driver_id: Any) -> Dispatch:
    """Only the driver the dispatch was assigned to may report delivery."""
    def _op():
        driver = find_active_employee(role=ROLE_DRIVER, employee_id=driver_id)
        dispatch = _locked(Dispatch, dispatch_id, "Dispatch")
        if dispatch.driver_id != driver.id:
            raise UnauthorizedError(
                f"Dispatch {dispatch.id} is not assigned to driver {driver.id}",
                details={"dispatch_driver_id": dispatch.driver_id},
            )
        order = _locked(Order, dispatch.order_id, "Order")

        _move(lc.DISPATCH, dispatch, lc.DISPATCH_DELIVERED)
        _move(lc.ORDER, order, lc.ORDER_DELIVERED)
        now = utcnow()
        dispatch.delivered_at = now
        order.delivered_at = now
        db.session.commit()
        return dispatch

    return run_with_retry(_op)


# =============================================================================
# FEEDBACK
# =============================================================================

def submit_feedback(order_id: int, *, customer_id: Any, message: Any) -> Feedback:
    message = require_text(message, "message")

    def _op():
        customer = get_customer(customer_id)
        order = get_order(order_id)
        if order.customer_id != customer.id:
            raise UnauthorizedError(f"Order {order.id} does not belong to customer {customer.id}")
        feedback = Feedback(order_id=order.id, customer_id=customer.id, message=message)
        db.session.add(feedback)
        db.session.commit()
        return feedback

    return run_with_retry(_op)


def list_feedback(*, unanswered_only: bool = False) -> list[Feedback]:
    q = db.session.query(Feedback)
    if unanswered_only:
        q = q.filter(Feedback.reply.is_(None))
    return q.order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()


def reply_to_feedback(feedback_id: int, *, dispatch_manager_id: Any, reply: Any) -> Feedback:
    reply = require_text(reply, "reply")

    def _op():
        manager = find_active_employee(role=ROLE_DISPATCH_MANAGER, employee_id=dispatch_manager_id)
        feedback = _locked(Feedback, feedback_id, "Feedback")
        if feedback.reply is not None:
            raise InvalidStateError(f"Feedback {feedback.id} already has a reply")
        feedback.reply = reply
        feedback.dispatch_manager_id = manager.id
        feedback.replied_at = utcnow()
        db.session.commit()
        return feedback

    return run_with_retry(_op)


# =============================================================================
# RECEIPTS
# =============================================================================

def get_order_receipt(order_id: int) -> Receipt:
    """Returns the order's receipt, issuing it on first request once payment is confirmed."""
    def _op():
        order = get_order(order_id)
        payment = order.payment
        if payment is None or payment.status != lc.ORDER_PAYMENT_CONFIRMED:
            raise InvalidStateError(f"Order {order.id} payment has not been confirmed")

        receipt = db.session.query(Receipt).filter_by(order_id=order.id).first()
        if receipt is None:
            receipt = Receipt(
                customer_id=order.customer_id,
                order_id=order.id,
                payment_id=payment.id,
                amount_paid_cents=payment.amount_paid_cents,
                code=payment.code,
            )
            db.session.add(receipt)
            db.session.commit()
            current_app.logger.info("Receipt %s issued for order %s", receipt.id, order.id)
        return receipt

    return run_with_retry(_op, retry_on=(IntegrityError,))
