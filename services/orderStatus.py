"""Order fulfillment lifecycle.

Every status change goes through :data:`TRANSITIONS`; an action that is not
listed for the order's current status raises :class:`InvalidTransition` and
leaves the row untouched.
"""
import logging

from core.imports import datetime, func, update
from core.errors import ValidationError, NotFound, Forbidden, InvalidTransition, OutOfStock
from models.orderModels import Order
from models.productModels import Product, Shop
from models.statuses import OrderStatus, PaymentStatus, ProductStatus

logger = logging.getLogger(__name__)

S = OrderStatus

# (action, current status) -> next status
TRANSITIONS = {
    ("cancel", S.AWAITING_CONFIRMATION): S.CANCELLED,
    ("confirm", S.AWAITING_CONFIRMATION): S.PREPARING,
    ("ship", S.PREPARING): S.IN_TRANSIT,
    ("receive", S.IN_TRANSIT): S.RECEIVED,
    ("request_rating", S.IN_TRANSIT): S.AWAITING_RATING,
    ("request_rating", S.RECEIVED): S.AWAITING_RATING,
    ("rate", S.AWAITING_RATING): S.COMPLETED,
    ("cancel_payment", S.AWAITING_CONFIRMATION): S.CANCELLED,
}

ACTION_ACTORS = {
    "cancel": "customer",
    "receive": "customer",
    "rate": "customer",
    "confirm": "shop",
    "ship": "shop",
    "request_rating": "shop",
    "cancel_payment": "payment",
}

CANCEL_REASONS = (
    "Sản phẩm không hợp nhu cầu",
    "Đổi kích cở khác",
    "Không mua nữa",
)
OTHER_REASON = "Lý do khác"


def next_status(action, current):
    try:
        current = OrderStatus(current)
    except ValueError:
        raise InvalidTransition(f"Unknown order status: {current}")
    target = TRANSITIONS.get((action, current))
    if target is None:
        raise InvalidTransition(f"Cannot {action.replace('_', ' ')} an order in status '{current.value}'")
    return target


def allowed_actions(current):
    return sorted(action for action, status in TRANSITIONS if status == OrderStatus(current))


def cancellation_reason(reason, detail=None):
    reason = (reason or "").strip()
    detail = (detail or "").strip()
    if not reason:
        raise ValidationError("Please select a reason for cancellation.")
    if reason == OTHER_REASON:
        if not detail:
            raise ValidationError("Please describe the reason for cancellation.")
        return detail
    return reason


class OrderStatusService:
    def __init__(self, session):
        self.session = session

    def _load(self, order_id):
        order = self.session.query(Order).filter_by(order_id=order_id).first()
        if order is None:
            raise NotFound("Order not found")
        return order

    def _owned(self, order_id, role, actor_id):
        order = self._load(order_id)
        owner = order.customer_id if role == "customer" else order.shop_id
        if owner != actor_id:
            raise Forbidden("Order does not belong to you")
        return order

    def _apply(self, order, action):
        order.status = next_status(action, order.status).value
        order.update_time = datetime.utcnow()
        return order

    def cancel(self, order_id, customer_id, reason, detail=None):
        reason = cancellation_reason(reason, detail)
        order = self._owned(order_id, "customer", customer_id)
        self._apply(order, "cancel")
        order.reason_cancel = reason
        self.session.commit()
        logger.info("Order %s cancelled by customer %s", order_id, customer_id)
        return order

    def confirm(self, order_id, shop_id):
        """Confirm and hand to carrier: takes the stock and moves the order to preparing."""
        order = self._owned(order_id, "shop", shop_id)
        target = next_status("confirm", order.status)

        # a concurrent confirm may have moved the row since it was read
        moved = self.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.AWAITING_CONFIRMATION.value)
            .values(status=target.value, update_time=datetime.utcnow()),
            execution_options={"synchronize_session": "fetch"},
        )
        if moved.rowcount == 0:
            self.session.rollback()
            raise InvalidTransition(f"Order {order_id} is no longer awaiting confirmation")

        taken = self.session.execute(
            update(Product)
            .where(Product.id == order.product_id, Product.stock >= order.quantity)
            .values(stock=Product.stock - order.quantity, sold=Product.sold + order.quantity),
            execution_options={"synchronize_session": "fetch"},
        )
        if taken.rowcount == 0:
            self.session.rollback()
            raise OutOfStock(f"Not enough stock to fulfil order {order_id}")

        self.session.execute(
            update(Product)
            .where(Product.id == order.product_id, Product.stock == 0)
            .values(status=ProductStatus.OUT_OF_STOCK.value),
            execution_options={"synchronize_session": "fetch"},
        )
        self.session.commit()
        logger.info("Order %s confirmed by shop %s", order_id, shop_id)
        return order

    def ship(self, order_id, shop_id):
        order = self._apply(self._owned(order_id, "shop", shop_id), "ship")
        self.session.commit()
        return order

    def receive(self, order_id, customer_id):
        order = self._apply(self._owned(order_id, "customer", customer_id), "receive")
        self.session.commit()
        return order

    def request_rating(self, order_id, shop_id):
        order = self._apply(self._owned(order_id, "shop", shop_id), "request_rating")
        self.session.commit()
        return order

    def rate(self, order_id, customer_id, rating, comment):
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Please select a rating between 1 and 5.")
        comment = (comment or "").strip()
        if not comment:
            raise ValidationError("Please select a rating and provide a comment.")

        order = self._owned(order_id, "customer", customer_id)
        next_status("rate", order.status)

        prior_sum, prior_count = (
            self.session.query(func.coalesce(func.sum(Order.rating), 0), func.count(Order.id))
            .filter(Order.product_id == order.product_id, Order.status == OrderStatus.COMPLETED.value)
            .one()
        )
        average = (prior_sum + rating) / (prior_count + 1)

        self._apply(order, "rate")
        order.rating = rating
        order.rating_content = comment

        product = order.product
        product.rating = average
        self.session.flush()
        self._refresh_shop_rating(product.shop_id)

        self.session.commit()
        return order

    def _refresh_shop_rating(self, shop_id):
        shop = self.session.get(Shop, shop_id)
        if shop is None:
            return
        mean = (
            self.session.query(func.avg(Product.rating))
            .filter(Product.shop_id == shop_id, Product.rating > 0)
            .scalar()
        )
        shop.rating = float(mean or 0)

    def mark_paid(self, orders):
        for order in orders:
            order.payment_status = PaymentStatus.PAID.value
            order.update_time = datetime.utcnow()

    def cancel_for_payment(self, orders, reason, payment_status):
        """Cancel the orders of a failed checkout; orders the shop already took keep their status."""
        for order in orders:
            order.payment_status = payment_status.value
            try:
                self._apply(order, "cancel_payment")
            except InvalidTransition:
                logger.warning("Order %s is '%s'; payment closed without cancelling it",
                               order.order_id, order.status)
                continue
            order.reason_cancel = reason
