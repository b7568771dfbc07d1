import logging

from core.imports import secrets, datetime, SQLAlchemyError
from core.errors import StorefrontError, ValidationError, NotFound
from models.orderModels import Order
from models.productModels import Product
from models.userModel import Customer
from models.statuses import OrderStatus, PaymentStatus, PaymentMethod
from services.cartService import CartService

logger = logging.getLogger(__name__)

ORDER_ID_LENGTH = 11


def generate_order_id(length=ORDER_ID_LENGTH):
    return secrets.token_hex((length + 1) // 2)[:length]


def parse_payment_method(value):
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Invalid payment method: {value}")


def validate_fees(fees):
    """Fees keyed by product id; each must be a non-negative whole number of VND."""
    if fees is None:
        return {}
    if not isinstance(fees, dict):
        raise ValidationError("fees must map product ids to amounts")

    checked = {}
    for product_id, fee in fees.items():
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id in fees: {product_id}")
        if fee is None:
            fee = 0
        if isinstance(fee, bool) or not isinstance(fee, int) or fee < 0:
            raise ValidationError(f"Invalid shipping fee for product {product_id}")
        checked[product_id] = fee
    return checked


class OrderWriter:
    """Writes one order row per checkout line, then clears those lines from the cart."""

    def __init__(self, session, cart=None):
        self.session = session
        self.cart = cart or CartService(session)

    def _new_order_id(self, taken):
        while True:
            order_id = generate_order_id()
            if order_id in taken:
                continue
            if self.session.query(Order.id).filter_by(order_id=order_id).first() is None:
                taken.add(order_id)
                return order_id

    def _validate_lines(self, lines):
        if not lines:
            raise ValidationError("No items in order")

        checked = []
        for line in lines:
            try:
                product_id = int(line["product_id"])
                quantity = int(line.get("quantity", 0))
            except (KeyError, TypeError, ValueError):
                raise ValidationError("Each item needs a product_id and a quantity")
            if quantity <= 0:
                raise ValidationError(f"Quantity for product {product_id} must be greater than 0")

            product = self.session.get(Product, product_id)
            if product is None:
                raise NotFound(f"Product with id {product_id} not found")
            checked.append((product, quantity))
        return checked

    def place(self, customer_id, lines, fees, payment_method, address):
        method = parse_payment_method(payment_method)
        if not address:
            raise ValidationError("A delivery address is required")
        if self.session.get(Customer, customer_id) is None:
            raise NotFound("Customer not found")

        checked = self._validate_lines(lines)
        fees = validate_fees(fees)

        now = datetime.utcnow()
        taken = set()
        orders = []
        try:
            for product, quantity in checked:
                order = Order(
                    order_id=self._new_order_id(taken),
                    customer_id=customer_id,
                    shop_id=product.shop_id,
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                    total_cost=product.price * quantity,
                    ship_fee=fees.get(product.id, 0),
                    payment_method=method.value,
                    status=OrderStatus.AWAITING_CONFIRMATION.value,
                    payment_status=PaymentStatus.PENDING.value,
                    address=address,
                    order_time=now,
                    update_time=now,
                )
                self.session.add(order)
                orders.append(order)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Error placing order for customer %s", customer_id)
            raise

        logger.info("Placed %d order(s) for customer %s", len(orders), customer_id)
        self._clear_cart(customer_id, [o.product_id for o in orders])

        goods_total = sum(o.total_cost for o in orders)
        shipping_total = sum(o.ship_fee for o in orders)
        return {
            "order_ids": [o.order_id for o in orders],
            "orders": orders,
            "goods_total": goods_total,
            "shipping_total": shipping_total,
            "total": goods_total + shipping_total,
            "payment_method": method.value,
            "next_step": "confirmation" if method is PaymentMethod.CASH_ON_DELIVERY else "payment",
        }

    def _clear_cart(self, customer_id, product_ids):
        # the orders are already committed, so a failure here only leaves stale cart rows
        try:
            self.cart.clear_products(customer_id, product_ids)
        except (SQLAlchemyError, StorefrontError) as e:
            self.session.rollback()
            logger.warning("Error clearing cart for customer %s: %s", customer_id, e)

    def find(self, order_id):
        order = self.session.query(Order).filter_by(order_id=order_id).first()
        if order is None:
            raise NotFound("Order not found")
        return order
