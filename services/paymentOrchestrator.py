import logging

from core.imports import datetime, timedelta, random, urlparse, parse_qsl
from core.errors import ValidationError, NotFound, Forbidden, ExternalServiceError
from models.orderModels import Order, PaymentSession
from models.statuses import OrderStatus, PaymentStatus, PaymentMethod, SessionState
from services.orderStatus import OrderStatusService

logger = logging.getLogger(__name__)

DESCRIPTION = "Thanh toán đơn hàng"
PROVIDER_CANCEL_REASON = "Người dùng hủy thanh toán"
ORDER_CANCEL_REASON = "Hủy thanh toán"
ABANDON_REASON = "Quá hạn thanh toán"

SUCCESS_PATH = "payment-success"
CANCEL_PATH = "payment-cancel"

MAX_ORDER_CODE = 999999


def parse_callback_url(url):
    """Split a redirect or deep-link URL into ``(path, query)``.

    ``myapp://payment-success?success=true`` and
    ``https://host/payment-success?success=true`` both give
    ``("payment-success", {"success": "true"})``.
    """
    parsed = urlparse(url)
    segments = [s for s in parsed.path.split("/") if s]
    path = segments[-1] if segments else parsed.netloc
    return path, dict(parse_qsl(parsed.query))


class PaymentOrchestrator:
    """Drives one gateway checkout per set of orders.

    Session states: Created -> AwaitingRedirect -> Succeeded | Cancelled | Abandoned.
    Both callback channels (deep link and in-browser redirect) end up in
    :meth:`handle_callback`; whichever arrives second finds the session
    closed and changes nothing.
    """

    def __init__(self, session, proxy, statuses=None, timeout_minutes=15, clock=datetime.utcnow):
        self.session = session
        self.proxy = proxy
        self.statuses = statuses or OrderStatusService(session)
        self.timeout = timedelta(minutes=timeout_minutes)
        self.clock = clock

    def _new_order_code(self):
        while True:
            code = random.randint(1, MAX_ORDER_CODE)
            if self.session.query(PaymentSession.id).filter_by(order_code=code).first() is None:
                return code

    def _payable_orders(self, order_ids, customer_id):
        if not order_ids:
            raise ValidationError("order_ids are required")

        wanted = list(dict.fromkeys(order_ids))
        orders = (
            self.session.query(Order)
            .filter(Order.order_id.in_(wanted))
            .order_by(Order.id)
            .all()
        )
        if len(orders) != len(wanted):
            raise NotFound("Order not found")

        for order in orders:
            if order.customer_id != customer_id:
                raise Forbidden("Order does not belong to you")
            if order.payment_method != PaymentMethod.QR.value:
                raise ValidationError(f"Order {order.order_id} is paid on delivery")
            if order.payment_status != PaymentStatus.PENDING.value \
                    or order.status != OrderStatus.AWAITING_CONFIRMATION.value:
                raise ValidationError(f"Order {order.order_id} can no longer be paid")
        return orders

    def start(self, order_ids, customer_id):
        orders = self._payable_orders(order_ids, customer_id)

        existing = {o.payment_session for o in orders if o.payment_session is not None}
        if existing:
            payment = existing.pop()
            if existing or not payment.is_open or {o.id for o in payment.orders} != {o.id for o in orders}:
                raise ValidationError("These orders already have a different payment in progress")
            if self._expired(payment):
                self._abandon(payment)
                raise ValidationError("The payment session has expired")
            if payment.checkout_url:
                # link already issued for this checkout: hand the same one back
                return payment
        else:
            now = self.clock()
            payment = PaymentSession(
                order_code=self._new_order_code(),
                customer_id=customer_id,
                amount=sum(o.total_cost + o.ship_fee for o in orders),
                description=DESCRIPTION,
                state=SessionState.CREATED.value,
                created_at=now,
                expires_at=now + self.timeout,
            )
            self.session.add(payment)
            for order in orders:
                order.payment_session = payment
            self.session.commit()
            logger.info("Payment session %s created for %d order(s)", payment.order_code, len(orders))

        self._request_link(payment)
        return payment

    def _request_link(self, payment):
        payload = {
            "orderCode": payment.order_code,
            "amount": payment.amount,
            "description": payment.description,
            "items": [
                {"name": o.product.name, "quantity": o.quantity, "price": o.unit_price}
                for o in payment.orders
            ],
        }
        try:
            response = self.proxy.create_payment_link(payload)
        except ExternalServiceError:
            logger.error("Payment request failed for session %s", payment.order_code)
            raise

        data = response.get("data") if isinstance(response, dict) else None
        checkout_url = data.get("checkoutUrl") if isinstance(data, dict) else None
        if not checkout_url:
            logger.error("Missing checkout URL for session %s: %s", payment.order_code, response)
            raise ExternalServiceError("Missing checkout URL")

        returned_code = data.get("orderCode")
        try:
            mismatch = returned_code is not None and int(returned_code) != payment.order_code
        except (TypeError, ValueError):
            mismatch = True
        if mismatch:
            logger.warning("Provider answered with order code %s for session %s", returned_code, payment.order_code)

        payment.checkout_url = checkout_url
        payment.state = SessionState.AWAITING_REDIRECT.value
        self.session.commit()

    def find(self, order_code):
        payment = self.session.query(PaymentSession).filter_by(order_code=order_code).first()
        if payment is None:
            raise NotFound("Payment session not found")
        return payment

    def handle_callback(self, path, query, customer_id=None):
        path = (path or "").strip("/").split("/")[-1]
        query = query or {}
        try:
            order_code = int(query.get("orderCode"))
        except (TypeError, ValueError):
            raise ValidationError("orderCode is required")

        payment = self.find(order_code)
        if customer_id is not None and payment.customer_id != customer_id:
            raise Forbidden("Payment does not belong to you")

        if not payment.is_open:
            logger.info("Callback %s for closed session %s ignored", path, order_code)
            return payment
        if self._expired(payment):
            self._abandon(payment)
            return payment

        if path == CANCEL_PATH and query.get("status") == "CANCELLED":
            self._cancel(payment)
        elif path == SUCCESS_PATH and query.get("success") == "true":
            self._succeed(payment)
        else:
            logger.info("Unrecognised payment callback %s %s", path, query)
        return payment

    def handle_callback_url(self, url, customer_id=None):
        path, query = parse_callback_url(url)
        return self.handle_callback(path, query, customer_id=customer_id)

    def _cancel(self, payment):
        try:
            self.proxy.cancel_payment(payment.order_code, PROVIDER_CANCEL_REASON)
        except ExternalServiceError as e:
            logger.error("Cancel failed for session %s: %s", payment.order_code, e)

        self.statuses.cancel_for_payment(payment.orders, ORDER_CANCEL_REASON, PaymentStatus.CANCELLED)
        self._close(payment, SessionState.CANCELLED)
        logger.info("Payment session %s cancelled", payment.order_code)

    def _succeed(self, payment):
        try:
            info = self.proxy.get_payment_info(payment.order_code)
            logger.info("Payment info for session %s: %s", payment.order_code, info)
        except ExternalServiceError as e:
            logger.error("Failed to fetch info for session %s: %s", payment.order_code, e)

        self.statuses.mark_paid(payment.orders)
        self._close(payment, SessionState.SUCCEEDED)
        logger.info("Payment session %s paid", payment.order_code)

    def _abandon(self, payment):
        if payment.checkout_url:
            try:
                self.proxy.cancel_payment(payment.order_code, ABANDON_REASON)
            except ExternalServiceError as e:
                logger.error("Cancel failed for expired session %s: %s", payment.order_code, e)

        self.statuses.cancel_for_payment(payment.orders, ABANDON_REASON, PaymentStatus.ABANDONED)
        self._close(payment, SessionState.ABANDONED)
        logger.info("Payment session %s abandoned", payment.order_code)

    def _close(self, payment, state):
        payment.state = state.value
        payment.closed_at = self.clock()
        self.session.commit()

    def _expired(self, payment):
        return payment.expires_at is not None and self.clock() > payment.expires_at

    def expire_stale(self):
        """Abandon every open session whose deadline has passed; returns the count."""
        open_states = [SessionState.CREATED.value, SessionState.AWAITING_REDIRECT.value]
        stale = (
            self.session.query(PaymentSession)
            .filter(PaymentSession.state.in_(open_states), PaymentSession.expires_at < self.clock())
            .all()
        )
        for payment in stale:
            self._abandon(payment)
        return len(stale)
