"""Hands a confirmed order to GHTK through the ``/GHTK`` proxy."""
import logging

from core.errors import ExternalServiceError
from models.statuses import PaymentMethod

logger = logging.getLogger(__name__)

DEFAULT_HAMLET = "Khác"
TRANSPORT = "road"


def build_shipment_payload(order):
    product = order.product
    shop = order.shop
    customer = order.customer
    cash_on_delivery = order.payment_method == PaymentMethod.CASH_ON_DELIVERY.value

    return {
        "products": [{
            "name": product.name,
            "weight": product.shipping_weight / 1000,  # kg
            "quantity": order.quantity,
            "product_code": str(product.id),
        }],
        "order": {
            "id": order.order_id,
            "pick_name": shop.name,
            "pick_address": shop.address,
            "pick_province": shop.province,
            "pick_district": shop.district,
            "pick_tel": shop.phone,
            "name": customer.name,
            "tel": customer.phone,
            "address": order.address,
            "province": customer.province,
            "district": customer.district,
            "hamlet": DEFAULT_HAMLET,
            "is_freeship": "0",
            "pick_money": order.total_cost + order.ship_fee if cash_on_delivery else 0,
            "value": order.total_cost,
            "transport": TRANSPORT,
        },
    }


class ShipmentDispatcher:
    def __init__(self, session, proxy):
        self.session = session
        self.proxy = proxy

    def dispatch(self, order):
        """Create the carrier order and keep its label.

        Best-effort: the order is already confirmed, so a carrier failure is
        logged and ``None`` is returned.
        """
        try:
            response = self.proxy.create_shipment(build_shipment_payload(order))
        except ExternalServiceError as e:
            logger.error("Shipment request failed for order %s: %s", order.order_id, e)
            return None

        details = response.get("order") if isinstance(response, dict) else None
        label = details.get("label") if isinstance(details, dict) else None
        if not label or not response.get("success"):
            logger.warning("GHTK did not accept order %s: %s", order.order_id, response)
            return None

        order.shipment_label = label
        self.session.commit()
        logger.info("Order %s handed to GHTK as %s", order.order_id, label)
        return label
