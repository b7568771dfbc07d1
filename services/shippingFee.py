import logging

from core.errors import StorefrontError, NotFound
from models.productModels import Product
from models.userModel import Customer

logger = logging.getLogger(__name__)

TRANSPORT = "road"
DELIVER_OPTION = "none"


class ShippingFeeResolver:
    """Quotes a carrier fee per product through the ``/GHTKfee`` proxy.

    Items are processed one at a time in the order given. A failure on one
    item (missing rows, missing addresses, carrier error, bad payload) gives
    that product a fee of 0 and the batch carries on.
    """

    def __init__(self, session, proxy):
        self.session = session
        self.proxy = proxy

    def resolve(self, items, customer_id):
        customer = self.session.get(Customer, customer_id)
        fees = {}
        for item in items:
            product_id = item.get("product_id") if isinstance(item, dict) else None
            try:
                product_id = int(product_id)
                fees[product_id] = self.quote(product_id, item.get("quantity", 1), customer)
            except (StorefrontError, KeyError, TypeError, ValueError) as e:
                logger.warning("Shipping fee lookup failed for product %s: %s", product_id, e)
                fees[product_id] = 0
        return fees

    def quote(self, product_id, quantity, customer):
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")

        shop = product.shop
        if shop is None or not shop.has_location:
            raise NotFound(f"Shop address missing for product {product_id}")
        if customer is None or not customer.has_location:
            raise NotFound("Customer address missing")

        params = build_fee_params(product, shop, customer, quantity)
        data = self.proxy.get_shipment_fee(params)
        return int(data["fee"]["fee"])

    @staticmethod
    def total(fees, product_ids=None):
        if product_ids is None:
            return sum(fees.values())
        return sum(fees.get(int(pid), 0) for pid in product_ids)


def build_fee_params(product, shop, customer, quantity=1):
    quantity = max(int(quantity or 1), 1)
    return {
        "pick_province": shop.province,
        "pick_district": shop.district,
        "province": customer.province,
        "district": customer.district,
        "address": customer.address,
        "weight": product.shipping_weight * quantity,
        "value": (product.price or 0) * quantity,
        "transport": TRANSPORT,
        "deliver_option": DELIVER_OPTION,
        "tags": [],
    }
