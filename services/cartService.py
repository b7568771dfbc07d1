import logging

from core.errors import ValidationError, NotFound
from models.cartModels import CartItem
from models.productModels import Product
from models.userModel import Customer

logger = logging.getLogger(__name__)

MIN_CART_QUANTITY = 1
MAX_CART_QUANTITY = 20


def clamp_quantity(quantity):
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Invalid quantity")
    return min(max(quantity, MIN_CART_QUANTITY), MAX_CART_QUANTITY)


class CartService:
    def __init__(self, session):
        self.session = session

    def _entry(self, customer_id, product_id):
        return (
            self.session.query(CartItem)
            .filter_by(customer_id=customer_id, product_id=product_id)
            .first()
        )

    def add_item(self, customer_id, product_id, quantity=1):
        quantity = clamp_quantity(quantity)

        if self.session.get(Customer, customer_id) is None:
            raise NotFound("Customer not found")
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")

        entry = self._entry(customer_id, product_id)
        new_quantity = quantity + (entry.quantity if entry else 0)

        if new_quantity > product.stock:
            raise ValidationError("Not enough stock available.")
        if new_quantity > MAX_CART_QUANTITY:
            raise ValidationError(f"Cannot add more than {MAX_CART_QUANTITY} items of this product.")

        if entry:
            entry.quantity = new_quantity
        else:
            entry = CartItem(customer_id=customer_id, product_id=product_id, quantity=new_quantity)
            self.session.add(entry)

        self.session.commit()
        return entry

    def list_items(self, customer_id):
        return (
            self.session.query(CartItem)
            .filter_by(customer_id=customer_id)
            .order_by(CartItem.id)
            .all()
        )

    def remove_item(self, customer_id, product_id):
        entry = self._entry(customer_id, product_id)
        if entry is None:
            raise NotFound("Cart item not found")
        self.session.delete(entry)
        self.session.commit()

    def clear_products(self, customer_id, product_ids):
        """Delete the cart entries for the given products; returns how many went."""
        if not product_ids:
            return 0
        deleted = (
            self.session.query(CartItem)
            .filter(CartItem.customer_id == customer_id, CartItem.product_id.in_(product_ids))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def selection(self, customer_id, product_ids=None):
        """Checkout lines for the selected cart entries plus the buyer's delivery address."""
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise NotFound("Customer not found")

        entries = self.list_items(customer_id)
        if product_ids is not None:
            wanted = {int(pid) for pid in product_ids}
            entries = [e for e in entries if e.product_id in wanted]

        lines = [
            {
                "product_id": e.product_id,
                "shop_id": e.product.shop_id,
                "quantity": e.quantity,
                "price": e.product.price,
            }
            for e in entries
            if e.product is not None
        ]
        return {"items": lines, "address": customer.full_address}
