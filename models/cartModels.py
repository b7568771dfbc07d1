from core.extensions import db
from core.imports import datetime


class CartItem(db.Model):
    __tablename__ = "Cart"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("Khachhang.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("Product.id"), nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    added_at = db.Column(db.DateTime, default=datetime.utcnow)

    product = db.relationship("Product")
    customer = db.relationship("Customer", backref=db.backref("cart_items", cascade="all, delete-orphan"))

    __table_args__ = (db.UniqueConstraint("customer_id", "product_id", name="uq_cart_customer_product"),)
