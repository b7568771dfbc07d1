from core.extensions import db
from core.imports import datetime
from models.statuses import OrderStatus, PaymentStatus, SessionState


class Order(db.Model):
    __tablename__ = "Donhang"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), unique=True, nullable=False, index=True)  # shown to the buyer

    customer_id = db.Column(db.Integer, db.ForeignKey("Khachhang.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shop.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("Product.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)  # snapshot at order time
    total_cost = db.Column(db.Integer, nullable=False)
    ship_fee = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(50), nullable=False, default=OrderStatus.AWAITING_CONFIRMATION.value)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)
    address = db.Column(db.String(500), nullable=False)

    rating = db.Column(db.Integer)
    rating_content = db.Column(db.Text)
    reason_cancel = db.Column(db.String(500))

    shipment_label = db.Column(db.String(100))  # carrier tracking label

    payment_session_id = db.Column(db.Integer, db.ForeignKey("payment_session.id"), nullable=True)

    order_time = db.Column(db.DateTime, default=datetime.utcnow)
    update_time = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = db.relationship("Product")
    shop = db.relationship("Shop")
    customer = db.relationship("Customer", backref="orders")

    __table_args__ = (db.CheckConstraint("quantity > 0", name="ck_order_quantity_positive"),)

    def to_dict(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_cost": self.total_cost,
            "ship_fee": self.ship_fee,
            "payment_method": self.payment_method,
            "status": self.status,
            "payment_status": self.payment_status,
            "address": self.address,
            "rating": self.rating,
            "rating_content": self.rating_content,
            "reason_cancel": self.reason_cancel,
            "shipment_label": self.shipment_label,
            "order_time": self.order_time.isoformat() if self.order_time else None,
            "update_time": self.update_time.isoformat() if self.update_time else None,
        }


class PaymentSession(db.Model):
    __tablename__ = "payment_session"

    id = db.Column(db.Integer, primary_key=True)
    order_code = db.Column(db.Integer, unique=True, nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("Khachhang.id"), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(100), nullable=False)
    checkout_url = db.Column(db.String(1000))
    state = db.Column(db.String(20), nullable=False, default=SessionState.CREATED.value)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    closed_at = db.Column(db.DateTime)

    orders = db.relationship("Order", backref="payment_session", order_by="Order.id")

    @property
    def is_open(self):
        return SessionState(self.state).is_open

    def to_dict(self):
        return {
            "order_code": self.order_code,
            "amount": self.amount,
            "checkout_url": self.checkout_url,
            "state": self.state,
            "order_ids": [o.order_id for o in self.orders],
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
