from core.extensions import db
from core.imports import datetime
from models.statuses import ProductStatus, ShopState

DEFAULT_WEIGHT_GRAMS = 500


class Shop(db.Model):
    __tablename__ = "shop"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    owner_id = db.Column(db.Integer, nullable=True, index=True)

    # pickup origin for shipping quotes
    province = db.Column(db.String(100))
    district = db.Column(db.String(100))
    address = db.Column(db.String(500))
    phone = db.Column(db.String(20))

    status_shop = db.Column(db.Integer, default=ShopState.ACTIVE.value)
    ban_reason = db.Column(db.String(500))
    ban_amount = db.Column(db.Integer)  # days
    ban_day = db.Column(db.DateTime)

    followers = db.Column(db.Integer, default=0)
    rating = db.Column(db.Float, default=0.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def has_location(self):
        return bool(self.province and self.district)


class Product(db.Model):
    __tablename__ = "Product"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    weight = db.Column(db.Integer, nullable=True)  # grams
    stock = db.Column(db.Integer, nullable=False, default=0)
    sold = db.Column(db.Integer, nullable=False, default=0)
    like_count = db.Column(db.Integer, default=0)
    rating = db.Column(db.Float, default=0.0)
    status = db.Column(db.String(50), default=ProductStatus.PENDING_APPROVAL.value)

    shop_id = db.Column(db.Integer, db.ForeignKey("shop.id"), nullable=False)
    shop = db.relationship("Shop", backref="products")

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    @property
    def shipping_weight(self):
        return self.weight or DEFAULT_WEIGHT_GRAMS
