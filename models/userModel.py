from core.extensions import db
from core.imports import datetime


class Customer(db.Model):
    __tablename__ = "Khachhang"

    id = db.Column(db.Integer, primary_key=True)  # MaKH
    user_id = db.Column(db.String(100), unique=True, nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), unique=True, nullable=True)
    phone = db.Column(db.String(20), nullable=True)

    # drop-off destination for shipping quotes
    province = db.Column(db.String(100))
    district = db.Column(db.String(100))
    address = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def has_location(self):
        return bool(self.province and self.district and self.address)

    @property
    def full_address(self):
        parts = [self.address, self.district, self.province]
        return ", ".join(p for p in parts if p)
