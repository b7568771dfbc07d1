import pytest

from core.config import Config
from core.extensions import db
from core.auth import issue_token
from core.errors import ExternalServiceError
from main import create_app
from models.productModels import Shop, Product
from models.userModel import Customer
from models.orderModels import Order
from models.statuses import ProductStatus, OrderStatus, PaymentMethod


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    PROXY_BASE_URL = "http://proxy.test"
    GHTK_TOKEN = "ghtk-token"
    GHTK_CLIENT_SOURCE = "S000001"
    PAYOS_CLIENT_ID = "client-id"
    PAYOS_API_KEY = "api-key"
    PAYOS_CHECKSUM_KEY = "checksum-key"
    PAYOS_REDIRECT_DOMAIN = "https://shop.test"
    PAYMENT_SESSION_TIMEOUT_MINUTES = 15


class FakeProxy:
    """Stands in for ProxyClient; records every call."""

    def __init__(self, fees=None, checkout_url="https://pay.payos.vn/web/abc"):
        self.fees = fees or {}
        self.checkout_url = checkout_url
        self.calls = []
        self.fail_payment_link = False
        self.fail_cancel = False
        self.fail_info = False
        self.fail_shipment = False
        self.shipment_response = {"success": True, "order": {"label": "S1.A1.17373471"}}

    def get_shipment_fee(self, params):
        self.calls.append(("fee", params))
        # responses are keyed by the declared value (price x quantity)
        response = self.fees.get(params["value"])
        if response is None:
            raise ExternalServiceError("carrier error")
        return response

    def create_shipment(self, payload):
        self.calls.append(("shipment", payload))
        if self.fail_shipment:
            raise ExternalServiceError("Could not reach GHTK")
        return self.shipment_response

    def create_payment_link(self, payload):
        self.calls.append(("link", payload))
        if self.fail_payment_link:
            raise ExternalServiceError("Payment request failed")
        return {"data": {"checkoutUrl": self.checkout_url, "orderCode": payload["orderCode"]}}

    def cancel_payment(self, payment_id, reason):
        self.calls.append(("cancel", payment_id, reason))
        if self.fail_cancel:
            raise ExternalServiceError("cancel failed")
        return {"code": "00"}

    def get_payment_info(self, payment_id):
        self.calls.append(("info", payment_id))
        if self.fail_info:
            raise ExternalServiceError("info failed")
        return {"data": {"status": "PAID"}}

    def calls_of(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def shop(session):
    shop = Shop(name="Shop A", province="Hà Nội", district="Quận Ba Đình", address="1 Điện Biên Phủ")
    session.add(shop)
    session.commit()
    return shop


@pytest.fixture
def customer(session):
    customer = Customer(name="Khách A", email="a@test.com", province="TP. Hồ Chí Minh",
                        district="Quận 1", address="12 Lê Lợi")
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture
def make_product(session, shop):
    def _make(name="Áo thun", price=100000, stock=10, weight=None, **kwargs):
        product = Product(name=name, price=price, stock=stock, weight=weight, shop_id=kwargs.pop("shop_id", shop.id),
                          status=ProductStatus.IN_STOCK.value, **kwargs)
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture
def make_order(session, customer):
    counter = {"n": 0}

    def _make(product, quantity=1, status=OrderStatus.AWAITING_CONFIRMATION, rating=None,
              payment_method=PaymentMethod.CASH_ON_DELIVERY, **kwargs):
        counter["n"] += 1
        order = Order(
            order_id=f"ord{counter['n']:08d}",
            customer_id=customer.id,
            shop_id=product.shop_id,
            product_id=product.id,
            quantity=quantity,
            unit_price=product.price,
            total_cost=product.price * quantity,
            ship_fee=kwargs.pop("ship_fee", 0),
            payment_method=payment_method.value,
            status=status.value,
            address=kwargs.pop("address", "12 Lê Lợi"),
            rating=rating,
            **kwargs,
        )
        session.add(order)
        session.commit()
        return order
    return _make


@pytest.fixture
def proxy():
    return FakeProxy()


@pytest.fixture
def use_proxy(monkeypatch, proxy):
    for module in ("routes.shipping", "routes.buyerOrders", "routes.payments", "routes.shopOrders"):
        monkeypatch.setattr(f"{module}.make_proxy_client", lambda: proxy)
    return proxy


@pytest.fixture
def auth_header(app):
    def _header(user_id, role):
        return {"Authorization": f"Bearer {issue_token(user_id, role)}"}
    return _header
