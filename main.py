import logging

import click

from core.imports import Flask, current_app
from core.config import Config
from core.extensions import db, jwt, swagger, cors, migrate
from core.errors import register_error_handlers
from core.auth import issue_token
from models.productModels import Shop, Product
from models.userModel import Customer
from models.statuses import ProductStatus
from routes.cart import cart_bp
from routes.shipping import shipping_bp
from routes.buyerOrders import buyer_orders
from routes.shopOrders import shop_orders
from routes.payments import payments_bp
from routes.proxy import proxy_bp
from services.paymentOrchestrator import PaymentOrchestrator
from services.proxyClient import ProxyClient


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    logging.basicConfig(level=app.logger.level)

    db.init_app(app)
    jwt.init_app(app)
    swagger.init_app(app)
    cors.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(cart_bp)
    app.register_blueprint(shipping_bp)
    app.register_blueprint(buyer_orders)
    app.register_blueprint(shop_orders)
    app.register_blueprint(payments_bp)
    app.register_blueprint(proxy_bp)

    register_error_handlers(app)
    register_commands(app)

    @app.route('/ping')
    def ping():
        return "Ping received", 200

    return app


def register_commands(app):
    @app.cli.command("expire-payments")
    def expire_payments():
        """Abandon payment sessions that never got a callback."""
        proxy = ProxyClient(
            app.config["PROXY_BASE_URL"],
            issue_token(0, "admin"),
            timeout=app.config.get("PROXY_TIMEOUT", 15),
        )
        expired = PaymentOrchestrator(
            db.session,
            proxy,
            timeout_minutes=app.config.get("PAYMENT_SESSION_TIMEOUT_MINUTES", 15),
        ).expire_stale()
        click.echo(f"Abandoned {expired} payment session(s)")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Create a demo shop, customer and products."""
        db.create_all()
        seed_demo_data()


def seed_demo_data():
    shop = Shop.query.filter_by(name="Demo Shop").first()
    if not shop:
        shop = Shop(name="Demo Shop", province="Hà Nội", district="Quận Ba Đình", address="1 Điện Biên Phủ",
                    phone="0241234567")
        db.session.add(shop)
        db.session.commit()
        current_app.logger.info("Demo shop created (id=%s)", shop.id)

    customer = Customer.query.filter_by(email="demo@customer.com").first()
    if not customer:
        customer = Customer(
            name="Nguyễn Văn A",
            email="demo@customer.com",
            phone="0901234567",
            province="TP. Hồ Chí Minh",
            district="Quận 1",
            address="12 Lê Lợi",
        )
        db.session.add(customer)
        db.session.commit()
        current_app.logger.info("Demo customer created (id=%s)", customer.id)

    sample_products = [
        {"name": "Áo thun basic", "price": 150000, "weight": 300, "stock": 20},
        {"name": "Quần jean slim", "price": 420000, "weight": 700, "stock": 5},
        {"name": "Mũ lưỡi trai", "price": 90000, "weight": None, "stock": 3},
    ]
    for prod in sample_products:
        if Product.query.filter_by(name=prod["name"], shop_id=shop.id).first():
            continue
        db.session.add(Product(shop_id=shop.id, status=ProductStatus.IN_STOCK.value, **prod))
        current_app.logger.info("Product added: %s", prod["name"])
    db.session.commit()

    click.echo(f"customer token: {issue_token(customer.id, 'customer')}")
    click.echo(f"shop token: {issue_token(shop.id, 'shop')}")


app = create_app()

if __name__ == "__main__":
    with app.app_context():
        db.create_all()
        seed_demo_data()

    app.run(debug=True)
