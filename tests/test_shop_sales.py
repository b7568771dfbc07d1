from datetime import datetime

import pytest

from core.errors import ValidationError
from models.productModels import Shop
from models.statuses import OrderStatus
from services.shopSales import ShopSales

NOW = datetime(2026, 10, 18, 12, 0)


@pytest.fixture
def sales(session):
    return ShopSales(session, clock=lambda: NOW)


def test_completed_orders_grouped_per_day(sales, make_product, make_order, shop):
    product = make_product(price=100000)
    done = OrderStatus.COMPLETED
    make_order(product, status=done, order_time=datetime(2026, 10, 17, 9, 0))
    make_order(product, quantity=2, status=done, order_time=datetime(2026, 10, 17, 20, 0))
    make_order(product, status=done, order_time=datetime(2026, 10, 15, 8, 0))
    make_order(product, status=OrderStatus.IN_TRANSIT, order_time=datetime(2026, 10, 17, 10, 0))
    make_order(product, status=done, order_time=datetime(2026, 9, 1, 10, 0))

    assert sales.daily(shop.id, 7) == [
        {"date": "15/10", "revenue": 100000, "orders": 1, "average": 100000},
        {"date": "17/10", "revenue": 300000, "orders": 2, "average": 150000},
    ]


def test_longer_window_reaches_older_orders(sales, make_product, make_order, shop):
    make_order(make_product(price=50000), status=OrderStatus.COMPLETED, order_time=datetime(2026, 9, 1, 10, 0))

    assert sales.daily(shop.id, 7) == []
    assert [d["date"] for d in sales.daily(shop.id, 90)] == ["01/09"]


def test_other_shops_are_not_counted(session, sales, make_product, make_order):
    other = Shop(name="Shop B")
    session.add(other)
    session.commit()
    make_order(make_product(shop_id=other.id), status=OrderStatus.COMPLETED, order_time=NOW)

    assert sales.daily(other.id + 1, 7) == []
    assert sales.daily(other.id, 7)[0]["orders"] == 1


@pytest.mark.parametrize("days", [0, -7, True, "7"])
def test_window_must_be_positive(sales, shop, days):
    with pytest.raises(ValidationError):
        sales.daily(shop.id, days)
