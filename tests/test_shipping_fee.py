import pytest

from models.productModels import Shop
from services.shippingFee import ShippingFeeResolver, build_fee_params


@pytest.fixture
def resolver(session, proxy):
    return ShippingFeeResolver(session, proxy)


def test_one_failed_lookup_does_not_affect_the_others(resolver, proxy, make_product, customer):
    a = make_product(name="A", price=100000)
    b = make_product(name="B", price=200000)
    proxy.fees = {100000: {"success": True, "fee": {"fee": 5000}}}  # B gets a carrier error

    fees = resolver.resolve([{"product_id": a.id, "quantity": 1}, {"product_id": b.id, "quantity": 1}], customer.id)

    assert fees == {a.id: 5000, b.id: 0}
    assert len(proxy.calls_of("fee")) == 2


def test_missing_product_and_malformed_response_resolve_to_zero(resolver, proxy, make_product, customer):
    good = make_product(name="Good", price=50000)
    odd = make_product(name="Odd", price=70000)
    proxy.fees = {50000: {"fee": {"fee": 22000}}, 70000: {"message": "no fee here"}}

    fees = resolver.resolve([
        {"product_id": 9999, "quantity": 1},
        {"product_id": odd.id, "quantity": 1},
        {"product_id": good.id, "quantity": 1},
    ], customer.id)

    assert fees == {9999: 0, odd.id: 0, good.id: 22000}
    assert list(fees) == [9999, odd.id, good.id]


def test_shop_without_address_resolves_to_zero(session, resolver, proxy, make_product, customer):
    bare = Shop(name="No address")
    session.add(bare)
    session.commit()
    product = make_product(price=10000, shop_id=bare.id)
    proxy.fees = {10000: {"fee": {"fee": 1000}}}

    assert resolver.resolve([{"product_id": product.id}], customer.id) == {product.id: 0}
    assert proxy.calls_of("fee") == []


def test_customer_without_address_resolves_to_zero(resolver, proxy, make_product):
    product = make_product(price=10000)
    proxy.fees = {10000: {"fee": {"fee": 1000}}}

    assert resolver.resolve([{"product_id": product.id}], 12345) == {product.id: 0}


def test_fee_request_parameters(resolver, proxy, make_product, customer, shop):
    product = make_product(price=30000, weight=None)
    proxy.fees = {60000: {"fee": {"fee": 18000}}}

    resolver.resolve([{"product_id": product.id, "quantity": 2}], customer.id)

    _, params = proxy.calls_of("fee")[0]
    assert params["pick_province"] == shop.province
    assert params["pick_district"] == shop.district
    assert params["province"] == customer.province
    assert params["district"] == customer.district
    assert params["address"] == customer.address
    assert params["weight"] == 1000  # default 500 g per unit
    assert params["value"] == 60000
    assert params["transport"] == "road"
    assert params["deliver_option"] == "none"


def test_build_fee_params_defaults_value_to_zero(make_product, shop, customer):
    product = make_product(price=0, weight=250)
    params = build_fee_params(product, shop, customer, quantity=None)
    assert params["weight"] == 250
    assert params["value"] == 0


def test_total_sums_selected_products():
    fees = {1: 5000, 2: 0, 3: 12000}
    assert ShippingFeeResolver.total(fees) == 17000
    assert ShippingFeeResolver.total(fees, ["1", 2]) == 5000
    assert ShippingFeeResolver.total(fees, [4]) == 0


def test_malformed_product_id_resolves_to_zero(resolver, proxy, make_product, customer):
    good = make_product(price=50000)
    proxy.fees = {50000: {"fee": {"fee": 22000}}}

    fees = resolver.resolve([{"product_id": "abc"}, {"product_id": good.id, "quantity": 1}], customer.id)

    assert fees == {"abc": 0, good.id: 22000}
    assert len(proxy.calls_of("fee")) == 1
