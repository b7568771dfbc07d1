import hashlib
import hmac

import pytest
import requests

from core.errors import ExternalServiceError
from routes.proxy import generate_signature, PAYMENT_SIGNATURE_FIELDS, CANCEL_SIGNATURE_FIELDS
from services.proxyClient import ProxyClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = "" if payload is None else str(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def recorder(monkeypatch):
    calls = []
    responses = {}

    def fake(method):
        def _call(url, **kwargs):
            calls.append((method, url, kwargs))
            return responses.get(method, FakeResponse(200, {"ok": True}))
        return _call

    monkeypatch.setattr(requests, "post", fake("post"))
    monkeypatch.setattr(requests, "get", fake("get"))
    return calls, responses


@pytest.fixture
def headers(auth_header, customer):
    return auth_header(customer.id, "customer")


def test_signature_matches_manual_hmac():
    data = {"amount": 1000, "cancelUrl": "c", "description": "d", "orderCode": 1, "returnUrl": "r"}
    expected = hmac.new(b"key", b"amount=1000&cancelUrl=c&description=d&orderCode=1&returnUrl=r",
                        hashlib.sha256).hexdigest()
    assert generate_signature(data, PAYMENT_SIGNATURE_FIELDS, "key") == expected


def test_cancel_signature_field_order():
    data = {"cancellationReason": "x", "paymentId": "9"}
    expected = hmac.new(b"key", b"paymentId=9&cancellationReason=x", hashlib.sha256).hexdigest()
    assert generate_signature(data, CANCEL_SIGNATURE_FIELDS, "key") == expected


def test_proxy_requires_session_token(client, recorder):
    response = client.post("/paymentOS", json={"orderCode": 1, "amount": 1000})
    assert response.status_code == 401
    assert recorder[0] == []


def test_payment_link_is_signed_with_fixed_redirects(app, client, headers, recorder):
    calls, responses = recorder
    responses["post"] = FakeResponse(200, {"data": {"checkoutUrl": "https://pay/1", "orderCode": 123}})

    response = client.post("/paymentOS", headers=headers, json={
        "orderCode": 123, "amount": 50000, "description": "Thanh toán đơn hàng",
        "items": [{"name": "Áo", "quantity": 1, "price": 50000}],
    })

    assert response.status_code == 200
    assert response.get_json()["data"]["checkoutUrl"] == "https://pay/1"

    method, url, kwargs = calls[0]
    body = kwargs["json"]
    assert url == app.config["PAYOS_API_URL"]
    assert body["returnUrl"] == "https://shop.test/payment-success?success=true&orderCode=123"
    assert body["cancelUrl"] == "https://shop.test/payment-cancel?status=CANCELLED&orderCode=123"
    assert body["signature"] == generate_signature(body, PAYMENT_SIGNATURE_FIELDS, "checksum-key")
    assert kwargs["headers"]["x-client-id"] == "client-id"
    assert kwargs["headers"]["x-api-key"] == "api-key"


def test_payment_link_provider_error(client, headers, recorder):
    recorder[1]["post"] = FakeResponse(400, {"code": "20", "desc": "bad"})
    response = client.post("/paymentOS", headers=headers, json={"orderCode": 5, "amount": 1000})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Payment request failed"}


def test_missing_payos_credentials(app, client, headers, recorder):
    app.config["PAYOS_CHECKSUM_KEY"] = None
    response = client.post("/paymentOS", headers=headers, json={"orderCode": 5, "amount": 1000})
    assert response.status_code == 500
    assert recorder[0] == []


def test_cancel_payment_signed(app, client, headers, recorder):
    calls, _ = recorder
    response = client.post("/cancelOS", headers=headers, json={"paymentId": "77", "cancellationReason": "Hủy"})

    assert response.status_code == 200
    _, url, kwargs = calls[0]
    assert url == f"{app.config['PAYOS_API_URL']}/77/cancel"
    assert kwargs["json"]["signature"] == generate_signature(kwargs["json"], CANCEL_SIGNATURE_FIELDS, "checksum-key")


def test_payment_info(app, client, headers, recorder):
    calls, responses = recorder
    responses["get"] = FakeResponse(200, {"data": {"status": "PAID"}})

    response = client.get("/getOS/77", headers=headers)

    assert response.get_json() == {"data": {"status": "PAID"}}
    assert calls[0][1] == f"{app.config['PAYOS_API_URL']}/77"


def test_fee_quote_passes_query_and_token(app, client, headers, recorder):
    calls, responses = recorder
    responses["get"] = FakeResponse(200, {"success": True, "fee": {"fee": 30000}})

    response = client.post("/GHTKfee", headers=headers, json={
        "pick_province": "Hà Nội", "pick_district": "Ba Đình", "province": "HCM", "district": "Quận 1",
        "address": "12 Lê Lợi", "weight": 500, "value": 0, "transport": "road", "tags": [1, 7],
    })

    assert response.status_code == 200
    assert response.get_json()["fee"]["fee"] == 30000
    _, url, kwargs = calls[0]
    assert url == f"{app.config['GHTK_API_URL']}/fee"
    assert kwargs["params"]["weight"] == "500"
    assert kwargs["params"]["value"] == "0"
    assert kwargs["params"]["deliver_option"] == "none"
    assert kwargs["params"]["tags"] == "1,7"
    assert kwargs["headers"] == {"Token": "ghtk-token", "X-Client-Source": "S000001"}


def test_fee_quote_passes_carrier_status_through(client, headers, recorder):
    recorder[1]["get"] = FakeResponse(422, {"success": False, "message": "Địa chỉ không hợp lệ"})
    response = client.post("/GHTKfee", headers=headers, json={
        "pick_province": "a", "pick_district": "b", "province": "c", "district": "d",
        "address": "e", "weight": 1, "value": 1,
    })
    assert response.status_code == 422


def test_fee_quote_missing_fields(client, headers, recorder):
    response = client.post("/GHTKfee", headers=headers, json={"province": "c"})
    assert response.status_code == 400
    assert recorder[0] == []


def test_shipment_without_token(app, client, headers, recorder):
    app.config["GHTK_TOKEN"] = None
    response = client.post("/GHTK", headers=headers, json={"order": {}})
    assert response.status_code == 500
    assert response.get_json()["message"] == "Missing GHTK API token"


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_client_forwards_bearer_token():
    http = FakeSession(FakeResponse(200, {"fee": {"fee": 30000}}))
    client = ProxyClient("http://proxy.test/", "session-token", timeout=3, http=http)

    assert client.get_shipment_fee({"weight": 500}) == {"fee": {"fee": 30000}}
    method, url, kwargs = http.calls[0]
    assert (method, url) == ("POST", "http://proxy.test/GHTKfee")
    assert kwargs["headers"]["Authorization"] == "Bearer session-token"
    assert kwargs["timeout"] == 3


def test_client_without_token_makes_no_call():
    http = FakeSession(FakeResponse(200, {}))
    with pytest.raises(ExternalServiceError):
        ProxyClient("http://proxy.test", None, http=http).get_payment_info(1)
    assert http.calls == []


@pytest.mark.parametrize("http, message", [
    (FakeSession(FakeResponse(500, {"error": "Payment request failed"})), "Payment request failed"),
    (FakeSession(FakeResponse(400, None)), "Unknown error from paymentOS"),
    (FakeSession(FakeResponse(200, None)), "Malformed response from paymentOS"),
    (FakeSession(error=requests.ConnectionError("down")), "Could not reach paymentOS"),
])
def test_client_failures_raise(http, message):
    client = ProxyClient("http://proxy.test", "t", http=http)
    with pytest.raises(ExternalServiceError) as excinfo:
        client.create_payment_link({"orderCode": 1, "amount": 1})
    assert excinfo.value.message == message
    assert excinfo.value.status_code == 502


def test_client_cancel_payload():
    http = FakeSession(FakeResponse(200, {"code": "00"}))
    ProxyClient("http://proxy.test", "t", http=http).cancel_payment(42, "Người dùng hủy thanh toán")
    _, url, kwargs = http.calls[0]
    assert url == "http://proxy.test/cancelOS"
    assert kwargs["json"] == {"paymentId": 42, "cancellationReason": "Người dùng hủy thanh toán"}
