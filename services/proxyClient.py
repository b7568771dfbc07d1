"""HTTP client for the proxy functions that hold the GHTK and PayOS secrets.

The caller only ever holds its own session token; every provider credential
is injected on the proxy side (see ``routes/proxy.py``).
"""
import logging

from core.imports import requests, current_app, request
from core.auth import bearer_token
from core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ProxyClient:
    def __init__(self, base_url, token, timeout=15, http=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.http = http or requests.Session()

    def _request(self, method, path, payload=None):
        if not self.token:
            raise ExternalServiceError("JWT Token is missing or invalid")

        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        try:
            response = self.http.request(method, url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Proxy call %s %s failed: %s", method, path, e)
            raise ExternalServiceError(f"Could not reach {path}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            logger.error("Error response from %s (%s): %s", path, response.status_code, data)
            message = data.get("error") if isinstance(data, dict) else None
            raise ExternalServiceError(message or f"Unknown error from {path}")

        if data is None:
            raise ExternalServiceError(f"Malformed response from {path}")
        return data

    def create_shipment(self, shipment_data):
        return self._request("POST", "GHTK", shipment_data)

    def get_shipment_fee(self, fee_params):
        return self._request("POST", "GHTKfee", fee_params)

    def create_payment_link(self, payment_data):
        return self._request("POST", "paymentOS", payment_data)

    def cancel_payment(self, payment_id, cancellation_reason):
        return self._request("POST", "cancelOS", {
            "paymentId": payment_id,
            "cancellationReason": cancellation_reason,
        })

    def get_payment_info(self, payment_id):
        return self._request("GET", f"getOS/{payment_id}")


def make_proxy_client():
    """Client bound to the current request's bearer token."""
    return ProxyClient(
        current_app.config["PROXY_BASE_URL"],
        bearer_token(request),
        timeout=current_app.config.get("PROXY_TIMEOUT", 15),
    )
