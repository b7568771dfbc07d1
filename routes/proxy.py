from core.imports import Blueprint, jsonify, request, jwt_required, current_app, requests, hashlib, hmac

proxy_bp = Blueprint("proxy", __name__)

PAYMENT_SIGNATURE_FIELDS = ("amount", "cancelUrl", "description", "orderCode", "returnUrl")
CANCEL_SIGNATURE_FIELDS = ("paymentId", "cancellationReason")

FEE_FIELDS = ("pick_province", "pick_district", "province", "district", "address", "weight", "value")


def generate_signature(data, fields, checksum_key):
    """HMAC-SHA256 over ``field=value`` pairs joined with ``&`` in the given order."""
    raw = "&".join(f"{field}={data[field]}" for field in fields)
    return hmac.new(checksum_key.encode("utf-8"), raw.encode("utf-8"), hashlib.sha256).hexdigest()


def payment_redirect_urls(order_code):
    domain = current_app.config["PAYOS_REDIRECT_DOMAIN"].rstrip("/")
    return (
        f"{domain}/payment-success?success=true&orderCode={order_code}",
        f"{domain}/payment-cancel?status=CANCELLED&orderCode={order_code}",
    )


def _payos_credentials(with_checksum=True):
    config = current_app.config
    keys = ["PAYOS_CLIENT_ID", "PAYOS_API_KEY"] + (["PAYOS_CHECKSUM_KEY"] if with_checksum else [])
    if not all(config.get(k) for k in keys):
        return None
    return config


def _provider_json(response):
    try:
        return response.json()
    except ValueError:
        return {"error": response.text or "Empty response from provider"}


@proxy_bp.route('/GHTK', methods=['POST'])
@jwt_required()
def create_shipment():
    token = current_app.config.get("GHTK_TOKEN")
    if not token:
        return jsonify({"success": False, "message": "Missing GHTK API token"}), 500

    body = request.get_json() or {}
    try:
        ghtk_res = requests.post(
            f"{current_app.config['GHTK_API_URL']}/order",
            json=body,
            headers={"Content-Type": "application/json", "Token": token},
            timeout=current_app.config.get("PROXY_TIMEOUT", 15),
        )
    except requests.RequestException as e:
        current_app.logger.error("GHTK shipment request failed: %s", e)
        return jsonify({"success": False, "message": "Could not reach GHTK"}), 502

    return jsonify(_provider_json(ghtk_res)), ghtk_res.status_code


@proxy_bp.route('/GHTKfee', methods=['POST'])
@jwt_required()
def shipment_fee():
    """
    Quote a GHTK shipping fee
    ---
    tags:
      - Proxy
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required: [pick_province, pick_district, province, district, address, weight, value]
          properties:
            pick_province: { type: string, example: "Hà Nội" }
            pick_district: { type: string, example: "Quận Ba Đình" }
            province: { type: string, example: "TP. Hồ Chí Minh" }
            district: { type: string, example: "Quận 1" }
            address: { type: string, example: "12 Lê Lợi" }
            weight: { type: integer, example: 500 }
            value: { type: integer, example: 150000 }
            transport: { type: string, example: road }
            deliver_option: { type: string, example: none }
            tags: { type: array, items: { type: integer } }
    responses:
      200:
        description: Carrier response, passed through
        schema:
          type: object
          properties:
            success: { type: boolean, example: true }
            fee:
              type: object
              properties:
                fee: { type: integer, example: 30000 }
      400:
        description: Missing fields
      500:
        description: Missing GHTK token
    """
    token = current_app.config.get("GHTK_TOKEN")
    if not token:
        return jsonify({"success": False, "message": "Missing GHTK API token"}), 500

    body = request.get_json() or {}
    missing = [f for f in FEE_FIELDS if body.get(f) in (None, "")]
    if missing:
        return jsonify({"success": False, "message": f"Missing fields: {', '.join(missing)}"}), 400

    tags = body.get("tags") or []
    params = {
        "pick_province": body["pick_province"],
        "pick_district": body["pick_district"],
        "province": body["province"],
        "district": body["district"],
        "address": body["address"],
        "weight": str(body["weight"]),
        "value": str(body["value"]),
        "transport": body.get("transport") or "road",
        "deliver_option": body.get("deliver_option") or "none",
        "tags": ",".join(str(t) for t in tags),
    }
    headers = {"Token": token}
    if current_app.config.get("GHTK_CLIENT_SOURCE"):
        headers["X-Client-Source"] = current_app.config["GHTK_CLIENT_SOURCE"]

    try:
        ghtk_res = requests.get(
            f"{current_app.config['GHTK_API_URL']}/fee",
            params=params,
            headers=headers,
            timeout=current_app.config.get("PROXY_TIMEOUT", 15),
        )
    except requests.RequestException as e:
        current_app.logger.error("GHTK fee request failed: %s", e)
        return jsonify({"success": False, "message": "Could not reach GHTK"}), 502

    return jsonify(_provider_json(ghtk_res)), ghtk_res.status_code


@proxy_bp.route('/paymentOS', methods=['POST'])
@jwt_required()
def create_payment_link():
    """
    Create a PayOS payment link
    ---
    tags:
      - Proxy
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required: [orderCode, amount]
          properties:
            orderCode: { type: integer, example: 123456 }
            amount: { type: integer, example: 180000 }
            description: { type: string, example: "Thanh toán đơn hàng" }
            items:
              type: array
              items:
                type: object
                properties:
                  name: { type: string }
                  quantity: { type: integer }
                  price: { type: integer }
    responses:
      200:
        description: PayOS response
        schema:
          type: object
          properties:
            data:
              type: object
              properties:
                checkoutUrl: { type: string }
                orderCode: { type: integer }
      500:
        description: Missing credentials or PayOS error
    """
    config = _payos_credentials()
    if config is None:
        return jsonify({"error": "Missing PayOS client ID, API key, or checksum key."}), 500

    current_app.logger.info("Received a request to create a payment link")
    body = request.get_json() or {}

    try:
        order_code = int(body["orderCode"])
        amount = int(body["amount"])
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "orderCode and amount are required"}), 400

    return_url, cancel_url = payment_redirect_urls(order_code)
    payment_data = {
        "orderCode": order_code,
        "amount": amount,
        "description": body.get("description") or "Thanh toan don hang",
        "items": body.get("items") or [],
        "returnUrl": return_url,
        "cancelUrl": cancel_url,
    }
    payment_data["signature"] = generate_signature(payment_data, PAYMENT_SIGNATURE_FIELDS, config["PAYOS_CHECKSUM_KEY"])

    try:
        response = requests.post(
            config["PAYOS_API_URL"],
            json=payment_data,
            headers={
                "Content-Type": "application/json",
                "x-client-id": config["PAYOS_CLIENT_ID"],
                "x-api-key": config["PAYOS_API_KEY"],
            },
            timeout=config.get("PROXY_TIMEOUT", 15),
        )
    except requests.RequestException as e:
        current_app.logger.error("Error creating payment link: %s", e)
        return jsonify({"error": "Something went wrong"}), 500

    response_data = _provider_json(response)
    if not response.ok:
        current_app.logger.error("PayOS rejected payment %s: %s", order_code, response_data)
        return jsonify({"error": "Payment request failed"}), 500

    return jsonify(response_data), 200


@proxy_bp.route('/cancelOS', methods=['POST'])
@jwt_required()
def cancel_payment():
    config = _payos_credentials()
    if config is None:
        return jsonify({"error": "Missing PayOS client ID, API key, or checksum key."}), 500

    current_app.logger.info("Received a request to cancel payment")
    body = request.get_json() or {}
    if not body.get("paymentId"):
        return jsonify({"error": "Missing payment ID"}), 400

    cancel_data = {
        "paymentId": body["paymentId"],
        "cancellationReason": body.get("cancellationReason") or "",
    }
    cancel_data["signature"] = generate_signature(cancel_data, CANCEL_SIGNATURE_FIELDS, config["PAYOS_CHECKSUM_KEY"])

    try:
        response = requests.post(
            f"{config['PAYOS_API_URL']}/{cancel_data['paymentId']}/cancel",
            json=cancel_data,
            headers={
                "Content-Type": "application/json",
                "x-client-id": config["PAYOS_CLIENT_ID"],
                "x-api-key": config["PAYOS_API_KEY"],
            },
            timeout=config.get("PROXY_TIMEOUT", 15),
        )
    except requests.RequestException as e:
        current_app.logger.error("Error cancelling payment: %s", e)
        return jsonify({"error": "Something went wrong during cancellation"}), 500

    response_data = _provider_json(response)
    if not response.ok:
        return jsonify({"error": "Payment cancel request failed", "details": response_data}), 500

    return jsonify(response_data), 200


@proxy_bp.route('/getOS/<payment_id>', methods=['GET'])
@jwt_required()
def get_payment_info(payment_id):
    config = _payos_credentials(with_checksum=False)
    if config is None:
        return jsonify({"error": "Missing PayOS credentials"}), 500

    try:
        response = requests.get(
            f"{config['PAYOS_API_URL']}/{payment_id}",
            headers={
                "Authorization": f"Bearer {config['PAYOS_API_KEY']}",
                "x-client-id": config["PAYOS_CLIENT_ID"],
                "x-api-key": config["PAYOS_API_KEY"],
                "Content-Type": "application/json",
            },
            timeout=config.get("PROXY_TIMEOUT", 15),
        )
    except requests.RequestException as e:
        current_app.logger.error("Error fetching payment details: %s", e)
        return jsonify({"error": "Error fetching payment details"}), 500

    response_data = _provider_json(response)
    if not response.ok:
        message = response_data.get("error") if isinstance(response_data, dict) else None
        return jsonify({"error": message or "Failed to fetch payment details"}), 500

    return jsonify(response_data), 200
