from core.imports import Blueprint, jsonify, jwt_required, request, current_app
from core.extensions import db
from core.auth import require_role
from services.paymentOrchestrator import PaymentOrchestrator, parse_callback_url, SUCCESS_PATH, CANCEL_PATH
from services.proxyClient import make_proxy_client

payments_bp = Blueprint("payments", __name__)


def make_orchestrator():
    return PaymentOrchestrator(
        db.session,
        make_proxy_client(),
        timeout_minutes=current_app.config.get("PAYMENT_SESSION_TIMEOUT_MINUTES", 15),
    )


@payments_bp.route('/api/payments', methods=['POST'])
@jwt_required()
def start_payment():
    """
    Open (or re-open) the gateway checkout for a set of orders
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - order_ids
          properties:
            order_ids:
              type: array
              items:
                type: string
              example: ["a3f09c1d2b4", "0b7e44c91fa"]
    responses:
      200:
        description: Checkout URL for the embedded browser
        schema:
          type: object
          properties:
            checkout_url:
              type: string
            order_code:
              type: integer
              example: 482913
            state:
              type: string
              example: AwaitingRedirect
      400:
        description: Orders are not payable by gateway
      502:
        description: Payment link could not be created
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    payment = make_orchestrator().start(data.get("order_ids") or [], customer_id)
    return jsonify(payment.to_dict()), 200


@payments_bp.route('/api/payments/<int:order_code>', methods=['GET'])
@jwt_required()
def get_payment(order_code):
    customer_id = require_role("customer")
    payment = make_orchestrator().find(order_code)
    if payment.customer_id != customer_id:
        return jsonify({"message": "Payment session not found"}), 404
    return jsonify(payment.to_dict()), 200


@payments_bp.route('/api/payments/callback', methods=['POST'])
@jwt_required()
def payment_callback():
    """
    Report a payment redirect seen by the app
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    description: >
      Used by both the deep-link listener and the embedded browser's navigation
      interception. Send either the raw URL or its parsed path and query.
      A callback for a session that is already closed changes nothing.
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            url:
              type: string
              example: "myapp://payment-success?success=true&orderCode=482913"
            path:
              type: string
              example: payment-cancel
            query:
              type: object
              example: {"status": "CANCELLED", "orderCode": "482913"}
    responses:
      200:
        description: Session after the callback
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    orchestrator = make_orchestrator()

    if data.get("url"):
        payment = orchestrator.handle_callback_url(data["url"], customer_id=customer_id)
    else:
        payment = orchestrator.handle_callback(data.get("path"), data.get("query") or {}, customer_id=customer_id)

    return jsonify(payment.to_dict()), 200


def _landing(expected_path):
    # The provider redirects the embedded browser here; the app reads the URL and
    # reports it through /api/payments/callback with its own session token.
    path, query = parse_callback_url(request.url)
    return jsonify({"path": path or expected_path, "query": query}), 200


@payments_bp.route('/payment-success', methods=['GET'])
def payment_success_landing():
    return _landing(SUCCESS_PATH)


@payments_bp.route('/payment-cancel', methods=['GET'])
def payment_cancel_landing():
    return _landing(CANCEL_PATH)
