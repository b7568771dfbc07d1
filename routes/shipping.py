from core.imports import Blueprint, jsonify, jwt_required, request
from core.extensions import db
from core.auth import require_role
from services.proxyClient import make_proxy_client
from services.shippingFee import ShippingFeeResolver

shipping_bp = Blueprint("shipping", __name__)


@shipping_bp.route('/api/shipping/fees', methods=['POST'])
@jwt_required()
def quote_shipping_fees():
    """
    Quote the shipping fee of each selected product
    ---
    tags:
      - Shipping
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - items
          properties:
            items:
              type: array
              items:
                type: object
                properties:
                  product_id:
                    type: integer
                    example: 3
                  quantity:
                    type: integer
                    example: 1
    responses:
      200:
        description: Fee per product (0 where the quote failed) and their sum
        schema:
          type: object
          properties:
            fees:
              type: object
              example: {"3": 30000, "7": 0}
            total:
              type: integer
              example: 30000
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    items = data.get("items") or []
    if not all(isinstance(i, dict) and i.get("product_id") is not None for i in items):
        return jsonify({"message": "Each item needs a product_id"}), 400

    resolver = ShippingFeeResolver(db.session, make_proxy_client())
    fees = resolver.resolve(items, customer_id)
    return jsonify({
        "fees": {str(pid): fee for pid, fee in fees.items()},
        "total": resolver.total(fees),
    }), 200
