from core.imports import Blueprint, jsonify, jwt_required, request
from core.extensions import db
from core.auth import require_role
from services.cartService import CartService

cart_bp = Blueprint("cart", __name__)


def serialize_cart_item(item):
    product = item.product
    return {
        "product_id": item.product_id,
        "name": product.name if product else None,
        "price": product.price if product else None,
        "shop_id": product.shop_id if product else None,
        "quantity": item.quantity,
        "available_stock": product.stock if product else None,
        "status": product.status if product else None,
    }


@cart_bp.route('/api/cart', methods=['GET'])
@jwt_required()
def get_cart():
    """
    Get the current customer's cart
    ---
    tags:
      - Cart
    security:
      - Bearer: []
    parameters:
      - name: Authorization
        in: header
        description: "JWT token as: Bearer <your_token>"
        required: true
        type: string
    responses:
      200:
        description: Cart retrieved successfully
        schema:
          type: object
          properties:
            cart_items:
              type: array
              items:
                type: object
                properties:
                  product_id:
                    type: integer
                    example: 1
                  name:
                    type: string
                    example: "Áo thun basic"
                  price:
                    type: integer
                    example: 150000
                  quantity:
                    type: integer
                    example: 2
                  available_stock:
                    type: integer
                    example: 20
      403:
        description: Unauthorized access (only customers allowed)
    """
    customer_id = require_role("customer")
    items = CartService(db.session).list_items(customer_id)
    return jsonify({"cart_items": [serialize_cart_item(i) for i in items]}), 200


@cart_bp.route('/api/cart', methods=['POST'])
@jwt_required()
def add_to_cart():
    """
    Add a product to the customer's cart
    ---
    tags:
      - Cart
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - product_id
          properties:
            product_id:
              type: integer
              example: 10
            quantity:
              type: integer
              example: 2
              description: Clamped to 1..20
    responses:
      201:
        description: Product added to cart
      400:
        description: Not enough stock or more than 20 of one product
      404:
        description: Product not found
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    product_id = data.get("product_id")
    if product_id is None:
        return jsonify({"message": "product_id is required"}), 400

    item = CartService(db.session).add_item(customer_id, int(product_id), data.get("quantity", 1))
    return jsonify({"message": "Product added to cart", "item": serialize_cart_item(item)}), 201


@cart_bp.route('/api/cart/<int:product_id>', methods=['DELETE'])
@jwt_required()
def delete_cart_item(product_id):
    customer_id = require_role("customer")
    CartService(db.session).remove_item(customer_id, product_id)
    return jsonify({"message": "Cart item deleted successfully"}), 200


@cart_bp.route('/api/cart/checkout', methods=['POST'])
@jwt_required()
def checkout_selection():
    """
    Collect the selected cart lines and the delivery address for checkout
    ---
    tags:
      - Cart
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: false
        schema:
          type: object
          properties:
            product_ids:
              type: array
              items:
                type: integer
              description: Omit to take the whole cart
    responses:
      200:
        description: Checkout selection
    """
    customer_id = require_role("customer")
    data = request.get_json(silent=True) or {}
    selection = CartService(db.session).selection(customer_id, data.get("product_ids"))
    return jsonify(selection), 200
