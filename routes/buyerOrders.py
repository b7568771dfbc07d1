from core.imports import Blueprint, jwt_required, jsonify, request, SQLAlchemyError, current_app
from core.extensions import db
from core.auth import require_role
from models.orderModels import Order
from services.cartService import CartService
from services.orderWriter import OrderWriter
from services.orderStatus import OrderStatusService, allowed_actions
from services.proxyClient import make_proxy_client
from services.shippingFee import ShippingFeeResolver

buyer_orders = Blueprint("buyer_orders", __name__)


def serialize_order(order):
    data = order.to_dict()
    data["actions"] = allowed_actions(order.status)
    return data


@buyer_orders.route('/api/orders', methods=['POST'])
@jwt_required()
def create_order():
    """
    Place one order per selected cart line
    ---
    tags:
      - Buyer Orders
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - name: Authorization
        in: header
        description: "JWT token as: Bearer <your_token>"
        required: true
        type: string
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - payment_method
          properties:
            payment_method:
              type: string
              enum: ["Thanh toán khi nhận hàng", "Quét mã QR"]
            items:
              type: array
              description: "Optional, defaults to the whole cart"
              items:
                type: object
                properties:
                  product_id:
                    type: integer
                    example: 2
                  quantity:
                    type: integer
                    example: 3
            address:
              type: string
              description: "Optional, defaults to the customer's saved address"
            fees:
              type: object
              description: "Shipping fee per product id, as returned by /api/shipping/fees. Quoted again when omitted."
              example: {"2": 30000}
    responses:
      201:
        description: Orders created
        schema:
          type: object
          properties:
            message:
              type: string
              example: "Orders placed successfully"
            order_ids:
              type: array
              items:
                type: string
              example: ["a3f09c1d2b4"]
            total:
              type: integer
              example: 480000
            next_step:
              type: string
              enum: [confirmation, payment]
      400:
        description: Invalid items, address or payment method
      404:
        description: Product not found
      500:
        description: Database error, nothing was written
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}

    cart = CartService(db.session)
    selection = cart.selection(customer_id)
    items = data.get("items") or selection["items"]
    address = data.get("address") or selection["address"]

    fees = data.get("fees")
    if fees is None:
        fees = ShippingFeeResolver(db.session, make_proxy_client()).resolve(items, customer_id)

    try:
        result = OrderWriter(db.session, cart).place(
            customer_id, items, fees, data.get("payment_method"), address
        )
    except SQLAlchemyError:
        return jsonify({"message": "Error creating order"}), 500

    return jsonify({
        "message": "Orders placed successfully",
        "order_ids": result["order_ids"],
        "orders": [o.to_dict() for o in result["orders"]],
        "goods_total": result["goods_total"],
        "shipping_total": result["shipping_total"],
        "total": result["total"],
        "payment_method": result["payment_method"],
        "next_step": result["next_step"],
    }), 201


@buyer_orders.route('/api/orders', methods=['GET'])
@jwt_required()
def get_customer_orders():
    customer_id = require_role("customer")
    query = Order.query.filter_by(customer_id=customer_id)
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)

    orders = query.order_by(Order.order_time.desc(), Order.id.desc()).all()
    return jsonify({"orders": [serialize_order(o) for o in orders]}), 200


@buyer_orders.route('/api/orders/<order_id>', methods=['GET'])
@jwt_required()
def get_order(order_id):
    customer_id = require_role("customer")
    order = OrderWriter(db.session).find(order_id)
    if order.customer_id != customer_id:
        return jsonify({"message": "Order not found"}), 404
    return jsonify(serialize_order(order)), 200


@buyer_orders.route('/api/orders/<order_id>/cancel', methods=['POST'])
@jwt_required()
def cancel_order(order_id):
    """
    Cancel an order that is still awaiting confirmation
    ---
    tags:
      - Buyer Orders
    security:
      - Bearer: []
    parameters:
      - name: order_id
        in: path
        type: string
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - reason
          properties:
            reason:
              type: string
              example: "Không mua nữa"
            detail:
              type: string
              description: "Required when reason is 'Lý do khác'"
    responses:
      200:
        description: Order cancelled
      400:
        description: Missing reason
      409:
        description: Order is past awaiting confirmation
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    order = OrderStatusService(db.session).cancel(order_id, customer_id, data.get("reason"), data.get("detail"))
    return jsonify({"message": "Order cancelled", "order": serialize_order(order)}), 200


@buyer_orders.route('/api/orders/<order_id>/receive', methods=['POST'])
@jwt_required()
def receive_order(order_id):
    customer_id = require_role("customer")
    order = OrderStatusService(db.session).receive(order_id, customer_id)
    return jsonify({"message": "Order received", "order": serialize_order(order)}), 200


@buyer_orders.route('/api/orders/<order_id>/rating', methods=['POST'])
@jwt_required()
def rate_order(order_id):
    """
    Rate a delivered order
    ---
    tags:
      - Buyer Orders
    security:
      - Bearer: []
    parameters:
      - name: order_id
        in: path
        type: string
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - rating
            - comment
          properties:
            rating:
              type: integer
              example: 5
            comment:
              type: string
              example: "Hàng đẹp, giao nhanh"
    responses:
      200:
        description: Rating saved, order completed
      400:
        description: Rating missing or out of range, or empty comment
      409:
        description: Order is not awaiting a rating
    """
    customer_id = require_role("customer")
    data = request.get_json() or {}
    rating = data.get("rating")
    order = OrderStatusService(db.session).rate(order_id, customer_id, rating, data.get("comment"))
    current_app.logger.info("Order %s rated %s", order_id, rating)
    return jsonify({
        "message": "Rating submitted successfully!",
        "order": serialize_order(order),
        "product_rating": order.product.rating,
    }), 200
