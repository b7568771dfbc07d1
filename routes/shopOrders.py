from core.imports import Blueprint, jsonify, jwt_required, request
from core.extensions import db
from core.auth import require_role
from models.orderModels import Order
from services.orderStatus import OrderStatusService
from services.proxyClient import make_proxy_client
from services.shipments import ShipmentDispatcher
from services.shopSales import ShopSales
from routes.buyerOrders import serialize_order

shop_orders = Blueprint("shop_orders", __name__)


@shop_orders.route('/api/shop/orders', methods=['GET'])
@jwt_required()
def get_shop_orders():
    shop_id = require_role("shop")

    query = Order.query.filter_by(shop_id=shop_id)
    status = request.args.get("status")
    if status:
        query = query.filter_by(status=status)

    orders = query.order_by(Order.order_time.desc(), Order.id.desc()).all()
    return jsonify({"orders": [serialize_order(o) for o in orders]}), 200


@shop_orders.route('/api/shop/orders/<order_id>/confirm', methods=['POST'])
@jwt_required()
def confirm_order(order_id):
    """
    Confirm an order and hand it to the carrier
    ---
    tags:
      - Shop Orders
    security:
      - Bearer: []
    description: >
      Moves the order from awaiting confirmation to preparing. The product's
      stock drops by the order quantity and its sold count rises by the same
      amount; a product whose stock reaches 0 is marked Outstock. The order
      is then sent to GHTK; a carrier failure is logged and does not undo
      the confirmation.
    parameters:
      - name: order_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Order confirmed; shipment_label is null when the carrier did not take it
      403:
        description: Order belongs to another shop
      409:
        description: Wrong status or not enough stock
    """
    shop_id = require_role("shop")
    order = OrderStatusService(db.session).confirm(order_id, shop_id)
    label = ShipmentDispatcher(db.session, make_proxy_client()).dispatch(order)
    return jsonify({
        "message": "Order confirmed",
        "order": serialize_order(order),
        "shipment_label": label,
    }), 200


@shop_orders.route('/api/shop/orders/<order_id>/ship', methods=['POST'])
@jwt_required()
def ship_order(order_id):
    shop_id = require_role("shop")
    order = OrderStatusService(db.session).ship(order_id, shop_id)
    return jsonify({"message": "Order is on its way", "order": serialize_order(order)}), 200


@shop_orders.route('/api/shop/orders/<order_id>/request-rating', methods=['POST'])
@jwt_required()
def request_rating(order_id):
    shop_id = require_role("shop")
    order = OrderStatusService(db.session).request_rating(order_id, shop_id)
    return jsonify({"message": "Order is awaiting a rating", "order": serialize_order(order)}), 200


@shop_orders.route('/api/shop/sales', methods=['GET'])
@jwt_required()
def get_shop_sales():
    """
    Daily revenue of completed orders
    ---
    tags:
      - Shop Orders
    security:
      - Bearer: []
    parameters:
      - name: days
        in: query
        type: integer
        default: 7
        description: "Look-back window, e.g. 7, 30 or 90"
    responses:
      200:
        description: One entry per day with sales, oldest first
        schema:
          type: object
          properties:
            days:
              type: integer
              example: 7
            sales:
              type: array
              items:
                type: object
                properties:
                  date:
                    type: string
                    example: "18/10"
                  revenue:
                    type: integer
                    example: 450000
                  orders:
                    type: integer
                    example: 3
                  average:
                    type: number
                    example: 150000
            total_revenue:
              type: integer
      400:
        description: days is not a positive integer
    """
    shop_id = require_role("shop")
    days = request.args.get("days", 7, type=int)
    sales = ShopSales(db.session).daily(shop_id, days)
    return jsonify({
        "days": days,
        "sales": sales,
        "total_revenue": sum(d["revenue"] for d in sales),
        "total_orders": sum(d["orders"] for d in sales),
    }), 200
