import logging
from flask import Blueprint, request, jsonify
from schema import Order, OrderItem, OrderStatusHistory
from routes.cart import require_user
from services.errors import CheckoutError, ConcurrentLimitExceeded, ErrorKind
from services.orders import OrderService

logger = logging.getLogger(__name__)

orders_bp = Blueprint("orders", __name__)

STATUS_BY_KIND = {
    ErrorKind.COUPON_NOT_FOUND: 404,
    ErrorKind.CONCURRENT_LIMIT_EXCEEDED: 409,
    ErrorKind.INSUFFICIENT_STOCK: 409,
}


def error_response(error: CheckoutError):
    return jsonify(error.to_dict()), STATUS_BY_KIND.get(error.kind, 400)


def serialize_order(db, order):
    data = order.to_dict()
    items = db.query(OrderItem).filter_by(order_id=order.order_id).all()
    history = (
        db.query(OrderStatusHistory)
        .filter_by(order_id=order.order_id)
        .order_by(OrderStatusHistory.created_at.asc())
        .all()
    )
    data["items"] = [i.to_dict() for i in items]
    data["status_history"] = [h.to_dict() for h in history]
    return data


@orders_bp.route("/orders/preview", methods=["POST"])
@require_user
def preview_order(user_id, db):
    """
    Prices the shopper's cart with an optional coupon without placing an order.
    ---
    Input (JSON):
        - coupon_code (str, optional)
    Output (200):
        - totals, line_items, coupon_code
    Errors:
        - 400: Empty cart or rejected coupon (with 'kind')
    """
    data = request.get_json(silent=True) or {}
    try:
        assembled = OrderService(db).preview(user_id, data.get("coupon_code"))
    except CheckoutError as e:
        return error_response(e)
    return jsonify(assembled.to_dict()), 200


@orders_bp.route("/orders", methods=["POST"])
@require_user
def place_order(user_id, db):
    """
    Places an order from the shopper's cart.

    Prices are frozen, stock is reserved and the coupon (if any) is redeemed
    in a single transaction. If the coupon's last use is taken by a concurrent
    order, nothing is written and the response carries the totals the
    shopper would pay without it so the client can ask before resubmitting.
    ---
    Input (JSON):
        - coupon_code (str, optional)
    Output (201):
        - The order with items and status history
    Errors:
        - 400: Empty cart, malformed line or rejected coupon
        - 409: Insufficient stock or coupon exhausted concurrently
    """
    data = request.get_json(silent=True) or {}
    coupon_code = data.get("coupon_code")
    service = OrderService(db)
    try:
        order = service.place_order(user_id, coupon_code)
    except ConcurrentLimitExceeded as e:
        payload = e.to_dict()
        try:
            payload["totals_without_coupon"] = service.preview(user_id, None).totals.to_dict()
        except CheckoutError as inner:
            logger.warning(f"Could not reprice cart for {user_id} without coupon: {inner.kind.value}")
            payload["totals_without_coupon"] = None
        return jsonify(payload), 409
    except CheckoutError as e:
        return error_response(e)

    return jsonify(serialize_order(db, order)), 201


@orders_bp.route("/orders/<order_id>", methods=["GET"])
@require_user
def get_order(user_id, db, order_id):
    order = db.query(Order).filter_by(order_id=order_id, user_id=user_id).first()
    if not order:
        return jsonify({"error": "Order not found"}), 404
    return jsonify(serialize_order(db, order)), 200
