from decimal import InvalidOperation
from flask import Blueprint, request, jsonify
from db import get_db
from services.coupons import CouponService, CouponValidator, DiscountApplier
from services.errors import CheckoutError, ErrorKind, REASON_MESSAGES
from services.pricing import ZERO, quantize_money

coupons_bp = Blueprint("coupons", __name__)


def serialize_coupon(coupon):
    data = coupon.to_dict()
    data.pop("is_deleted", None)
    if coupon.usage_limit is not None:
        data["remaining_uses"] = max(coupon.usage_limit - (coupon.used_count or 0), 0)
    else:
        data["remaining_uses"] = None
    return data


@coupons_bp.route("/coupons/active", methods=["GET"])
def list_active_coupons():
    """
    Lists coupons a shopper could apply right now.

    Returns:
        Coupons that are active, inside their validity window and not exhausted.
    """
    db = next(get_db())
    try:
        coupons = CouponService(db).list_active()
        return jsonify([serialize_coupon(c) for c in coupons]), 200
    finally:
        db.close()


@coupons_bp.route("/coupons/code/<code>", methods=["GET"])
def get_coupon_by_code(code):
    db = next(get_db())
    try:
        coupon = CouponService(db).get_by_code(code)
        if not coupon:
            return jsonify({"error": "Coupon not found"}), 404
        return jsonify(serialize_coupon(coupon)), 200
    finally:
        db.close()


@coupons_bp.route("/coupons/validate", methods=["POST"])
def validate_coupon():
    """
    Checks whether a coupon applies to a proposed order amount.

    A rejected coupon is a normal outcome, so it is reported with 200 and
    valid=false plus the rejection kind; nothing is reserved or consumed.
    ---
    Input (JSON):
        - code (str): Coupon code, case-insensitive
        - order_amount (str|number): Pre-discount order amount
    Headers:
        - X-User-ID (optional): Enables the per-user usage check
    Errors:
        - 400: Missing code or unparseable order_amount
    """
    data = request.get_json() or {}
    code = data.get("code")
    user_id = request.headers.get("X-User-ID")

    if not code:
        return jsonify({"error": "code is required"}), 400
    try:
        order_amount = quantize_money(str(data.get("order_amount")))
    except InvalidOperation:
        return jsonify({"error": "order_amount must be a decimal amount"}), 400
    if not order_amount.is_finite():
        return jsonify({"error": "order_amount must be a decimal amount"}), 400
    if order_amount < 0:
        return jsonify({"error": "order_amount cannot be negative"}), 400

    db = next(get_db())
    try:
        service = CouponService(db)
        coupon = service.get_by_code(code)
        if not coupon:
            return jsonify({
                "valid": False,
                "code": code,
                "reason": ErrorKind.COUPON_NOT_FOUND.value,
                "message": REASON_MESSAGES[ErrorKind.COUPON_NOT_FOUND],
                "discount_amount": f"{ZERO:.2f}",
            }), 200

        prior = service.count_user_redemptions(coupon.coupon_id, user_id)
        result = CouponValidator().validate(coupon, order_amount, user_id, prior)
        if not result.valid:
            return jsonify({
                "valid": False,
                "code": coupon.code,
                "reason": result.reason.value,
                "message": result.message,
                "discount_amount": f"{ZERO:.2f}",
            }), 200

        try:
            discount = DiscountApplier().apply_discount(coupon, order_amount)
        except CheckoutError as e:
            return jsonify({"valid": False, "code": coupon.code, "reason": e.kind.value,
                            "message": e.message, "discount_amount": f"{ZERO:.2f}"}), 200

        return jsonify({
            "valid": True,
            "code": coupon.code,
            "coupon_id": coupon.coupon_id,
            "discount_type": coupon.discount_type,
            "discount_value": f"{coupon.discount_value:.2f}",
            "discount_amount": f"{discount:.2f}",
        }), 200
    finally:
        db.close()
