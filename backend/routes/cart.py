import uuid
from datetime import datetime, timezone
from functools import wraps
from flask import Blueprint, request, jsonify
from db import get_db
from schema import CartItem, Product

cart_bp = Blueprint("cart", __name__)

# Per cart line, after merging
MAX_CART_QUANTITY = 999


def get_live_product(db, product_id):
    """
    Retrieves a product that has not been soft-deleted.

    Args:
        db: The active database session.
        product_id: Identifier of the product to look up.

    Returns:
        The Product instance, or None if it does not exist or is deleted.
    """
    return (
        db.query(Product)
        .filter_by(product_id=product_id)
        .filter(Product.is_deleted == False)
        .first()
    )


def require_user(f):
    """
    Decorator that ensures an X-User-ID header is present.

    Identity is established upstream; this only reads the shopper id and
    opens a database session for the wrapped handler, passing both in as
    'user_id' and 'db'.

    Args:
        f: The route handler function to be protected.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        user_id = request.headers.get("X-User-ID")
        if not user_id:
            return jsonify({"error": "Missing X-User-ID header"}), 401
        db = next(get_db())
        try:
            return f(*args, user_id=user_id, db=db, **kwargs)
        finally:
            db.close()
    return decorated


@cart_bp.route("/cart", methods=["GET"])
@require_user
def get_cart(user_id, db):
    """
    Lists the shopper's cart with current catalog prices.

    Prices shown here are live; they are only frozen when an order is placed.
    """
    rows = (
        db.query(CartItem, Product)
        .join(Product, CartItem.product_id == Product.product_id)
        .filter(CartItem.user_id == user_id)
        .filter(Product.is_deleted == False)
        .order_by(CartItem.added_at.asc())
        .all()
    )
    items = []
    for item, product in rows:
        items.append({
            "product_id": product.product_id,
            "name": product.name,
            "unit_price": f"{product.price:.2f}",
            "quantity": item.quantity,
            "in_stock": product.stock_quantity >= item.quantity,
        })
    return jsonify({"user_id": user_id, "items": items}), 200


@cart_bp.route("/cart/items", methods=["POST"])
@require_user
def add_cart_item(user_id, db):
    """
    Adds a product to the cart, merging with an existing line for the same product.
    ---
    Input (JSON):
        - product_id (str): Product to add
        - quantity (int, optional): Units to add, defaults to 1
    Errors:
        - 400: Missing product_id, or quantity not in 1..MAX_CART_QUANTITY (merged line included)
        - 404: Unknown or deleted product
    """
    data = request.get_json() or {}
    product_id = data.get("product_id")
    quantity = data.get("quantity", 1)

    if not product_id:
        return jsonify({"error": "product_id is required"}), 400
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        return jsonify({"error": "quantity must be a positive integer"}), 400
    if quantity > MAX_CART_QUANTITY:
        return jsonify({"error": f"quantity cannot exceed {MAX_CART_QUANTITY}"}), 400

    product = get_live_product(db, product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404

    try:
        item = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
        if item:
            if item.quantity + quantity > MAX_CART_QUANTITY:
                return jsonify({"error": f"quantity cannot exceed {MAX_CART_QUANTITY}"}), 400
            item.quantity += quantity
        else:
            item = CartItem(
                cart_item_id=str(uuid.uuid4()),
                user_id=user_id,
                product_id=product_id,
                quantity=quantity,
                added_at=datetime.now(timezone.utc),
            )
            db.add(item)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return jsonify({"product_id": product_id, "quantity": item.quantity}), 201


@cart_bp.route("/cart/items/<product_id>", methods=["DELETE"])
@require_user
def remove_cart_item(user_id, db, product_id):
    item = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
    if not item:
        return jsonify({"error": "Item not in cart"}), 404
    db.delete(item)
    db.commit()
    return jsonify({"message": "Item removed", "product_id": product_id}), 200
