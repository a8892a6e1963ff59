import uuid
import schema
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from config import TaxPolicy, ShippingPolicy

TAX = TaxPolicy(rate=Decimal("0.18"))
SHIPPING = ShippingPolicy(flat_rate=Decimal("50.00"), free_threshold=Decimal("999.00"))


def make_coupon(**overrides):
    """Builds a transient coupon valid from yesterday until tomorrow."""
    now = datetime.now(timezone.utc)
    fields = dict(
        coupon_id=str(uuid.uuid4()),
        code="SAVE10",
        name="Ten percent off",
        discount_type="Percentage",
        discount_value=Decimal("10"),
        min_order_amount=None,
        max_discount_amount=None,
        valid_from=now - timedelta(days=1),
        valid_to=now + timedelta(days=1),
        usage_limit=None,
        used_count=0,
        usage_limit_per_user=None,
        is_active=True,
        is_deleted=False,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return schema.Coupon(**fields)


def seed_coupon(db, **overrides):
    coupon = make_coupon(**overrides)
    db.add(coupon)
    db.commit()
    return coupon


def seed_product(db, name="USB-C Cable", price="250.00", stock=10, **overrides):
    now = datetime.now(timezone.utc)
    product = schema.Product(
        product_id=overrides.pop("product_id", str(uuid.uuid4())),
        name=name,
        sku=overrides.pop("sku", name.upper().replace(" ", "-")),
        price=Decimal(price),
        stock_quantity=stock,
        is_deleted=overrides.pop("is_deleted", False),
        created_at=now,
        updated_at=now,
    )
    db.add(product)
    db.commit()
    return product


def add_to_cart(client, uid, product_id, quantity=1):
    return client.post(
        "/api/v1/cart/items",
        json={"product_id": product_id, "quantity": quantity},
        headers={"X-User-ID": uid},
    )


def place_order(client, uid, coupon_code=None):
    body = {"coupon_code": coupon_code} if coupon_code else {}
    return client.post("/api/v1/orders", json=body, headers={"X-User-ID": uid})


def preview_order(client, uid, coupon_code=None):
    body = {"coupon_code": coupon_code} if coupon_code else {}
    return client.post("/api/v1/orders/preview", json=body, headers={"X-User-ID": uid})
