from sqlalchemy import Column, Integer, String, Numeric, Boolean, Text, ForeignKey, DateTime, UniqueConstraint
from base import Base

MONEY = Numeric(18, 2)


class Product(Base):
    __tablename__ = 'products'
    product_id = Column(String, primary_key=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(100))
    price = Column(MONEY, nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class CartItem(Base):
    __tablename__ = 'cart_items'
    __table_args__ = (UniqueConstraint('user_id', 'product_id', name='uq_cart_user_product'),)
    cart_item_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    product_id = Column(String, ForeignKey('products.product_id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime)


class Coupon(Base):
    __tablename__ = 'coupons'
    coupon_id = Column(String, primary_key=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(200), nullable=False, default="")
    description = Column(String(500))
    discount_type = Column(String, nullable=False)
    discount_value = Column(MONEY, nullable=False)
    min_order_amount = Column(MONEY)
    max_discount_amount = Column(MONEY)
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    usage_limit = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0)
    usage_limit_per_user = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class CouponUsage(Base):
    __tablename__ = 'coupon_usages'
    usage_id = Column(String, primary_key=True)
    coupon_id = Column(String, ForeignKey('coupons.coupon_id'), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    order_id = Column(String, ForeignKey('orders.order_id'), nullable=False)
    discount_amount = Column(MONEY, nullable=False)
    used_at = Column(DateTime, nullable=False)
    notes = Column(String(500))


class Order(Base):
    __tablename__ = 'orders'
    order_id = Column(String, primary_key=True)
    order_number = Column(String(50), nullable=False, unique=True)
    user_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="Pending")
    sub_total = Column(MONEY, nullable=False)
    tax_amount = Column(MONEY, nullable=False)
    shipping_amount = Column(MONEY, nullable=False)
    discount_amount = Column(MONEY, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    coupon_id = Column(String, ForeignKey('coupons.coupon_id'))
    coupon_code = Column(String(50))
    notes = Column(Text)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class OrderItem(Base):
    __tablename__ = 'order_items'
    order_item_id = Column(String, primary_key=True)
    order_id = Column(String, ForeignKey('orders.order_id'), nullable=False, index=True)
    product_id = Column(String, ForeignKey('products.product_id'), nullable=False)
    # Snapshot of the product at order time
    product_name = Column(String(200), nullable=False)
    unit_price = Column(MONEY, nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(MONEY, nullable=False)


class OrderStatusHistory(Base):
    __tablename__ = 'order_status_history'
    history_id = Column(String, primary_key=True)
    order_id = Column(String, ForeignKey('orders.order_id'), nullable=False, index=True)
    status = Column(String, nullable=False)
    comments = Column(Text)
    created_at = Column(DateTime, nullable=False)
