import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple
from sqlalchemy import update
from config import config, TaxPolicy, ShippingPolicy
from schema import CartItem, Coupon, Order, OrderItem, Product
from services.coupons import CouponService, CouponValidator, DiscountApplier
from services.errors import CouponInvalid, ErrorKind, InsufficientStock, InvalidInput
from services.ledger import CouponUsageLedger
from services.pricing import LineItem, OrderTotals, PriceCalculator, ZERO, to_decimal
from utils import generate_order_number, write_status_history

logger = logging.getLogger(__name__)

STATUS_PENDING = "Pending"


@dataclass(frozen=True)
class CartLine:
    """Cart contents as handed over by the cart collaborator."""
    product_id: str
    quantity: int
    current_unit_price: Decimal
    product_name: str = ""


@dataclass(frozen=True)
class AssembledOrder:
    totals: OrderTotals
    line_items: Tuple[LineItem, ...]
    coupon: Optional[Coupon] = field(default=None, compare=False)

    def to_dict(self):
        return {
            "totals": self.totals.to_dict(),
            "line_items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "unit_price": f"{item.unit_price:.2f}",
                    "quantity": item.quantity,
                    "total_price": f"{item.total_price:.2f}",
                }
                for item in self.line_items
            ],
            "coupon_code": self.coupon.code if self.coupon is not None else None,
        }


class OrderAssembler:
    """
    Computes an order's frozen line items and total breakdown entirely in memory.

    Coupon lookup and the shopper's prior redemption count come from injected
    collaborators, so assembly either returns a complete result or raises
    before anything is persisted.
    """

    def __init__(self, coupon_lookup: Callable[[str], Optional[Coupon]],
                 usage_counter: Callable[[str, Optional[str]], int],
                 calculator: Optional[PriceCalculator] = None,
                 validator: Optional[CouponValidator] = None,
                 applier: Optional[DiscountApplier] = None):
        self.coupon_lookup = coupon_lookup
        self.usage_counter = usage_counter
        self.calculator = calculator or PriceCalculator()
        self.validator = validator or CouponValidator()
        self.applier = applier or DiscountApplier()

    def assemble(self, cart_lines: Sequence[CartLine], coupon_code: Optional[str],
                 tax_policy: TaxPolicy, shipping_policy: ShippingPolicy,
                 user_id: Optional[str] = None, now: Optional[datetime] = None) -> AssembledOrder:
        """
        Args:
            cart_lines: Current cart contents with live product prices.
            coupon_code: Optional coupon code entered by the shopper.
            tax_policy: Tax rate applied to the discounted subtotal.
            shipping_policy: Flat fee and free-shipping threshold.
            user_id: Shopper placing the order, for per-user coupon caps.
            now: Evaluation instant for coupon validity.

        Returns:
            AssembledOrder with totals, frozen line items and the applied coupon.

        Raises:
            InvalidInput: Empty cart or malformed line.
            CouponInvalid: Unknown code or a coupon that fails validation.
            InvalidCoupon: Coupon with unusable discount settings.
        """
        if not cart_lines:
            raise InvalidInput("Cart is empty", kind=ErrorKind.EMPTY_CART)

        line_items = tuple(
            LineItem(
                product_id=line.product_id,
                unit_price=to_decimal(line.current_unit_price),
                quantity=line.quantity,
                product_name=line.product_name,
            )
            for line in cart_lines
        )
        sub_total = self.calculator.compute_subtotal(line_items)

        coupon = None
        discount_amount = ZERO
        if coupon_code:
            coupon = self.coupon_lookup(coupon_code)
            if coupon is None:
                raise CouponInvalid(ErrorKind.COUPON_NOT_FOUND)
            prior = self.usage_counter(coupon.coupon_id, user_id)
            result = self.validator.validate(coupon, sub_total, user_id, prior, now=now)
            if not result.valid:
                logger.info(f"Coupon {coupon.code} rejected for user {user_id}: {result.reason.value}")
                raise CouponInvalid(result.reason)
            discount_amount = self.applier.apply_discount(coupon, sub_total)

        taxable_base = sub_total - discount_amount
        tax_amount = self.calculator.compute_tax(taxable_base, tax_policy.rate)
        shipping_amount = self.calculator.compute_shipping(
            taxable_base, shipping_policy.flat_rate, shipping_policy.free_threshold
        )
        totals = OrderTotals(
            sub_total=sub_total,
            tax_amount=tax_amount,
            shipping_amount=shipping_amount,
            discount_amount=discount_amount,
            total_amount=taxable_base + tax_amount + shipping_amount,
        )
        return AssembledOrder(totals=totals, line_items=line_items, coupon=coupon)


class OrderService:
    """
    Order placement workflow around the assembler.

    Reads the shopper's cart, assembles the order in memory, then writes the
    order, its items, the stock decrements and the coupon redemption in one
    transaction.
    """

    def __init__(self, db, pricing=config):
        self.db = db
        self.pricing = pricing
        self.coupons = CouponService(db)
        self.ledger = CouponUsageLedger(db)
        self.assembler = OrderAssembler(
            coupon_lookup=self.coupons.get_by_code,
            usage_counter=self.coupons.count_user_redemptions,
        )

    def _load_cart(self, user_id: str) -> List[Tuple[CartItem, Product]]:
        return (
            self.db.query(CartItem, Product)
            .join(Product, CartItem.product_id == Product.product_id)
            .filter(CartItem.user_id == user_id)
            .filter(Product.is_deleted == False)
            .order_by(CartItem.added_at.asc())
            .all()
        )

    @staticmethod
    def _to_cart_lines(rows) -> List[CartLine]:
        return [
            CartLine(
                product_id=product.product_id,
                quantity=item.quantity,
                current_unit_price=product.price,
                product_name=product.name,
            )
            for item, product in rows
        ]

    def preview(self, user_id: str, coupon_code: Optional[str] = None,
                now: Optional[datetime] = None) -> AssembledOrder:
        """
        Prices the shopper's cart without writing anything.
        """
        rows = self._load_cart(user_id)
        return self.assembler.assemble(
            self._to_cart_lines(rows),
            coupon_code,
            self.pricing.tax_policy,
            self.pricing.shipping_policy,
            user_id=user_id,
            now=now,
        )

    def place_order(self, user_id: str, coupon_code: Optional[str] = None,
                    now: Optional[datetime] = None) -> Order:
        """
        Converts the shopper's cart into a persisted order.

        Args:
            user_id: Shopper placing the order.
            coupon_code: Optional coupon to apply.
            now: Evaluation instant for coupon validity.

        Returns:
            The committed Order row.

        Raises:
            CheckoutError: Any pricing, coupon, stock or redemption failure.
                The transaction is rolled back and the cart is left intact.
        """
        try:
            rows = self._load_cart(user_id)
            for item, product in rows:
                if product.stock_quantity < item.quantity:
                    raise InsufficientStock(f"Insufficient stock for {product.name}")

            assembled = self.assembler.assemble(
                self._to_cart_lines(rows),
                coupon_code,
                self.pricing.tax_policy,
                self.pricing.shipping_policy,
                user_id=user_id,
                now=now,
            )
            totals = assembled.totals
            created_at = datetime.now(timezone.utc)

            order = Order(
                order_id=str(uuid.uuid4()),
                order_number=generate_order_number(self.db),
                user_id=user_id,
                status=STATUS_PENDING,
                sub_total=totals.sub_total,
                tax_amount=totals.tax_amount,
                shipping_amount=totals.shipping_amount,
                discount_amount=totals.discount_amount,
                total_amount=totals.total_amount,
                coupon_id=assembled.coupon.coupon_id if assembled.coupon is not None else None,
                coupon_code=assembled.coupon.code if assembled.coupon is not None else None,
                created_at=created_at,
                updated_at=created_at,
            )
            self.db.add(order)

            for line in assembled.line_items:
                self.db.add(OrderItem(
                    order_item_id=str(uuid.uuid4()),
                    order_id=order.order_id,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    total_price=line.total_price,
                ))

            write_status_history(self.db, order.order_id, STATUS_PENDING, "Order placed successfully")

            for line in assembled.line_items:
                result = self.db.execute(
                    update(Product)
                    .where(Product.product_id == line.product_id)
                    .where(Product.stock_quantity >= line.quantity)
                    .values(stock_quantity=Product.stock_quantity - line.quantity, updated_at=created_at)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise InsufficientStock(f"Insufficient stock for {line.product_name or line.product_id}")

            if assembled.coupon is not None:
                self.ledger.redeem(
                    assembled.coupon.coupon_id,
                    user_id,
                    order.order_id,
                    totals.discount_amount,
                    commit=False,
                )

            for item, _ in rows:
                self.db.delete(item)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} placed for {user_id}: total {totals.total_amount}")
        return order
