from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union
from services.errors import InvalidInput

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

Money = Union[Decimal, int, str, float]


def to_decimal(value: Money) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # Via str so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value: Money) -> Decimal:
    """
    Rounds an amount to whole cents using round-half-up (never banker's rounding).
    """
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItem:
    """A product line frozen at order time; unit_price never follows later catalog changes."""
    product_id: str
    unit_price: Decimal
    quantity: int
    product_name: str = ""

    @property
    def total_price(self) -> Decimal:
        return quantize_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class OrderTotals:
    sub_total: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    def to_dict(self):
        return {
            "sub_total": f"{self.sub_total:.2f}",
            "tax_amount": f"{self.tax_amount:.2f}",
            "shipping_amount": f"{self.shipping_amount:.2f}",
            "discount_amount": f"{self.discount_amount:.2f}",
            "total_amount": f"{self.total_amount:.2f}",
        }


class PriceCalculator:
    """
    Stateless money arithmetic for checkout: subtotal, tax and shipping.

    Tax and shipping are meant to be computed on the discounted subtotal;
    the order assembler is responsible for passing that base in.
    """

    def compute_subtotal(self, line_items: Iterable[LineItem]) -> Decimal:
        """
        Args:
            line_items: Frozen line items to price.

        Returns:
            Sum of unit_price * quantity rounded half-up to cents.

        Raises:
            InvalidInput: If any quantity is not positive or any price is negative.
        """
        total = ZERO
        for item in line_items:
            if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity <= 0:
                raise InvalidInput(f"Quantity must be a positive integer for product {item.product_id}")
            unit_price = to_decimal(item.unit_price)
            if unit_price < 0:
                raise InvalidInput(f"Unit price cannot be negative for product {item.product_id}")
            total += unit_price * item.quantity
        return quantize_money(total)

    def compute_tax(self, base_amount: Money, rate: Money) -> Decimal:
        return quantize_money(to_decimal(base_amount) * to_decimal(rate))

    def compute_shipping(self, base_amount: Money, flat_rate: Money, free_threshold: Money) -> Decimal:
        if to_decimal(base_amount) >= to_decimal(free_threshold):
            return ZERO
        return quantize_money(flat_rate)
