import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TaxPolicy:
    """Flat tax applied to the discounted subtotal."""
    rate: Decimal


@dataclass(frozen=True)
class ShippingPolicy:
    """Flat shipping fee, waived once the discounted subtotal reaches the threshold."""
    flat_rate: Decimal
    free_threshold: Decimal


@dataclass(frozen=True)
class PricingConfig:
    # GST for electronics
    TAX_RATE: Decimal = Decimal(os.environ.get("TAX_RATE", "0.18"))

    # Shipping
    SHIPPING_FLAT_RATE: Decimal = Decimal(os.environ.get("SHIPPING_FLAT_RATE", "50.00"))
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal(os.environ.get("FREE_SHIPPING_THRESHOLD", "999.00"))

    # Currency
    CURRENCY_CODE: str = os.environ.get("CURRENCY_CODE", "INR")

    @property
    def tax_policy(self) -> TaxPolicy:
        return TaxPolicy(rate=self.TAX_RATE)

    @property
    def shipping_policy(self) -> ShippingPolicy:
        return ShippingPolicy(flat_rate=self.SHIPPING_FLAT_RATE, free_threshold=self.FREE_SHIPPING_THRESHOLD)


config = PricingConfig()
