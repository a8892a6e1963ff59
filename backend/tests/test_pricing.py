import pytest
from decimal import Decimal
from services.errors import ErrorKind, InvalidInput
from services.pricing import LineItem, PriceCalculator, quantize_money


@pytest.fixture
def calc():
    return PriceCalculator()


def item(price, qty, pid="p1"):
    return LineItem(product_id=pid, unit_price=Decimal(price), quantity=qty)


class TestSubtotal:
    def test_sums_unit_price_times_quantity(self, calc):
        items = [item("250.00", 2), item("99.99", 3, "p2")]
        assert calc.compute_subtotal(items) == Decimal("799.97")

    def test_empty_list_is_zero(self, calc):
        assert calc.compute_subtotal([]) == Decimal("0.00")

    def test_rounds_half_up_not_bankers(self, calc):
        # 0.125 would round to 0.12 under ROUND_HALF_EVEN
        assert calc.compute_subtotal([item("0.125", 1)]) == Decimal("0.13")
        assert calc.compute_subtotal([item("2.675", 1)]) == Decimal("2.68")

    def test_is_invariant_to_item_order(self, calc):
        items = [item("19.995", 1, "a"), item("0.335", 3, "b"), item("1499.00", 1, "c")]
        forward = calc.compute_subtotal(items)
        backward = calc.compute_subtotal(list(reversed(items)))
        assert forward == backward == Decimal("1520.00")

    def test_zero_quantity_raises(self, calc):
        with pytest.raises(InvalidInput) as exc:
            calc.compute_subtotal([item("10.00", 0)])
        assert exc.value.kind == ErrorKind.INVALID_INPUT

    def test_negative_quantity_raises(self, calc):
        with pytest.raises(InvalidInput):
            calc.compute_subtotal([item("10.00", -2)])

    def test_boolean_quantity_raises(self, calc):
        with pytest.raises(InvalidInput):
            calc.compute_subtotal([item("10.00", True)])

    def test_negative_price_raises(self, calc):
        with pytest.raises(InvalidInput):
            calc.compute_subtotal([item("-0.01", 1)])

    def test_free_item_is_allowed(self, calc):
        assert calc.compute_subtotal([item("0.00", 4)]) == Decimal("0.00")


class TestTaxAndShipping:
    def test_tax_is_rounded_to_cents(self, calc):
        assert calc.compute_tax(Decimal("950.00"), Decimal("0.18")) == Decimal("171.00")
        # 33.33 * 0.18 = 5.9994
        assert calc.compute_tax(Decimal("33.33"), Decimal("0.18")) == Decimal("6.00")

    def test_tax_on_zero_base(self, calc):
        assert calc.compute_tax(Decimal("0"), Decimal("0.18")) == Decimal("0.00")

    def test_shipping_charged_below_threshold(self, calc):
        assert calc.compute_shipping(Decimal("998.99"), Decimal("50"), Decimal("999")) == Decimal("50.00")

    def test_shipping_waived_at_threshold(self, calc):
        assert calc.compute_shipping(Decimal("999.00"), Decimal("50"), Decimal("999")) == Decimal("0")

    def test_shipping_waived_above_threshold(self, calc):
        assert calc.compute_shipping(Decimal("5000"), Decimal("50"), Decimal("999")) == Decimal("0")


def test_quantize_money_accepts_floats_via_str():
    assert quantize_money(0.1) == Decimal("0.10")
    assert quantize_money("1.005") == Decimal("1.01")


def test_line_item_total_price():
    assert item("33.335", 3).total_price == Decimal("100.01")
