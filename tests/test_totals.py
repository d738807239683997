from decimal import Decimal

import pytest

from core.exceptions import ValidationError
from orders.services.totals import allocate, compute_discount, compute_final, compute_tax, q2


def test_percentage_discount_is_clamped_to_subtotal():
    assert compute_discount(Decimal("80.00"), 25, "percentage") == Decimal("20.00")
    assert compute_discount(Decimal("80.00"), 150, "percentage") == Decimal("80.00")


def test_fixed_discount_never_exceeds_subtotal():
    assert compute_discount(Decimal("50.00"), "12.345", "fixed") == Decimal("12.35")
    assert compute_discount(Decimal("50.00"), 75, "fixed") == Decimal("50.00")


def test_discount_rejects_negative_value_and_unknown_type():
    with pytest.raises(ValidationError):
        compute_discount(Decimal("10.00"), -1)
    with pytest.raises(ValidationError):
        compute_discount(Decimal("10.00"), 1, "coupon")
    with pytest.raises(ValidationError):
        compute_discount(Decimal("10.00"), "abc")


def test_final_amount_floors_at_zero_before_tax():
    assert compute_final(Decimal("10.00"), Decimal("15.00"), Decimal("1.30")) == Decimal("1.30")
    assert compute_final(Decimal("200.00"), Decimal("20.00")) == Decimal("180.00")


def test_tax_uses_configured_rate(settings):
    settings.POS_TAX_RATE = "0.13"
    assert compute_tax(Decimal("180.00")) == Decimal("23.40")
    assert compute_tax(Decimal("-5.00")) == Decimal("0.00")


def test_allocate_sums_exactly_to_amount():
    shares = allocate(Decimal("10.00"), [Decimal("1"), Decimal("1"), Decimal("1")])
    assert shares == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
    assert sum(shares) == Decimal("10.00")


def test_allocate_with_zero_weights_puts_amount_on_last_share():
    assert allocate(Decimal("5.00"), [Decimal("0"), Decimal("0")]) == [Decimal("0.00"), Decimal("5.00")]
    assert allocate(Decimal("5.00"), []) == []


def test_q2_rounds_half_up():
    assert q2("2.005") == Decimal("2.01")
    assert q2(Decimal("2.004")) == Decimal("2.00")
