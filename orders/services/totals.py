from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings

from core.exceptions import ValidationError

ZERO = Decimal("0.00")

DISCOUNT_FIXED = "fixed"
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_TYPES = (DISCOUNT_FIXED, DISCOUNT_PERCENTAGE)


def q2(val) -> Decimal:
    """Round decimal to 2 places."""
    return Decimal(val).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_decimal(value, field: str = "amount") -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def tax_rate() -> Decimal:
    return to_decimal(getattr(settings, "POS_TAX_RATE", "0.00"), "POS_TAX_RATE")


def compute_discount(subtotal: Decimal, value=0, discount_type: str = DISCOUNT_FIXED) -> Decimal:
    """
    Discount amount for ``subtotal``.

    ``percentage`` is clamped to 0..100 percent of the subtotal, ``fixed`` to
    0..subtotal. Negative values are rejected.
    """
    discount_type = (discount_type or DISCOUNT_FIXED).strip().lower()
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Invalid discount type '{discount_type}'. Use fixed or percentage")

    value = to_decimal(value, "discount value")
    if value < 0:
        raise ValidationError("Discount value cannot be negative")

    subtotal = q2(subtotal)
    if discount_type == DISCOUNT_PERCENTAGE:
        return q2(subtotal * min(value, Decimal("100")) / Decimal("100"))
    return q2(min(value, subtotal))


def compute_tax(taxable: Decimal) -> Decimal:
    return q2(max(ZERO, taxable) * tax_rate())


def compute_final(total: Decimal, discount: Decimal, tax: Decimal = ZERO) -> Decimal:
    """final = max(0, total - discount) + tax"""
    return q2(max(ZERO, q2(total) - q2(discount)) + q2(tax))


def allocate(amount: Decimal, weights: list[Decimal]) -> list[Decimal]:
    """
    Split ``amount`` across ``weights`` proportionally.

    Shares are rounded to cents and the last one absorbs the rounding
    remainder so the parts always sum to ``amount``.
    """
    amount = q2(amount)
    if not weights:
        return []
    total_weight = sum(weights, ZERO)
    if total_weight <= 0:
        shares = [ZERO] * len(weights)
        shares[-1] = amount
        return shares

    shares = [q2(amount * w / total_weight) for w in weights[:-1]]
    shares.append(q2(amount - sum(shares, ZERO)))
    return shares
