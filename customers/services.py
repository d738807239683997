from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, F, Sum

from core.exceptions import ConflictError, ValidationError, wrap_database_errors
from .models import Customer, LoyaltyTransaction

logger = logging.getLogger(__name__)

MEMBERSHIP_DISCOUNT_PERCENT = {
    Customer.MEMBERSHIP_REGULAR: Decimal("0"),
    Customer.MEMBERSHIP_SILVER: Decimal("5"),
    Customer.MEMBERSHIP_GOLD: Decimal("10"),
    Customer.MEMBERSHIP_PLATINUM: Decimal("15"),
}

# Display order for membership stats
MEMBERSHIP_RANK = [
    Customer.MEMBERSHIP_PLATINUM,
    Customer.MEMBERSHIP_GOLD,
    Customer.MEMBERSHIP_SILVER,
    Customer.MEMBERSHIP_REGULAR,
]


def get_membership_discount_percent(customer_id) -> Decimal:
    """Tier discount in percent; an unknown or missing customer gets 0."""
    if customer_id is None:
        return Decimal("0")
    tier = Customer.objects.filter(pk=customer_id).values_list("membership_type", flat=True).first()
    return MEMBERSHIP_DISCOUNT_PERCENT.get(tier, Decimal("0"))


def membership_stats() -> list[dict]:
    rows = {
        row["membership_type"]: row
        for row in Customer.objects.values("membership_type").annotate(
            count=Count("id"),
            avg_points=Avg("loyalty_points"),
            total_spent=Sum("total_spent"),
        )
    }
    stats = []
    for tier in MEMBERSHIP_RANK:
        row = rows.get(tier)
        if not row:
            continue
        stats.append({
            "membership_type": tier,
            "count": row["count"],
            "avg_points": float(row["avg_points"] or 0),
            "total_spent": row["total_spent"] or Decimal("0.00"),
            "discount_percent": MEMBERSHIP_DISCOUNT_PERCENT[tier],
        })
    return stats


def record_spend(customer_id, amount: Decimal) -> None:
    """Move the customer's running total by ``amount`` (negative on refund)."""
    if customer_id is None or not amount:
        return
    Customer.objects.filter(pk=customer_id).update(total_spent=F("total_spent") + amount)


@wrap_database_errors
def adjust_loyalty_points(customer: Customer, points: int, transaction_type: str, description: str = "",
                          order=None, by_user=None) -> Customer:
    """Earn/bonus adds points; redeem subtracts and floors at zero."""
    if transaction_type not in dict(LoyaltyTransaction.TYPE_CHOICES):
        raise ValidationError("Invalid type. Use earn, bonus, or redeem")
    if not points or int(points) <= 0:
        raise ValidationError("Points must be a positive integer")
    points = int(points)

    with transaction.atomic():
        locked = Customer.objects.select_for_update().get(pk=customer.pk)
        if transaction_type == LoyaltyTransaction.TYPE_REDEEM:
            applied = -min(points, locked.loyalty_points)
        else:
            applied = points
        Customer.objects.filter(pk=locked.pk).update(loyalty_points=F("loyalty_points") + applied)
        LoyaltyTransaction.objects.create(
            customer=locked,
            order=order,
            transaction_type=transaction_type,
            points=applied,
            description=description,
            created_by=by_user,
        )

    logger.info(f"Loyalty {transaction_type} {points} for customer {customer.pk} (applied {applied:+d})")
    locked.refresh_from_db()
    return locked


@wrap_database_errors
def delete_customer(customer: Customer) -> None:
    if customer.orders.exists():
        raise ConflictError(
            "Cannot delete customer with existing orders. Customer data will be retained for record keeping."
        )
    logger.info(f"Customer {customer.pk} deleted")
    customer.delete()
