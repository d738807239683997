from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Count, Sum

from billing.services import record_payment
from core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    wrap_database_errors,
)
from customers.services import record_spend
from ..models import Order, UnpaidLedgerEntry
from .engine import ensure_not_claimed
from .totals import ZERO, q2

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("customer_name", "customer_phone", "table_number", "notes")


def get_unpaid_entry(entry_id) -> UnpaidLedgerEntry:
    try:
        return UnpaidLedgerEntry.objects.select_related("order").get(pk=entry_id)
    except (UnpaidLedgerEntry.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Unpaid order {entry_id} not found")


def list_unpaid(customer_name: str | None = None, table_number: str | None = None):
    qs = UnpaidLedgerEntry.objects.select_related("order").order_by("-created_at")
    if customer_name:
        qs = qs.filter(customer_name__icontains=customer_name.strip())
    if table_number:
        qs = qs.filter(table_number__iexact=table_number.strip())
    return qs


def _items_summary(order: Order) -> list[dict]:
    return [
        {
            "product_name": item.product.name,
            "quantity": item.quantity,
            "unit_price": str(item.unit_price),
            "total_price": str(item.total_price),
        }
        for item in order.items.select_related("product")
    ]


@wrap_database_errors
def add_to_unpaid(order: Order, customer_name: str, customer_phone: str = "", table_number: str = "",
                  notes: str = "", by_user=None) -> UnpaidLedgerEntry:
    """
    Put ``order`` on the unpaid ledger under a customer name.

    The order itself is left alone but is no longer billed to its table. An
    order claimed by an open combined bill must be released first. An order
    that is already paid may still be added; the entry is flagged
    ``order_was_paid`` so the double state is visible.
    """
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("Customer name is required")

    with transaction.atomic():
        locked = (
            Order.objects.select_for_update(of=("self",))
            .select_related("customer", "combined_into")
            .get(pk=order.pk)
        )
        ensure_not_claimed(locked)
        if UnpaidLedgerEntry.objects.filter(order=locked).exists():
            raise ConflictError(f"Order {locked.order_number} is already in the unpaid table")

        was_paid = locked.payment_status == Order.PAYMENT_COMPLETED
        if not customer_phone and locked.customer_id:
            customer_phone = locked.customer.phone

        entry = UnpaidLedgerEntry(
            order=locked,
            customer_name=customer_name,
            customer_phone=customer_phone or "",
            table_number=table_number or locked.table_number,
            total_amount=locked.final_amount,
            items_summary=_items_summary(locked),
            notes=notes or "",
            order_was_paid=was_paid,
            created_by=by_user,
        )
        entry.save()

    if was_paid:
        logger.warning(f"Order {locked.order_number} is already paid but was added to the unpaid ledger")
    logger.info(f"Order {locked.order_number} added to unpaid ledger for '{entry.customer_name}' ({entry.total_amount})")
    return entry


@wrap_database_errors
def mark_unpaid_as_paid(entry: UnpaidLedgerEntry, payment_method: str = Order.METHOD_CASH, notes: str = "",
                        by_user=None) -> Order:
    """
    Collect a ledger debt: complete the order, record the payment, drop the entry.

    When the order was already paid (flagged entry, or settled with the table
    meanwhile) the entry is only reconciled; no second payment is written.
    """
    if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise ValidationError(f"Invalid payment method '{payment_method}'")

    with transaction.atomic():
        locked_entry = UnpaidLedgerEntry.objects.select_for_update().filter(pk=entry.pk).first()
        if locked_entry is None:
            raise NotFoundError(f"Unpaid order {entry.pk} not found")

        order = (
            Order.objects.select_for_update(of=("self",))
            .select_related("combined_into")
            .get(pk=locked_entry.order_id)
        )
        if order.order_status in (Order.STATUS_CANCELLED, Order.STATUS_REFUNDED):
            raise InvalidTransitionError(
                f"Order {order.order_number} is {order.order_status} and cannot be marked as paid"
            )
        ensure_not_claimed(order)

        was_paid = order.payment_status == Order.PAYMENT_COMPLETED
        if not was_paid:
            order.payment_method = payment_method
            order.payment_status = Order.PAYMENT_COMPLETED
        if order.order_status == Order.STATUS_ACTIVE:
            order.transition_to(Order.STATUS_COMPLETED, by_user=by_user, reason="Unpaid order settled")
        elif not was_paid:
            order.save(update_fields=["payment_method", "payment_status", "updated_at"])

        if not was_paid:
            record_payment(
                order,
                locked_entry.total_amount,
                payment_method,
                reference=f"UNPAID-{locked_entry.pk}",
                notes=notes,
                by_user=by_user,
            )
            record_spend(order.customer_id, order.final_amount)

        customer_name = locked_entry.customer_name
        locked_entry.delete()

    if was_paid:
        logger.warning(f"Unpaid entry for {order.order_number} reconciled; the order was already paid")
    else:
        logger.info(f"Unpaid order {order.order_number} for '{customer_name}' marked as paid ({payment_method})")
    return order


@wrap_database_errors
def remove_from_unpaid(entry: UnpaidLedgerEntry) -> None:
    order_number = entry.order.order_number
    entry.delete()
    logger.info(f"Order {order_number} removed from unpaid ledger")


@wrap_database_errors
def update_unpaid(entry: UnpaidLedgerEntry, **fields) -> UnpaidLedgerEntry:
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    for name, value in fields.items():
        setattr(entry, name, value if value is not None else "")
    entry.save()
    return entry


def compute_stats() -> dict:
    totals = UnpaidLedgerEntry.objects.aggregate(
        count=Count("id"),
        amount=Sum("total_amount"),
        customers=Count("customer_name", distinct=True),
    )
    breakdown = (
        UnpaidLedgerEntry.objects.values("customer_name")
        .annotate(order_count=Count("id"), total_amount=Sum("total_amount"))
        .order_by("-total_amount", "customer_name")[:10]
    )
    return {
        "total_unpaid_orders": totals["count"] or 0,
        "total_unpaid_amount": q2(totals["amount"] or ZERO),
        "unique_customers": totals["customers"] or 0,
        "customer_breakdown": [
            {
                "customer_name": row["customer_name"],
                "order_count": row["order_count"],
                "total_amount": q2(row["total_amount"] or ZERO),
            }
            for row in breakdown
        ],
    }
