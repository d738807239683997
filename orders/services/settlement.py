"""
Table settlement: combining a table's open orders into one bill, taking
payment for the whole table, and resetting or clearing tables.

The table row is locked first in every operation, so two terminals working
on the same table are serialised.
"""
from __future__ import annotations

import logging
from collections import OrderedDict

from django.db import transaction
from django.db.models import Exists, OuterRef, Q
from django.utils import timezone

from billing.services import record_payment
from catalog.models import InventoryTransaction
from core.exceptions import ConflictError, NotFoundError, ValidationError, wrap_database_errors
from core.models import Table
from customers.services import record_spend
from ..models import Order, UnpaidLedgerEntry
from .engine import restore_order_stock, sum_final
from .totals import DISCOUNT_FIXED, ZERO, allocate, compute_discount, compute_final, q2, to_decimal

logger = logging.getLogger(__name__)


def get_table(table_id) -> Table:
    try:
        return Table.objects.get(pk=table_id)
    except (Table.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Table {table_id} not found")


def _lock_table(table: Table) -> Table:
    return Table.objects.select_for_update().get(pk=table.pk)


def outstanding_orders(table: Table):
    """
    Regular orders of the table that have not been paid for.

    Orders moved to the unpaid ledger belong to a named customer now and are
    no longer billed to the table.
    """
    on_ledger = UnpaidLedgerEntry.objects.filter(order=OuterRef("pk"))
    return (
        Order.objects.filter(
            table=table,
            kind=Order.KIND_REGULAR,
            order_status__in=[Order.STATUS_ACTIVE, Order.STATUS_COMPLETED],
        )
        .exclude(payment_status=Order.PAYMENT_COMPLETED)
        .filter(~Exists(on_ledger))
        .order_by("created_at", "id")
    )


def open_combined_bill(table: Table):
    return (
        Order.objects.filter(
            kind=Order.KIND_COMBINED,
            combined_source_table=table,
            order_status=Order.STATUS_ACTIVE,
        )
        .order_by("-created_at")
        .first()
    )


@wrap_database_errors
def combine_table_orders(table: Table, discount_value=0, discount_type: str = DISCOUNT_FIXED,
                         by_user=None) -> Order:
    """
    Claim every unclaimed outstanding order of the table into one combined bill.

    The constituents are kept; they only point at the new bill. An optional
    discount is applied to the combined total.
    """
    with transaction.atomic():
        table = _lock_table(table)

        existing = open_combined_bill(table)
        if existing is not None:
            raise ConflictError(
                f"Table {table.table_number} already has an open combined bill ({existing.order_number})"
            )

        eligible = list(
            outstanding_orders(table).filter(combined_into__isnull=True).select_for_update()
        )
        if not eligible:
            raise NotFoundError(
                f"No orders available for table {table.table_number}. Orders may have already been combined."
            )

        total = sum_final(eligible)
        discount = compute_discount(total, discount_value, discount_type)
        combined = Order(
            kind=Order.KIND_COMBINED,
            combined_source_table=table,
            table_number=table.table_number,
            order_type=Order.TYPE_DINE_IN,
            total_amount=total,
            discount_amount=discount,
            tax_amount=ZERO,
            final_amount=compute_final(total, discount),
            notes=f"Combined bill for table {table.table_number} - {len(eligible)} orders",
            cashier=by_user,
        )
        combined.save()
        Order.objects.filter(pk__in=[o.pk for o in eligible]).update(combined_into=combined)
        combined.record_creation(by_user=by_user)

    logger.info(
        f"Combined bill {combined.order_number} for table {table.table_number}: "
        f"{len(eligible)} order(s), total {total}, discount {discount}"
    )
    return combined


@wrap_database_errors
def process_table_payment(table: Table, payment_method: str, amount_paid=None, discount_amount=0,
                          notes: str = "", by_user=None) -> dict:
    """
    Settle everything the table owes in one payment.

    The bill is the open combined bill (if any) plus every outstanding order
    it has not claimed. The settlement discount, together with the combined
    bill's own discount, is spread over the constituent orders in proportion
    to their amounts, so each order ends up carrying exactly the money taken
    for it.
    """
    if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise ValidationError(f"Invalid payment method '{payment_method}'")

    discount_amount = to_decimal(discount_amount, "discount amount")
    if discount_amount < 0:
        raise ValidationError("Discount amount cannot be negative")

    with transaction.atomic():
        table = _lock_table(table)

        combined = (
            Order.objects.select_for_update()
            .filter(pk=getattr(open_combined_bill(table), "pk", None))
            .first()
        )
        orders = list(outstanding_orders(table).select_for_update())
        if combined is None and not orders:
            raise NotFoundError(f"No unpaid orders found for table {table.table_number}")

        unclaimed = [o for o in orders if combined is None or o.combined_into_id != combined.pk]
        bill = sum_final(unclaimed)
        if combined is not None:
            bill = q2(bill + combined.final_amount)

        discount = q2(min(discount_amount, bill))
        final = q2(bill - discount)

        if amount_paid in (None, ""):
            if payment_method == Order.METHOD_CASH:
                raise ValidationError("Amount paid is required for cash payments")
            amount_paid = final
        amount_paid = q2(to_decimal(amount_paid, "amount paid"))
        if amount_paid < final:
            raise ValidationError(f"Insufficient payment. Required: {final}, Paid: {amount_paid}")
        change = q2(amount_paid - final)

        # Everything between the constituents' own totals and the money taken
        gross = sum_final(orders)
        shares = allocate(max(ZERO, q2(gross - final)), [o.final_amount for o in orders])
        reference = f"TABLE-{table.table_number}-{timezone.now():%Y%m%d%H%M%S}"

        for order, share in zip(orders, shares):
            order.discount_amount = q2(order.discount_amount + share)
            order.final_amount = q2(max(ZERO, order.final_amount - share))
            order.payment_method = payment_method
            order.payment_status = Order.PAYMENT_COMPLETED
            order.save(update_fields=[
                "discount_amount", "final_amount", "payment_method", "payment_status", "updated_at",
            ])
            if order.order_status == Order.STATUS_ACTIVE:
                order.transition_to(Order.STATUS_COMPLETED, by_user=by_user, reason=f"Table {table.table_number} settled")
            record_payment(order, order.final_amount, payment_method, reference=reference, notes=notes,
                           by_user=by_user)
            record_spend(order.customer_id, order.final_amount)

        if combined is not None:
            combined.payment_method = payment_method
            combined.payment_status = Order.PAYMENT_COMPLETED
            combined.transition_to(Order.STATUS_COMPLETED, by_user=by_user, reason="Table settled")

        table.mark_available()

    logger.info(
        f"Table {table.table_number} settled: {len(orders)} order(s), bill {bill}, discount {discount}, "
        f"paid {amount_paid} by {payment_method}, change {change}"
    )
    return {
        "change": change,
        "payment_details": {
            "total_orders": len(orders),
            "subtotal": bill,
            "discount": discount,
            "final_amount": final,
            "amount_paid": amount_paid,
            "change": change,
            "payment_method": payment_method,
            "table_status": table.status,
            "combined_order_number": combined.order_number if combined is not None else None,
        },
    }


@wrap_database_errors
def reset_table(table: Table) -> Table:
    """Free the table without touching any order."""
    with transaction.atomic():
        table = _lock_table(table)
        table.mark_available()
    logger.info(f"Table {table.table_number} reset to available")
    return table


@wrap_database_errors
def clear_table_orders(table: Table, restore_stock: bool = True, by_user=None) -> dict:
    """Delete every order of the table, combined bills included, and free it."""
    with transaction.atomic():
        table = _lock_table(table)
        orders = list(
            Order.objects.select_for_update().filter(Q(table=table) | Q(combined_source_table=table))
        )

        restored = 0
        if restore_stock:
            for order in orders:
                if restore_order_stock(order, InventoryTransaction.REF_TABLE_CLEAR, by_user=by_user):
                    restored += 1

        deleted = len(orders)
        Order.objects.filter(pk__in=[o.pk for o in orders]).delete()
        table.mark_available()

    who = by_user.get_username() if by_user else "system"
    logger.warning(
        f"Table {table.table_number} cleared by {who}: {deleted} order(s) deleted, stock restored for {restored}"
    )
    return {"deleted_count": deleted, "stock_restored_count": restored}


def table_bill_summary(table: Table) -> dict:
    """Outstanding orders of the table with their lines merged by product and price."""
    orders = list(outstanding_orders(table).prefetch_related("items__product"))

    merged: "OrderedDict[tuple, dict]" = OrderedDict()
    for order in orders:
        for item in order.items.all():
            key = (item.product_id, item.unit_price)
            line = merged.get(key)
            if line is None:
                merged[key] = {
                    "product_id": item.product_id,
                    "product_name": item.product.name,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "total_price": item.total_price,
                }
            else:
                line["quantity"] += item.quantity
                line["total_price"] = q2(line["total_price"] + item.total_price)

    combined = open_combined_bill(table)
    return {
        "table": table,
        "orders": orders,
        "bill_summary": {
            "total_orders": len(orders),
            "subtotal": q2(sum((o.total_amount for o in orders), ZERO)),
            "total_discount": q2(sum((o.discount_amount for o in orders), ZERO)),
            "total_tax": q2(sum((o.tax_amount for o in orders), ZERO)),
            "grand_total": sum_final(orders),
            "combined_order_number": combined.order_number if combined is not None else None,
            "items": list(merged.values()),
        },
    }
