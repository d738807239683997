"""
Order engine: creation, status transitions and permanent deletion.

Every public function runs in a single ``transaction.atomic()`` block and
locks the order rows it changes, so a failure leaves nothing half-written.
Stock is advisory: a sale may drive a product negative, which is logged.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction

from billing.services import refund_payments
from catalog.models import InventoryTransaction, Product
from catalog.services import adjust_stock
from core.exceptions import ConflictError, NotFoundError, ValidationError, wrap_database_errors
from core.models import Table
from customers.services import get_membership_discount_percent, record_spend
from ..models import Order, OrderItem
from .totals import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    ZERO,
    compute_discount,
    compute_final,
    compute_tax,
    q2,
)

logger = logging.getLogger(__name__)


def get_order(order_id) -> Order:
    try:
        return Order.objects.select_related("table", "customer", "combined_into").get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Order {order_id} not found")


def kitchen_orders():
    """Active regular orders, oldest first, for the kitchen display."""
    return (
        Order.objects.filter(kind=Order.KIND_REGULAR, order_status=Order.STATUS_ACTIVE)
        .select_related("table", "customer")
        .prefetch_related("items__product")
        .order_by("created_at", "id")
    )


def _normalise_lines(items) -> list[dict]:
    if not items:
        raise ValidationError("Order must contain at least one item")

    lines = []
    for raw in items:
        product_id = raw.get("product_id") or raw.get("product")
        if isinstance(product_id, Product):
            product_id = product_id.pk
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"Product {product_id} not found")
        try:
            quantity = int(raw.get("quantity"))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid quantity for product {product_id}")
        if quantity <= 0:
            raise ValidationError(f"Quantity for product {product_id} must be greater than zero")
        lines.append({"product_id": product_id, "quantity": quantity, "notes": raw.get("notes") or ""})
    return lines


def _load_products(lines) -> dict:
    ids = {line["product_id"] for line in lines}
    products = Product.objects.in_bulk(list(ids))
    for line in lines:
        product = products.get(line["product_id"])
        if product is None:
            raise NotFoundError(f"Product {line['product_id']} not found")
        if not product.is_active:
            raise ValidationError(f"Product '{product.name}' is not available")
    return products


def restore_order_stock(order: Order, reference_type: str, by_user=None) -> bool:
    """
    Give back the stock consumed by ``order``, at most once.

    Returns False when there was nothing to restore. Caller owns the
    transaction and should hold a lock on the order row.
    """
    if order.is_combined or order.stock_restored:
        return False

    for item in order.items.select_related("product"):
        adjust_stock(
            item.product,
            item.quantity,
            InventoryTransaction.TYPE_ADJUSTMENT,
            reference_type,
            reference_id=order.pk,
            notes=f"Stock restored for order {order.order_number} ({reference_type})",
            by_user=by_user,
        )
    Order.objects.filter(pk=order.pk).update(stock_restored=True)
    order.stock_restored = True
    logger.info(f"Stock restored for order {order.order_number} ({reference_type})")
    return True


@wrap_database_errors
def create_order(
    items,
    customer=None,
    table: Table | None = None,
    payment_method: str = Order.METHOD_CASH,
    discount_value=0,
    discount_type: str = DISCOUNT_FIXED,
    order_type: str = Order.TYPE_DINE_IN,
    notes: str = "",
    cashier=None,
) -> Order:
    """
    Create an order priced from the catalog.

    The larger of the manual discount and the customer's membership discount
    is applied. Each line decrements stock and writes a ``sale`` transaction.
    """
    if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise ValidationError(f"Invalid payment method '{payment_method}'")
    if order_type not in dict(Order.ORDER_TYPE_CHOICES):
        raise ValidationError(f"Invalid order type '{order_type}'")

    lines = _normalise_lines(items)

    with transaction.atomic():
        products = _load_products(lines)

        if table is not None:
            table = Table.objects.select_for_update().get(pk=table.pk)
            if not table.is_active:
                raise ValidationError(f"Table {table.table_number} is not in service")

        subtotal = q2(sum(
            (products[line["product_id"]].price * line["quantity"] for line in lines),
            ZERO,
        ))

        discount = compute_discount(subtotal, discount_value, discount_type)
        customer_id = getattr(customer, "pk", None)
        tier_percent = get_membership_discount_percent(customer_id)
        if tier_percent > 0:
            tier_discount = compute_discount(subtotal, tier_percent, DISCOUNT_PERCENTAGE)
            if tier_discount > discount:
                logger.debug(f"Membership discount {tier_percent}% overrides manual discount {discount}")
                discount = tier_discount

        tax = compute_tax(subtotal - discount)
        order = Order(
            customer=customer,
            table=table,
            table_number=table.table_number if table is not None else "",
            order_type=order_type,
            total_amount=subtotal,
            discount_amount=discount,
            tax_amount=tax,
            final_amount=compute_final(subtotal, discount, tax),
            payment_method=payment_method,
            notes=notes or "",
            cashier=cashier,
        )
        order.save()

        for line in lines:
            product = products[line["product_id"]]
            OrderItem.objects.create(
                order=order,
                product=product,
                quantity=line["quantity"],
                unit_price=product.price,
                notes=line["notes"],
            )
            adjust_stock(
                product,
                -line["quantity"],
                InventoryTransaction.TYPE_SALE,
                InventoryTransaction.REF_ORDER,
                reference_id=order.pk,
                notes=f"Sale: order {order.order_number}",
                by_user=cashier,
            )

        if table is not None:
            table.mark_occupied(order)

        order.record_creation(by_user=cashier)

    logger.info(
        f"Order {order.order_number} created: {len(lines)} line(s), total {order.total_amount}, "
        f"discount {order.discount_amount}, final {order.final_amount}"
    )
    return order


def ensure_not_claimed(order: Order) -> None:
    if order.combined_into_id and order.combined_into.order_status == Order.STATUS_ACTIVE:
        raise ConflictError(
            f"Order {order.order_number} is part of open combined bill {order.combined_into.order_number}"
        )


@wrap_database_errors
def update_order_status(order: Order, new_status: str, payment_status: str | None = None, by_user=None,
                        reason: str = "") -> Order:
    """
    Move an order along active -> completed -> refunded, or active -> cancelled.

    Cancel and refund give stock back once. Cancelling a combined bill
    releases the orders it had claimed.
    """
    new_status = (new_status or "").strip().lower()
    if payment_status and payment_status not in dict(Order.PAYMENT_STATUS_CHOICES):
        raise ValidationError(f"Invalid payment status '{payment_status}'")

    with transaction.atomic():
        locked = Order.objects.select_for_update(of=("self",)).select_related("combined_into").get(pk=order.pk)
        ensure_not_claimed(locked)

        if locked.is_combined and new_status in (Order.STATUS_COMPLETED, Order.STATUS_REFUNDED):
            raise ConflictError(
                "Combined bills are settled through table payment and refunded per order"
            )

        old_status = locked.order_status
        if new_status not in Order.VALID_STATUS_TRANSITIONS.get(old_status, []):
            # let the model raise the canonical error
            locked.transition_to(new_status, by_user=by_user, reason=reason)

        if new_status == Order.STATUS_COMPLETED:
            locked.payment_status = payment_status or Order.PAYMENT_COMPLETED
            locked.transition_to(new_status, by_user=by_user, reason=reason)
            if locked.payment_status == Order.PAYMENT_COMPLETED:
                record_spend(locked.customer_id, locked.final_amount)

        elif new_status == Order.STATUS_CANCELLED:
            if locked.is_combined:
                released = locked.constituents.update(combined_into=None)
                logger.info(f"Combined bill {locked.order_number} cancelled, released {released} order(s)")
            else:
                restore_order_stock(locked, InventoryTransaction.REF_CANCELLATION, by_user=by_user)
            locked.transition_to(new_status, by_user=by_user, reason=reason)

        elif new_status == Order.STATUS_REFUNDED:
            restore_order_stock(locked, InventoryTransaction.REF_REFUND, by_user=by_user)
            was_paid = locked.payment_status == Order.PAYMENT_COMPLETED
            locked.payment_status = Order.PAYMENT_REFUNDED
            locked.transition_to(new_status, by_user=by_user, reason=reason)
            refund_payments(locked)
            if was_paid:
                record_spend(locked.customer_id, -locked.final_amount)

    logger.info(f"Order {locked.order_number}: {old_status} -> {new_status}")
    return locked


@wrap_database_errors
def delete_order_history(order: Order, restore_stock: bool = True, by_user=None) -> dict:
    """
    Permanently delete an order with its lines, payments, history and ledger entry.

    Stock comes back only when requested and not already restored. A table
    left without orders is freed.
    """
    with transaction.atomic():
        locked = Order.objects.select_for_update(of=("self",)).select_related("combined_into").get(pk=order.pk)
        ensure_not_claimed(locked)

        restored = False
        if restore_stock:
            restored = restore_order_stock(locked, InventoryTransaction.REF_ORDER_DELETION, by_user=by_user)

        table_id = locked.table_id
        order_number = locked.order_number
        locked.delete()

        table_freed = False
        if table_id and not Order.objects.filter(table_id=table_id).exists():
            table = Table.objects.select_for_update().filter(pk=table_id).first()
            if table is not None:
                table.mark_available()
                table_freed = True

    who = by_user.get_username() if by_user else "system"
    logger.warning(f"Order {order_number} permanently deleted by {who} (stock restored: {restored})")
    return {"order_number": order_number, "stock_restored": restored, "table_freed": table_freed}


def sum_final(orders) -> Decimal:
    return q2(sum((o.final_amount for o in orders), ZERO))
