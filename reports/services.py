"""
Sales figures. Only completed regular orders count as sales; combined
bills are settlement vehicles and would double count their constituents.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone
from django.utils.dateparse import parse_date

from catalog.models import InventoryTransaction
from core.exceptions import ValidationError, wrap_database_errors
from core.models import Table
from orders.models import Order, OrderItem

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366
DEFAULT_RANGE_DAYS = 30


def parse_range(date_from: str | None, date_to: str | None, default_days: int = DEFAULT_RANGE_DAYS):
    """Resolve ``YYYY-MM-DD`` query values; missing ends default to the last ``default_days``."""
    end = _parse(date_to, "date_to") or timezone.localdate()
    start = _parse(date_from, "date_from") or (end - timedelta(days=default_days - 1))
    if start > end:
        raise ValidationError("date_from must not be after date_to")
    if (end - start).days >= MAX_RANGE_DAYS:
        raise ValidationError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")
    return start, end


def _parse(value: str | None, name: str) -> date | None:
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid {name} '{value}'. Use YYYY-MM-DD")
    return parsed


def sales_orders(date_from: date, date_to: date):
    return Order.objects.filter(
        kind=Order.KIND_REGULAR,
        order_status=Order.STATUS_COMPLETED,
        created_at__date__gte=date_from,
        created_at__date__lte=date_to,
    )


def _product_rows(orders, limit: int | None = None) -> list[dict]:
    rows = (
        OrderItem.objects.filter(order__in=orders)
        .values("product_id", "product__name")
        .annotate(quantity_sold=Sum("quantity"), revenue=Sum("total_price"))
        .order_by("-quantity_sold", "product__name")
    )
    if limit:
        rows = rows[:limit]
    return [
        {
            "product_id": row["product_id"],
            "product_name": row["product__name"],
            "quantity_sold": row["quantity_sold"] or 0,
            "revenue": row["revenue"] or Decimal("0.00"),
        }
        for row in rows
    ]


def sales_summary(date_from: date, date_to: date) -> dict:
    orders = sales_orders(date_from, date_to)
    totals = orders.aggregate(
        total_sales=Sum("final_amount"),
        total_orders=Count("id"),
        total_discount=Sum("discount_amount"),
        total_tax=Sum("tax_amount"),
    )
    total_sales = totals["total_sales"] or Decimal("0.00")
    total_orders = totals["total_orders"] or 0

    payment_methods = [
        {
            "payment_method": row["payment_method"],
            "count": row["count"],
            "total": row["total"] or Decimal("0.00"),
        }
        for row in orders.values("payment_method")
        .annotate(count=Count("id"), total=Sum("final_amount"))
        .order_by("-total", "payment_method")
    ]

    return {
        "period": {"date_from": date_from, "date_to": date_to},
        "total_sales": total_sales,
        "total_orders": total_orders,
        "average_order_value": (total_sales / total_orders).quantize(Decimal("0.01")) if total_orders else Decimal("0.00"),
        "total_discount": totals["total_discount"] or Decimal("0.00"),
        "total_tax": totals["total_tax"] or Decimal("0.00"),
        "payment_methods": payment_methods,
        "products": _product_rows(orders),
    }


def today_stats() -> dict:
    today = timezone.localdate()
    summary = sales_summary(today, today)
    orders = sales_orders(today, today)
    summary.pop("products")
    summary["unique_customers"] = orders.aggregate(n=Count("customer", distinct=True))["n"] or 0
    summary["top_products"] = _product_rows(orders, limit=5)
    return summary


def daily_sales(date_from: date, date_to: date) -> list[dict]:
    """One row per day in the range, days without sales included as zero."""
    rows = {
        row["day"]: row
        for row in sales_orders(date_from, date_to)
        .annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(orders=Count("id"), sales=Sum("final_amount"))
    }
    result = []
    day = date_from
    while day <= date_to:
        row = rows.get(day)
        result.append({
            "date": day,
            "orders": row["orders"] if row else 0,
            "sales": (row["sales"] or Decimal("0.00")) if row else Decimal("0.00"),
        })
        day += timedelta(days=1)
    return result


@wrap_database_errors
def delete_all_reports(by_user=None) -> dict:
    """
    Wipe sales history: every order (with lines, payments, status history and
    ledger entries) and the inventory ledger. Product stock levels are kept.
    """
    with transaction.atomic():
        order_count = Order.objects.count()
        Order.objects.all().delete()
        inventory_count, _ = InventoryTransaction.objects.all().delete()
        Table.objects.filter(status=Table.STATUS_OCCUPIED).update(status=Table.STATUS_AVAILABLE, current_order=None)

    who = by_user.get_username() if by_user else "system"
    logger.warning(
        f"DELETE ALL REPORTS by {who}: {order_count} orders and {inventory_count} inventory transactions removed"
    )
    return {"deleted_orders": order_count, "deleted_inventory_transactions": inventory_count}
