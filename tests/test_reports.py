from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from catalog.models import InventoryTransaction, Product
from core.exceptions import ValidationError
from core.models import Table
from orders.models import Order
from orders.services import engine, settlement
from reports import services
from tests.factories import CustomerFactory, ProductFactory, TableFactory


def _sell(product, quantity=1, **kwargs):
    order = engine.create_order([{"product_id": product.pk, "quantity": quantity}], **kwargs)
    return engine.update_order_status(order, "completed")


@pytest.mark.django_db
def test_sales_summary_counts_completed_regular_orders_only():
    latte = ProductFactory(name="Latte", price=Decimal("150.00"))
    bagel = ProductFactory(name="Bagel", price=Decimal("90.00"))
    _sell(latte, 2)
    _sell(bagel, 1, payment_method="card")
    engine.create_order([{"product_id": latte.pk, "quantity": 5}])  # still active

    table = TableFactory()
    engine.create_order([{"product_id": bagel.pk, "quantity": 1}], table=table)
    settlement.combine_table_orders(table)
    settlement.process_table_payment(table, "card")

    today = timezone.localdate()
    summary = services.sales_summary(today, today)

    assert summary["total_orders"] == 3
    assert summary["total_sales"] == Decimal("480.00")
    assert summary["average_order_value"] == Decimal("160.00")
    methods = {row["payment_method"]: row for row in summary["payment_methods"]}
    assert methods["cash"]["count"] == 1
    assert methods["cash"]["total"] == Decimal("300.00")
    assert methods["card"]["count"] == 2
    assert methods["card"]["total"] == Decimal("180.00")
    products = {row["product_name"]: row for row in summary["products"]}
    assert products["Latte"]["quantity_sold"] == 2
    assert products["Bagel"]["quantity_sold"] == 2
    assert products["Bagel"]["revenue"] == Decimal("180.00")


@pytest.mark.django_db
def test_refunded_and_cancelled_orders_are_not_sales():
    product = ProductFactory(price=Decimal("100.00"))
    refunded = _sell(product)
    engine.update_order_status(refunded, "refunded")
    cancelled = engine.create_order([{"product_id": product.pk, "quantity": 1}])
    engine.update_order_status(cancelled, "cancelled")

    today = timezone.localdate()
    summary = services.sales_summary(today, today)
    assert summary["total_orders"] == 0
    assert summary["total_sales"] == Decimal("0.00")
    assert summary["average_order_value"] == Decimal("0.00")


@pytest.mark.django_db
def test_today_stats_has_unique_customers_and_top_products():
    regular = CustomerFactory()
    espresso = ProductFactory(name="Espresso", price=Decimal("100.00"))
    muffin = ProductFactory(name="Muffin", price=Decimal("120.00"))
    _sell(espresso, 3, customer=regular)
    _sell(muffin, 1, customer=regular)
    _sell(muffin, 1)

    stats = services.today_stats()

    assert stats["total_orders"] == 3
    assert stats["unique_customers"] == 1
    assert "products" not in stats
    assert [row["product_name"] for row in stats["top_products"]] == ["Espresso", "Muffin"]


@pytest.mark.django_db
def test_daily_sales_fills_days_without_sales():
    product = ProductFactory(price=Decimal("75.00"))
    _sell(product, 2)
    today = timezone.localdate()

    rows = services.daily_sales(today - timedelta(days=2), today)

    assert [row["date"] for row in rows] == [today - timedelta(days=2), today - timedelta(days=1), today]
    assert rows[0]["orders"] == 0
    assert rows[0]["sales"] == Decimal("0.00")
    assert rows[-1]["orders"] == 1
    assert rows[-1]["sales"] == Decimal("150.00")


def test_parse_range_defaults_and_validation():
    start, end = services.parse_range(None, "2024-03-31")
    assert end.isoformat() == "2024-03-31"
    assert (end - start).days == services.DEFAULT_RANGE_DAYS - 1

    with pytest.raises(ValidationError):
        services.parse_range("2024-04-02", "2024-04-01")
    with pytest.raises(ValidationError):
        services.parse_range("2022-01-01", "2024-01-01")
    with pytest.raises(ValidationError):
        services.parse_range("01/02/2024", None)


@pytest.mark.django_db
def test_delete_all_reports_wipes_orders_but_keeps_stock(admin_user):
    product = ProductFactory(stock_quantity=10)
    table = TableFactory()
    engine.create_order([{"product_id": product.pk, "quantity": 2}], table=table)
    _sell(product)

    result = services.delete_all_reports(by_user=admin_user)

    assert result == {"deleted_orders": 2, "deleted_inventory_transactions": 2}
    assert not Order.objects.exists()
    assert not InventoryTransaction.objects.exists()
    assert Product.objects.get(pk=product.pk).stock_quantity == 7
    table.refresh_from_db()
    assert table.status == Table.STATUS_AVAILABLE
