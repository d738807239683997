from decimal import Decimal

import pytest

from billing.models import Payment
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.models import Table
from orders.models import Order
from orders.services import engine, settlement, unpaid
from tests.factories import ProductFactory, TableFactory


@pytest.fixture
def table(db):
    return TableFactory(table_number="T5")


@pytest.fixture
def tea(db):
    return ProductFactory(name="Masala Tea", price=Decimal("100.00"), stock_quantity=20)


@pytest.fixture
def sandwich(db):
    return ProductFactory(name="Club Sandwich", price=Decimal("200.00"), stock_quantity=20)


def _order(table, product, quantity=1):
    return engine.create_order([{"product_id": product.pk, "quantity": quantity}], table=table)


@pytest.mark.django_db
def test_combine_claims_outstanding_orders_into_one_bill(table, tea, sandwich, admin_user):
    first = _order(table, tea)
    second = _order(table, sandwich)

    combined = settlement.combine_table_orders(table, discount_value=30, by_user=admin_user)

    assert combined.kind == Order.KIND_COMBINED
    assert combined.order_number.startswith("TBL-T5-")
    assert combined.table_id is None
    assert combined.combined_source_table_id == table.pk
    assert combined.total_amount == Decimal("300.00")
    assert combined.discount_amount == Decimal("30.00")
    assert combined.final_amount == Decimal("270.00")
    assert combined.items.count() == 0
    assert set(combined.constituents.values_list("pk", flat=True)) == {first.pk, second.pk}

    first.refresh_from_db()
    assert first.combined_into_id == combined.pk
    assert first.order_status == Order.STATUS_ACTIVE


@pytest.mark.django_db
def test_second_combine_conflicts_and_empty_table_is_not_found(table, tea):
    with pytest.raises(NotFoundError):
        settlement.combine_table_orders(table)

    _order(table, tea)
    settlement.combine_table_orders(table)
    with pytest.raises(ConflictError):
        settlement.combine_table_orders(table)


@pytest.mark.django_db
def test_combined_bill_is_cancelled_not_completed(table, tea):
    order = _order(table, tea)
    combined = settlement.combine_table_orders(table)

    with pytest.raises(ConflictError):
        engine.update_order_status(combined, "completed")

    engine.update_order_status(combined, "cancelled")
    order.refresh_from_db()
    assert order.combined_into is None
    tea.refresh_from_db()
    # the bill has no lines of its own, so nothing is restocked
    assert tea.stock_quantity == 19

    again = settlement.combine_table_orders(table)
    assert again.constituents.count() == 1


@pytest.mark.django_db
def test_table_payment_settles_combined_bill_and_spreads_discount(table, tea, sandwich, admin_user):
    first = _order(table, tea)
    second = _order(table, sandwich)
    combined = settlement.combine_table_orders(table, discount_value=30)

    result = settlement.process_table_payment(table, "cash", amount_paid="300.00", by_user=admin_user)

    assert result["change"] == Decimal("30.00")
    details = result["payment_details"]
    assert details["total_orders"] == 2
    assert details["subtotal"] == Decimal("270.00")
    assert details["final_amount"] == Decimal("270.00")
    assert details["amount_paid"] == Decimal("300.00")
    assert details["table_status"] == Table.STATUS_AVAILABLE
    assert details["combined_order_number"] == combined.order_number

    first.refresh_from_db()
    second.refresh_from_db()
    combined.refresh_from_db()
    assert (first.discount_amount, first.final_amount) == (Decimal("10.00"), Decimal("90.00"))
    assert (second.discount_amount, second.final_amount) == (Decimal("20.00"), Decimal("180.00"))
    for order in (first, second, combined):
        assert order.order_status == Order.STATUS_COMPLETED
        assert order.payment_status == Order.PAYMENT_COMPLETED
        assert order.payment_method == Order.METHOD_CASH

    payments = Payment.objects.filter(order__in=[first, second])
    assert sum(p.amount for p in payments) == Decimal("270.00")
    assert all(p.reference.startswith("TABLE-T5-") for p in payments)

    table.refresh_from_db()
    assert table.status == Table.STATUS_AVAILABLE
    assert table.current_order is None


@pytest.mark.django_db
def test_table_payment_without_combine_applies_settlement_discount(table, tea, sandwich):
    first = _order(table, tea)
    second = _order(table, sandwich)

    result = settlement.process_table_payment(table, "card", discount_amount="50")

    details = result["payment_details"]
    assert details["subtotal"] == Decimal("300.00")
    assert details["discount"] == Decimal("50.00")
    assert details["final_amount"] == Decimal("250.00")
    assert details["amount_paid"] == Decimal("250.00")
    assert result["change"] == Decimal("0.00")
    assert details["combined_order_number"] is None

    first.refresh_from_db()
    second.refresh_from_db()
    assert first.final_amount + second.final_amount == Decimal("250.00")
    assert first.final_amount == Decimal("83.33")


@pytest.mark.django_db
def test_table_payment_includes_orders_added_after_combining(table, tea, sandwich):
    _order(table, tea)
    settlement.combine_table_orders(table)
    late = _order(table, sandwich)

    result = settlement.process_table_payment(table, "mobile")

    assert result["payment_details"]["final_amount"] == Decimal("300.00")
    late.refresh_from_db()
    assert late.combined_into is None
    assert late.payment_status == Order.PAYMENT_COMPLETED


@pytest.mark.django_db
def test_table_payment_keeps_completed_status_of_unpaid_completed_orders(table, tea):
    order = _order(table, tea)
    engine.update_order_status(order, "completed", payment_status="pending")

    settlement.process_table_payment(table, "card")

    order.refresh_from_db()
    assert order.order_status == Order.STATUS_COMPLETED
    assert order.payment_status == Order.PAYMENT_COMPLETED
    assert order.status_history.count() == 2


@pytest.mark.django_db
def test_table_payment_rejects_short_or_missing_cash(table, tea, sandwich):
    _order(table, tea)
    _order(table, sandwich)

    with pytest.raises(ValidationError) as exc:
        settlement.process_table_payment(table, "cash", amount_paid="100")
    assert str(exc.value) == "Insufficient payment. Required: 300.00, Paid: 100.00"

    with pytest.raises(ValidationError):
        settlement.process_table_payment(table, "cash")
    with pytest.raises(ValidationError):
        settlement.process_table_payment(table, "voucher", amount_paid="300")

    assert not Payment.objects.exists()
    assert Order.objects.filter(payment_status=Order.PAYMENT_PENDING).count() == 2


@pytest.mark.django_db
def test_table_payment_on_settled_table_is_not_found(table, tea):
    _order(table, tea)
    settlement.process_table_payment(table, "card")
    with pytest.raises(NotFoundError):
        settlement.process_table_payment(table, "card")


@pytest.mark.django_db
def test_bill_summary_merges_lines_by_product_and_price(table, tea, sandwich):
    _order(table, tea, 2)
    _order(table, tea, 1)
    _order(table, sandwich, 1)

    summary = settlement.table_bill_summary(table)["bill_summary"]

    assert summary["total_orders"] == 3
    assert summary["subtotal"] == Decimal("500.00")
    assert summary["grand_total"] == Decimal("500.00")
    items = {line["product_name"]: line for line in summary["items"]}
    assert items["Masala Tea"]["quantity"] == 3
    assert items["Masala Tea"]["total_price"] == Decimal("300.00")
    assert items["Club Sandwich"]["quantity"] == 1


@pytest.mark.django_db
def test_reset_table_leaves_orders_alone(table, tea):
    order = _order(table, tea)
    settlement.reset_table(table)

    table.refresh_from_db()
    assert table.status == Table.STATUS_AVAILABLE
    order.refresh_from_db()
    assert order.order_status == Order.STATUS_ACTIVE


@pytest.mark.django_db
def test_clear_table_orders_removes_everything_and_restocks(table, tea, sandwich):
    _order(table, tea, 2)
    _order(table, sandwich, 1)
    settlement.combine_table_orders(table)

    result = settlement.clear_table_orders(table, restore_stock=True)

    assert result == {"deleted_count": 3, "stock_restored_count": 2}
    assert not Order.objects.exists()
    tea.refresh_from_db()
    sandwich.refresh_from_db()
    assert (tea.stock_quantity, sandwich.stock_quantity) == (20, 20)
    table.refresh_from_db()
    assert table.status == Table.STATUS_AVAILABLE


@pytest.mark.django_db
def test_get_table_unknown_id():
    with pytest.raises(NotFoundError):
        settlement.get_table(31337)


@pytest.mark.django_db
def test_reset_table_twice_is_harmless(table, tea):
    _order(table, tea)

    settlement.reset_table(table)
    settlement.reset_table(table)

    table.refresh_from_db()
    assert table.status == Table.STATUS_AVAILABLE
    assert table.current_order is None


@pytest.mark.parametrize("paid, change", [("315.00", "0.00"), ("400.00", "85.00")])
@pytest.mark.django_db
def test_combined_percentage_discount_and_change(table, tea, paid, change):
    wrap = ProductFactory(name="Chicken Wrap", price=Decimal("250.00"))
    _order(table, tea)
    _order(table, wrap)

    combined = settlement.combine_table_orders(table, discount_value=10, discount_type="percentage")
    assert combined.total_amount == Decimal("350.00")
    assert combined.discount_amount == Decimal("35.00")
    assert combined.final_amount == Decimal("315.00")

    result = settlement.process_table_payment(table, "cash", amount_paid=paid)
    assert result["payment_details"]["final_amount"] == Decimal("315.00")
    assert result["change"] == Decimal(change)


@pytest.mark.django_db
def test_orders_on_unpaid_ledger_are_not_billed_to_the_table(table, tea, sandwich):
    earlier = _order(table, tea)
    unpaid.add_to_unpaid(earlier, "Ram")
    settlement.reset_table(table)
    later = _order(table, sandwich)

    assert [o.pk for o in settlement.outstanding_orders(table)] == [later.pk]
    summary = settlement.table_bill_summary(table)["bill_summary"]
    assert summary["total_orders"] == 1
    assert summary["grand_total"] == Decimal("200.00")

    result = settlement.process_table_payment(table, "cash", amount_paid="200.00")

    assert result["payment_details"]["total_orders"] == 1
    assert result["payment_details"]["final_amount"] == Decimal("200.00")
    assert result["change"] == Decimal("0.00")
    assert not Payment.objects.filter(order=earlier).exists()
    earlier.refresh_from_db()
    assert earlier.payment_status == Order.PAYMENT_PENDING
