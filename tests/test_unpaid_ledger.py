from decimal import Decimal

import pytest

from billing.models import Payment
from core.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from orders.models import Order, UnpaidLedgerEntry
from orders.services import engine, settlement, unpaid
from tests.factories import CustomerFactory, ProductFactory, TableFactory


@pytest.fixture
def order(db):
    product = ProductFactory(name="Momo", price=Decimal("150.00"))
    return engine.create_order([{"product_id": product.pk, "quantity": 2}], table=TableFactory(table_number="T9"))


@pytest.mark.django_db
def test_add_to_unpaid_snapshots_order(order, admin_user):
    entry = unpaid.add_to_unpaid(order, "  Ram Bahadur ", customer_phone="9800000001", by_user=admin_user)

    assert entry.customer_name == "Ram Bahadur"
    assert entry.table_number == "T9"
    assert entry.total_amount == Decimal("300.00")
    assert entry.order_was_paid is False
    assert entry.items_summary == [
        {"product_name": "Momo", "quantity": 2, "unit_price": "150.00", "total_price": "300.00"}
    ]
    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_PENDING


@pytest.mark.django_db
def test_add_to_unpaid_uses_customer_phone_when_missing(db):
    product = ProductFactory()
    customer = CustomerFactory(phone="9811111111")
    order = engine.create_order([{"product_id": product.pk, "quantity": 1}], customer=customer)

    entry = unpaid.add_to_unpaid(order, "Sita")
    assert entry.customer_phone == "9811111111"


@pytest.mark.django_db
def test_add_to_unpaid_requires_name_and_rejects_duplicates(order):
    with pytest.raises(ValidationError):
        unpaid.add_to_unpaid(order, "   ")

    unpaid.add_to_unpaid(order, "Hari")
    with pytest.raises(ConflictError) as exc:
        unpaid.add_to_unpaid(order, "Hari")
    assert "already in the unpaid table" in str(exc.value)
    assert UnpaidLedgerEntry.objects.count() == 1


@pytest.mark.django_db
def test_paid_order_can_be_added_but_is_flagged(order):
    engine.update_order_status(order, "completed")
    entry = unpaid.add_to_unpaid(order, "Gita")
    assert entry.order_was_paid is True


@pytest.mark.django_db
def test_mark_unpaid_as_paid_completes_order_and_removes_entry(admin_user):
    product = ProductFactory(price=Decimal("80.00"))
    customer = CustomerFactory()
    order = engine.create_order([{"product_id": product.pk, "quantity": 1}], customer=customer)
    entry = unpaid.add_to_unpaid(order, "Shyam")

    settled = unpaid.mark_unpaid_as_paid(entry, payment_method="mobile", notes="Paid via wallet", by_user=admin_user)

    assert settled.order_status == Order.STATUS_COMPLETED
    assert settled.payment_status == Order.PAYMENT_COMPLETED
    assert settled.payment_method == Order.METHOD_MOBILE
    assert not UnpaidLedgerEntry.objects.exists()

    payment = Payment.objects.get(order=order)
    assert payment.amount == Decimal("80.00")
    assert payment.method == Payment.METHOD_MOBILE
    assert payment.reference == f"UNPAID-{entry.pk}"

    customer.refresh_from_db()
    assert customer.total_spent == Decimal("80.00")

    with pytest.raises(NotFoundError):
        unpaid.mark_unpaid_as_paid(entry)


@pytest.mark.django_db
def test_mark_paid_does_not_count_spend_twice_for_paid_order():
    product = ProductFactory(price=Decimal("80.00"))
    customer = CustomerFactory()
    order = engine.create_order([{"product_id": product.pk, "quantity": 1}], customer=customer)
    engine.update_order_status(order, "completed")
    entry = unpaid.add_to_unpaid(order, "Shyam")

    unpaid.mark_unpaid_as_paid(entry)

    customer.refresh_from_db()
    assert customer.total_spent == Decimal("80.00")


@pytest.mark.django_db
def test_cancelled_order_cannot_be_marked_paid(order):
    entry = unpaid.add_to_unpaid(order, "Krishna")
    engine.update_order_status(order, "cancelled")

    with pytest.raises(InvalidTransitionError):
        unpaid.mark_unpaid_as_paid(entry)
    assert UnpaidLedgerEntry.objects.filter(pk=entry.pk).exists()


@pytest.mark.django_db
def test_order_claimed_by_combined_bill_cannot_move_to_unpaid(order):
    combined = settlement.combine_table_orders(order.table)

    with pytest.raises(ConflictError):
        unpaid.add_to_unpaid(order, "Laxmi")
    assert not UnpaidLedgerEntry.objects.exists()

    engine.update_order_status(combined, "cancelled")
    assert unpaid.add_to_unpaid(order, "Laxmi").order_id == order.pk


@pytest.mark.django_db
def test_update_and_remove_entry(order):
    entry = unpaid.add_to_unpaid(order, "Bikash")

    entry = unpaid.update_unpaid(entry, customer_name="Bikash K", notes="Pays on Friday")
    entry.refresh_from_db()
    assert entry.customer_name == "Bikash K"
    assert entry.notes == "Pays on Friday"

    with pytest.raises(ValidationError):
        unpaid.update_unpaid(entry, total_amount="0")

    unpaid.remove_from_unpaid(entry)
    assert not UnpaidLedgerEntry.objects.exists()
    assert Order.objects.filter(pk=order.pk).exists()


@pytest.mark.django_db
def test_list_filters_and_stats():
    product = ProductFactory(price=Decimal("100.00"))
    orders = [engine.create_order([{"product_id": product.pk, "quantity": q}]) for q in (1, 2, 3)]
    unpaid.add_to_unpaid(orders[0], "Anil", table_number="t2")
    unpaid.add_to_unpaid(orders[1], "Anil")
    unpaid.add_to_unpaid(orders[2], "Binita")

    assert unpaid.list_unpaid(customer_name="ani").count() == 2
    assert unpaid.list_unpaid(table_number="T2").count() == 1

    stats = unpaid.compute_stats()
    assert stats["total_unpaid_orders"] == 3
    assert stats["total_unpaid_amount"] == Decimal("600.00")
    assert stats["unique_customers"] == 2
    # equal totals fall back to name order
    assert stats["customer_breakdown"] == [
        {"customer_name": "Anil", "order_count": 2, "total_amount": Decimal("300.00")},
        {"customer_name": "Binita", "order_count": 1, "total_amount": Decimal("300.00")},
    ]


@pytest.mark.django_db
def test_deleting_order_drops_its_entry(order):
    unpaid.add_to_unpaid(order, "Sunil")
    engine.delete_order_history(order)
    assert not UnpaidLedgerEntry.objects.exists()


@pytest.mark.django_db
def test_stats_on_empty_ledger():
    assert unpaid.compute_stats() == {
        "total_unpaid_orders": 0,
        "total_unpaid_amount": Decimal("0.00"),
        "unique_customers": 0,
        "customer_breakdown": [],
    }


@pytest.mark.django_db
def test_debt_is_collected_once_after_table_moves_on(order):
    table = order.table
    entry = unpaid.add_to_unpaid(order, "Ram")
    settlement.reset_table(table)
    coffee = ProductFactory(price=Decimal("200.00"))
    engine.create_order([{"product_id": coffee.pk, "quantity": 1}], table=table)

    settlement.process_table_payment(table, "cash", amount_paid="200.00")
    assert not Payment.objects.filter(order=order).exists()

    unpaid.mark_unpaid_as_paid(entry, payment_method="cash")
    assert list(Payment.objects.filter(order=order).values_list("amount", flat=True)) == [Decimal("300.00")]


@pytest.mark.django_db
def test_mark_paid_on_already_settled_order_writes_no_second_payment(order):
    settlement.process_table_payment(order.table, "card")
    order.refresh_from_db()
    assert order.payment_status == Order.PAYMENT_COMPLETED
    entry = unpaid.add_to_unpaid(order, "Gopal")
    assert entry.order_was_paid is True

    settled = unpaid.mark_unpaid_as_paid(entry, payment_method="mobile")

    assert Payment.objects.filter(order=order).count() == 1
    assert settled.payment_method == Order.METHOD_CARD
    assert settled.order_status == Order.STATUS_COMPLETED
    assert not UnpaidLedgerEntry.objects.exists()
