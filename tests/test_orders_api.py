from decimal import Decimal

import pytest

from catalog.models import InventoryTransaction
from core.models import Table
from orders.models import Order, UnpaidLedgerEntry
from orders.services import engine
from tests.factories import ProductFactory, TableFactory


def _money(value):
    return Decimal(str(value))


@pytest.fixture
def espresso(db):
    return ProductFactory(name="Espresso", price=Decimal("100.00"), stock_quantity=30)


@pytest.mark.django_db
def test_create_order_endpoint(auth_api_client, espresso):
    table = TableFactory(table_number="A1")
    resp = auth_api_client.post(
        "/api/orders/",
        {
            "items": [{"product_id": espresso.pk, "quantity": 2, "notes": "extra hot"}],
            "table": table.pk,
            "discount_value": "10",
            "notes": "<script>x</script>window seat",
        },
        format="json",
    )
    assert resp.status_code == 201, resp.content
    body = resp.json()
    assert body["order_number"].startswith("ORD-")
    assert body["table_number"] == "A1"
    assert body["total_amount"] == "200.00"
    assert body["discount_amount"] == "10.00"
    assert body["final_amount"] == "190.00"
    assert body["order_status"] == "active"
    assert body["notes"] == "xwindow seat"
    assert body["items"][0]["product_name"] == "Espresso"
    assert body["cashier_name"] == "admin"


@pytest.mark.django_db
def test_client_supplied_prices_are_ignored(auth_api_client, espresso):
    resp = auth_api_client.post(
        "/api/orders/",
        {"items": [{"product_id": espresso.pk, "quantity": 1, "unit_price": "0.01"}], "total_amount": "0.01"},
        format="json",
    )
    assert resp.status_code == 201
    assert resp.json()["final_amount"] == "100.00"


@pytest.mark.django_db
def test_domain_errors_use_structured_body(auth_api_client, espresso):
    resp = auth_api_client.post(
        "/api/orders/", {"items": [{"product_id": 999999, "quantity": 1}]}, format="json"
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": {"code": "not_found", "message": "Product 999999 not found"}}

    resp = auth_api_client.post("/api/orders/", {"items": []}, format="json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_cashier_needs_discount_capability(cashier_client, espresso):
    resp = cashier_client.post(
        "/api/orders/",
        {"items": [{"product_id": espresso.pk, "quantity": 1}], "discount_value": "5"},
        format="json",
    )
    assert resp.status_code == 403
    assert not Order.objects.exists()

    resp = cashier_client.post("/api/orders/", {"items": [{"product_id": espresso.pk, "quantity": 1}]}, format="json")
    assert resp.status_code == 201


@pytest.mark.django_db
def test_status_endpoint_transitions_and_conflicts(auth_api_client, cashier_client, espresso):
    order = engine.create_order([{"product_id": espresso.pk, "quantity": 1}])
    url = f"/api/orders/{order.pk}/status/"

    assert cashier_client.patch(url, {"order_status": "cancelled"}, format="json").status_code == 403

    resp = auth_api_client.patch(url, {"order_status": "completed"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "completed"

    resp = auth_api_client.patch(url, {"order_status": "cancelled"}, format="json")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "invalid_transition"

    log = auth_api_client.get(f"/api/orders/{order.pk}/status-log/").json()
    assert [row["new_status"] for row in log] == ["completed", "active"]


@pytest.mark.django_db
def test_order_list_filters_by_status(auth_api_client, espresso):
    done = engine.create_order([{"product_id": espresso.pk, "quantity": 1}])
    engine.update_order_status(done, "completed")
    engine.create_order([{"product_id": espresso.pk, "quantity": 1}])

    resp = auth_api_client.get("/api/orders/", {"order_status": "completed"})
    assert resp.status_code == 200
    assert [row["id"] for row in resp.json()["results"]] == [done.pk]

    kitchen = auth_api_client.get("/api/orders/kitchen/").json()
    assert len(kitchen) == 1


@pytest.mark.django_db
def test_delete_history_requires_confirmation(auth_api_client, espresso):
    order = engine.create_order([{"product_id": espresso.pk, "quantity": 3}])
    url = f"/api/orders/{order.pk}/history/"

    resp = auth_api_client.delete(url, {"confirmation": "delete"}, format="json")
    assert resp.status_code == 400
    assert Order.objects.filter(pk=order.pk).exists()

    resp = auth_api_client.delete(url, {"confirmation": "DELETE", "restore_stock": True}, format="json")
    assert resp.status_code == 200
    assert resp.json()["stock_restored"] is True
    espresso.refresh_from_db()
    assert espresso.stock_quantity == 30


@pytest.mark.django_db
def test_table_settlement_flow(auth_api_client, espresso):
    table = TableFactory(table_number="B2")
    for quantity in (1, 2):
        engine.create_order([{"product_id": espresso.pk, "quantity": quantity}], table=table)
    base = f"/api/orders/table/{table.pk}"

    outstanding = auth_api_client.get(f"{base}/").json()
    assert len(outstanding) == 2

    bill = auth_api_client.get(f"{base}/bill/").json()
    assert bill["table"]["table_number"] == "B2"
    assert _money(bill["bill_summary"]["grand_total"]) == Decimal("300.00")
    assert bill["bill_summary"]["items"][0]["quantity"] == 3

    resp = auth_api_client.post(f"{base}/combined/", {"discount_value": "20"}, format="json")
    assert resp.status_code == 201
    assert resp.json()["original_orders_count"] == 2
    assert _money(resp.json()["total_amount"]) == Decimal("280.00")

    resp = auth_api_client.post(f"{base}/combined/", {}, format="json")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "conflict"

    resp = auth_api_client.post(f"{base}/payment/", {"payment_method": "cash", "amount_paid": "250"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Insufficient payment. Required: 280.00, Paid: 250.00"

    resp = auth_api_client.post(f"{base}/payment/", {"payment_method": "cash", "amount_paid": "300"}, format="json")
    assert resp.status_code == 200
    assert _money(resp.json()["change"]) == Decimal("20.00")
    assert resp.json()["payment_details"]["table_status"] == "available"


@pytest.mark.django_db
def test_reset_and_clear_table(auth_api_client, espresso):
    table = TableFactory()
    engine.create_order([{"product_id": espresso.pk, "quantity": 2}], table=table)
    base = f"/api/orders/table/{table.pk}"

    resp = auth_api_client.patch(f"{base}/reset/")
    assert resp.status_code == 200
    assert resp.json()["table_status"] == "available"
    assert Order.objects.count() == 1

    assert auth_api_client.delete(f"{base}/orders/", {"confirmation": "clear"}, format="json").status_code == 400
    resp = auth_api_client.delete(f"{base}/orders/", {"confirmation": "CLEAR"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["deleted_count"] == 1
    assert InventoryTransaction.objects.filter(reference_type="table_clear").count() == 1

    assert auth_api_client.get("/api/orders/table/424242/bill/").status_code == 404


@pytest.mark.django_db
def test_unpaid_ledger_endpoints(auth_api_client, espresso):
    order = engine.create_order([{"product_id": espresso.pk, "quantity": 2}])

    resp = auth_api_client.post(
        "/api/orders/unpaid/add/", {"order_id": order.pk, "customer_name": "Nabin"}, format="json"
    )
    assert resp.status_code == 201
    entry_id = resp.json()["id"]
    assert resp.json()["items"][0]["quantity"] == 2

    resp = auth_api_client.post(
        "/api/orders/unpaid/add/", {"order_id": order.pk, "customer_name": "Nabin"}, format="json"
    )
    assert resp.status_code == 409

    resp = auth_api_client.post("/api/orders/unpaid/add/", {"order_id": 999999, "customer_name": "X"}, format="json")
    assert resp.status_code == 404

    listing = auth_api_client.get("/api/orders/unpaid/", {"customer_name": "nab"}).json()
    assert [row["id"] for row in listing] == [entry_id]

    resp = auth_api_client.patch(f"/api/orders/unpaid/{entry_id}/", {"customer_phone": "9801234567"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["customer_phone"] == "9801234567"

    stats = auth_api_client.get("/api/orders/unpaid/stats/").json()
    assert stats["total_unpaid_orders"] == 1

    resp = auth_api_client.post(f"/api/orders/unpaid/{entry_id}/mark-paid/", {"payment_method": "card"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["order"]["payment_status"] == "completed"
    assert not UnpaidLedgerEntry.objects.exists()

    assert auth_api_client.get(f"/api/orders/unpaid/{entry_id}/").status_code == 404


@pytest.mark.django_db
def test_remove_from_unpaid_keeps_order(auth_api_client, espresso):
    order = engine.create_order([{"product_id": espresso.pk, "quantity": 1}])
    entry = UnpaidLedgerEntry.objects.create(
        order=order, customer_name="Pooja", total_amount=order.final_amount
    )
    resp = auth_api_client.delete(f"/api/orders/unpaid/{entry.pk}/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Order removed from unpaid table"}
    assert Order.objects.filter(pk=order.pk).exists()


@pytest.mark.django_db
def test_table_with_open_orders_cannot_be_deleted(auth_api_client, espresso):
    table = TableFactory()
    engine.create_order([{"product_id": espresso.pk, "quantity": 1}], table=table)

    resp = auth_api_client.delete(f"/api/tables/{table.pk}/")
    assert resp.status_code == 409
    assert Table.objects.filter(pk=table.pk).exists()

    available = auth_api_client.get("/api/tables/available/").json()
    assert table.pk not in [row["id"] for row in available]
