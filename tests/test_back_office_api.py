from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import UserCapability
from catalog.models import Category, Product
from customers.models import Customer
from orders.models import Order
from orders.services import engine
from tests.factories import CategoryFactory, CustomerFactory, ProductFactory, TableFactory, UserFactory


@pytest.mark.django_db
def test_product_crud_and_stock_adjustment(auth_api_client):
    category = CategoryFactory(name="Drinks")
    resp = auth_api_client.post(
        "/api/catalog/products/",
        {"name": "Iced Tea", "price": "120.00", "category": category.pk, "stock_quantity": 3},
        format="json",
    )
    assert resp.status_code == 201, resp.content
    product_id = resp.json()["id"]
    assert resp.json()["sku"].startswith("SKU-ICEDTEA-")
    assert resp.json()["is_low_stock"] is True

    resp = auth_api_client.post("/api/catalog/products/", {"name": "Free", "price": "0"}, format="json")
    assert resp.status_code == 400

    resp = auth_api_client.patch(
        f"/api/catalog/products/{product_id}/stock/", {"quantity": 10, "type": "add"}, format="json"
    )
    assert resp.status_code == 200
    assert resp.json()["stock_quantity"] == 13

    moves = auth_api_client.get(f"/api/catalog/products/{product_id}/transactions/").json()
    assert moves[0]["quantity"] == 10

    resp = auth_api_client.delete(f"/api/catalog/products/{product_id}/")
    assert resp.status_code == 200
    assert Product.objects.get(pk=product_id).is_active is False


@pytest.mark.django_db
def test_low_stock_endpoint(auth_api_client):
    ProductFactory(name="Milk", stock_quantity=1)
    ProductFactory(name="Beans", stock_quantity=100)
    names = [row["name"] for row in auth_api_client.get("/api/catalog/products/low-stock/").json()]
    assert names == ["Milk"]


@pytest.mark.django_db
def test_delete_all_products_needs_phrase_and_admin(auth_api_client, manager_client):
    ProductFactory()
    url = "/api/catalog/products/delete-all/"

    assert manager_client.delete(url, {"confirmation": "DELETE ALL"}, format="json").status_code == 403
    assert auth_api_client.delete(url, {"confirmation": "delete all"}, format="json").status_code == 400

    resp = auth_api_client.delete(url, {"confirmation": "DELETE ALL"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["deleted_count"] == 1
    assert not Product.objects.exists()


@pytest.mark.django_db
def test_category_delete_blocked_by_active_products(auth_api_client):
    category = CategoryFactory()
    ProductFactory(category=category)
    resp = auth_api_client.delete(f"/api/catalog/categories/{category.pk}/")
    assert resp.status_code == 409
    assert Category.objects.get(pk=category.pk).is_active


@pytest.mark.django_db
def test_customer_endpoints(auth_api_client):
    resp = auth_api_client.post(
        "/api/customers/", {"name": "Asha", "phone": "9812345678", "membership_type": "platinum"}, format="json"
    )
    assert resp.status_code == 201
    customer_id = resp.json()["id"]

    dup = auth_api_client.post("/api/customers/", {"name": "Other", "phone": "9812345678"}, format="json")
    assert dup.status_code == 400

    discount = auth_api_client.get(f"/api/customers/{customer_id}/discount/").json()
    assert Decimal(str(discount["discount_percent"])) == Decimal("15")

    resp = auth_api_client.post(
        f"/api/customers/{customer_id}/loyalty/", {"points": 25, "type": "earn"}, format="json"
    )
    assert resp.status_code == 200
    assert resp.json()["loyalty_points"] == 25

    stats = auth_api_client.get("/api/customers/membership-stats/").json()
    assert stats[0]["membership_type"] == "platinum"


@pytest.mark.django_db
def test_customer_with_orders_is_kept(auth_api_client):
    customer = CustomerFactory()
    engine.create_order([{"product_id": ProductFactory().pk, "quantity": 1}], customer=customer)
    resp = auth_api_client.delete(f"/api/customers/{customer.pk}/")
    assert resp.status_code == 409
    assert Customer.objects.filter(pk=customer.pk).exists()


@pytest.mark.django_db
def test_sales_report_endpoints(auth_api_client):
    product = ProductFactory(price=Decimal("100.00"))
    order = engine.create_order([{"product_id": product.pk, "quantity": 2}])
    engine.update_order_status(order, "completed")
    today = timezone.localdate().isoformat()

    summary = auth_api_client.get("/api/reports/sales/summary/", {"date_from": today, "date_to": today}).json()
    assert summary["total_orders"] == 1
    assert Decimal(str(summary["total_sales"])) == Decimal("200.00")

    assert auth_api_client.get("/api/reports/sales/summary/", {"date_from": "yesterday"}).status_code == 400

    daily = auth_api_client.get("/api/reports/sales/daily/", {"date_from": today, "date_to": today}).json()
    assert daily["data"][0]["orders"] == 1

    today_stats = auth_api_client.get("/api/reports/sales/today/").json()
    assert today_stats["top_products"][0]["quantity_sold"] == 2

    url = "/api/reports/sales/delete-all/"
    assert auth_api_client.delete(url, {"confirmation": "DELETE ALL"}, format="json").status_code == 400
    resp = auth_api_client.delete(url, {"confirmation": "DELETE ALL REPORTS"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["deleted_orders"] == 1
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_login_returns_tokens_and_capabilities(api_client):
    UserFactory(username="Barista", role="manager", password="s3cret-pass!")

    resp = api_client.post("/api/accounts/login/", {"username": "barista", "password": "s3cret-pass!"}, format="json")
    assert resp.status_code == 200, resp.content
    body = resp.json()
    assert body["access"] and body["refresh"]
    assert body["user"]["role"] == "manager"
    assert "reports.delete" not in body["user"]["capabilities"]

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {body['access']}")
    me = api_client.get("/api/accounts/me/").json()
    assert me["username"] == "Barista"


@pytest.mark.django_db
def test_admin_grants_capability_to_cashier(auth_api_client, cashier_user):
    url = f"/api/accounts/users/{cashier_user.pk}/capabilities/"

    resp = auth_api_client.post(url, {"capability": "pos.discount"}, format="json")
    assert resp.status_code == 200
    assert "pos.discount" in resp.json()["granted"]

    assert auth_api_client.post(url, {"capability": "pos.teleport"}, format="json").status_code == 400

    resp = auth_api_client.post(url, {"capability": "pos.discount", "granted": False}, format="json")
    assert "pos.discount" not in resp.json()["granted"]
    assert UserCapability.objects.filter(user=cashier_user, capability="pos.discount", granted=False).exists()


@pytest.mark.django_db
def test_tables_min_capacity_filter(auth_api_client):
    TableFactory(table_number="T2", capacity=2)
    TableFactory(table_number="T8", capacity=8)

    resp = auth_api_client.get("/api/tables/", {"min_capacity": "4"})
    assert [row["table_number"] for row in resp.json()] == ["T8"]

    resp = auth_api_client.get("/api/tables/", {"min_capacity": "four"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
