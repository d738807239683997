from decimal import Decimal

import pytest

from catalog import services
from catalog.models import Category, InventoryTransaction, Product
from core.exceptions import ConflictError, NotFoundError, ValidationError
from orders.services import engine
from tests.factories import CategoryFactory, ProductFactory


@pytest.mark.django_db
def test_product_save_sanitises_name_and_generates_sku():
    product = Product.objects.create(name="<b>Cold Brew</b>", price=Decimal("250.00"))
    assert product.name == "Cold Brew"
    assert product.sku.startswith("SKU-COLDBREW-")


@pytest.mark.django_db
def test_update_stock_modes_record_effective_change(admin_user):
    product = ProductFactory(stock_quantity=10)

    product = services.update_stock(product, 5, "add", notes="Delivery", by_user=admin_user)
    assert product.stock_quantity == 15

    product = services.update_stock(product, 40, "subtract")
    assert product.stock_quantity == 0

    product = services.update_stock(product, 12, "set")
    assert product.stock_quantity == 12

    moves = list(product.inventory_transactions.order_by("id").values_list("transaction_type", "quantity"))
    assert moves == [
        (InventoryTransaction.TYPE_PURCHASE, 5),
        (InventoryTransaction.TYPE_ADJUSTMENT, -15),
        (InventoryTransaction.TYPE_ADJUSTMENT, 12),
    ]


@pytest.mark.django_db
def test_update_stock_rejects_bad_input():
    product = ProductFactory()
    with pytest.raises(ValidationError):
        services.update_stock(product, 1, "multiply")
    with pytest.raises(ValidationError):
        services.update_stock(product, -1, "add")


@pytest.mark.django_db
def test_low_stock_lists_active_products_at_or_below_minimum():
    low = ProductFactory(stock_quantity=5, min_stock_level=5)
    ProductFactory(stock_quantity=6, min_stock_level=5)
    ProductFactory(stock_quantity=0, is_active=False)

    assert list(services.low_stock_products()) == [low]
    assert low.is_low_stock


@pytest.mark.django_db
def test_get_product_unknown():
    with pytest.raises(NotFoundError):
        services.get_product(123456)


@pytest.mark.django_db
def test_category_with_active_products_cannot_be_deactivated():
    category = CategoryFactory()
    ProductFactory(category=category)
    with pytest.raises(ConflictError):
        services.deactivate_category(category)

    empty = CategoryFactory()
    services.deactivate_category(empty)
    empty.refresh_from_db()
    assert empty.is_active is False


@pytest.mark.django_db
def test_delete_all_products_keeps_sold_products_deactivated():
    sold = ProductFactory()
    ProductFactory()
    ProductFactory()
    engine.create_order([{"product_id": sold.pk, "quantity": 1}])

    result = services.delete_all_products()

    assert result == {"deleted_count": 2, "deactivated_count": 1}
    assert list(Product.objects.all()) == [sold]
    sold.refresh_from_db()
    assert sold.is_active is False


@pytest.mark.django_db
def test_delete_all_categories_uncategorises_products():
    product = ProductFactory()
    CategoryFactory()

    result = services.delete_all_categories()

    assert result == {"deleted_count": 2}
    assert not Category.objects.exists()
    product.refresh_from_db()
    assert product.category is None
