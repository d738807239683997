import factory
from decimal import Decimal

from catalog import models as catalog_models


class CategoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = catalog_models.Category

    name = factory.Sequence(lambda n: f"Category {n}")
    color = "#8B4513"
    is_active = True


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = catalog_models.Product

    category = factory.SubFactory(CategoryFactory)
    name = factory.Sequence(lambda n: f"Product {n}")
    price = Decimal("100.00")
    cost = Decimal("40.00")
    sku = factory.Sequence(lambda n: f"SKU-TEST-{n}")
    stock_quantity = 50
    min_stock_level = 5
    is_active = True
