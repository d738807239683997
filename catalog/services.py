"""
Catalog services: product lookup, stock movements and bulk clean-up.

Stock is always changed with a single ``F()`` update plus an
``InventoryTransaction`` row, so concurrent sales never lose an update.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F

from core.exceptions import ConflictError, NotFoundError, ValidationError, wrap_database_errors
from .models import Category, InventoryTransaction, Product

logger = logging.getLogger(__name__)

STOCK_MODE_ADD = "add"
STOCK_MODE_SUBTRACT = "subtract"
STOCK_MODE_SET = "set"
STOCK_MODES = (STOCK_MODE_ADD, STOCK_MODE_SUBTRACT, STOCK_MODE_SET)


def get_product(product_id) -> Product:
    try:
        return Product.objects.select_related("category").get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Product {product_id} not found")


def adjust_stock(
    product: Product,
    delta: int,
    transaction_type: str,
    reference_type: str,
    reference_id=None,
    notes: str = "",
    by_user=None,
) -> InventoryTransaction:
    """Apply a signed stock change and record it. Caller owns the transaction."""
    Product.objects.filter(pk=product.pk).update(stock_quantity=F("stock_quantity") + delta)
    product.refresh_from_db(fields=["stock_quantity"])
    if product.stock_quantity < 0:
        logger.warning(
            f"Stock for product {product.pk} ({product.name}) is negative: {product.stock_quantity}"
        )
    return InventoryTransaction.objects.create(
        product=product,
        transaction_type=transaction_type,
        quantity=delta,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=by_user,
    )


@wrap_database_errors
def update_stock(product: Product, quantity: int, mode: str, notes: str = "", by_user=None) -> Product:
    """
    Manual stock adjustment from the inventory screen.

    ``subtract`` floors at zero; ``set`` replaces the level outright. The
    recorded transaction carries the effective signed change.
    """
    if mode not in STOCK_MODES:
        raise ValidationError(f"Invalid type '{mode}'. Use add, subtract, or set")
    if quantity is None or int(quantity) < 0:
        raise ValidationError("Quantity must be a non-negative integer")
    quantity = int(quantity)

    with transaction.atomic():
        locked = Product.objects.select_for_update().get(pk=product.pk)
        current = locked.stock_quantity
        if mode == STOCK_MODE_ADD:
            target = current + quantity
        elif mode == STOCK_MODE_SUBTRACT:
            target = max(0, current - quantity)
        else:
            target = quantity

        delta = target - current
        tx_type = InventoryTransaction.TYPE_PURCHASE if mode == STOCK_MODE_ADD else InventoryTransaction.TYPE_ADJUSTMENT
        adjust_stock(
            locked,
            delta,
            tx_type,
            InventoryTransaction.REF_MANUAL,
            notes=notes,
            by_user=by_user,
        )

    logger.info(f"Stock for product {locked.pk} {mode} {quantity}: {current} -> {target}")
    locked.refresh_from_db()
    return locked


def low_stock_products():
    return (
        Product.objects.filter(is_active=True, stock_quantity__lte=F("min_stock_level"))
        .select_related("category")
        .order_by("stock_quantity", "name")
    )


@wrap_database_errors
def deactivate_product(product: Product) -> Product:
    product.is_active = False
    product.save(update_fields=["is_active", "updated_at"])
    logger.info(f"Product {product.pk} ({product.name}) deactivated")
    return product


@wrap_database_errors
def deactivate_category(category: Category) -> Category:
    if category.products.filter(is_active=True).exists():
        raise ConflictError(
            "Cannot delete category with active products. Please move or deactivate products first."
        )
    category.is_active = False
    category.save(update_fields=["is_active", "updated_at"])
    logger.info(f"Category {category.pk} ({category.name}) deactivated")
    return category


@wrap_database_errors
def delete_all_products(by_user=None) -> dict:
    """
    Remove the whole product list.

    Products already sold are referenced by order lines and are deactivated
    instead of deleted, so sales history stays intact.
    """
    with transaction.atomic():
        sold = Product.objects.filter(order_items__isnull=False).distinct()
        sold_ids = list(sold.values_list("pk", flat=True))
        deactivated = Product.objects.filter(pk__in=sold_ids).update(is_active=False)

        unsold = Product.objects.exclude(pk__in=sold_ids)
        InventoryTransaction.objects.filter(product__in=unsold).delete()
        deleted = unsold.count()
        unsold.delete()

    who = by_user.get_username() if by_user else "system"
    logger.warning(f"DELETE ALL PRODUCTS by {who}: {deleted} rows deleted, {deactivated} products deactivated")
    return {"deleted_count": deleted, "deactivated_count": deactivated}


@wrap_database_errors
def delete_all_categories(by_user=None) -> dict:
    """Hard-delete every category; products become uncategorised."""
    with transaction.atomic():
        Product.objects.filter(category__isnull=False).update(category=None)
        deleted, _ = Category.objects.all().delete()

    who = by_user.get_username() if by_user else "system"
    logger.warning(f"DELETE ALL CATEGORIES by {who}: {deleted} categories removed")
    return {"deleted_count": deleted}
