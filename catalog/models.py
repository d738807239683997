from decimal import Decimal
import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.html import strip_tags


class Category(models.Model):
    color_regex = RegexValidator(
        regex=r'^#[0-9A-Fa-f]{6}$',
        message="Color must be a hex value like '#8B4513'."
    )

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Category name (HTML tags will be stripped)"
    )
    description = models.TextField(blank=True)
    color = models.CharField(
        max_length=7,
        default="#8B4513",
        validators=[color_regex],
        help_text="Button colour on the POS screen"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = "categories"

    def clean(self):
        super().clean()
        if self.name:
            self.name = strip_tags(self.name).strip()
            if not self.name:
                raise ValidationError({'name': 'Category name cannot be empty after sanitization.'})
        if self.description:
            self.description = strip_tags(self.description).strip()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """
    Sellable item.

    ``stock_quantity`` is advisory: sales decrement it even below zero and
    every change is mirrored by an ``InventoryTransaction`` row.
    """
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="products",
    )
    name = models.CharField(
        max_length=200,
        help_text="Product name (HTML tags will be stripped)"
    )
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Selling price; order lines snapshot it"
    )
    cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True)
    barcode = models.CharField(max_length=100, blank=True)
    stock_quantity = models.IntegerField(default=0)
    min_stock_level = models.PositiveIntegerField(default=5)
    image_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'is_active'], name='product_category_active_idx'),
            models.Index(fields=['is_active', 'stock_quantity'], name='product_active_stock_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(cost__gte=0),
                name='product_cost_non_negative'
            ),
        ]

    def clean(self):
        super().clean()
        if self.name:
            self.name = strip_tags(self.name).strip()
            if not self.name:
                raise ValidationError({'name': 'Product name cannot be empty after sanitization.'})
        if self.description:
            self.description = strip_tags(self.description).strip()
        if self.sku == "":
            self.sku = None

    def save(self, *args, **kwargs):
        self.full_clean()
        if not self.sku:
            self.sku = self.generate_sku(self.name)
        super().save(*args, **kwargs)

    @staticmethod
    def generate_sku(name: str) -> str:
        stem = re.sub(r'[^A-Za-z0-9]', '', name).upper()[:20] or "ITEM"
        return f"SKU-{stem}-{int(timezone.now().timestamp() * 1000)}"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_level

    def __str__(self) -> str:
        return self.name


class InventoryTransaction(models.Model):
    """Signed stock movement; the ledger behind ``Product.stock_quantity``."""

    TYPE_SALE = "sale"
    TYPE_PURCHASE = "purchase"
    TYPE_ADJUSTMENT = "adjustment"
    TYPE_WASTE = "waste"

    TYPE_CHOICES = [
        (TYPE_SALE, "Sale"),
        (TYPE_PURCHASE, "Purchase"),
        (TYPE_ADJUSTMENT, "Adjustment"),
        (TYPE_WASTE, "Waste"),
    ]

    REF_ORDER = "order"
    REF_CANCELLATION = "cancellation"
    REF_REFUND = "refund"
    REF_ORDER_DELETION = "order_deletion"
    REF_TABLE_CLEAR = "table_clear"
    REF_MANUAL = "manual"

    REFERENCE_CHOICES = [
        (REF_ORDER, "Order"),
        (REF_CANCELLATION, "Order cancellation"),
        (REF_REFUND, "Order refund"),
        (REF_ORDER_DELETION, "Order history deletion"),
        (REF_TABLE_CLEAR, "Table clear"),
        (REF_MANUAL, "Manual adjustment"),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="inventory_transactions")
    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity = models.IntegerField(help_text="Signed change applied to stock")
    reference_type = models.CharField(max_length=20, choices=REFERENCE_CHOICES, default=REF_MANUAL)
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', '-created_at'], name='invtx_product_created_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='invtx_reference_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.transaction_type} {self.quantity:+d} {self.product_id}"
