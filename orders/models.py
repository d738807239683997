from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.html import strip_tags

from core.exceptions import InvalidTransitionError
from .services.totals import q2
from .signals import order_status_changed


class Order(models.Model):
    """
    A customer order, or a combined table bill.

    A combined bill (``kind=combined``) carries no lines of its own; the
    regular orders it settles point at it through ``combined_into``.
    """
    TYPE_DINE_IN = "dine_in"
    TYPE_TAKEAWAY = "takeaway"
    TYPE_DELIVERY = "delivery"

    ORDER_TYPE_CHOICES = [
        (TYPE_DINE_IN, "Dine In"),
        (TYPE_TAKEAWAY, "Takeaway"),
        (TYPE_DELIVERY, "Delivery"),
    ]

    STATUS_ACTIVE = "active"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_COMPLETED = "completed"
    PAYMENT_FAILED = "failed"
    PAYMENT_REFUNDED = "refunded"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_COMPLETED, "Completed"),
        (PAYMENT_FAILED, "Failed"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_MOBILE = "mobile"
    METHOD_LOYALTY_POINTS = "loyalty_points"

    PAYMENT_METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_MOBILE, "Mobile"),
        (METHOD_LOYALTY_POINTS, "Loyalty Points"),
    ]

    KIND_REGULAR = "regular"
    KIND_COMBINED = "combined"

    KIND_CHOICES = [
        (KIND_REGULAR, "Regular"),
        (KIND_COMBINED, "Combined table bill"),
    ]

    VALID_STATUS_TRANSITIONS = {
        STATUS_ACTIVE: [STATUS_COMPLETED, STATUS_CANCELLED],
        STATUS_COMPLETED: [STATUS_REFUNDED],
        STATUS_CANCELLED: [],
        STATUS_REFUNDED: [],
    }

    order_number = models.CharField(
        max_length=50,
        unique=True,
        blank=True,
        help_text="Human-readable order number"
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    table = models.ForeignKey(
        "core.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    table_number = models.CharField(
        max_length=50,
        blank=True,
        help_text="Table number at the time of ordering"
    )
    order_type = models.CharField(
        max_length=20,
        choices=ORDER_TYPE_CHOICES,
        default=TYPE_DINE_IN,
    )

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Sum of line totals before discount and tax"
    )
    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    tax_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    final_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Amount due: max(0, total - discount) + tax"
    )

    payment_method = models.CharField(
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default=METHOD_CASH,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PENDING,
        db_index=True,
    )
    order_status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
    )

    kind = models.CharField(
        max_length=20,
        choices=KIND_CHOICES,
        default=KIND_REGULAR,
        db_index=True,
    )
    combined_source_table = models.ForeignKey(
        "core.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Table a combined bill was created for"
    )
    combined_into = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="constituents",
        help_text="Combined bill that has claimed this order"
    )
    stock_restored = models.BooleanField(
        default=False,
        help_text="Stock consumed by this order has been given back"
    )

    notes = models.TextField(blank=True, max_length=1000)
    cashier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_taken",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["table", "order_status", "payment_status"], name="order_table_status_idx"),
            models.Index(fields=["kind", "order_status", "-created_at"], name="order_kind_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(final_amount__gte=0),
                name="order_final_amount_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0) & models.Q(discount_amount__gte=0) & models.Q(tax_amount__gte=0),
                name="order_amounts_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.order_number or self.pk} ({self.order_status})"

    @property
    def is_combined(self) -> bool:
        return self.kind == self.KIND_COMBINED

    @property
    def is_open(self) -> bool:
        """Still awaiting settlement."""
        return (
            self.order_status in (self.STATUS_ACTIVE, self.STATUS_COMPLETED)
            and self.payment_status != self.PAYMENT_COMPLETED
        )

    def clean(self):
        super().clean()
        if self.notes:
            self.notes = strip_tags(self.notes).strip()
        if self.table_number:
            self.table_number = self.table_number.strip().upper()
        if self.is_combined and self.combined_into_id:
            raise ValidationError({"combined_into": "A combined bill cannot be claimed by another bill."})

    def generate_order_number(self):
        """ORD-YYYYMMDD-NNNN, or TBL-<table>-YYYYMMDD-NNNN for combined bills."""
        if self.order_number:
            return
        date_str = timezone.localdate().strftime("%Y%m%d")
        if self.is_combined:
            prefix = getattr(settings, "POS_COMBINED_NUMBER_PREFIX", "TBL")
            table_number = self.table_number or "X"
            stem = f"{prefix}-{table_number}-{date_str}"
        else:
            prefix = getattr(settings, "POS_ORDER_NUMBER_PREFIX", "ORD")
            stem = f"{prefix}-{date_str}"

        last_order = (
            Order.objects.filter(order_number__startswith=f"{stem}-")
            .order_by("-order_number")
            .first()
        )
        new_num = 1
        if last_order:
            try:
                new_num = int(last_order.order_number.rsplit("-", 1)[-1]) + 1
            except ValueError:
                new_num = Order.objects.filter(order_number__startswith=f"{stem}-").count() + 1
        self.order_number = f"{stem}-{new_num:04d}"

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.generate_order_number()
        self.total_amount = q2(self.total_amount)
        self.discount_amount = q2(self.discount_amount)
        self.tax_amount = q2(self.tax_amount)
        self.final_amount = q2(self.final_amount)
        self.full_clean()
        super().save(*args, **kwargs)

    def record_creation(self, by_user=None):
        OrderStatusHistory.objects.create(
            order=self,
            previous_status=None,
            new_status=self.order_status,
            changed_by=by_user,
            change_reason="Order created",
        )
        order_status_changed.send(sender=Order, order=self, old="", new=self.order_status, by_user=by_user)

    def transition_to(self, new_status: str, by_user=None, reason: str = ""):
        """
        Perform a validated status transition and record history + timestamps.

        Payment fields set on the instance beforehand are saved together with
        the status.
        """
        old = self.order_status
        new = (new_status or "").strip().lower()
        if new not in self.VALID_STATUS_TRANSITIONS.get(old, []):
            raise InvalidTransitionError(
                f"Cannot change order {self.order_number} from {old} to {new or 'nothing'}"
            )

        now = timezone.now()
        if new == self.STATUS_COMPLETED and not self.completed_at:
            self.completed_at = now
        elif new == self.STATUS_CANCELLED and not self.cancelled_at:
            self.cancelled_at = now

        self.order_status = new
        self.save(update_fields=[
            "order_status", "payment_status", "payment_method",
            "completed_at", "cancelled_at", "updated_at",
        ])

        OrderStatusHistory.objects.create(
            order=self,
            previous_status=old,
            new_status=new,
            changed_by=by_user,
            change_reason=reason,
        )
        order_status_changed.send(sender=Order, order=self, old=old, new=new, by_user=by_user)


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Product price when the order was placed"
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    notes = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_item_quantity_positive",
            ),
        ]

    def save(self, *args, **kwargs):
        self.unit_price = q2(self.unit_price)
        self.total_price = q2(self.unit_price * self.quantity)
        if self.notes:
            self.notes = strip_tags(self.notes).strip()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.quantity} x {self.product_id} @ {self.unit_price}"


class OrderStatusHistory(models.Model):
    """Audit trail of every status change, creation included."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="status_history")
    previous_status = models.CharField(
        max_length=20,
        choices=Order.STATUS_CHOICES,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=Order.STATUS_CHOICES)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="order_status_changes",
    )
    change_reason = models.TextField(blank=True, max_length=500)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Order Status History"
        verbose_name_plural = "Order Status Histories"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["order", "-created_at"], name="order_history_order_idx"),
        ]

    def __str__(self):
        user_desc = f" by {self.changed_by.get_username()}" if self.changed_by_id else " (System)"
        return f"Order #{self.order.order_number}: {self.previous_status or 'None'} -> {self.new_status}{user_desc}"


class UnpaidLedgerEntry(models.Model):
    """
    A debt recorded against a customer name, independent of any table.

    Amount and lines are snapshots taken when the entry is created.
    """
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="unpaid_entry")
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20, blank=True)
    table_number = models.CharField(max_length=50, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    items_summary = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, max_length=1000)
    order_was_paid = models.BooleanField(
        default=False,
        help_text="The order was already paid when it was put on the ledger"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Unpaid Ledger Entry"
        verbose_name_plural = "Unpaid Ledger"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer_name"], name="unpaid_customer_name_idx"),
            models.Index(fields=["table_number"], name="unpaid_table_number_idx"),
        ]

    def clean(self):
        super().clean()
        self.customer_name = strip_tags(self.customer_name or "").strip()
        if not self.customer_name:
            raise ValidationError({"customer_name": "Customer name is required."})
        if self.notes:
            self.notes = strip_tags(self.notes).strip()
        if self.table_number:
            self.table_number = self.table_number.strip().upper()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.customer_name} owes {self.total_amount} ({self.order.order_number})"
