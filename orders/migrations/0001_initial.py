from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("active", "Active"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("core", "0001_initial"),
        ("customers", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(blank=True, help_text="Human-readable order number", max_length=50, unique=True)),
                ("table_number", models.CharField(blank=True, help_text="Table number at the time of ordering", max_length=50)),
                (
                    "order_type",
                    models.CharField(
                        choices=[("dine_in", "Dine In"), ("takeaway", "Takeaway"), ("delivery", "Delivery")],
                        default="dine_in",
                        max_length=20,
                    ),
                ),
                (
                    "total_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Sum of line totals before discount and tax",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "discount_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "tax_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "final_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount due: max(0, total - discount) + tax",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("mobile", "Mobile"),
                            ("loyalty_points", "Loyalty Points"),
                        ],
                        default="cash",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "order_status",
                    models.CharField(choices=ORDER_STATUS_CHOICES, db_index=True, default="active", max_length=20),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("regular", "Regular"), ("combined", "Combined table bill")],
                        db_index=True,
                        default="regular",
                        max_length=20,
                    ),
                ),
                ("stock_restored", models.BooleanField(default=False, help_text="Stock consumed by this order has been given back")),
                ("notes", models.TextField(blank=True, max_length=1000)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cashier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders_taken",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "combined_into",
                    models.ForeignKey(
                        blank=True,
                        help_text="Combined bill that has claimed this order",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="constituents",
                        to="orders.order",
                    ),
                ),
                (
                    "combined_source_table",
                    models.ForeignKey(
                        blank=True,
                        help_text="Table a combined bill was created for",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="core.table",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="customers.customer",
                    ),
                ),
                (
                    "table",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="core.table",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["table", "order_status", "payment_status"], name="order_table_status_idx"),
                    models.Index(fields=["kind", "order_status", "-created_at"], name="order_kind_status_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("final_amount__gte", 0)),
                        name="order_final_amount_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_amount__gte", 0), ("discount_amount__gte", 0), ("tax_amount__gte", 0)),
                        name="order_amounts_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Product price when the order was placed",
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("notes", models.CharField(blank=True, max_length=255)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="order_item_quantity_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("previous_status", models.CharField(blank=True, choices=ORDER_STATUS_CHOICES, max_length=20, null=True)),
                ("new_status", models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20)),
                ("change_reason", models.TextField(blank=True, max_length=500)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_status_changes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Order Status History",
                "verbose_name_plural": "Order Status Histories",
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["order", "-created_at"], name="order_history_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="UnpaidLedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=200)),
                ("customer_phone", models.CharField(blank=True, max_length=20)),
                ("table_number", models.CharField(blank=True, max_length=50)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("items_summary", models.JSONField(blank=True, default=list)),
                ("notes", models.TextField(blank=True, max_length=1000)),
                (
                    "order_was_paid",
                    models.BooleanField(default=False, help_text="The order was already paid when it was put on the ledger"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="unpaid_entry",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Unpaid Ledger Entry",
                "verbose_name_plural": "Unpaid Ledger",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["customer_name"], name="unpaid_customer_name_idx"),
                    models.Index(fields=["table_number"], name="unpaid_table_number_idx"),
                ],
            },
        ),
    ]
