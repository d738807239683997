import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                (
                    "is_superuser",
                    models.BooleanField(
                        default=False,
                        help_text="Designates that this user has all permissions without explicitly assigning them.",
                        verbose_name="superuser status",
                    ),
                ),
                (
                    "username",
                    models.CharField(
                        error_messages={"unique": "A user with that username already exists."},
                        help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                        max_length=150,
                        unique=True,
                        validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                        verbose_name="username",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("manager", "Manager"), ("cashier", "Cashier")],
                        db_index=True,
                        default="cashier",
                        help_text="Staff role; cashiers additionally need explicit capability grants",
                        max_length=20,
                    ),
                ),
                ("full_name", models.CharField(blank=True, max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "groups",
                    models.ManyToManyField(
                        blank=True,
                        help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.group",
                        verbose_name="groups",
                    ),
                ),
                (
                    "user_permissions",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Specific permissions for this user.",
                        related_name="user_set",
                        related_query_name="user",
                        to="auth.permission",
                        verbose_name="user permissions",
                    ),
                ),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
                "swappable": "AUTH_USER_MODEL",
                "indexes": [models.Index(fields=["role", "is_active"], name="user_role_active_idx")],
            },
            managers=[("objects", django.contrib.auth.models.UserManager())],
        ),
        migrations.CreateModel(
            name="UserCapability",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "capability",
                    models.CharField(
                        choices=[
                            ("pos.access", "Access POS System"),
                            ("pos.discount", "Apply Discounts"),
                            ("pos.refund", "Process Refunds"),
                            ("pos.void", "Void Orders"),
                            ("products.view", "View Products"),
                            ("products.create", "Create Products"),
                            ("products.edit", "Edit Products"),
                            ("products.delete", "Delete Products"),
                            ("products.delete_all", "Delete All Products"),
                            ("categories.view", "View Categories"),
                            ("categories.create", "Create Categories"),
                            ("categories.edit", "Edit Categories"),
                            ("categories.delete", "Delete Categories"),
                            ("categories.delete_all", "Delete All Categories"),
                            ("orders.view", "View Orders"),
                            ("orders.create", "Create Orders"),
                            ("orders.edit", "Edit Orders"),
                            ("orders.delete", "Delete Orders"),
                            ("orders.print", "Print Orders/Receipts"),
                            ("orders.download", "Download Orders/Receipts"),
                            ("tables.view", "View Tables"),
                            ("tables.create", "Create Tables"),
                            ("tables.edit", "Edit Tables"),
                            ("tables.delete", "Delete Tables"),
                            ("tables.reset", "Reset Tables"),
                            ("tables.clear_orders", "Clear Table Orders"),
                            ("customers.view", "View Customers"),
                            ("customers.create", "Create Customers"),
                            ("customers.edit", "Edit Customers"),
                            ("customers.delete", "Delete Customers"),
                            ("payments.process", "Process Payments"),
                            ("payments.view_history", "View Payment History"),
                            ("reports.view", "View Reports"),
                            ("reports.analytics", "View Analytics"),
                            ("reports.delete", "Delete Reports"),
                            ("inventory.view", "View Inventory"),
                            ("inventory.adjust", "Adjust Inventory"),
                            ("settings.view", "View Settings"),
                            ("settings.edit", "Edit Settings"),
                        ],
                        max_length=50,
                    ),
                ),
                ("granted", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "granted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="capabilities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["capability"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "capability"), name="unique_user_capability"),
                ],
            },
        ),
    ]
