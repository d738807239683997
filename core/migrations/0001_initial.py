import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "table_number",
                    models.CharField(
                        help_text="Unique table identifier (alphanumeric, hyphens, underscores only)",
                        max_length=50,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                message="Table number can only contain letters, numbers, hyphens, and underscores.",
                                regex="^[A-Za-z0-9\\-_]+$",
                            )
                        ],
                    ),
                ),
                (
                    "capacity",
                    models.PositiveIntegerField(
                        default=4,
                        help_text="Maximum seating capacity (1-50 people)",
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(50),
                        ],
                    ),
                ),
                (
                    "location",
                    models.CharField(
                        blank=True,
                        help_text="Area of the café, e.g. 'Terrace' (HTML tags will be stripped)",
                        max_length=100,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("occupied", "Occupied"),
                            ("reserved", "Reserved"),
                            ("maintenance", "Maintenance"),
                        ],
                        db_index=True,
                        default="available",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True, help_text="Whether this table is currently in service")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["table_number"],
                "indexes": [models.Index(fields=["status", "is_active"], name="table_status_active_idx")],
            },
        ),
    ]
