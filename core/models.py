from django.db import models
from django.core.validators import RegexValidator, MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils.html import strip_tags


class Table(models.Model):
    """
    Physical café table.

    ``current_order`` is a lookup pointer only: orders reference the table,
    never the other way round, so deleting an order just nulls the pointer.
    """
    STATUS_AVAILABLE = "available"
    STATUS_OCCUPIED = "occupied"
    STATUS_RESERVED = "reserved"
    STATUS_MAINTENANCE = "maintenance"

    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_OCCUPIED, "Occupied"),
        (STATUS_RESERVED, "Reserved"),
        (STATUS_MAINTENANCE, "Maintenance"),
    ]

    table_number_regex = RegexValidator(
        regex=r'^[A-Za-z0-9\-_]+$',
        message="Table number can only contain letters, numbers, hyphens, and underscores."
    )

    table_number = models.CharField(
        max_length=50,
        unique=True,
        validators=[table_number_regex],
        help_text="Unique table identifier (alphanumeric, hyphens, underscores only)"
    )
    capacity = models.PositiveIntegerField(
        default=4,
        validators=[MinValueValidator(1), MaxValueValidator(50)],
        help_text="Maximum seating capacity (1-50 people)"
    )
    location = models.CharField(
        max_length=100,
        blank=True,
        help_text="Area of the café, e.g. 'Terrace' (HTML tags will be stripped)"
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_AVAILABLE,
        db_index=True,
    )
    current_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Order currently open on this table (lookup only)"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this table is currently in service"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["table_number"]
        indexes = [
            models.Index(fields=['status', 'is_active'], name='table_status_active_idx'),
        ]

    def clean(self):
        super().clean()

        if self.table_number:
            self.table_number = self.table_number.strip().upper()
            if not self.table_number:
                raise ValidationError({'table_number': 'Table number cannot be empty.'})

        if self.location:
            self.location = strip_tags(self.location).strip()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def mark_available(self, save=True):
        self.status = self.STATUS_AVAILABLE
        self.current_order = None
        if save:
            self.save(update_fields=["status", "current_order", "updated_at"])

    def mark_occupied(self, order, save=True):
        self.status = self.STATUS_OCCUPIED
        self.current_order = order
        if save:
            self.save(update_fields=["status", "current_order", "updated_at"])

    def __str__(self) -> str:
        return f"Table {self.table_number} ({self.capacity})"
