from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.utils.html import strip_tags


class Customer(models.Model):
    MEMBERSHIP_REGULAR = "regular"
    MEMBERSHIP_SILVER = "silver"
    MEMBERSHIP_GOLD = "gold"
    MEMBERSHIP_PLATINUM = "platinum"

    MEMBERSHIP_CHOICES = [
        (MEMBERSHIP_REGULAR, "Regular"),
        (MEMBERSHIP_SILVER, "Silver"),
        (MEMBERSHIP_GOLD, "Gold"),
        (MEMBERSHIP_PLATINUM, "Platinum"),
    ]

    phone_regex = RegexValidator(
        regex=r'^\+?[\d\s\-]{6,20}$',
        message="Phone number may contain digits, spaces, dashes and a leading '+'."
    )

    name = models.CharField(max_length=200, help_text="Customer name (HTML tags will be stripped)")
    phone = models.CharField(max_length=20, unique=True, validators=[phone_regex])
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    membership_type = models.CharField(
        max_length=20,
        choices=MEMBERSHIP_CHOICES,
        default=MEMBERSHIP_REGULAR,
        db_index=True,
    )
    date_of_birth = models.DateField(null=True, blank=True)
    anniversary_date = models.DateField(null=True, blank=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Running total of completed orders"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='customer_name_idx'),
        ]

    def clean(self):
        super().clean()
        if self.name:
            self.name = strip_tags(self.name).strip()
            if not self.name:
                raise ValidationError({'name': 'Customer name cannot be empty after sanitization.'})
        if self.address:
            self.address = strip_tags(self.address).strip()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.phone})"


class LoyaltyTransaction(models.Model):
    """Points ledger. Positive = earn/bonus, negative = redeem."""

    TYPE_EARN = "earn"
    TYPE_BONUS = "bonus"
    TYPE_REDEEM = "redeem"

    TYPE_CHOICES = [
        (TYPE_EARN, "Earn"),
        (TYPE_BONUS, "Bonus"),
        (TYPE_REDEEM, "Redeem"),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="loyalty_transactions")
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="loyalty_transactions",
    )
    transaction_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    points = models.IntegerField(help_text="Signed points change actually applied")
    description = models.CharField(max_length=200, blank=True)
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

    def __str__(self) -> str:
        return f"{self.customer_id} {self.transaction_type} {self.points:+d}"
