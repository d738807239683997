from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models

from core.permissions import ALL_ROLES, Capability, ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER


class User(AbstractUser):
    """
    Café staff account.

    ``role`` decides the capability set: admins hold everything, managers all
    but the admin-only capabilities, cashiers only what was granted to them
    through ``UserCapability`` rows.
    """
    ROLE_ADMIN = ROLE_ADMIN
    ROLE_MANAGER = ROLE_MANAGER
    ROLE_CASHIER = ROLE_CASHIER

    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_CASHIER, "Cashier"),
    ]

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_CASHIER,
        db_index=True,
        help_text="Staff role; cashiers additionally need explicit capability grants"
    )
    full_name = models.CharField(max_length=150, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True, null=True, blank=True)

    class Meta:
        swappable = "AUTH_USER_MODEL"
        indexes = [
            models.Index(fields=['role', 'is_active'], name='user_role_active_idx'),
        ]

    def clean(self):
        super().clean()
        if self.email:
            self.email = self.email.lower()
        if self.role not in ALL_ROLES:
            raise ValidationError({'role': f"Unknown role '{self.role}'."})

    def __str__(self) -> str:
        return self.get_username() or f"User#{self.pk}"

    def get_full_name(self):
        if self.full_name:
            return self.full_name
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.get_username()


class UserCapability(models.Model):
    """Explicit capability grant (or revocation) for one user."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="capabilities",
    )
    capability = models.CharField(max_length=50, choices=Capability.choices)
    granted = models.BooleanField(default=True)
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["capability"]
        constraints = [
            models.UniqueConstraint(fields=["user", "capability"], name="unique_user_capability"),
        ]

    def __str__(self) -> str:
        state = "granted" if self.granted else "revoked"
        return f"{self.user_id}:{self.capability} ({state})"
