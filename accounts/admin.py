from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import User, UserCapability


class UserCapabilityInline(admin.TabularInline):
    """Explicit capability grants; only consulted for cashiers."""
    model = UserCapability
    fk_name = "user"
    extra = 0
    readonly_fields = ("granted_by", "created_at")
    verbose_name = "Capability grant"
    verbose_name_plural = "Capability grants"


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("username", "full_name", "email", "role", "is_active")
    list_filter = ("role", "is_superuser", "is_active")

    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Personal info"), {"fields": ("full_name", "first_name", "last_name", "email")}),
        (_("Role"), {"fields": ("role", "is_active", "is_staff", "is_superuser")}),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "password1", "password2", "email", "full_name", "role"),
            },
        ),
    )

    search_fields = ("username", "full_name", "email")
    ordering = ("username",)
    filter_horizontal: tuple = ()
    inlines = [UserCapabilityInline]
