from __future__ import annotations

import logging
from typing import Iterable

from django.db import models
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)


ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_CASHIER = "cashier"

ALL_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


class Capability(models.TextChoices):
    POS_ACCESS = "pos.access", "Access POS System"
    POS_DISCOUNT = "pos.discount", "Apply Discounts"
    POS_REFUND = "pos.refund", "Process Refunds"
    POS_VOID = "pos.void", "Void Orders"

    PRODUCTS_VIEW = "products.view", "View Products"
    PRODUCTS_CREATE = "products.create", "Create Products"
    PRODUCTS_EDIT = "products.edit", "Edit Products"
    PRODUCTS_DELETE = "products.delete", "Delete Products"
    PRODUCTS_DELETE_ALL = "products.delete_all", "Delete All Products"

    CATEGORIES_VIEW = "categories.view", "View Categories"
    CATEGORIES_CREATE = "categories.create", "Create Categories"
    CATEGORIES_EDIT = "categories.edit", "Edit Categories"
    CATEGORIES_DELETE = "categories.delete", "Delete Categories"
    CATEGORIES_DELETE_ALL = "categories.delete_all", "Delete All Categories"

    ORDERS_VIEW = "orders.view", "View Orders"
    ORDERS_CREATE = "orders.create", "Create Orders"
    ORDERS_EDIT = "orders.edit", "Edit Orders"
    ORDERS_DELETE = "orders.delete", "Delete Orders"
    ORDERS_PRINT = "orders.print", "Print Orders/Receipts"
    ORDERS_DOWNLOAD = "orders.download", "Download Orders/Receipts"

    TABLES_VIEW = "tables.view", "View Tables"
    TABLES_CREATE = "tables.create", "Create Tables"
    TABLES_EDIT = "tables.edit", "Edit Tables"
    TABLES_DELETE = "tables.delete", "Delete Tables"
    TABLES_RESET = "tables.reset", "Reset Tables"
    TABLES_CLEAR_ORDERS = "tables.clear_orders", "Clear Table Orders"

    CUSTOMERS_VIEW = "customers.view", "View Customers"
    CUSTOMERS_CREATE = "customers.create", "Create Customers"
    CUSTOMERS_EDIT = "customers.edit", "Edit Customers"
    CUSTOMERS_DELETE = "customers.delete", "Delete Customers"

    PAYMENTS_PROCESS = "payments.process", "Process Payments"
    PAYMENTS_VIEW_HISTORY = "payments.view_history", "View Payment History"

    REPORTS_VIEW = "reports.view", "View Reports"
    REPORTS_ANALYTICS = "reports.analytics", "View Analytics"
    REPORTS_DELETE = "reports.delete", "Delete Reports"

    INVENTORY_VIEW = "inventory.view", "View Inventory"
    INVENTORY_ADJUST = "inventory.adjust", "Adjust Inventory"

    SETTINGS_VIEW = "settings.view", "View Settings"
    SETTINGS_EDIT = "settings.edit", "Edit Settings"

    @property
    def category(self) -> str:
        return self.value.split(".", 1)[0]


# Managers get everything except these
ADMIN_ONLY_CAPABILITIES = frozenset({
    Capability.PRODUCTS_DELETE_ALL,
    Capability.CATEGORIES_DELETE_ALL,
    Capability.REPORTS_DELETE,
    Capability.SETTINGS_EDIT,
})


def user_role(user) -> str | None:
    if not user or not getattr(user, "is_authenticated", False):
        return None
    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN
    return getattr(user, "role", None)


def granted_capabilities(user) -> set[str]:
    """Explicit grants stored for the user (only consulted for cashiers)."""
    if not user or not getattr(user, "is_authenticated", False):
        return set()
    return set(
        user.capabilities.filter(granted=True).values_list("capability", flat=True)
    )


def has_capability(user, capability: str) -> bool:
    role = user_role(user)
    if role == ROLE_ADMIN:
        return True
    if role == ROLE_MANAGER:
        return capability not in ADMIN_ONLY_CAPABILITIES
    if role == ROLE_CASHIER:
        return capability in granted_capabilities(user)
    return False


def has_any_capability(user, capabilities: Iterable[str]) -> bool:
    return any(has_capability(user, c) for c in capabilities)


def effective_capabilities(user) -> list[str]:
    return [c.value for c in Capability if has_capability(user, c.value)]


class HasCapability(BasePermission):
    """
    Grants access when the user holds any capability listed for the current action.

    Views declare ``required_capabilities`` as a mapping of action name to a
    tuple of capabilities; ``"*"`` is the fallback. Actions with no entry only
    require authentication.
    """

    message = "Access denied: Insufficient permissions"

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        mapping = getattr(view, "required_capabilities", None) or {}
        action = getattr(view, "action", None) or request.method.lower()
        required = mapping.get(action, mapping.get("*", ()))
        if not required:
            return True

        if has_any_capability(user, required):
            return True

        logger.warning(
            f"PERMISSION DENIED: User {user.get_username()} ({user_role(user)}) "
            f"tried to access one of: {', '.join(required)}"
        )
        return False


class IsAdminRole(BasePermission):
    """Staff administration (users, capability grants) is reserved for admins."""

    message = "Access denied: Admin role required"

    def has_permission(self, request, view):
        return user_role(request.user) == ROLE_ADMIN
