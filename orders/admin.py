from __future__ import annotations

import csv

from django.contrib import admin
from django.http import HttpResponse

from billing.models import Payment
from .models import Order, OrderItem, OrderStatusHistory, UnpaidLedgerEntry


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    raw_id_fields = ("product",)
    readonly_fields = ("unit_price", "total_price")


class PaymentInline(admin.StackedInline):
    model = Payment
    extra = 0
    can_delete = False
    fk_name = "order"
    readonly_fields = ("amount", "currency", "method", "status", "reference", "created_at", "updated_at")


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ("previous_status", "new_status", "changed_by", "change_reason", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "kind",
        "table_number",
        "customer",
        "order_status",
        "payment_status",
        "payment_method",
        "total_amount",
        "discount_amount",
        "final_amount",
        "created_at",
    )
    list_filter = ("order_status", "payment_status", "payment_method", "kind", "order_type", "created_at")
    date_hierarchy = "created_at"
    inlines = [OrderItemInline, PaymentInline, OrderStatusHistoryInline]
    search_fields = ("order_number", "table_number", "customer__name", "customer__phone")
    raw_id_fields = ("customer", "table", "cashier", "combined_into", "combined_source_table")
    ordering = ("-created_at",)
    # Money and lifecycle fields only change through the services
    readonly_fields = (
        "order_number", "total_amount", "discount_amount", "tax_amount", "final_amount",
        "order_status", "payment_status", "stock_restored", "completed_at", "cancelled_at",
        "created_at", "updated_at",
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("customer", "table")

    actions = ["export_sales_csv"]

    def export_sales_csv(self, request, queryset):
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="sales.csv"'
        writer = csv.writer(response)
        writer.writerow([
            "Order Number", "Created At", "Kind", "Table", "Customer",
            "Status", "Payment Status", "Payment Method",
            "Total", "Discount", "Tax", "Final",
        ])
        for order in queryset.select_related("customer").order_by("created_at"):
            writer.writerow([
                order.order_number,
                order.created_at.isoformat(),
                order.kind,
                order.table_number,
                order.customer.name if order.customer_id else "",
                order.order_status,
                order.payment_status,
                order.payment_method,
                order.total_amount,
                order.discount_amount,
                order.tax_amount,
                order.final_amount,
            ])
        return response
    export_sales_csv.short_description = "Export selected orders to CSV"


@admin.register(UnpaidLedgerEntry)
class UnpaidLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("customer_name", "customer_phone", "order", "table_number", "total_amount", "order_was_paid", "created_at")
    list_filter = ("order_was_paid", "created_at")
    search_fields = ("customer_name", "customer_phone", "order__order_number", "table_number")
    raw_id_fields = ("order", "created_by")
    readonly_fields = ("total_amount", "items_summary", "order_was_paid", "created_at", "updated_at")
