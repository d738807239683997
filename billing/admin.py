from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "amount", "currency", "method", "status", "reference", "created_at")
    list_filter = ("method", "status", "created_at")
    search_fields = ("order__order_number", "reference")
    raw_id_fields = ("order", "created_by")
    readonly_fields = ("created_at", "updated_at")
