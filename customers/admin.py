from django.contrib import admin

from .models import Customer, LoyaltyTransaction


class LoyaltyTransactionInline(admin.TabularInline):
    model = LoyaltyTransaction
    extra = 0
    readonly_fields = ('transaction_type', 'points', 'order', 'description', 'created_by', 'created_at')
    can_delete = False


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'membership_type', 'loyalty_points', 'total_spent', 'created_at')
    list_filter = ('membership_type',)
    search_fields = ('name', 'phone', 'email')
    readonly_fields = ('loyalty_points', 'total_spent', 'created_at', 'updated_at')
    inlines = [LoyaltyTransactionInline]
