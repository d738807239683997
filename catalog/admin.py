from django.contrib import admin

from .models import Category, InventoryTransaction, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'color', 'is_active', 'updated_at')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'stock_quantity', 'min_stock_level', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('name', 'sku', 'barcode')
    list_editable = ('is_active',)
    readonly_fields = ('stock_quantity', 'created_at', 'updated_at')


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ('product', 'transaction_type', 'quantity', 'reference_type', 'reference_id', 'created_at')
    list_filter = ('transaction_type', 'reference_type')
    search_fields = ('product__name',)
    readonly_fields = [f.name for f in InventoryTransaction._meta.fields]
