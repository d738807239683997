from django.contrib import admin

from .models import Table


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ('table_number', 'location', 'capacity', 'status', 'current_order', 'is_active', 'updated_at')
    list_filter = ('status', 'location', 'is_active')
    search_fields = ('table_number', 'location')
    list_editable = ('is_active',)
    ordering = ('table_number',)
    readonly_fields = ('current_order', 'created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('table_number', 'capacity', 'location')
        }),
        ('Service', {
            'fields': ('status', 'current_order', 'is_active')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
