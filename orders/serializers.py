from decimal import Decimal

from rest_framework import serializers

from core.models import Table
from core.serializers import ConfirmationSerializer, TableSerializer
from customers.models import Customer
from .models import Order, OrderItem, OrderStatusHistory, UnpaidLedgerEntry
from .services.totals import DISCOUNT_FIXED, DISCOUNT_TYPES


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'total_price', 'notes']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    customer_phone = serializers.CharField(source='customer.phone', read_only=True, default=None)
    cashier_name = serializers.SerializerMethodField()
    combined_into_number = serializers.CharField(source='combined_into.order_number', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'kind', 'order_type',
            'customer', 'customer_name', 'customer_phone',
            'table', 'table_number', 'combined_source_table', 'combined_into', 'combined_into_number',
            'total_amount', 'discount_amount', 'tax_amount', 'final_amount',
            'payment_method', 'payment_status', 'order_status', 'stock_restored',
            'notes', 'cashier', 'cashier_name', 'items',
            'created_at', 'updated_at', 'completed_at', 'cancelled_at',
        ]
        read_only_fields = fields

    def get_cashier_name(self, obj):
        if not obj.cashier_id:
            return None
        return obj.cashier.full_name or obj.cashier.get_username()


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)


class OrderCreateSerializer(serializers.Serializer):
    """Input for a new order. Prices always come from the catalog."""
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    table = serializers.PrimaryKeyRelatedField(queryset=Table.objects.all(), required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, default=Order.METHOD_CASH)
    order_type = serializers.ChoiceField(choices=Order.ORDER_TYPE_CHOICES, default=Order.TYPE_DINE_IN)
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                              required=False, default=Decimal('0'))
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPES, default=DISCOUNT_FIXED)
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class OrderStatusUpdateSerializer(serializers.Serializer):
    order_status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    changed_by_username = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = OrderStatusHistory
        fields = ['id', 'previous_status', 'new_status', 'changed_by', 'changed_by_username',
                  'change_reason', 'created_at']
        read_only_fields = fields


class DeleteHistorySerializer(ConfirmationSerializer):
    restore_stock = serializers.BooleanField(required=False, default=True)


class ClearTableOrdersSerializer(ConfirmationSerializer):
    restore_stock = serializers.BooleanField(required=False, default=True)


class CombineOrdersSerializer(serializers.Serializer):
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                              required=False, default=Decimal('0'))
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPES, default=DISCOUNT_FIXED)


class TablePaymentSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES)
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                           required=False, allow_null=True, default=None)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'),
                                               required=False, default=Decimal('0'))
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class TableBillSerializer(serializers.Serializer):
    """Read-only shape of ``table_bill_summary``."""
    table = TableSerializer(read_only=True)
    orders = OrderSerializer(many=True, read_only=True)
    bill_summary = serializers.DictField(read_only=True)


class UnpaidLedgerEntrySerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    order_status = serializers.CharField(source='order.order_status', read_only=True)
    payment_status = serializers.CharField(source='order.payment_status', read_only=True)
    items = serializers.JSONField(source='items_summary', read_only=True)

    class Meta:
        model = UnpaidLedgerEntry
        fields = [
            'id', 'order', 'order_number', 'order_status', 'payment_status',
            'customer_name', 'customer_phone', 'table_number', 'total_amount',
            'items', 'notes', 'order_was_paid', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'order', 'total_amount', 'order_was_paid', 'created_by', 'created_at', 'updated_at',
        ]

    def validate_customer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Customer name is required")
        return value


class UnpaidAddSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    customer_name = serializers.CharField(max_length=200)
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    table_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class MarkPaidSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, default=Order.METHOD_CASH)
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)
