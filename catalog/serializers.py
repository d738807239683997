from decimal import Decimal

from rest_framework import serializers

from .models import Category, InventoryTransaction, Product
from .services import STOCK_MODE_SET, STOCK_MODES, update_stock


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'color', 'is_active', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    category_color = serializers.CharField(source='category.color', read_only=True, default=None)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'category', 'category_name', 'category_color', 'name', 'description',
            'price', 'cost', 'sku', 'barcode', 'stock_quantity', 'min_stock_level',
            'is_low_stock', 'image_url', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {'sku': {'required': False, 'allow_null': True}}

    def validate_price(self, value):
        if value <= Decimal('0.00'):
            raise serializers.ValidationError("Price must be greater than 0")
        return value

    def validate_category(self, value):
        if value is not None and not value.is_active:
            raise serializers.ValidationError("Invalid category")
        return value

    def update(self, instance, validated_data):
        # Stock edits from the product form go through the inventory ledger
        new_stock = validated_data.pop("stock_quantity", None)
        instance = super().update(instance, validated_data)
        if new_stock is not None and new_stock != instance.stock_quantity:
            request = self.context.get("request")
            instance = update_stock(
                instance,
                new_stock,
                STOCK_MODE_SET,
                notes="Edited on product form",
                by_user=getattr(request, "user", None),
            )
        return instance


class StockUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)
    type = serializers.ChoiceField(choices=STOCK_MODES)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InventoryTransactionSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = InventoryTransaction
        fields = [
            'id', 'product', 'product_name', 'transaction_type', 'quantity',
            'reference_type', 'reference_id', 'notes', 'created_by', 'created_at',
        ]
        read_only_fields = fields
