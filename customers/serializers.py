from rest_framework import serializers

from .models import Customer, LoyaltyTransaction
from .services import MEMBERSHIP_DISCOUNT_PERCENT


class CustomerSerializer(serializers.ModelSerializer):
    total_orders = serializers.IntegerField(read_only=True, default=0)
    lifetime_value = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True, default=0)
    discount_percent = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'phone', 'email', 'address', 'membership_type', 'discount_percent',
            'date_of_birth', 'anniversary_date', 'loyalty_points', 'total_spent',
            'total_orders', 'lifetime_value', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'loyalty_points', 'total_spent', 'created_at', 'updated_at']
        extra_kwargs = {
            'phone': {'error_messages': {'unique': 'Customer with this phone number already exists'}},
        }

    def get_discount_percent(self, obj):
        return str(MEMBERSHIP_DISCOUNT_PERCENT.get(obj.membership_type, 0))


class LoyaltyPointsSerializer(serializers.Serializer):
    points = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(choices=LoyaltyTransaction.TYPE_CHOICES)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = LoyaltyTransaction
        fields = ['id', 'transaction_type', 'points', 'description', 'order', 'order_number', 'created_at']
        read_only_fields = fields
