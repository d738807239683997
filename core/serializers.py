from rest_framework import serializers

from .models import Table


class TableSerializer(serializers.ModelSerializer):
    current_order_number = serializers.CharField(source='current_order.order_number', read_only=True, default=None)

    class Meta:
        model = Table
        fields = [
            'id', 'table_number', 'capacity', 'location', 'status',
            'current_order', 'current_order_number', 'is_active',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'current_order', 'created_at', 'updated_at']

    def validate_table_number(self, value):
        value = value.strip().upper()
        qs = Table.objects.filter(table_number__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Table number already exists.")
        return value


class ConfirmationSerializer(serializers.Serializer):
    """
    Body check for destructive endpoints: ``confirmation`` must equal the
    phrase passed in the serializer context.
    """
    confirmation = serializers.CharField()

    def validate_confirmation(self, value):
        expected = self.context.get('phrase')
        if value != expected:
            raise serializers.ValidationError(f'Confirmation text must be exactly "{expected}".')
        return value
