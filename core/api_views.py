# core/api_views.py
import logging

from rest_framework import filters, serializers, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from orders.models import Order
from .exceptions import ConflictError, ValidationError
from .models import Table
from .permissions import Capability, HasCapability
from .serializers import TableSerializer

logger = logging.getLogger(__name__)


class TableStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Table.STATUS_CHOICES)


class TableViewSet(viewsets.ModelViewSet):
    """Café tables. Money on a table is handled under /api/orders/table/."""
    serializer_class = TableSerializer
    permission_classes = [HasCapability]
    pagination_class = None
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'location', 'is_active']
    search_fields = ['table_number', 'location']
    ordering = ['table_number']
    required_capabilities = {
        'list': (Capability.TABLES_VIEW, Capability.POS_ACCESS),
        'retrieve': (Capability.TABLES_VIEW, Capability.POS_ACCESS),
        'available': (Capability.TABLES_VIEW, Capability.POS_ACCESS),
        'create': (Capability.TABLES_CREATE,),
        'update': (Capability.TABLES_EDIT,),
        'partial_update': (Capability.TABLES_EDIT,),
        'set_status': (Capability.TABLES_EDIT, Capability.POS_ACCESS),
        'destroy': (Capability.TABLES_DELETE,),
    }

    def get_queryset(self):
        queryset = Table.objects.select_related('current_order').order_by('table_number')
        min_capacity = self.request.query_params.get('min_capacity')
        if min_capacity:
            try:
                min_capacity = int(min_capacity)
            except ValueError:
                raise ValidationError(f"Invalid min_capacity '{min_capacity}'. Use a whole number")
            queryset = queryset.filter(capacity__gte=min_capacity)
        return queryset

    @action(detail=False, methods=['get'])
    def available(self, request):
        """Active tables free to seat guests."""
        tables = self.get_queryset().filter(is_active=True, status=Table.STATUS_AVAILABLE)
        return Response(self.get_serializer(tables, many=True).data)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        table = self.get_object()
        serializer = TableStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        table.status = serializer.validated_data['status']
        if table.status == Table.STATUS_AVAILABLE:
            table.current_order = None
        table.save(update_fields=['status', 'current_order', 'updated_at'])
        logger.info(f"Table {table.table_number} status set to {table.status}")
        return Response(self.get_serializer(table).data)

    def perform_destroy(self, instance):
        open_orders = Order.objects.filter(
            table=instance,
            order_status__in=[Order.STATUS_ACTIVE, Order.STATUS_COMPLETED],
        ).exclude(payment_status=Order.PAYMENT_COMPLETED)
        if instance.current_order_id or open_orders.exists():
            raise ConflictError(
                "Cannot delete table with active orders. Please complete or cancel the order first."
            )
        logger.info(f"Table {instance.table_number} deleted")
        instance.delete()

    def destroy(self, request, *args, **kwargs):
        super().destroy(request, *args, **kwargs)
        return Response({'message': 'Table deleted successfully'})
