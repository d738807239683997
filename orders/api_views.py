import logging

from django.utils.dateparse import parse_date
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.pagination import StandardResultsSetPagination
from core.permissions import Capability, HasCapability, has_capability
from .models import Order
from .serializers import (
    ClearTableOrdersSerializer,
    CombineOrdersSerializer,
    DeleteHistorySerializer,
    MarkPaidSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    OrderStatusHistorySerializer,
    OrderStatusUpdateSerializer,
    TableBillSerializer,
    TablePaymentSerializer,
    UnpaidAddSerializer,
    UnpaidLedgerEntrySerializer,
)
from .services import engine, settlement, unpaid

logger = logging.getLogger(__name__)

DELETE_ORDER_PHRASE = "DELETE"
CLEAR_TABLE_PHRASE = "CLEAR"

VIEW_ORDERS = (Capability.ORDERS_VIEW, Capability.POS_ACCESS)


class OrderViewSet(mixins.CreateModelMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    Orders taken at the till.

    Orders are never edited directly: they change through ``status`` and are
    removed only through ``history`` (permanent delete).
    """
    serializer_class = OrderSerializer
    permission_classes = [HasCapability]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['order_status', 'payment_status', 'payment_method', 'kind', 'order_type', 'table', 'customer']
    search_fields = ['order_number', 'table_number', 'customer__name', 'customer__phone']
    ordering_fields = ['created_at', 'final_amount', 'order_number']
    ordering = ['-created_at']
    required_capabilities = {
        'list': VIEW_ORDERS,
        'retrieve': VIEW_ORDERS,
        'kitchen': VIEW_ORDERS,
        'status_log': VIEW_ORDERS,
        'create': (Capability.ORDERS_CREATE, Capability.POS_ACCESS),
        'status': (Capability.ORDERS_EDIT, Capability.POS_ACCESS),
        'history': (Capability.ORDERS_DELETE,),
    }

    def get_queryset(self):
        queryset = (
            Order.objects.select_related('customer', 'table', 'cashier', 'combined_into')
            .prefetch_related('items__product')
        )
        params = self.request.query_params
        date_from = parse_date(params.get('date_from') or '')
        date_to = parse_date(params.get('date_to') or '')
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data['discount_value'] > 0 and not has_capability(request.user, Capability.POS_DISCOUNT):
            raise PermissionDenied("Applying a discount requires the pos.discount permission")

        order = engine.create_order(
            items=data['items'],
            customer=data.get('customer'),
            table=data.get('table'),
            payment_method=data['payment_method'],
            discount_value=data['discount_value'],
            discount_type=data['discount_type'],
            order_type=data['order_type'],
            notes=data['notes'],
            cashier=request.user,
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def kitchen(self, request):
        """Active orders for the kitchen display, oldest first."""
        return Response(OrderSerializer(engine.kitchen_orders(), many=True).data)

    @action(detail=True, methods=['patch'])
    def status(self, request, pk=None):
        order = self.get_object()
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['order_status']

        if new_status == Order.STATUS_REFUNDED and not has_capability(request.user, Capability.POS_REFUND):
            raise PermissionDenied("Refunds require the pos.refund permission")
        if new_status == Order.STATUS_CANCELLED and not has_capability(request.user, Capability.POS_VOID):
            raise PermissionDenied("Cancelling an order requires the pos.void permission")

        order = engine.update_order_status(
            order,
            new_status,
            payment_status=serializer.validated_data.get('payment_status'),
            by_user=request.user,
            reason=serializer.validated_data['reason'],
        )
        order = self.get_queryset().get(pk=order.pk)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['get'], url_path='status-log')
    def status_log(self, request, pk=None):
        order = self.get_object()
        return Response(OrderStatusHistorySerializer(order.status_history.select_related('changed_by'), many=True).data)

    @action(detail=True, methods=['delete'])
    def history(self, request, pk=None):
        """Permanently delete the order. Body: ``{"confirmation": "DELETE", "restore_stock": true}``."""
        order = self.get_object()
        serializer = DeleteHistorySerializer(data=request.data, context={'phrase': DELETE_ORDER_PHRASE})
        serializer.is_valid(raise_exception=True)
        result = engine.delete_order_history(
            order,
            restore_stock=serializer.validated_data['restore_stock'],
            by_user=request.user,
        )
        return Response({
            'message': f"Order {result['order_number']} has been permanently deleted",
            **result,
        })


class TableSettlementViewSet(viewsets.ViewSet):
    """Everything a table owes, and the operations that settle it."""
    permission_classes = [HasCapability]
    lookup_field = 'table_id'
    lookup_value_regex = r'\d+'
    required_capabilities = {
        'retrieve': (Capability.TABLES_VIEW, Capability.ORDERS_VIEW, Capability.POS_ACCESS),
        'bill': (Capability.TABLES_VIEW, Capability.ORDERS_VIEW, Capability.POS_ACCESS),
        'combined': (Capability.PAYMENTS_PROCESS,),
        'payment': (Capability.PAYMENTS_PROCESS,),
        'reset': (Capability.TABLES_RESET,),
        'orders': (Capability.TABLES_CLEAR_ORDERS,),
    }

    def retrieve(self, request, table_id=None):
        """Outstanding orders of the table."""
        table = settlement.get_table(table_id)
        orders = settlement.outstanding_orders(table).select_related('customer', 'cashier').prefetch_related('items__product')
        return Response(OrderSerializer(orders, many=True).data)

    @action(detail=True, methods=['get'])
    def bill(self, request, table_id=None):
        table = settlement.get_table(table_id)
        return Response(TableBillSerializer(settlement.table_bill_summary(table)).data)

    @action(detail=True, methods=['post'])
    def combined(self, request, table_id=None):
        table = settlement.get_table(table_id)
        serializer = CombineOrdersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        combined = settlement.combine_table_orders(
            table,
            discount_value=serializer.validated_data['discount_value'],
            discount_type=serializer.validated_data['discount_type'],
            by_user=request.user,
        )
        return Response(
            {
                'combined_order_id': combined.pk,
                'combined_order_number': combined.order_number,
                'original_orders_count': combined.constituents.count(),
                'total_amount': combined.final_amount,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['post'])
    def payment(self, request, table_id=None):
        table = settlement.get_table(table_id)
        serializer = TablePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = settlement.process_table_payment(
            table,
            serializer.validated_data['payment_method'],
            amount_paid=serializer.validated_data['amount_paid'],
            discount_amount=serializer.validated_data['discount_amount'],
            notes=serializer.validated_data['notes'],
            by_user=request.user,
        )
        return Response({
            'message': f'Payment processed successfully for table {table.table_number}',
            **result,
        })

    @action(detail=True, methods=['patch'])
    def reset(self, request, table_id=None):
        table = settlement.reset_table(settlement.get_table(table_id))
        return Response({
            'message': f'Table {table.table_number} has been reset to available',
            'table_status': table.status,
        })

    @action(detail=True, methods=['delete'])
    def orders(self, request, table_id=None):
        """Delete every order of the table. Body: ``{"confirmation": "CLEAR"}``."""
        table = settlement.get_table(table_id)
        serializer = ClearTableOrdersSerializer(data=request.data, context={'phrase': CLEAR_TABLE_PHRASE})
        serializer.is_valid(raise_exception=True)
        result = settlement.clear_table_orders(
            table,
            restore_stock=serializer.validated_data['restore_stock'],
            by_user=request.user,
        )
        return Response({
            'message': f"Cleared {result['deleted_count']} order(s) from table {table.table_number}",
            **result,
        })


class UnpaidLedgerViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.UpdateModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """Debts kept under a customer's name, independent of tables."""
    serializer_class = UnpaidLedgerEntrySerializer
    permission_classes = [HasCapability]
    pagination_class = None
    filter_backends = []
    required_capabilities = {
        'list': (Capability.PAYMENTS_VIEW_HISTORY, Capability.ORDERS_VIEW),
        'retrieve': (Capability.PAYMENTS_VIEW_HISTORY, Capability.ORDERS_VIEW),
        'stats': (Capability.PAYMENTS_VIEW_HISTORY, Capability.ORDERS_VIEW),
        'add': (Capability.ORDERS_EDIT, Capability.PAYMENTS_PROCESS),
        'update': (Capability.ORDERS_EDIT,),
        'partial_update': (Capability.ORDERS_EDIT,),
        'destroy': (Capability.ORDERS_EDIT,),
        'mark_paid': (Capability.PAYMENTS_PROCESS,),
    }

    def get_queryset(self):
        params = self.request.query_params
        queryset = unpaid.list_unpaid(
            customer_name=params.get('customer_name'),
            table_number=params.get('table_number'),
        )
        try:
            limit = int(params.get('limit', 50))
        except ValueError:
            limit = 50
        if self.action == 'list':
            return queryset[:max(1, min(limit, 500))]
        return queryset

    def get_object(self):
        entry = unpaid.get_unpaid_entry(self.kwargs['pk'])
        self.check_object_permissions(self.request, entry)
        return entry

    def perform_update(self, serializer):
        fields = {k: v for k, v in serializer.validated_data.items() if k in unpaid.EDITABLE_FIELDS}
        serializer.instance = unpaid.update_unpaid(serializer.instance, **fields)

    def perform_destroy(self, instance):
        unpaid.remove_from_unpaid(instance)

    def destroy(self, request, *args, **kwargs):
        super().destroy(request, *args, **kwargs)
        return Response({'message': 'Order removed from unpaid table'})

    @action(detail=False, methods=['post'])
    def add(self, request):
        serializer = UnpaidAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        entry = unpaid.add_to_unpaid(
            engine.get_order(data['order_id']),
            data['customer_name'],
            customer_phone=data['customer_phone'],
            table_number=data['table_number'],
            notes=data['notes'],
            by_user=request.user,
        )
        return Response(UnpaidLedgerEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(unpaid.compute_stats())

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        entry = self.get_object()
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = unpaid.mark_unpaid_as_paid(
            entry,
            payment_method=serializer.validated_data['payment_method'],
            notes=serializer.validated_data['notes'],
            by_user=request.user,
        )
        return Response({
            'message': 'Order marked as paid successfully',
            'order': OrderSerializer(order).data,
        })
