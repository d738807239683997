from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.pagination import StandardResultsSetPagination
from core.permissions import Capability, HasCapability
from . import services
from .models import Customer
from .serializers import CustomerSerializer, LoyaltyPointsSerializer, LoyaltyTransactionSerializer


class CustomerViewSet(viewsets.ModelViewSet):
    """Customers with membership tier, loyalty points and spend."""
    serializer_class = CustomerSerializer
    permission_classes = [HasCapability]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['membership_type']
    search_fields = ['name', 'phone', 'email']
    ordering_fields = ['name', 'loyalty_points', 'total_spent', 'created_at']
    ordering = ['name']
    required_capabilities = {
        'list': (Capability.CUSTOMERS_VIEW, Capability.POS_ACCESS),
        'retrieve': (Capability.CUSTOMERS_VIEW, Capability.POS_ACCESS),
        'discount': (Capability.CUSTOMERS_VIEW, Capability.POS_ACCESS),
        'membership_stats': (Capability.CUSTOMERS_VIEW,),
        'loyalty': (Capability.CUSTOMERS_EDIT,),
        'create': (Capability.CUSTOMERS_CREATE,),
        'update': (Capability.CUSTOMERS_EDIT,),
        'partial_update': (Capability.CUSTOMERS_EDIT,),
        'destroy': (Capability.CUSTOMERS_DELETE,),
    }

    def get_queryset(self):
        return Customer.objects.annotate(
            total_orders=Count('orders', filter=Q(orders__kind='regular'), distinct=True),
            lifetime_value=Coalesce(
                Sum('orders__final_amount', filter=Q(orders__kind='regular', orders__order_status='completed')),
                Value(0),
                output_field=DecimalField(max_digits=12, decimal_places=2),
            ),
        ).order_by('name')

    def destroy(self, request, *args, **kwargs):
        services.delete_customer(self.get_object())
        return Response({'message': 'Customer deleted successfully'})

    @action(detail=True, methods=['get'])
    def discount(self, request, pk=None):
        customer = self.get_object()
        return Response({
            'customer_id': customer.id,
            'membership_type': customer.membership_type,
            'discount_percent': services.get_membership_discount_percent(customer.id),
        })

    @action(detail=False, methods=['get'], url_path='membership-stats')
    def membership_stats(self, request):
        return Response(services.membership_stats())

    @action(detail=True, methods=['get', 'post'])
    def loyalty(self, request, pk=None):
        """Points history, or earn/bonus/redeem points."""
        customer = self.get_object()
        if request.method == 'GET':
            history = customer.loyalty_transactions.select_related('order')[:50]
            return Response({
                'loyalty_points': customer.loyalty_points,
                'transactions': LoyaltyTransactionSerializer(history, many=True).data,
            })

        serializer = LoyaltyPointsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        customer = services.adjust_loyalty_points(
            customer,
            serializer.validated_data['points'],
            serializer.validated_data['type'],
            description=serializer.validated_data['description'],
            by_user=request.user,
        )
        return Response(CustomerSerializer(customer).data)
