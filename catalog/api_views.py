import logging

from django.db.models import Count, Q
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.pagination import StandardResultsSetPagination
from core.permissions import Capability, HasCapability
from core.serializers import ConfirmationSerializer
from . import services
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    InventoryTransactionSerializer,
    ProductSerializer,
    StockUpdateSerializer,
)

logger = logging.getLogger(__name__)

DELETE_ALL_PHRASE = "DELETE ALL"


class CategoryViewSet(viewsets.ModelViewSet):
    """Product categories. ``destroy`` deactivates; ``delete_all`` hard-deletes (admin)."""
    serializer_class = CategorySerializer
    permission_classes = [HasCapability]
    pagination_class = None
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['name', 'description']
    ordering = ['name']
    required_capabilities = {
        'list': (Capability.CATEGORIES_VIEW, Capability.POS_ACCESS),
        'retrieve': (Capability.CATEGORIES_VIEW, Capability.POS_ACCESS),
        'create': (Capability.CATEGORIES_CREATE,),
        'update': (Capability.CATEGORIES_EDIT,),
        'partial_update': (Capability.CATEGORIES_EDIT,),
        'destroy': (Capability.CATEGORIES_DELETE,),
        'delete_all': (Capability.CATEGORIES_DELETE_ALL,),
    }

    def get_queryset(self):
        return Category.objects.annotate(
            product_count=Count('products', filter=Q(products__is_active=True))
        ).order_by('name')

    def destroy(self, request, *args, **kwargs):
        services.deactivate_category(self.get_object())
        return Response({'message': 'Category deleted successfully'})

    @action(detail=False, methods=['delete'], url_path='delete-all')
    def delete_all(self, request):
        ConfirmationSerializer(data=request.data, context={'phrase': DELETE_ALL_PHRASE}).is_valid(raise_exception=True)
        result = services.delete_all_categories(by_user=request.user)
        return Response({
            'message': f"All categories have been deleted successfully. {result['deleted_count']} categories were removed.",
            **result,
        })


class ProductViewSet(viewsets.ModelViewSet):
    """Products with stock management. ``destroy`` deactivates the product."""
    serializer_class = ProductSerializer
    permission_classes = [HasCapability]
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'is_active']
    search_fields = ['name', 'description', 'sku', 'barcode']
    ordering_fields = ['name', 'price', 'stock_quantity', 'created_at']
    ordering = ['name']
    required_capabilities = {
        'list': (Capability.PRODUCTS_VIEW, Capability.POS_ACCESS),
        'retrieve': (Capability.PRODUCTS_VIEW, Capability.POS_ACCESS),
        'create': (Capability.PRODUCTS_CREATE,),
        'update': (Capability.PRODUCTS_EDIT,),
        'partial_update': (Capability.PRODUCTS_EDIT,),
        'destroy': (Capability.PRODUCTS_DELETE,),
        'low_stock': (Capability.INVENTORY_VIEW, Capability.PRODUCTS_VIEW),
        'stock': (Capability.INVENTORY_ADJUST,),
        'transactions': (Capability.INVENTORY_VIEW,),
        'delete_all': (Capability.PRODUCTS_DELETE_ALL,),
    }

    def get_queryset(self):
        queryset = Product.objects.select_related('category').order_by('name')
        if self.request.query_params.get('active_only') in ('1', 'true', 'True'):
            queryset = queryset.filter(is_active=True)
        return queryset

    def destroy(self, request, *args, **kwargs):
        services.deactivate_product(self.get_object())
        return Response({'message': 'Product deleted successfully'})

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        serializer = self.get_serializer(services.low_stock_products(), many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['patch', 'post'])
    def stock(self, request, pk=None):
        """Manual stock change: add, subtract (floors at 0) or set."""
        product = self.get_object()
        serializer = StockUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = services.update_stock(
            product,
            serializer.validated_data['quantity'],
            serializer.validated_data['type'],
            notes=serializer.validated_data['notes'],
            by_user=request.user,
        )
        return Response(self.get_serializer(product).data)

    @action(detail=True, methods=['get'])
    def transactions(self, request, pk=None):
        product = self.get_object()
        qs = product.inventory_transactions.select_related('product')[:100]
        return Response(InventoryTransactionSerializer(qs, many=True).data)

    @action(detail=False, methods=['delete'], url_path='delete-all')
    def delete_all(self, request):
        ConfirmationSerializer(data=request.data, context={'phrase': DELETE_ALL_PHRASE}).is_valid(raise_exception=True)
        result = services.delete_all_products(by_user=request.user)
        return Response(
            {
                'message': (
                    f"All products have been deleted successfully. {result['deleted_count']} products were removed"
                    f" and {result['deactivated_count']} sold products were deactivated."
                ),
                **result,
            },
            status=status.HTTP_200_OK,
        )
