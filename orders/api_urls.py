# orders/api_urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api_views import OrderViewSet, TableSettlementViewSet, UnpaidLedgerViewSet

# Registration order matters: the nested prefixes must win over orders/{pk}/
router = DefaultRouter()
router.register(r'orders/unpaid', UnpaidLedgerViewSet, basename='unpaid-order')
router.register(r'orders/table', TableSettlementViewSet, basename='table-settlement')
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    path('', include(router.urls)),
]

# URL patterns will be:
# /api/orders/ - List (filters: order_status, payment_status, kind, table, customer, date_from, date_to) / Create order
# /api/orders/{id}/ - Retrieve order with lines
# /api/orders/{id}/status/ - PATCH status change (complete, cancel, refund)
# /api/orders/{id}/status-log/ - Status history of the order
# /api/orders/{id}/history/ - DELETE permanently (confirmation "DELETE", restore_stock)
# /api/orders/kitchen/ - Active orders, oldest first
# /api/orders/table/{table_id}/ - Outstanding orders of a table
# /api/orders/table/{table_id}/bill/ - Merged bill summary
# /api/orders/table/{table_id}/combined/ - POST combine outstanding orders into one bill
# /api/orders/table/{table_id}/payment/ - POST settle the whole table
# /api/orders/table/{table_id}/reset/ - PATCH free the table
# /api/orders/table/{table_id}/orders/ - DELETE every order of the table (confirmation "CLEAR")
# /api/orders/unpaid/ - List ledger (filters: customer_name, table_number, limit)
# /api/orders/unpaid/add/ - POST put an order on the ledger
# /api/orders/unpaid/stats/ - Totals and top customers
# /api/orders/unpaid/{id}/ - Retrieve/Update/Remove entry
# /api/orders/unpaid/{id}/mark-paid/ - POST collect the debt
