# customers/api_urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api_views import CustomerViewSet

router = DefaultRouter()
router.register(r'customers', CustomerViewSet, basename='customer')

urlpatterns = [
    path('', include(router.urls)),
]

# URL patterns will be:
# /api/customers/ - List/Create customers (search: name, phone, email; filter: membership_type)
# /api/customers/{id}/ - Retrieve/Update/Delete customer (delete refused when orders exist)
# /api/customers/{id}/discount/ - Membership tier discount percent
# /api/customers/{id}/loyalty/ - Points history (GET) or earn/bonus/redeem (POST)
# /api/customers/membership-stats/ - Count, average points and spend per tier
