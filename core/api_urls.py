# core/api_urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api_views import TableViewSet

router = DefaultRouter()
router.register(r'tables', TableViewSet, basename='table')

urlpatterns = [
    path('', include(router.urls)),
]

# URL patterns will be:
# /api/tables/ - List/Create tables (filters: status, location, is_active, min_capacity)
# /api/tables/{id}/ - Retrieve/Update/Delete table (delete refused while orders are open)
# /api/tables/{id}/status/ - PATCH status (available, occupied, reserved, maintenance)
# /api/tables/available/ - Active tables that are free
