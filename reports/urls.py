from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import SalesReportViewSet

router = DefaultRouter()
router.register(r"reports/sales", SalesReportViewSet, basename="sales-report")

urlpatterns = [
    path("", include(router.urls)),
]

# URL patterns will be:
# /api/reports/sales/summary/ - Totals, payment methods and products for a date range
# /api/reports/sales/today/ - Today's figures with unique customers and top 5 products
# /api/reports/sales/daily/ - One row per day (zero-filled)
# /api/reports/sales/delete-all/ - DELETE all sales history (admin, confirmation "DELETE ALL REPORTS")
