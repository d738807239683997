# cafe_pos/urls.py
from __future__ import annotations

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

urlpatterns = [
    # Django default admin interface
    path("admin/", admin.site.urls),

    # API Documentation
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),

    # DRF browsable login
    path("api/auth/", include("rest_framework.urls")),

    # ---- REST APIs ----
    path("api/accounts/", include(("accounts.urls", "accounts"), namespace="accounts")),
    path("api/", include(("core.api_urls", "core_api"), namespace="core_api")),
    path("api/", include(("catalog.api_urls", "catalog_api"), namespace="catalog_api")),
    path("api/", include(("customers.api_urls", "customers_api"), namespace="customers_api")),
    path("api/", include(("orders.api_urls", "orders_api"), namespace="orders_api")),
    path("api/", include(("reports.urls", "reports"), namespace="reports")),
]
