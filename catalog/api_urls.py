# catalog/api_urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .api_views import CategoryViewSet, ProductViewSet

router = DefaultRouter()
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'products', ProductViewSet, basename='product')

urlpatterns = [
    path('catalog/', include(router.urls)),
]

# URL patterns will be:
# /api/catalog/categories/ - List/Create categories
# /api/catalog/categories/{id}/ - Retrieve/Update/Deactivate category
# /api/catalog/categories/delete-all/ - Delete every category (admin, confirmation "DELETE ALL")
# /api/catalog/products/ - List/Create products (filters: category, is_active, active_only, search)
# /api/catalog/products/{id}/ - Retrieve/Update/Deactivate product
# /api/catalog/products/{id}/stock/ - Manual stock change (add/subtract/set)
# /api/catalog/products/{id}/transactions/ - Inventory ledger for a product
# /api/catalog/products/low-stock/ - Active products at or below their minimum level
# /api/catalog/products/delete-all/ - Remove all products (admin, confirmation "DELETE ALL")
