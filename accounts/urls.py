# accounts/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    CapabilityCatalogView,
    ChangePasswordView,
    LoginView,
    MeView,
    UserViewSet,
)

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')

urlpatterns = [
    path("login/", LoginView.as_view(), name="login"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("me/", MeView.as_view(), name="me"),
    path("change-password/", ChangePasswordView.as_view(), name="change_password"),
    path("capabilities/", CapabilityCatalogView.as_view(), name="capabilities"),
    path("", include(router.urls)),
]

# URL patterns:
# /api/accounts/login/ - JWT login (username + password)
# /api/accounts/token/refresh/ - Refresh access token
# /api/accounts/me/ - Current user with effective capabilities
# /api/accounts/change-password/ - Change own password
# /api/accounts/capabilities/ - Capability catalogue (admin)
# /api/accounts/users/ - Staff CRUD (admin)
# /api/accounts/users/{id}/capabilities/ - List / grant / revoke capabilities (admin)
