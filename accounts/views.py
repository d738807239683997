from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from core.exceptions import ConflictError
from core.permissions import Capability, IsAdminRole, granted_capabilities
from .models import UserCapability
from .serializers import (
    CapabilityChangeSerializer,
    ChangePasswordSerializer,
    StaffTokenObtainPairSerializer,
    UserCreateSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


class LoginView(TokenObtainPairView):
    """JWT login; returns access/refresh tokens plus the staff profile."""
    serializer_class = StaffTokenObtainPairSerializer
    throttle_classes = [LoginRateThrottle]

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        username = request.data.get('username', '')
        if response.status_code == 200:
            logger.info(f"Login successful for {username}")
        else:
            logger.warning(f"Login failed for {username}")
        return response


class MeView(APIView):
    """Current staff member with the capabilities the UI should enable."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Password changed for {request.user.get_username()}")
        return Response({"message": "Password changed successfully."})


class CapabilityCatalogView(APIView):
    """All known capabilities grouped by area."""
    permission_classes = [IsAdminRole]

    def get(self, request):
        grouped: dict[str, list[dict]] = {}
        for cap in Capability:
            grouped.setdefault(cap.category, []).append({"key": cap.value, "name": cap.label})
        return Response({"capabilities": grouped})


class UserViewSet(viewsets.ModelViewSet):
    """Staff administration (admin role only)."""
    permission_classes = [IsAdminRole]
    queryset = User.objects.all().order_by('username')
    search_fields = ['username', 'full_name', 'email']
    filterset_fields = ['role', 'is_active']

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return UserCreateSerializer
        return UserSerializer

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise ConflictError("You cannot delete your own account")
        logger.info(f"User {instance.get_username()} deleted by {self.request.user.get_username()}")
        instance.delete()

    @action(detail=True, methods=['get', 'post'])
    def capabilities(self, request, pk=None):
        """List explicit grants, or grant/revoke one capability."""
        user = self.get_object()
        if request.method == 'GET':
            return Response({
                'user_id': user.id,
                'role': user.role,
                'granted': sorted(granted_capabilities(user)),
            })

        serializer = CapabilityChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        capability = serializer.validated_data['capability']
        granted = serializer.validated_data['granted']

        with transaction.atomic():
            UserCapability.objects.update_or_create(
                user=user,
                capability=capability,
                defaults={'granted': granted, 'granted_by': request.user},
            )

        verb = "granted" if granted else "revoked"
        logger.info(f"Capability {capability} {verb} for {user.get_username()} by {request.user.get_username()}")
        return Response(
            {
                'message': f"Capability {capability} {verb}",
                'granted': sorted(granted_capabilities(user)),
            },
            status=status.HTTP_200_OK,
        )
