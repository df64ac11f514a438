"""
Authentication and user management views.

Provides JWT-based authentication, registration and the current-user
endpoint.
"""

import logging

from django.utils.decorators import method_decorator
from django_filters.rest_framework import DjangoFilterBackend
from django_ratelimit.decorators import ratelimit
from rest_framework import status, permissions, generics, filters, mixins, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView
from drf_spectacular.utils import extend_schema

from apps.common.permissions import IsAdmin
from apps.common.utils.activity_logger import log_activity
from .models import CustomUser
from .serializers import (
    CustomTokenObtainPairSerializer,
    UserRegistrationSerializer,
    UserSerializer,
    AdminUserSerializer,
)

logger = logging.getLogger(__name__)


class CustomTokenObtainPairView(TokenObtainPairView):
    """Issue a JWT pair and record the login."""

    serializer_class = CustomTokenObtainPairSerializer

    @method_decorator(ratelimit(key='ip', rate='10/m', method='POST'))
    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        email = request.data.get('email')

        if response.status_code == 200:
            logger.info(f"Successful login for user: {email}")
            user = CustomUser.objects.filter(email=email).first()
            if user:
                log_activity(
                    user=user,
                    action_type='LOGIN',
                    resource_type='USER',
                    resource_id=user.id,
                    metadata={'login_method': 'jwt'},
                    request=request
                )
        else:
            logger.warning(f"Failed login attempt for: {email}")

        return response


class UserRegistrationView(generics.CreateAPIView):
    """Register a new author, reviewer or visitor account."""

    queryset = CustomUser.objects.all()
    serializer_class = UserRegistrationSerializer
    permission_classes = [permissions.AllowAny]

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info(f"New user registered: {user.email} as {user.role}")
        log_activity(
            user=user,
            action_type='CREATE',
            resource_type='USER',
            resource_id=user.id,
            request=self.request
        )

    @method_decorator(ratelimit(key='ip', rate='5/m', method='POST'))
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        return Response(
            UserSerializer(serializer.instance).data,
            status=status.HTTP_201_CREATED
        )


@extend_schema(responses=UserSerializer)
@api_view(['GET', 'PATCH'])
@permission_classes([permissions.IsAuthenticated])
def current_user(request):
    """Get or update the current authenticated user."""
    if request.method == 'PATCH':
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    return Response(UserSerializer(request.user).data)


class AdminUserViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       viewsets.GenericViewSet):
    """Administrators list accounts and change roles or deactivate them."""

    queryset = CustomUser.objects.all().order_by('-date_joined')
    serializer_class = AdminUserSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['email', 'first_name', 'last_name', 'affiliation']

    def perform_update(self, serializer):
        previous_role = serializer.instance.role
        user = serializer.save()
        log_activity(
            self.request.user, 'UPDATE', 'USER', user.id,
            metadata={'previous_role': previous_role, 'role': user.role, 'is_active': user.is_active},
            request=self.request,
        )
        logger.info(f"User {user.email} updated by admin {self.request.user.email} (role {previous_role} -> {user.role})")
