"""
Authentication API views (session based).
"""
import logging
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import authenticate, login, logout
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import RecordValidationError
from apps.core.permissions import HasRouteAccess
from apps.rbac.context import AccessContext
from apps.rbac.permission_cache import clear_session
from apps.rbac.serializers import LoginSerializer, UserSerializer, SnapshotSerializer
from apps.rbac.services import RBACService

logger = logging.getLogger(__name__)


@extend_schema(
    tags=['Authentication'],
    summary='Login user',
    description='''
Authenticate with username and password and start a session.

Inactive accounts are refused, and accounts bound to a list of IP addresses
can only log in from one of those addresses.

**No authentication required** - this is a public endpoint.
    ''',
    request=LoginSerializer,
    responses={
        200: OpenApiTypes.OBJECT,
        400: OpenApiTypes.OBJECT,
        401: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Login Request',
            value={
                'username': 'editor',
                'password': 'SecurePass123!'
            },
            request_only=True
        ),
        OpenApiExample(
            'Invalid Credentials',
            value={
                'error': 'Invalid username or password'
            },
            response_only=True,
            status_codes=['401']
        )
    ]
)
class LoginView(APIView):
    """
    POST /v1/auth/login

    Authenticate user and start a session.
    """
    authentication_classes = []
    permission_classes = [HasRouteAccess]

    def post(self, request):
        """Login user."""
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            raise RecordValidationError('Validation error', details=serializer.errors)

        user = authenticate(
            request._request,
            username=serializer.validated_data['username'],
            password=serializer.validated_data['password']
        )
        if user is None:
            return Response(
                {'error': 'Invalid username or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        login(request._request, user)
        clear_session(request._request.session)

        logger.info(
            f"User {user.id} logged in",
            extra={'user_id': user.id}
        )
        return Response(
            {
                'user': UserSerializer(user).data,
                'message': 'Login successful'
            },
            status=status.HTTP_200_OK
        )


@extend_schema(
    tags=['Authentication'],
    summary='Logout user',
    description='End the current session. Calling it without a session is a no-op.',
    request=None,
    responses={200: OpenApiTypes.OBJECT},
)
class LogoutView(APIView):
    """
    POST /v1/auth/logout
    """
    permission_classes = [HasRouteAccess]

    def post(self, request):
        """Logout user."""
        user_id = getattr(request.user, 'id', None)
        logout(request._request)
        if user_id is not None:
            logger.info(f"User {user_id} logged out", extra={'user_id': user_id})
        return Response({'message': 'Logout successful'}, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Authentication'],
    summary='Current user',
    description='''
Return the authenticated user together with their resolved permission
snapshot (direct roles, inherited roles, permissions and routes).
    ''',
    responses={200: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
)
class MeView(APIView):
    """
    GET /v1/auth/me
    """
    permission_classes = [IsAuthenticated, HasRouteAccess]

    def get(self, request):
        context = AccessContext.from_request(request)
        snapshot = RBACService.ensure_permissions_up_to_date(context)
        return Response({
            'user': UserSerializer(request.user).data,
            'permissions': SnapshotSerializer(snapshot.to_dict()).data,
        })
