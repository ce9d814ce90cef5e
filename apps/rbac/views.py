"""
RBAC REST API views.

Implements endpoints for:
- User management (list, create, read, guarded update and delete)
- Password changes
- Role assignments
"""
import logging
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from django.contrib.auth import update_session_auth_hash
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import (
    RecordValidationError, OperationRejected, AssignmentConflict, AssignmentFailed
)
from apps.core.permissions import HasRouteAccess
from apps.rbac.context import AccessContext
from apps.rbac.models import User
from apps.rbac.services import RBACService, AssignmentResult
from apps.rbac.serializers import (
    UserSerializer, UserWriteSerializer, ChangePasswordSerializer,
    AssignRoleSerializer
)

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 100


def _save_or_raise(user, context):
    """Run a guarded save and turn a refusal into the matching API error."""
    if user.save_as(context):
        return user
    if user.errors:
        raise RecordValidationError('Validation error', details=user.errors)
    raise OperationRejected('You are not allowed to modify this user.')


@extend_schema_view(
    get=extend_schema(
        tags=['Users'],
        summary='List users',
        description='List all users, ordered by ID. Requires the `/rbac/user-list` route.',
        responses={200: UserSerializer(many=True)},
    ),
    post=extend_schema(
        tags=['Users'],
        summary='Create user',
        description='''
Create a new user.

`password` and `repeat_password` are required and must match. `bind_to_ip`
is an optional comma-separated list of IP addresses the user may log in from.

Only superadmins may create superadmin accounts.
        ''',
        request=UserWriteSerializer,
        responses={
            201: UserSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
        },
        examples=[
            OpenApiExample(
                'Create Request',
                value={
                    'username': 'editor',
                    'email': 'editor@example.com',
                    'password': 'SecurePass123!',
                    'repeat_password': 'SecurePass123!',
                    'bind_to_ip': '10.0.0.1, ::1'
                },
                request_only=True
            ),
            OpenApiExample(
                'Validation Error',
                value={
                    'error': 'Validation error',
                    'code': 'VALIDATION_ERROR',
                    'details': {
                        'bind_to_ip': ['Wrong format. Enter valid IPs separated by comma']
                    }
                },
                response_only=True,
                status_codes=['400']
            )
        ]
    )
)
class UserListView(APIView):
    """
    GET /v1/users
    POST /v1/users

    List or create users.
    """
    permission_classes = [HasRouteAccess]

    def get(self, request):
        """List users."""
        users = User.objects.all().order_by('id')
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(users, request)
        serializer = UserSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def post(self, request):
        """Create user."""
        serializer = UserWriteSerializer(data=request.data)
        if not serializer.is_valid():
            raise RecordValidationError('Validation error', details=serializer.errors)

        user = User()
        user.scenario = User.SCENARIO_CREATE
        serializer.apply(user)
        _save_or_raise(user, AccessContext.from_request(request))

        logger.info(
            f"User {user.username} created",
            extra={'user_id': user.id, 'actor_id': getattr(request.user, 'id', None)}
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    get=extend_schema(
        tags=['Users'],
        summary='Get user',
        responses={200: UserSerializer, 404: OpenApiTypes.OBJECT},
    ),
    patch=extend_schema(
        tags=['Users'],
        summary='Update user',
        description='''
Partially update a user.

Editing your own account always keeps it active, and a superadmin editing
their own account stays superadmin. Non-superadmins cannot modify superadmin
accounts (403).
        ''',
        request=UserWriteSerializer,
        responses={
            200: UserSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
        },
    ),
    delete=extend_schema(
        tags=['Users'],
        summary='Delete user',
        description='Delete a user. You cannot delete yourself; non-superadmins cannot delete superadmins.',
        responses={204: None, 403: OpenApiTypes.OBJECT},
    )
)
class UserDetailView(APIView):
    """
    GET /v1/users/{id}
    PATCH /v1/users/{id}
    DELETE /v1/users/{id}
    """
    permission_classes = [HasRouteAccess]

    def get(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        return Response(UserSerializer(user).data)

    def patch(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        serializer = UserWriteSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            raise RecordValidationError('Validation error', details=serializer.errors)

        serializer.apply(user)
        _save_or_raise(user, AccessContext.from_request(request))
        return Response(UserSerializer(user).data)

    def delete(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        if not user.delete_as(AccessContext.from_request(request)):
            raise OperationRejected('You are not allowed to delete this user.')

        logger.info(
            f"User {user_id} deleted",
            extra={'user_id': user_id, 'actor_id': getattr(request.user, 'id', None)}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    tags=['Users'],
    summary='Change password',
    description='Set a new password. `password` and `repeat_password` are required and must match.',
    request=ChangePasswordSerializer,
    responses={
        200: OpenApiTypes.OBJECT,
        400: OpenApiTypes.OBJECT,
        403: OpenApiTypes.OBJECT,
    },
)
class UserPasswordView(APIView):
    """
    POST /v1/users/{id}/password
    """
    permission_classes = [HasRouteAccess]

    def post(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        serializer = ChangePasswordSerializer(data=request.data)
        if not serializer.is_valid():
            raise RecordValidationError('Validation error', details=serializer.errors)

        user.scenario = User.SCENARIO_CHANGE_PASSWORD
        user.password = serializer.validated_data.get('password')
        user.repeat_password = serializer.validated_data.get('repeat_password')
        _save_or_raise(user, AccessContext.from_request(request))
        if user.pk == getattr(request.user, 'pk', None):
            # Keep the caller logged in after rotating their own auth key
            update_session_auth_hash(request._request, user)

        return Response({'message': 'Password changed'}, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Users'],
    summary='Assign role',
    description='''
Assign a role to a user.

Returns 409 if the user already holds the role and 400 if the user or role
is unknown.
    ''',
    request=AssignRoleSerializer,
    responses={
        201: UserSerializer,
        400: OpenApiTypes.OBJECT,
        409: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Assign Request',
            value={'role': 'editor'},
            request_only=True
        ),
        OpenApiExample(
            'Already Assigned',
            value={
                'error': "Role 'editor' is already assigned",
                'code': 'ALREADY_ASSIGNED',
                'details': {}
            },
            response_only=True,
            status_codes=['409']
        )
    ]
)
class UserRoleAssignView(APIView):
    """
    POST /v1/users/{id}/roles
    """
    permission_classes = [HasRouteAccess]

    def post(self, request, user_id):
        user = get_object_or_404(User, pk=user_id)
        serializer = AssignRoleSerializer(data=request.data)
        if not serializer.is_valid():
            raise RecordValidationError('Validation error', details=serializer.errors)

        role_name = serializer.validated_data['role']
        result = RBACService.assign_role(user.id, role_name)

        if result is AssignmentResult.ALREADY_EXISTS:
            raise AssignmentConflict(f"Role '{role_name}' is already assigned")
        if result is AssignmentResult.FAILED:
            raise AssignmentFailed(f"Role '{role_name}' could not be assigned")

        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['Users'],
    summary='Revoke role',
    responses={204: None, 404: OpenApiTypes.OBJECT},
)
class UserRoleRevokeView(APIView):
    """
    DELETE /v1/users/{id}/roles/{role_name}
    """
    permission_classes = [HasRouteAccess]

    def delete(self, request, user_id, role_name):
        user = get_object_or_404(User, pk=user_id)
        if not RBACService.revoke_role(user.id, role_name):
            return Response(
                {'error': f"Role '{role_name}' is not assigned"},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
