"""
RBAC API URLs.

Provides endpoints for:
- User management (list, create, read, update, delete)
- Password changes
- Role assignments

URL names double as access routes: ``rbac:user-list`` is guarded by the
``/rbac/user-list`` route.
"""
from django.urls import path
from apps.rbac.views import (
    UserListView,
    UserDetailView,
    UserPasswordView,
    UserRoleAssignView,
    UserRoleRevokeView,
)

app_name = 'rbac'

urlpatterns = [
    # User endpoints
    path('users', UserListView.as_view(), name='user-list'),
    path('users/<int:user_id>', UserDetailView.as_view(), name='user-detail'),
    path('users/<int:user_id>/password', UserPasswordView.as_view(), name='user-password'),

    # Role assignment endpoints
    path('users/<int:user_id>/roles', UserRoleAssignView.as_view(), name='user-role-assign'),
    path('users/<int:user_id>/roles/<str:role_name>', UserRoleRevokeView.as_view(), name='user-role-revoke'),
]
