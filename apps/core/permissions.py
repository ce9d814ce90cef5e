"""
DRF permission classes for route-based access enforcement.

This module provides:
- HasRouteAccess: DRF permission class that checks the view's route with
  RBACService.can_route
"""
import logging
from rest_framework.permissions import BasePermission

from apps.core.logging import SecurityLogger

logger = logging.getLogger(__name__)


class HasRouteAccess(BasePermission):
    """
    DRF permission class that enforces route access on API endpoints.

    The route is taken from the view's ``access_route`` attribute when set,
    otherwise derived from the resolved URL as ``/<namespace>/<url name>``
    (``rbac:user-list`` becomes ``/rbac/user-list``).

    Usage in views:
        class MyView(APIView):
            permission_classes = [HasRouteAccess]

            def get(self, request):
                # Will only execute if the user may call the route
                pass
    """

    message = 'You are not allowed to perform this action.'

    def get_route(self, request, view):
        """Return the route guarded by this view, or None if it has none."""
        from apps.rbac.routes import route_for_view, unify_route

        explicit = getattr(view, 'access_route', None)
        if explicit:
            return unify_route(explicit)

        match = getattr(request, 'resolver_match', None)
        if match is None:
            return None
        return route_for_view(match.namespace, match.url_name)

    def has_permission(self, request, view):
        """
        Check if the acting user may call the view's route.

        Args:
            request: DRF request object
            view: DRF view instance

        Returns:
            bool: True if access is allowed, False otherwise
        """
        from apps.rbac.context import AccessContext
        from apps.rbac.services import RBACService

        route = self.get_route(request, view)
        if route is None:
            logger.warning(
                f"Permission denied: View {view.__class__.__name__} has no route",
                extra={
                    'view': view.__class__.__name__,
                    'path': request.path,
                }
            )
            return False

        context = AccessContext.from_request(request)
        if RBACService.can_route(context, route):
            logger.debug(
                f"Permission granted: {route}",
                extra={
                    'route': route,
                    'user_id': context.user_id,
                    'view': view.__class__.__name__,
                }
            )
            return True

        SecurityLogger.log_access_denied(
            user_id=context.user_id,
            route=route,
            ip_address=context.ip_address
        )
        return False
