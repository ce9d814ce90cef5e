"""
RBAC services.

Implements:
- RBACService: role, permission and route checks against the cached
  session snapshot, role assignment and revocation
- AssignmentResult: outcome of a role assignment
"""
import logging
from enum import Enum
from typing import Iterable, Union
from django.db import transaction, DatabaseError, IntegrityError

from apps.rbac.models import User, AuthItem, AuthAssignment
from apps.rbac.context import AccessContext
from apps.rbac.routes import unify_route, is_route_allowed
from apps.rbac import permission_cache
from apps.rbac.permission_cache import PermissionSnapshot

logger = logging.getLogger(__name__)


class AssignmentResult(Enum):
    """
    Outcome of RBACService.assign_role.

    Truthy only for SUCCESS, so ``if RBACService.assign_role(...)`` reads as
    a plain success check.
    """

    SUCCESS = 'success'
    ALREADY_EXISTS = 'already_exists'
    FAILED = 'failed'

    def __bool__(self):
        return self is AssignmentResult.SUCCESS


class RBACService:
    """
    Service for RBAC operations: access checks and role assignments.

    Every check takes an explicit AccessContext. Checks are answered from
    the snapshot cached in ``context.session``, which is rebuilt whenever
    the global permission version moves.
    """

    @classmethod
    def ensure_permissions_up_to_date(cls, context: AccessContext) -> PermissionSnapshot:
        """
        Return the caller's snapshot, rebuilding it if stale.

        The snapshot is stale when it was built at another permission
        version or for another user. Guests always get an empty snapshot.

        Args:
            context: AccessContext of the acting user

        Returns:
            Current PermissionSnapshot
        """
        if context.is_guest:
            return PermissionSnapshot()

        version = permission_cache.get_permissions_version()
        snapshot = PermissionSnapshot.from_session(context.session)
        if (
            snapshot is not None
            and snapshot.version == version
            and snapshot.user_id == context.user_id
        ):
            return snapshot

        snapshot = permission_cache.load_snapshot(context.user_id, version)
        snapshot.to_session(context.session)
        return snapshot

    @classmethod
    def has_role(
        cls,
        context: AccessContext,
        roles: Union[str, Iterable[str]],
        super_admin_allowed: bool = True,
        include_child_roles: bool = False,
    ) -> bool:
        """
        Check if the acting user holds at least one of the given roles.

        Args:
            context: AccessContext of the acting user
            roles: Role name or iterable of role names
            super_admin_allowed: Let superadmins pass unconditionally
            include_child_roles: Also match roles inherited through the graph

        Returns:
            True if any requested role is held
        """
        if super_admin_allowed and context.is_superadmin:
            return True

        if isinstance(roles, str):
            roles = [roles]

        snapshot = cls.ensure_permissions_up_to_date(context)
        held = snapshot.roles_with_children if include_child_roles else snapshot.roles
        return not held.isdisjoint(roles)

    @classmethod
    def has_permission(
        cls,
        context: AccessContext,
        permission: str,
        super_admin_allowed: bool = True,
    ) -> bool:
        """Check if the acting user holds a permission."""
        if super_admin_allowed and context.is_superadmin:
            return True
        return permission in cls.ensure_permissions_up_to_date(context).permissions

    @classmethod
    def can_route(
        cls,
        context: AccessContext,
        route,
        super_admin_allowed: bool = True,
    ) -> bool:
        """
        Check if the acting user may call a route.

        Free-access routes are open to everybody, guests included. Other
        routes must be granted exactly or by a wildcard entry (``/rbac/*``).

        Args:
            context: AccessContext of the acting user
            route: Route string or menu-style sequence, normalized first
            super_admin_allowed: Let superadmins pass unconditionally

        Returns:
            True if access is allowed
        """
        if super_admin_allowed and context.is_superadmin:
            return True

        route = unify_route(route)
        version = permission_cache.get_permissions_version()
        if is_route_allowed(route, permission_cache.get_free_access_routes(version)):
            return True

        snapshot = cls.ensure_permissions_up_to_date(context)
        return is_route_allowed(route, snapshot.routes)

    @classmethod
    def assign_role(cls, user_id: int, role_name: str) -> AssignmentResult:
        """
        Assign a role to a user.

        Never raises: duplicates and persistence errors are reported
        through the result.

        Args:
            user_id: ID of the user
            role_name: Name of a role item

        Returns:
            AssignmentResult.SUCCESS if the assignment was stored,
            ALREADY_EXISTS if the user already holds the role, FAILED if
            the user or role is unknown or the store rejected the insert.
        """
        try:
            if not AuthItem.objects.filter(name=role_name, type=AuthItem.TYPE_ROLE).exists():
                logger.warning(
                    f"Cannot assign unknown role '{role_name}'",
                    extra={'user_id': user_id, 'role': role_name}
                )
                return AssignmentResult.FAILED
            if not User.objects.filter(pk=user_id).exists():
                logger.warning(
                    f"Cannot assign role '{role_name}' to unknown user {user_id}",
                    extra={'user_id': user_id, 'role': role_name}
                )
                return AssignmentResult.FAILED

            with transaction.atomic():
                AuthAssignment.objects.create(user_id=user_id, item_id=role_name)
        except IntegrityError:
            if AuthAssignment.objects.filter(user_id=user_id, item_id=role_name).exists():
                return AssignmentResult.ALREADY_EXISTS
            logger.error(
                f"Integrity error assigning role '{role_name}' to user {user_id}",
                extra={'user_id': user_id, 'role': role_name},
                exc_info=True
            )
            return AssignmentResult.FAILED
        except DatabaseError:
            logger.error(
                f"Database error assigning role '{role_name}' to user {user_id}",
                extra={'user_id': user_id, 'role': role_name},
                exc_info=True
            )
            return AssignmentResult.FAILED

        permission_cache.invalidate_permissions()
        logger.info(
            f"Role '{role_name}' assigned to user {user_id}",
            extra={'user_id': user_id, 'role': role_name}
        )
        return AssignmentResult.SUCCESS

    @classmethod
    def revoke_role(cls, user_id: int, role_name: str) -> bool:
        """
        Remove a role from a user.

        Returns:
            True if an assignment was deleted
        """
        try:
            deleted, _ = AuthAssignment.objects.filter(
                user_id=user_id,
                item_id=role_name
            ).delete()
        except DatabaseError:
            logger.error(
                f"Database error revoking role '{role_name}' from user {user_id}",
                extra={'user_id': user_id, 'role': role_name},
                exc_info=True
            )
            return False

        if not deleted:
            return False

        permission_cache.invalidate_permissions()
        logger.info(
            f"Role '{role_name}' revoked from user {user_id}",
            extra={'user_id': user_id, 'role': role_name}
        )
        return True

    @classmethod
    def get_user_roles(cls, user_id: int):
        """Roles assigned directly to a user, ordered by name."""
        return AuthItem.objects.filter(
            type=AuthItem.TYPE_ROLE,
            assignments__user_id=user_id
        ).order_by('name')

    @classmethod
    def invalidate_permissions(cls) -> int:
        """Force every session to rebuild its snapshot on the next check."""
        return permission_cache.invalidate_permissions()
