"""
Per-session permission snapshot and global invalidation version.

A snapshot holds everything the evaluator needs to answer role, permission
and route checks for one user without touching the database. It is built by
a pure function from the user's assigned roles and the auth item graph, and
stored in the session under well-known keys. A single global version counter
in the Django cache invalidates every session's snapshot at once.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple
from django.conf import settings
from apps.core.cache import CacheService, CacheKeys, CacheTTL
from apps.rbac.models import AuthItem, AuthItemChild, AuthAssignment
from apps.rbac.routes import unify_route

logger = logging.getLogger(__name__)

# Session keys
SESSION_ROLES = '__userRoles'
SESSION_ROLES_WITH_CHILDREN = '__userRolesWithChildren'
SESSION_PERMISSIONS = '__userPermissions'
SESSION_ROUTES = '__userRoutes'
SESSION_VERSION = '__authVersion'
SESSION_USER_ID = '__authUserId'

SESSION_KEYS = (
    SESSION_ROLES,
    SESSION_ROLES_WITH_CHILDREN,
    SESSION_PERMISSIONS,
    SESSION_ROUTES,
    SESSION_VERSION,
    SESSION_USER_ID,
)


@dataclass(frozen=True)
class PermissionSnapshot:
    """Resolved grants of one user at one permission version."""

    version: Optional[int] = None
    user_id: Optional[int] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    roles_with_children: FrozenSet[str] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    routes: FrozenSet[str] = field(default_factory=frozenset)

    def to_session(self, session) -> None:
        """Write the snapshot into a session store."""
        session[SESSION_ROLES] = sorted(self.roles)
        session[SESSION_ROLES_WITH_CHILDREN] = sorted(self.roles_with_children)
        session[SESSION_PERMISSIONS] = sorted(self.permissions)
        session[SESSION_ROUTES] = sorted(self.routes)
        session[SESSION_VERSION] = self.version
        session[SESSION_USER_ID] = self.user_id

    @classmethod
    def from_session(cls, session) -> Optional['PermissionSnapshot']:
        """Read a snapshot back, or None if the session holds none."""
        if session.get(SESSION_VERSION) is None:
            return None
        return cls(
            version=session.get(SESSION_VERSION),
            user_id=session.get(SESSION_USER_ID),
            roles=frozenset(session.get(SESSION_ROLES) or ()),
            roles_with_children=frozenset(session.get(SESSION_ROLES_WITH_CHILDREN) or ()),
            permissions=frozenset(session.get(SESSION_PERMISSIONS) or ()),
            routes=frozenset(session.get(SESSION_ROUTES) or ()),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            'version': self.version,
            'roles': sorted(self.roles),
            'roles_with_children': sorted(self.roles_with_children),
            'permissions': sorted(self.permissions),
            'routes': sorted(self.routes),
        }


def clear_session(session) -> None:
    """Remove every snapshot key from a session store."""
    for key in SESSION_KEYS:
        session.pop(key, None)


def build_snapshot(
    user_id: Optional[int],
    assigned_roles: Iterable[str],
    item_types: Mapping[str, int],
    children: Mapping[str, Iterable[str]],
    version: Optional[int] = None,
) -> PermissionSnapshot:
    """
    Build a snapshot from assigned roles and the item graph.

    Pure function: the same inputs always give the same snapshot, so
    concurrent rebuilds after an invalidation converge.

    Args:
        user_id: Owner of the snapshot
        assigned_roles: Names of roles assigned directly to the user
        item_types: Item name -> AuthItem type for every known item
        children: Item name -> names of its direct children
        version: Global permission version the snapshot belongs to

    Returns:
        PermissionSnapshot. Unknown items and non-role assignments are
        ignored; cycles in the graph are tolerated.
    """
    roles = frozenset(
        name for name in assigned_roles
        if item_types.get(name) == AuthItem.TYPE_ROLE
    )

    visited = set()
    queue = deque(sorted(roles))
    while queue:
        name = queue.popleft()
        if name in visited:
            continue
        visited.add(name)
        for child in children.get(name, ()):
            if child not in visited and child in item_types:
                queue.append(child)

    by_type = {AuthItem.TYPE_ROLE: set(), AuthItem.TYPE_PERMISSION: set(), AuthItem.TYPE_ROUTE: set()}
    for name in visited:
        by_type[item_types[name]].add(name)

    return PermissionSnapshot(
        version=version,
        user_id=user_id,
        roles=roles,
        roles_with_children=frozenset(by_type[AuthItem.TYPE_ROLE]),
        permissions=frozenset(by_type[AuthItem.TYPE_PERMISSION]),
        routes=frozenset(by_type[AuthItem.TYPE_ROUTE]),
    )


def load_item_graph() -> Tuple[Dict[str, int], Dict[str, List[str]]]:
    """Read the whole auth item graph: (item types, children by parent)."""
    item_types = dict(AuthItem.objects.values_list('name', 'type'))
    children: Dict[str, List[str]] = {}
    for parent, child in AuthItemChild.objects.values_list('parent_id', 'child_id'):
        children.setdefault(parent, []).append(child)
    return item_types, children


def collect_descendants(root: str, item_types: Mapping[str, int], children: Mapping[str, Iterable[str]]):
    """Return every item reachable below root (cycle-safe)."""
    seen = set()
    queue = deque(children.get(root, ()))
    while queue:
        name = queue.popleft()
        if name in seen or name not in item_types:
            continue
        seen.add(name)
        queue.extend(children.get(name, ()))
    return seen


def load_snapshot(user_id: int, version: Optional[int] = None) -> PermissionSnapshot:
    """Build the snapshot for a user from the database."""
    assigned = AuthAssignment.objects.filter(user_id=user_id).values_list('item_id', flat=True)
    item_types, children = load_item_graph()
    snapshot = build_snapshot(user_id, list(assigned), item_types, children, version)
    logger.debug(
        f"Permission snapshot rebuilt for user {user_id}",
        extra={
            'user_id': user_id,
            'version': version,
            'roles': len(snapshot.roles),
            'routes': len(snapshot.routes),
        }
    )
    return snapshot


def get_permissions_version() -> int:
    """Current global permission version."""
    return CacheService.get_counter(CacheKeys.RBAC_VERSION)


def invalidate_permissions() -> int:
    """
    Bump the global permission version.

    Every session snapshot built at an older version is rebuilt on its next
    check.
    """
    version = CacheService.bump_counter(CacheKeys.RBAC_VERSION)
    logger.info(f"Permission version bumped to {version}", extra={'version': version})
    return version


def get_free_access_routes(version: Optional[int] = None) -> FrozenSet[str]:
    """
    Routes every visitor may call.

    Combines the RBAC_FREE_ACCESS_ROUTES setting with every route below the
    free-access marker permission (RBAC_FREE_ACCESS_PERMISSION). Cached per
    permission version.
    """
    if version is None:
        version = get_permissions_version()
    cache_key = CacheKeys.format(CacheKeys.RBAC_FREE_ROUTES, version=version)
    cached = CacheService.get(cache_key)
    if cached is not None:
        return frozenset(cached)

    routes = {unify_route(route) for route in getattr(settings, 'RBAC_FREE_ACCESS_ROUTES', [])}

    marker = getattr(settings, 'RBAC_FREE_ACCESS_PERMISSION', 'commonPermission')
    if marker:
        item_types, children = load_item_graph()
        if marker in item_types:
            routes.update(
                name for name in collect_descendants(marker, item_types, children)
                if item_types[name] == AuthItem.TYPE_ROUTE
            )

    CacheService.set(cache_key, sorted(routes), CacheTTL.RBAC_FREE_ROUTES)
    return frozenset(routes)
