"""
Route identifiers used as the unit of access control.

A route is a normalized, slash-separated string such as ``/rbac/user-list``.
Allow-lists may contain exact routes or wildcard entries ending in ``/*``
that grant every child route below the prefix (``/rbac/*`` grants
``/rbac/user-list`` and ``/rbac/user-detail``; ``/*`` grants everything).
"""
from typing import Iterable, Optional, Sequence, Union

WILDCARD = '*'

RouteLike = Union[str, Sequence]


def unify_route(route: RouteLike, base_url: str = '') -> str:
    """
    Normalize a route identifier.

    Accepts a plain string or a menu-style sequence whose first element is
    the route (``['/rbac/user-list', {'page': 2}]``). Query strings,
    fragments, an optional base URL prefix, duplicate and trailing slashes
    are stripped, and a single leading slash is enforced.

    Examples:
        >>> unify_route('rbac/user-list/?page=2')
        '/rbac/user-list'
        >>> unify_route(['//rbac//user-list'])
        '/rbac/user-list'
    """
    if not isinstance(route, str):
        route = route[0] if route else ''
    route = str(route).split('?', 1)[0].split('#', 1)[0]

    if base_url:
        base = '/' + base_url.strip('/')
        if base != '/' and (route == base or route.startswith(base + '/')):
            route = route[len(base):]

    segments = [segment for segment in route.split('/') if segment]
    return '/' + '/'.join(segments)


def route_for_view(namespace: Optional[str], url_name: Optional[str]) -> Optional[str]:
    """
    Build the route for a resolved Django URL.

    ``('rbac', 'user-list')`` becomes ``/rbac/user-list``. Nested namespaces
    (``api:rbac``) become nested segments. Returns None for unnamed URLs.
    """
    if not url_name:
        return None
    parts = [part for part in (namespace or '').split(':') if part]
    parts.append(url_name)
    return unify_route('/'.join(parts))


def is_child_route(route: str, allowed_route: str) -> bool:
    """Return True if allowed_route is a wildcard entry covering route."""
    if not allowed_route.endswith('/' + WILDCARD):
        return False
    prefix = allowed_route[:-len(WILDCARD)]
    return prefix == '/' or route.startswith(prefix)


def is_route_allowed(route: str, allowed_routes: Iterable[str]) -> bool:
    """
    Check a normalized route against an allow-list.

    Exact entries match the route itself; wildcard entries match every
    route below their prefix.
    """
    allowed_routes = allowed_routes if isinstance(allowed_routes, (set, frozenset)) else set(allowed_routes)
    if route in allowed_routes:
        return True
    return any(is_child_route(route, allowed) for allowed in allowed_routes)
