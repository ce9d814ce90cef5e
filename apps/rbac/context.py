"""
Explicit access context passed to every RBAC check.

Carries the acting user's identity, the superadmin flag, the per-user
session store used for the permission snapshot, and the client IP.
"""
from dataclasses import dataclass, field
from typing import MutableMapping, Optional, Any
from django.conf import settings

from apps.core.validators import InputValidator


@dataclass
class AccessContext:
    """Who is acting, and where their cached permissions live."""

    user_id: Optional[int] = None
    is_superadmin: bool = False
    session: MutableMapping[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @classmethod
    def guest(cls, session=None, ip_address=None) -> 'AccessContext':
        return cls(
            session=session if session is not None else {},
            ip_address=ip_address
        )

    @classmethod
    def for_user(cls, user, session=None, ip_address=None) -> 'AccessContext':
        """Build a context for a user instance (None or anonymous gives a guest)."""
        if user is None or not getattr(user, 'is_authenticated', False):
            return cls.guest(session=session, ip_address=ip_address)
        return cls(
            user_id=user.pk,
            is_superadmin=bool(getattr(user, 'superadmin', False)),
            session=session if session is not None else {},
            ip_address=ip_address
        )

    @classmethod
    def from_request(cls, request) -> 'AccessContext':
        """
        Build (once) the context for an HTTP request.

        The Django session backs the snapshot store, so cached permissions
        survive across requests of the same login.
        """
        context = getattr(request, '_access_context', None)
        if context is not None:
            return context

        # DRF wraps the Django request; the session lives on the inner one
        django_request = getattr(request, '_request', request)
        session = getattr(django_request, 'session', None)
        context = cls.for_user(
            getattr(request, 'user', None),
            session=session,
            ip_address=get_client_ip(django_request)
        )
        request._access_context = context
        return context


def get_client_ip(request) -> Optional[str]:
    """
    Extract the client IP address from a request.

    X-Forwarded-For is honoured only behind TRUSTED_PROXY_COUNT proxies,
    each of which appends the address it received the request from; the
    client is the entry appended by the outermost trusted proxy. Values
    that are not valid IP addresses yield None.
    """
    ip_address = request.META.get('REMOTE_ADDR')

    proxy_count = getattr(settings, 'TRUSTED_PROXY_COUNT', 0)
    if proxy_count > 0:
        forwarded = InputValidator.split_ip_list(request.META.get('HTTP_X_FORWARDED_FOR'))
        if len(forwarded) >= proxy_count:
            ip_address = forwarded[-proxy_count]

    if not ip_address or not InputValidator.validate_ip(ip_address):
        return None
    return ip_address.strip()
