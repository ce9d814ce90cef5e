"""
Authentication backend for username/password logins.

Compatible with Django's session authentication and DRF's
SessionAuthentication.
"""
from django.contrib.auth.backends import BaseBackend
from django.contrib.auth import get_user_model

from apps.core.logging import SecurityLogger
from apps.rbac.context import get_client_ip

User = get_user_model()


class UsernameAuthBackend(BaseBackend):
    """
    Authenticate by username and password.

    Inactive accounts are refused, and accounts with a bind_to_ip
    allow-list only log in from one of the listed addresses.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate user by username and password.

        Args:
            request: HTTP request object (may be None on the console)
            username: Login name
            password: Plain text password

        Returns:
            User instance if authentication succeeds, None otherwise
        """
        if not username or not password:
            return None

        username = username.strip()
        ip_address = get_client_ip(request) if request is not None else None

        user = User.objects.by_username(username)
        if user is None:
            # Run the default password hasher once to reduce timing
            # difference between existing and non-existing users
            User().set_password(password)
            SecurityLogger.log_failed_login(username, ip_address, 'unknown_user')
            return None

        if not user.check_password(password):
            SecurityLogger.log_failed_login(username, ip_address, 'invalid_password')
            return None

        if not user.is_active:
            SecurityLogger.log_failed_login(username, ip_address, 'inactive')
            return None

        if not user.is_ip_allowed(ip_address):
            SecurityLogger.log_failed_login(username, ip_address, 'ip_not_allowed')
            return None

        return user

    def get_user(self, user_id):
        """
        Get user by ID.

        Args:
            user_id: User primary key

        Returns:
            User instance if found, None otherwise
        """
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
