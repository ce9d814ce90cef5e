from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Perform startup validation checks when Django initializes.

        This ensures critical security configurations are properly set
        before the application starts accepting requests.
        """
        # Only validate when serving requests; management commands, shells
        # and test runs start without full config
        import sys
        if 'runserver' not in sys.argv and 'gunicorn' not in sys.argv[0]:
            return

        self._validate_security_settings()
        self._validate_cache_configuration()

        logger.info("All startup security validations passed")

    def _validate_security_settings(self):
        """Validate general security settings."""
        debug = getattr(settings, 'DEBUG', False)
        secret_key = getattr(settings, 'SECRET_KEY', None)

        # SECRET_KEY must be set
        if not secret_key:
            raise ImproperlyConfigured(
                "SECRET_KEY must be set in environment variables. "
                "Generate with: "
                "python -c \"import secrets; print(secrets.token_urlsafe(50))\""
            )

        if debug:
            return

        weak_patterns = [
            'your-secret-key',
            'change-me',
            'insecure',
        ]
        secret_lower = secret_key.lower()
        for pattern in weak_patterns:
            if pattern in secret_lower:
                raise ImproperlyConfigured(
                    f"SECRET_KEY appears to be a default or weak value (contains '{pattern}'). "
                    f"Generate a strong key with: "
                    f"python -c \"import secrets; print(secrets.token_urlsafe(50))\""
                )

        if not getattr(settings, 'SESSION_COOKIE_SECURE', False):
            logger.warning(
                "SESSION_COOKIE_SECURE is not enabled in production. "
                "Session cookies carry cached permissions and should only be sent over HTTPS."
            )

    def _validate_cache_configuration(self):
        """Warn when the permission version lives in a per-process cache."""
        backend = settings.CACHES.get('default', {}).get('BACKEND', '')
        if not getattr(settings, 'DEBUG', False) and backend.endswith('LocMemCache'):
            logger.warning(
                "Local-memory cache in use: permission invalidations are not "
                "shared between worker processes. Set REDIS_URL in production."
            )
