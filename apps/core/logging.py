"""
Custom logging formatters for structured JSON logging, plus security event logging.
"""
import json
import logging
import re
import traceback
from datetime import datetime, timezone as dt_timezone
from django.utils import timezone
import sentry_sdk


class PIIMasker:
    """
    Utility class to mask sensitive data in structured log payloads.
    """

    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')

    # Field names whose values never reach the logs
    SENSITIVE_FIELDS = {
        'password', 'repeat_password', 'password_hash', 'passwd',
        'auth_key', 'confirmation_token',
        'sessionid', 'session_key', 'csrftoken',
        'secret', 'secret_key',
    }

    @classmethod
    def mask_email(cls, text):
        """Mask the local part of e-mail addresses in text."""
        if not isinstance(text, str):
            return text

        def mask_email_match(match):
            username, _, domain = match.group(0).partition('@')
            masked_username = username[0] + '*' * (len(username) - 1) if len(username) > 1 else username
            return f"{masked_username}@{domain}"

        return cls.EMAIL_PATTERN.sub(mask_email_match, text)

    @classmethod
    def mask_dict(cls, data):
        """Recursively mask sensitive data in dictionaries."""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            if key.lower() in cls.SENSITIVE_FIELDS:
                masked[key] = '********' if value else value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, str):
                masked[key] = cls.mask_email(value)
            else:
                masked[key] = value

        return masked


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.
    Includes request_id from extra fields if available.
    """

    RESERVED_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'lineno', 'module', 'msecs', 'message',
        'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName', 'request_id',
    }

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_email(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'request_id'):
            log_data['request_id'] = record.request_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        # Add any extra fields
        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith('_'):
                continue
            if isinstance(value, dict):
                value = PIIMasker.mask_dict(value)
            elif key.lower() in PIIMasker.SENSITIVE_FIELDS:
                value = '********'
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class SecurityLogger:
    """
    Centralized security event logging.

    All security events are logged to the 'security' logger with:
    - Event type
    - Timestamp
    - Acting user and target (if available)
    - Additional context

    Critical events are also sent to Sentry for alerting.
    """

    CRITICAL_EVENTS = {
        'superadmin_tamper_attempt',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Args:
            event_type: Type of security event (e.g., 'failed_login', 'access_denied')
            level: Log level ('info', 'warning', 'error', 'critical')
            **context: Additional context data (ip_address, user_id, route, etc.)
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'timestamp': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(
            f"Security event: {event_type}",
            extra=log_data
        )

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
            )

    @staticmethod
    def log_failed_login(username: str, ip_address: str, reason: str = None):
        """Log a failed login attempt."""
        SecurityLogger.log_event(
            'failed_login',
            level='warning',
            username=username,
            ip_address=ip_address,
            reason=reason
        )

    @staticmethod
    def log_access_denied(user_id, route: str, ip_address: str = None):
        """Log a route access denial."""
        SecurityLogger.log_event(
            'access_denied',
            level='warning',
            user_id=user_id,
            route=route,
            ip_address=ip_address
        )

    @staticmethod
    def log_guard_rejection(actor_id, target_id, operation: str, reason: str):
        """
        Log a rejected save or delete on a user record.

        Attempts by a non-superadmin to touch a superadmin record are
        escalated as critical.
        """
        event_type = 'superadmin_tamper_attempt' if reason == 'superadmin_protected' else 'user_guard_rejected'
        SecurityLogger.log_event(
            event_type,
            level='error' if event_type in SecurityLogger.CRITICAL_EVENTS else 'warning',
            actor_id=actor_id,
            target_id=target_id,
            operation=operation,
            reason=reason
        )
