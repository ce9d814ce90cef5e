"""
Tests for structured logging, PII masking and log sanitization.
"""
import json
import logging
from unittest.mock import patch
from django.test import SimpleTestCase
from apps.core.logging import PIIMasker, JSONFormatter, SecurityLogger
from apps.core.log_sanitizer import SanitizingFormatter, SanitizingFilter


def make_record(msg, args=None, **extra):
    record = logging.LogRecord(
        name='apps.rbac',
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class PIIMaskerTestCase(SimpleTestCase):
    """Test PII masking functionality."""

    def test_mask_email_addresses(self):
        """Test email address masking."""
        masked = PIIMasker.mask_email("Contact alice@example.com or bob@test.org")

        self.assertIn("a****@example.com", masked)
        self.assertIn("b**@test.org", masked)
        self.assertNotIn("alice@example.com", masked)

    def test_mask_dict_sensitive_fields(self):
        """Test that credential fields are blanked out, recursively."""
        masked = PIIMasker.mask_dict({
            'username': 'alice',
            'password': 'secret',
            'nested': {'auth_key': 'abc', 'email': 'alice@example.com'},
        })

        self.assertEqual(masked['username'], 'alice')
        self.assertEqual(masked['password'], '********')
        self.assertEqual(masked['nested']['auth_key'], '********')
        self.assertEqual(masked['nested']['email'], 'a****@example.com')

    def test_empty_sensitive_value_is_kept(self):
        self.assertEqual(PIIMasker.mask_dict({'password': ''}), {'password': ''})


class JSONFormatterTestCase(SimpleTestCase):
    """Test JSON log formatting."""

    def test_format_basic(self):
        """Test that records become JSON with standard fields."""
        output = json.loads(JSONFormatter().format(make_record("User created", request_id='req-1')))

        self.assertEqual(output['level'], 'INFO')
        self.assertEqual(output['logger'], 'apps.rbac')
        self.assertEqual(output['message'], 'User created')
        self.assertEqual(output['request_id'], 'req-1')

    def test_extra_fields_are_masked(self):
        """Test that extra payloads never leak credentials."""
        record = make_record(
            "Login for alice@example.com",
            password_hash='md5$salt$hash',
            payload={'repeat_password': 'secret', 'user_id': 7},
        )
        output = json.loads(JSONFormatter().format(record))

        self.assertEqual(output['message'], 'Login for a****@example.com')
        self.assertEqual(output['password_hash'], '********')
        self.assertEqual(output['payload'], {'repeat_password': '********', 'user_id': 7})


class SanitizerTestCase(SimpleTestCase):
    """Test credential redaction in formatted messages."""

    def test_password_is_redacted(self):
        text = SanitizingFormatter.sanitize('login password=hunter2 repeat_password: hunter2')
        self.assertNotIn('hunter2', text)
        self.assertIn('password=[REDACTED]', text)
        self.assertIn('repeat_password=[REDACTED]', text)

    def test_password_hash_is_redacted(self):
        text = SanitizingFormatter.sanitize('stored pbkdf2_sha256$600000$salt$digest')
        self.assertEqual(text, 'stored [REDACTED_HASH]')

    def test_session_cookie_is_redacted(self):
        text = SanitizingFormatter.sanitize('Cookie: sessionid=abcdefghijklmnopqrstuvwxyz')
        self.assertIn('sessionid=[REDACTED]', text)

    def test_plain_text_is_untouched(self):
        self.assertEqual(SanitizingFormatter.sanitize('User 7 saved'), 'User 7 saved')

    def test_filter_sanitizes_args(self):
        record = make_record('auth for %s', args=('auth_key=abcdefghijklmnopqrstuvwxyz',))
        self.assertTrue(SanitizingFilter().filter(record))
        self.assertEqual(record.getMessage(), 'auth for auth_key=[REDACTED]')


class SecurityLoggerTestCase(SimpleTestCase):
    """Test security event logging."""

    def setUp(self):
        self.logger = logging.getLogger('security')

    def test_failed_login(self):
        with patch.object(self.logger, 'warning') as warning:
            SecurityLogger.log_failed_login('alice', '10.0.0.1', 'invalid_password')

        warning.assert_called_once()
        extra = warning.call_args.kwargs['extra']
        self.assertEqual(extra['event_type'], 'failed_login')
        self.assertEqual(extra['username'], 'alice')
        self.assertEqual(extra['reason'], 'invalid_password')

    def test_access_denied(self):
        with patch.object(self.logger, 'warning') as warning:
            SecurityLogger.log_access_denied(7, '/rbac/user-list', '10.0.0.1')

        extra = warning.call_args.kwargs['extra']
        self.assertEqual(extra['route'], '/rbac/user-list')
        self.assertEqual(extra['user_id'], 7)

    @patch('apps.core.logging.sentry_sdk.capture_message')
    def test_guard_rejection(self, capture_message):
        with patch.object(self.logger, 'warning') as warning:
            SecurityLogger.log_guard_rejection(7, 8, 'delete', 'self_delete')

        self.assertEqual(warning.call_args.kwargs['extra']['event_type'], 'user_guard_rejected')
        capture_message.assert_not_called()

    @patch('apps.core.logging.sentry_sdk.capture_message')
    def test_superadmin_tamper_is_critical(self, capture_message):
        with patch.object(self.logger, 'error') as error:
            SecurityLogger.log_guard_rejection(7, 1, 'update', 'superadmin_protected')

        self.assertEqual(error.call_args.kwargs['extra']['event_type'], 'superadmin_tamper_attempt')
        capture_message.assert_called_once()
