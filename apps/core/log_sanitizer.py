"""
Log sanitization to prevent credential leakage.

Automatically redacts sensitive information from logs including:
- Passwords and password hashes
- Auth keys and confirmation tokens
- Session and CSRF cookies
"""
import re
import logging


class SanitizingFormatter(logging.Formatter):
    """
    Log formatter that redacts credentials from the formatted message.
    """

    PATTERNS = [
        # Passwords (plaintext and repeat fields)
        (re.compile(r'(repeat_)?password["\s:=]+([^\s,\]}"\']+)', re.IGNORECASE), r'\1password=[REDACTED]'),
        (re.compile(r'passwd["\s:=]+([^\s,\]}"\']+)', re.IGNORECASE), r'passwd=[REDACTED]'),

        # Django password hashes (algorithm$iterations$salt$hash)
        (re.compile(r'(pbkdf2_sha256|pbkdf2_sha1|argon2|bcrypt_sha256|scrypt)\$[^\s,\]}"\']+'), r'[REDACTED_HASH]'),

        # Auth keys and confirmation tokens
        (re.compile(r'auth[_-]?key["\s:=]+([a-zA-Z0-9_\-]{16,})', re.IGNORECASE), r'auth_key=[REDACTED]'),
        (re.compile(r'confirmation[_-]?token["\s:=]+([a-zA-Z0-9_\-]{16,})', re.IGNORECASE), r'confirmation_token=[REDACTED]'),

        # Session and CSRF cookies
        (re.compile(r'sessionid=([a-z0-9]{20,})', re.IGNORECASE), r'sessionid=[REDACTED]'),
        (re.compile(r'csrftoken=([a-zA-Z0-9]{20,})', re.IGNORECASE), r'csrftoken=[REDACTED]'),

        # Authorization headers
        (re.compile(r'Authorization["\s:]+([^\s,\]}"\']+)', re.IGNORECASE), r'Authorization: [REDACTED]'),
    ]

    @classmethod
    def sanitize(cls, text: str) -> str:
        """Apply every redaction pattern to text."""
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def format(self, record):
        return self.sanitize(super().format(record))


class SanitizingFilter(logging.Filter):
    """
    Logging filter that sanitizes the message and its args before formatting.

    Used on handlers whose formatter does not sanitize by itself
    (e.g. the JSON formatter).
    """

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = SanitizingFormatter.sanitize(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                SanitizingFormatter.sanitize(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True
