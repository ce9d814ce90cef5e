"""
Input validation helpers shared by the user management apps.
"""
import ipaddress
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


class InputValidator:
    """
    Common input validation functions.

    All validators are pure: they never touch the database and never raise.
    """

    @staticmethod
    def validate_ip(value: str) -> bool:
        """Return True if value is a syntactically valid IPv4 or IPv6 address."""
        try:
            ipaddress.ip_address(value.strip())
        except ValueError:
            return False
        return True

    @staticmethod
    def split_ip_list(value: Optional[str]) -> List[str]:
        """
        Split a comma-separated IP allow-list into trimmed elements.

        Empty input yields an empty list; empty elements are kept so that
        "10.0.0.1,," is reported as malformed rather than silently accepted.
        """
        if not value:
            return []
        return [item.strip() for item in value.split(',')]

    @staticmethod
    def validate_ip_list(value: Optional[str]) -> bool:
        """
        Validate a comma-separated list of IP addresses.

        Examples:
            >>> InputValidator.validate_ip_list("10.0.0.1, ::1")
            True
            >>> InputValidator.validate_ip_list("10.0.0.1, not-an-ip")
            False
        """
        return all(
            InputValidator.validate_ip(item)
            for item in InputValidator.split_ip_list(value)
        )

    @staticmethod
    def ip_in_list(ip: Optional[str], value: Optional[str]) -> bool:
        """
        Check whether ip appears in a comma-separated allow-list.

        Addresses are compared in their canonical form, so "::0001" matches
        "::1". Malformed entries never match.
        """
        if not ip:
            return False
        try:
            candidate = ipaddress.ip_address(ip.strip())
        except ValueError:
            return False

        for item in InputValidator.split_ip_list(value):
            try:
                if ipaddress.ip_address(item) == candidate:
                    return True
            except ValueError:
                logger.debug(f"Ignoring malformed allow-list entry: {item!r}")
        return False
