"""
Tests for input validators.
"""
import pytest
from apps.core.validators import InputValidator


class TestValidateIP:
    """Test single address validation."""

    @pytest.mark.parametrize('value', ['10.0.0.1', ' 192.168.1.20 ', '::1', 'fe80::1'])
    def test_valid(self, value):
        assert InputValidator.validate_ip(value)

    @pytest.mark.parametrize('value', ['', '256.0.0.1', 'localhost', '10.0.0.0/8'])
    def test_invalid(self, value):
        assert not InputValidator.validate_ip(value)


class TestValidateIPList:
    """Test comma-separated allow-list validation."""

    def test_valid_list(self):
        assert InputValidator.validate_ip_list('10.0.0.1, ::1,192.168.0.1')

    def test_empty_list(self):
        assert InputValidator.validate_ip_list('')
        assert InputValidator.validate_ip_list(None)

    def test_one_bad_element(self):
        assert not InputValidator.validate_ip_list('10.0.0.1, not-an-ip')

    def test_empty_element(self):
        assert not InputValidator.validate_ip_list('10.0.0.1,,10.0.0.2')


class TestIPInList:
    """Test allow-list membership."""

    def test_member(self):
        assert InputValidator.ip_in_list('10.0.0.2', '10.0.0.1, 10.0.0.2')

    def test_non_member(self):
        assert not InputValidator.ip_in_list('10.0.0.3', '10.0.0.1, 10.0.0.2')

    def test_canonical_comparison(self):
        assert InputValidator.ip_in_list('::0001', '::1')

    def test_missing_or_malformed_ip(self):
        assert not InputValidator.ip_in_list(None, '10.0.0.1')
        assert not InputValidator.ip_in_list('garbage', '10.0.0.1')

    def test_malformed_entries_never_match(self):
        assert InputValidator.ip_in_list('10.0.0.1', 'junk, 10.0.0.1')
        assert not InputValidator.ip_in_list('10.0.0.1', 'junk')
