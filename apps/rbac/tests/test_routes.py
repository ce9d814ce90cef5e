"""
Tests for route normalization and matching.
"""
import pytest
from hypothesis import given, strategies as st, settings as hypothesis_settings, HealthCheck

from apps.rbac.routes import unify_route, route_for_view, is_child_route, is_route_allowed


class TestUnifyRoute:
    """Test route normalization."""

    @pytest.mark.parametrize('raw, expected', [
        ('/rbac/user-list', '/rbac/user-list'),
        ('rbac/user-list', '/rbac/user-list'),
        ('/rbac/user-list/', '/rbac/user-list'),
        ('//rbac//user-list', '/rbac/user-list'),
        ('/rbac/user-list?page=2', '/rbac/user-list'),
        ('/rbac/user-list#top', '/rbac/user-list'),
        ('', '/'),
        ('/', '/'),
    ])
    def test_strings(self, raw, expected):
        """Test that string routes are normalized."""
        assert unify_route(raw) == expected

    def test_menu_style_sequence(self):
        """Test that the first element of a sequence is the route."""
        assert unify_route(['/rbac/user-list', {'page': 2}]) == '/rbac/user-list'
        assert unify_route([]) == '/'

    def test_base_url_is_stripped(self):
        """Test that an application prefix is removed."""
        assert unify_route('/admin/rbac/user-list', base_url='/admin') == '/rbac/user-list'
        assert unify_route('/administrator/x', base_url='/admin') == '/administrator/x'

    @hypothesis_settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(st.lists(st.text(alphabet='abc-', min_size=1, max_size=5), max_size=4))
    def test_idempotent(self, segments):
        """Property: normalizing twice changes nothing."""
        once = unify_route('//'.join(segments) + '/')
        assert unify_route(once) == once


class TestRouteForView:
    """Test deriving routes from resolved URLs."""

    def test_namespaced(self):
        assert route_for_view('rbac', 'user-list') == '/rbac/user-list'

    def test_nested_namespace(self):
        assert route_for_view('api:rbac', 'user-list') == '/api/rbac/user-list'

    def test_no_namespace(self):
        assert route_for_view('', 'schema') == '/schema'

    def test_unnamed_url(self):
        assert route_for_view('rbac', None) is None


class TestRouteMatching:
    """Test exact and child-route matching."""

    def test_child_route(self):
        assert is_child_route('/reports/daily', '/reports/*')
        assert is_child_route('/reports/daily/export', '/reports/*')
        assert not is_child_route('/reportsx/daily', '/reports/*')
        assert not is_child_route('/reports', '/reports/*')

    def test_root_wildcard_covers_everything(self):
        assert is_child_route('/anything', '/*')

    def test_exact_entries_are_not_prefixes(self):
        assert not is_child_route('/reports/daily', '/reports')

    def test_is_route_allowed(self):
        allowed = ['/rbac/user-list', '/reports/*']
        assert is_route_allowed('/rbac/user-list', allowed)
        assert is_route_allowed('/reports/daily', allowed)
        assert not is_route_allowed('/rbac/user-detail', allowed)
        assert not is_route_allowed('/rbac/user-list', [])
