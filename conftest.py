"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django
from django.core.management import call_command


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    settings.CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'tests',
        }
    }
    settings.PASSWORD_HASHERS = [
        'django.contrib.auth.hashers.MD5PasswordHasher',
    ]
    django.setup()


@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """Set up test database with migrations."""
    with django_db_blocker.unblock():
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty cache (fresh permission version)."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def user(db):
    """Create a regular active user."""
    from apps.rbac.models import User
    return User.objects.create_user('alice', 'alice-pass-123', email='alice@example.com')


@pytest.fixture
def other_user(db):
    """Create another regular user."""
    from apps.rbac.models import User
    return User.objects.create_user('bob', 'bob-pass-123')


@pytest.fixture
def superadmin(db):
    """Create a superadmin."""
    from apps.rbac.models import User
    return User.objects.create_superadmin('root', 'root-pass-123')


@pytest.fixture
def rbac_items(db):
    """
    Seed a small item graph.

    editor (role) -> viewer (role) -> viewUsers (permission) -> /rbac/user-list, /rbac/user-detail
    editor (role) -> editUsers (permission) -> /rbac/user-password
    auditor (role) -> /reports/* via viewReports
    """
    from apps.rbac.models import AuthItem

    def item(name, item_type):
        return AuthItem.objects.get_or_create_item(name, item_type)[0]

    viewer = item('viewer', AuthItem.TYPE_ROLE)
    editor = item('editor', AuthItem.TYPE_ROLE)
    auditor = item('auditor', AuthItem.TYPE_ROLE)
    view_users = item('viewUsers', AuthItem.TYPE_PERMISSION)
    edit_users = item('editUsers', AuthItem.TYPE_PERMISSION)
    view_reports = item('viewReports', AuthItem.TYPE_PERMISSION)

    view_users.add_child(item('/rbac/user-list', AuthItem.TYPE_ROUTE))
    view_users.add_child(item('/rbac/user-detail', AuthItem.TYPE_ROUTE))
    edit_users.add_child(item('/rbac/user-password', AuthItem.TYPE_ROUTE))
    view_reports.add_child(item('/reports/*', AuthItem.TYPE_ROUTE))

    viewer.add_child(view_users)
    editor.add_child(viewer)
    editor.add_child(edit_users)
    auditor.add_child(view_reports)

    return {
        'viewer': viewer,
        'editor': editor,
        'auditor': auditor,
    }


@pytest.fixture
def user_context(user):
    """AccessContext for the regular user with an empty session."""
    from apps.rbac.context import AccessContext
    return AccessContext.for_user(user, session={}, ip_address='10.0.0.1')


@pytest.fixture
def superadmin_context(superadmin):
    """AccessContext for the superadmin with an empty session."""
    from apps.rbac.context import AccessContext
    return AccessContext.for_user(superadmin, session={}, ip_address='10.0.0.1')
