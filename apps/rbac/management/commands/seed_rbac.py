"""
Management command to seed the default roles, permissions and routes.

Creates the AuthItem graph used by the user management API. This command
is idempotent and safe to re-run.
"""
from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from apps.rbac.models import AuthItem


class Command(BaseCommand):
    help = 'Seed default roles, permissions and routes (idempotent)'

    ROUTES = [
        '/auth/me',
        '/core/health-check',
        '/rbac/user-list',
        '/rbac/user-detail',
        '/rbac/user-password',
        '/rbac/user-role-assign',
        '/rbac/user-role-revoke',
    ]

    # name -> (description, child permissions, routes)
    PERMISSIONS = {
        'viewUsers': ('View users', [], ['/rbac/user-list', '/rbac/user-detail']),
        'changeUserPassword': ('Change user passwords', [], ['/rbac/user-password']),
        'editUsers': ('Create, update and delete users', ['viewUsers', 'changeUserPassword'], []),
        'manageUserRoles': ('Assign and revoke user roles', ['viewUsers'], [
            '/rbac/user-role-assign',
            '/rbac/user-role-revoke',
        ]),
    }

    # name -> (description, child roles, permissions)
    ROLES = {
        'viewer': ('Read-only access to users', [], ['viewUsers']),
        'editor': ('Manage user records', ['viewer'], ['editUsers']),
        'admin': ('Manage users and their roles', ['editor'], ['manageUserRoles']),
    }

    def handle(self, *args, **options):
        """Create the default item graph."""
        self.stdout.write('Seeding RBAC items...\n')

        with transaction.atomic():
            created = self._seed()

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✓ Seeding complete: {created} items created, '
                f'{AuthItem.objects.count()} items in total'
            )
        )

        for item_type, label in AuthItem.TYPE_CHOICES:
            names = AuthItem.objects.filter(type=item_type).values_list('name', flat=True)
            self.stdout.write(f'\n{label.upper()}S:')
            for name in names:
                self.stdout.write(f'  • {name}')

    def _seed(self):
        created_count = 0

        def ensure(name, item_type, description=''):
            nonlocal created_count
            item, created = AuthItem.objects.get_or_create_item(name, item_type, description)
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Created: {item.name}'))
            return item

        routes = {route: ensure(route, AuthItem.TYPE_ROUTE) for route in self.ROUTES}

        common = ensure(
            settings.RBAC_FREE_ACCESS_PERMISSION,
            AuthItem.TYPE_PERMISSION,
            'Routes every visitor may call'
        )
        common.add_child(routes['/auth/me'])
        common.add_child(routes['/core/health-check'])

        permissions = {}
        for name, (description, _children, _routes) in self.PERMISSIONS.items():
            permissions[name] = ensure(name, AuthItem.TYPE_PERMISSION, description)
        for name, (_description, children, permission_routes) in self.PERMISSIONS.items():
            for child in children:
                permissions[name].add_child(permissions[child])
            for route in permission_routes:
                permissions[name].add_child(routes[route])

        roles = {}
        for name, (description, _children, _permissions) in self.ROLES.items():
            roles[name] = ensure(name, AuthItem.TYPE_ROLE, description)
        for name, (_description, children, role_permissions) in self.ROLES.items():
            for child in children:
                roles[name].add_child(roles[child])
            for permission in role_permissions:
                roles[name].add_child(permissions[permission])

        return created_count
