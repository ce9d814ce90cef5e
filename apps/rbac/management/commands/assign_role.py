"""
Management command to assign a role to a user, or revoke it.
"""
from django.core.management.base import BaseCommand, CommandError
from apps.rbac.models import User
from apps.rbac.services import RBACService, AssignmentResult


class Command(BaseCommand):
    help = 'Assign a role to a user (or revoke it with --revoke)'

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            '--username',
            type=str,
            required=True,
            help='Login name of the user',
        )
        parser.add_argument(
            '--role',
            type=str,
            required=True,
            help='Role name',
        )
        parser.add_argument(
            '--revoke',
            action='store_true',
            help='Revoke the role instead of assigning it',
        )

    def handle(self, *args, **options):
        """Assign or revoke the role."""
        username = options['username']
        role = options['role']

        user = User.objects.by_username(username)
        if user is None:
            raise CommandError(f'User "{username}" not found')

        if options['revoke']:
            if not RBACService.revoke_role(user.id, role):
                raise CommandError(f'User "{username}" does not hold role "{role}"')
            self.stdout.write(self.style.SUCCESS(f'✓ Revoked "{role}" from {username}'))
            return

        result = RBACService.assign_role(user.id, role)
        if result is AssignmentResult.ALREADY_EXISTS:
            self.stdout.write(self.style.WARNING(f'  {username} already holds "{role}"'))
        elif result is AssignmentResult.FAILED:
            raise CommandError(f'Could not assign role "{role}" to {username}')
        else:
            self.stdout.write(self.style.SUCCESS(f'✓ Assigned "{role}" to {username}'))
