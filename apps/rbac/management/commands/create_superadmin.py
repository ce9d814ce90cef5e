"""
Management command to create a superadmin account.

Runs on the console path: field validation applies, actor guards do not.
"""
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from apps.rbac.models import User


class Command(BaseCommand):
    help = 'Create a superadmin user'

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            '--username',
            type=str,
            required=True,
            help='Login name',
        )
        parser.add_argument(
            '--password',
            type=str,
            required=True,
            help='Password',
        )
        parser.add_argument(
            '--email',
            type=str,
            default=None,
            help='E-mail address (stored as confirmed)',
        )

    def handle(self, *args, **options):
        """Create the superadmin."""
        username = options['username']
        email = options.get('email')

        if User.objects.filter(username=username.strip()).exists():
            raise CommandError(f'User "{username}" already exists')

        try:
            user = User.objects.create_superadmin(
                username,
                options['password'],
                email=email,
                email_confirmed=bool(email),
            )
        except ValidationError as e:
            messages = '; '.join(
                f'{field}: {" ".join(errors)}' for field, errors in e.message_dict.items()
            )
            raise CommandError(f'Invalid user: {messages}')

        self.stdout.write(
            self.style.SUCCESS(f'✓ Superadmin "{user.username}" created (id={user.id})')
        )
