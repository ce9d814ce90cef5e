"""
User identity and RBAC models.

Implements:
- User (identity, credentials, status flags, IP allow-list)
- AuthItem (named roles, permissions and routes)
- AuthItemChild (parent -> child edges of the item graph)
- AuthAssignment (user -> role edges)

Self-protection rules for user records (no self-deactivation, no
self-deletion, no self-demotion of a superadmin, superadmin records are
off-limits to everybody else) are enforced by User.save_as / User.delete_as,
which take the acting user explicitly. Plain save()/delete() are the console
path and skip those rules.
"""
import logging
import secrets
from django.conf import settings
from django.db import models
from django.contrib.auth.hashers import make_password, check_password
from django.utils.crypto import salted_hmac
from django.core.exceptions import ValidationError
from apps.core.models import BaseModel
from apps.core.validators import InputValidator
from apps.core.logging import SecurityLogger
from apps.rbac.routes import unify_route

logger = logging.getLogger(__name__)


class UserManager(models.Manager):
    """
    Manager for User queries.

    Compatible with Django's authentication system.
    """

    def active(self):
        """Return only active users."""
        return self.filter(status=User.STATUS_ACTIVE)

    def by_username(self, username):
        """Find user by username."""
        return self.filter(username=username).first()

    def create_user(self, username, password=None, **extra_fields):
        """
        Create a new user with hashed password.

        Runs on the console path: validation is enforced but actor guards
        are not.
        """
        if not username:
            raise ValueError('Username is required')

        extra_fields.setdefault('status', User.STATUS_ACTIVE)
        extra_fields.setdefault('superadmin', False)

        user = self.model(username=username, **extra_fields)
        user.scenario = User.SCENARIO_CREATE if password else User.SCENARIO_DEFAULT
        user.password = password
        user.repeat_password = password
        if not user.validate():
            raise ValidationError(user.errors)
        user.save(using=self._db)
        return user

    def create_superadmin(self, username, password=None, **extra_fields):
        """Create a superadmin account."""
        extra_fields['superadmin'] = True
        return self.create_user(username, password, **extra_fields)

    def get_by_natural_key(self, username):
        return self.get(**{self.model.USERNAME_FIELD: username})


class User(BaseModel):
    """
    Persisted user identity.

    This is the AUTH_USER_MODEL for the project. Passwords are staged in the
    transient ``password`` attribute and hashed on save; plaintext never
    reaches the database.
    """

    STATUS_ACTIVE = 1
    STATUS_INACTIVE = 0
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    # Validation scenarios
    SCENARIO_DEFAULT = 'default'
    SCENARIO_CREATE = 'create'
    SCENARIO_CHANGE_PASSWORD = 'change_password'
    PASSWORD_SCENARIOS = {SCENARIO_CREATE, SCENARIO_CHANGE_PASSWORD}

    PASSWORD_MAX_LENGTH = 255

    username = models.CharField(
        max_length=255,
        unique=True,
        help_text="Login name (unique)"
    )
    email = models.EmailField(
        max_length=128,
        null=True,
        blank=True,
        db_index=True,
        help_text="E-mail address; unique among confirmed addresses"
    )
    email_confirmed = models.BooleanField(
        default=False,
        help_text="Whether the e-mail address has been confirmed"
    )
    password_hash = models.CharField(
        max_length=255,
        blank=True,
        help_text="Hashed password"
    )
    auth_key = models.CharField(
        max_length=64,
        blank=True,
        help_text="Random key the session auth hash is derived from; rotated on password change"
    )
    confirmation_token = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Pending e-mail confirmation or password reset token"
    )
    bind_to_ip = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Comma-separated IP addresses allowed to log in"
    )
    registration_ip = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address the account was created from"
    )
    status = models.SmallIntegerField(
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True,
        help_text="Account status"
    )
    superadmin = models.BooleanField(
        default=False,
        help_text="Bypasses every role, permission and route check"
    )

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = []

    # Transient attributes, never persisted
    password = None
    repeat_password = None
    scenario = SCENARIO_DEFAULT
    errors = None

    objects = UserManager()

    class Meta:
        db_table = 'user'
        ordering = ['id']
        indexes = [
            models.Index(fields=['email', 'email_confirmed']),
        ]

    def __str__(self):
        return self.username

    # ----- Django authentication compatibility -----

    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def get_username(self):
        return self.username

    def natural_key(self):
        return (self.username,)

    # ----- Credentials -----

    def check_password(self, raw_password):
        """Check if provided password matches stored hash."""
        if not self.password_hash:
            return False
        return check_password(raw_password, self.password_hash)

    def set_password(self, raw_password):
        """Hash and store a password immediately."""
        self.password_hash = make_password(raw_password)

    def generate_auth_key(self):
        """Replace the auth key with a fresh random value."""
        self.auth_key = secrets.token_urlsafe(32)

    def get_session_auth_hash(self):
        """Hash stored in the session at login; stale once auth_key rotates."""
        return self._get_session_auth_hash()

    def get_session_auth_fallback_hash(self):
        for fallback_secret in settings.SECRET_KEY_FALLBACKS:
            yield self._get_session_auth_hash(secret=fallback_secret)

    def _get_session_auth_hash(self, secret=None):
        key_salt = 'apps.rbac.models.User.get_session_auth_hash'
        return salted_hmac(
            key_salt, self.auth_key, secret=secret, algorithm='sha256'
        ).hexdigest()

    def is_ip_allowed(self, ip_address):
        """
        Check the login IP against bind_to_ip.

        Accounts without an allow-list accept any address.
        """
        if not self.bind_to_ip:
            return True
        return InputValidator.ip_in_list(ip_address, self.bind_to_ip)

    @property
    def roles(self):
        """Roles assigned directly to this user."""
        return AuthItem.objects.filter(
            type=AuthItem.TYPE_ROLE,
            assignments__user=self
        )

    # ----- Validation -----

    def _normalize_attributes(self):
        """Trim input and turn empty optional values into NULL."""
        self.username = (self.username or '').strip()
        self.email = (self.email or '').strip() or None
        self.bind_to_ip = (self.bind_to_ip or '').strip() or None
        if self.scenario in self.PASSWORD_SCENARIOS and self.password:
            self.password = self.password.strip()

    def clean(self):
        super().clean()
        errors = {}

        if self.bind_to_ip and not InputValidator.validate_ip_list(self.bind_to_ip):
            errors['bind_to_ip'] = 'Wrong format. Enter valid IPs separated by comma'

        if self.email:
            taken = User.objects.filter(
                email=self.email,
                email_confirmed=True,
                status=self.STATUS_ACTIVE
            ).exclude(pk=self.pk).exists()
            if taken:
                errors['email'] = 'This E-mail already exists'

        if self.scenario in self.PASSWORD_SCENARIOS:
            if not self.password:
                errors['password'] = 'Password cannot be blank.'
            elif len(self.password) > self.PASSWORD_MAX_LENGTH:
                errors['password'] = f'Password should contain at most {self.PASSWORD_MAX_LENGTH} characters.'
            if not self.repeat_password:
                errors['repeat_password'] = 'Repeat password cannot be blank.'

        if (self.password or self.repeat_password) and 'repeat_password' not in errors:
            if self.password != self.repeat_password:
                errors['repeat_password'] = "Passwords don't match"

        if errors:
            raise ValidationError(errors)

    def validate(self):
        """
        Run every validation rule and collect per-field messages.

        Returns:
            True if the record is valid. Otherwise False, with the messages
            available in ``self.errors`` as ``{field: [message, ...]}``.
        """
        self._normalize_attributes()
        try:
            self.full_clean()
        except ValidationError as e:
            self.errors = e.message_dict
            return False
        self.errors = {}
        return True

    # ----- Persistence -----

    def save(self, *args, **kwargs):
        """
        Hash a staged password and make sure an auth key exists.

        A new password also rotates the auth key, which ends every session
        started with the old one. The instance returns to the default
        scenario afterwards.
        """
        if self.password:
            self.set_password(self.password)
            self.generate_auth_key()
            self.password = None
            self.repeat_password = None
        if not self.auth_key:
            self.generate_auth_key()
        super().save(*args, **kwargs)
        self.scenario = self.SCENARIO_DEFAULT

    def _stored_superadmin(self):
        if self.pk is None:
            return False
        return bool(
            User.objects.filter(pk=self.pk).values_list('superadmin', flat=True).first()
        )

    def _reject(self, context, operation, reason):
        SecurityLogger.log_guard_rejection(
            actor_id=context.user_id,
            target_id=self.pk,
            operation=operation,
            reason=reason
        )
        return False

    def save_as(self, context, *args, **kwargs):
        """
        Validate and save on behalf of the acting user.

        On insert the registration IP is stamped from the context and a new
        auth key is generated. On update a user editing themself is kept
        active, and a superadmin editing themself stays superadmin. A
        non-superadmin may neither touch a superadmin record nor grant the
        superadmin flag.

        Args:
            context: AccessContext of the acting user

        Returns:
            True if the record was saved, False if validation failed
            (see ``self.errors``) or the save was rejected.
        """
        if not self.validate():
            return False

        if self._state.adding:
            if self.superadmin and not context.is_superadmin:
                return self._reject(context, 'insert', 'superadmin_protected')
            self.registration_ip = context.ip_address
            self.generate_auth_key()
        else:
            if context.user_id is not None and context.user_id == self.pk:
                self.status = self.STATUS_ACTIVE
                if context.is_superadmin and not self.superadmin:
                    self.superadmin = True

            if not context.is_superadmin and (self.superadmin or self._stored_superadmin()):
                return self._reject(context, 'update', 'superadmin_protected')

        self.save(*args, **kwargs)
        return True

    def delete_as(self, context):
        """
        Delete on behalf of the acting user.

        Returns:
            True if the record was deleted, False if the acting user tried
            to delete themself or a non-superadmin targeted a superadmin.
        """
        if context.user_id is not None and context.user_id == self.pk:
            return self._reject(context, 'delete', 'self_delete')

        if not context.is_superadmin and (self.superadmin or self._stored_superadmin()):
            return self._reject(context, 'delete', 'superadmin_protected')

        self.delete()
        return True


class AuthItemManager(models.Manager):
    """Manager for AuthItem queries."""

    def roles(self):
        return self.filter(type=AuthItem.TYPE_ROLE)

    def permissions(self):
        return self.filter(type=AuthItem.TYPE_PERMISSION)

    def routes(self):
        return self.filter(type=AuthItem.TYPE_ROUTE)

    def by_name(self, name, item_type=None):
        """Find item by name, optionally restricted to a type."""
        qs = self.filter(name=name)
        if item_type is not None:
            qs = qs.filter(type=item_type)
        return qs.first()

    def get_or_create_item(self, name, item_type, description=''):
        """Get or create item (idempotent). Route names are normalized."""
        if item_type == AuthItem.TYPE_ROUTE:
            name = unify_route(name)
        return self.get_or_create(
            name=name,
            defaults={'type': item_type, 'description': description}
        )


class AuthItem(BaseModel):
    """
    A named node of the access-control graph: a role, a permission or a route.

    Roles may contain roles and permissions; permissions may contain
    permissions and routes.
    """

    TYPE_ROLE = 1
    TYPE_PERMISSION = 2
    TYPE_ROUTE = 3
    TYPE_CHOICES = [
        (TYPE_ROLE, 'Role'),
        (TYPE_PERMISSION, 'Permission'),
        (TYPE_ROUTE, 'Route'),
    ]

    # Allowed child types per parent type
    ALLOWED_CHILDREN = {
        TYPE_ROLE: {TYPE_ROLE, TYPE_PERMISSION},
        TYPE_PERMISSION: {TYPE_PERMISSION, TYPE_ROUTE},
        TYPE_ROUTE: set(),
    }

    name = models.CharField(
        max_length=64,
        unique=True,
        help_text="Item name (role name, permission code or normalized route)"
    )
    type = models.SmallIntegerField(
        choices=TYPE_CHOICES,
        db_index=True,
        help_text="Item type"
    )
    description = models.TextField(
        blank=True,
        help_text="Description"
    )

    objects = AuthItemManager()

    class Meta:
        db_table = 'auth_item'
        ordering = ['type', 'name']

    def __str__(self):
        return f"{self.get_type_display()}: {self.name}"

    def save(self, *args, **kwargs):
        if self.type == self.TYPE_ROUTE:
            self.name = unify_route(self.name)
        super().save(*args, **kwargs)

    def add_child(self, child):
        """Link child below this item (idempotent)."""
        link, _ = AuthItemChild.objects.get_or_create(parent=self, child=child)
        return link

    def remove_child(self, child):
        deleted, _ = AuthItemChild.objects.filter(parent=self, child=child).delete()
        return deleted > 0


class AuthItemChild(models.Model):
    """Parent -> child edge between two auth items."""

    parent = models.ForeignKey(
        AuthItem,
        to_field='name',
        db_column='parent',
        on_delete=models.CASCADE,
        related_name='child_links'
    )
    child = models.ForeignKey(
        AuthItem,
        to_field='name',
        db_column='child',
        on_delete=models.CASCADE,
        related_name='parent_links'
    )

    class Meta:
        db_table = 'auth_item_child'
        unique_together = [('parent', 'child')]

    def __str__(self):
        return f"{self.parent_id} -> {self.child_id}"

    def clean(self):
        super().clean()
        if self.parent_id == self.child_id:
            raise ValidationError("An item cannot be its own child")
        if self.child.type not in AuthItem.ALLOWED_CHILDREN[self.parent.type]:
            raise ValidationError(
                f"A {self.parent.get_type_display().lower()} cannot contain "
                f"a {self.child.get_type_display().lower()}"
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class AuthAssignment(models.Model):
    """
    User -> role edge.

    Created and removed through RBACService.assign_role / revoke_role so
    that the global permission version is bumped on every change.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    item = models.ForeignKey(
        AuthItem,
        to_field='name',
        db_column='item_name',
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'auth_assignment'
        unique_together = [('user', 'item')]
        ordering = ['user', 'item']

    def __str__(self):
        return f"{self.user_id} -> {self.item_id}"
