"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Authentication (login)
- Users (read, create, update, password change)
- Role assignments

Input serializers only shape the payload. Field rules (uniqueness, IP
allow-list format, password confirmation) live on the User model so that
the API and the console share them.
"""
from rest_framework import serializers
from apps.rbac.models import User


# ===== AUTHENTICATION SERIALIZERS =====

class LoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    username = serializers.CharField(required=True, max_length=255)
    password = serializers.CharField(
        required=True,
        write_only=True,
        trim_whitespace=False,
        style={'input_type': 'password'}
    )


# ===== USER SERIALIZERS =====

class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model."""

    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'email_confirmed', 'status',
            'superadmin', 'bind_to_ip', 'registration_ip', 'roles',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_roles(self, obj):
        """Names of roles assigned directly to the user."""
        return sorted(obj.roles.values_list('name', flat=True))


class UserWriteSerializer(serializers.Serializer):
    """
    Payload for creating or updating a user.

    Everything is optional here; on create the model enforces the required
    fields of the ``create`` scenario.
    """

    username = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email_confirmed = serializers.BooleanField(required=False)
    bind_to_ip = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES, required=False)
    superadmin = serializers.BooleanField(required=False)
    password = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        trim_whitespace=False,
        style={'input_type': 'password'}
    )
    repeat_password = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        trim_whitespace=False,
        style={'input_type': 'password'}
    )

    def apply(self, user):
        """Copy validated values onto a User instance."""
        for field, value in self.validated_data.items():
            setattr(user, field, value)
        return user


class ChangePasswordSerializer(serializers.Serializer):
    """Payload for changing a user's password."""

    password = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        trim_whitespace=False,
        style={'input_type': 'password'}
    )
    repeat_password = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        trim_whitespace=False,
        style={'input_type': 'password'}
    )


# ===== ROLE ASSIGNMENT SERIALIZERS =====

class AssignRoleSerializer(serializers.Serializer):
    """Serializer for assigning a role to a user."""

    role = serializers.CharField(required=True, max_length=64)


class SnapshotSerializer(serializers.Serializer):
    """Read-only view of a PermissionSnapshot."""

    version = serializers.IntegerField(allow_null=True)
    roles = serializers.ListField(child=serializers.CharField())
    roles_with_children = serializers.ListField(child=serializers.CharField())
    permissions = serializers.ListField(child=serializers.CharField())
    routes = serializers.ListField(child=serializers.CharField())
