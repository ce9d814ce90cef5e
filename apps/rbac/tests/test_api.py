"""
API tests for user management endpoints.

Every endpoint is guarded by its route; the rbac_items fixture grants
/rbac/user-list and /rbac/user-detail to viewers and additionally
/rbac/user-password to editors.
"""
import pytest
from apps.rbac.models import User, AuthAssignment
from apps.rbac.services import RBACService


@pytest.fixture
def viewer_client(api_client, user, rbac_items):
    """Client logged in as a user holding the viewer role."""
    RBACService.assign_role(user.id, 'viewer')
    api_client.force_login(user)
    return api_client


@pytest.fixture
def editor_client(api_client, user, rbac_items):
    """Client logged in as a user holding the editor role."""
    RBACService.assign_role(user.id, 'editor')
    api_client.force_login(user)
    return api_client


@pytest.fixture
def superadmin_client(api_client, superadmin):
    """Client logged in as a superadmin."""
    api_client.force_login(superadmin)
    return api_client


@pytest.mark.django_db
class TestRouteEnforcement:
    """Test that endpoints are gated by route access."""

    def test_guest_is_denied(self, api_client):
        """Test that anonymous requests are refused."""
        response = api_client.get('/v1/users')
        assert response.status_code == 403

    def test_user_without_roles_is_denied(self, api_client, user, rbac_items):
        """Test that an authenticated user needs the route."""
        api_client.force_login(user)
        response = api_client.get('/v1/users')
        assert response.status_code == 403

    def test_viewer_can_list(self, viewer_client, user):
        """Test that the viewer role grants the list route."""
        response = viewer_client.get('/v1/users')
        assert response.status_code == 200
        assert response.data['results'][0]['username'] == user.username
        assert response.data['results'][0]['roles'] == ['viewer']

    def test_viewer_cannot_change_passwords(self, viewer_client, other_user):
        """Test that routes outside the role are refused."""
        response = viewer_client.post(
            f'/v1/users/{other_user.id}/password',
            {'password': 'new-pass', 'repeat_password': 'new-pass'},
            format='json'
        )
        assert response.status_code == 403

    def test_new_role_takes_effect_on_next_request(self, api_client, user, other_user, rbac_items):
        """Test that an assignment is visible without logging in again."""
        RBACService.assign_role(user.id, 'viewer')
        api_client.force_login(user)
        url = f'/v1/users/{other_user.id}/password'
        payload = {'password': 'new-pass', 'repeat_password': 'new-pass'}

        assert api_client.post(url, payload, format='json').status_code == 403
        RBACService.assign_role(user.id, 'editor')
        assert api_client.post(url, payload, format='json').status_code == 200

    def test_superadmin_passes_every_route(self, superadmin_client):
        """Test that superadmins need no roles."""
        response = superadmin_client.get('/v1/users')
        assert response.status_code == 200

    def test_denied_response_carries_request_id(self, api_client):
        """Test that error bodies include the request id."""
        response = api_client.get('/v1/users', HTTP_X_REQUEST_ID='req-123')
        assert response.status_code == 403
        assert response.data['request_id'] == 'req-123'
        assert response['X-Request-ID'] == 'req-123'


@pytest.mark.django_db
class TestUserCreate:
    """Test POST /v1/users."""

    def test_create_user(self, superadmin_client):
        """Test creating a user with a hashed password."""
        response = superadmin_client.post('/v1/users', {
            'username': '  carol ',
            'email': 'carol@example.com',
            'password': 'carol-pass',
            'repeat_password': 'carol-pass',
            'bind_to_ip': '10.0.0.1, ::1',
        }, format='json')

        assert response.status_code == 201
        assert response.data['username'] == 'carol'
        assert 'password' not in response.data
        user = User.objects.get(username='carol')
        assert user.check_password('carol-pass')
        assert user.registration_ip == '127.0.0.1'

    def test_create_requires_passwords(self, superadmin_client):
        """Test that the create scenario requires both password fields."""
        response = superadmin_client.post('/v1/users', {'username': 'carol'}, format='json')
        assert response.status_code == 400
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert 'password' in response.data['details']
        assert 'repeat_password' in response.data['details']

    def test_create_rejects_bad_ip_list(self, superadmin_client):
        """Test that a malformed allow-list is reported per field."""
        response = superadmin_client.post('/v1/users', {
            'username': 'carol',
            'password': 'carol-pass',
            'repeat_password': 'carol-pass',
            'bind_to_ip': '10.0.0.1, not-an-ip',
        }, format='json')
        assert response.status_code == 400
        assert response.data['details']['bind_to_ip'] == [
            'Wrong format. Enter valid IPs separated by comma'
        ]
        assert not User.objects.filter(username='carol').exists()

    def test_non_superadmin_cannot_create_superadmin(self, editor_client):
        """Test that the superadmin flag is reserved for superadmins."""
        response = editor_client.post('/v1/users', {
            'username': 'carol',
            'password': 'carol-pass',
            'repeat_password': 'carol-pass',
            'superadmin': True,
        }, format='json')
        assert response.status_code == 403
        assert response.data['code'] == 'OPERATION_REJECTED'
        assert not User.objects.filter(username='carol').exists()


@pytest.mark.django_db
class TestUserUpdate:
    """Test PATCH /v1/users/{id}."""

    def test_update_other_user(self, viewer_client, other_user):
        """Test a plain update."""
        response = viewer_client.patch(
            f'/v1/users/{other_user.id}', {'email': 'bob@example.com'}, format='json'
        )
        assert response.status_code == 200
        assert User.objects.get(pk=other_user.pk).email == 'bob@example.com'

    def test_self_deactivation_is_ignored(self, viewer_client, user):
        """Test that a user editing themself stays active."""
        response = viewer_client.patch(
            f'/v1/users/{user.id}', {'status': User.STATUS_INACTIVE}, format='json'
        )
        assert response.status_code == 200
        assert response.data['status'] == User.STATUS_ACTIVE
        assert User.objects.get(pk=user.pk).status == User.STATUS_ACTIVE

    def test_non_superadmin_cannot_edit_superadmin(self, viewer_client, superadmin):
        """Test that superadmin records are protected and left unchanged."""
        response = viewer_client.patch(
            f'/v1/users/{superadmin.id}', {'username': 'hijacked'}, format='json'
        )
        assert response.status_code == 403
        assert User.objects.get(pk=superadmin.pk).username == 'root'

    def test_superadmin_cannot_demote_self(self, superadmin_client, superadmin):
        """Test that a superadmin's own flag is kept."""
        response = superadmin_client.patch(
            f'/v1/users/{superadmin.id}', {'superadmin': False}, format='json'
        )
        assert response.status_code == 200
        assert User.objects.get(pk=superadmin.pk).superadmin is True

    def test_unknown_user(self, viewer_client):
        """Test that a missing user gives 404."""
        response = viewer_client.patch('/v1/users/999999', {'email': ''}, format='json')
        assert response.status_code == 404


@pytest.mark.django_db
class TestUserDelete:
    """Test DELETE /v1/users/{id}."""

    def test_delete_other_user(self, viewer_client, other_user):
        """Test deleting someone else."""
        response = viewer_client.delete(f'/v1/users/{other_user.id}')
        assert response.status_code == 204
        assert not User.objects.filter(pk=other_user.pk).exists()

    def test_cannot_delete_self(self, viewer_client, user):
        """Test that self-deletion is refused."""
        response = viewer_client.delete(f'/v1/users/{user.id}')
        assert response.status_code == 403
        assert User.objects.filter(pk=user.pk).exists()

    def test_cannot_delete_superadmin(self, viewer_client, superadmin):
        """Test that non-superadmins cannot delete superadmins."""
        response = viewer_client.delete(f'/v1/users/{superadmin.id}')
        assert response.status_code == 403
        assert User.objects.filter(pk=superadmin.pk).exists()


@pytest.mark.django_db
class TestChangePassword:
    """Test POST /v1/users/{id}/password."""

    def test_change_password(self, editor_client, other_user):
        """Test setting a new password."""
        response = editor_client.post(
            f'/v1/users/{other_user.id}/password',
            {'password': 'brand-new', 'repeat_password': 'brand-new'},
            format='json'
        )
        assert response.status_code == 200
        assert User.objects.get(pk=other_user.pk).check_password('brand-new')

    def test_mismatch(self, editor_client, other_user):
        """Test that the confirmation must match."""
        response = editor_client.post(
            f'/v1/users/{other_user.id}/password',
            {'password': 'brand-new', 'repeat_password': 'different'},
            format='json'
        )
        assert response.status_code == 400
        assert response.data['details']['repeat_password'] == ["Passwords don't match"]
        assert User.objects.get(pk=other_user.pk).check_password('bob-pass-123')

    def test_missing_fields(self, editor_client, other_user):
        """Test that both fields are required."""
        response = editor_client.post(f'/v1/users/{other_user.id}/password', {}, format='json')
        assert response.status_code == 400
        assert set(response.data['details']) == {'password', 'repeat_password'}


@pytest.mark.django_db
class TestRoleAssignment:
    """Test role assignment endpoints."""

    def test_assign_role(self, superadmin_client, user, rbac_items):
        """Test assigning a role."""
        response = superadmin_client.post(
            f'/v1/users/{user.id}/roles', {'role': 'editor'}, format='json'
        )
        assert response.status_code == 201
        assert response.data['roles'] == ['editor']

    def test_assign_duplicate_role(self, superadmin_client, user, rbac_items):
        """Test that a duplicate assignment is a conflict."""
        RBACService.assign_role(user.id, 'editor')
        response = superadmin_client.post(
            f'/v1/users/{user.id}/roles', {'role': 'editor'}, format='json'
        )
        assert response.status_code == 409
        assert response.data['code'] == 'ALREADY_ASSIGNED'
        assert AuthAssignment.objects.filter(user=user).count() == 1

    def test_assign_unknown_role(self, superadmin_client, user):
        """Test that an unknown role is a bad request."""
        response = superadmin_client.post(
            f'/v1/users/{user.id}/roles', {'role': 'ghost'}, format='json'
        )
        assert response.status_code == 400
        assert response.data['code'] == 'ASSIGNMENT_FAILED'

    def test_revoke_role(self, superadmin_client, user, rbac_items):
        """Test revoking a held role, then revoking it again."""
        RBACService.assign_role(user.id, 'editor')

        response = superadmin_client.delete(f'/v1/users/{user.id}/roles/editor')
        assert response.status_code == 204
        assert not AuthAssignment.objects.filter(user=user).exists()

        response = superadmin_client.delete(f'/v1/users/{user.id}/roles/editor')
        assert response.status_code == 404

    def test_editor_cannot_assign_roles(self, editor_client, other_user):
        """Test that the assign route is not part of the editor role."""
        response = editor_client.post(
            f'/v1/users/{other_user.id}/roles', {'role': 'editor'}, format='json'
        )
        assert response.status_code == 403
