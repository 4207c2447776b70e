"""
Tests for the auth blueprint: CSRF token, registration, login/logout,
and the current-user endpoint.
"""

from carhub.models.audit import AuditLog


class TestCsrfToken:
    def test_token_issued(self, client):
        response = client.get("/api/csrf-token")
        assert response.status_code == 200
        assert response.get_json()["csrf_token"]


class TestRegister:
    def test_creates_technician_and_signs_in(self, client):
        response = client.post(
            "/api/register",
            json={"username": "novo", "password": "secret1", "first_name": "Nina"},
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["role"] == "technician"
        assert "password_hash" not in body

        me = client.get("/api/user")
        assert me.status_code == 200
        assert me.get_json()["username"] == "novo"

    def test_role_in_body_is_ignored(self, client):
        response = client.post(
            "/api/register",
            json={"username": "sneaky", "password": "secret1", "role": "admin"},
        )
        assert response.get_json()["role"] == "technician"

    def test_duplicate_username(self, client, admin_user):
        response = client.post(
            "/api/register", json={"username": "admin", "password": "secret1"}
        )
        assert response.status_code == 400
        assert response.get_json()["field"] == "username"


class TestLogin:
    def test_wrong_password_is_401(self, client, admin_user):
        response = client.post(
            "/api/login", json={"username": "admin", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.get_json() == {"message": "Invalid username or password"}

    def test_login_returns_user(self, client, admin_user):
        response = client.post(
            "/api/login", json={"username": "admin", "password": "admin-pass"}
        )
        assert response.status_code == 200
        assert response.get_json()["role"] == "admin"


class TestSession:
    def test_anonymous_user_endpoint_is_401(self, client):
        assert client.get("/api/user").status_code == 401

    def test_logout_ends_session(self, admin_client, admin_user):
        response = admin_client.post("/api/logout")
        assert response.status_code == 200
        assert admin_client.get("/api/user").status_code == 401
        assert AuditLog.query.filter_by(
            action_type="LOGOUT", user_id=admin_user.id
        ).count() == 1

    def test_deactivated_user_loses_session(self, admin_client, admin_user, db_session):
        admin_user.is_active = False
        db_session.commit()
        assert admin_client.get("/api/user").status_code == 401
