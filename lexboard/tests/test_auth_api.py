"""
Authentication API Tests
========================

Register/login/me/logout, the access guard's 401 cases, and the user
profile/password endpoints.
"""

from datetime import datetime, timedelta, timezone

from conftest import register

from lexboard.db.models import User, UserRole


class TestRegisterAndLogin:
    def test_register_login_me(self, client):
        """Register, log in with the same credentials, then read /auth/me"""
        response = client.post("/auth/register", json={
            "name": "Jane", "email": "jane@x.com", "password": "secret1", "role": "advocate",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["expiresAt"]
        assert body["user"]["email"] == "jane@x.com"
        assert "password" not in body["user"]
        assert "passwordHash" not in body["user"]

        response = client.post("/auth/login", json={"email": "jane@x.com", "password": "secret1"})
        assert response.status_code == 200
        token = response.json()["token"]

        claims = client.app.state.resources.token_service.verify(token)
        assert claims.subject_id == body["user"]["id"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json() == {
            "id": body["user"]["id"], "name": "Jane", "email": "jane@x.com", "role": "advocate",
        }

    def test_default_role_is_paralegal(self, client):
        response = client.post("/auth/register", json={"name": "Pat", "email": "pat@x.com", "password": "secret1"})
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "paralegal"

    def test_email_is_case_insensitive(self, client):
        register(client, "Jane", "Jane@X.com")
        response = client.post("/auth/register", json={
            "name": "Jane 2", "email": "jane@x.com", "password": "secret1", "role": "advocate",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "email_taken"

        login = client.post("/auth/login", json={"email": "JANE@x.com", "password": "secret1"})
        assert login.status_code == 200

    def test_register_validation_errors(self, client):
        bad_email = client.post("/auth/register", json={"name": "X", "email": "nope", "password": "secret1"})
        assert bad_email.status_code == 400
        assert bad_email.json()["error"]["code"] == "validation_error"

        short_password = client.post("/auth/register", json={"name": "X", "email": "x@x.com", "password": "123"})
        assert short_password.status_code == 400

        bad_role = client.post("/auth/register", json={
            "name": "X", "email": "x@x.com", "password": "secret1", "role": "judge",
        })
        assert bad_role.status_code == 400

    def test_wrong_password_never_locks_account(self, client, advocate_a):
        """Five failed logins are all 401 and the right password still works"""
        for _ in range(5):
            response = client.post("/auth/login", json={"email": "jane@x.com", "password": "wrong-password"})
            assert response.status_code == 401
            assert response.json()["error"]["message"] == "Invalid credentials"

        response = client.post("/auth/login", json={"email": "jane@x.com", "password": "secret1"})
        assert response.status_code == 200

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "ghost@x.com", "password": "secret1"})
        assert response.status_code == 401

    def test_logout_is_stateless(self, client, advocate_a):
        response = client.post("/auth/logout", headers=advocate_a["headers"])
        assert response.status_code == 200
        # No revocation list: the token keeps working until it expires
        assert client.get("/auth/me", headers=advocate_a["headers"]).status_code == 200


class TestAccessGuard:
    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == {
            "code": "unauthenticated", "message": "Not authorized, no token", "details": None,
        }

    def test_non_bearer_scheme(self, client, advocate_a):
        response = client.get("/auth/me", headers={"Authorization": f"Basic {advocate_a['token']}"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Not authorized, no token"

    def test_garbage_token(self, client):
        response = client.get("/cases", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Not authorized, token failed"

    def test_expired_token_is_distinguishable(self, client, advocate_a):
        service = client.app.state.resources.token_service
        stale = service.issue(advocate_a["user"]["id"], UserRole.ADVOCATE,
                              now=datetime.now(timezone.utc) - timedelta(days=30))
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {stale.token}"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "token_expired"

    def test_deleted_user(self, client, advocate_a):
        with client.app.state.resources.database.session() as db:
            db.delete(db.get(User, advocate_a["user"]["id"]))

        response = client.get("/auth/me", headers=advocate_a["headers"])
        assert response.status_code == 401


class TestUserProfile:
    def test_get_and_update_profile(self, client, advocate_a):
        response = client.get("/users/profile", headers=advocate_a["headers"])
        assert response.status_code == 200
        assert response.json()["name"] == "Jane"

        response = client.put("/users/profile", json={"name": "Jane Doe", "email": "JaneDoe@x.com"},
                              headers=advocate_a["headers"])
        assert response.status_code == 200
        assert response.json()["name"] == "Jane Doe"
        assert response.json()["email"] == "janedoe@x.com"

    def test_update_profile_email_taken(self, client, advocate_a, advocate_b):
        response = client.put("/users/profile", json={"name": "Jane", "email": "bob@x.com"},
                              headers=advocate_a["headers"])
        assert response.status_code == 409

    def test_change_password(self, client, advocate_a):
        wrong = client.put("/users/password", json={"currentPassword": "nope123", "newPassword": "newsecret"},
                           headers=advocate_a["headers"])
        assert wrong.status_code == 401

        ok = client.put("/users/password", json={"currentPassword": "secret1", "newPassword": "newsecret"},
                        headers=advocate_a["headers"])
        assert ok.status_code == 200

        assert client.post("/auth/login", json={"email": "jane@x.com", "password": "secret1"}).status_code == 401
        assert client.post("/auth/login", json={"email": "jane@x.com", "password": "newsecret"}).status_code == 200


class TestHealthAndErrors:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"
