"""Tests for registration, login and the user endpoints."""

from conftest import headers_for, make_user


class TestRegister:
    def test_register(self, client):
        response = client.post("/api/auth/register", json={
            "email": "new@example.com",
            "username": "newbie",
            "password": "secret123"
        })
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["username"] == "newbie"
        assert body["data"]["role"] == "user"
        assert "hashed_password" not in body["data"]

    def test_cannot_register_as_admin(self, client, db):
        response = client.post("/api/auth/register", json={
            "email": "evil@example.com",
            "username": "evil",
            "password": "secret123",
            "role": "admin"
        })
        assert response.status_code == 201
        assert response.json()["data"]["role"] == "user"

        login = client.post("/api/auth/login", data={"username": "evil", "password": "secret123"})
        token = login.json()["access_token"]
        users = client.get("/api/auth/users", headers={"Authorization": f"Bearer {token}"})
        assert users.status_code == 403

    def test_duplicate_username(self, client, user):
        response = client.post("/api/auth/register", json={
            "email": "other@example.com",
            "username": user.username,
            "password": "secret123"
        })
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Username or email already registered"}

    def test_invalid_email(self, client, db):
        response = client.post("/api/auth/register", json={
            "email": "not-an-email",
            "username": "someone",
            "password": "secret123"
        })
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["errors"][0]["field"] == "body.email"


class TestLogin:
    def test_form_login(self, client, user):
        response = client.post("/api/auth/login", data={"username": user.username, "password": "secret123"})
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == user.username

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.json()["username"] == user.username

    def test_json_login_with_email(self, client, user):
        response = client.post("/api/auth/login/json", json={"username": user.email, "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["user"]["last_login"] is not None

    def test_wrong_password(self, client, user):
        response = client.post("/api/auth/login/json", json={"username": user.username, "password": "nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Incorrect username/email or password"

    def test_inactive_user(self, client, db):
        inactive = make_user(db, "sleepy")
        inactive.is_active = False
        db.commit()
        response = client.post("/api/auth/login/json", json={"username": "sleepy", "password": "secret123"})
        assert response.status_code == 400


class TestCurrentUser:
    def test_requires_token(self, client, db):
        assert client.get("/api/auth/me").status_code == 401

    def test_invalid_token(self, client, db):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Could not validate credentials"

    def test_users_is_admin_only(self, client, user, admin, auth_headers, admin_headers):
        assert client.get("/api/auth/users", headers=auth_headers).status_code == 403

        response = client.get("/api/auth/users", headers=admin_headers)
        assert response.status_code == 200
        assert {u["username"] for u in response.json()} == {user.username, admin.username}
