"""
Auth API tests
"""

from datetime import timedelta

from conftest import PASSWORD
from database import utcnow
from services import sessions as session_service


class TestRegisterAndLogin:

    def test_register(self, client):
        response = client.post("/api/auth/register", json={
            "email": "jane@example.com",
            "password": "strongpass",
            "first_name": "Jane",
            "last_name": "Doe",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "jane@example.com"
        assert body["role"] == "USER"
        assert body["total_score"] == 0
        assert "hashed_password" not in body

    def test_register_duplicate(self, client, make_user):
        make_user(email="jane@example.com")
        response = client.post("/api/auth/register", json={
            "email": "jane@example.com",
            "password": "strongpass",
            "first_name": "Jane",
            "last_name": "Doe",
        })
        assert response.status_code == 409

    def test_register_invalid_body_is_400(self, client):
        response = client.post("/api/auth/register", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert isinstance(response.json()["detail"], list)

    def test_login(self, client, make_user):
        user = make_user()
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

        assert response.status_code == 201
        body = response.json()
        assert len(body["session_id"]) == 64
        assert body["user"]["id"] == user.id

    def test_login_wrong_password(self, client, make_user):
        user = make_user()
        response = client.post("/api/auth/login", json={"email": user.email, "password": "nope"})
        assert response.status_code == 401

    def test_login_deactivated(self, client, make_user):
        user = make_user(is_active=False)
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 401


class TestSessions:

    def test_me(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get("/api/auth/me", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["email"] == user.email

    def test_missing_header(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_unknown_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer deadbeef"})
        assert response.status_code == 401

    def test_expired_session(self, client, db, make_user):
        user = make_user()
        session = session_service.create_session(db, user)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {session.id}"})
        assert response.status_code == 401

    def test_deactivated_account_rejected(self, client, db, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)
        user.is_active = False
        db.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_logout(self, client, make_user, auth_headers):
        headers = auth_headers(make_user())

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_clean_expired_sessions(self, db, make_user):
        user = make_user()
        session_service.create_session(db, user)
        stale = session_service.create_session(db, user)
        stale.expires_at = utcnow() - timedelta(days=1)
        db.commit()

        assert session_service.clean_expired_sessions(db) == 1


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "OK"
        assert "timestamp" in response.json()
