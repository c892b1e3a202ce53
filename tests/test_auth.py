"""
Tests for registration, login, token refresh and the session dependency.
"""
from datetime import timedelta

import pytest

from auth.jwt import InvalidToken, decode_token, generate_token, verify_token
from config import get_settings


def signed(payload, ttl=timedelta(minutes=5)):
    settings = get_settings()
    return generate_token(payload, settings.JWT_SECRET, ttl, settings.JWT_ALGORITHM)


def tampered(token):
    header, payload, signature = token.split(".")
    first = "A" if signature[0] != "A" else "B"
    return ".".join([header, payload, first + signature[1:]])


class TestRegister:
    def test_register_returns_token_pair(self, register):
        resp = register()
        assert resp.status_code == 201

        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["tokenType"] == "bearer"
        assert data["expiresIn"] == 3600
        assert data["user"]["username"] == "alice"
        assert "passwordHash" not in data["user"]

        claims = decode_token(data["accessToken"])
        assert claims["userId"] == data["user"]["id"]
        assert claims["username"] == "alice"
        assert claims["type"] == "access"

    def test_duplicate_username_is_rejected(self, register):
        assert register().status_code == 201
        resp = register(email="other@example.com")
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Username or email already exists"}

    def test_duplicate_email_is_rejected(self, register):
        assert register().status_code == 201
        resp = register(username="someone")
        assert resp.status_code == 400

    def test_short_username_reports_field_details(self, register):
        resp = register(username="ab")
        assert resp.status_code == 400

        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Invalid request data"
        assert body["details"][0]["field"] == "username"
        assert "at least 3 characters" in body["details"][0]["message"]

    def test_invalid_email_is_rejected(self, register):
        resp = register(email="not-an-email")
        assert resp.status_code == 400
        assert resp.json()["details"][0]["field"] == "email"


class TestLogin:
    def test_login_with_valid_credentials(self, client, auth):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "password123"})
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["id"] == auth["user"]["id"]

    def test_wrong_password(self, client, auth):
        resp = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid credentials"}

    def test_unknown_user_gets_same_error(self, client):
        resp = client.post("/api/auth/login", json={"username": "nobody", "password": "password123"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid credentials"


class TestRefresh:
    def test_refresh_issues_new_pair_for_same_identity(self, client, auth):
        resp = client.post("/api/auth/refresh", json={"refreshToken": auth["refreshToken"]})
        assert resp.status_code == 200

        claims = decode_token(resp.json()["data"]["accessToken"])
        assert claims["userId"] == auth["user"]["id"]
        assert claims["username"] == "alice"

    def test_missing_refresh_token(self, client):
        resp = client.post("/api/auth/refresh", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Refresh token is required"

    def test_access_token_is_not_a_refresh_token(self, client, auth):
        resp = client.post("/api/auth/refresh", json={"refreshToken": auth["accessToken"]})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid refresh token"

    def test_garbage_refresh_token(self, client):
        resp = client.post("/api/auth/refresh", json={"refreshToken": "not.a.token"})
        assert resp.status_code == 401


class TestSession:
    def test_me_returns_current_user(self, client, auth, auth_headers):
        resp = client.get("/api/auth/me", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "alice@example.com"

    def test_me_requires_bearer_token(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Not authenticated"}

    def test_refresh_token_cannot_authenticate_requests(self, client, auth):
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {auth['refreshToken']}"})
        assert resp.status_code == 401

    def test_logout(self, client):
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["success"] is True


class TestTokenVerification:
    def test_expired_token_is_rejected(self):
        token = signed({"userId": "u1", "username": "alice", "type": "access"}, ttl=timedelta(seconds=-30))
        with pytest.raises(InvalidToken):
            verify_token(token, get_settings().JWT_SECRET)

    def test_tampered_signature_is_rejected(self):
        token = signed({"userId": "u1", "username": "alice", "type": "access"})
        with pytest.raises(InvalidToken):
            verify_token(tampered(token), get_settings().JWT_SECRET)

    def test_wrong_secret_is_rejected(self):
        token = signed({"userId": "u1", "username": "alice"})
        with pytest.raises(InvalidToken):
            verify_token(token, "another-secret-that-is-also-32-characters-long")

    def test_decode_token_skips_verification(self):
        token = signed({"userId": "u1", "username": "alice"}, ttl=timedelta(seconds=-30))
        assert decode_token(token)["userId"] == "u1"
        assert decode_token("garbage") is None

    def test_expired_refresh_token(self, client, auth):
        token = signed(
            {"userId": auth["user"]["id"], "username": "alice", "type": "refresh"}, ttl=timedelta(seconds=-30)
        )
        resp = client.post("/api/auth/refresh", json={"refreshToken": token})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid refresh token"

    def test_tampered_refresh_token(self, client, auth):
        resp = client.post("/api/auth/refresh", json={"refreshToken": tampered(auth["refreshToken"])})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid refresh token"

    def test_expired_access_token(self, client, auth):
        token = signed(
            {"userId": auth["user"]["id"], "username": "alice", "type": "access"}, ttl=timedelta(seconds=-30)
        )
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Not authenticated"

    def test_tampered_access_token(self, client, auth):
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tampered(auth['accessToken'])}"})
        assert resp.status_code == 401
