"""Tests for admin session endpoints: login, validation, logout, session info."""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from tests.conftest import (
    COOKIE_NAME,
    TEST_ADMIN_PASSWORD,
    TEST_ADMIN_USERNAME,
    cookie_header,
    start_session,
)

LOGIN = "/api/admin/login"
VALIDATE = "/api/admin/session/validate"
LOGOUT = "/api/admin/logout"
SESSION = "/api/admin/session"


def _login(client: TestClient, username=TEST_ADMIN_USERNAME, password=TEST_ADMIN_PASSWORD):
    return client.post(LOGIN, json={"username": username, "password": password})


class TestLogin:
    """Tests for POST /api/admin/login."""

    def test_login_sets_session_cookie(self, app, client):
        response = _login(client)
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE_NAME}=")
        assert "HttpOnly" in set_cookie
        assert "Path=/" in set_cookie
        assert "samesite=strict" in set_cookie.lower()
        assert "Max-Age=3600" in set_cookie
        assert "Secure" not in set_cookie

    def test_login_registers_session(self, app, client):
        response = _login(client)
        token = response.cookies[COOKIE_NAME]
        claims = app.state.token_service.verify(token)
        assert claims.sub == TEST_ADMIN_USERNAME
        assert app.state.session_registry.is_active(claims.jti) is True

    def test_login_token_validates(self, client):
        token = _login(client).cookies[COOKIE_NAME]
        client.cookies.clear()
        response = client.get(VALIDATE, headers=cookie_header(token))
        assert response.status_code == 200

    def test_each_login_gets_new_session(self, app, client):
        first = _login(client).cookies[COOKIE_NAME]
        second = _login(client).cookies[COOKIE_NAME]
        assert first != second
        assert len(app.state.session_registry) == 2

    def test_username_is_case_insensitive(self, client):
        response = _login(client, username=TEST_ADMIN_USERNAME.upper())
        assert response.status_code == 200

    def test_credentials_are_trimmed(self, client):
        response = _login(client, username=f"  {TEST_ADMIN_USERNAME} ", password=f" {TEST_ADMIN_PASSWORD}  ")
        assert response.status_code == 200

    def test_wrong_password_rejected(self, app, client):
        response = _login(client, password="wrong-password")
        assert response.status_code == 401
        assert response.json() == {"ok": False}
        assert "set-cookie" not in response.headers
        assert len(app.state.session_registry) == 0

    def test_unknown_username_rejected(self, client):
        response = _login(client, username="someoneelse")
        assert response.status_code == 401
        assert response.json() == {"ok": False}

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"username": TEST_ADMIN_USERNAME},
            {"username": "   ", "password": TEST_ADMIN_PASSWORD},
            {"username": TEST_ADMIN_USERNAME, "password": ""},
        ],
    )
    def test_missing_or_empty_fields_rejected(self, client, body):
        response = client.post(LOGIN, json=body)
        assert response.status_code == 422

    def test_failed_attempts_are_throttled(self, client):
        for _ in range(5):
            assert _login(client, password="wrong-password").status_code == 401

        # Even the correct password is refused while throttled
        response = _login(client)
        assert response.status_code == 429
        assert "Too many login attempts" in response.json()["detail"]

    def test_successful_logins_are_not_throttled(self, client):
        for _ in range(7):
            assert _login(client).status_code == 200

    def test_missing_secret_is_server_error(self, test_settings, clock):
        settings = test_settings.model_copy(update={"admin_session_secret": ""})
        client = TestClient(create_app(settings, clock=clock))
        response = _login(client)
        assert response.status_code == 500
        assert response.json()["detail"] == "Server configuration error"

    def test_missing_credentials_config_is_server_error(self, test_settings, clock):
        settings = test_settings.model_copy(
            update={"admin_username": "", "admin_password_hash": ""}
        )
        client = TestClient(create_app(settings, clock=clock))
        assert _login(client).status_code == 500

    def test_production_cookie_is_secure(self, test_settings, clock):
        settings = test_settings.model_copy(update={"environment": "production"})
        client = TestClient(create_app(settings, clock=clock))
        response = _login(client)
        assert response.status_code == 200
        assert "Secure" in response.headers["set-cookie"]


class TestValidateSession:
    """Tests for GET /api/admin/session/validate."""

    def test_valid_session(self, app, client):
        issued = start_session(app)
        response = client.get(VALIDATE, headers=cookie_header(issued.token))
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_no_cookie(self, client):
        response = client.get(VALIDATE)
        assert response.status_code == 401
        assert response.json() == {"ok": False}

    def test_failures_share_one_response_body(self, app, client, clock):
        """Callers cannot tell which check failed."""
        revoked = start_session(app)
        app.state.session_registry.deactivate(revoked.claims.jti)

        valid = start_session(app)
        head, payload, signature = valid.token.split(".")
        bad_signature = f"{head}.{payload}.{'A' * len(signature)}"

        unregistered = app.state.token_service.issue("admin")

        bodies = set()
        for token in ["a.b", bad_signature, revoked.token, unregistered.token]:
            response = client.get(VALIDATE, headers=cookie_header(token))
            assert response.status_code == 401
            bodies.add(response.text)

        clock.advance(3600)
        response = client.get(VALIDATE, headers=cookie_header(valid.token))
        assert response.status_code == 401
        bodies.add(response.text)

        assert bodies == {'{"ok":false}'}

    def test_missing_secret_fails_closed(self, test_settings, clock):
        signing_app = create_app(test_settings, clock=clock)
        issued = signing_app.state.token_service.issue("admin")

        settings = test_settings.model_copy(update={"admin_session_secret": ""})
        app = create_app(settings, clock=clock)
        app.state.session_registry.activate(
            issued.claims.jti, subject="admin", expires_at=issued.claims.exp
        )
        response = TestClient(app).get(VALIDATE, headers=cookie_header(issued.token))
        assert response.status_code == 401

    def test_unexpected_error_fails_closed(self, app, client, monkeypatch):
        issued = start_session(app)

        def explode(token):
            raise RuntimeError("boom")

        monkeypatch.setattr(app.state.token_service, "verify", explode)
        response = client.get(VALIDATE, headers=cookie_header(issued.token))
        assert response.status_code == 401
        assert response.json() == {"ok": False}

    def test_validation_does_not_create_sessions(self, app, client):
        issued = app.state.token_service.issue("admin")
        client.get(VALIDATE, headers=cookie_header(issued.token))
        assert len(app.state.session_registry) == 0


class TestLogout:
    """Tests for POST /api/admin/logout."""

    def test_logout_without_cookie_succeeds(self, client):
        response = client.post(LOGOUT)
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_logout_clears_cookie(self, client):
        response = client.post(LOGOUT)
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE_NAME}=")
        assert "Max-Age=0" in set_cookie
        assert "Path=/" in set_cookie
        assert "HttpOnly" in set_cookie
        assert "samesite=strict" in set_cookie.lower()

    def test_logout_revokes_session(self, app, client):
        issued = start_session(app)
        response = client.post(LOGOUT, headers=cookie_header(issued.token))
        assert response.status_code == 200
        assert app.state.session_registry.is_active(issued.claims.jti) is False

    def test_logout_revokes_expired_session(self, app, client, clock):
        issued = start_session(app)
        clock.advance(4000)
        response = client.post(LOGOUT, headers=cookie_header(issued.token))
        assert response.status_code == 200
        assert app.state.session_registry.get(issued.claims.jti) is None

    def test_logout_is_idempotent(self, app, client):
        issued = start_session(app)
        for _ in range(3):
            response = client.post(LOGOUT, headers=cookie_header(issued.token))
            assert response.status_code == 200
            assert response.json() == {"ok": True}

    @pytest.mark.parametrize("token", ["garbage", "a.b.c", "...", "%%%"])
    def test_logout_with_malformed_cookie_succeeds(self, client, token):
        response = client.post(LOGOUT, headers=cookie_header(token))
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_logout_only_revokes_own_session(self, app, client):
        mine = start_session(app)
        other = start_session(app)
        client.post(LOGOUT, headers=cookie_header(mine.token))
        assert app.state.session_registry.is_active(other.claims.jti) is True

    def test_registry_error_is_swallowed(self, app, client, monkeypatch):
        issued = start_session(app)

        def explode(session_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(app.state.session_registry, "deactivate", explode)
        response = client.post(LOGOUT, headers=cookie_header(issued.token))
        assert response.status_code == 200
        assert "Max-Age=0" in response.headers["set-cookie"]


class TestSessionInfo:
    """Tests for GET /api/admin/session."""

    def test_returns_current_session(self, app, client, clock):
        issued = start_session(app)
        response = client.get(SESSION, headers=cookie_header(issued.token))
        assert response.status_code == 200
        data = response.json()
        assert data["subject"] == TEST_ADMIN_USERNAME
        assert data["session_id"] == issued.claims.jti
        assert data["issued_at"] == issued.claims.iat
        assert data["expires_at"] == issued.claims.exp
        assert data["last_activity"] == clock.now

    def test_requires_session(self, client):
        response = client.get(SESSION)
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"


class TestSessionLifecycle:
    """End-to-end session lifecycle through the HTTP API."""

    def test_expiry_login_and_revocation(self, test_settings, clock):
        settings = test_settings.model_copy(update={"admin_session_ttl_seconds": 1})
        app = create_app(settings, clock=clock)
        client = TestClient(app)

        # A one-second token is rejected two seconds later
        short_lived = start_session(app)
        clock.advance(2)
        assert client.get(VALIDATE, headers=cookie_header(short_lived.token)).status_code == 401

        # A fresh login validates immediately
        token = _login(client).cookies[COOKIE_NAME]
        client.cookies.clear()
        assert client.get(VALIDATE, headers=cookie_header(token)).status_code == 200

        # After logout the same, still-valid token is refused
        assert client.post(LOGOUT, headers=cookie_header(token)).json() == {"ok": True}
        assert app.state.token_service.verify(token).sub == TEST_ADMIN_USERNAME
        assert client.get(VALIDATE, headers=cookie_header(token)).status_code == 401

    def test_restart_invalidates_sessions(self, test_settings, clock):
        """A new app instance starts with an empty registry."""
        first = create_app(test_settings, clock=clock)
        issued = start_session(first)
        assert TestClient(first).get(VALIDATE, headers=cookie_header(issued.token)).status_code == 200

        restarted = create_app(test_settings, clock=clock)
        response = TestClient(restarted).get(VALIDATE, headers=cookie_header(issued.token))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_lifecycle_with_async_client(self, async_client):
        response = await async_client.post(
            LOGIN, json={"username": TEST_ADMIN_USERNAME, "password": TEST_ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        token = response.cookies[COOKIE_NAME]
        async_client.cookies.clear()

        response = await async_client.get(VALIDATE, headers=cookie_header(token))
        assert response.status_code == 200

        await async_client.post(LOGOUT, headers=cookie_header(token))
        response = await async_client.get(VALIDATE, headers=cookie_header(token))
        assert response.status_code == 401
