"""
Integration tests for Auth API endpoints.

Tests registration, login, logout, Google sign-in and the current account.
"""

import inspect
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from identity_core.errors import ExpiredError, ProviderError, StateMismatchError


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestAuthRegistration:
    """Tests for account registration endpoint."""

    @pytest.mark.api
    def test_register_success(self, api_client):
        """Test successful registration returns a token and sets the cookie."""
        response = api_client.post(
            "/api/v1/auth/register",
            json={"email": "A@X.com", "password": "secret1", "firstName": "Ana", "lastName": "Lima"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["tokens"]["access_token"]
        assert data["tokens"]["token_type"] == "bearer"
        assert data["account"]["email"] == "a@x.com"
        assert data["account"]["name"] == "Ana Lima"
        assert data["account"]["role"] == "user"
        assert data["account"]["auth_methods"] == "local"
        assert "password_hash" not in data["account"]
        assert "sid" in response.cookies

    @pytest.mark.api
    def test_register_duplicate_email(self, registered_client, test_config):
        """Test registration with an existing email fails."""
        response = registered_client.post(
            "/api/v1/auth/register",
            json={"email": test_config["test_email"].upper(), "password": "another1"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "already exists" in response.json()["detail"]

    @pytest.mark.api
    def test_register_weak_password(self, api_client):
        response = api_client.post(
            "/api/v1/auth/register",
            json={"email": "a@x.com", "password": "123"}
        )

        assert response.status_code == 400
        assert "at least 6" in response.json()["detail"]

    @pytest.mark.api
    def test_register_invalid_email(self, api_client):
        response = api_client.post(
            "/api/v1/auth/register",
            json={"email": "nope", "password": "secret1"}
        )

        assert response.status_code == 400

    @pytest.mark.api
    def test_register_missing_fields(self, api_client):
        response = api_client.post("/api/v1/auth/register", json={"email": "a@x.com"})

        assert response.status_code == 422


class TestAuthLogin:
    """Tests for password login endpoint."""

    @pytest.mark.api
    def test_login_success(self, registered_client, test_config):
        response = registered_client.post(
            "/api/v1/auth/login",
            json={"email": test_config["test_email"], "password": test_config["test_password"]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["account"]["last_login"] is not None
        assert "sid" in response.cookies

    @pytest.mark.api
    def test_login_failures_look_alike(self, registered_client, test_config):
        """Test wrong password and unknown email give the same response."""
        wrong = registered_client.post(
            "/api/v1/auth/login",
            json={"email": test_config["test_email"], "password": "wrong-password"}
        )
        unknown = registered_client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@x.com", "password": "wrong-password"}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.headers["WWW-Authenticate"] == "Bearer"


class TestCurrentAccount:
    """Tests for /me with both proof kinds."""

    @pytest.mark.api
    def test_me_with_session_cookie(self, registered_client, test_config):
        response = registered_client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["email"] == test_config["test_email"]

    @pytest.mark.api
    def test_me_with_bearer_token(self, api_client):
        register = api_client.post(
            "/api/v1/auth/register",
            json={"email": "a@x.com", "password": "secret1"}
        )
        token = register.json()["tokens"]["access_token"]
        api_client.cookies.clear()

        response = api_client.get("/api/v1/auth/me", headers=_bearer(token))

        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"

    @pytest.mark.api
    def test_token_wins_over_cookie(self, registered_client, identity_context):
        """Test a valid bearer token decides identity over the cookie."""
        other = identity_context.local.register("b@x.com", "secret1")
        token = identity_context.jwt.issue(other.account_id)

        response = registered_client.get("/api/v1/auth/me", headers=_bearer(token))

        assert response.json()["email"] == "b@x.com"

    @pytest.mark.api
    def test_me_anonymous(self, api_client):
        response = api_client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    @pytest.mark.api
    def test_me_invalid_token(self, api_client):
        response = api_client.get("/api/v1/auth/me", headers=_bearer("invalid.token.here"))

        assert response.status_code == 401


class TestLogoutAndPassword:

    @pytest.mark.api
    def test_logout_destroys_session(self, registered_client, identity_context):
        sid = registered_client.cookies.get("sid")

        response = registered_client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert identity_context.sessions.get(sid) is None
        assert registered_client.get("/api/v1/auth/me").status_code == 401

    @pytest.mark.api
    def test_logout_anonymous_is_ok(self, api_client):
        assert api_client.post("/api/v1/auth/logout").status_code == 200

    @pytest.mark.api
    def test_change_password(self, registered_client, test_config):
        response = registered_client.post(
            "/api/v1/auth/password",
            json={"current_password": test_config["test_password"], "new_password": "brand-new"}
        )
        assert response.status_code == 200

        login = registered_client.post(
            "/api/v1/auth/login",
            json={"email": test_config["test_email"], "password": "brand-new"}
        )
        assert login.status_code == 200

    @pytest.mark.api
    def test_change_password_wrong_current(self, registered_client):
        response = registered_client.post(
            "/api/v1/auth/password",
            json={"current_password": "nope", "new_password": "brand-new"}
        )

        assert response.status_code == 401


class TestGoogleLogin:
    """Tests for the Google OAuth round trip."""

    @staticmethod
    def _start(client) -> str:
        response = client.get("/api/v1/auth/google", follow_redirects=False)
        assert response.status_code == 307
        return parse_qs(urlparse(response.headers["location"]).query)["state"][0]

    @pytest.mark.api
    def test_google_round_trip(self, api_client):
        state = self._start(api_client)

        response = api_client.get(
            "/api/v1/auth/google/callback", params={"code": "code-1", "state": state}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["account"]["email"] == "traveler@gmail.com"
        assert data["account"]["auth_methods"] == "federated"
        assert "sid" in response.cookies
        assert api_client.get("/api/v1/auth/me").json()["email"] == "traveler@gmail.com"

    @pytest.mark.api
    def test_google_forged_state(self, api_client):
        response = api_client.get(
            "/api/v1/auth/google/callback", params={"code": "code-1", "state": "forged"}
        )

        assert response.status_code == 400

    @pytest.mark.api
    def test_google_replayed_state(self, api_client):
        state = self._start(api_client)
        params = {"code": "code-1", "state": state}
        assert api_client.get("/api/v1/auth/google/callback", params=params).status_code == 200

        # Cookie is cleared on success; replaying it alongside the used state
        response = api_client.get(
            "/api/v1/auth/google/callback",
            params=params,
            headers={"Cookie": f"oauth_state={state}"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == ExpiredError.message

    @pytest.mark.api
    def test_google_provider_failure(self, api_client, fake_provider):
        fake_provider.error = ProviderError("Identity provider timed out")
        state = self._start(api_client)

        response = api_client.get(
            "/api/v1/auth/google/callback", params={"code": "code-1", "state": state}
        )

        assert response.status_code == 502
        assert response.json()["detail"] == "Identity provider timed out"

    @pytest.mark.api
    def test_state_cookie_is_set_and_cleared(self, api_client):
        response = api_client.get("/api/v1/auth/google", follow_redirects=False)
        state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"oauth_state={state}")
        assert "HttpOnly" in set_cookie

        api_client.get("/api/v1/auth/google/callback", params={"code": "code-1", "state": state})

        assert "oauth_state" not in api_client.cookies

    @pytest.mark.api
    def test_callback_in_another_browser_is_rejected(self, api_app, fake_provider):
        """Test a state started by one browser cannot complete in another."""
        attacker = TestClient(api_app)
        victim = TestClient(api_app)
        state = self._start(attacker)

        response = victim.get(
            "/api/v1/auth/google/callback", params={"code": "attacker-code", "state": state}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == StateMismatchError.message
        assert "sid" not in victim.cookies
        assert fake_provider.exchanged == []

    @pytest.mark.api
    def test_callback_with_mismatched_state_cookie(self, api_client, api_app, fake_provider):
        self._start(api_client)
        other_state = self._start(TestClient(api_app))

        response = api_client.get(
            "/api/v1/auth/google/callback", params={"code": "code-1", "state": other_state}
        )

        assert response.status_code == 400
        assert fake_provider.exchanged == []


class TestBlockingHandlers:
    """Handlers doing bcrypt or provider I/O run in the threadpool."""

    @pytest.mark.api
    @pytest.mark.parametrize("name", ["register", "login", "change_password", "google_login", "google_callback"])
    def test_handler_is_sync(self, name):
        from api.v1 import auth

        assert inspect.iscoroutinefunction(getattr(auth, name)) is False
