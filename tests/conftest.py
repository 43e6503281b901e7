"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- Password hashing and bearer tokens
- Account, session and handshake stores
- Local and Google authentication services
- API client
"""

import os
import sys
import json
import tempfile
from pathlib import Path
from typing import Generator, Optional, List
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before imports
os.environ["JWT_SECRET_KEY"] = "test_jwt_secret_key_for_testing_only_32bytes!"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["ENVIRONMENT"] = "test"

from identity_core.auth import (
    AccountStore,
    HandshakeStore,
    JWTHandler,
    PasswordHandler,
    SessionManager,
)
from identity_core.config import GoogleOAuthConfig, load_config
from identity_core.errors import ProviderError
from identity_core.services import (
    AccessGuard,
    FederatedAuthService,
    IdentityContext,
    LocalAuthService,
    ProviderIdentity,
)


# =============================================================================
# Helpers
# =============================================================================

class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeOAuthProvider:
    """OAuth provider double: records exchanges, returns a canned identity."""

    AUTH_URL = "https://accounts.example.com/auth"

    def __init__(self, identity: Optional[ProviderIdentity] = None):
        self.identity = identity or ProviderIdentity(
            provider_uid="google-uid-1",
            email="traveler@gmail.com",
            name="Google Traveler",
            avatar="https://example.com/avatar.png"
        )
        self.error: Optional[Exception] = None
        self.exchanged: List[str] = []

    def authorization_url(self, state: str, redirect_uri: str, scopes: List[str]) -> str:
        params = {"state": state, "redirect_uri": redirect_uri, "scope": " ".join(scopes)}
        return f"{self.AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> ProviderIdentity:
        self.exchanged.append(code)
        if self.error:
            raise self.error
        return self.identity


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def test_config():
    """Test configuration values."""
    return {
        "jwt_secret": "test_jwt_secret_key_for_testing_only_32bytes!",
        "test_email": "a@x.com",
        "test_password": "secret1",
        "test_user_name": "Test User",
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Primitives
# =============================================================================

@pytest.fixture
def password_handler() -> PasswordHandler:
    """Create a PasswordHandler with a cheap work factor."""
    return PasswordHandler(rounds=4)


@pytest.fixture
def jwt_handler(test_config) -> JWTHandler:
    """Create a JWTHandler with test secret."""
    return JWTHandler(secret_key=test_config["jwt_secret"])


@pytest.fixture
def valid_token(jwt_handler) -> str:
    """Create a valid bearer token."""
    return jwt_handler.issue("test-account-id-123")


@pytest.fixture
def expired_token(jwt_handler) -> str:
    """Create a token that expired beyond the leeway."""
    return jwt_handler.issue("test-account-id-123", expires_in=-120)


@pytest.fixture
def session_manager(clock) -> SessionManager:
    return SessionManager(ttl_seconds=86400, clock=clock)


@pytest.fixture
def handshake_store(clock) -> HandshakeStore:
    return HandshakeStore(ttl_seconds=600, clock=clock)


# =============================================================================
# Account Store Fixtures
# =============================================================================

@pytest.fixture
def temp_accounts_file() -> Generator[Path, None, None]:
    """Create a temporary file for account storage."""
    with tempfile.NamedTemporaryFile(
        mode='w', suffix='.json', delete=False
    ) as f:
        json.dump({}, f)
        temp_path = Path(f.name)

    yield temp_path

    # Cleanup
    if temp_path.exists():
        temp_path.unlink()


@pytest.fixture
def account_store(temp_accounts_file, password_handler) -> AccountStore:
    """Create an AccountStore with temporary file."""
    return AccountStore(file_path=temp_accounts_file, password_handler=password_handler)


@pytest.fixture
def sample_account(account_store, test_config):
    """Create a sample local account in the store."""
    return account_store.create_account(
        email=test_config["test_email"],
        password=test_config["test_password"],
        name=test_config["test_user_name"]
    )


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def local_auth(account_store, password_handler) -> LocalAuthService:
    return LocalAuthService(account_store, password_handler)


@pytest.fixture
def fake_provider() -> FakeOAuthProvider:
    return FakeOAuthProvider()


@pytest.fixture
def google_config() -> GoogleOAuthConfig:
    return GoogleOAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url="http://testserver/api/v1/auth/google/callback",
        scopes=["openid", "email", "profile"]
    )


@pytest.fixture
def federated_auth(account_store, handshake_store, fake_provider, google_config) -> FederatedAuthService:
    return FederatedAuthService(account_store, handshake_store, fake_provider, google_config)


@pytest.fixture
def access_guard(account_store, jwt_handler, session_manager) -> AccessGuard:
    return AccessGuard(account_store, jwt_handler, session_manager)


@pytest.fixture
def identity_context(temp_data_dir, fake_provider) -> Generator[IdentityContext, None, None]:
    """Fully wired identity core backed by a temporary accounts file."""
    config = load_config()
    config.accounts_file = temp_data_dir / "accounts.json"
    context = IdentityContext.create(config=config, provider=fake_provider)
    yield context
    context.close()


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_app(identity_context):
    """Create FastAPI app wired to the test identity context."""
    from api.main import app
    from api.deps import context_dep

    app.dependency_overrides[context_dep] = lambda: identity_context
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(api_app) -> TestClient:
    """Create synchronous test client for API."""
    return TestClient(api_app)


@pytest.fixture
def registered_client(api_client, test_config) -> TestClient:
    """API client that registered the test account (session cookie set)."""
    response = api_client.post(
        "/api/v1/auth/register",
        json={
            "email": test_config["test_email"],
            "password": test_config["test_password"],
            "name": test_config["test_user_name"]
        }
    )
    assert response.status_code == 200
    return api_client


# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("Identity provider timed out")


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "api: mark test as API endpoint test"
    )
