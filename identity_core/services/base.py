"""
Shared identity context.

The IdentityContext holds the stores and services that make up the core and
wires them together with explicit handles. The API layer builds one at
startup and shares it for the life of the process.
"""

import logging
import secrets
from typing import Optional
from dataclasses import dataclass

from ..auth import (
    Account,
    AccountStore,
    HandshakeStore,
    JWTHandler,
    PasswordHandler,
    Session,
    SessionManager,
)
from ..config import Config, load_config
from ..errors import EntropyError
from .access_guard import AccessGuard
from .federated_auth_service import FederatedAuthService, GoogleOAuthProvider, OAuthProvider
from .local_auth_service import LocalAuthService

logger = logging.getLogger(__name__)


@dataclass
class LoginGrant:
    """Proofs handed out after a successful login."""
    account: Account
    access_token: str
    session: Session
    token_type: str = "bearer"
    expires_in: int = 86400

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


def _check_entropy() -> None:
    """Abort startup when the OS cannot supply secure randomness."""
    try:
        secrets.token_bytes(32)
    except (OSError, NotImplementedError) as e:
        raise EntropyError(f"Secure random source unavailable: {e}") from e


@dataclass
class IdentityContext:
    """
    Dependency container for the identity core.

    All components receive their stores through their constructors; nothing
    reaches for module-level globals.
    """
    config: Config
    passwords: PasswordHandler
    accounts: AccountStore
    jwt: JWTHandler
    sessions: SessionManager
    handshakes: HandshakeStore
    local: LocalAuthService
    federated: FederatedAuthService
    guard: AccessGuard
    provider: Optional[OAuthProvider] = None

    @classmethod
    def create(
        cls,
        config: Optional[Config] = None,
        provider: Optional[OAuthProvider] = None
    ) -> "IdentityContext":
        """
        Factory method to build the core with all dependencies.

        Args:
            config: Optional config (loads from env if not provided)
            provider: Optional OAuth provider (Google over httpx by default)

        Raises:
            EntropyError: No secure randomness; the process must not start
        """
        cfg = config or load_config()
        _check_entropy()

        secret_key = cfg.token.secret_key
        if not secret_key:
            secret_key = secrets.token_urlsafe(48)
            logger.warning(
                "JWT_SECRET_KEY not set, using a random per-process secret. "
                "Tokens will not survive a restart."
            )

        if not cfg.google.is_configured:
            logger.warning("Google OAuth client not configured; Google login will fail")

        passwords = PasswordHandler(rounds=cfg.password.bcrypt_rounds)
        accounts = AccountStore(cfg.accounts_file, password_handler=passwords)
        jwt = JWTHandler(
            secret_key,
            expires_in=cfg.token.ttl_seconds,
            leeway=cfg.token.leeway_seconds
        )
        sessions = SessionManager(ttl_seconds=cfg.session.ttl_seconds)
        handshakes = HandshakeStore(ttl_seconds=cfg.google.state_ttl_seconds)
        oauth_provider = provider or GoogleOAuthProvider(cfg.google)

        return cls(
            config=cfg,
            passwords=passwords,
            accounts=accounts,
            jwt=jwt,
            sessions=sessions,
            handshakes=handshakes,
            local=LocalAuthService(accounts, passwords, cfg.password.min_length),
            federated=FederatedAuthService(accounts, handshakes, oauth_provider, cfg.google),
            guard=AccessGuard(accounts, jwt, sessions),
            provider=oauth_provider
        )

    def establish(self, account: Account) -> LoginGrant:
        """
        Issue a bearer token and open a session for an authenticated account.

        Applied the same way after local and Google logins.
        """
        token = self.jwt.issue(account.account_id)
        session = self.sessions.create(account.account_id)
        return LoginGrant(
            account=account,
            access_token=token,
            session=session,
            expires_in=self.jwt.expires_in
        )

    def logout(self, session_id: Optional[str]) -> None:
        """Destroy the caller's session. Outstanding tokens stay valid until expiry."""
        self.sessions.destroy(session_id)

    def deactivate(self, account: Account) -> bool:
        """Deactivate an account and drop its sessions."""
        if not self.accounts.deactivate(account.email):
            return False
        self.sessions.destroy_for_account(account.account_id)
        return True

    def close(self):
        """Clean up resources."""
        close = getattr(self.provider, "close", None)
        if close:
            close()
