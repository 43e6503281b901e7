"""
Google OAuth authentication service.

Drives the authorization-code round trip and reconciles the Google identity
with a local account:

1. ``start()`` stores a handshake and returns the Google consent URL.
2. ``callback(code, state)`` consumes the handshake, exchanges the code for
   the user's Google profile and returns the matching Account.

The code exchange is the only network call in the core. It gets one
attempt with a bounded timeout; failures surface as ProviderError.
"""

import logging
from typing import Optional, Protocol, List, Tuple
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from ..auth import Account, AccountStore, CredentialKind, HandshakeStore
from ..config import GoogleOAuthConfig
from ..errors import (
    ConflictError,
    InvalidCredentialError,
    ProviderError,
)

logger = logging.getLogger(__name__)


@dataclass
class ProviderIdentity:
    """Identity asserted by the OAuth provider."""
    provider_uid: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    email_verified: bool = True


class OAuthProvider(Protocol):
    """What the federated service needs from an OAuth provider."""

    def authorization_url(self, state: str, redirect_uri: str, scopes: List[str]) -> str:
        ...

    def exchange_code(self, code: str, redirect_uri: str) -> ProviderIdentity:
        ...


class GoogleOAuthProvider:
    """Google OAuth 2.0 client over httpx."""

    def __init__(self, config: GoogleOAuthConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client or httpx.Client(timeout=config.timeout_seconds)

    def authorization_url(self, state: str, redirect_uri: str, scopes: List[str]) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
        }
        return f"{self.config.auth_url}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> ProviderIdentity:
        """
        Exchange an authorization code for the user's Google profile.

        Raises:
            ProviderError: Transport failure, timeout, non-2xx response or an
                unusable profile
        """
        try:
            token_response = self._client.post(
                self.config.token_url,
                data={
                    "code": code,
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise ProviderError("Google did not return an access token")

            userinfo_response = self._client.get(
                self.config.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()

        except httpx.TimeoutException as e:
            logger.error(f"Google OAuth exchange timed out: {e}")
            raise ProviderError("Identity provider timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Google OAuth exchange failed: HTTP {e.response.status_code}")
            raise ProviderError("Identity provider rejected the request") from e
        except httpx.HTTPError as e:
            logger.error(f"Google OAuth exchange error: {e}")
            raise ProviderError() from e
        except (ValueError, AttributeError) as e:
            logger.error(f"Google OAuth returned malformed JSON: {e}")
            raise ProviderError("Identity provider returned a malformed response") from e

        return self._parse_userinfo(userinfo)

    @staticmethod
    def _parse_userinfo(userinfo: dict) -> ProviderIdentity:
        if not isinstance(userinfo, dict):
            raise ProviderError("Identity provider returned a malformed profile")

        uid = userinfo.get("id") or userinfo.get("sub")
        email = userinfo.get("email")
        if not uid or not email:
            raise ProviderError("Identity provider profile lacks id or email")

        verified = userinfo.get("verified_email", userinfo.get("email_verified", True))
        return ProviderIdentity(
            provider_uid=str(uid),
            email=email,
            name=userinfo.get("name"),
            avatar=userinfo.get("picture"),
            email_verified=bool(verified),
        )

    def close(self):
        """Close the HTTP client."""
        self._client.close()


class FederatedAuthService:
    """
    Service for Google sign-in.

    Handles:
    - Starting the OAuth round trip (anti-forgery state)
    - Completing it and reconciling the Google identity with an account
    """

    def __init__(
        self,
        accounts: AccountStore,
        handshakes: HandshakeStore,
        provider: OAuthProvider,
        config: GoogleOAuthConfig
    ):
        self.accounts = accounts
        self.handshakes = handshakes
        self.provider = provider
        self.config = config

    def start(self, redirect_uri: Optional[str] = None) -> Tuple[str, str]:
        """
        Begin a Google login.

        Args:
            redirect_uri: Callback URL (default: configured callback)

        Returns:
            (authorization URL to redirect the browser to, state value).
            The caller binds the state to the browser, e.g. in a cookie.
        """
        handshake = self.handshakes.begin(
            redirect_uri=redirect_uri or self.config.callback_url,
            scopes=self.config.scopes
        )
        url = self.provider.authorization_url(
            handshake.state, handshake.redirect_uri, handshake.scopes
        )
        return url, handshake.state

    def callback(self, code: str, state: str) -> Account:
        """
        Complete a Google login.

        Args:
            code: Authorization code from Google
            state: State value echoed back by Google

        Returns:
            The reconciled Account with last_login updated

        Raises:
            StateMismatchError: State was never issued
            ExpiredError: State already used or timed out
            ProviderError: Code exchange failed
            ConflictError: Email is linked to a different Google account
            InvalidCredentialError: Account is deactivated
        """
        handshake = self.handshakes.consume(state)

        if not code:
            raise ProviderError("Missing authorization code")

        identity = self.provider.exchange_code(code, handshake.redirect_uri)
        account = self._reconcile(identity)

        if account.is_active:
            account = self.accounts.record_login(account.email)
        if account is None or not account.is_active:
            logger.info("Google login rejected for inactive account")
            raise InvalidCredentialError()

        logger.info(f"Google login: {account.email}")
        return account

    def _reconcile(self, identity: ProviderIdentity) -> Account:
        account = self.accounts.get_by_google_id(identity.provider_uid)
        if account is not None:
            if identity.avatar and identity.avatar != account.avatar:
                account = self.accounts.update_fields(account.email, avatar=identity.avatar)
            return account

        account = self.accounts.get_by_email(identity.email)
        if account is None:
            try:
                created = self.accounts.create_account(
                    email=identity.email,
                    name=identity.name,
                    google_id=identity.provider_uid,
                    avatar=identity.avatar
                )
            except ConflictError:
                # A concurrent callback for the same Google user created it first
                existing = self.accounts.get_by_google_id(identity.provider_uid)
                if existing is None:
                    raise
                return existing
            logger.info(f"Created Google account: {created.email}")
            return created

        kind = account.credential_kind
        if kind in (CredentialKind.LOCAL, CredentialKind.NONE):
            if not identity.email_verified:
                raise ProviderError("Google has not verified this email address")
            return self.accounts.link_google(account.email, identity.provider_uid, identity.avatar)
        if kind in (CredentialKind.FEDERATED, CredentialKind.BOTH):
            # Same email, but a different Google id is already linked
            raise ConflictError("Email is linked to a different Google account")

        raise AssertionError(f"Unhandled credential kind: {kind}")
