"""
JWT token handler.

Issues and verifies the stateless bearer tokens handed out after a local or
Google login. Tokens carry only the account id; they are not individually
revocable, so rotating the signing secret is the way to invalidate them all.
"""

import time
import logging
import secrets
from typing import Optional
from dataclasses import dataclass, asdict

from jose import jwt, JWTError

from ..errors import InvalidProofError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_EXPIRE_SECONDS = 86400  # 24 hours
LEEWAY_SECONDS = 30


@dataclass
class TokenPayload:
    """JWT token payload."""
    sub: str  # Account id
    iat: int  # Issued at timestamp
    exp: int  # Expiration timestamp
    jti: str  # Unique token id

    @property
    def account_id(self) -> str:
        return self.sub

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TokenPayload":
        return cls(
            sub=str(data["sub"]),
            iat=int(data["iat"]),
            exp=int(data["exp"]),
            jti=str(data.get("jti", "")),
        )


class JWTHandler:
    """
    Handles bearer token issuance and verification.

    The signing secret is injected by the caller; nothing is read from the
    environment here.
    """

    def __init__(
        self,
        secret_key: str,
        expires_in: int = TOKEN_EXPIRE_SECONDS,
        leeway: int = LEEWAY_SECONDS
    ):
        """
        Initialize JWT handler.

        Args:
            secret_key: Symmetric secret used to sign tokens
            expires_in: Token lifetime in seconds (default: 24 hours)
            leeway: Clock-skew grace on expiry, in seconds
        """
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self._secret_key = secret_key
        self.expires_in = expires_in
        self.leeway = leeway

    def issue(self, account_id: str, expires_in: Optional[int] = None) -> str:
        """
        Create a bearer token for an account.

        Args:
            account_id: Account identifier embedded as the subject
            expires_in: Custom lifetime in seconds (default: handler TTL)

        Returns:
            Encoded JWT token string
        """
        now = int(time.time())
        lifetime = self.expires_in if expires_in is None else expires_in

        payload = TokenPayload(
            sub=account_id,
            iat=now,
            exp=now + lifetime,
            jti=secrets.token_hex(8)
        )

        token = jwt.encode(payload.to_dict(), self._secret_key, algorithm=ALGORITHM)
        logger.debug(f"Issued token for account {account_id}, expires in {lifetime}s")
        return token

    def decode(self, token: str) -> TokenPayload:
        """
        Verify a token and return its full payload.

        Args:
            token: JWT token string

        Returns:
            Decoded TokenPayload

        Raises:
            InvalidProofError: Bad signature, malformed payload or expired
        """
        if not token:
            raise InvalidProofError()

        try:
            data = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"leeway": self.leeway}
            )
            payload = TokenPayload.from_dict(data)
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            raise InvalidProofError() from e
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Malformed token payload: {e}")
            raise InvalidProofError() from e

        if not payload.sub:
            raise InvalidProofError()

        return payload

    def verify(self, token: str) -> str:
        """
        Verify a token and return the account id it was issued to.

        Raises:
            InvalidProofError: Bad signature, malformed payload or expired
        """
        return self.decode(token).account_id
