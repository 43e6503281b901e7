"""
Password handling utilities.

Uses bcrypt for salted, adaptive password hashing.
"""

import logging
import re
from typing import Optional

import bcrypt

from ..errors import EntropyError

logger = logging.getLogger(__name__)

# bcrypt work factor (higher = more secure but slower)
BCRYPT_ROUNDS = 12

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


class PasswordHandler:
    """
    Handles password hashing and verification using bcrypt.

    Usage:
        handler = PasswordHandler()
        hashed = handler.hash("my_password")
        is_valid = handler.verify("my_password", hashed)
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        """
        Initialize password handler.

        Args:
            rounds: bcrypt work factor (default: 12)
        """
        self.rounds = rounds
        self._dummy_hash: Optional[bytes] = None

    def _gensalt(self) -> bytes:
        try:
            return bcrypt.gensalt(rounds=self.rounds)
        except (OSError, NotImplementedError) as e:
            raise EntropyError(f"Unable to generate password salt: {e}") from e

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string (includes salt and cost)

        Raises:
            ValueError: If the password is empty
            EntropyError: If no secure randomness is available for the salt
        """
        if not password:
            raise ValueError("Password cannot be empty")

        hashed = bcrypt.hashpw(password.encode("utf-8"), self._gensalt())
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed: Optional[str]) -> bool:
        """
        Verify a password against a hash.

        bcrypt.checkpw compares in constant time. A mismatch or a malformed
        hash is reported as False, never raised.

        Args:
            password: Plain text password to verify
            hashed: Previously hashed password

        Returns:
            True if password matches, False otherwise
        """
        if not password or not hashed:
            return False

        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                hashed.encode("utf-8")
            )
        except ValueError as e:
            logger.warning(f"Password verification error: {e}")
            return False

    def dummy_verify(self, password: str) -> bool:
        """
        Burn the same work as a real verification and return False.

        Used when there is no stored hash to compare against, so that a
        missing account takes as long to reject as a wrong password.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"not-a-real-password", self._gensalt())
        try:
            bcrypt.checkpw((password or "").encode("utf-8"), self._dummy_hash)
        except ValueError:
            pass
        return False

    def needs_rehash(self, hashed: str) -> bool:
        """
        Check if a hash needs to be rehashed (e.g., rounds changed).

        Args:
            hashed: Previously hashed password

        Returns:
            True if hash should be regenerated
        """
        try:
            # bcrypt hash format: $2b$rounds$salt+hash
            parts = hashed.split("$")
            if len(parts) >= 3:
                return int(parts[2]) != self.rounds
            return True
        except (AttributeError, ValueError):
            return True


def normalize_email(email: str) -> Optional[str]:
    """
    Normalize an email handle: trimmed and lower-cased.

    Args:
        email: Email address in any case, possibly padded

    Returns:
        Normalized email or None if it is not a valid address

    Examples:
        normalize_email("  A@X.com ") -> "a@x.com"
        normalize_email("not-an-email") -> None
    """
    if not email:
        return None

    cleaned = email.strip().lower()
    if not _EMAIL_RE.match(cleaned):
        return None

    return cleaned
