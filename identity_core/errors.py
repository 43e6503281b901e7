"""Exceptions raised by the identity core.

Every ``IdentityError`` is a recoverable outcome the caller renders as a
message or status code. ``EntropyError`` is the only fatal condition.
"""

from typing import Optional


class IdentityError(Exception):
    """Base exception for identity and session outcomes."""

    message = "Identity error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class ConflictError(IdentityError):
    """Handle already belongs to an account."""
    message = "User with this email already exists"


class WeakCredentialError(IdentityError):
    """Password does not meet the policy."""
    message = "Password must be at least 6 characters long"


class ValidationError(IdentityError):
    """Malformed input, e.g. an email that is not an email."""
    message = "Invalid input"


class InvalidCredentialError(IdentityError):
    """Login failed. Deliberately the same for every cause."""
    message = "Invalid email or password"


class InvalidProofError(IdentityError):
    """Bearer token or session id is malformed, unknown or expired."""
    message = "Invalid or expired credentials"


class StateMismatchError(IdentityError):
    """OAuth callback state was never issued by this process."""
    message = "OAuth state mismatch"


class ExpiredError(IdentityError):
    """OAuth handshake already completed or timed out."""
    message = "OAuth handshake expired"


class ProviderError(IdentityError):
    """The federated identity provider failed or timed out."""
    message = "Identity provider error"


class UnauthenticatedError(IdentityError):
    """A role-gated operation was attempted anonymously."""
    message = "Not authenticated"


class ForbiddenError(IdentityError):
    """The account's role does not satisfy the requirement."""
    message = "Insufficient permissions"


class EntropyError(RuntimeError):
    """Secure randomness is unavailable; initialization must abort."""
