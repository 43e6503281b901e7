"""
Authentication primitives for the TravelExplore identity core.

Password hashing, bearer tokens, server-side sessions, OAuth handshake
state and the account store.
"""

from .accounts import Account, AccountStore, CredentialKind, Role
from .handshakes import HandshakeState, HandshakeStore
from .jwt_handler import JWTHandler, TokenPayload
from .password import PasswordHandler, normalize_email
from .sessions import Session, SessionManager

__all__ = [
    "Account",
    "AccountStore",
    "CredentialKind",
    "Role",
    "HandshakeState",
    "HandshakeStore",
    "JWTHandler",
    "TokenPayload",
    "PasswordHandler",
    "normalize_email",
    "Session",
    "SessionManager",
]
