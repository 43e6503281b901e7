"""
Services layer for the TravelExplore identity core.

Local and Google authentication, the access guard, and the context that
wires them to the shared stores.
"""

from .access_guard import AccessGuard, Proof
from .base import IdentityContext, LoginGrant
from .federated_auth_service import (
    FederatedAuthService,
    GoogleOAuthProvider,
    OAuthProvider,
    ProviderIdentity,
)
from .local_auth_service import LocalAuthService

__all__ = [
    "AccessGuard",
    "Proof",
    "IdentityContext",
    "LoginGrant",
    "FederatedAuthService",
    "GoogleOAuthProvider",
    "OAuthProvider",
    "ProviderIdentity",
    "LocalAuthService",
]
