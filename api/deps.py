"""
API dependencies.

Provides dependency injection for the identity context and the access guard.
"""

import logging
from typing import Optional, Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from identity_core.auth import Account, Role
from identity_core.services import IdentityContext, Proof

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


# Global context instance (singleton)
_context: Optional[IdentityContext] = None


def get_context() -> IdentityContext:
    """
    Get or create the identity context singleton.

    This initializes the stores and services on first call.
    """
    global _context

    if _context is None:
        logger.info("Initializing identity core...")
        _context = IdentityContext.create()
        logger.info("Identity core initialized successfully")

    return _context


def close_context():
    """Close and cleanup the identity context."""
    global _context
    if _context:
        _context.close()
        _context = None
        logger.info("Identity core closed")


def context_dep() -> IdentityContext:
    """FastAPI dependency for the identity context."""
    return get_context()


ContextDep = Annotated[IdentityContext, Depends(context_dep)]


# Authentication dependencies

async def get_proof(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    context: ContextDep
) -> Proof:
    """Collect the bearer token and session cookie sent with the request."""
    return Proof(
        bearer_token=credentials.credentials if credentials else None,
        session_id=request.cookies.get(context.config.session.cookie_name)
    )


ProofDep = Annotated[Proof, Depends(get_proof)]


async def get_current_account(proof: ProofDep, context: ContextDep) -> Account:
    """
    Get current account (required).

    Raises UnauthenticatedError (401) for anonymous callers.
    """
    return context.guard.authorize(proof, Role.ORDINARY)


async def get_admin_account(proof: ProofDep, context: ContextDep) -> Account:
    """
    Get current account and require the administrative role.

    Raises UnauthenticatedError (401) or ForbiddenError (403).
    """
    return context.guard.authorize(proof, Role.ADMINISTRATIVE)


# Type aliases for dependencies
CurrentAccount = Annotated[Account, Depends(get_current_account)]
AdminAccount = Annotated[Account, Depends(get_admin_account)]
