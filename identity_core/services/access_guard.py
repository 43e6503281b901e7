"""
Access guard.

Resolves a request's proof of identity to an account and enforces the
two-tier role check.

Precedence: the bearer token is tried first. If it verifies, it alone
decides the identity, even when a session cookie for another account is
also present. The session cookie is only consulted when there is no token
or the token is invalid.
"""

import logging
from typing import Optional
from dataclasses import dataclass

from ..auth import Account, AccountStore, JWTHandler, Role, SessionManager
from ..errors import ForbiddenError, InvalidProofError, UnauthenticatedError

logger = logging.getLogger(__name__)


@dataclass
class Proof:
    """Credentials extracted from a request."""
    bearer_token: Optional[str] = None  # Authorization: Bearer <token>
    session_id: Optional[str] = None  # session cookie value


class AccessGuard:
    """Gate in front of protected operations."""

    def __init__(self, accounts: AccountStore, jwt: JWTHandler, sessions: SessionManager):
        self.accounts = accounts
        self.jwt = jwt
        self.sessions = sessions

    def _active_account(self, account_id: str) -> Optional[Account]:
        account = self.accounts.get_by_id(account_id)
        if account is None or not account.is_active:
            return None
        return account

    def authenticate(self, proof: Proof) -> Optional[Account]:
        """
        Resolve a proof to an account.

        Returns:
            The Account, or None for an anonymous caller
        """
        if proof.bearer_token:
            try:
                account_id = self.jwt.verify(proof.bearer_token)
            except InvalidProofError:
                logger.debug("Bearer token rejected, trying session")
            else:
                return self._active_account(account_id)

        if proof.session_id:
            try:
                account_id = self.sessions.resolve(proof.session_id)
            except InvalidProofError:
                logger.debug("Session rejected")
            else:
                return self._active_account(account_id)

        return None

    @staticmethod
    def require_role(account: Optional[Account], role: Role) -> None:
        """
        Check that an account satisfies a role requirement.

        Administrative satisfies any requirement; ordinary satisfies only
        ordinary.

        Raises:
            UnauthenticatedError: No account (anonymous caller)
            ForbiddenError: Role insufficient
        """
        if account is None:
            raise UnauthenticatedError()

        if account.role == Role.ADMINISTRATIVE:
            return
        if role == Role.ORDINARY:
            return

        raise ForbiddenError()

    def authorize(self, proof: Proof, role: Role = Role.ORDINARY) -> Account:
        """Authenticate a proof and require a role in one step."""
        account = self.authenticate(proof)
        self.require_role(account, role)
        return account
