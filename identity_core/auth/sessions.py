"""
Server-side session management.

A session is the stateful proof of identity behind the ``sid`` cookie. Its
lifecycle is independent of bearer tokens: logging out destroys the session
but leaves any issued token valid until it expires.
"""

import time
import secrets
import logging
import threading
from typing import Callable, Optional
from dataclasses import dataclass

from ..errors import EntropyError, InvalidProofError

logger = logging.getLogger(__name__)

SESSION_EXPIRE_SECONDS = 86400  # 24 hours, fixed from creation


@dataclass
class Session:
    """Represents an authenticated browser session."""
    session_id: str
    account_id: str
    created_at: float
    expires_at: float


class SessionManager:
    """
    Manages sessions keyed by an opaque, unguessable identifier.

    Sessions live in memory and expire on a fixed window from creation.
    The table's own lock makes insert-if-absent and removal atomic.
    """

    def __init__(
        self,
        ttl_seconds: int = SESSION_EXPIRE_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    @staticmethod
    def _new_id() -> str:
        try:
            return secrets.token_urlsafe(32)
        except (OSError, NotImplementedError) as e:
            raise EntropyError(f"Unable to generate session id: {e}") from e

    def create(self, account_id: str) -> Session:
        """
        Create a new session for an account.

        Args:
            account_id: Account the session authenticates

        Returns:
            New Session; its session_id goes into the cookie
        """
        now = self._clock()

        with self._lock:
            self._purge_expired_locked(now)

            session_id = self._new_id()
            while session_id in self._sessions:
                session_id = self._new_id()

            session = Session(
                session_id=session_id,
                account_id=account_id,
                created_at=now,
                expires_at=now + self._ttl
            )
            self._sessions[session_id] = session

        logger.info(f"Created session for account {account_id}, expires in {self._ttl}s")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """
        Get a live session by id.

        Returns:
            Session if present and not expired, None otherwise
        """
        if not session_id:
            return None

        with self._lock:
            session = self._sessions.get(session_id)
            if not session:
                return None

            if self._clock() > session.expires_at:
                del self._sessions[session_id]
                logger.info(f"Session expired for account {session.account_id}")
                return None

            return session

    def resolve(self, session_id: str) -> str:
        """
        Resolve a session id to its account id.

        Raises:
            InvalidProofError: If the session is absent or expired
        """
        session = self.get(session_id)
        if session is None:
            raise InvalidProofError()
        return session.account_id

    def destroy(self, session_id: str) -> None:
        """
        Destroy a session. Destroying an absent session is not an error.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None) if session_id else None

        if session:
            logger.info(f"Session destroyed for account {session.account_id}")

    def destroy_for_account(self, account_id: str) -> int:
        """Destroy every session of an account (used on deactivation)."""
        with self._lock:
            doomed = [sid for sid, s in self._sessions.items() if s.account_id == account_id]
            for sid in doomed:
                del self._sessions[sid]

        if doomed:
            logger.info(f"Destroyed {len(doomed)} sessions for account {account_id}")
        return len(doomed)

    def _purge_expired_locked(self, now: float) -> int:
        expired = [sid for sid, s in self._sessions.items() if now > s.expires_at]
        for sid in expired:
            del self._sessions[sid]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def purge_expired(self) -> int:
        """Remove all expired sessions."""
        with self._lock:
            return self._purge_expired_locked(self._clock())

    def active_count(self) -> int:
        """Get count of active (non-expired) sessions."""
        with self._lock:
            self._purge_expired_locked(self._clock())
            return len(self._sessions)
