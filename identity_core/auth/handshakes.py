"""
OAuth handshake state.

Each Google login round trip gets an anti-forgery ``state`` value. The value
is single use: consuming it pops it from the table under the lock, so of two
concurrent callbacks carrying the same state exactly one wins.
"""

import time
import secrets
import logging
import threading
from typing import Callable, List, Optional
from dataclasses import dataclass, field

from ..errors import EntropyError, ExpiredError, StateMismatchError

logger = logging.getLogger(__name__)

STATE_EXPIRE_SECONDS = 600  # 10 minutes


@dataclass
class HandshakeState:
    """Pending OAuth round trip."""
    state: str
    redirect_uri: str
    created_at: float
    expires_at: float
    scopes: List[str] = field(default_factory=list)


class HandshakeStore:
    """
    In-memory table of pending handshakes.

    Consumed and timed-out states are remembered for one more TTL so that a
    replay is reported as expired rather than as a forgery.
    """

    def __init__(
        self,
        ttl_seconds: int = STATE_EXPIRE_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        self._pending: dict[str, HandshakeState] = {}
        self._retired: dict[str, float] = {}  # state -> forget-after timestamp
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    def begin(self, redirect_uri: str, scopes: Optional[List[str]] = None) -> HandshakeState:
        """Create and store a new pending handshake."""
        try:
            state_value = secrets.token_urlsafe(32)
        except (OSError, NotImplementedError) as e:
            raise EntropyError(f"Unable to generate OAuth state: {e}") from e

        now = self._clock()
        handshake = HandshakeState(
            state=state_value,
            redirect_uri=redirect_uri,
            created_at=now,
            expires_at=now + self._ttl,
            scopes=list(scopes or [])
        )

        with self._lock:
            self._sweep_locked(now)
            self._pending[state_value] = handshake

        logger.debug(f"OAuth handshake started, expires in {self._ttl}s")
        return handshake

    def consume(self, state: str) -> HandshakeState:
        """
        Take a pending handshake out of the table.

        Raises:
            StateMismatchError: The state was never issued
            ExpiredError: The state was already used or timed out
        """
        now = self._clock()

        with self._lock:
            self._sweep_locked(now)

            handshake = self._pending.pop(state, None) if state else None
            if handshake is None:
                if state and state in self._retired:
                    raise ExpiredError()
                raise StateMismatchError()

            self._retired[state] = now + self._ttl

        if now > handshake.expires_at:
            logger.info("OAuth handshake timed out")
            raise ExpiredError()

        return handshake

    def _sweep_locked(self, now: float) -> None:
        for value, hs in list(self._pending.items()):
            if now > hs.expires_at:
                del self._pending[value]
                self._retired[value] = now + self._ttl

        for value, forget_after in list(self._retired.items()):
            if now > forget_after:
                del self._retired[value]

    def pending_count(self) -> int:
        with self._lock:
            self._sweep_locked(self._clock())
            return len(self._pending)
