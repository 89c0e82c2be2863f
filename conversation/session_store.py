"""
Session store for the insurance relay.

Abstracts session storage so the orchestrator can work with the in-memory
store or a durable backend implementing the same protocol.
"""

import logging
import random
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, ContextManager, Dict, Iterator, List, Optional, Protocol, runtime_checkable

from .models import ConversationSession, utcnow

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for per-user session storage."""

    def get_or_create(self, user_id: str) -> ConversationSession:
        """Return the user's session, creating it on first contact."""
        ...

    def get(self, user_id: str) -> Optional[ConversationSession]:
        """Return the session without touching or creating it."""
        ...

    def sweep_expired(self, now: Optional[datetime] = None, idle_threshold: Optional[timedelta] = None) -> int:
        """Remove sessions idle past the threshold."""
        ...

    def size(self) -> int:
        """Number of live sessions."""
        ...

    def maybe_sweep(self) -> int:
        """Sweep with some probability; return the number evicted."""
        ...

    def leased(self, user_id: str) -> ContextManager[ConversationSession]:
        """Get-or-create a session held against eviction for the block."""
        ...


class InMemorySessionStore:
    """
    Process-lifetime session store guarded by a single lock.

    Sessions leased by an in-flight handler are skipped by sweeps, so a
    session is never evicted while a message for it is being processed.
    """

    def __init__(
        self,
        idle_threshold: timedelta = timedelta(minutes=30),
        max_messages: int = 10,
        sweep_probability: float = 0.1,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.idle_threshold = idle_threshold
        self.max_messages = max_messages
        self.sweep_probability = sweep_probability
        self._clock = clock
        self._rng = rng or random.Random()
        self._sessions: Dict[str, ConversationSession] = {}
        self._lock = threading.RLock()

    def now(self) -> datetime:
        return self._clock()

    def get_or_create(self, user_id: str) -> ConversationSession:
        now = self._clock()
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = ConversationSession(
                    user_id=user_id,
                    max_messages=self.max_messages,
                    created_at=now,
                    last_activity=now,
                )
                self._sessions[user_id] = session
                logger.info(f"Created session for {user_id}")
            else:
                session.touch(now)
            return session

    def get(self, user_id: str) -> Optional[ConversationSession]:
        with self._lock:
            return self._sessions.get(user_id)

    @contextmanager
    def leased(self, user_id: str) -> Iterator[ConversationSession]:
        """Get-or-create a session and hold it against eviction until exit."""
        with self._lock:
            session = self.get_or_create(user_id)
            session.leases += 1
        try:
            yield session
        finally:
            with self._lock:
                session.leases -= 1
                session.touch(self._clock())

    def sweep_expired(
        self,
        now: Optional[datetime] = None,
        idle_threshold: Optional[timedelta] = None,
    ) -> int:
        """Remove every unleased session idle for longer than the threshold."""
        now = now or self._clock()
        threshold = idle_threshold if idle_threshold is not None else self.idle_threshold
        with self._lock:
            expired = [
                user_id for user_id, session in self._sessions.items()
                if not session.is_leased and now - session.last_activity > threshold
            ]
            for user_id in expired:
                del self._sessions[user_id]

        if expired:
            logger.info(
                f"Evicted {len(expired)} idle sessions",
                extra={"evicted": len(expired), "remaining": self.size()},
            )
        return len(expired)

    def maybe_sweep(self) -> int:
        """Run a sweep with the configured probability."""
        if self.sweep_probability <= 0:
            return 0
        if self._rng.random() < self.sweep_probability:
            return self.sweep_expired()
        return 0

    def remove(self, user_id: str) -> bool:
        """Forget a session. Leased sessions are kept, as in sweeps."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or session.is_leased:
                return False
            del self._sessions[user_id]
            return True

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._sessions)

    def snapshot(self) -> List[ConversationSession]:
        """Live sessions, most recently active first."""
        with self._lock:
            sessions = list(self._sessions.values())
        return sorted(sessions, key=lambda s: s.last_activity, reverse=True)
