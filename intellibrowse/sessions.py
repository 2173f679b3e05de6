"""
In-memory session store.

Sessions map an id to one ``AgentLoop``. Idle sessions are evicted after
``ttl_seconds``; sessions with an instruction in flight are never evicted.
None of the store's methods await, so each call is atomic on the event loop.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .agent.loop import AgentLoop

logger = logging.getLogger(__name__)

LoopFactory = Callable[[str], AgentLoop]


def generate_session_id() -> str:
    """Return an id like ``session-1718000000000-1a2b3c4``."""
    return f"session-{int(time.time() * 1000)}-{secrets.token_hex(4)[:7]}"


@dataclass
class Session:
    id: str
    loop: AgentLoop
    created_at: float
    last_used: float


class SessionStore:
    """Session registry with idle-time eviction."""

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
        id_factory: Callable[[], str] = generate_session_id,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._id_factory = id_factory
        self._sessions: dict[str, Session] = {}

    def create(self, loop_factory: LoopFactory) -> Session:
        """Create a session whose loop is built by ``loop_factory(session_id)``."""
        session_id = self._id_factory()
        while session_id in self._sessions:
            session_id = self._id_factory()
        now = self._clock()
        session = Session(id=session_id, loop=loop_factory(session_id), created_at=now, last_used=now)
        self._sessions[session_id] = session
        logger.info(f"Created session {session_id}")
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Look up a session and mark it as used."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_used = self._clock()
        return session

    def delete(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Deleted session {session_id}")
        return True

    def evict_expired(self) -> list[str]:
        """Drop idle sessions older than the TTL and return their ids."""
        if not self.ttl_seconds or self.ttl_seconds <= 0:
            return []
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            sid for sid, session in self._sessions.items()
            if session.last_used <= cutoff and not session.loop.busy
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Evicted {len(expired)} idle session(s)")
        return expired

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
