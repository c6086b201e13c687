"""In-memory registry of active admin sessions.

Presence of a session id here is required for a token to authenticate, so
logout revokes a token by deleting its entry. Nothing is persisted: a process
restart invalidates every admin session.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    """Liveness record for one admin session."""

    subject: str
    created_at: float
    expires_at: float
    last_activity: float


class SessionRegistry:
    """Thread-safe map from session id (jti) to SessionRecord.

    One instance is created per application and handed to the request gate
    and the session endpoints. Every operation holds the lock, so concurrent
    activate/deactivate calls for the same id resolve to whichever ran last.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def activate(self, session_id: str, subject: str, expires_at: float) -> None:
        """Mark a session live until expires_at (Unix seconds)."""
        now = self._clock()
        record = SessionRecord(
            subject=subject,
            created_at=now,
            expires_at=expires_at,
            last_activity=now,
        )
        with self._lock:
            self._sessions[session_id] = record
        logger.info(f"Admin session created: jti={session_id} subject={subject}")

    def is_active(self, session_id: str) -> bool:
        """Check liveness; records past expires_at are dropped."""
        now = self._clock()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return False
            if now >= record.expires_at:
                del self._sessions[session_id]
                expired = True
            else:
                record.last_activity = now
                expired = False
        if expired:
            logger.info(f"Admin session expired: jti={session_id}")
            return False
        return True

    def deactivate(self, session_id: str) -> bool:
        """Remove a session. Returns True if it was present; never raises."""
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"Admin session removed: jti={session_id}")
        return removed

    def get(self, session_id: str) -> SessionRecord | None:
        """Return a copy of the record, or None."""
        with self._lock:
            record = self._sessions.get(session_id)
            return replace(record) if record is not None else None

    def sweep_expired(self) -> int:
        """Remove every record past its expiry. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [sid for sid, rec in self._sessions.items() if now >= rec.expires_at]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
