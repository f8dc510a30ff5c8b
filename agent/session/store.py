"""
In-process session store.

One session per platform user, created on first contact and looked up on
every later message. Sessions live for the lifetime of the process; eviction
is left to the deployment.

Invariants:
- at most one session per user_id
- session_id -> user_id is stable for the session's lifetime
- context is replaced wholesale on update (last writer wins)
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from agent.errors import SessionNotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """Conversation state for a single platform user."""

    session_id: str
    user_id: str
    context: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    turns: int = 0


class SessionStore:
    """
    Explicitly-owned session table.

    Passed to the orchestrator and the send action instead of living in a
    module global, so every test gets an isolated store.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._by_user: Dict[str, str] = {}
        self._create_lock = asyncio.Lock()
        self._turn_locks: Dict[str, asyncio.Lock] = {}

    async def resolve_or_create(self, user_id: str) -> Session:
        """
        Return the session keyed to user_id, creating it on first contact.

        The check and the insert happen under one lock so concurrent first
        messages from the same user yield a single session.
        """
        if not user_id:
            raise ValueError("user_id must not be empty")

        session = self.find_by_user(user_id)
        if session is not None:
            return session

        async with self._create_lock:
            session = self.find_by_user(user_id)
            if session is not None:
                return session

            session = Session(session_id=uuid.uuid4().hex, user_id=user_id)
            self._sessions[session.session_id] = session
            self._by_user[user_id] = session.session_id

        logger.info(
            f"Created session {session.session_id}",
            extra={"session_id": session.session_id, "user_id": user_id},
        )
        return session

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find_by_user(self, user_id: str) -> Optional[Session]:
        session_id = self._by_user.get(user_id)
        if session_id is None:
            return None
        return self._sessions[session_id]

    def update(self, session_id: str, context: Mapping[str, Any]) -> Session:
        """Replace the stored context wholesale. No merge."""
        session = self.get(session_id)
        session.context = dict(context)
        session.updated_at = _utcnow()
        session.turns += 1
        return session

    def turn_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serializing dispatch turns of one session."""
        self.get(session_id)
        lock = self._turn_locks.get(session_id)
        if lock is None:
            lock = self._turn_locks[session_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
