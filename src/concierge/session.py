"""Per-user conversational state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from threading import Lock

from loguru import logger

from concierge.credentials import CredentialCache, Credentials
from concierge.types import Dialogue


@dataclass
class Session:
    """Conversation state for one user.

    `lock` serializes turns for the user; the dialogue is not safe for
    concurrent mutation.
    """

    user_id: str
    _cache: CredentialCache = field(repr=False)
    dialogue: Dialogue | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def credentials(self) -> Credentials | None:
        return self._cache.get(self.user_id)

    def start_dialogue(self) -> Dialogue:
        if self.dialogue is None:
            self.dialogue = Dialogue()
        return self.dialogue


class SessionStore:
    """Process-lifetime map of user id to Session."""

    def __init__(self, credentials: CredentialCache | None = None) -> None:
        self._credentials = credentials or CredentialCache()
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    @property
    def credentials(self) -> CredentialCache:
        return self._credentials

    def get_or_create(self, user_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = Session(user_id=user_id, _cache=self._credentials)
                self._sessions[user_id] = session
                logger.info("session.created user={}", user_id)
            return session

    def get(self, user_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(user_id)

    def update_credentials(self, user_id: str, credentials: Credentials) -> None:
        """Replace the credentials of an existing session; unknown users are ignored."""
        with self._lock:
            if user_id not in self._sessions:
                logger.debug("session.credentials.skip user={} reason=no-session", user_id)
                return
            self._credentials.set(user_id, credentials)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
