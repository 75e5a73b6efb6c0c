"""OAuth credential model, cache and sources."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Protocol

from loguru import logger

from concierge.errors import CredentialsUnavailableError


@dataclass(frozen=True)
class Credentials:
    """Auth tokens handed to the external operations on every call."""

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry_unix: int = 0

    @property
    def expired(self) -> bool:
        return self.expiry_unix > 0 and self.expiry_unix <= int(time.time())

    def to_payload(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expiry_unix": self.expiry_unix,
        }

    @classmethod
    def from_token(cls, data: dict[str, Any]) -> Credentials:
        """Build credentials from an OAuth2 token document."""
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise CredentialsUnavailableError("token has no access_token")
        return cls(
            access_token=access_token,
            refresh_token=str(data.get("refresh_token") or ""),
            token_type=str(data.get("token_type") or "Bearer"),
            expiry_unix=_expiry_unix(data),
        )


def _expiry_unix(data: dict[str, Any]) -> int:
    raw_unix = data.get("expiry_unix")
    if isinstance(raw_unix, int | float) and not isinstance(raw_unix, bool):
        return int(raw_unix)
    raw_expiry = data.get("expiry")
    if not isinstance(raw_expiry, str) or not raw_expiry.strip():
        return 0
    try:
        return int(datetime.fromisoformat(raw_expiry.strip().replace("Z", "+00:00")).timestamp())
    except ValueError:
        logger.warning("credentials.expiry.invalid value={}", raw_expiry)
        return 0


class CredentialCache:
    """Thread-safe holder of the most recent credentials known per user."""

    def __init__(self) -> None:
        self._cache: dict[str, Credentials] = {}
        self._lock = RLock()

    def get(self, user_id: str) -> Credentials | None:
        with self._lock:
            credentials = self._cache.get(user_id)
            if credentials is None:
                return None
            if not credentials.expired or credentials.refresh_token:
                return credentials
            # Expired and not refreshable.
            logger.debug("credentials.cache.evict user={}", user_id)
            del self._cache[user_id]
            return None

    def set(self, user_id: str, credentials: Credentials) -> None:
        with self._lock:
            self._cache[user_id] = credentials

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._cache.pop(user_id, None) is not None

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._cache


class CredentialSource(Protocol):
    """Supplies the initial credentials for a user."""

    def load(self, user_id: str) -> Credentials: ...


class FileCredentialSource:
    """Loads credentials from a token.json written by a prior authorization flow.

    The same token file serves every user; per-user token storage belongs to the
    authorization service.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self, user_id: str) -> Credentials:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CredentialsUnavailableError(
                f"unable to read {self.path}: {exc.strerror or exc}. Please authorize the Google account first."
            ) from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CredentialsUnavailableError(f"unable to parse {self.path}: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise CredentialsUnavailableError(f"unable to parse {self.path}: expected a JSON object")
        credentials = Credentials.from_token(data)
        logger.info("credentials.loaded user={} source={}", user_id, self.path)
        return credentials
