"""Runtime logging helpers."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

import loguru
from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[user]} | {message}"
_current_user: ContextVar[str] = ContextVar("concierge_current_user", default="-")
_CONFIGURED_LEVEL: str | None = None


def current_user() -> str:
    return _current_user.get()


@contextmanager
def bind_user(user_id: str) -> Iterator[None]:
    """Tag every log record emitted in this context with the user id."""
    token = _current_user.set(user_id)
    try:
        yield
    finally:
        _current_user.reset(token)


def configure_logging(level: str = "INFO") -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["user"] = current_user()

    global _CONFIGURED_LEVEL
    level = level.upper()
    if level == _CONFIGURED_LEVEL:
        return

    logger.remove()
    logger.configure(patcher=inject_context)
    logger.add(
        sys.stderr,
        level=level,
        format=_LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )
    _CONFIGURED_LEVEL = level
