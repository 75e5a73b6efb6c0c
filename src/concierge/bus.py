"""Subject-based message bus contract and its in-process implementation."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from blinker import Namespace
from loguru import logger

from concierge.errors import BusPublishError

MessageHandler = Callable[[bytes], Coroutine[Any, Any, None]]


class Subscription:
    """Handle for one subject subscription. `unsubscribe` is idempotent."""

    def __init__(self, subject: str, release: Callable[[], None]) -> None:
        self.subject = subject
        self._release: Callable[[], None] | None = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()


class MessageBus(Protocol):
    """Minimal publish/subscribe contract the correlator is built on."""

    async def publish(self, subject: str, data: bytes) -> None: ...

    def subscribe(self, subject: str, handler: MessageHandler) -> Subscription: ...


class SignalBus:
    """In-process bus backed by one blinker signal per subject."""

    def __init__(self) -> None:
        self._signals = Namespace()
        self._closed = False

    async def publish(self, subject: str, data: bytes) -> None:
        if self._closed:
            raise BusPublishError(f"bus is closed, cannot publish to {subject}")
        logger.debug("bus.publish subject={} bytes={}", subject, len(data))
        signal = self._signals.get(subject)
        if signal is None:
            return
        await signal.send_async(self, data=data)

    def subscribe(self, subject: str, handler: MessageHandler) -> Subscription:
        signal = self._signals.signal(subject)

        async def _receiver(sender: Any, *, data: bytes) -> None:
            await handler(data)

        signal.connect(_receiver, weak=False)
        logger.debug("bus.subscribe subject={}", subject)

        def _release() -> None:
            signal.disconnect(_receiver)
            # Drop per-user response subjects once nobody listens on them.
            if not signal.receivers and self._signals.get(subject) is signal:
                del self._signals[subject]

        return Subscription(subject, _release)

    def subscriber_count(self, subject: str) -> int:
        signal = self._signals.get(subject)
        return 0 if signal is None else len(signal.receivers)

    def subject_count(self) -> int:
        return len(self._signals)

    def close(self) -> None:
        self._closed = True
