"""Per-user request/response correlation on top of the message bus."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Coroutine
from typing import Any

from loguru import logger

from concierge.bus import MessageBus, Subscription
from concierge.envelopes import InboundEnvelope, OutboundEnvelope
from concierge.errors import BusPublishError, ResponseTimeoutError

INBOUND_SUBJECT = "incoming.messages"
RESPONSE_SUBJECT_PREFIX = "response.messages."

InboundHandler = Callable[[InboundEnvelope], Coroutine[Any, Any, None]]


def response_subject(user_id: str) -> str:
    return f"{RESPONSE_SUBJECT_PREFIX}{user_id}"


class BusCorrelator:
    """Routes inbound messages to the driver and responses back to the waiting caller.

    Responses travel on one subject per user, so concurrent users never see
    each other's answers. At most one waiter per user is expected at a time.
    """

    def __init__(self, bus: MessageBus) -> None:
        self.bus = bus

    async def publish_inbound(self, envelope: InboundEnvelope) -> None:
        await self._publish(INBOUND_SUBJECT, envelope.encode())
        logger.info("bus.inbound.published user={}", envelope.user_id)

    def subscribe_inbound(self, handler: InboundHandler) -> Subscription:
        async def _on_message(data: bytes) -> None:
            try:
                envelope = InboundEnvelope.decode(data)
            except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
                logger.warning("bus.inbound.invalid error={}", exc)
                return
            await handler(envelope)

        return self.bus.subscribe(INBOUND_SUBJECT, _on_message)

    async def publish_outbound(self, user_id: str, text: str) -> None:
        await self._publish(response_subject(user_id), OutboundEnvelope(user_id=user_id, text=text).encode())
        logger.info("bus.outbound.published user={} chars={}", user_id, len(text))

    async def await_outbound(self, user_id: str, timeout: float) -> str:
        """Block until the user's next response arrives, or raise ResponseTimeoutError."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        async def _on_message(data: bytes) -> None:
            if future.done():
                return
            try:
                envelope = OutboundEnvelope.decode(data)
            except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
                logger.warning("bus.outbound.invalid user={} error={}", user_id, exc)
                return
            future.set_result(envelope.text)

        subscription = self.bus.subscribe(response_subject(user_id), _on_message)
        try:
            async with asyncio.timeout(timeout):
                return await future
        except TimeoutError:
            logger.info("bus.outbound.timeout user={} timeout={}s", user_id, timeout)
            raise ResponseTimeoutError(user_id, timeout) from None
        finally:
            subscription.unsubscribe()

    async def _publish(self, subject: str, data: bytes) -> None:
        try:
            await self.bus.publish(subject, data)
        except BusPublishError:
            raise
        except Exception as exc:
            raise BusPublishError(f"failed to publish to {subject}: {exc!s}") from exc
