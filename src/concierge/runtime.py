"""Application runtime wiring the bus, sessions, tools and model together."""

from __future__ import annotations

import asyncio
from types import TracebackType

from loguru import logger

from concierge.bus import MessageBus, SignalBus, Subscription
from concierge.config import Settings
from concierge.correlator import BusCorrelator
from concierge.credentials import CredentialSource, FileCredentialSource
from concierge.envelopes import InboundEnvelope
from concierge.model import ModelClient, RepublicModel
from concierge.services import GoogleServices, HttpGoogleServices, InMemoryGoogleServices
from concierge.session import SessionStore
from concierge.tools import ToolDispatcher, model_tools
from concierge.turn import TurnDriver


def build_services(settings: Settings) -> GoogleServices:
    if settings.services_url:
        return HttpGoogleServices(settings.services_url, timeout=settings.tool_timeout_seconds)
    logger.warning("services.in_memory reason=services_url-not-set")
    return InMemoryGoogleServices()


def build_model(settings: Settings) -> ModelClient:
    return RepublicModel(
        model=settings.resolved_model,
        api_key=settings.api_key,
        api_base=settings.api_base,
        tools=model_tools(),
        system_prompt=settings.system_prompt,
        max_tokens=settings.max_tokens,
    )


class AppRuntime:
    """Consumes inbound envelopes, one task per message, and answers through the correlator."""

    def __init__(
        self,
        settings: Settings,
        *,
        bus: MessageBus | None = None,
        model: ModelClient | None = None,
        services: GoogleServices | None = None,
        credential_source: CredentialSource | None = None,
        sessions: SessionStore | None = None,
    ) -> None:
        self.settings = settings
        self.bus = bus or SignalBus()
        self.correlator = BusCorrelator(self.bus)
        self.sessions = sessions or SessionStore()
        self.services = services or build_services(settings)
        self.dispatcher = ToolDispatcher(self.services, timeout_seconds=settings.tool_timeout_seconds)
        self.driver = TurnDriver(
            sessions=self.sessions,
            credential_source=credential_source or FileCredentialSource(settings.token_file),
            model=model or build_model(settings),
            dispatcher=self.dispatcher,
            publisher=self.correlator,
            model_timeout_seconds=settings.model_timeout_seconds,
        )
        self._subscription: Subscription | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        self._subscription = self.correlator.subscribe_inbound(self._handle_inbound)
        logger.info("runtime.start tools={}", ",".join(self.dispatcher.names()))

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        if isinstance(self.services, HttpGoogleServices):
            await self.services.close()
        logger.info("runtime.stop cancelled={}", len(tasks))

    async def __aenter__(self) -> AppRuntime:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def submit(self, user_id: str, text: str) -> None:
        await self.correlator.publish_inbound(InboundEnvelope(user_id=user_id, text=text))

    async def ask(self, user_id: str, text: str, *, timeout: float | None = None) -> str:
        """Publish a message and wait for the user's answer."""
        wait_for = timeout if timeout is not None else self.settings.response_timeout_seconds
        waiter = asyncio.create_task(self.correlator.await_outbound(user_id, wait_for))
        # Let the waiter subscribe before the turn can publish.
        await asyncio.sleep(0)
        try:
            await self.submit(user_id, text)
        except BaseException:
            waiter.cancel()
            raise
        return await waiter

    async def _handle_inbound(self, envelope: InboundEnvelope) -> None:
        task = asyncio.create_task(self._process(envelope))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, envelope: InboundEnvelope) -> None:
        try:
            await self.driver.handle(envelope)
        except asyncio.CancelledError:
            logger.info("runtime.turn.cancelled user={}", envelope.user_id)
            raise
        except Exception:
            logger.exception("runtime.turn.error user={}", envelope.user_id)
