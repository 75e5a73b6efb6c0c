"""HTTP ingress: WhatsApp-style webhook and response polling endpoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from concierge.envelopes import InboundEnvelope
from concierge.errors import BusPublishError, ResponseTimeoutError
from concierge.runtime import AppRuntime


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MessageText(_Payload):
    body: str = ""


class WhatsAppMessage(_Payload):
    sender: str = Field(default="", alias="from")
    id: str = ""
    timestamp: str = ""
    type: str = ""
    text: MessageText = Field(default_factory=MessageText)


class ChangeValue(_Payload):
    messaging_product: str = ""
    messages: list[WhatsAppMessage] = Field(default_factory=list)


class Change(_Payload):
    value: ChangeValue = Field(default_factory=ChangeValue)
    field: str = ""


class Entry(_Payload):
    id: str = ""
    changes: list[Change] = Field(default_factory=list)


class WhatsAppWebhookPayload(_Payload):
    object: str = ""
    entry: list[Entry] = Field(default_factory=list)

    def first_message(self) -> InboundEnvelope | None:
        """Only the first message of the first change is processed."""
        if not self.entry or not self.entry[0].changes:
            return None
        messages = self.entry[0].changes[0].value.messages
        if not messages:
            return None
        message = messages[0]
        if not message.sender or not message.text.body:
            return None
        return InboundEnvelope(user_id=message.sender, text=message.text.body)


def create_app(runtime: AppRuntime) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await runtime.start()
        try:
            yield
        finally:
            await runtime.stop()

    app = FastAPI(title="concierge", lifespan=lifespan)
    app.state.runtime = runtime

    @app.exception_handler(RequestValidationError)
    async def _invalid_payload(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid payload", "details": str(exc.errors())},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/whatsapp/webhook")
    async def whatsapp_webhook(payload: WhatsAppWebhookPayload) -> JSONResponse:
        envelope = payload.first_message()
        if envelope is None:
            logger.info("webhook.ignored reason=no-message")
            return JSONResponse({"status": "ignored", "message": "No user message in payload"})
        try:
            await runtime.correlator.publish_inbound(envelope)
        except BusPublishError as exc:
            logger.error("webhook.publish.error user={} error={}", envelope.user_id, exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"status": "error", "message": "Failed to queue message"},
            )
        return JSONResponse({"status": "ok", "message": "Message received and queued"})

    @app.get("/response/{user_id}")
    async def response(user_id: str) -> JSONResponse:
        try:
            text = await runtime.correlator.await_outbound(user_id, runtime.settings.response_timeout_seconds)
        except ResponseTimeoutError:
            return JSONResponse(status_code=status.HTTP_408_REQUEST_TIMEOUT, content={"error": "response timeout"})
        return JSONResponse({"user_id": user_id, "response": text})

    return app
