"""One conversational turn: model, tools, model again, answer."""

from __future__ import annotations

import asyncio
from typing import Protocol

from loguru import logger

from concierge.credentials import Credentials, CredentialSource
from concierge.envelopes import InboundEnvelope
from concierge.errors import CredentialsUnavailableError, ModelCallError
from concierge.logging_utils import bind_user
from concierge.model import ModelClient
from concierge.session import Session, SessionStore
from concierge.tools.dispatcher import ToolDispatcher
from concierge.types import Dialogue, ModelResponse, ToolInvocation, ToolResult, TurnResult

AUTHORIZATION_MESSAGE = (
    "Lo siento, necesito que autorices tu cuenta de Google. "
    "Puedes hacerlo siguiendo las instrucciones del servidor de servicios. (Error: {error})"
)
MODEL_ERROR_MESSAGE = "Lo siento, hubo un error al procesar tu solicitud con el modelo de IA. Intenta de nuevo."
TOOL_RESULTS_ERROR_MESSAGE = "Lo siento, hubo un error al comunicar el resultado de las acciones."
FALLBACK_MESSAGE = "Lo siento, no pude generar una respuesta clara."
DEFAULT_MODEL_TIMEOUT_SECONDS = 60.0


class ResponsePublisher(Protocol):
    async def publish_outbound(self, user_id: str, text: str) -> None: ...


class TurnDriver:
    """Drives a single round of tool calling per inbound message.

    Turns for the same user run one at a time under the session lock. Tool
    calls requested in the model's reply to the tool results are not executed;
    the user has to send a new message to continue.
    """

    def __init__(
        self,
        *,
        sessions: SessionStore,
        credential_source: CredentialSource,
        model: ModelClient,
        dispatcher: ToolDispatcher,
        publisher: ResponsePublisher,
        model_timeout_seconds: float = DEFAULT_MODEL_TIMEOUT_SECONDS,
    ) -> None:
        self._sessions = sessions
        self._credential_source = credential_source
        self._model = model
        self._dispatcher = dispatcher
        self._publisher = publisher
        self._model_timeout_seconds = model_timeout_seconds

    async def handle(self, envelope: InboundEnvelope) -> TurnResult:
        session = self._sessions.get_or_create(envelope.user_id)
        with bind_user(envelope.user_id):
            async with session.lock:
                return await self._run_turn(session, envelope.text)

    async def _run_turn(self, session: Session, text: str) -> TurnResult:
        logger.info("turn.start user={} chars={}", session.user_id, len(text))
        dialogue = session.start_dialogue()

        credentials = session.credentials
        if credentials is None:
            try:
                credentials = await self._load_credentials(session.user_id)
            except CredentialsUnavailableError as exc:
                logger.warning("turn.credentials.unavailable user={} error={}", session.user_id, exc)
                return await self._finish(session.user_id, AUTHORIZATION_MESSAGE.format(error=exc))

        dialogue.append_user(text)
        try:
            response = await self._complete(dialogue)
        except ModelCallError as exc:
            logger.error("turn.model.error user={} error={}", session.user_id, exc)
            return await self._finish(session.user_id, MODEL_ERROR_MESSAGE, model_calls=1)

        invocations = response.tool_calls()
        if not invocations:
            if response.first_text():
                dialogue.append_model(response)
            return await self._finish(session.user_id, response.first_text() or FALLBACK_MESSAGE, model_calls=1)

        results = await self._run_tools(session.user_id, credentials, invocations)
        # The tool calls only enter the dialogue once all of their results exist.
        dialogue.append_tool_round(response, results)
        try:
            followup = await self._complete(dialogue)
        except ModelCallError as exc:
            logger.error("turn.model.error user={} stage=tool_results error={}", session.user_id, exc)
            return await self._finish(session.user_id, TOOL_RESULTS_ERROR_MESSAGE, results, model_calls=2)

        if ignored := followup.tool_calls():
            logger.warning("turn.followup.tool_calls_ignored user={} count={}", session.user_id, len(ignored))
        if followup.first_text():
            dialogue.append_model(followup, with_tool_calls=False)
        return await self._finish(session.user_id, followup.first_text() or FALLBACK_MESSAGE, results, model_calls=2)

    async def _load_credentials(self, user_id: str) -> Credentials:
        credentials = await asyncio.to_thread(self._credential_source.load, user_id)
        self._sessions.update_credentials(user_id, credentials)
        return credentials

    async def _run_tools(
        self, user_id: str, credentials: Credentials, invocations: list[ToolInvocation]
    ) -> list[ToolResult]:
        # The dispatcher reports failures as results, so one bad call never cancels its siblings.
        results = await asyncio.gather(
            *(self._dispatcher.execute(user_id, credentials, invocation) for invocation in invocations)
        )
        failed = sum(1 for result in results if not result.ok)
        logger.info("turn.tools.done user={} total={} failed={}", user_id, len(results), failed)
        return list(results)

    async def _complete(self, dialogue: Dialogue) -> ModelResponse:
        try:
            async with asyncio.timeout(self._model_timeout_seconds):
                response = await self._model.complete(dialogue)
        except TimeoutError as exc:
            raise ModelCallError(f"model_timeout: no response within {self._model_timeout_seconds}s") from exc
        except ModelCallError:
            raise
        except Exception as exc:
            logger.exception("model.call.error")
            raise ModelCallError(f"model_call_error: {exc!s}") from exc
        return response

    async def _finish(
        self,
        user_id: str,
        output: str,
        tool_results: list[ToolResult] | None = None,
        *,
        model_calls: int = 0,
    ) -> TurnResult:
        await self._publisher.publish_outbound(user_id, output)
        logger.info("turn.finish user={} model_calls={}", user_id, model_calls)
        return TurnResult(
            user_id=user_id,
            output=output,
            tool_results=tuple(tool_results or ()),
            model_calls=model_calls,
        )
