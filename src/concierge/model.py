"""Language model contract and the republic-backed implementation."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

from loguru import logger
from republic import LLM, Tool

from concierge.types import Dialogue, ModelResponse, ResponsePart, TextPart, ToolCallPart, ToolInvocation


class ModelClient(Protocol):
    """Produces the next model reply for a dialogue whose last turn is user text or tool results."""

    async def complete(self, dialogue: Dialogue) -> ModelResponse: ...


class RepublicModel:
    """OpenAI-style chat completion through republic, with tool declarations."""

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None,
        api_base: str | None,
        tools: list[Tool],
        system_prompt: str = "",
        max_tokens: int = 1024,
    ) -> None:
        self._llm = LLM(model, api_key=api_key, api_base=api_base)
        self._tools = tools
        self._system_prompt = system_prompt.strip()
        self._max_tokens = max_tokens

    async def complete(self, dialogue: Dialogue) -> ModelResponse:
        messages = render_messages(dialogue, system_prompt=self._system_prompt)
        # The republic chat client blocks; keep the event loop free.
        response = await asyncio.to_thread(
            self._llm.chat.raw,
            messages=messages,
            tools=self._tools,
            max_tokens=self._max_tokens,
        )
        return parse_response(response)


def render_messages(dialogue: Dialogue, *, system_prompt: str = "") -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for turn in dialogue.turns:
        match turn.role:
            case "user":
                messages.append({"role": "user", "content": turn.text})
            case "model":
                message: dict[str, Any] = {"role": "assistant", "content": turn.text or None}
                if turn.tool_calls:
                    message["tool_calls"] = [
                        {
                            "id": call.call_id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.arguments, ensure_ascii=False),
                            },
                        }
                        for call in turn.tool_calls
                    ]
                messages.append(message)
            case "tool":
                messages.extend(
                    {"role": "tool", "tool_call_id": result.call_id, "content": result.render()}
                    for result in turn.tool_results
                )
    return messages


def parse_response(response: Any) -> ModelResponse:
    """Split a chat completion into text and tool-call parts."""
    if isinstance(response, str):
        return ModelResponse(parts=(TextPart(response),) if response else ())
    choices = getattr(response, "choices", None)
    if not choices:
        return ModelResponse()
    message = getattr(choices[0], "message", None)
    if message is None:
        return ModelResponse()

    parts: list[ResponsePart] = []
    content = getattr(message, "content", None)
    if isinstance(content, str) and content:
        parts.append(TextPart(content))
    for idx, tool_call in enumerate(getattr(message, "tool_calls", None) or []):
        function = getattr(tool_call, "function", None)
        if function is None:
            continue
        name = getattr(function, "name", "") or ""
        call_id = getattr(tool_call, "id", None) or f"call_{idx}"
        arguments = _parse_arguments(name, getattr(function, "arguments", None))
        parts.append(ToolCallPart(ToolInvocation(name=name, arguments=arguments, call_id=call_id)))
    return ModelResponse(parts=tuple(parts))


def _parse_arguments(name: str, arguments: object) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return dict(arguments)
    if not isinstance(arguments, str) or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning("model.tool_call.arguments.invalid name={} raw={}", name, arguments[:200])
        return {}
    if not isinstance(parsed, dict):
        logger.warning("model.tool_call.arguments.not_object name={}", name)
        return {}
    return parsed
