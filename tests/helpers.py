from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from concierge.credentials import Credentials
from concierge.errors import CredentialsUnavailableError
from concierge.types import Dialogue, DialogueTurn, ModelResponse, TextPart, ToolCallPart, ToolInvocation

type Scripted = ModelResponse | Exception | Callable[[Dialogue], ModelResponse]


def text(value: str) -> ModelResponse:
    return ModelResponse(parts=(TextPart(value),))


def tool_calls(*calls: tuple[str, dict[str, Any]]) -> ModelResponse:
    return ModelResponse(
        parts=tuple(
            ToolCallPart(ToolInvocation(name=name, arguments=arguments, call_id=f"call_{idx}"))
            for idx, (name, arguments) in enumerate(calls)
        )
    )


@dataclass
class ScriptedModel:
    responses: list[Scripted]
    calls: list[list[DialogueTurn]] = field(default_factory=list)

    async def complete(self, dialogue: Dialogue) -> ModelResponse:
        self.calls.append(list(dialogue.turns))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(dialogue)
        return item


@dataclass
class RecordingPublisher:
    published: list[tuple[str, str]] = field(default_factory=list)

    async def publish_outbound(self, user_id: str, text: str) -> None:
        self.published.append((user_id, text))


@dataclass
class StaticCredentialSource:
    credentials: Credentials | None
    loads: int = 0

    def load(self, user_id: str) -> Credentials:
        self.loads += 1
        if self.credentials is None:
            raise CredentialsUnavailableError("unable to read token.json: No such file or directory")
        return self.credentials
