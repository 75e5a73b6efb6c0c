"""Data shared by the turn driver, the model adapter and the tool dispatcher."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

type Role = Literal["user", "model", "tool"]


@dataclass(frozen=True)
class ToolInvocation:
    """A model-issued request to run one named tool."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str = ""


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation: a payload on success, an error message on failure."""

    name: str
    call_id: str = ""
    payload: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, invocation: ToolInvocation, payload: dict[str, Any]) -> ToolResult:
        return cls(name=invocation.name, call_id=invocation.call_id, payload=payload)

    @classmethod
    def failure(cls, invocation: ToolInvocation, error: str) -> ToolResult:
        return cls(name=invocation.name, call_id=invocation.call_id, error=error)

    def response(self) -> dict[str, Any]:
        """Body handed back to the model for this result."""
        if self.error is not None:
            return {"error": self.error}
        return {"result": self.payload or {}}

    def render(self) -> str:
        return json.dumps(self.response(), ensure_ascii=False)


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ToolCallPart:
    invocation: ToolInvocation


type ResponsePart = TextPart | ToolCallPart


@dataclass(frozen=True)
class ModelResponse:
    """One model reply, in the order the model produced its parts."""

    parts: tuple[ResponsePart, ...] = ()

    def first_text(self) -> str | None:
        for part in self.parts:
            match part:
                case TextPart(text=text):
                    if text.strip():
                        return text
                case ToolCallPart():
                    continue
        return None

    def tool_calls(self) -> list[ToolInvocation]:
        calls: list[ToolInvocation] = []
        for part in self.parts:
            match part:
                case ToolCallPart(invocation=invocation):
                    calls.append(invocation)
                case TextPart():
                    continue
        return calls


@dataclass(frozen=True)
class DialogueTurn:
    role: Role
    text: str = ""
    tool_calls: tuple[ToolInvocation, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()


@dataclass
class Dialogue:
    """Append-only conversation history with the model."""

    turns: list[DialogueTurn] = field(default_factory=list)

    def append_user(self, text: str) -> None:
        self.turns.append(DialogueTurn(role="user", text=text))

    def append_model(self, response: ModelResponse, *, with_tool_calls: bool = True) -> None:
        texts = [part.text for part in response.parts if isinstance(part, TextPart)]
        calls = tuple(response.tool_calls()) if with_tool_calls else ()
        self.turns.append(DialogueTurn(role="model", text="".join(texts), tool_calls=calls))

    def append_tool_round(self, response: ModelResponse, results: list[ToolResult]) -> None:
        """Record a tool-calling reply together with its results.

        Every recorded tool call is answered by the turn that follows it.
        """
        self.append_model(response)
        self.append_tool_results(results)

    def append_tool_results(self, results: list[ToolResult]) -> None:
        self.turns.append(DialogueTurn(role="tool", tool_results=tuple(results)))

    def __len__(self) -> int:
        return len(self.turns)


@dataclass(frozen=True)
class TurnResult:
    """Result of one complete message turn."""

    user_id: str
    output: str
    tool_results: tuple[ToolResult, ...] = ()
    model_calls: int = 0
