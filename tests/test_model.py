import json
import threading
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest

from concierge import model as model_module
from concierge.model import RepublicModel, parse_response, render_messages
from concierge.types import Dialogue, ModelResponse, TextPart, ToolCallPart, ToolInvocation, ToolResult


def _completion(content: str | None = None, tool_calls: list[SimpleNamespace] | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _call(name: str, arguments: str, call_id: str | None = "call_a") -> SimpleNamespace:
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def test_parse_text_only_response() -> None:
    response = parse_response(_completion("Hola"))

    assert response.parts == (TextPart("Hola"),)
    assert response.tool_calls() == []
    assert response.first_text() == "Hola"


def test_parse_tool_calls() -> None:
    response = parse_response(
        _completion(
            None,
            [
                _call("create_contact", json.dumps({"display_name": "Joe Doe"})),
                _call("list_contacts", "", call_id=None),
            ],
        )
    )

    assert response.first_text() is None
    assert response.tool_calls() == [
        ToolInvocation(name="create_contact", arguments={"display_name": "Joe Doe"}, call_id="call_a"),
        ToolInvocation(name="list_contacts", arguments={}, call_id="call_1"),
    ]


def test_parse_invalid_arguments_become_empty() -> None:
    response = parse_response(_completion(None, [_call("send_email", "{not json"), _call("send_email", "[1]")]))

    assert [call.arguments for call in response.tool_calls()] == [{}, {}]


def test_parse_empty_response() -> None:
    assert parse_response(SimpleNamespace(choices=[])).parts == ()
    assert parse_response("plain").parts == (TextPart("plain"),)


def test_render_messages_pairs_tool_results_with_calls() -> None:
    invocation = ToolInvocation(name="create_contact", arguments={"display_name": "Joe Doe"}, call_id="call_a")
    dialogue = Dialogue()
    dialogue.append_user("Crea un contacto")
    dialogue.append_model(ModelResponse(parts=(ToolCallPart(invocation),)))
    dialogue.append_tool_results([ToolResult.success(invocation, {"contact_name": "Joe Doe"})])

    messages = render_messages(dialogue, system_prompt="sys")

    assert messages[0] == {"role": "system", "content": "sys"}
    assert messages[1] == {"role": "user", "content": "Crea un contacto"}
    assert messages[2]["role"] == "assistant"
    assert messages[2]["content"] is None
    assert messages[2]["tool_calls"][0]["id"] == "call_a"
    assert json.loads(messages[2]["tool_calls"][0]["function"]["arguments"]) == {"display_name": "Joe Doe"}
    assert messages[3] == {
        "role": "tool",
        "tool_call_id": "call_a",
        "content": json.dumps({"result": {"contact_name": "Joe Doe"}}),
    }


def test_first_text_skips_blank_parts() -> None:
    response = ModelResponse(parts=(TextPart("  "), TextPart("respuesta")))

    assert response.first_text() == "respuesta"


@dataclass
class _FakeChat:
    response: Any
    calls: list[dict[str, Any]] = field(default_factory=list)
    threads: list[str] = field(default_factory=list)

    def raw(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        self.threads.append(threading.current_thread().name)
        return self.response


class _FakeLLM:
    chat: _FakeChat
    init_args: tuple[Any, ...] = ()

    def __init__(self, model: str, *, api_key: str | None = None, api_base: str | None = None) -> None:
        type(self).init_args = (model, api_key, api_base)


@pytest.mark.asyncio
async def test_republic_model_sends_rendered_dialogue(monkeypatch: pytest.MonkeyPatch) -> None:
    chat = _FakeChat(response=_completion(None, [_call("list_contacts", "{}", call_id="call_x")]))
    monkeypatch.setattr(_FakeLLM, "chat", chat, raising=False)
    monkeypatch.setattr(model_module, "LLM", _FakeLLM)
    tools = [SimpleNamespace(name="list_contacts")]
    client = RepublicModel(
        model="openai:gpt-4o-mini",
        api_key="sk-test",
        api_base=None,
        tools=tools,
        system_prompt="  Eres un asistente.  ",
        max_tokens=256,
    )
    dialogue = Dialogue()
    dialogue.append_user("lista mis contactos")

    response = await client.complete(dialogue)

    assert _FakeLLM.init_args == ("openai:gpt-4o-mini", "sk-test", None)
    (call,) = chat.calls
    assert call["messages"] == [
        {"role": "system", "content": "Eres un asistente."},
        {"role": "user", "content": "lista mis contactos"},
    ]
    assert call["tools"] is tools
    assert call["max_tokens"] == 256
    assert chat.threads != [threading.main_thread().name]
    assert response.tool_calls() == [ToolInvocation(name="list_contacts", arguments={}, call_id="call_x")]
