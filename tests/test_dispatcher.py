import asyncio
from typing import Any

import pytest

from concierge.credentials import Credentials
from concierge.errors import ServiceCallError
from concierge.services import InMemoryGoogleServices
from concierge.services.base import CreateContactRequest, CreateContactResponse, ListEventsRequest, ListEventsResponse
from concierge.tools.dispatcher import ToolDispatcher
from concierge.types import ToolInvocation


def _invoke(name: str, **arguments: Any) -> ToolInvocation:
    return ToolInvocation(name=name, arguments=arguments, call_id="call_0")


@pytest.mark.asyncio
async def test_create_contact_returns_contact_name(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(InMemoryGoogleServices())

    result = await dispatcher.execute(
        "u1",
        credentials,
        _invoke("create_contact", display_name="Joe Doe", email="joe.doe@example.com", phone_number="1234567890"),
    )

    assert result.ok
    assert result.name == "create_contact"
    assert result.call_id == "call_0"
    assert result.payload is not None
    assert result.payload["contact_name"] == "Joe Doe"
    assert result.payload["contact_id"].startswith("people/")


@pytest.mark.asyncio
async def test_list_contacts_uses_default_page_size(credentials: Credentials) -> None:
    services = InMemoryGoogleServices()
    dispatcher = ToolDispatcher(services)
    for idx in range(12):
        await dispatcher.execute("u1", credentials, _invoke("create_contact", display_name=f"P{idx}"))

    result = await dispatcher.execute("u1", credentials, _invoke("list_contacts"))

    assert result.payload is not None
    assert len(result.payload["contacts"]) == 10
    assert result.payload["contacts"][0] == "Name: P0, Email: , Phone: "


@pytest.mark.asyncio
async def test_calendar_round_trip(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(InMemoryGoogleServices())

    created = await dispatcher.execute(
        "u1",
        credentials,
        _invoke(
            "create_calendar_event",
            calendar_id="primary",
            summary="Dentista",
            start_time="2025-05-22T15:00:00Z",
            end_time="2025-05-22T16:00:00Z",
            time_zone="America/Argentina/Buenos_Aires",
        ),
    )
    listed = await dispatcher.execute("u1", credentials, _invoke("list_calendar_events", max_results=5.0))

    assert created.payload is not None
    assert created.payload["summary"] == "Dentista"
    assert created.payload["link"]
    assert listed.payload == {
        "events": [f"ID: {created.payload['event_id']}, Summary: 'Dentista', Start: 2025-05-22T15:00:00Z"]
    }


@pytest.mark.asyncio
async def test_send_email(credentials: Credentials) -> None:
    services = InMemoryGoogleServices()
    dispatcher = ToolDispatcher(services)

    result = await dispatcher.execute(
        "u1", credentials, _invoke("send_email", to="ana@example.com", subject="Hola", body="Nos vemos")
    )

    assert result.ok
    assert result.payload is not None
    assert result.payload["message_id"]
    assert services.sent[0].credentials == credentials


@pytest.mark.asyncio
async def test_unknown_tool_is_a_failure_result(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(InMemoryGoogleServices())

    result = await dispatcher.execute("u1", credentials, _invoke("delete_everything"))

    assert not result.ok
    assert result.error == "unknown tool: delete_everything"
    assert result.response() == {"error": "unknown tool: delete_everything"}


@pytest.mark.asyncio
async def test_mistyped_required_argument_is_rejected_by_service(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(InMemoryGoogleServices())

    result = await dispatcher.execute("u1", credentials, _invoke("create_contact", display_name=123))

    assert not result.ok
    assert result.error == "create_contact service error: display_name is required"


class _FlakyServices(InMemoryGoogleServices):
    async def list_events(self, request: ListEventsRequest) -> ListEventsResponse:
        raise ServiceCallError("/calendar/events/list unreachable: connection refused")

    async def create_contact(self, request: CreateContactRequest) -> CreateContactResponse:
        await asyncio.sleep(1)
        return await super().create_contact(request)


@pytest.mark.asyncio
async def test_transport_failure_is_a_failure_result(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(_FlakyServices())

    result = await dispatcher.execute("u1", credentials, _invoke("list_calendar_events"))

    assert not result.ok
    assert result.error == "list_calendar_events call failed: /calendar/events/list unreachable: connection refused"


@pytest.mark.asyncio
async def test_timeout_is_a_failure_result(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(_FlakyServices(), timeout_seconds=0.01)

    result = await dispatcher.execute("u1", credentials, _invoke("create_contact", display_name="Joe"))

    assert not result.ok
    assert result.error is not None
    assert "no response within 0.01s" in result.error


@pytest.mark.asyncio
async def test_registered_tool_receives_raw_arguments(credentials: Credentials) -> None:
    dispatcher = ToolDispatcher(InMemoryGoogleServices())
    seen: list[tuple[Credentials, dict[str, Any]]] = []

    async def echo(creds: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        seen.append((creds, args))
        return {"echo": args}

    dispatcher.register("echo", echo)
    result = await dispatcher.execute("u1", credentials, _invoke("echo", value=1))

    assert result.payload == {"echo": {"value": 1}}
    assert seen == [(credentials, {"value": 1})]
    assert "echo" in dispatcher.names()


@pytest.mark.asyncio
async def test_dispatcher_logs_start_and_end(monkeypatch: pytest.MonkeyPatch, credentials: Credentials) -> None:
    logs: list[str] = []

    def _capture(message: str, *args: object) -> None:
        logs.append(message)

    monkeypatch.setattr("concierge.tools.dispatcher.logger.info", _capture)
    dispatcher = ToolDispatcher(InMemoryGoogleServices())

    await dispatcher.execute("u1", credentials, _invoke("list_contacts", page_size=2))

    assert logs.count("tool.call.start name={} {{ {} }}") == 1
    assert logs.count("tool.call.end name={} duration={:.3f}ms") == 1
