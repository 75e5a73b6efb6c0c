"""Executes model tool invocations against the external operations."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from concierge.credentials import Credentials
from concierge.errors import ServiceStatusError
from concierge.services.base import (
    CommonResponse,
    CreateContactRequest,
    CreateEventRequest,
    Event,
    GoogleServices,
    ListConnectionsRequest,
    ListEventsRequest,
    Person,
    SendEmailRequest,
)
from concierge.tools.arguments import ArgSpec, extract_all
from concierge.tools.schemas import TOOL_INPUTS, arg_specs
from concierge.types import ToolInvocation, ToolResult

DEFAULT_TOOL_TIMEOUT_SECONDS = 15.0

ToolHandler = Callable[[Credentials, dict[str, Any]], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A named operation with the argument rules applied before it runs."""

    name: str
    args: tuple[ArgSpec, ...]
    run: ToolHandler


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    if len(text) <= width:
        return text
    available = width - len(placeholder)
    if available <= 0:
        return placeholder
    return text[:available] + placeholder


def _render_params(arguments: Mapping[str, Any]) -> str:
    params: list[str] = []
    for key, value in arguments.items():
        try:
            rendered = json.dumps(value, ensure_ascii=False)
        except TypeError:
            rendered = repr(value)
        params.append(f"{key}={_shorten_text(rendered)}")
    return ", ".join(params)


def _check(name: str, common: CommonResponse) -> None:
    if common.failed:
        raise ServiceStatusError(common.message or f"{name} failed")


class ToolDispatcher:
    """Maps tool names to external operations; one attempt per invocation, never raises."""

    def __init__(self, services: GoogleServices, *, timeout_seconds: float = DEFAULT_TOOL_TIMEOUT_SECONDS) -> None:
        self._services = services
        self._timeout_seconds = timeout_seconds
        self._tools: dict[str, ToolDescriptor] = {}
        self._register_builtin_tools()

    def register(self, name: str, run: ToolHandler, *, args: tuple[ArgSpec, ...] = ()) -> None:
        self._tools[name] = ToolDescriptor(name=name, args=args, run=run)

    def names(self) -> list[str]:
        return sorted(self._tools)

    async def execute(self, user_id: str, credentials: Credentials, invocation: ToolInvocation) -> ToolResult:
        descriptor = self._tools.get(invocation.name)
        if descriptor is None:
            logger.warning("tool.call.unknown user={} name={}", user_id, invocation.name)
            return ToolResult.failure(invocation, f"unknown tool: {invocation.name}")

        arguments = extract_all(descriptor.args, invocation.arguments) if descriptor.args else dict(invocation.arguments)
        logger.info("tool.call.start name={} {{ {} }}", descriptor.name, _render_params(arguments))
        start = time.monotonic()
        try:
            async with asyncio.timeout(self._timeout_seconds):
                payload = await descriptor.run(credentials, arguments)
        except TimeoutError:
            return ToolResult.failure(
                invocation, f"{descriptor.name} call failed: no response within {self._timeout_seconds}s"
            )
        except ServiceStatusError as exc:
            return ToolResult.failure(invocation, f"{descriptor.name} service error: {exc!s}")
        except Exception as exc:
            # External operations raise non-uniform exceptions; the turn reports them to the model.
            logger.exception("tool.call.error name={}", descriptor.name)
            return ToolResult.failure(invocation, f"{descriptor.name} call failed: {exc!s}")
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", descriptor.name, duration * 1000)
        return ToolResult.success(invocation, payload)

    def _register_builtin_tools(self) -> None:
        handlers: dict[str, ToolHandler] = {
            "list_calendar_events": self._list_calendar_events,
            "create_calendar_event": self._create_calendar_event,
            "send_email": self._send_email,
            "list_contacts": self._list_contacts,
            "create_contact": self._create_contact,
        }
        for name, handler in handlers.items():
            self.register(name, handler, args=arg_specs(TOOL_INPUTS[name]))

    async def _list_calendar_events(self, credentials: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        response = await self._services.list_events(ListEventsRequest(credentials=credentials, **args))
        _check("list_calendar_events", response.common)
        return {
            "events": [f"ID: {event.id}, Summary: '{event.summary}', Start: {event.start_time}" for event in response.events]
        }

    async def _create_calendar_event(self, credentials: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        response = await self._services.create_event(CreateEventRequest(credentials=credentials, **args))
        _check("create_calendar_event", response.common)
        event = response.created_event or Event()
        return {"event_id": event.id, "summary": event.summary, "link": event.html_link}

    async def _send_email(self, credentials: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        response = await self._services.send_email(SendEmailRequest(credentials=credentials, **args))
        _check("send_email", response.common)
        return {"message_id": response.message_id}

    async def _list_contacts(self, credentials: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        response = await self._services.list_connections(ListConnectionsRequest(credentials=credentials, **args))
        _check("list_contacts", response.common)
        return {
            "contacts": [
                f"Name: {person.display_name}, Email: {person.email}, Phone: {person.phone_number}"
                for person in response.people
            ]
        }

    async def _create_contact(self, credentials: Credentials, args: dict[str, Any]) -> dict[str, Any]:
        response = await self._services.create_contact(CreateContactRequest(credentials=credentials, **args))
        _check("create_contact", response.common)
        person = response.created_contact or Person()
        return {"contact_name": person.display_name, "contact_id": person.resource_name}
