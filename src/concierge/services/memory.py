"""Process-local stand-in for the Google operations."""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from datetime import datetime

from concierge.services.base import (
    CommonResponse,
    CreateContactRequest,
    CreateContactResponse,
    CreateEventRequest,
    CreateEventResponse,
    Event,
    ListConnectionsRequest,
    ListConnectionsResponse,
    ListEventsRequest,
    ListEventsResponse,
    Person,
    SendEmailRequest,
    SendEmailResponse,
)


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _limit(value: object) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) and value > 0 else None


def _rfc3339(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


class InMemoryGoogleServices:
    """Keeps events, sent mail and contacts in memory, partitioned by access token."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._events: dict[str, dict[str, list[Event]]] = defaultdict(lambda: defaultdict(list))
        self._people: dict[str, list[Person]] = defaultdict(list)
        self.sent: list[SendEmailRequest] = []
        self._lock = asyncio.Lock()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    async def list_events(self, request: ListEventsRequest) -> ListEventsResponse:
        calendar_id = _text(request.calendar_id)
        max_results = _limit(request.max_results)
        if calendar_id is None or max_results is None:
            return ListEventsResponse(common=CommonResponse.error("calendar_id and a positive max_results are required"))
        async with self._lock:
            events = list(self._events[request.credentials.access_token][calendar_id][:max_results])
        return ListEventsResponse(events=events)

    async def create_event(self, request: CreateEventRequest) -> CreateEventResponse:
        calendar_id = _text(request.calendar_id)
        summary = _text(request.summary)
        if calendar_id is None or summary is None:
            return CreateEventResponse(common=CommonResponse.error("calendar_id and summary are required"))
        if not _rfc3339(request.start_time) or not _rfc3339(request.end_time):
            return CreateEventResponse(common=CommonResponse.error("start_time and end_time must be RFC3339"))
        if _text(request.time_zone) is None:
            return CreateEventResponse(common=CommonResponse.error("time_zone is required"))
        async with self._lock:
            event_id = self._next_id("evt")
            event = Event(
                id=event_id,
                summary=summary,
                description=request.description if isinstance(request.description, str) else "",
                start_time=request.start_time,
                end_time=request.end_time,
                html_link=f"https://calendar.google.com/event?eid={event_id}",
            )
            self._events[request.credentials.access_token][calendar_id].append(event)
        return CreateEventResponse(created_event=event, common=CommonResponse(message="Event created"))

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        to = _text(request.to)
        if to is None or "@" not in to:
            return SendEmailResponse(common=CommonResponse.error("a valid recipient address is required"))
        if _text(request.subject) is None or not isinstance(request.body, str):
            return SendEmailResponse(common=CommonResponse.error("subject and body are required"))
        async with self._lock:
            self.sent.append(request)
            message_id = self._next_id("msg")
        return SendEmailResponse(message_id=message_id, common=CommonResponse(message="Email sent"))

    async def list_connections(self, request: ListConnectionsRequest) -> ListConnectionsResponse:
        page_size = _limit(request.page_size)
        if page_size is None:
            return ListConnectionsResponse(common=CommonResponse.error("page_size must be a positive integer"))
        async with self._lock:
            people = list(self._people[request.credentials.access_token][:page_size])
        return ListConnectionsResponse(people=people)

    async def create_contact(self, request: CreateContactRequest) -> CreateContactResponse:
        display_name = _text(request.display_name)
        if display_name is None:
            return CreateContactResponse(common=CommonResponse.error("display_name is required"))
        async with self._lock:
            person = Person(
                resource_name=f"people/{self._next_id('c')}",
                display_name=display_name,
                email=request.email if isinstance(request.email, str) else "",
                phone_number=request.phone_number if isinstance(request.phone_number, str) else "",
            )
            self._people[request.credentials.access_token].append(person)
        return CreateContactResponse(created_contact=person, common=CommonResponse(message="Contact created"))
