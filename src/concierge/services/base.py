"""Contract of the external calendar, email and contacts operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, Field

from concierge.credentials import Credentials

STATUS_OK = "OK"
STATUS_ERROR = "ERROR"


# Requests are plain carriers; argument values are forwarded untouched and the
# service validates them.


@dataclass(frozen=True)
class ListEventsRequest:
    credentials: Credentials
    calendar_id: Any = "primary"
    max_results: Any = 10


@dataclass(frozen=True)
class CreateEventRequest:
    credentials: Credentials
    calendar_id: Any
    summary: Any
    start_time: Any
    end_time: Any
    time_zone: Any
    description: Any = ""


@dataclass(frozen=True)
class SendEmailRequest:
    credentials: Credentials
    to: Any
    subject: Any
    body: Any


@dataclass(frozen=True)
class ListConnectionsRequest:
    credentials: Credentials
    page_size: Any = 10


@dataclass(frozen=True)
class CreateContactRequest:
    credentials: Credentials
    display_name: Any
    email: Any = ""
    phone_number: Any = ""


class CommonResponse(BaseModel):
    status: str = STATUS_OK
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.status.upper() == STATUS_ERROR

    @classmethod
    def error(cls, message: str) -> CommonResponse:
        return cls(status=STATUS_ERROR, message=message)


class Event(BaseModel):
    id: str = ""
    summary: str = ""
    description: str = ""
    start_time: str = ""
    end_time: str = ""
    html_link: str = ""


class Person(BaseModel):
    resource_name: str = ""
    display_name: str = ""
    email: str = ""
    phone_number: str = ""


class ListEventsResponse(BaseModel):
    common: CommonResponse = Field(default_factory=CommonResponse)
    events: list[Event] = Field(default_factory=list)


class CreateEventResponse(BaseModel):
    common: CommonResponse = Field(default_factory=CommonResponse)
    created_event: Event | None = None


class SendEmailResponse(BaseModel):
    common: CommonResponse = Field(default_factory=CommonResponse)
    message_id: str = ""


class ListConnectionsResponse(BaseModel):
    common: CommonResponse = Field(default_factory=CommonResponse)
    people: list[Person] = Field(default_factory=list)


class CreateContactResponse(BaseModel):
    common: CommonResponse = Field(default_factory=CommonResponse)
    created_contact: Person | None = None


class GoogleServices(Protocol):
    """Calendar, Gmail and Contacts operations, one call per request."""

    async def list_events(self, request: ListEventsRequest) -> ListEventsResponse: ...

    async def create_event(self, request: CreateEventRequest) -> CreateEventResponse: ...

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse: ...

    async def list_connections(self, request: ListConnectionsRequest) -> ListConnectionsResponse: ...

    async def create_contact(self, request: CreateContactRequest) -> CreateContactResponse: ...
