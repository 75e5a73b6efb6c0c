"""HTTP client for a services gateway exposing the Google operations as JSON."""

from __future__ import annotations

from dataclasses import fields
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from concierge.credentials import Credentials
from concierge.errors import ServiceCallError
from concierge.services.base import (
    CreateContactRequest,
    CreateContactResponse,
    CreateEventRequest,
    CreateEventResponse,
    ListConnectionsRequest,
    ListConnectionsResponse,
    ListEventsRequest,
    ListEventsResponse,
    SendEmailRequest,
    SendEmailResponse,
)

ResponseT = TypeVar("ResponseT", bound=BaseModel)
USER_AGENT = "concierge/0.1"


def _request_body(request: Any) -> dict[str, Any]:
    credentials: Credentials = request.credentials
    body = {f.name: getattr(request, f.name) for f in fields(request) if f.name != "credentials"}
    body["common"] = {"auth_tokens": credentials.to_payload()}
    return body


class HttpGoogleServices:
    """Calls `POST {base_url}/<service>/<operation>` with the request as JSON."""

    def __init__(self, base_url: str, *, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _call(self, path: str, request: Any, response_type: type[ResponseT]) -> ResponseT:
        client = self._get_client()
        try:
            response = await client.post(path, json=_request_body(request))
            response.raise_for_status()
            return response_type.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise ServiceCallError(f"{path} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ServiceCallError(f"{path} unreachable: {exc!s}") from exc
        except ValueError as exc:
            raise ServiceCallError(f"{path} returned an invalid body: {exc!s}") from exc

    async def list_events(self, request: ListEventsRequest) -> ListEventsResponse:
        return await self._call("/calendar/events/list", request, ListEventsResponse)

    async def create_event(self, request: CreateEventRequest) -> CreateEventResponse:
        return await self._call("/calendar/events/create", request, CreateEventResponse)

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        return await self._call("/gmail/messages/send", request, SendEmailResponse)

    async def list_connections(self, request: ListConnectionsRequest) -> ListConnectionsResponse:
        return await self._call("/contacts/connections/list", request, ListConnectionsResponse)

    async def create_contact(self, request: CreateContactRequest) -> CreateContactResponse:
        return await self._call("/contacts/create", request, CreateContactResponse)
