"""Tool input models and the declarations handed to the model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from republic import Tool, tool_from_model

from concierge.tools.arguments import ArgKind, ArgSpec


class ListCalendarEventsInput(BaseModel):
    """List events from the user's Google Calendar."""

    calendar_id: str = Field(default="primary", description="The ID of the calendar to list events from (e.g., 'primary').")
    max_results: int = Field(default=10, description="Maximum number of events to return.")


class CreateCalendarEventInput(BaseModel):
    """Create a new event in the user's Google Calendar."""

    calendar_id: str = Field(..., description="The ID of the calendar to create the event in (e.g., 'primary').")
    summary: str = Field(..., description="Summary or title of the event.")
    description: str = Field(default="", description="Description of the event.")
    start_time: str = Field(..., description="Start time of the event in RFC3339 format (e.g., '2025-05-22T15:00:00Z').")
    end_time: str = Field(..., description="End time of the event in RFC3339 format (e.g., '2025-05-22T16:00:00Z').")
    time_zone: str = Field(..., description="Time zone of the event (e.g., 'America/Argentina/Buenos_Aires').")


class SendEmailInput(BaseModel):
    """Send an email on behalf of the user."""

    to: str = Field(..., description="Recipient's email address.")
    subject: str = Field(..., description="Subject of the email.")
    body: str = Field(..., description="Body content of the email.")


class ListContactsInput(BaseModel):
    """List connections (contacts) from the user's Google Contacts."""

    page_size: int = Field(default=10, description="Maximum number of contacts to return per page.")


class CreateContactInput(BaseModel):
    """Create a new contact in the user's Google Contacts."""

    display_name: str = Field(..., description="Display name of the new contact.")
    email: str = Field(default="", description="Email address of the new contact.")
    phone_number: str = Field(default="", description="Phone number of the new contact.")


TOOL_INPUTS: dict[str, type[BaseModel]] = {
    "list_calendar_events": ListCalendarEventsInput,
    "create_calendar_event": CreateCalendarEventInput,
    "send_email": SendEmailInput,
    "list_contacts": ListContactsInput,
    "create_contact": CreateContactInput,
}


def _kind_of(annotation: object) -> ArgKind:
    if annotation is str:
        return ArgKind.STRING
    if annotation is int:
        return ArgKind.INTEGER
    return ArgKind.STRUCTURED


def arg_specs(model: type[BaseModel]) -> tuple[ArgSpec, ...]:
    """Derive coercion rules from an input model's fields."""
    specs: list[ArgSpec] = []
    for name, info in model.model_fields.items():
        required = info.is_required()
        specs.append(
            ArgSpec(
                name=name,
                kind=_kind_of(info.annotation),
                required=required,
                default=None if required else info.default,
            )
        )
    return tuple(specs)


def declare_tool(name: str, model: type[BaseModel]) -> Tool:
    """Declare one tool to the model; execution goes through the ToolDispatcher."""

    def _handler(params: BaseModel) -> dict[str, Any]:
        return params.model_dump()

    return tool_from_model(
        model,
        _handler,
        name=name,
        description=(model.__doc__ or name).strip(),
    )


def model_tools() -> list[Tool]:
    return [declare_tool(name, model) for name, model in TOOL_INPUTS.items()]
