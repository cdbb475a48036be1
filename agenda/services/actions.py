"""The closed set of actions an agent may propose.

Each recognized action name maps to a frozen argument record. Anything else
parses to :class:`UnrecognizedAction`, which the dispatcher treats as a no-op.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from agenda.services.errors import ActionValidationError
from agenda.services.rules import normalize_schedule_date

ADD_CLIENT = "addClient"
CREATE_TICKET = "createTicket"
LOG_WORK_DONE = "logWorkDone"


@dataclass(frozen=True)
class AddClientAction:
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None

    action_name = ADD_CLIENT
    audit_code = "CREATE_CLIENT"


@dataclass(frozen=True)
class CreateTicketAction:
    title: str
    scheduled_date: str
    client_id: Optional[str] = None
    description: str = ""
    estimated_hours: float = 0

    action_name = CREATE_TICKET
    audit_code = "CREATE_TICKET"


@dataclass(frozen=True)
class LogWorkDoneAction:
    client_name: str
    summary: str
    hours: float
    details: str = ""

    action_name = LOG_WORK_DONE
    audit_code = "REPORT_WORK"


@dataclass(frozen=True)
class UnrecognizedAction:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


Action = Union[AddClientAction, CreateTicketAction, LogWorkDoneAction, UnrecognizedAction]


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _as_hours(value: Any) -> Optional[float]:
    """Coerce a model-supplied hour count; None when it is not a usable number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return int(number) if number.is_integer() else number


def _optional_text(args: dict[str, Any], key: str, errors: list[str]) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(f"{key} must be a string")
        return None
    return value.strip() or None


def _parse_add_client(args: dict[str, Any]) -> AddClientAction:
    errors: list[str] = []
    name = args.get("name")
    if not _is_non_empty_string(name):
        errors.append("name is required")
    # Malformed contact details fall back to the placeholder instead of failing.
    contact = args.get("contact") if _is_non_empty_string(args.get("contact")) else None
    email = args.get("email") if _is_non_empty_string(args.get("email")) else None
    if errors:
        raise ActionValidationError(ADD_CLIENT, errors)
    return AddClientAction(name=name.strip(), contact=contact, email=email)


def _parse_create_ticket(args: dict[str, Any]) -> CreateTicketAction:
    errors: list[str] = []
    title = args.get("title")
    if not _is_non_empty_string(title):
        errors.append("title is required")

    scheduled_date = None
    raw_date = args.get("scheduledDate")
    if not _is_non_empty_string(raw_date):
        errors.append("scheduledDate is required")
    else:
        scheduled_date = normalize_schedule_date(raw_date)
        if scheduled_date is None:
            errors.append("scheduledDate must be an ISO date (YYYY-MM-DD)")

    estimated_hours: Optional[float] = 0
    if args.get("estimatedHours") is not None:
        estimated_hours = _as_hours(args["estimatedHours"])
        if estimated_hours is None:
            errors.append("estimatedHours must be a non-negative number")

    client_id = _optional_text(args, "clientId", errors)
    description = _optional_text(args, "description", errors) or ""

    if errors:
        raise ActionValidationError(CREATE_TICKET, errors)
    return CreateTicketAction(
        title=title.strip(),
        scheduled_date=scheduled_date,
        client_id=client_id,
        description=description,
        estimated_hours=estimated_hours,
    )


def _parse_log_work_done(args: dict[str, Any]) -> LogWorkDoneAction:
    errors: list[str] = []
    client_name = args.get("clientName")
    if not _is_non_empty_string(client_name):
        errors.append("clientName is required")
    summary = args.get("summary")
    if not _is_non_empty_string(summary):
        errors.append("summary is required")

    hours = None
    if args.get("hours") is None:
        errors.append("hours is required")
    else:
        hours = _as_hours(args["hours"])
        if hours is None:
            errors.append("hours must be a non-negative number")

    details = _optional_text(args, "details", errors)

    if errors:
        raise ActionValidationError(LOG_WORK_DONE, errors)
    return LogWorkDoneAction(
        client_name=client_name.strip(),
        summary=summary.strip(),
        hours=hours,
        details=details or summary.strip(),
    )


PARSERS = {
    ADD_CLIENT: _parse_add_client,
    CREATE_TICKET: _parse_create_ticket,
    LOG_WORK_DONE: _parse_log_work_done,
}


def parse_action(name: str, args: Optional[dict[str, Any]]) -> Action:
    if args is None:
        args = {}
    if not isinstance(args, dict):
        if name in PARSERS:
            raise ActionValidationError(name, ["arguments must be an object"])
        return UnrecognizedAction(name=name)
    parser = PARSERS.get(name)
    if parser is None:
        return UnrecognizedAction(name=name, args=dict(args))
    return parser(args)


# OpenAI-compatible tool declarations handed to the agent gateway.
ACTION_TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": ADD_CLIENT,
            "description": "Add a new client to the client roster.",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Client name"},
                    "contact": {"type": "string", "description": "Client phone number"},
                    "email": {"type": "string", "description": "Client email address"},
                },
                "required": ["name"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": CREATE_TICKET,
            "description": "Create a new service ticket or schedule a future visit.",
            "parameters": {
                "type": "object",
                "properties": {
                    "clientId": {"type": "string", "description": "Client ID (ask the user if unknown)"},
                    "title": {"type": "string", "description": "Short service title"},
                    "description": {"type": "string", "description": "Detailed problem description"},
                    "scheduledDate": {"type": "string", "description": "Scheduled date, ISO 8601 (YYYY-MM-DD)"},
                    "estimatedHours": {"type": "number", "description": "Estimated hours of work"},
                },
                "required": ["title", "scheduledDate"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": LOG_WORK_DONE,
            "description": (
                "Record work the technician already finished. Creates a completed ticket, "
                "computes the cost and issues the invoice automatically."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "clientName": {"type": "string", "description": "Client name as mentioned in the text"},
                    "summary": {"type": "string", "description": "Short summary of the work (e.g. Format PC)"},
                    "details": {"type": "string", "description": "Full technical details of the fix"},
                    "hours": {"type": "number", "description": "Hours spent"},
                },
                "required": ["summary", "hours", "clientName"],
            },
        },
    },
]
