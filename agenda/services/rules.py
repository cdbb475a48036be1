"""Pure business rules shared by the ledger and the dispatcher.

Nothing here touches state: every function takes its inputs explicitly so the
ledger, the HTTP routes and the tests all agree on the same arithmetic.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from agenda.services.models import Client, TicketStatus

DEFAULT_HOURLY_RATE = 5000
INVOICE_GRACE_DAYS = 7
PLACEHOLDER = "N/A"
# Billed when a work report names no client.
WALK_IN_CLIENT = "Cliente Avulso"

# Transitions offered by the schedule view and the dispatcher. The store itself
# accepts any status change.
UI_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.PENDING: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED}),
    TicketStatus.COMPLETED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def compute_cost(hours: float, rate: float = DEFAULT_HOURLY_RATE) -> float:
    return hours * rate


def due_date(issue: datetime, grace_days: int = INVOICE_GRACE_DAYS) -> datetime:
    return issue + timedelta(days=grace_days)


def should_emit_invoice(old_status: TicketStatus, new_status: TicketStatus) -> bool:
    return new_status == TicketStatus.COMPLETED and old_status != TicketStatus.COMPLETED


def allowed_transitions(status: TicketStatus) -> frozenset[TicketStatus]:
    return UI_TRANSITIONS[status]


def is_allowed_transition(old_status: TicketStatus, new_status: TicketStatus) -> bool:
    return new_status in UI_TRANSITIONS[old_status]


def normalize_schedule_date(value: str) -> Optional[str]:
    """Return the ISO calendar date for a date or datetime string, or None."""
    text = value.strip()
    if not text:
        return None
    try:
        if len(text) == 10:
            return date.fromisoformat(text).isoformat()
        return parse_timestamp(text).date().isoformat()
    except ValueError:
        return None


@dataclass(frozen=True)
class ClientResolution:
    query: str
    matches: tuple[Client, ...] = field(default_factory=tuple)

    @property
    def client(self) -> Optional[Client]:
        # First match in collection order wins; callers see the rest via `matches`.
        return self.matches[0] if self.matches else None

    @property
    def found(self) -> bool:
        return bool(self.matches)

    @property
    def ambiguous(self) -> bool:
        return len(self.matches) > 1


def resolve_client(name: str, clients: Iterable[Client]) -> ClientResolution:
    needle = name.strip().lower()
    if not needle:
        return ClientResolution(query=name)
    matches = tuple(client for client in clients if needle in client.name.lower())
    return ClientResolution(query=name, matches=matches)
