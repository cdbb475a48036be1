from __future__ import annotations

from datetime import datetime, timezone

from agenda.services.models import Client, TicketStatus
from agenda.services.rules import (
    compute_cost,
    due_date,
    is_allowed_transition,
    iso_timestamp,
    normalize_schedule_date,
    resolve_client,
    should_emit_invoice,
)


def test_cost_is_hours_times_rate() -> None:
    assert compute_cost(3, 5000) == 15000
    assert compute_cost(1.5, 5000) == 7500
    assert compute_cost(0, 5000) == 0


def test_due_date_is_seven_days_after_issue() -> None:
    issued = datetime(2026, 2, 13, 9, 30, tzinfo=timezone.utc)
    assert iso_timestamp(due_date(issued)) == "2026-02-20T09:30:00Z"
    assert iso_timestamp(due_date(issued, grace_days=14)) == "2026-02-27T09:30:00Z"


def test_invoice_only_on_entry_into_completed() -> None:
    assert should_emit_invoice(TicketStatus.PENDING, TicketStatus.COMPLETED)
    assert should_emit_invoice(TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED)
    assert should_emit_invoice(TicketStatus.CANCELLED, TicketStatus.COMPLETED)
    assert not should_emit_invoice(TicketStatus.COMPLETED, TicketStatus.COMPLETED)
    assert not should_emit_invoice(TicketStatus.PENDING, TicketStatus.IN_PROGRESS)


def test_ui_state_machine() -> None:
    assert is_allowed_transition(TicketStatus.PENDING, TicketStatus.IN_PROGRESS)
    assert is_allowed_transition(TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED)
    assert is_allowed_transition(TicketStatus.PENDING, TicketStatus.CANCELLED)
    assert is_allowed_transition(TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED)
    assert not is_allowed_transition(TicketStatus.PENDING, TicketStatus.COMPLETED)
    assert not is_allowed_transition(TicketStatus.COMPLETED, TicketStatus.PENDING)
    assert not is_allowed_transition(TicketStatus.CANCELLED, TicketStatus.IN_PROGRESS)


def test_resolve_client_is_case_insensitive_substring() -> None:
    clients = [Client(id="c1", name="Padaria Kianda"), Client(id="c2", name="Ana Silva")]

    resolution = resolve_client("silva", clients)
    assert resolution.found
    assert resolution.client.id == "c2"
    assert not resolution.ambiguous

    missing = resolve_client("Bruno", clients)
    assert not missing.found
    assert missing.client is None


def test_resolve_client_exposes_ambiguity_and_keeps_first_match() -> None:
    clients = [Client(id="c1", name="Ana Silva"), Client(id="c2", name="Ana Costa")]

    resolution = resolve_client("Ana", clients)
    assert resolution.ambiguous
    assert resolution.client.id == clients[0].id
    assert [client.id for client in resolution.matches] == ["c1", "c2"]


def test_blank_name_matches_nothing() -> None:
    assert not resolve_client("   ", [Client(id="c1", name="Ana")]).found


def test_schedule_date_normalization() -> None:
    assert normalize_schedule_date("2024-01-01") == "2024-01-01"
    assert normalize_schedule_date("2024-01-01T10:00:00Z") == "2024-01-01"
    assert normalize_schedule_date("tomorrow") is None
    assert normalize_schedule_date("2024-13-01") is None
