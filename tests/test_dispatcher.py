from __future__ import annotations

import asyncio
from datetime import date, timedelta

import aiosqlite
import pytest

from agenda.services.dispatcher import ActionDispatcher
from agenda.services.errors import (
    ActionValidationError,
    PersistenceError,
    TicketNotFoundError,
    TransitionNotAllowedError,
)
from agenda.services.ledger import LedgerStore
from agenda.services.models import AgentRole, TicketStatus
from agenda.services.rules import parse_timestamp


def _dispatch(store: LedgerStore, name: str, args: dict, role: AgentRole = AgentRole.ADMIN):
    return asyncio.run(ActionDispatcher(store).dispatch(name, args, role))


def test_log_work_done_on_empty_store(store: LedgerStore) -> None:
    outcome = _dispatch(
        store,
        "logWorkDone",
        {"clientName": "Ana", "summary": "Format PC", "hours": 3},
        AgentRole.OPERATIONAL,
    )

    assert outcome.ok
    assert outcome.cost == 3 * store.hourly_rate
    assert set(outcome.created_ids) == {"ticket_id", "invoice_id", "client_id"}

    assert [client.name for client in store.clients] == ["Ana"]
    (ticket,) = store.tickets
    assert ticket.status == TicketStatus.COMPLETED
    assert ticket.cost == 3 * store.hourly_rate
    assert ticket.description == "Format PC"

    (invoice,) = store.invoices
    assert invoice.amount == 3 * store.hourly_rate
    issued = parse_timestamp(invoice.issue_date)
    assert parse_timestamp(invoice.due_date) - issued == timedelta(days=7)

    (log,) = store.logs
    assert log.action == "REPORT_WORK"
    assert log.agent == AgentRole.OPERATIONAL


def test_create_ticket_defaults_estimated_hours_to_zero(store: LedgerStore) -> None:
    outcome = _dispatch(store, "createTicket", {"title": "Setup", "scheduledDate": "2024-01-01"})

    ticket = store.get_ticket(outcome.created_ids["ticket_id"])
    assert ticket.estimated_hours == 0
    assert ticket.cost == 0
    assert ticket.client_id is None
    assert ticket.scheduled_date == date(2024, 1, 1).isoformat()
    assert store.logs[0].action == "CREATE_TICKET"


def test_create_ticket_accepts_numeric_strings_and_datetimes(store: LedgerStore) -> None:
    client_id = store.add_client("Ana")

    outcome = _dispatch(
        store,
        "createTicket",
        {
            "title": "Cabling",
            "scheduledDate": "2026-03-02T08:00:00Z",
            "estimatedHours": "2.5",
            "clientId": client_id,
        },
    )

    ticket = store.get_ticket(outcome.created_ids["ticket_id"])
    assert ticket.scheduled_date == "2026-03-02"
    assert ticket.estimated_hours == 2.5
    assert ticket.cost == 12500
    assert ticket.client_id == client_id


def test_add_client_without_name_is_rejected(store: LedgerStore) -> None:
    with pytest.raises(ActionValidationError) as excinfo:
        _dispatch(store, "addClient", {})

    assert excinfo.value.action == "addClient"
    assert excinfo.value.errors == ["name is required"]
    assert len(store.clients) == 0
    assert store.logs == []


def test_add_client_logs_creation(store: LedgerStore) -> None:
    outcome = _dispatch(store, "addClient", {"name": "Ana", "contact": "+244 923 000 111"})

    client = store.get_client(outcome.created_ids["client_id"])
    assert client.contact == "+244 923 000 111"
    assert client.email == "N/A"
    assert store.logs[0].action == "CREATE_CLIENT"
    assert store.logs[0].agent == AgentRole.ADMIN


@pytest.mark.parametrize("hours", ["abc", True, -1, None, [3]])
def test_log_work_done_requires_numeric_hours(store: LedgerStore, hours) -> None:
    with pytest.raises(ActionValidationError):
        _dispatch(store, "logWorkDone", {"clientName": "Ana", "summary": "Format PC", "hours": hours})

    assert store.tickets == []
    assert store.invoices == []
    assert store.clients == []


def test_validation_lists_every_problem(store: LedgerStore) -> None:
    with pytest.raises(ActionValidationError) as excinfo:
        _dispatch(store, "createTicket", {"scheduledDate": "soon", "estimatedHours": "x"})

    assert excinfo.value.errors == [
        "title is required",
        "scheduledDate must be an ISO date (YYYY-MM-DD)",
        "estimatedHours must be a non-negative number",
    ]


def test_create_ticket_rejects_unknown_client(store: LedgerStore) -> None:
    with pytest.raises(ActionValidationError):
        _dispatch(store, "createTicket", {"title": "Setup", "scheduledDate": "2024-01-01", "clientId": "nope"})
    assert store.tickets == []


def test_unknown_action_is_ignored(store: LedgerStore, repository) -> None:
    outcome = _dispatch(store, "deleteEverything", {"really": True})

    assert not outcome.recognized
    assert not outcome.ok
    assert store.snapshot() == {"clients": [], "tickets": [], "invoices": [], "logs": []}
    assert repository.saves == []


def test_actions_apply_in_order_without_rollback(store: LedgerStore) -> None:
    dispatcher = ActionDispatcher(store)

    outcomes = asyncio.run(
        dispatcher.apply_actions(
            [
                ("addClient", {"name": "Ana"}),
                ("addClient", {}),
                ("createTicket", {"title": "Setup", "scheduledDate": "2026-02-20", "estimatedHours": 1}),
                ("sendFax", {}),
            ],
            AgentRole.SUPERVISOR,
        )
    )

    assert [outcome.ok for outcome in outcomes] == [True, False, True, False]
    assert outcomes[1].error is not None
    assert not outcomes[3].recognized
    assert len(store.clients) == 1
    assert len(store.tickets) == 1
    assert [log.action for log in store.logs] == ["CREATE_TICKET", "CREATE_CLIENT"]


def test_each_applied_action_is_saved(store: LedgerStore, repository) -> None:
    _dispatch(store, "addClient", {"name": "Ana"})
    _dispatch(store, "logWorkDone", {"clientName": "Ana", "summary": "Format PC", "hours": 1})

    assert [sorted(save) for save in repository.saves] == [
        ["clients", "logs"],
        ["invoices", "logs", "tickets"],
    ]


def test_ambiguous_client_is_reported_on_outcome(store: LedgerStore) -> None:
    store.add_client("Ana Silva")
    store.add_client("Ana Costa")

    outcome = _dispatch(store, "logWorkDone", {"clientName": "ana", "summary": "Format PC", "hours": 2})

    assert outcome.ambiguous_client_ids == [client.id for client in store.clients]
    assert "client_id" not in outcome.created_ids
    assert store.get_ticket(outcome.created_ids["ticket_id"]).client_id == store.clients[0].id


def test_transition_follows_schedule_state_machine(store: LedgerStore) -> None:
    dispatcher = ActionDispatcher(store)
    ticket_id = store.add_ticket("Printer", "2026-02-13", estimated_hours=2)

    with pytest.raises(TransitionNotAllowedError):
        asyncio.run(dispatcher.transition_ticket(ticket_id, TicketStatus.COMPLETED, AgentRole.OPERATIONAL))

    asyncio.run(dispatcher.transition_ticket(ticket_id, TicketStatus.IN_PROGRESS, AgentRole.OPERATIONAL))
    change = asyncio.run(dispatcher.transition_ticket(ticket_id, TicketStatus.COMPLETED, AgentRole.OPERATIONAL))

    assert change.ticket.actual_hours == 2
    assert change.invoice.amount == 10000
    assert store.logs[0].action == "UPDATE_TICKET"

    with pytest.raises(TransitionNotAllowedError):
        asyncio.run(dispatcher.transition_ticket(ticket_id, TicketStatus.CANCELLED, AgentRole.OPERATIONAL))
    assert len(store.invoices) == 1


def test_transition_unknown_ticket(store: LedgerStore) -> None:
    with pytest.raises(TicketNotFoundError):
        asyncio.run(ActionDispatcher(store).transition_ticket("missing", TicketStatus.CANCELLED, AgentRole.ADMIN))
    assert store.logs == []


class FlakyRepository:
    """Fails the first ``failures`` saves, then records like the usual fake."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.saves: list[dict] = []

    async def save(self, documents: dict) -> None:
        if self.failures:
            self.failures -= 1
            raise aiosqlite.OperationalError("disk I/O error")
        self.saves.append(documents)


def test_failed_save_does_not_drop_the_rest_of_the_turn() -> None:
    repository = FlakyRepository(failures=1)
    store = LedgerStore(hourly_rate=5000, repository=repository)

    outcomes = asyncio.run(
        ActionDispatcher(store).apply_actions(
            [("addClient", {"name": "Ana"}), ("addClient", {"name": "Bruno"})],
            AgentRole.ADMIN,
        )
    )

    assert [outcome.ok for outcome in outcomes] == [True, True]
    assert [outcome.persisted for outcome in outcomes] == [False, True]
    assert [client.name for client in store.clients] == ["Ana", "Bruno"]
    (saved,) = repository.saves
    assert [row["name"] for row in saved["clients"]] == ["Ana", "Bruno"]
    assert store.dirty == frozenset()


def test_direct_dispatch_surfaces_save_failures() -> None:
    store = LedgerStore(hourly_rate=5000, repository=FlakyRepository(failures=1))

    with pytest.raises(PersistenceError):
        asyncio.run(ActionDispatcher(store).dispatch("addClient", {"name": "Ana"}, AgentRole.ADMIN))

    assert [client.name for client in store.clients] == ["Ana"]
    assert "clients" in store.dirty
