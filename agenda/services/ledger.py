from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

import aiosqlite

from agenda.services.errors import ActionValidationError, PersistenceError, TicketNotFoundError
from agenda.services.models import AgentRole, Client, Invoice, SystemLog, Ticket, TicketStatus
from agenda.services.persistence import COLLECTIONS, SnapshotRepository
from agenda.services.rules import (
    DEFAULT_HOURLY_RATE,
    INVOICE_GRACE_DAYS,
    PLACEHOLDER,
    ClientResolution,
    compute_cost,
    due_date,
    iso_timestamp,
    resolve_client,
    should_emit_invoice,
    utc_now,
)

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid4())


def _text_or_placeholder(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return PLACEHOLDER


def _check_hours(hours: float, label: str, action: str) -> float:
    if isinstance(hours, bool) or not isinstance(hours, (int, float)):
        raise ActionValidationError(action, [f"{label} must be a number"])
    if hours < 0:
        raise ActionValidationError(action, [f"{label} must be >= 0"])
    return hours


@dataclass
class StatusChange:
    ticket: Ticket
    previous_status: TicketStatus
    invoice: Optional[Invoice] = None


@dataclass
class WorkReport:
    ticket_id: str
    invoice_id: str
    client_id: str
    cost: float
    client_created: bool
    resolution: ClientResolution

    @property
    def ambiguous_client_ids(self) -> list[str]:
        if not self.resolution.ambiguous:
            return []
        return [client.id for client in self.resolution.matches]


class LedgerStore:
    """In-memory authority for clients, tickets, invoices and the audit log.

    Mutations are synchronous and immediately visible to every reader. The
    collections touched since the last ``save()`` are tracked so the repository
    only rewrites the documents that changed.
    """

    def __init__(
        self,
        *,
        hourly_rate: float = DEFAULT_HOURLY_RATE,
        grace_days: int = INVOICE_GRACE_DAYS,
        repository: Optional[SnapshotRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.hourly_rate = hourly_rate
        self.grace_days = grace_days
        self.repository = repository
        self.clock = clock
        self._clients: list[Client] = []
        self._tickets: list[Ticket] = []
        self._invoices: list[Invoice] = []
        self._logs: list[SystemLog] = []
        self._dirty: set[str] = set()

    # -- persistence ---------------------------------------------------------

    @classmethod
    async def load(cls, repository: SnapshotRepository, **kwargs: Any) -> "LedgerStore":
        snapshot = await repository.load_all()
        store = cls(repository=repository, **kwargs)
        store._clients = [Client.from_dict(row) for row in snapshot["clients"]]
        store._tickets = [Ticket.from_dict(row) for row in snapshot["tickets"]]
        store._invoices = [Invoice.from_dict(row) for row in snapshot["invoices"]]
        store._logs = [SystemLog.from_dict(row) for row in snapshot["logs"]]
        logger.info(
            "Ledger loaded: %d clients, %d tickets, %d invoices, %d logs",
            len(store._clients), len(store._tickets), len(store._invoices), len(store._logs),
        )
        return store

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "clients": [client.to_dict() for client in self._clients],
            "tickets": [ticket.to_dict() for ticket in self._tickets],
            "invoices": [invoice.to_dict() for invoice in self._invoices],
            "logs": [log.to_dict() for log in self._logs],
        }

    @property
    def dirty(self) -> frozenset[str]:
        return frozenset(self._dirty)

    async def save(self) -> None:
        if not self._dirty:
            return
        if self.repository is not None:
            snapshot = self.snapshot()
            try:
                await self.repository.save({key: snapshot[key] for key in COLLECTIONS if key in self._dirty})
            except (aiosqlite.Error, OSError) as exc:
                logger.error("Ledger save failed for %s: %s", ", ".join(sorted(self._dirty)), exc)
                raise PersistenceError(f"Ledger save failed: {exc}") from exc
        self._dirty.clear()

    # -- readers -------------------------------------------------------------

    @property
    def clients(self) -> list[Client]:
        return list(self._clients)

    @property
    def tickets(self) -> list[Ticket]:
        return list(self._tickets)

    @property
    def invoices(self) -> list[Invoice]:
        return list(self._invoices)

    @property
    def logs(self) -> list[SystemLog]:
        return list(self._logs)

    def get_client(self, client_id: str) -> Optional[Client]:
        return next((client for client in self._clients if client.id == client_id), None)

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        return next((ticket for ticket in self._tickets if ticket.id == ticket_id), None)

    def invoices_for_ticket(self, ticket_id: str) -> list[Invoice]:
        return [invoice for invoice in self._invoices if invoice.ticket_id == ticket_id]

    def open_tickets(self) -> list[Ticket]:
        return [ticket for ticket in self._tickets if not ticket.status.is_terminal]

    # -- mutations -----------------------------------------------------------

    def add_client(
        self,
        name: str,
        contact: Any = None,
        email: Any = None,
        notes: Optional[str] = None,
    ) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ActionValidationError("addClient", ["name is required"])
        client = Client(
            id=new_id(),
            name=name.strip(),
            contact=_text_or_placeholder(contact),
            email=_text_or_placeholder(email),
            notes=notes if isinstance(notes, str) and notes.strip() else None,
        )
        self._clients.append(client)
        self._dirty.add("clients")
        logger.info("Client created: %s (%s)", client.name, client.id)
        return client.id

    def add_ticket(
        self,
        title: str,
        scheduled_date: str,
        client_id: Optional[str] = None,
        description: str = "",
        estimated_hours: float = 0,
    ) -> str:
        hours = _check_hours(estimated_hours, "estimatedHours", "createTicket")
        ticket = Ticket(
            id=new_id(),
            client_id=client_id,
            title=title,
            description=description,
            status=TicketStatus.PENDING,
            scheduled_date=scheduled_date,
            estimated_hours=hours,
            cost=compute_cost(hours, self.hourly_rate),
            created_at=iso_timestamp(self.clock()),
        )
        self._tickets.append(ticket)
        self._dirty.add("tickets")
        logger.info("Ticket created: %s for %s on %s", ticket.id, client_id or "-", scheduled_date)
        return ticket.id

    def update_ticket_status(
        self,
        ticket_id: str,
        status: TicketStatus,
        actual_hours: Optional[float] = None,
    ) -> StatusChange:
        ticket = self.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)

        previous = ticket.status
        if actual_hours is not None:
            ticket.actual_hours = _check_hours(actual_hours, "actual_hours", "updateTicketStatus")
            ticket.cost = compute_cost(ticket.actual_hours, self.hourly_rate)
        ticket.status = status
        self._dirty.add("tickets")

        change = StatusChange(ticket=ticket, previous_status=previous)
        if should_emit_invoice(previous, status):
            if self.invoices_for_ticket(ticket.id):
                # Reopened and completed again; the first completion already billed it.
                logger.warning("Ticket %s re-entered Completed; keeping its existing invoice", ticket.id)
            else:
                change.invoice = self._issue_invoice(ticket)
        logger.info("Ticket %s: %s -> %s", ticket.id, previous.value, status.value)
        return change

    def log_completed_work(
        self,
        client_name: str,
        summary: str,
        details: str,
        hours: float,
    ) -> WorkReport:
        hours = _check_hours(hours, "hours", "logWorkDone")
        resolution = resolve_client(client_name, self._clients)
        if resolution.ambiguous:
            logger.warning(
                "Client name %r matches %d clients; using %s",
                client_name, len(resolution.matches), resolution.client.name,
            )
        if resolution.client is not None:
            client_id = resolution.client.id
        else:
            client_id = self.add_client(client_name)

        now = self.clock()
        cost = compute_cost(hours, self.hourly_rate)
        ticket = Ticket(
            id=new_id(),
            client_id=client_id,
            title=summary,
            description=details,
            status=TicketStatus.COMPLETED,
            scheduled_date=now.date().isoformat(),
            estimated_hours=hours,
            actual_hours=hours,
            cost=cost,
            created_at=iso_timestamp(now),
        )
        self._tickets.append(ticket)
        self._dirty.add("tickets")
        invoice = self._issue_invoice(ticket)

        return WorkReport(
            ticket_id=ticket.id,
            invoice_id=invoice.id,
            client_id=client_id,
            cost=cost,
            client_created=not resolution.found,
            resolution=resolution,
        )

    def add_log(self, agent: AgentRole, action: str, details: str) -> SystemLog:
        entry = SystemLog(
            id=new_id(),
            timestamp=iso_timestamp(self.clock()),
            agent=agent,
            action=action,
            details=details,
        )
        self._logs.insert(0, entry)
        self._dirty.add("logs")
        return entry

    def _issue_invoice(self, ticket: Ticket) -> Invoice:
        issued = self.clock()
        invoice = Invoice(
            id=new_id(),
            ticket_id=ticket.id,
            amount=ticket.cost,
            issue_date=iso_timestamp(issued),
            due_date=iso_timestamp(due_date(issued, self.grace_days)),
        )
        self._invoices.append(invoice)
        self._dirty.add("invoices")
        logger.info("Invoice %s issued for ticket %s: %s", invoice.id, ticket.id, invoice.amount)
        return invoice

    # -- checks --------------------------------------------------------------

    def integrity_errors(self) -> list[str]:
        """Check the ledger invariants against the current hourly rate."""
        errors: list[str] = []
        tickets = {ticket.id: ticket for ticket in self._tickets}

        for ticket in self._tickets:
            expected = compute_cost(ticket.billable_hours, self.hourly_rate)
            if ticket.cost != expected:
                errors.append(f"ticket {ticket.id} cost {ticket.cost} != {expected}")
            if ticket.client_id is not None and self.get_client(ticket.client_id) is None:
                errors.append(f"ticket {ticket.id} references unknown client {ticket.client_id}")

        billed: set[str] = set()
        for invoice in self._invoices:
            ticket = tickets.get(invoice.ticket_id)
            if ticket is None:
                errors.append(f"invoice {invoice.id} references unknown ticket {invoice.ticket_id}")
                continue
            if ticket.status != TicketStatus.COMPLETED:
                errors.append(f"invoice {invoice.id} references {ticket.status.value} ticket {ticket.id}")
            if ticket.id in billed:
                errors.append(f"ticket {ticket.id} has more than one invoice")
            billed.add(ticket.id)

        return errors
