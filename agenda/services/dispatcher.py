from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from agenda.services.actions import (
    Action,
    AddClientAction,
    CreateTicketAction,
    LogWorkDoneAction,
    UnrecognizedAction,
    parse_action,
)
from agenda.services.errors import ActionValidationError, PersistenceError, TransitionNotAllowedError
from agenda.services.ledger import LedgerStore, StatusChange
from agenda.services.models import AgentRole, TicketStatus
from agenda.services.rules import is_allowed_transition

logger = logging.getLogger(__name__)

UPDATE_TICKET = "UPDATE_TICKET"


@dataclass
class ActionOutcome:
    action: str
    recognized: bool = True
    created_ids: dict[str, str] = field(default_factory=dict)
    cost: Optional[float] = None
    summary: str = ""
    error: Optional[ActionValidationError] = None
    ambiguous_client_ids: list[str] = field(default_factory=list)
    persisted: bool = True

    @property
    def ok(self) -> bool:
        return self.recognized and self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "recognized": self.recognized,
            "ok": self.ok,
            "created_ids": self.created_ids,
            "cost": self.cost,
            "summary": self.summary,
            "errors": self.error.errors if self.error else [],
            "ambiguous_client_ids": self.ambiguous_client_ids,
            "persisted": self.persisted,
        }


class ActionDispatcher:
    """Validates proposed actions and applies them to the ledger.

    Every applied action is followed by an audit entry and a snapshot save.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def validate(self, name: str, args: Optional[dict[str, Any]]) -> Action:
        action = parse_action(name, args)
        if isinstance(action, CreateTicketAction) and action.client_id is not None:
            if self.store.get_client(action.client_id) is None:
                raise ActionValidationError(name, [f"clientId {action.client_id} does not match any client"])
        return action

    async def dispatch(self, name: str, args: Optional[dict[str, Any]], role: AgentRole) -> ActionOutcome:
        action = self.validate(name, args)
        outcome = self._apply(action, role)
        await self.store.save()
        return outcome

    async def apply_actions(
        self,
        proposals: Iterable[tuple[str, Optional[dict[str, Any]]]],
        role: AgentRole,
    ) -> list[ActionOutcome]:
        """Apply each proposal in order; a rejected action or a failed save never stops the rest.

        A failed save leaves the change applied in memory and still marked dirty,
        so the next successful save writes it.
        """
        outcomes: list[ActionOutcome] = []
        for name, args in proposals:
            try:
                outcome = self._apply(self.validate(name, args), role)
            except ActionValidationError as exc:
                logger.warning("Rejected %s from %s: %s", name, role.value, "; ".join(exc.errors))
                outcomes.append(ActionOutcome(action=name, error=exc, summary=str(exc)))
                continue
            try:
                await self.store.save()
            except PersistenceError as exc:
                logger.warning("Applied %s from %s but could not save it: %s", name, role.value, exc)
                outcome.persisted = False
            outcomes.append(outcome)
        return outcomes

    def _apply(self, action: Action, role: AgentRole) -> ActionOutcome:
        store = self.store

        if isinstance(action, AddClientAction):
            client_id = store.add_client(action.name, contact=action.contact, email=action.email)
            store.add_log(role, action.audit_code, f"Client {action.name} created via chat")
            return ActionOutcome(
                action=action.action_name,
                created_ids={"client_id": client_id},
                summary=f"Client {action.name} added (ID: {client_id}).",
            )

        if isinstance(action, CreateTicketAction):
            ticket_id = store.add_ticket(
                action.title,
                action.scheduled_date,
                client_id=action.client_id,
                description=action.description,
                estimated_hours=action.estimated_hours,
            )
            store.add_log(role, action.audit_code, f"Ticket {action.title} created via chat")
            return ActionOutcome(
                action=action.action_name,
                created_ids={"ticket_id": ticket_id},
                cost=store.get_ticket(ticket_id).cost,
                summary=f'Ticket "{action.title}" scheduled for {action.scheduled_date} (ID: {ticket_id}).',
            )

        if isinstance(action, LogWorkDoneAction):
            report = store.log_completed_work(action.client_name, action.summary, action.details, action.hours)
            store.add_log(role, action.audit_code, f"Work report: {action.summary} ({action.hours}h)")
            created_ids = {"ticket_id": report.ticket_id, "invoice_id": report.invoice_id}
            if report.client_created:
                created_ids["client_id"] = report.client_id
            return ActionOutcome(
                action=action.action_name,
                created_ids=created_ids,
                cost=report.cost,
                summary=f'Work report "{action.summary}" recorded; invoice issued for {report.cost:g} ({action.hours}h).',
                ambiguous_client_ids=report.ambiguous_client_ids,
            )

        if isinstance(action, UnrecognizedAction):
            logger.info("Ignoring unrecognized action %s from %s", action.name, role.value)
            return ActionOutcome(action=action.name, recognized=False)

        raise TypeError(f"Unhandled action type: {type(action).__name__}")

    async def transition_ticket(
        self,
        ticket_id: str,
        status: TicketStatus,
        role: AgentRole,
        actual_hours: Optional[float] = None,
    ) -> StatusChange:
        """Status change offered by the schedule view, limited to the UI state machine."""
        ticket = self.store.get_ticket(ticket_id)
        if ticket is not None and not is_allowed_transition(ticket.status, status):
            raise TransitionNotAllowedError(ticket_id, ticket.status.value, status.value)
        if ticket is not None and status == TicketStatus.COMPLETED and actual_hours is None:
            actual_hours = ticket.estimated_hours

        change = self.store.update_ticket_status(ticket_id, status, actual_hours)
        details = f"Ticket {change.ticket.title}: {change.previous_status.value} -> {status.value}"
        if change.invoice is not None:
            details += f" (invoice {change.invoice.id}, {change.invoice.amount:g})"
        self.store.add_log(role, UPDATE_TICKET, details)
        await self.store.save()
        return change
