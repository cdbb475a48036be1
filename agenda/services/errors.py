from __future__ import annotations

from typing import Optional


class AgendaError(RuntimeError):
    pass


class ActionValidationError(AgendaError):
    """A proposed action is missing a required argument or carries a malformed one."""

    def __init__(self, action: str, errors: list[str]) -> None:
        self.action = action
        self.errors = list(errors)
        super().__init__(f"{action}: " + "; ".join(self.errors))


class TicketNotFoundError(AgendaError, LookupError):
    def __init__(self, ticket_id: str) -> None:
        self.ticket_id = ticket_id
        super().__init__(f"Ticket not found: {ticket_id}")


class TransitionNotAllowedError(AgendaError):
    def __init__(self, ticket_id: str, old_status: str, new_status: str) -> None:
        self.ticket_id = ticket_id
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(f"Ticket {ticket_id} cannot move from {old_status} to {new_status}")


class GatewayError(AgendaError):
    """The external agent call failed: transport, auth or a malformed response."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(AgendaError):
    """Writing the ledger snapshot failed; the in-memory ledger keeps its unsaved changes."""
