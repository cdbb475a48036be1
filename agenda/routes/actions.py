from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from agenda.routes.deps import get_dispatcher
from agenda.services.dispatcher import ActionDispatcher
from agenda.services.errors import (
    ActionValidationError,
    PersistenceError,
    TicketNotFoundError,
    TransitionNotAllowedError,
)
from agenda.services.models import AgentRole, TicketStatus

router = APIRouter(prefix="/api", tags=["actions"])


class ActionRequest(BaseModel):
    args: dict[str, Any] = Field(default_factory=dict)
    role: AgentRole = AgentRole.ADMIN


class StatusUpdateRequest(BaseModel):
    status: TicketStatus
    actual_hours: Optional[float] = Field(default=None, ge=0)
    role: AgentRole = AgentRole.OPERATIONAL


@router.post("/actions/{action_name}")
async def run_action(
    action_name: str,
    body: ActionRequest,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    try:
        outcome = await dispatcher.dispatch(action_name, body.args, body.role)
    except ActionValidationError as exc:
        raise HTTPException(status_code=422, detail={"action": exc.action, "errors": exc.errors}) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail="Ledger could not be saved") from exc
    return outcome.to_dict()


@router.post("/tickets/{ticket_id}/status")
async def update_ticket_status(
    ticket_id: str,
    body: StatusUpdateRequest,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    try:
        change = await dispatcher.transition_ticket(ticket_id, body.status, body.role, body.actual_hours)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Ticket not found") from exc
    except TransitionNotAllowedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail="Ledger could not be saved") from exc

    return {
        "ticket": change.ticket.to_dict(),
        "previous_status": change.previous_status.value,
        "invoice": change.invoice.to_dict() if change.invoice else None,
    }
