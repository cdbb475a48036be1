from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from agenda.routes.deps import get_store
from agenda.services.ledger import LedgerStore
from agenda.services.models import TicketStatus
from agenda.services.reports import dashboard_stats, invoice_rows, revenue_by_day

router = APIRouter(prefix="/api", tags=["ledger"])


@router.get("/clients")
async def list_clients(store: LedgerStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [client.to_dict() for client in store.clients]


@router.get("/tickets")
async def list_tickets(
    status: Optional[TicketStatus] = None,
    store: LedgerStore = Depends(get_store),
) -> list[dict[str, Any]]:
    tickets = store.tickets
    if status is not None:
        tickets = [ticket for ticket in tickets if ticket.status == status]
    return [ticket.to_dict() for ticket in tickets]


@router.get("/tickets/{ticket_id}")
async def get_ticket(ticket_id: str, store: LedgerStore = Depends(get_store)) -> dict[str, Any]:
    ticket = store.get_ticket(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found")
    response = ticket.to_dict()
    response["invoices"] = [invoice.to_dict() for invoice in store.invoices_for_ticket(ticket_id)]
    return response


@router.get("/invoices")
async def list_invoices(store: LedgerStore = Depends(get_store)) -> list[dict[str, Any]]:
    return invoice_rows(store)


@router.get("/logs")
async def list_logs(limit: int = 200, store: LedgerStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [log.to_dict() for log in store.logs[:limit]]


@router.get("/dashboard")
async def dashboard(store: LedgerStore = Depends(get_store)) -> dict[str, Any]:
    return {
        "stats": dashboard_stats(store),
        "revenue_by_day": revenue_by_day(store),
        "hourly_rate": store.hourly_rate,
    }
