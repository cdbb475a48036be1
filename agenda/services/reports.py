from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Any, Optional

from agenda.services.ledger import LedgerStore
from agenda.services.models import TicketStatus
from agenda.services.rules import compute_cost


def dashboard_stats(store: LedgerStore, today: Optional[date] = None) -> dict[str, Any]:
    today_iso = (today or store.clock().date()).isoformat()
    todays = [ticket for ticket in store.tickets if ticket.scheduled_date.startswith(today_iso)]
    pending = [
        ticket for ticket in store.tickets
        if ticket.status in (TicketStatus.PENDING, TicketStatus.IN_PROGRESS)
    ]
    return {
        "date": today_iso,
        "today_count": len(todays),
        "pending_count": len(pending),
        "daily_projected_income": sum(compute_cost(t.estimated_hours, store.hourly_rate) for t in todays),
        "receivables": sum(invoice.amount for invoice in store.invoices if not invoice.is_paid),
    }


def revenue_by_day(store: LedgerStore, limit: int = 7) -> list[dict[str, Any]]:
    totals: dict[str, float] = OrderedDict()
    for ticket in sorted(store.tickets, key=lambda t: t.scheduled_date):
        day = ticket.scheduled_date[:10]
        totals[day] = totals.get(day, 0) + ticket.cost
    rows = [{"date": day, "amount": amount} for day, amount in totals.items()]
    return rows[-limit:] if limit > 0 else []


def invoice_rows(store: LedgerStore) -> list[dict[str, Any]]:
    rows = []
    for invoice in store.invoices:
        ticket = store.get_ticket(invoice.ticket_id)
        client = store.get_client(ticket.client_id) if ticket and ticket.client_id else None
        rows.append(
            invoice.to_dict()
            | {
                "ticket_title": ticket.title if ticket else None,
                "client_name": client.name if client else None,
            }
        )
    return rows
