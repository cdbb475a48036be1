from __future__ import annotations

from agenda.services.ledger import LedgerStore


def build_context_snapshot(store: LedgerStore) -> str:
    """Text view of the ledger handed to the agent gateway.

    Only the hourly rate, the client roster and the open tickets are exposed.
    """
    clients = ", ".join(f"{client.name} (ID: {client.id})" for client in store.clients) or "none"
    tickets = "; ".join(
        f"[{ticket.scheduled_date}] {ticket.title} for client {ticket.client_id or 'unassigned'} ({ticket.status.value})"
        for ticket in store.open_tickets()
    ) or "none"

    return (
        "CURRENT BUSINESS CONTEXT:\n"
        f"- Hourly rate: {store.hourly_rate:g} Kz.\n"
        f"- Registered clients: {clients}.\n"
        f"- Pending/scheduled tickets: {tickets}.\n"
        "\n"
        "You are an assistant wired into a live system. Use the provided tools to perform real "
        "actions such as creating tickets or clients when asked."
    )
