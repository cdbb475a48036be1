from __future__ import annotations

from datetime import date

from agenda.services.ledger import LedgerStore
from agenda.services.models import TicketStatus
from agenda.services.reports import dashboard_stats, invoice_rows, revenue_by_day


def test_dashboard_stats(store: LedgerStore) -> None:
    store.add_ticket("Morning visit", "2026-02-13", estimated_hours=2)
    started = store.add_ticket("Afternoon visit", "2026-02-13", estimated_hours=1)
    store.add_ticket("Next week", "2026-02-20", estimated_hours=4)
    store.update_ticket_status(started, TicketStatus.IN_PROGRESS)
    store.log_completed_work("Ana", "Format PC", "", 3)

    stats = dashboard_stats(store, today=date(2026, 2, 13))

    assert stats["today_count"] == 3
    assert stats["pending_count"] == 3
    assert stats["daily_projected_income"] == (2 + 1 + 3) * 5000
    assert stats["receivables"] == 15000


def test_revenue_by_day_keeps_last_dates(store: LedgerStore) -> None:
    for day in range(1, 10):
        store.add_ticket(f"Visit {day}", f"2026-03-{day:02d}", estimated_hours=1)
    store.add_ticket("Second visit", "2026-03-09", estimated_hours=2)

    rows = revenue_by_day(store)

    assert [row["date"] for row in rows] == [f"2026-03-{day:02d}" for day in range(3, 10)]
    assert rows[-1]["amount"] == 15000


def test_invoice_rows_include_client_name(store: LedgerStore) -> None:
    store.add_client("Padaria Kianda")
    store.log_completed_work("kianda", "Router reset", "", 1)

    (row,) = invoice_rows(store)

    assert row["client_name"] == "Padaria Kianda"
    assert row["ticket_title"] == "Router reset"
    assert row["amount"] == 5000
