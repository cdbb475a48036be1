#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from agenda.services.config import get_settings
from agenda.services.ledger import LedgerStore
from agenda.services.models import AgentRole
from agenda.services.persistence import SnapshotRepository

SAMPLE_CLIENTS = [
    {"name": "Ana Silva", "contact": "+244 923 000 111", "email": "ana.silva@example.ao"},
    {"name": "Padaria Kianda", "contact": "+244 912 345 678", "email": "geral@kianda.example.ao"},
    {"name": "Escritório Mutamba", "contact": "+244 934 222 333", "email": "ti@mutamba.example.ao"},
]


async def reset(seed: bool) -> LedgerStore:
    settings = get_settings()
    repository = SnapshotRepository(settings.resolved_database_path)
    await repository.clear()

    store = LedgerStore(
        hourly_rate=settings.hourly_rate,
        grace_days=settings.invoice_grace_days,
        repository=repository,
    )
    if seed:
        for client in SAMPLE_CLIENTS:
            store.add_client(client["name"], contact=client["contact"], email=client["email"])
        store.add_log(AgentRole.SUPERVISOR, "RESET", f"Ledger reset with {len(SAMPLE_CLIENTS)} sample clients")
    else:
        store.add_log(AgentRole.SUPERVISOR, "RESET", "Ledger reset")
    await store.save()
    return store


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reset the Agenda IT ledger snapshots")
    parser.add_argument("--seed", action="store_true", help="add sample clients after the reset")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    store = asyncio.run(reset(args.seed))
    print(f"Reset complete: {get_settings().resolved_database_path}")
    print(f"- {len(store.clients)} clients, 0 tickets, 0 invoices")


if __name__ == "__main__":
    main()
