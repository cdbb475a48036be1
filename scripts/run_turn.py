#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from agenda.services.agent_runtime import run_turn
from agenda.services.config import get_settings
from agenda.services.dispatcher import ActionDispatcher
from agenda.services.gateway import OpenRouterGateway
from agenda.services.ledger import LedgerStore
from agenda.services.models import AgentRole
from agenda.services.persistence import SnapshotRepository
from agenda.services.session_manager import SessionManager


async def _run(role: AgentRole, message: str) -> None:
    settings = get_settings()
    store = await LedgerStore.load(
        SnapshotRepository(settings.resolved_database_path),
        hourly_rate=settings.hourly_rate,
        grace_days=settings.invoice_grace_days,
    )
    sessions = SessionManager()
    conversation = await sessions.get_or_create_conversation(None, role)
    result = await run_turn(
        dispatcher=ActionDispatcher(store),
        gateway=OpenRouterGateway(hourly_rate=settings.hourly_rate),
        sessions=sessions,
        conversation=conversation,
        utterance=message,
    )

    print(f"Agent: {role.value}")
    print(result.reply)
    print("Outcomes:")
    print(json.dumps([outcome.to_dict() for outcome in result.outcomes], indent=2))
    if result.failed:
        raise SystemExit(1)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one Agenda IT agent turn from CLI")
    parser.add_argument("role", choices=[role.value for role in AgentRole])
    parser.add_argument("message", help="what the technician says to the agent")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(_run(AgentRole(args.role), args.message))


if __name__ == "__main__":
    main()
