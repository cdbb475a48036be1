#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from agenda.services.config import get_settings
from agenda.services.ledger import LedgerStore
from agenda.services.persistence import SnapshotRepository


def main() -> None:
    settings = get_settings()
    path = settings.resolved_database_path
    if not path.exists():
        raise SystemExit(f"Database not found at {path}. Run reset_ledger.py first.")

    store = asyncio.run(LedgerStore.load(SnapshotRepository(path), hourly_rate=settings.hourly_rate))
    errors = store.integrity_errors()
    if errors:
        raise SystemExit("Integrity checks failed: " + "; ".join(errors))

    print("Integrity checks passed.")


if __name__ == "__main__":
    main()
