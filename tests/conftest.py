from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from agenda.services.ledger import LedgerStore

FIXED_NOW = datetime(2026, 2, 13, 9, 30, tzinfo=timezone.utc)


class RecordingRepository:
    """Stands in for SnapshotRepository and remembers every save."""

    def __init__(self) -> None:
        self.saves: list[dict[str, list[dict[str, Any]]]] = []

    async def save(self, documents: dict[str, list[dict[str, Any]]]) -> None:
        self.saves.append(documents)


@pytest.fixture
def repository() -> RecordingRepository:
    return RecordingRepository()


@pytest.fixture
def store(repository: RecordingRepository) -> LedgerStore:
    return LedgerStore(hourly_rate=5000, repository=repository, clock=lambda: FIXED_NOW)
