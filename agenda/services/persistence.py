from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from agenda.services.database import connect_db
from agenda.services.rules import iso_timestamp, utc_now

logger = logging.getLogger(__name__)

COLLECTIONS = ("clients", "tickets", "invoices", "logs")


class SnapshotRepository:
    """Whole-document storage: one JSON array per ledger collection."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path

    async def load_all(self) -> dict[str, list[dict[str, Any]]]:
        snapshot: dict[str, list[dict[str, Any]]] = {key: [] for key in COLLECTIONS}
        conn = await connect_db(self.path)
        try:
            cursor = await conn.execute("SELECT key, payload FROM snapshots")
            rows = await cursor.fetchall()
        finally:
            await conn.close()

        for row in rows:
            if row["key"] not in snapshot:
                logger.warning("Ignoring unknown snapshot key %s", row["key"])
                continue
            snapshot[row["key"]] = json.loads(row["payload"])
        return snapshot

    async def save(self, documents: dict[str, list[dict[str, Any]]]) -> None:
        unknown = set(documents) - set(COLLECTIONS)
        if unknown:
            raise ValueError(f"Unknown snapshot keys: {', '.join(sorted(unknown))}")

        stamp = iso_timestamp(utc_now())
        conn = await connect_db(self.path)
        try:
            for key, records in documents.items():
                await conn.execute(
                    """
                    INSERT INTO snapshots (key, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
                    """,
                    (key, json.dumps(records, separators=(",", ":")), stamp),
                )
            await conn.commit()
        finally:
            await conn.close()
        logger.debug("Saved snapshots: %s", ", ".join(documents))

    async def clear(self) -> None:
        conn = await connect_db(self.path)
        try:
            await conn.execute("DELETE FROM snapshots")
            await conn.commit()
        finally:
            await conn.close()
