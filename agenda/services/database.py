from __future__ import annotations

from pathlib import Path
from typing import Optional

import aiosqlite

from agenda.services.config import get_settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


async def connect_db(path: Optional[Path] = None) -> aiosqlite.Connection:
    database_path = path or get_settings().resolved_database_path
    database_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(database_path)
    conn.row_factory = aiosqlite.Row
    await conn.executescript(SCHEMA)
    return conn
