from __future__ import annotations

from pathlib import Path
from typing import Optional

import aiosqlite

from hectrack.services.config import get_settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_slots (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


async def connect_db(path: Optional[Path] = None) -> aiosqlite.Connection:
    path = path or get_settings().resolved_cache_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(path)
    conn.row_factory = aiosqlite.Row
    await conn.execute(SCHEMA)
    return conn
