from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from hectrack.services.database import connect_db
from hectrack.services.models import Project, migrate_documents, utc_now

logger = logging.getLogger(__name__)


class LocalProjectCache:
    """On-device mirror of the project set: one JSON blob under a fixed key."""

    def __init__(self, path: Path, key: str = "hec-projects") -> None:
        self.path = path
        self.key = key

    async def read_documents(self) -> Optional[list[Any]]:
        conn = await connect_db(self.path)
        try:
            cursor = await conn.execute("SELECT value FROM kv_slots WHERE key = ?", (self.key,))
            row = await cursor.fetchone()
        finally:
            await conn.close()

        if row is None:
            return None
        try:
            documents = json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Local cache slot %s is not valid JSON; ignoring it", self.key)
            return None
        if not isinstance(documents, list):
            logger.warning("Local cache slot %s does not hold a list; ignoring it", self.key)
            return None
        return documents

    async def read(self) -> list[Project]:
        documents = await self.read_documents()
        return migrate_documents(documents or [])

    async def write(self, projects: Iterable[Project]) -> None:
        payload = json.dumps([project.to_document() for project in projects], separators=(",", ":"))
        conn = await connect_db(self.path)
        try:
            await conn.execute(
                """
                INSERT INTO kv_slots (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self.key, payload, utc_now().isoformat()),
            )
            await conn.commit()
        finally:
            await conn.close()

    async def clear(self) -> None:
        conn = await connect_db(self.path)
        try:
            await conn.execute("DELETE FROM kv_slots WHERE key = ?", (self.key,))
            await conn.commit()
        finally:
            await conn.close()
