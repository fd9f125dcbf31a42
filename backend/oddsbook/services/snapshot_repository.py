"""
backend/oddsbook/services/snapshot_repository.py

Purpose:
    Append-only persistence of fetch results. Every successful fetch writes a
    new snapshot document tagged with sport and fetch time; documents are
    never updated in place. Writes are best-effort: a failed insert is logged
    and never reaches the request that triggered the fetch.

Dependencies:
    - oddsbook.database
    - oddsbook.utils
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

import oddsbook.database as _db
from oddsbook.utils import ensure_utc, utcnow

logger = logging.getLogger("oddsbook.snapshot_repository")

SNAPSHOT_KINDS: dict[str, str] = {
    "odds": "odds_snapshots",
    "scores": "scores_snapshots",
    "merged": "merged_snapshots",
}


class SnapshotRepository:
    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    @staticmethod
    def _collection(kind: str):
        name = SNAPSHOT_KINDS.get(kind)
        if name is None:
            raise ValueError(f"Unknown snapshot kind: {kind}")
        if _db.db is None:
            return None
        return _db.db[name]

    async def append(
        self,
        kind: str,
        sport: str,
        data: Any,
        *,
        selector: Optional[str] = None,
        fetched_at: Optional[datetime] = None,
    ) -> bool:
        """Insert one snapshot. Returns False instead of raising on failure."""
        try:
            collection = self._collection(kind)
            if collection is None:
                logger.warning("Database not connected, dropping %s snapshot for %s", kind, sport)
                return False
            await collection.insert_one({
                "sport": sport,
                "selector": selector,
                "fetched_at": fetched_at or utcnow(),
                "data": data,
            })
            return True
        except Exception:
            logger.error("Failed to persist %s snapshot for %s", kind, sport, exc_info=True)
            return False

    def schedule_append(self, kind: str, sport: str, data: Any, **kwargs: Any) -> asyncio.Task:
        """Fire-and-forget append on the running loop."""
        task = asyncio.create_task(self.append(kind, sport, data, **kwargs))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight appends (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def latest(self, kind: str, sport: str) -> Optional[dict[str, Any]]:
        collection = self._collection(kind)
        if collection is None:
            return None
        doc = await collection.find_one(
            {"sport": sport},
            {"_id": 0},
            sort=[("fetched_at", -1)],
        )
        if doc and isinstance(doc.get("fetched_at"), datetime):
            doc["fetched_at"] = ensure_utc(doc["fetched_at"])
        return doc


snapshot_repository = SnapshotRepository()
