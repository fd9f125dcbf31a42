"""
backend/oddsbook/database.py

Purpose:
    MongoDB connection bootstrap and index management for the append-only
    snapshot collections.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - oddsbook.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import OperationFailure

from oddsbook.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("oddsbook.database")

SNAPSHOT_COLLECTIONS = ("odds_snapshots", "scores_snapshots", "merged_snapshots")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=10,
        serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""
    ttl_seconds = int(settings.SNAPSHOT_TTL_DAYS) * 86400
    for name in SNAPSHOT_COLLECTIONS:
        collection = db[name]
        # Latest-snapshot lookup per sport
        await collection.create_index([("sport", 1), ("fetched_at", DESCENDING)])
        try:
            await collection.create_index(
                "fetched_at",
                name="fetched_at_ttl",
                expireAfterSeconds=ttl_seconds,
            )
        except OperationFailure as exc:
            # Existing TTL index with a different expiry; keep it.
            logger.warning("Skipped TTL index on %s: %s", name, exc)
