"""Memory repository - MongoDB persistence for long-term and meta memories."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pymongo import ASCENDING, DESCENDING

from deepresearch.models.memory import Memory, MemoryKind

logger = logging.getLogger(__name__)


class MemoryRepo:
    """Stores memories per kind; one document per (kind, memory_id)."""

    COLLECTION = "memories"

    def __init__(self, db) -> None:
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("kind", ASCENDING), ("memory_id", ASCENDING)], unique=True
        )
        await self._col.create_index([("kind", ASCENDING), ("stored_at", DESCENDING)])

    async def store_memory(self, memory: Memory, kind: MemoryKind | str) -> Memory:
        """Insert or replace ``memory`` under ``kind``."""
        kind = MemoryKind(kind)
        doc = memory.to_doc()
        doc["kind"] = kind.value
        doc["stored_at"] = datetime.now(timezone.utc)
        await self._col.replace_one(
            {"kind": kind.value, "memory_id": memory.id}, doc, upsert=True
        )
        logger.debug("Stored %s memory %s", kind.value, memory.id)
        return memory

    async def retrieve_memories(self, kind: MemoryKind | str, limit: int = 100) -> list[Memory]:
        """Most recently stored memories of ``kind``, newest first."""
        kind = MemoryKind(kind)
        cursor = self._col.find({"kind": kind.value}).sort("stored_at", DESCENDING).limit(limit)
        return [Memory.from_doc(doc) async for doc in cursor]

    async def count(self, kind: MemoryKind | str) -> int:
        return await self._col.count_documents({"kind": MemoryKind(kind).value})
