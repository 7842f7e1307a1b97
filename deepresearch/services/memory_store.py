"""In-process tiered memory store."""

from __future__ import annotations

import secrets
from collections.abc import Collection

from deepresearch.models.memory import (
    Memory,
    MemoryDepth,
    MemoryLayers,
    MemoryProfile,
    MemoryRole,
    MemoryStats,
)

def generate_memory_id(taken: Collection[str] = ()) -> str:
    """``mem-`` plus 8 hex chars, not in ``taken``."""
    while True:
        memory_id = f"mem-{secrets.token_hex(4)}"
        if memory_id not in taken:
            return memory_id


class MemoryStore:
    """Ephemeral (bounded, newest last) and validated (unbounded) tiers.

    Returned lists are the live tiers; mutate only through store methods.
    """

    def __init__(self, depth: MemoryDepth, profile: MemoryProfile) -> None:
        self.depth = depth
        self.profile = profile
        self._ephemeral: list[Memory] = []
        self._validated: list[Memory] = []
        self._stored = 0
        self._retrieved = 0
        self._validated_count = 0
        self._summarized = 0

    def create_ephemeral(
        self,
        content: str,
        role: MemoryRole | str = MemoryRole.USER,
        score: float = 0.5,
        tags: set[str] | None = None,
        timestamp: str | None = None,
    ) -> Memory:
        kwargs = {"timestamp": timestamp} if timestamp else {}
        memory = Memory(
            id=self.new_id(),
            content=content,
            role=role,
            score=score,
            tags=set(tags or ()),
            **kwargs,
        )
        self._ephemeral.append(memory)
        if len(self._ephemeral) > self.profile.max_memories:
            del self._ephemeral[: len(self._ephemeral) - self.profile.max_memories]
        self._stored += 1
        return memory

    def new_id(self) -> str:
        """Fresh id that collides with nothing in either tier."""
        return generate_memory_id({m.id for m in self.get_all()})

    def add_validated(self, memory: Memory) -> None:
        """Insert, or replace the entry with the same id."""
        for i, existing in enumerate(self._validated):
            if existing.id == memory.id:
                self._validated[i] = memory
                return
        self._validated.append(memory)

    def remove_ephemeral_by_index(self, index: int) -> bool:
        if index < 0 or index >= len(self._ephemeral):
            return False
        del self._ephemeral[index]
        return True

    def remove_ephemeral_by_id(self, memory_id: str) -> bool:
        for i, memory in enumerate(self._ephemeral):
            if memory.id == memory_id:
                return self.remove_ephemeral_by_index(i)
        return False

    def remove_validated_by_id(self, memory_id: str) -> bool:
        for i, memory in enumerate(self._validated):
            if memory.id == memory_id:
                del self._validated[i]
                return True
        return False

    def has_validated(self, memory_id: str) -> bool:
        return any(m.id == memory_id for m in self._validated)

    def get_ephemeral(self) -> list[Memory]:
        return self._ephemeral

    def get_validated(self) -> list[Memory]:
        return self._validated

    def get_all(self) -> list[Memory]:
        return [*self._ephemeral, *self._validated]

    def clear_ephemeral(self) -> None:
        self._ephemeral = []

    def record_retrieval(self, count: int) -> None:
        self._retrieved += count

    def record_validation(self, count: int) -> None:
        self._validated_count += count

    def record_summaries(self, count: int) -> None:
        self._summarized += count

    def snapshot(self) -> MemoryStats:
        return MemoryStats(
            memories_stored=self._stored,
            memories_retrieved=self._retrieved,
            memories_validated=self._validated_count,
            memories_summarized=self._summarized,
            depth_level=self.depth.value,
            ephemeral_count=len(self._ephemeral),
            validated_count=len(self._validated),
        )

    def organize_layers(self, score_threshold: float = 0.7) -> MemoryLayers:
        short_term = list(self._ephemeral)
        long_term = []
        meta = []
        for memory in self._validated:
            if memory.is_meta:
                meta.append(memory)
            elif memory.score >= score_threshold:
                long_term.append(memory)
            else:
                short_term.append(memory)
        return MemoryLayers(
            short_term=tuple(short_term),
            long_term=tuple(long_term),
            meta=tuple(meta),
        )
