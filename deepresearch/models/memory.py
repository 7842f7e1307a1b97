"""Memory domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class MemoryRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    SUMMARY = "summary"


class MemoryDepth(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class MemoryKind(str, Enum):
    """Channels of the persistence collaborator."""

    LONG_TERM = "long_term"
    META = "meta"


@dataclass(frozen=True)
class MemoryProfile:
    """Capacity and retrieval settings for a memory depth."""

    max_memories: int
    retrieval_limit: int
    threshold: float
    summarize_every: int


MEMORY_PROFILES: dict[MemoryDepth, MemoryProfile] = {
    MemoryDepth.SHORT: MemoryProfile(max_memories=10, retrieval_limit=2, threshold=0.7, summarize_every=10),
    MemoryDepth.MEDIUM: MemoryProfile(max_memories=50, retrieval_limit=5, threshold=0.5, summarize_every=20),
    MemoryDepth.LONG: MemoryProfile(max_memories=100, retrieval_limit=8, threshold=0.3, summarize_every=30),
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Memory:
    """A single remembered chat turn or summary.

    Mutable: the validation pass rescores and retags entries in place.
    """

    id: str
    content: str
    role: MemoryRole = MemoryRole.USER
    timestamp: str = field(default_factory=_now_iso)
    tags: set[str] = field(default_factory=set)
    score: float = 0.5
    validated: bool = False
    needs_summarization: bool = False
    is_meta: bool = False
    summarized: bool = False
    source_memories: list[str] | None = None
    key_points: list[str] = field(default_factory=list)
    # Populated only on copies returned by retrieval.
    similarity: float | None = None
    match_reason: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Memory id cannot be empty")
        if not isinstance(self.role, MemoryRole):
            self.role = MemoryRole(self.role)
        self.score = min(1.0, max(0.0, float(self.score)))
        self.tags = set(self.tags)

    @property
    def age_hours(self) -> float:
        created = datetime.fromisoformat(self.timestamp)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return (datetime.now(timezone.utc) - created).total_seconds() / 3600

    def to_doc(self) -> dict:
        return {
            "memory_id": self.id,
            "content": self.content,
            "role": self.role.value,
            "timestamp": self.timestamp,
            "tags": sorted(self.tags),
            "score": self.score,
            "validated": self.validated,
            "needs_summarization": self.needs_summarization,
            "is_meta": self.is_meta,
            "summarized": self.summarized,
            "source_memories": self.source_memories,
            "key_points": self.key_points,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Memory:
        return cls(
            id=doc.get("memory_id") or str(doc["_id"]),
            content=doc.get("content", ""),
            role=MemoryRole(doc.get("role", "system")),
            timestamp=doc.get("timestamp") or _now_iso(),
            tags=set(doc.get("tags", [])),
            score=doc.get("score", 0.5),
            validated=doc.get("validated", True),
            needs_summarization=doc.get("needs_summarization", False),
            is_meta=doc.get("is_meta", False),
            summarized=doc.get("summarized", False),
            source_memories=doc.get("source_memories"),
            key_points=doc.get("key_points", []),
        )


@dataclass(frozen=True)
class MemoryLayers:
    """Tiered view of the store produced by organize_layers."""

    short_term: tuple[Memory, ...] = ()
    long_term: tuple[Memory, ...] = ()
    meta: tuple[Memory, ...] = ()

    @property
    def counts(self) -> dict[str, int]:
        return {
            "short_term": len(self.short_term),
            "long_term": len(self.long_term),
            "meta": len(self.meta),
            "total": len(self.short_term) + len(self.long_term) + len(self.meta),
        }


@dataclass(frozen=True)
class MemoryStats:
    memories_stored: int = 0
    memories_retrieved: int = 0
    memories_validated: int = 0
    memories_summarized: int = 0
    depth_level: str = ""
    ephemeral_count: int = 0
    validated_count: int = 0
