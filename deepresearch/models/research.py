"""Research domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deepresearch.errors import InvalidArguments


@dataclass(frozen=True)
class Query:
    """A single search intent. Metadata is an opaque classifier payload."""

    original: str
    metadata: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.original, str) or not self.original.strip():
            raise InvalidArguments("Query text cannot be empty")


@dataclass(frozen=True)
class ResearchConfig:
    """Parameters for a research run."""

    depth: int = 2
    breadth: int = 3
    override_queries: tuple[Query, ...] | None = None

    def __post_init__(self) -> None:
        if self.breadth < 1:
            raise InvalidArguments("Research breadth must be >= 1")
        if self.depth < 1:
            raise InvalidArguments("Research depth must be >= 1")

    @property
    def estimated_queries(self) -> int:
        """Advisory total used for progress pacing only."""
        if self.override_queries:
            count = len(self.override_queries)
            if self.depth <= 1:
                return count
            return count * (1 + self.breadth * (self.depth - 1))
        return sum(self.breadth**i for i in range(self.depth + 1))


@dataclass(frozen=True)
class SearchResult:
    """A single web search hit."""

    title: str
    snippet: str
    url: str
    content: str = ""


@dataclass
class PathResult:
    """Aggregated output of one research path and its descendants."""

    learnings: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    follow_up_queries: list[Query] = field(default_factory=list)


@dataclass(frozen=True)
class ResearchResult:
    """Final outcome of a research run."""

    query: str
    learnings: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    summary: str = ""
    markdown_content: str = ""
    suggested_filename: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "learnings": list(self.learnings),
            "sources": list(self.sources),
            "summary": self.summary,
            "markdown_content": self.markdown_content,
            "suggested_filename": self.suggested_filename,
            "error": self.error,
        }


class ResearchStatus(str, Enum):
    INITIALIZING = "Initializing"
    PROCESSING_QUERY = "Processing Query"
    GENERATING_SUMMARY = "Generating Summary"
    GENERATING_RESULT = "Generating Result"
    COMPLETE = "Complete"
    ERROR = "Error"


@dataclass
class ResearchProgress:
    """Progress of a research run, mutated in place as paths advance."""

    total_depth: int = 0
    current_depth: int = 0
    total_breadth: int = 0
    current_breadth: int = 0
    total_queries: int = 0
    completed_queries: int = 0
    status: ResearchStatus = ResearchStatus.INITIALIZING
    current_action: str = ""

    def to_dict(self) -> dict:
        return {
            "total_depth": self.total_depth,
            "current_depth": self.current_depth,
            "total_breadth": self.total_breadth,
            "current_breadth": self.current_breadth,
            "total_queries": self.total_queries,
            "completed_queries": self.completed_queries,
            "status": self.status.value,
            "current_action": self.current_action,
        }
