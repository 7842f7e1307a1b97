"""Research engine: validates a run, drives research paths, formats the report."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from deepresearch.errors import error_kind
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.infra.search.base import SearchProvider
from deepresearch.models.research import (
    PathResult,
    Query,
    ResearchConfig,
    ResearchProgress,
    ResearchResult,
    ResearchStatus,
)
from deepresearch.services.learning_extractor import LearningExtractor
from deepresearch.services.progress import ProgressCallback, ProgressTracker
from deepresearch.services.query_generator import QueryGenerator
from deepresearch.services.research_path import ResearchPath, merge_unique
from deepresearch.services.summary_writer import SummaryWriter

logger = logging.getLogger(__name__)

SLUG_MAX_CHARS = 50


def slugify(text: str, limit: int = SLUG_MAX_CHARS) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:limit].strip("-") or "query"


def suggested_filename(query: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%SZ")
    return f"research/research-{slugify(query)}-{stamp}.md"


def format_report(query: str, summary: str, learnings: list[str], sources: list[str]) -> str:
    def bullets(items: list[str]) -> str:
        return "\n".join(f"- {item}" for item in items) if items else "- None"

    return "\n".join([
        "# Research Results",
        "",
        "## Query",
        "",
        query,
        "",
        summary.strip(),
        "",
        "## Key Learnings",
        "",
        bullets(learnings),
        "",
        "## References",
        "",
        bullets(sources),
        "",
    ])


class ResearchEngine:
    """Top-level research driver.

    ``search_factory`` builds one search client per run so the client's
    rate budget is scoped to that run. ``research`` never raises once its
    arguments are validated; failures come back in ``ResearchResult.error``.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        search_factory: Callable[[], SearchProvider],
        progress_fn: ProgressCallback | None = None,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self._llm = llm
        self._search_factory = search_factory
        self._progress_fn = progress_fn
        self._output = output_fn or logger.info
        self._error = error_fn or logger.error
        self.extractor = LearningExtractor(llm, self._output, self._error)
        self.generator = QueryGenerator(llm, self._output, self._error)
        self.writer = SummaryWriter(llm, self._output, self._error)
        self.last_progress: ResearchProgress | None = None

    async def research(
        self,
        query: Query | str,
        depth: int = 2,
        breadth: int = 3,
        override_queries: list[Query] | None = None,
        metadata: Any = None,
    ) -> ResearchResult:
        if isinstance(query, str):
            query = Query(query)
        config = ResearchConfig(
            depth=depth,
            breadth=breadth,
            override_queries=tuple(override_queries) if override_queries else None,
        )
        metadata = metadata if metadata is not None else query.metadata

        progress = ResearchProgress(
            total_depth=depth,
            total_breadth=breadth,
            current_breadth=breadth,
            total_queries=config.estimated_queries,
        )
        self.last_progress = progress
        tracker = ProgressTracker(progress, self._progress_fn)
        tracker.update(status=ResearchStatus.INITIALIZING, current_action="Starting research")

        gathered = PathResult()
        search: SearchProvider | None = None
        try:
            search = self._search_factory()
            root = ResearchPath(
                search,
                self.extractor,
                self.generator,
                tracker,
                output_fn=self._output,
                error_fn=self._error,
            )
            self._output(
                f"Researching '{query.original}' (depth={depth}, breadth={breadth}, "
                f"~{progress.total_queries} queries)"
            )

            if config.override_queries:
                for seed in config.override_queries:
                    path_result = await root.spawn().research(seed, depth, breadth)
                    merge_unique(gathered.learnings, path_result.learnings)
                    merge_unique(gathered.sources, path_result.sources)
            else:
                path_result = await root.research(query, depth, breadth)
                merge_unique(gathered.learnings, path_result.learnings)
                merge_unique(gathered.sources, path_result.sources)

            tracker.update(status=ResearchStatus.GENERATING_SUMMARY, current_action="Generating summary")
            summary = await self.writer.write(query.original, gathered.learnings, metadata)

            tracker.update(status=ResearchStatus.GENERATING_RESULT, current_action="Formatting report")
            markdown = format_report(query.original, summary, gathered.learnings, gathered.sources)
            filename = suggested_filename(query.original)

            tracker.update(status=ResearchStatus.COMPLETE, current_action="Research complete")
            return ResearchResult(
                query=query.original,
                learnings=tuple(gathered.learnings),
                sources=tuple(gathered.sources),
                summary=summary,
                markdown_content=markdown,
                suggested_filename=filename,
            )
        except Exception as e:
            logger.exception("Research run failed for %s", query.original)
            kind = error_kind(e)
            summary = f"Error during research: {kind} {e}"
            self._error(summary)
            tracker.update(status=ResearchStatus.ERROR, current_action=str(e) or kind)
            return ResearchResult(
                query=query.original,
                learnings=tuple(gathered.learnings),
                sources=tuple(gathered.sources),
                summary=summary,
                markdown_content=format_report(
                    query.original, summary, gathered.learnings, gathered.sources
                ),
                suggested_filename=suggested_filename(query.original),
                error=kind,
            )
        finally:
            close = getattr(search, "close", None)
            if close is not None:
                await close()
