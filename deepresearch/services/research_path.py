"""One node of the recursive research tree."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from deepresearch.errors import AuthError
from deepresearch.infra.search.base import SearchProvider
from deepresearch.models.research import PathResult, Query, ResearchStatus, SearchResult
from deepresearch.services.learning_extractor import LearningExtractor
from deepresearch.services.progress import ProgressTracker
from deepresearch.services.query_generator import QueryGenerator

logger = logging.getLogger(__name__)

MAX_NEW_RESULTS = 5
RECENT_LEARNINGS_CONTEXT = 5
ACTION_PREVIEW_CHARS = 60


def clean_query(text: str) -> str:
    """Collapse whitespace and drop trailing question marks."""
    return re.sub(r"\?+$", "", re.sub(r"\s+", " ", text).strip()).strip()


def merge_unique(target: list[str], items: list[str]) -> None:
    """Append items not already present, keeping first-seen order."""
    seen = set(target)
    for item in items:
        if item not in seen:
            seen.add(item)
            target.append(item)


class ResearchPath:
    """Search, extract and recurse for a single query.

    The visited-URL set, the processed-query set and the progress tracker
    are shared by reference with every descendant path in the run.
    Recursion is sequential. Only ``AuthError`` escapes; every other
    failure becomes a sentinel learning.
    """

    def __init__(
        self,
        search: SearchProvider,
        extractor: LearningExtractor,
        generator: QueryGenerator,
        tracker: ProgressTracker,
        visited_urls: set[str] | None = None,
        processed_queries: set[str] | None = None,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self._search = search
        self._extractor = extractor
        self._generator = generator
        self._tracker = tracker
        self.visited_urls = visited_urls if visited_urls is not None else set()
        self.processed_queries = processed_queries if processed_queries is not None else set()
        self._output = output_fn or logger.info
        self._error = error_fn or logger.error

    def spawn(self) -> ResearchPath:
        """A sibling/child path sharing this run's state."""
        return ResearchPath(
            self._search,
            self._extractor,
            self._generator,
            self._tracker,
            self.visited_urls,
            self.processed_queries,
            self._output,
            self._error,
        )

    def _claim_new_results(self, results: list[SearchResult]) -> list[SearchResult]:
        fresh = []
        for result in results:
            if result.url in self.visited_urls:
                continue
            self.visited_urls.add(result.url)
            fresh.append(result)
            if len(fresh) >= MAX_NEW_RESULTS:
                break
        return fresh

    async def research(self, query: Query, depth: int, breadth: int) -> PathResult:
        result = PathResult()
        text = clean_query(query.original)
        if not text:
            result.learnings.append(f"Error processing search for '{query.original}': empty query")
            self._tracker.complete_query()
            return result
        if text in self.processed_queries:
            logger.debug("Skipping already processed query: %s", text)
            return result
        self.processed_queries.add(text)

        progress = self._tracker.progress
        self._tracker.update(
            status=ResearchStatus.PROCESSING_QUERY,
            current_action=f"Processing: {text[:ACTION_PREVIEW_CHARS]}",
            current_depth=max(0, progress.total_depth - depth),
            current_breadth=breadth,
        )

        try:
            hits = await self._search.search(text)
        except AuthError:
            raise
        except Exception as e:
            self._error(f"Search failed for '{text}': {e}")
            result.learnings.append(f"Error processing search for '{text}': {e}")
            self._tracker.complete_query()
            return result

        fresh = self._claim_new_results(hits)
        if not fresh:
            result.learnings.append(f"No search results found for: {text}")
            self._tracker.complete_query()
            return result

        try:
            sections = await self._extractor.extract(
                text,
                [hit.content or hit.snippet for hit in fresh],
                metadata=query.metadata,
            )
        except AuthError:
            raise
        except Exception as e:
            self._error(f"Learning extraction failed for '{text}': {e}")
            result.learnings.append(f"Error processing learnings for '{text}': {e}")
        else:
            merge_unique(result.learnings, sections.learnings)
            merge_unique(result.sources, [hit.url for hit in fresh if hit.url])
        self._tracker.complete_query()

        if depth <= 0:
            return result

        self._tracker.update(current_action=f"Generating follow-ups: {text[:ACTION_PREVIEW_CHARS]}")
        try:
            follow_ups = await self._generator.generate(
                text,
                num_queries=breadth,
                learnings=result.learnings[-RECENT_LEARNINGS_CONTEXT:],
                metadata=query.metadata,
            )
        except AuthError:
            raise
        except Exception as e:
            self._error(f"Follow-up generation failed for '{text}': {e}")
            result.learnings.append(f"Error generating follow-up queries for '{text}': {e}")
            follow_ups = []
        result.follow_up_queries = list(follow_ups)

        for follow_up in follow_ups:
            child = await self.spawn().research(follow_up, depth - 1, breadth)
            merge_unique(result.learnings, child.learnings)
            merge_unique(result.sources, child.sources)

        return result
