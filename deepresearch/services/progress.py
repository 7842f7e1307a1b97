"""Progress tracking for research runs."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable

from deepresearch.models.research import ResearchProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResearchProgress], None]


class ProgressTracker:
    """Owns a run's ``ResearchProgress`` and publishes a copy after every change.

    ``completed_queries`` only ever grows. The query total is an estimate, so
    it is raised whenever the completed count would pass it.
    """

    def __init__(self, progress: ResearchProgress, callback: ProgressCallback | None = None) -> None:
        self.progress = progress
        self._callback = callback

    def update(self, **changes) -> None:
        completed = changes.pop("completed_queries", None)
        for name, value in changes.items():
            setattr(self.progress, name, value)
        if completed is not None:
            self.progress.completed_queries = max(self.progress.completed_queries, completed)
            if self.progress.completed_queries > self.progress.total_queries:
                self.progress.total_queries = self.progress.completed_queries
        self._publish()

    def complete_query(self) -> None:
        self.update(completed_queries=self.progress.completed_queries + 1)

    def snapshot(self) -> ResearchProgress:
        return dataclasses.replace(self.progress)

    def _publish(self) -> None:
        if self._callback is None:
            return
        try:
            self._callback(self.snapshot())
        except Exception:
            logger.exception("Progress callback failed")
