"""Chat transcript to research hand-off."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from deepresearch.errors import (
    AuthError,
    ConfigError,
    DeepResearchError,
    InvalidArguments,
    NoQueriesGenerated,
)
from deepresearch.infra.providers.classifier import TokenClassifier
from deepresearch.models.provider import LLMMessage
from deepresearch.models.research import Query, ResearchResult
from deepresearch.services.query_generator import QueryGenerator
from deepresearch.services.research_engine import ResearchEngine

logger = logging.getLogger(__name__)

TURN_SEPARATOR = "\n---\n"
REPORT_QUERY_CHARS = 200


def build_context(transcript: list[LLMMessage]) -> str:
    return TURN_SEPARATOR.join(f"{turn.role}: {turn.content}" for turn in transcript)


def latest_user_turn(transcript: list[LLMMessage]) -> str | None:
    for turn in reversed(transcript):
        if turn.role == "user" and turn.content.strip():
            return turn.content.strip()
    return None


@dataclass(frozen=True)
class SeededQueries:
    queries: list[Query] = field(default_factory=list)
    metadata: Any = None
    context: str = ""


class ChatToResearchBridge:
    """Turns a chat transcript into override queries for the research engine."""

    def __init__(
        self,
        generator: QueryGenerator,
        classifier: TokenClassifier | None = None,
        engine: ResearchEngine | None = None,
    ) -> None:
        self._generator = generator
        self._classifier = classifier
        self._engine = engine

    async def _classify(self, context: str) -> Any:
        if self._classifier is None:
            logger.warning("Classification requested but no classifier is configured")
            return None
        try:
            return await self._classifier.classify(context)
        except AuthError:
            raise
        except DeepResearchError as e:
            logger.warning("Token classification failed, continuing without metadata: %s", e)
            return None

    async def generate_queries(
        self,
        transcript: list[LLMMessage],
        num_queries: int = 3,
        classify: bool = False,
    ) -> SeededQueries:
        if not transcript:
            raise InvalidArguments("Chat transcript is empty")
        context = build_context(transcript)
        if not context.strip():
            raise InvalidArguments("Chat transcript has no content")

        metadata = await self._classify(context) if classify else None

        queries = await self._generator.generate(
            context,
            num_queries=num_queries,
            metadata=metadata,
            fallback_topic=latest_user_turn(transcript),
        )
        if not queries:
            raise NoQueriesGenerated("No research queries could be generated from the chat")
        logger.info("Generated %d research queries from %d chat turns", len(queries), len(transcript))
        return SeededQueries(queries=queries, metadata=metadata, context=context)

    async def run_research(
        self,
        transcript: list[LLMMessage],
        num_queries: int = 3,
        classify: bool = False,
        depth: int = 2,
        breadth: int = 3,
    ) -> ResearchResult:
        if self._engine is None:
            raise ConfigError("No research engine configured for chat hand-off")
        seeded = await self.generate_queries(transcript, num_queries, classify)
        label = latest_user_turn(transcript) or seeded.queries[0].original
        return await self._engine.research(
            Query(label[:REPORT_QUERY_CHARS], seeded.metadata),
            depth=depth,
            breadth=breadth,
            override_queries=seeded.queries,
            metadata=seeded.metadata,
        )
