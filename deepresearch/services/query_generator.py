"""Query generation: LLM-expanded research questions with deterministic fallback."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from deepresearch.errors import AuthError, DeepResearchError, InvalidArguments
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.models.provider import LLMConfig
from deepresearch.models.research import Query
from deepresearch.services import prompts
from deepresearch.services.parsers import parse_queries

logger = logging.getLogger(__name__)

DEFAULT_NUM_QUERIES = 3
TOPIC_MAX_CHARS = 50
CHAT_HISTORY_MIN_CHARS = 1000
FIRST_USER_LINE_RE = re.compile(r"user:\s*(.*?)(?:\n|$)", re.IGNORECASE)


def is_chat_history(text: str) -> bool:
    return len(text) > CHAT_HISTORY_MIN_CHARS or "\nuser:" in text or "\nassistant:" in text


def truncate_topic(text: str, limit: int = TOPIC_MAX_CHARS) -> str:
    text = text.strip()
    if len(text) > limit:
        return f"{text[:limit]}..."
    return text


def compute_fallback_topic(text: str) -> str:
    """First ``user:`` line of a transcript, else the text itself, capped at 50 chars."""
    match = FIRST_USER_LINE_RE.search(text)
    if match and match.group(1).strip():
        return truncate_topic(match.group(1))
    return truncate_topic(text) or "the topic"


def build_fallback_queries(topic: str, num_queries: int) -> list[Query]:
    queries = [
        Query(f"What is {topic}?", {"goal": f"Research definition of: {topic}"}),
        Query(f"How does {topic} work?", {"goal": f"Research how {topic} works"}),
        Query(f"Examples of {topic}", {"goal": f"Research examples of: {topic}"}),
    ]
    while len(queries) < num_queries:
        queries.append(Query(
            f"Which aspects of {topic} are most important?",
            {"goal": f"Explore key aspects of: {topic}"},
        ))
    return queries[:num_queries]


class QueryGenerator:
    """Turns a topic or transcript into interrogative research queries.

    ``llm`` is None when no API key is configured; every failure short of
    ``AuthError`` degrades to the fallback rotation.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self._llm = llm
        self._output = output_fn or logger.info
        self._error = error_fn or logger.error

    def build_prompt(
        self,
        context_query: str,
        num_queries: int,
        learnings: list[str] | None = None,
        metadata: Any = None,
    ) -> str:
        prompt = prompts.query_expansion_prompt(context_query, learnings)
        if is_chat_history(context_query):
            prompt += prompts.chat_breadth_instruction(num_queries)
        else:
            prompt += prompts.topic_instruction(num_queries)
        prompt += prompts.QUERY_FORMAT_INSTRUCTION
        if metadata:
            prompt += prompts.metadata_query_context(metadata)
        return prompt

    async def generate(
        self,
        context_query: str,
        num_queries: int = DEFAULT_NUM_QUERIES,
        learnings: list[str] | None = None,
        metadata: Any = None,
        fallback_topic: str | None = None,
    ) -> list[Query]:
        if not isinstance(context_query, str) or not context_query.strip():
            raise InvalidArguments("Invalid query: must be a non-empty string")
        if num_queries < 1:
            self._error(f"Invalid num_queries ({num_queries}), defaulting to {DEFAULT_NUM_QUERIES}")
            num_queries = DEFAULT_NUM_QUERIES

        if self._llm is not None:
            queries = await self._generate_with_llm(context_query, num_queries, learnings, metadata)
            if queries:
                return queries
        else:
            self._error("No LLM configured, using fallback queries")

        topic = truncate_topic(fallback_topic) if fallback_topic else compute_fallback_topic(context_query)
        self._error(f'Using fallback topic: "{topic}"')
        return build_fallback_queries(topic, num_queries)

    async def _generate_with_llm(
        self,
        context_query: str,
        num_queries: int,
        learnings: list[str] | None,
        metadata: Any,
    ) -> list[Query]:
        prompt = self.build_prompt(context_query, num_queries, learnings, metadata)
        try:
            response = await self._llm.complete(
                prompts.RESEARCH_SYSTEM_PROMPT,
                prompt,
                LLMConfig(temperature=0.7, max_tokens=500),
            )
        except AuthError:
            raise
        except DeepResearchError as e:
            self._error(f"Query generation LLM call failed: {e}")
            return []

        parsed = parse_queries(response.content)
        if not parsed.success:
            self._error(f"Query parsing failed: {parsed.error}")
            return []

        texts: list[str] = []
        seen: set[str] = set()
        for raw in parsed.data:
            text = raw.strip()
            if text and text.lower() not in seen:
                seen.add(text.lower())
                texts.append(text)
        texts = texts[:num_queries]
        queries = [Query(q, {"goal": f"Research: {q}"}) for q in texts]
        for i, query in enumerate(queries, 1):
            self._output(f"  {i}. {query.original}")
        return queries
