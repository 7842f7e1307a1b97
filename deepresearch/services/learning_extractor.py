"""Learning extraction from search result content."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from deepresearch.errors import AuthError, DeepResearchError, InvalidResponse, LlmApiFailure
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.models.provider import LLMConfig
from deepresearch.services import prompts
from deepresearch.services.parsers import LearningSections, parse_learnings, strip_list_prefix

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 50_000
MIN_HEURISTIC_LINE = 10

_HEURISTIC_SKIP = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^key learnings:",
        r"^follow-up questions:",
        r"^based only on the content",
        r"^analyze the following content",
        r"^content:",
        r"^---$",
        r"^[\d\.\s]*$",
    )
]


def combine_contents(contents: list[str], limit: int = MAX_CONTENT_CHARS) -> str:
    combined = "\n".join(f"---\n{text}\n---" for text in contents)
    return combined[:limit]


def heuristic_learnings(raw: str) -> list[str]:
    """Salvage learning-like lines from an unparsable reply."""
    lines = []
    for line in raw.split("\n"):
        cleaned = strip_list_prefix(line)
        if len(cleaned) <= MIN_HEURISTIC_LINE:
            continue
        if any(p.search(cleaned) for p in _HEURISTIC_SKIP):
            continue
        lines.append(cleaned)
    return lines


class LearningExtractor:
    """Prompts the LLM for ``Key Learnings:`` / ``Follow-up Questions:`` sections."""

    def __init__(
        self,
        llm: LLMProvider | None,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self._llm = llm
        self._output = output_fn or logger.info
        self._error = error_fn or logger.error

    async def extract(
        self,
        query_text: str,
        contents: list[str],
        num_learnings: int = 3,
        num_follow_ups: int = 3,
        metadata: Any = None,
    ) -> LearningSections:
        contents = [str(c) for c in contents if str(c).strip()]
        if not contents:
            self._error(f'No content to analyze for query "{query_text}"')
            return LearningSections()

        combined = combine_contents(contents)
        self._output(f"Analyzing {len(combined)} characters for: {query_text}")

        raw = ""
        if self._llm is not None:
            prompt = prompts.extraction_prompt(
                query_text, combined, num_learnings, num_follow_ups, metadata
            )
            try:
                response = await self._llm.complete(
                    prompts.RESEARCH_SYSTEM_PROMPT,
                    prompt,
                    LLMConfig(temperature=0.5, max_tokens=1000),
                )
                raw = response.content
            except AuthError:
                raise
            except InvalidResponse as e:
                self._error(f"LLM returned no content for '{query_text}': {e}")
            except DeepResearchError as e:
                self._error(f"LLM API call failed for query '{query_text}': {e}")
                raise LlmApiFailure(
                    f"LLM API call failed during learning extraction: {e}"
                ) from e
        else:
            self._error("No LLM configured, using simple fallback analysis")

        if raw:
            parsed = parse_learnings(raw)
            if parsed.success:
                sections: LearningSections = parsed.data
                return LearningSections(
                    learnings=sections.learnings[:num_learnings],
                    follow_up_questions=sections.follow_up_questions[:num_follow_ups],
                )
            self._error(f"Failed to parse learnings for '{query_text}': {parsed.error}")
            salvaged = heuristic_learnings(raw)
            if salvaged:
                self._error(f"Heuristic extraction yielded {len(salvaged)} learnings")
            return LearningSections(learnings=salvaged[:num_learnings])

        return LearningSections(learnings=[contents[0].strip()])
