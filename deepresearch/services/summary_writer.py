"""Narrative summary synthesis over gathered learnings."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from deepresearch.errors import AuthError, DeepResearchError
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.models.provider import LLMConfig
from deepresearch.services import prompts
from deepresearch.services.parsers import parse_report

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "## Summary\n\n"

# Sentinel learnings written by research paths. They never reach the LLM.
FILTERED_PREFIXES = (
    "error processing",
    "error generating",
    "error during research path",
    "no search results found",
)


def is_valid_learning(learning: Any) -> bool:
    if not isinstance(learning, str) or not learning.strip():
        return False
    return not learning.strip().lower().startswith(FILTERED_PREFIXES)


def no_learnings_summary(query: str, learnings: list[str]) -> str:
    text = (
        f'{SUMMARY_HEADER}No valid summary could be generated for "{query}" as no key '
        "learnings were successfully extracted during the research process."
    )
    filtered = [entry for entry in learnings if isinstance(entry, str) and entry.strip()]
    if filtered:
        bullets = "\n".join(f"- {entry}" for entry in filtered)
        text += f"\n\nPotential issues encountered during research (these were filtered out):\n{bullets}"
    else:
        text += "\n\nReason: The research process returned no information."
    return text


def learnings_list_summary(learnings: list[str]) -> str:
    bullets = "\n".join(f"- {entry}" for entry in learnings)
    return (
        f"{SUMMARY_HEADER}Failed to generate a narrative summary via LLM. "
        f"Key Learnings Found:\n{bullets}"
    )


class SummaryWriter:
    def __init__(
        self,
        llm: LLMProvider | None,
        output_fn: Callable[[str], None] | None = None,
        error_fn: Callable[[str], None] | None = None,
    ) -> None:
        self._llm = llm
        self._output = output_fn or logger.info
        self._error = error_fn or logger.error

    async def write(self, query: str, learnings: list[str], metadata: Any = None) -> str:
        """Return a markdown section starting with ``## Summary``."""
        valid = [entry for entry in learnings if is_valid_learning(entry)]
        if not valid:
            self._output(f'No valid learnings to summarize for "{query}"')
            return no_learnings_summary(query, learnings)

        if self._llm is None:
            self._error("No LLM configured, listing learnings instead of a narrative summary")
            return learnings_list_summary(valid)

        try:
            response = await self._llm.complete(
                prompts.RESEARCH_SYSTEM_PROMPT,
                prompts.summary_prompt(query, valid, metadata),
                LLMConfig(temperature=0.7, max_tokens=2000),
            )
        except AuthError:
            raise
        except DeepResearchError as e:
            self._error(f"Failed to generate summary via LLM: {e}")
            return learnings_list_summary(valid)

        parsed = parse_report(response.content)
        if not parsed.success:
            self._error(f"Summary response unusable: {parsed.error}")
            return learnings_list_summary(valid)
        return f"{SUMMARY_HEADER}{parsed.data}"
