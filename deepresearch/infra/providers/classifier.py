"""Token classification through a dedicated Venice character."""

from __future__ import annotations

import logging

from deepresearch.infra.providers.base import LLMProvider
from deepresearch.infra.providers.venice import CLASSIFIER_CHARACTER
from deepresearch.models.provider import LLMConfig, LLMMessage
from deepresearch.services.parsers import clean_chat_response

logger = logging.getLogger(__name__)

MAX_CLASSIFIER_INPUT = 8000


class TokenClassifier:
    """Returns an opaque classification blob for a piece of text.

    The blob is forwarded into prompts untouched. An empty reply means no
    classification and yields None.
    """

    def __init__(self, llm: LLMProvider, character_slug: str = CLASSIFIER_CHARACTER) -> None:
        self._llm = llm
        self._character_slug = character_slug

    async def classify(self, text: str) -> str | None:
        text = (text or "").strip()
        if not text:
            return None
        response = await self._llm.complete_chat(
            [LLMMessage(role="user", content=text[:MAX_CLASSIFIER_INPUT])],
            LLMConfig(temperature=0.2, max_tokens=800, character_slug=self._character_slug),
        )
        cleaned = clean_chat_response(response.content)
        if not cleaned:
            logger.info("Token classifier returned no usable output")
            return None
        return cleaned
