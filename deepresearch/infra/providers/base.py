"""LLM provider protocol definition."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from deepresearch.models.provider import LLMConfig, LLMMessage, LLMResponse


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    async def complete(
        self,
        system: str,
        prompt: str,
        config: LLMConfig | None = None,
    ) -> LLMResponse:
        """Single-shot completion from a system and a user prompt."""
        ...

    async def complete_chat(
        self,
        messages: list[LLMMessage],
        config: LLMConfig | None = None,
    ) -> LLMResponse:
        """Completion over a full message history."""
        ...
