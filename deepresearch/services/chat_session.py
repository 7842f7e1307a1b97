"""Chat session: transcript, memory recall and research hand-off."""

from __future__ import annotations

import logging

from deepresearch.errors import ConfigError
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.models.memory import Memory, MemoryRole
from deepresearch.models.provider import LLMConfig, LLMMessage
from deepresearch.models.research import ResearchResult
from deepresearch.services.chat_bridge import ChatToResearchBridge, build_context
from deepresearch.services.memory_manager import MemoryManager

logger = logging.getLogger(__name__)

DEFAULT_CHAT_PROMPT = (
    "You are a helpful research assistant. Answer clearly and concisely. When earlier "
    "conversation memories are provided, use them where relevant."
)


def format_memory_context(memories: list[Memory]) -> str:
    lines = [f"- [{m.role.value}] {m.content}" for m in memories]
    return "Relevant memories from earlier in the conversation:\n" + "\n".join(lines)


class ChatSession:
    """Keeps the ordered transcript and routes each turn through memory."""

    def __init__(
        self,
        llm: LLMProvider | None,
        memory: MemoryManager | None = None,
        bridge: ChatToResearchBridge | None = None,
        system_prompt: str = DEFAULT_CHAT_PROMPT,
        config: LLMConfig | None = None,
    ) -> None:
        self._llm = llm
        self._memory = memory
        self._bridge = bridge
        self._system_prompt = system_prompt
        self._config = config or LLMConfig(temperature=0.7, max_tokens=1000)
        self.transcript: list[LLMMessage] = []

    async def _recall(self, text: str) -> list[Memory]:
        if self._memory is None:
            return []
        return await self._memory.retrieve_relevant_memories(text)

    async def _remember(self, content: str, role: MemoryRole) -> None:
        if self._memory is None:
            return
        await self._memory.store_memory(content, role)
        stats = self._memory.get_stats()
        if stats.memories_stored % self._memory.profile.summarize_every == 0:
            result = await self._memory.validate_memories()
            logger.debug("Periodic memory validation: %s", result)

    def build_messages(self, memories: list[Memory]) -> list[LLMMessage]:
        messages = [LLMMessage(role="system", content=self._system_prompt)]
        if memories:
            messages.append(LLMMessage(role="system", content=format_memory_context(memories)))
        messages.extend(self.transcript)
        return messages

    async def send(self, text: str) -> str:
        """Add a user turn and return the assistant reply."""
        if self._llm is None:
            raise ConfigError("Chat requires an LLM provider")
        memories = await self._recall(text)
        self.transcript.append(LLMMessage(role="user", content=text))
        await self._remember(text, MemoryRole.USER)

        response = await self._llm.complete_chat(self.build_messages(memories), self._config)
        self.transcript.append(LLMMessage(role="assistant", content=response.content))
        await self._remember(response.content, MemoryRole.ASSISTANT)
        return response.content

    async def handoff_to_research(
        self,
        num_queries: int = 3,
        classify: bool = False,
        depth: int = 2,
        breadth: int = 3,
    ) -> ResearchResult:
        if self._bridge is None:
            raise ConfigError("Chat session has no research bridge")
        return await self._bridge.run_research(
            self.transcript, num_queries=num_queries, classify=classify, depth=depth, breadth=breadth
        )

    async def finalize(self) -> dict:
        """Summarise the conversation into memory and flush pending writes."""
        if self._memory is None:
            return {"success": False, "error": "Memory is disabled for this session"}
        result = await self._memory.summarize_and_finalize(build_context(self.transcript))
        await self._memory.wait_for_pending()
        return result
