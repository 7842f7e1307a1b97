"""Memory manager: ranking, validation, summarisation and persistence hand-off."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Protocol, runtime_checkable

from deepresearch.errors import ConfigError, DeepResearchError
from deepresearch.infra.providers.base import LLMProvider
from deepresearch.models.memory import (
    MEMORY_PROFILES,
    Memory,
    MemoryDepth,
    MemoryKind,
    MemoryRole,
    MemoryStats,
)
from deepresearch.models.provider import LLMConfig
from deepresearch.services import prompts
from deepresearch.services.memory_helpers import (
    build_conversation_prompt,
    build_group_summary_prompt,
    build_scoring_prompt,
    build_validation_prompt,
    coerce_score,
    coerce_tags,
    extract_key_concepts,
    local_relevance,
)
from deepresearch.services.memory_store import MemoryStore
from deepresearch.services.parsers import parse_json_payload

logger = logging.getLogger(__name__)

VALIDATION_BATCH = 10
SUMMARIZE_TRIGGER = 3
FALLBACK_PREVIEW_CHARS = 100
LAYER_SCORE_THRESHOLD = 0.7


@runtime_checkable
class MemoryPersistence(Protocol):
    """Remote store for long-term and meta memories."""

    async def store_memory(self, memory: Memory, kind: MemoryKind) -> Any:
        ...

    async def retrieve_memories(self, kind: MemoryKind) -> list[Memory]:
        ...


class MemoryManager:
    """Sole mutator of a ``MemoryStore``.

    Public operations report failures in their result instead of raising;
    only an unknown depth fails at construction.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        depth: MemoryDepth | str = MemoryDepth.MEDIUM,
        persistence: MemoryPersistence | None = None,
    ) -> None:
        try:
            self.depth = MemoryDepth(depth)
        except ValueError:
            valid = ", ".join(d.value for d in MemoryDepth)
            raise ConfigError(f"Invalid memory depth: {depth!r}. Use one of: {valid}") from None
        self.profile = MEMORY_PROFILES[self.depth]
        self.store = MemoryStore(self.depth, self.profile)
        self._llm = llm
        self._persistence = persistence
        self._pending: set[asyncio.Task] = set()

    def get_depth_level(self) -> str:
        return self.depth.value

    def get_stats(self) -> MemoryStats:
        return self.store.snapshot()

    def get_all_memories(self) -> list[Memory]:
        return self.store.get_all()

    async def store_memory(self, content: str, role: MemoryRole | str = MemoryRole.USER) -> Memory:
        return self.store.create_ephemeral(content, role, score=0.5)

    # Retrieval

    async def retrieve_relevant_memories(
        self,
        query: str,
        include_short_term: bool = True,
        include_long_term: bool = True,
        include_meta: bool = True,
    ) -> list[Memory]:
        candidates: dict[str, Memory] = {}

        def add(memories: list[Memory]) -> None:
            for memory in memories:
                candidates.setdefault(memory.id, memory)

        if include_short_term:
            add(self.store.get_ephemeral())
        if include_long_term:
            add([m for m in self.store.get_validated() if not m.is_meta])
            add(await self.retrieve_long_term_memories())
        if include_meta:
            add([m for m in self.store.get_validated() if m.is_meta])
            add(await self.retrieve_meta_memories())

        if not candidates:
            return []

        pool = list(candidates.values())
        concepts = extract_key_concepts(query)

        scored = await self._score_with_llm(query, concepts, pool)
        if scored is None:
            logger.info("Using local similarity ranking for memory retrieval")
            scored = [
                dataclasses.replace(m, similarity=local_relevance(query, concepts, m))
                for m in pool
            ]

        relevant = [m for m in scored if m.similarity is not None and m.similarity >= self.profile.threshold]
        relevant.sort(key=lambda m: m.similarity, reverse=True)
        relevant = relevant[: self.profile.retrieval_limit]
        self.store.record_retrieval(len(relevant))
        return relevant

    async def _score_with_llm(
        self, query: str, concepts: list[str], pool: list[Memory]
    ) -> list[Memory] | None:
        if self._llm is None:
            return None
        try:
            response = await self._llm.complete(
                prompts.MEMORY_SCORING_PROMPT,
                build_scoring_prompt(query, concepts, pool),
                LLMConfig(temperature=0.2, max_tokens=1500),
            )
        except DeepResearchError as e:
            logger.warning("LLM memory scoring failed: %s", e)
            return None

        parsed = parse_json_payload(response.content)
        if not parsed.success or not isinstance(parsed.data, list):
            logger.warning("Unusable memory scoring reply: %s", parsed.error or "not a list")
            return None

        by_id = {m.id: m for m in pool}
        scored = []
        for entry in parsed.data:
            if not isinstance(entry, dict):
                continue
            memory = by_id.get(entry.get("id"))
            if memory is None:
                continue
            scored.append(dataclasses.replace(
                memory,
                similarity=coerce_score(entry.get("score"), 0.0),
                match_reason=str(entry.get("reason") or ""),
            ))
        return scored

    async def retrieve_long_term_memories(self) -> list[Memory]:
        return await self._retrieve_persisted(MemoryKind.LONG_TERM)

    async def retrieve_meta_memories(self) -> list[Memory]:
        return await self._retrieve_persisted(MemoryKind.META)

    async def _retrieve_persisted(self, kind: MemoryKind) -> list[Memory]:
        if self._persistence is None:
            return []
        try:
            return list(await self._persistence.retrieve_memories(kind))
        except Exception as e:
            logger.error("Error retrieving %s memories: %s", kind.value, e)
            return []

    # Validation and summarisation

    async def validate_memories(self) -> dict:
        ephemeral = self.store.get_ephemeral()
        if not ephemeral:
            return {"validated": 0}
        if self._llm is None:
            return {"validated": 0, "error": "No LLM configured"}

        batch = ephemeral[-VALIDATION_BATCH:]
        try:
            response = await self._llm.complete(
                prompts.MEMORY_VALIDATION_PROMPT,
                build_validation_prompt(batch),
                LLMConfig(temperature=0.3, max_tokens=1500),
            )
        except DeepResearchError as e:
            logger.error("Error validating memories: %s", e)
            return {"validated": 0, "error": str(e)}

        parsed = parse_json_payload(response.content)
        payload = parsed.data if parsed.success else None
        entries = payload.get("memories") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            error = parsed.error or "Validation reply had no memories list"
            logger.error("Error validating memories: %s", error)
            return {"validated": 0, "error": error}

        counts = {"retain": 0, "summarize": 0, "discard": 0}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            memory = next((m for m in self.store.get_ephemeral() if m.id == entry.get("id")), None)
            if memory is None:
                continue
            action = str(entry.get("action", "")).lower()
            memory.score = coerce_score(entry.get("score"), 0.5)
            memory.tags = coerce_tags(entry.get("tags"))
            memory.validated = True

            if action == "retain" and memory.score >= self.profile.threshold:
                self.store.add_validated(memory)
            elif action == "summarize":
                memory.needs_summarization = True
                self.store.add_validated(memory)
            elif action == "discard":
                self.store.remove_ephemeral_by_id(memory.id)
            if action in counts:
                counts[action] += 1

        validated = len(entries)
        self.store.record_validation(validated)
        result: dict = {
            "validated": validated,
            "retained": counts["retain"],
            "summarized": counts["summarize"],
            "discarded": counts["discard"],
        }

        pending = [m for m in self.store.get_validated() if m.needs_summarization]
        if len(pending) >= SUMMARIZE_TRIGGER:
            result["summary"] = await self.summarize_memories(pending)
        return result

    async def summarize_memories(self, memories: list[Memory]) -> dict:
        if not memories:
            return {"summarized": 0}
        if self._llm is None:
            return {"summarized": 0, "error": "No LLM configured"}

        try:
            response = await self._llm.complete(
                prompts.MEMORY_GROUP_SUMMARY_PROMPT,
                build_group_summary_prompt(memories),
                LLMConfig(temperature=0.4, max_tokens=2000),
            )
        except DeepResearchError as e:
            logger.error("Error summarizing memories: %s", e)
            return {"summarized": 0, "error": str(e)}

        parsed = parse_json_payload(response.content)
        payload = parsed.data if parsed.success else None
        entries = payload.get("summaries") if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            error = parsed.error or "Summary reply had no summaries list"
            logger.error("Error summarizing memories: %s", error)
            return {"summarized": 0, "error": error}

        source_ids = [m.id for m in memories]
        created = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            content = entry.get("content")
            if not isinstance(content, str) or not content.strip():
                continue
            summary = Memory(
                id=self.store.new_id(),
                content=content.strip(),
                role=MemoryRole.SUMMARY,
                tags=coerce_tags(entry.get("tags")),
                score=coerce_score(entry.get("importance"), 0.7),
                validated=True,
                summarized=True,
                source_memories=list(source_ids),
            )
            self.store.add_validated(summary)
            self._persist_later(summary, MemoryKind.META)
            created.append(summary)

        if created:
            for memory in memories:
                memory.needs_summarization = False
                self.store.remove_validated_by_id(memory.id)
        self.store.record_summaries(len(created))
        return {"summarized": len(created), "original_count": len(memories)}

    async def summarize_and_finalize(self, conversation_text: str) -> dict:
        """Collapse the conversation into one meta-memory and clear the ephemeral tier."""
        source_ids = [m.id for m in self.store.get_ephemeral()]
        payload = await self._conversation_summary(conversation_text)

        if payload is None:
            preview = conversation_text[:FALLBACK_PREVIEW_CHARS]
            meta = Memory(
                id=self.store.new_id(),
                content=f"Conversation summary (auto-generated): {preview}...",
                role=MemoryRole.SUMMARY,
                validated=True,
                is_meta=True,
                summarized=True,
                source_memories=source_ids,
            )
            self.store.add_validated(meta)
            self.store.clear_ephemeral()
            self.store.record_summaries(1)
            return {"success": True, "summary": meta, "fallback": True}

        key_points = [str(p) for p in payload.get("keyPoints") or [] if str(p).strip()]
        meta = Memory(
            id=self.store.new_id(),
            content=payload["summary"].strip(),
            role=MemoryRole.SUMMARY,
            tags=coerce_tags(payload.get("tags")),
            score=0.8,
            validated=True,
            is_meta=True,
            summarized=True,
            source_memories=source_ids,
            key_points=key_points,
        )
        self.store.add_validated(meta)

        for point in key_points:
            needle = point.lower()
            for memory in self.store.get_ephemeral():
                if needle in memory.content.lower():
                    memory.tags |= meta.tags
                    memory.validated = True
                    self.store.add_validated(memory)

        self.store.clear_ephemeral()
        self.store.record_summaries(1)
        await self._persist(meta, MemoryKind.META)
        return {"success": True, "summary": meta, "fallback": False}

    async def _conversation_summary(self, conversation_text: str) -> dict | None:
        if self._llm is None:
            logger.warning("No LLM configured, using fallback conversation summary")
            return None
        try:
            response = await self._llm.complete(
                prompts.CONVERSATION_SUMMARY_PROMPT,
                build_conversation_prompt(conversation_text),
                LLMConfig(temperature=0.3, max_tokens=1500),
            )
        except DeepResearchError as e:
            logger.error("Error summarizing conversation: %s", e)
            return None
        parsed = parse_json_payload(response.content)
        payload = parsed.data if parsed.success else None
        if not isinstance(payload, dict) or not isinstance(payload.get("summary"), str) \
                or not payload["summary"].strip():
            logger.error("Unusable conversation summary reply: %s", parsed.error or "no summary")
            return None
        return payload

    # Persistence

    async def finalize_to_long_term(self, memory: Memory | None) -> dict:
        if memory is None:
            return {"success": False, "error": "No memory provided"}
        if self._persistence is None:
            return {"success": False, "error": "Memory persistence not configured"}
        try:
            await self._persistence.store_memory(memory, MemoryKind.LONG_TERM)
        except Exception as e:
            logger.error("Error finalizing memory %s to long-term storage: %s", memory.id, e)
            return {"success": False, "error": str(e)}
        return {"success": True}

    def _persist_later(self, memory: Memory, kind: MemoryKind) -> None:
        if self._persistence is None:
            return
        task = asyncio.create_task(self._persist(memory, kind))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, memory: Memory, kind: MemoryKind) -> bool:
        if self._persistence is None:
            return False
        try:
            await self._persistence.store_memory(memory, kind)
            return True
        except Exception as e:
            logger.error("Failed to persist %s memory %s: %s", kind.value, memory.id, e)
            return False

    async def wait_for_pending(self) -> None:
        """Wait for fire-and-forget persistence writes to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def organize_memory_layers(self, score_threshold: float = LAYER_SCORE_THRESHOLD) -> dict[str, int]:
        return self.store.organize_layers(score_threshold).counts
