"""Tests for MemoryManager with mocked LLM and persistence."""

import json
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from deepresearch.errors import ApiError, ConfigError
from deepresearch.models.memory import Memory, MemoryKind, MemoryRole
from deepresearch.models.provider import LLMResponse
from deepresearch.services.memory_helpers import (
    calculate_similarity,
    coerce_score,
    coerce_tags,
    extract_key_concepts,
    recency_boost,
)
from deepresearch.services.memory_manager import MemoryManager

QUERY = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"
OLD = (datetime.now(timezone.utc) - timedelta(hours=500)).isoformat()


def _reply(payload) -> LLMResponse:
    return LLMResponse(content=json.dumps(payload))


@pytest.fixture
def llm():
    return AsyncMock()


@pytest.fixture
def persistence():
    mock = AsyncMock()
    mock.retrieve_memories.return_value = []
    return mock


class TestHelpers:
    def test_similarity(self):
        assert calculate_similarity("alpha bravo", "bravo charlie") == pytest.approx(1 / 3)
        assert calculate_similarity("", "x") == 0.0

    def test_key_concepts(self):
        assert extract_key_concepts("the qubit and the qubit with gates") == ["qubit", "gates"]

    def test_recency_boost(self):
        assert recency_boost(0) == pytest.approx(0.1)
        assert recency_boost(500) == 0.0

    def test_coerce(self):
        assert coerce_score("0.4", 0.5) == 0.4
        assert coerce_score(float("nan"), 0.5) == 0.5
        assert coerce_score(3, 0.5) == 1.0
        assert coerce_tags("a, b") == {"a", "b"}
        assert coerce_tags(None) == set()


class TestMemoryManagerBasics:
    def test_invalid_depth(self):
        with pytest.raises(ConfigError, match="Invalid memory depth"):
            MemoryManager(None, depth="huge")

    @pytest.mark.asyncio
    async def test_store_memory(self):
        manager = MemoryManager(None, depth="short")
        m = await manager.store_memory("hello", "user")
        assert m.score == 0.5
        assert manager.get_all_memories() == [m]
        assert manager.get_depth_level() == "short"
        assert manager.get_stats().memories_stored == 1


class TestRetrieval:
    @pytest.mark.asyncio
    async def test_local_ranking_threshold(self):
        manager = MemoryManager(None, depth="medium")
        manager.store.create_ephemeral("alpha bravo charlie", score=0.0, timestamp=OLD)
        strong = manager.store.create_ephemeral(
            "alpha bravo charlie delta echo foxtrot golf hotel", score=0.0, timestamp=OLD
        )
        results = await manager.retrieve_relevant_memories(QUERY)
        assert [m.id for m in results] == [strong.id]
        assert results[0].similarity == pytest.approx(0.8)
        assert strong.similarity is None
        assert manager.get_stats().memories_retrieved == 1

    @pytest.mark.asyncio
    async def test_retrieval_limit(self):
        manager = MemoryManager(None, depth="short")
        for _ in range(5):
            manager.store.create_ephemeral(QUERY, timestamp=OLD)
        results = await manager.retrieve_relevant_memories(QUERY)
        assert len(results) == manager.profile.retrieval_limit == 2
        assert all(m.similarity >= manager.profile.threshold for m in results)

    @pytest.mark.asyncio
    async def test_llm_scoring(self, llm):
        manager = MemoryManager(llm, depth="medium")
        weak = await manager.store_memory("unrelated chatter")
        strong = await manager.store_memory("qubits decohere quickly")
        llm.complete.return_value = LLMResponse(
            content=f'Here you go: [{{"id": "{strong.id}", "score": 0.9, "reason": "about qubits"}}, '
            f'{{"id": "{weak.id}", "score": 0.1}}, {{"id": "mem-unknown", "score": 1}}]'
        )
        results = await manager.retrieve_relevant_memories("qubits")
        assert [m.id for m in results] == [strong.id]
        assert results[0].match_reason == "about qubits"

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_local(self, llm):
        llm.complete.side_effect = ApiError("down")
        manager = MemoryManager(llm, depth="medium")
        m = await manager.store_memory(QUERY)
        results = await manager.retrieve_relevant_memories(QUERY)
        assert [r.id for r in results] == [m.id]

    @pytest.mark.asyncio
    async def test_includes_persisted_long_term(self, persistence):
        persisted = Memory(id="mem-db", content=QUERY, validated=True)
        persistence.retrieve_memories.return_value = [persisted]
        manager = MemoryManager(None, depth="medium", persistence=persistence)
        results = await manager.retrieve_relevant_memories(QUERY, include_meta=False)
        assert [m.id for m in results] == ["mem-db"]
        persistence.retrieve_memories.assert_awaited_once_with(MemoryKind.LONG_TERM)

    @pytest.mark.asyncio
    async def test_includes_persisted_meta(self, persistence):
        summary = Memory(id="mem-meta", content=QUERY, role=MemoryRole.SUMMARY, is_meta=True)
        persistence.retrieve_memories.side_effect = lambda kind: [summary] if kind == MemoryKind.META else []
        manager = MemoryManager(None, depth="medium", persistence=persistence)
        results = await manager.retrieve_relevant_memories(QUERY, include_long_term=False)
        assert [m.id for m in results] == ["mem-meta"]
        persistence.retrieve_memories.assert_awaited_once_with(MemoryKind.META)

    @pytest.mark.asyncio
    async def test_persistence_error_ignored(self, persistence):
        persistence.retrieve_memories.side_effect = RuntimeError("db down")
        manager = MemoryManager(None, depth="medium", persistence=persistence)
        assert await manager.retrieve_relevant_memories(QUERY) == []

    @pytest.mark.asyncio
    async def test_excluding_tiers(self):
        manager = MemoryManager(None, depth="medium")
        await manager.store_memory(QUERY)
        assert await manager.retrieve_relevant_memories(QUERY, include_short_term=False) == []


class TestValidation:
    @pytest.mark.asyncio
    async def test_no_llm(self):
        manager = MemoryManager(None)
        await manager.store_memory("x")
        result = await manager.validate_memories()
        assert result["validated"] == 0
        assert "error" in result

    @pytest.mark.asyncio
    async def test_empty(self, llm):
        assert await MemoryManager(llm).validate_memories() == {"validated": 0}
        llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_actions(self, llm):
        manager = MemoryManager(llm, depth="medium")
        keep = await manager.store_memory("keep me")
        drop = await manager.store_memory("drop me")
        fold = await manager.store_memory("fold me")
        llm.complete.return_value = _reply({"memories": [
            {"id": keep.id, "action": "retain", "score": 0.9, "tags": ["important"]},
            {"id": drop.id, "action": "discard", "score": 0.1},
            {"id": fold.id, "action": "summarize", "score": 0.6},
        ]})
        result = await manager.validate_memories()

        assert result == {"validated": 3, "retained": 1, "summarized": 1, "discarded": 1}
        assert keep.tags == {"important"}
        assert [m.id for m in manager.store.get_validated()] == [keep.id, fold.id]
        assert fold.needs_summarization
        assert drop not in manager.store.get_ephemeral()
        assert manager.get_stats().memories_validated == 3

    @pytest.mark.asyncio
    async def test_low_score_retain_not_promoted(self, llm):
        manager = MemoryManager(llm, depth="short")
        m = await manager.store_memory("meh")
        llm.complete.return_value = _reply({"memories": [{"id": m.id, "action": "retain", "score": 0.2}]})
        await manager.validate_memories()
        assert manager.store.get_validated() == []

    @pytest.mark.asyncio
    async def test_bad_reply(self, llm):
        manager = MemoryManager(llm)
        await manager.store_memory("x")
        llm.complete.return_value = LLMResponse(content="I cannot do that")
        result = await manager.validate_memories()
        assert result["validated"] == 0
        assert result["error"]

    @pytest.mark.asyncio
    async def test_summarize_trigger(self, llm, persistence):
        manager = MemoryManager(llm, depth="medium", persistence=persistence)
        stored = [await manager.store_memory(f"topic {i}") for i in range(3)]
        llm.complete.side_effect = [
            _reply({"memories": [{"id": m.id, "action": "summarize", "score": 0.6} for m in stored]}),
            _reply({"summaries": [{"content": "Three topics", "tags": ["topics"], "importance": 0.8}]}),
        ]
        result = await manager.validate_memories()
        await manager.wait_for_pending()

        assert result["summary"] == {"summarized": 1, "original_count": 3}
        validated = manager.store.get_validated()
        assert [m.content for m in validated] == ["Three topics"]
        summary = validated[0]
        assert summary.role == MemoryRole.SUMMARY
        assert summary.source_memories == [m.id for m in stored]
        persistence.store_memory.assert_awaited_once_with(summary, MemoryKind.META)

    @pytest.mark.asyncio
    async def test_summary_persistence_failure_logged(self, llm, persistence, caplog):
        persistence.store_memory.side_effect = RuntimeError("db down")
        manager = MemoryManager(llm, depth="medium", persistence=persistence)
        sources = [await manager.store_memory(f"topic {i}") for i in range(2)]
        llm.complete.return_value = _reply({"summaries": [{"content": "Two topics"}]})

        with caplog.at_level(logging.ERROR, logger="deepresearch.services.memory_manager"):
            result = await manager.summarize_memories(sources)
            await manager.wait_for_pending()

        assert result == {"summarized": 1, "original_count": 2}
        assert [m.content for m in manager.store.get_validated()] == ["Two topics"]
        assert "Failed to persist meta memory" in caplog.text
        assert "db down" in caplog.text


class TestSummarizeAndFinalize:
    @pytest.mark.asyncio
    async def test_with_llm(self, llm, persistence):
        manager = MemoryManager(llm, persistence=persistence)
        related = await manager.store_memory("we discussed qubits at length")
        await manager.store_memory("small talk")
        llm.complete.return_value = LLMResponse(content=(
            '```json\n{"summary": "A chat about qubits.", "keyPoints": ["qubits"], '
            '"tags": ["quantum"]}\n```'
        ))
        result = await manager.summarize_and_finalize("user: qubits?\nassistant: yes")

        assert result["success"] and not result["fallback"]
        meta = result["summary"]
        assert meta.is_meta
        assert meta.score == 0.8
        assert meta.key_points == ["qubits"]
        assert len(meta.source_memories) == 2
        assert manager.store.get_ephemeral() == []
        assert related.tags == {"quantum"}
        assert manager.store.has_validated(related.id)
        assert manager.get_stats().memories_summarized == 1
        persistence.store_memory.assert_awaited_once_with(meta, MemoryKind.META)

    @pytest.mark.asyncio
    async def test_fallback_without_llm(self, persistence):
        manager = MemoryManager(None, persistence=persistence)
        await manager.store_memory("hello")
        text = "user: " + "x" * 200
        result = await manager.summarize_and_finalize(text)

        assert result["fallback"]
        assert result["summary"].content == f"Conversation summary (auto-generated): {text[:100]}..."
        assert manager.store.get_ephemeral() == []
        persistence.store_memory.assert_not_called()

    @pytest.mark.asyncio
    async def test_persistence_failure_not_fatal(self, llm, persistence):
        persistence.store_memory.side_effect = RuntimeError("db down")
        llm.complete.return_value = _reply({"summary": "ok"})
        manager = MemoryManager(llm, persistence=persistence)
        result = await manager.summarize_and_finalize("user: hi")
        assert result["success"]


class TestFinalizeToLongTerm:
    @pytest.mark.asyncio
    async def test_requires_memory(self, persistence):
        manager = MemoryManager(None, persistence=persistence)
        assert not (await manager.finalize_to_long_term(None))["success"]

    @pytest.mark.asyncio
    async def test_requires_persistence(self):
        result = await MemoryManager(None).finalize_to_long_term(Memory(id="m", content="x"))
        assert result == {"success": False, "error": "Memory persistence not configured"}

    @pytest.mark.asyncio
    async def test_success(self, persistence):
        memory = Memory(id="m", content="x")
        result = await MemoryManager(None, persistence=persistence).finalize_to_long_term(memory)
        assert result == {"success": True}
        persistence.store_memory.assert_awaited_once_with(memory, MemoryKind.LONG_TERM)

    @pytest.mark.asyncio
    async def test_failure_reported(self, persistence):
        persistence.store_memory.side_effect = RuntimeError("db down")
        result = await MemoryManager(None, persistence=persistence).finalize_to_long_term(
            Memory(id="m", content="x")
        )
        assert result == {"success": False, "error": "db down"}


class TestOrganizeLayers:
    @pytest.mark.asyncio
    async def test_counts(self):
        manager = MemoryManager(None)
        await manager.store_memory("recent")
        manager.store.add_validated(Memory(id="meta", content="m", is_meta=True))
        assert manager.organize_memory_layers() == {
            "short_term": 1, "long_term": 0, "meta": 1, "total": 2,
        }
