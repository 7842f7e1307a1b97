"""Tests for Memory models."""

from datetime import datetime, timedelta, timezone

import pytest

from deepresearch.models.memory import (
    MEMORY_PROFILES,
    Memory,
    MemoryDepth,
    MemoryLayers,
    MemoryRole,
)


class TestMemory:
    def test_create(self):
        m = Memory(id="mem-1", content="hello", role="assistant")
        assert m.role == MemoryRole.ASSISTANT
        assert m.score == 0.5
        assert m.tags == set()

    def test_empty_id_raises(self):
        with pytest.raises(ValueError, match="id cannot be empty"):
            Memory(id="", content="x")

    def test_score_clamped(self):
        assert Memory(id="m", content="x", score=1.7).score == 1.0
        assert Memory(id="m", content="x", score=-2).score == 0.0

    def test_age_hours(self):
        ts = (datetime.now(timezone.utc) - timedelta(hours=5)).isoformat()
        m = Memory(id="m", content="x", timestamp=ts)
        assert 4.9 < m.age_hours < 5.1

    def test_doc_roundtrip(self):
        m = Memory(
            id="mem-abc",
            content="summary",
            role=MemoryRole.SUMMARY,
            tags={"b", "a"},
            score=0.8,
            is_meta=True,
            source_memories=["mem-1"],
            key_points=["point"],
        )
        doc = m.to_doc()
        assert doc["memory_id"] == "mem-abc"
        assert doc["tags"] == ["a", "b"]
        restored = Memory.from_doc(doc)
        assert restored.id == "mem-abc"
        assert restored.is_meta
        assert restored.tags == {"a", "b"}
        assert restored.key_points == ["point"]

    def test_from_doc_falls_back_to_object_id(self):
        restored = Memory.from_doc({"_id": "abc123", "content": "x"})
        assert restored.id == "abc123"
        assert restored.role == MemoryRole.SYSTEM


class TestProfiles:
    def test_short_profile(self):
        profile = MEMORY_PROFILES[MemoryDepth.SHORT]
        assert profile.max_memories == 10
        assert profile.retrieval_limit == 2
        assert profile.threshold == 0.7

    def test_thresholds_decrease_with_depth(self):
        short, medium, long_ = (MEMORY_PROFILES[d] for d in MemoryDepth)
        assert short.threshold > medium.threshold > long_.threshold


class TestMemoryLayers:
    def test_counts(self):
        a = Memory(id="a", content="x")
        b = Memory(id="b", content="y")
        layers = MemoryLayers(short_term=(a,), meta=(b,))
        assert layers.counts == {"short_term": 1, "long_term": 0, "meta": 1, "total": 2}
