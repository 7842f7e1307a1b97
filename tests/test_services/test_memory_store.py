"""Tests for the in-process MemoryStore."""

import pytest

from deepresearch.models.memory import MEMORY_PROFILES, Memory, MemoryDepth, MemoryRole
from deepresearch.services.memory_store import MemoryStore, generate_memory_id


@pytest.fixture
def short_store():
    return MemoryStore(MemoryDepth.SHORT, MEMORY_PROFILES[MemoryDepth.SHORT])


class TestGenerateMemoryId:
    def test_format(self):
        memory_id = generate_memory_id()
        assert memory_id.startswith("mem-") and len(memory_id) == 12

    def test_skips_taken_ids(self, monkeypatch):
        tokens = iter(["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"])
        monkeypatch.setattr("deepresearch.services.memory_store.secrets.token_hex", lambda n: next(tokens))
        assert generate_memory_id({"mem-aaaaaaaa"}) == "mem-bbbbbbbb"

    def test_store_avoids_live_ids(self, short_store, monkeypatch):
        tokens = iter(["aaaaaaaa", "aaaaaaaa", "bbbbbbbb"])
        monkeypatch.setattr("deepresearch.services.memory_store.secrets.token_hex", lambda n: next(tokens))
        first = short_store.create_ephemeral("one")
        second = short_store.create_ephemeral("two")
        assert (first.id, second.id) == ("mem-aaaaaaaa", "mem-bbbbbbbb")


class TestMemoryStore:
    def test_capacity_drops_oldest(self, short_store):
        for i in range(15):
            short_store.create_ephemeral(f"message {i}")
        contents = [m.content for m in short_store.get_ephemeral()]
        assert len(contents) == 10
        assert contents == [f"message {i}" for i in range(5, 15)]
        assert short_store.snapshot().memories_stored == 15

    def test_newest_always_retained(self, short_store):
        for i in range(25):
            latest = short_store.create_ephemeral(f"message {i}")
            assert short_store.get_ephemeral()[-1] is latest
            assert len(short_store.get_ephemeral()) <= 10

    def test_create_defaults(self, short_store):
        m = short_store.create_ephemeral("hello", "assistant")
        assert m.role == MemoryRole.ASSISTANT
        assert m.score == 0.5
        assert not m.validated

    def test_add_validated_idempotent(self, short_store):
        m = Memory(id="mem-1", content="x", validated=True)
        short_store.add_validated(m)
        short_store.add_validated(m)
        assert short_store.get_validated() == [m]

    def test_add_validated_replaces_same_id(self, short_store):
        short_store.add_validated(Memory(id="mem-1", content="old"))
        short_store.add_validated(Memory(id="mem-1", content="new"))
        assert [m.content for m in short_store.get_validated()] == ["new"]

    def test_remove_by_index_bounds(self, short_store):
        short_store.create_ephemeral("a")
        assert not short_store.remove_ephemeral_by_index(5)
        assert not short_store.remove_ephemeral_by_index(-1)
        assert short_store.remove_ephemeral_by_index(0)
        assert short_store.get_ephemeral() == []

    def test_remove_by_id(self, short_store):
        m = short_store.create_ephemeral("a")
        short_store.add_validated(Memory(id="mem-v", content="b"))
        assert short_store.remove_ephemeral_by_id(m.id)
        assert not short_store.remove_ephemeral_by_id(m.id)
        assert short_store.has_validated("mem-v")
        assert short_store.remove_validated_by_id("mem-v")
        assert not short_store.has_validated("mem-v")

    def test_clear_ephemeral_keeps_validated(self, short_store):
        short_store.create_ephemeral("a")
        short_store.add_validated(Memory(id="mem-v", content="b"))
        short_store.clear_ephemeral()
        assert short_store.get_ephemeral() == []
        assert len(short_store.get_all()) == 1

    def test_snapshot_counters(self, short_store):
        short_store.create_ephemeral("a")
        short_store.record_retrieval(2)
        short_store.record_validation(3)
        short_store.record_summaries(1)
        stats = short_store.snapshot()
        assert stats.memories_retrieved == 2
        assert stats.memories_validated == 3
        assert stats.memories_summarized == 1
        assert stats.depth_level == "short"
        assert stats.ephemeral_count == 1

    def test_organize_layers(self, short_store):
        short_store.create_ephemeral("recent")
        short_store.add_validated(Memory(id="hi", content="x", score=0.9))
        short_store.add_validated(Memory(id="lo", content="y", score=0.3))
        short_store.add_validated(Memory(id="meta", content="z", is_meta=True))
        layers = short_store.organize_layers()
        assert [m.id for m in layers.long_term] == ["hi"]
        assert [m.id for m in layers.meta] == ["meta"]
        assert len(layers.short_term) == 2
