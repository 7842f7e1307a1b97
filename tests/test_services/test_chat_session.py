"""Tests for ChatSession."""

from unittest.mock import AsyncMock, patch

import pytest

from deepresearch.errors import ConfigError
from deepresearch.models.provider import LLMResponse
from deepresearch.models.research import ResearchResult
from deepresearch.services.chat_session import ChatSession
from deepresearch.services.memory_manager import MemoryManager


@pytest.fixture
def llm():
    mock = AsyncMock()
    mock.complete_chat.return_value = LLMResponse(content="Superconductors have zero resistance.")
    return mock


class TestChatSession:
    @pytest.mark.asyncio
    async def test_send_records_transcript_and_memory(self, llm):
        memory = MemoryManager(None, depth="short")
        session = ChatSession(llm, memory=memory)
        reply = await session.send("Tell me about superconductors")

        assert reply == "Superconductors have zero resistance."
        assert [t.role for t in session.transcript] == ["user", "assistant"]
        assert memory.get_stats().memories_stored == 2
        messages = llm.complete_chat.await_args.args[0]
        assert messages[0].role == "system"
        assert messages[-1].content == "Tell me about superconductors"

    @pytest.mark.asyncio
    async def test_relevant_memories_injected(self, llm):
        memory = MemoryManager(None, depth="short")
        session = ChatSession(llm, memory=memory)
        await session.send("superconductors zero resistance")
        await session.send("superconductors zero resistance")

        messages = llm.complete_chat.await_args.args[0]
        assert messages[1].role == "system"
        assert messages[1].content.startswith("Relevant memories from earlier in the conversation")

    @pytest.mark.asyncio
    async def test_periodic_validation(self, llm):
        memory = MemoryManager(None, depth="short")
        session = ChatSession(llm, memory=memory)
        with patch.object(memory, "validate_memories", AsyncMock(return_value={"validated": 0})) as validate:
            for i in range(5):
                await session.send(f"message {i}")
        validate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requires_llm(self):
        with pytest.raises(ConfigError):
            await ChatSession(None).send("hi")

    @pytest.mark.asyncio
    async def test_handoff(self, llm):
        bridge = AsyncMock()
        bridge.run_research.return_value = ResearchResult(query="q")
        session = ChatSession(llm, bridge=bridge)
        await session.send("Tell me about superconductors")
        result = await session.handoff_to_research(num_queries=2, depth=1, breadth=2)

        assert result.query == "q"
        args, kwargs = bridge.run_research.await_args
        assert args[0] is session.transcript
        assert kwargs["num_queries"] == 2

    @pytest.mark.asyncio
    async def test_handoff_requires_bridge(self, llm):
        with pytest.raises(ConfigError):
            await ChatSession(llm).handoff_to_research()

    @pytest.mark.asyncio
    async def test_finalize(self, llm):
        memory = MemoryManager(None, depth="short")
        session = ChatSession(llm, memory=memory)
        await session.send("Tell me about superconductors")
        result = await session.finalize()

        assert result["success"]
        assert result["fallback"]
        assert "user: Tell me about superconductors" in result["summary"].content
        assert memory.store.get_ephemeral() == []

    @pytest.mark.asyncio
    async def test_finalize_without_memory(self, llm):
        result = await ChatSession(llm).finalize()
        assert result == {"success": False, "error": "Memory is disabled for this session"}
