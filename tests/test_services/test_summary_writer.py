"""Tests for SummaryWriter."""

from unittest.mock import AsyncMock

import pytest

from deepresearch.errors import ApiError, AuthError
from deepresearch.models.provider import LLMResponse
from deepresearch.services.summary_writer import SummaryWriter, is_valid_learning

SENTINELS = [
    "Error processing search for 'q': boom",
    "Error generating follow-up queries for 'q': boom",
    "Error during research path: boom",
    "No search results found for: q",
]


@pytest.fixture
def llm():
    mock = AsyncMock()
    mock.complete.return_value = LLMResponse(content="Qubits are neat.")
    return mock


class TestIsValidLearning:
    @pytest.mark.parametrize("entry", SENTINELS + ["", "   ", None])
    def test_filtered(self, entry):
        assert not is_valid_learning(entry)

    def test_valid(self):
        assert is_valid_learning("Qubits decohere quickly")


class TestSummaryWriter:
    @pytest.mark.asyncio
    async def test_narrative(self, llm):
        summary = await SummaryWriter(llm).write("quantum", ["L1", SENTINELS[0], "L2"])
        assert summary == "## Summary\n\nQubits are neat."
        prompt = llm.complete.call_args.args[1]
        assert "1. L1\n2. L2" in prompt
        assert "Error processing" not in prompt

    @pytest.mark.asyncio
    async def test_only_sentinels_skips_llm(self, llm):
        summary = await SummaryWriter(llm).write("quantum", SENTINELS)
        llm.complete.assert_not_called()
        assert summary.startswith("## Summary\n\nNo valid summary could be generated")
        assert "these were filtered out" in summary
        assert "- No search results found for: q" in summary

    @pytest.mark.asyncio
    async def test_no_learnings(self, llm):
        summary = await SummaryWriter(llm).write("quantum", [])
        llm.complete.assert_not_called()
        assert "Reason: The research process returned no information." in summary

    @pytest.mark.asyncio
    async def test_api_error_lists_learnings(self, llm):
        llm.complete.side_effect = ApiError("down")
        summary = await SummaryWriter(llm).write("quantum", ["L1", "L2"])
        assert "Failed to generate a narrative summary via LLM" in summary
        assert summary.endswith("- L1\n- L2")

    @pytest.mark.asyncio
    async def test_blank_reply_lists_learnings(self, llm):
        llm.complete.return_value = LLMResponse(content="   ")
        summary = await SummaryWriter(llm).write("quantum", ["L1"])
        assert "Key Learnings Found:\n- L1" in summary

    @pytest.mark.asyncio
    async def test_no_llm(self):
        summary = await SummaryWriter(None).write("quantum", ["L1"])
        assert summary.startswith("## Summary\n\nFailed to generate")

    @pytest.mark.asyncio
    async def test_auth_error_propagates(self, llm):
        llm.complete.side_effect = AuthError("bad key")
        with pytest.raises(AuthError):
            await SummaryWriter(llm).write("quantum", ["L1"])
