"""Tests for LearningExtractor."""

from unittest.mock import AsyncMock

import pytest

from deepresearch.errors import ApiError, AuthError, InvalidResponse, LlmApiFailure
from deepresearch.models.provider import LLMResponse
from deepresearch.services.learning_extractor import (
    LearningExtractor,
    combine_contents,
    heuristic_learnings,
)


@pytest.fixture
def llm():
    mock = AsyncMock()
    mock.complete.return_value = LLMResponse(
        content="Key Learnings:\n- L1\n- L2\n- L3\n- L4\n\nFollow-up Questions:\n- Why Y?"
    )
    return mock


class TestHelpers:
    def test_combine_contents(self):
        assert combine_contents(["a", "b"]) == "---\na\n---\n---\nb\n---"

    def test_combine_contents_capped(self):
        assert len(combine_contents(["x" * 60_000])) == 50_000

    def test_heuristic_learnings(self):
        raw = "Key Learnings:\n- Qubits can be entangled across distance\n- short\n---\n12."
        assert heuristic_learnings(raw) == ["Qubits can be entangled across distance"]


class TestLearningExtractor:
    @pytest.mark.asyncio
    async def test_extract(self, llm):
        sections = await LearningExtractor(llm).extract("quantum", ["content a", "content b"])
        assert sections.learnings == ["L1", "L2", "L3"]
        assert sections.follow_up_questions == ["Why Y?"]
        prompt = llm.complete.call_args.args[1]
        assert "---\ncontent a\n---" in prompt
        config = llm.complete.call_args.args[2]
        assert config.temperature == 0.5
        assert config.max_tokens == 1000

    @pytest.mark.asyncio
    async def test_no_content(self, llm):
        sections = await LearningExtractor(llm).extract("quantum", ["", "  "])
        assert sections.learnings == []
        llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_unparsable_uses_heuristic(self, llm):
        llm.complete.return_value = LLMResponse(content="Qubits are fragile and need cooling.\nok")
        sections = await LearningExtractor(llm).extract("quantum", ["content"])
        assert sections.learnings == ["Qubits are fragile and need cooling."]

    @pytest.mark.asyncio
    async def test_empty_reply_uses_first_content(self, llm):
        llm.complete.side_effect = InvalidResponse("empty")
        sections = await LearningExtractor(llm).extract("quantum", [" first content ", "second"])
        assert sections.learnings == ["first content"]

    @pytest.mark.asyncio
    async def test_no_llm_uses_first_content(self):
        sections = await LearningExtractor(None).extract("quantum", ["first content"])
        assert sections.learnings == ["first content"]

    @pytest.mark.asyncio
    async def test_api_failure_raises(self, llm):
        llm.complete.side_effect = ApiError("down")
        with pytest.raises(LlmApiFailure):
            await LearningExtractor(llm).extract("quantum", ["content"])

    @pytest.mark.asyncio
    async def test_auth_error_propagates(self, llm):
        llm.complete.side_effect = AuthError("bad key")
        with pytest.raises(AuthError):
            await LearningExtractor(llm).extract("quantum", ["content"])
