"""Shared fakes for service tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from deepresearch.models.provider import LLMResponse
from deepresearch.models.research import SearchResult

EXTRACTION_MARKER = "Analyze the following content"
QUERY_MARKER = "Generate specific research questions"
SUMMARY_MARKER = "Write a comprehensive narrative summary"


@pytest.fixture
def scripted_llm():
    """Build an LLM fake that answers by prompt type.

    Each reply may be a string or an exception instance to raise.
    """

    def _make(queries="", extraction="", summary="", default=None):
        llm = AsyncMock()

        async def complete(system, prompt, config=None):
            if EXTRACTION_MARKER in prompt:
                reply = extraction
            elif QUERY_MARKER in prompt:
                reply = queries
            elif SUMMARY_MARKER in prompt:
                reply = summary
            else:
                reply = default
            if isinstance(reply, BaseException):
                raise reply
            if reply is None:
                raise AssertionError(f"Unexpected prompt: {prompt[:80]}")
            return LLMResponse(content=reply, model="test-model")

        llm.complete.side_effect = complete
        return llm

    return _make


@pytest.fixture
def search_hits():
    return [
        SearchResult(
            title="Quantum basics",
            snippet="Qubits hold superpositions of states.",
            url="https://example.com/a",
            content="Qubits hold superpositions of states.",
        ),
        SearchResult(
            title="Quantum gates",
            snippet="Gates rotate qubit states.",
            url="https://example.com/b",
            content="Gates rotate qubit states.",
        ),
    ]


@pytest.fixture
def fake_search(search_hits):
    search = AsyncMock()
    search.search.return_value = list(search_hits)
    return search
