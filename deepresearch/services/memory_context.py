"""Seed research runs with follow-up questions drawn from conversation memory."""

from __future__ import annotations

import logging

from deepresearch.models.memory import Memory
from deepresearch.models.research import Query
from deepresearch.services.memory_manager import MemoryManager

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_QUERIES = 4
MAX_MEMORY_QUERIES = 6
ROOT_MAX_CHARS = 180
PREVIEW_MAX_CHARS = 260
SUBJECT_MAX_CHARS = 140
QUESTION_MAX_CHARS = 240


def truncate_text(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def build_memory_question(subject: str, root: str, focus: str, index: int) -> str:
    if index % 2 == 0:
        return f'How does "{subject}" impact {focus} for {root}?'
    return f'What recent insights about "{subject}" matter for {root}?'


def derive_memory_queries(
    base_query: str,
    memories: list[Memory],
    max_queries: int = DEFAULT_MEMORY_QUERIES,
) -> list[Query]:
    """Turn recalled memories into interrogative seed queries.

    Memories are deduplicated on their lowercased preview. Each query's
    metadata records where it came from so reports can trace it back.
    """
    root = (base_query or "").strip()
    if not root or not memories:
        return []
    limit = min(MAX_MEMORY_QUERIES, max(1, max_queries))
    root = truncate_text(root, ROOT_MAX_CHARS)

    seen: set[str] = set()
    queries: list[Query] = []
    for memory in memories:
        preview = truncate_text(memory.content or "", PREVIEW_MAX_CHARS)
        if not preview or preview.lower() in seen:
            continue
        seen.add(preview.lower())

        tags = sorted(memory.tags)
        focus = tags[0] if tags else "this topic"
        question = build_memory_question(
            truncate_text(preview, SUBJECT_MAX_CHARS), root, focus, len(queries)
        )
        score = memory.similarity if memory.similarity is not None else memory.score
        queries.append(Query(
            truncate_text(question, QUESTION_MAX_CHARS),
            {
                "source": "memory",
                "memory_id": memory.id,
                "tags": tags,
                "base_query": root,
                "focus": focus,
                "score": score,
            },
        ))
        if len(queries) >= limit:
            break
    return queries


async def gather_memory_queries(
    memory: MemoryManager | None,
    base_query: str,
    max_queries: int = DEFAULT_MEMORY_QUERIES,
) -> list[Query]:
    """Recall memories for ``base_query`` and derive seed queries from them.

    Memory is advisory: any failure is logged and yields no queries.
    """
    if memory is None or not (base_query or "").strip():
        return []
    try:
        memories = await memory.retrieve_relevant_memories(base_query)
    except Exception:
        logger.exception("Memory recall failed for %s", base_query)
        return []
    queries = derive_memory_queries(base_query, memories, max_queries)
    logger.info("Derived %d memory query(ies) for %s", len(queries), base_query)
    return queries
