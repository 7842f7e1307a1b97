"""Pure helpers for memory ranking and prompt building."""

from __future__ import annotations

import re
from collections import Counter

from deepresearch.models.memory import Memory

STOP_WORDS = frozenset({
    "the", "and", "that", "this", "with", "for", "from", "was", "were",
    "what", "when", "where", "who", "how", "why", "which",
})
RECENCY_WINDOW_HOURS = 240
RECENCY_MAX_BOOST = 0.1
TAG_MATCH_BOOST = 0.2
SCORE_WEIGHT = 0.2
PREVIEW_CHARS = 200


def _word_set(text: str) -> set[str]:
    normalized = re.sub(r"[^\w\s]", "", text.lower())
    return {w for w in normalized.split() if w}


def calculate_similarity(text_a: str, text_b: str) -> float:
    """Jaccard similarity of the two texts' word sets."""
    if not text_a or not text_b:
        return 0.0
    words_a = _word_set(text_a)
    words_b = _word_set(text_b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def extract_key_concepts(text: str, limit: int = 10) -> list[str]:
    if not text:
        return []
    words = re.findall(r"\b[a-z]{3,}\b", text.lower())
    counts = Counter(w for w in words if w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


def recency_boost(age_hours: float) -> float:
    return max(0.0, RECENCY_MAX_BOOST - (age_hours / RECENCY_WINDOW_HOURS) * RECENCY_MAX_BOOST)


def local_relevance(query: str, concepts: list[str], memory: Memory) -> float:
    """Fallback score: similarity + tag match + recency + stored score, capped at 1."""
    score = calculate_similarity(query, memory.content)
    if memory.tags and concepts:
        if any(concept in tag.lower() for tag in memory.tags for concept in concepts):
            score += TAG_MATCH_BOOST
    try:
        score += recency_boost(memory.age_hours)
    except ValueError:
        pass
    score += memory.score * SCORE_WEIGHT
    return min(1.0, score)


def build_scoring_prompt(query: str, concepts: list[str], memories: list[Memory]) -> str:
    lines = []
    for memory in memories:
        content = memory.content
        if len(content) > PREVIEW_CHARS:
            content = f"{content[:PREVIEW_CHARS]}..."
        tags = ", ".join(sorted(memory.tags)) if memory.tags else "none"
        lines.append(f"[ID: {memory.id}] [{memory.role.value}] {content}\nTags: {tags}")
    memory_lines = "\n\n".join(lines)
    return (
        f"Query: {query}\n"
        f"Key concepts: {', '.join(concepts)}\n\n"
        f"Memories to score (ID, role, content, tags):\n{memory_lines}"
    )


def build_validation_prompt(memories: list[Memory]) -> str:
    body = "\n\n".join(f"[ID: {m.id}]\n{m.role.value}: {m.content}" for m in memories)
    return f"Please validate the following memories:\n\n{body}"


def build_group_summary_prompt(memories: list[Memory]) -> str:
    body = "\n\n".join(f"[{m.role.value}]: {m.content}" for m in memories)
    return f"Please summarize the following memories:\n\n{body}"


def build_conversation_prompt(conversation_text: str) -> str:
    return (
        "Please summarize and extract key information from the following conversation:\n\n"
        f"{conversation_text}"
    )


def coerce_score(value, default: float) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if score != score:  # NaN
        return default
    return min(1.0, max(0.0, score))


def coerce_tags(value) -> set[str]:
    if isinstance(value, str):
        return {t.strip() for t in value.split(",") if t.strip()}
    if isinstance(value, (list, tuple, set)):
        return {str(t).strip() for t in value if str(t).strip()}
    return set()
