"""Parsers for free-form LLM replies.

LLM output is untrusted text. Every parser here returns a ``ParseResult``
instead of raising so callers can pick their own fallback.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from deepresearch.errors import ParseError

QUERY_PREFIX_RE = re.compile(r"^(What|How|Why|When|Where|Which)", re.IGNORECASE)
LIST_PREFIX_RE = re.compile(r"^[\*\-\d\.]+\s*")
LEARNINGS_SECTION_RE = re.compile(
    r"Key Learnings:([\s\S]*?)(?:Follow-up Questions:|$)", re.IGNORECASE
)
FOLLOW_UPS_SECTION_RE = re.compile(r"Follow-up Questions:([\s\S]*)", re.IGNORECASE)
THINK_BLOCK_RE = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
CODE_FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*")


@dataclass(frozen=True)
class ParseResult:
    success: bool
    data: Any = None
    error: str = ""
    raw_content: str = ""


@dataclass(frozen=True)
class LearningSections:
    learnings: list[str] = field(default_factory=list)
    follow_up_questions: list[str] = field(default_factory=list)


def strip_list_prefix(line: str) -> str:
    """Remove leading bullet/number markers like ``- ``, ``* `` or ``2. ``."""
    return LIST_PREFIX_RE.sub("", line.strip()).strip()


def clean_chat_response(text: str) -> str:
    """Drop ``<think>`` blocks and markdown code fences."""
    if not text:
        return ""
    cleaned = THINK_BLOCK_RE.sub("", text)
    cleaned = CODE_FENCE_RE.sub("", cleaned)
    return cleaned.strip()


def parse_queries(content: str) -> ParseResult:
    """Keep lines that start with an interrogative word."""
    lines = [line.strip() for line in (content or "").split("\n") if line.strip()]
    queries = [strip_list_prefix(line) for line in lines]
    queries = [q for q in queries if QUERY_PREFIX_RE.match(q)]
    if queries:
        return ParseResult(success=True, data=queries, raw_content=content)
    return ParseResult(
        success=False,
        error="No valid questions found starting with What/How/Why/etc.",
        raw_content=content or "",
    )


def _section_lines(section: str | None) -> list[str]:
    if not section:
        return []
    return [s for s in (strip_list_prefix(line) for line in section.split("\n")) if s]


def parse_learnings(content: str) -> ParseResult:
    """Extract the ``Key Learnings:`` and ``Follow-up Questions:`` sections."""
    text = content or ""
    learnings_match = LEARNINGS_SECTION_RE.search(text)
    questions_match = FOLLOW_UPS_SECTION_RE.search(text)

    learnings = _section_lines(learnings_match.group(1) if learnings_match else None)
    follow_ups = _section_lines(questions_match.group(1) if questions_match else None)

    if learnings or follow_ups:
        return ParseResult(
            success=True,
            data=LearningSections(learnings=learnings, follow_up_questions=follow_ups),
            raw_content=text,
        )
    if not learnings_match and not questions_match:
        error = "Could not find required sections (Key Learnings/Follow-up Questions) in the response."
    else:
        error = "Found learning/question sections but content was empty after cleaning."
    return ParseResult(success=False, error=error, raw_content=text)


def parse_report(content: str) -> ParseResult:
    text = (content or "").strip()
    if not text:
        return ParseResult(success=False, error="Empty report text", raw_content=content or "")
    return ParseResult(success=True, data=text, raw_content=content)


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the bracket group opening at ``start``, string-aware."""
    pairs = {"{": "}", "[": "]"}
    stack = [pairs[text[start]]]
    in_string = False
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in pairs:
            stack.append(pairs[ch])
        elif ch in "}]":
            if ch != stack[-1]:
                return None
            stack.pop()
            if not stack:
                return i + 1
    return None


def find_json_payload(text: str) -> Any:
    """Decode the first balanced ``{...}`` or ``[...]`` group in ``text``.

    Raises ParseError when no decodable group exists.
    """
    for start, ch in enumerate(text):
        if ch not in "{[":
            continue
        end = _balanced_end(text, start)
        if end is None:
            continue
        try:
            return json.loads(text[start:end])
        except json.JSONDecodeError:
            continue
    raise ParseError("No JSON payload detected in LLM response")


def parse_json_payload(content: str) -> ParseResult:
    cleaned = clean_chat_response(content or "")
    try:
        payload = find_json_payload(cleaned)
    except ParseError as e:
        return ParseResult(success=False, error=str(e), raw_content=content or "")
    return ParseResult(success=True, data=payload, raw_content=content)
