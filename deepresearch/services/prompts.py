"""Prompt text for research and memory LLM calls.

The literal section headers (``Key Learnings:``, ``Follow-up Questions:``)
and the interrogative query prefixes are what ``parsers`` looks for; keep
them intact when editing wording.
"""

from __future__ import annotations

import json
from typing import Any

RESEARCH_SYSTEM_PROMPT = """\
You are an adaptive research engine assistant helping to explore topics in depth and designed for cross-domain analysis. Your responses must be:

1. Structured and organized
2. Focused on the specific task
3. Factual and precise
4. Easy to parse programmatically in minimal markdown format
5. Free of unnecessary information

When generating queries:
- Start each query with "What" "How" "Why" "When" "Where" or "Which"
- Make each query specific, focused and easily searchable
- Use clear and concise language
- End each query with a question mark
- Cover different aspects of the topic and avoid repetition

When analyzing content, if applicable:
- Focus on the main ideas and concepts
- Extract concrete facts and data, including specific metrics and numbers
- Note relationships between concepts and key entities

IMPORTANT: Format your responses as lists without any introductory text or explanations."""


def format_metadata(metadata: Any, indent: int | None = None) -> str:
    if isinstance(metadata, (dict, list)):
        return json.dumps(metadata, indent=indent, default=str)
    return str(metadata)


def query_expansion_prompt(query: str, learnings: list[str] | None = None) -> str:
    findings = ""
    if learnings:
        findings = "Previous Findings:\n" + "\n".join(learnings)
    return f"""Generate specific research questions about: "{query}"

{findings}

Requirements:
1. Each question must start with What How Why When Where or Which
2. Each question must end with a question mark
3. Each question must focus on a different aspect
4. Questions must be specific and detailed

Example format:
"What are the fundamental principles of quantum entanglement?"
"How does quantum superposition enable parallel computation?"
"Why are quantum computers particularly effective for cryptography?"

DO NOT include any introductory text. Just list the questions directly."""


def chat_breadth_instruction(num_queries: int) -> str:
    return (
        "\n\nAnalyze the entire conversation history provided above. Identify the key "
        "distinct topics or questions discussed.\n"
        f"Generate {num_queries} simple, clear search queries that cover the *most important "
        "themes* or *different key aspects* of the conversation. Aim for breadth if multiple "
        "topics are significant."
    )


def topic_instruction(num_queries: int) -> str:
    return (
        f"\n\nGenerate {num_queries} simple, clear search queries based on the main topic of "
        "the text above. Focus on straightforward questions that will yield relevant results."
    )


QUERY_FORMAT_INSTRUCTION = (
    "\nDO NOT use any special search operators or syntax.\n"
    "Each query MUST be on a new line and MUST start with What, How, Why, When, Where, or Which.\n"
    "Example format:\nWhat is [topic]?\nHow does [aspect] work?\nWhy is [concept] important?"
)


def metadata_query_context(metadata: Any) -> str:
    return (
        f"\n\nAdditional context from query analysis:\n{format_metadata(metadata)}\n\n"
        "Based on this context and the original text, generate simple search queries that a "
        "person would naturally type.\nKeep queries plain, clear, and focused on the core "
        "concepts identified. Ensure they are formatted correctly: each on a new line, starting "
        "with What, How, Why, When, Where, or Which."
    )


def extraction_prompt(
    query: str,
    content: str,
    num_learnings: int,
    num_follow_ups: int,
    metadata: Any = None,
) -> str:
    prompt = f'Analyze the following content related to "{query}":\n\n'
    if metadata:
        prompt += (
            f"Context from query analysis:\n{format_metadata(metadata)}\n\n"
            f'Use this context to better interpret the query "{query}" and extract the most '
            "relevant information from the content below.\n\n"
        )
    prompt += f"Content:\n{content}\n\n"
    prompt += (
        "Based *only* on the content provided above, extract:\n"
        f"1. Key Learnings (at least {num_learnings}):\n"
        "   - Focus on specific facts, data points, or summaries found in the text.\n"
        "   - Each learning should be a concise statement.\n"
        f"2. Follow-up Questions (at least {num_follow_ups}):\n"
        "   - Generate questions that arise *directly* from the provided content and would "
        "require further research.\n"
        "   - Must start with What, How, Why, When, Where, or Which.\n\n"
        "Format the output strictly as:\n"
        "Key Learnings:\n- [Learning 1]\n- [Learning 2]\n...\n\n"
        "Follow-up Questions:\n- [Question 1]\n- [Question 2]\n..."
    )
    return prompt


def summary_prompt(query: str, learnings: list[str], metadata: Any = None) -> str:
    prompt = (
        f'Write a comprehensive narrative summary about "{query}" based *only* on the '
        "following key learnings:\n\n"
    )
    if metadata:
        prompt += (
            f"Original Query Context:\n{format_metadata(metadata, indent=2)}\n\n"
            "Use this context to help structure the summary around the core topic.\n\n"
        )
    numbered = "\n".join(f"{i}. {learning}" for i, learning in enumerate(learnings, 1))
    prompt += f"Key Learnings:\n{numbered}\n\n"
    prompt += (
        "Synthesize these learnings into a well-structured, coherent report. Ensure technical "
        "accuracy based *only* on the provided points. Format the output as Markdown. Start "
        'directly with the summary content, do not include a "Summary:" header yourself.'
    )
    return prompt


# Memory prompts

MEMORY_SCORING_PROMPT = """\
You are a memory retrieval system. Your task is to score how relevant each memory is to the current query.
Score each memory from 0-1 where 1 means highly relevant and 0 means completely irrelevant.
Consider:
1. Direct relevance to the query topic
2. Semantic similarity of concepts
3. Contextual importance
4. Recency (newer memories may be more relevant)
5. Tags and metadata that match the query

Format your response as a JSON array of objects with memory IDs and scores:
[{"id": "mem-123", "score": 0.9, "reason": "directly addresses the topic"}, {"id": "mem-456", "score": 0.2, "reason": "only tangentially related"}]"""

MEMORY_VALIDATION_PROMPT = """\
You are a memory validation system. Your task is to analyze the provided memories and determine their importance, accuracy, and relevance.
For each memory, provide:
1. A score from 0 to 1 (where 1 is highest importance)
2. Relevant tags (keywords)
3. An action: 'retain' (keep as is), 'summarize' (important but could be condensed), or 'discard' (not worth keeping)
Respond with a JSON object. Format:
{"memories": [
  {"id": "mem-123", "score": 0.8, "tags": ["important", "key concept"], "action": "retain"},
  {"id": "mem-456", "score": 0.4, "tags": ["context"], "action": "summarize"},
  {"id": "mem-789", "score": 0.2, "tags": ["trivial"], "action": "discard"}
]}"""

MEMORY_GROUP_SUMMARY_PROMPT = """\
You are a memory summarization system. Your task is to analyze the provided memories and create concise summaries that capture the essential information.
Group related memories together and create summaries that preserve the key information.
For each summary, provide:
1. The summarized content
2. Relevant tags (keywords)
3. An importance score from 0 to 1 (where 1 is highest importance)
Respond with a JSON object. Format:
{"summaries": [
  {"content": "Summary of related memories", "tags": ["important", "key concept"], "importance": 0.8},
  {"content": "Another summary", "tags": ["context"], "importance": 0.6}
]}"""

CONVERSATION_SUMMARY_PROMPT = """\
You are a memory summarization system. Your task is to analyze the provided conversation and create:
1. A concise summary of the key points (2-3 paragraphs)
2. A list of important facts or insights (3-5 bullet points)
3. Relevant tags for categorization (keywords)

Format your response as a JSON object:
{
  "summary": "Concise summary text...",
  "keyPoints": ["Important fact 1", "Important insight 2"],
  "tags": ["tag1", "tag2", "tag3"]
}"""
