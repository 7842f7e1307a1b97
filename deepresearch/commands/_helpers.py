"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from deepresearch.models.provider import LLMMessage
from deepresearch.models.research import ResearchProgress

_ROLES = ("user", "assistant", "system")


def run(coro):
    """Run an async function from sync context."""
    return asyncio.run(coro)


def load_transcript(path: Path) -> list[LLMMessage]:
    """Read a chat transcript.

    Accepts a JSON list of ``{"role", "content"}`` objects, or plain text
    with one ``role: content`` turn per line (continuation lines are
    appended to the previous turn).
    """
    text = path.read_text(encoding="utf-8")
    stripped = text.lstrip()
    if stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON transcript: {e}") from e
        return [LLMMessage.from_dict(item) for item in data if isinstance(item, dict)]

    turns: list[LLMMessage] = []
    for line in text.splitlines():
        role, sep, content = line.partition(":")
        if sep and role.strip().lower() in _ROLES:
            turns.append(LLMMessage(role=role.strip().lower(), content=content.strip()))
        elif turns and line.strip():
            last = turns[-1]
            turns[-1] = LLMMessage(role=last.role, content=f"{last.content}\n{line.strip()}")
    return turns


def echo_progress(progress: ResearchProgress) -> None:
    click.echo(
        f"[{progress.completed_queries}/{progress.total_queries}] "
        f"{progress.status.value}: {progress.current_action}",
        err=True,
    )
