"""CLI handlers for memory commands."""

from __future__ import annotations

from pathlib import Path

import click

from deepresearch.commands._helpers import load_transcript, run
from deepresearch.context import AppContext
from deepresearch.errors import DeepResearchError
from deepresearch.models.memory import MemoryKind
from deepresearch.services.memory_manager import MemoryManager

_TRANSCRIPT = click.Path(exists=True, dir_okay=False, path_type=Path)


async def _load_turns(manager: MemoryManager, path: Path | None) -> int:
    if path is None:
        return 0
    turns = load_transcript(path)
    for turn in turns:
        await manager.store_memory(turn.content, turn.role)
    return len(turns)


@click.group("memory")
def memory_group():
    """Inspect and summarise conversation memory."""
    pass


@memory_group.command("recall")
@click.argument("query")
@click.option("--transcript", "-t", type=_TRANSCRIPT, default=None, help="Chat transcript to load first")
@click.option("--depth", type=click.Choice(["short", "medium", "long"]), default=None)
@click.option("--no-long-term", is_flag=True, help="Skip persisted long-term memories")
def memory_recall(query: str, transcript: Path | None, depth: str | None, no_long_term: bool):
    """Show memories relevant to QUERY."""

    async def _run():
        ctx = AppContext()
        if depth:
            ctx.config.memory.depth = depth
        try:
            await ctx.initialize()
            manager = ctx.memory_manager
            await _load_turns(manager, transcript)
            return await manager.retrieve_relevant_memories(
                query, include_long_term=not no_long_term
            )
        finally:
            await ctx.close()

    try:
        memories = run(_run())
    except DeepResearchError as e:
        raise click.ClickException(f"{e.kind}: {e}") from e

    if not memories:
        click.echo("No relevant memories found.")
        return
    for memory in memories:
        similarity = memory.similarity if memory.similarity is not None else 0.0
        click.echo(f"[{similarity:.2f}] ({memory.role.value}) {memory.content[:120]}")
        if memory.match_reason:
            click.echo(f"    {memory.match_reason}")


@memory_group.command("finalize")
@click.argument("transcript", type=_TRANSCRIPT)
def memory_finalize(transcript: Path):
    """Summarise a chat TRANSCRIPT into a meta-memory."""

    async def _run():
        ctx = AppContext()
        try:
            await ctx.initialize()
            session = ctx.chat_session()
            session.transcript.extend(load_transcript(transcript))
            await _load_turns(ctx.memory_manager, transcript)
            return await session.finalize()
        finally:
            await ctx.close()

    try:
        result = run(_run())
    except DeepResearchError as e:
        raise click.ClickException(f"{e.kind}: {e}") from e

    if not result.get("success"):
        raise click.ClickException(result.get("error", "Finalisation failed"))
    summary = result["summary"]
    click.echo(summary.content)
    for point in summary.key_points:
        click.echo(f"  - {point}")
    if summary.tags:
        click.echo(f"Tags: {', '.join(sorted(summary.tags))}")
    if result.get("fallback"):
        click.echo("(fallback summary, LLM unavailable)", err=True)


@memory_group.command("stats")
@click.option("--transcript", "-t", type=_TRANSCRIPT, default=None, help="Chat transcript to load first")
def memory_stats(transcript: Path | None):
    """Show memory statistics and tier counts."""

    async def _run():
        ctx = AppContext()
        try:
            await ctx.initialize()
            manager = ctx.memory_manager
            await _load_turns(manager, transcript)
            persisted = {}
            if ctx.memory_repo is not None:
                for kind in MemoryKind:
                    persisted[kind.value] = await ctx.memory_repo.count(kind)
            return manager.get_stats(), manager.organize_memory_layers(), persisted
        finally:
            await ctx.close()

    try:
        stats, layers, persisted = run(_run())
    except DeepResearchError as e:
        raise click.ClickException(f"{e.kind}: {e}") from e

    click.echo(f"Depth: {stats.depth_level}")
    click.echo(f"  Stored: {stats.memories_stored}")
    click.echo(f"  Retrieved: {stats.memories_retrieved}")
    click.echo(f"  Validated: {stats.memories_validated}")
    click.echo(f"  Summarized: {stats.memories_summarized}")
    click.echo(f"  Ephemeral: {stats.ephemeral_count}, validated: {stats.validated_count}")
    click.echo(
        f"  Layers: short_term={layers['short_term']}, long_term={layers['long_term']}, "
        f"meta={layers['meta']}"
    )
    for kind, count in persisted.items():
        click.echo(f"  Persisted {kind}: {count}")
