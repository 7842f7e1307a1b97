"""CLI handlers for research commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from deepresearch.commands._helpers import echo_progress, load_transcript, run
from deepresearch.context import AppContext
from deepresearch.errors import DeepResearchError
from deepresearch.models.research import Query, ResearchResult
from deepresearch.services.memory_context import gather_memory_queries


def _emit(result: ResearchResult, output_json: bool) -> None:
    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(result.markdown_content)
        click.echo(f"Suggested filename: {result.suggested_filename}", err=True)
    if result.error:
        raise SystemExit(1)


def _or_default(value: int | None, default: int) -> int:
    return default if value is None else value


@click.group("research")
def research_group():
    """Run recursive web research."""
    pass


@research_group.command("run")
@click.argument("query")
@click.option("--depth", "-d", type=int, default=None, help="Recursion depth (>= 1)")
@click.option("--breadth", "-b", type=int, default=None, help="Follow-up queries per level (>= 1)")
@click.option("--with-memory", is_flag=True, help="Add seed queries drawn from conversation memory")
@click.option(
    "--transcript", "-t",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Chat transcript to load into memory first (implies --with-memory)",
)
@click.option("--output-json", is_flag=True, help="Print the result as JSON")
@click.option("--quiet", "-q", is_flag=True, help="Hide progress output")
def research_run(
    query: str,
    depth: int | None,
    breadth: int | None,
    with_memory: bool,
    transcript: Path | None,
    output_json: bool,
    quiet: bool,
):
    """Research QUERY and print the markdown report."""
    turns = load_transcript(transcript) if transcript else []

    async def _run():
        ctx = AppContext()
        try:
            await ctx.initialize()
            overrides = None
            if with_memory or turns:
                manager = ctx.memory_manager
                for turn in turns:
                    await manager.store_memory(turn.content, turn.role)
                memory_queries = await gather_memory_queries(manager, query)
                if memory_queries:
                    overrides = [Query(query), *memory_queries]
                    if not quiet:
                        click.echo(f"Added {len(memory_queries)} memory seed query(ies)", err=True)
            engine = ctx.research_engine(progress_fn=None if quiet else echo_progress)
            return await engine.research(
                query,
                depth=_or_default(depth, ctx.config.research.default_depth),
                breadth=_or_default(breadth, ctx.config.research.default_breadth),
                override_queries=overrides,
            )
        finally:
            await ctx.close()

    try:
        result = run(_run())
    except DeepResearchError as e:
        raise click.ClickException(f"{e.kind}: {e}") from e
    _emit(result, output_json)


@research_group.command("from-chat")
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--queries", "-n", "num_queries", type=int, default=3, help="Seed queries to generate")
@click.option("--classify/--no-classify", default=None, help="Run token classification first")
@click.option("--depth", "-d", type=int, default=None, help="Recursion depth (>= 1)")
@click.option("--breadth", "-b", type=int, default=None, help="Follow-up queries per level (>= 1)")
@click.option("--dry-run", is_flag=True, help="Only print the generated seed queries")
@click.option("--output-json", is_flag=True, help="Print the result as JSON")
def research_from_chat(
    transcript: Path,
    num_queries: int,
    classify: bool | None,
    depth: int | None,
    breadth: int | None,
    dry_run: bool,
    output_json: bool,
):
    """Seed research from a chat TRANSCRIPT file."""
    turns = load_transcript(transcript)

    async def _run():
        ctx = AppContext()
        try:
            await ctx.initialize()
            use_classifier = ctx.config.research.classifier_enabled if classify is None else classify
            bridge = ctx.chat_bridge(progress_fn=echo_progress)
            if dry_run:
                return await bridge.generate_queries(turns, num_queries, use_classifier)
            return await bridge.run_research(
                turns,
                num_queries=num_queries,
                classify=use_classifier,
                depth=_or_default(depth, ctx.config.research.default_depth),
                breadth=_or_default(breadth, ctx.config.research.default_breadth),
            )
        finally:
            await ctx.close()

    try:
        outcome = run(_run())
    except DeepResearchError as e:
        raise click.ClickException(f"{e.kind}: {e}") from e

    if dry_run:
        for i, query in enumerate(outcome.queries, 1):
            click.echo(f"{i}. {query.original}")
        if outcome.metadata:
            click.echo(f"\nClassifier metadata:\n{outcome.metadata}")
        return
    _emit(outcome, output_json)
