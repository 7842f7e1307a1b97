"""Click CLI definitions - main entry point."""

from __future__ import annotations

import logging
import sys

import click

from deepresearch.commands.config_cmd import config_group
from deepresearch.commands.memory_cmd import memory_group
from deepresearch.commands.research_cmd import research_group


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool) -> None:
    """deepresearch - recursive web research with conversation memory."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(research_group, "research")
cli.add_command(memory_group, "memory")
cli.add_command(config_group, "config")


if __name__ == "__main__":
    cli()
