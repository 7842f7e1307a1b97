"""CLI handlers for config commands."""

from __future__ import annotations

import json
import tomllib

import click
import tomli_w

from deepresearch.config import DEFAULT_CONFIG_PATH, init_config, load_config


def coerce_value(value: str):
    """Turn a command-line string into the TOML value it most likely means."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit():
        return int(value)
    if value.startswith("[") or value.startswith("{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


@click.group("config")
def config_group():
    """Manage configuration."""
    pass


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(force: bool):
    """Create default configuration file."""
    if DEFAULT_CONFIG_PATH.exists() and not force:
        click.echo(f"Config already exists at {DEFAULT_CONFIG_PATH} (use --force to overwrite)", err=True)
        return
    path = init_config()
    click.echo(f"Configuration created at: {path}")


@config_group.command("show")
def config_show():
    """Show current configuration."""
    config = load_config()
    click.echo(f"Config file: {config.config_path}")
    click.echo(f"  Research: depth={config.research.default_depth}, breadth={config.research.default_breadth}")
    click.echo(f"  Classifier: {'enabled' if config.research.classifier_enabled else 'disabled'}")
    click.echo(f"  Memory: depth={config.memory.depth}, persistence={config.memory.persistence}")
    click.echo(f"  MongoDB: {config.mongodb.uri}/{config.mongodb.database}")
    click.echo(
        f"  LLM retry: attempts={config.retry.max_attempts}, "
        f"initial={config.retry.initial_delay_ms}ms, max={config.retry.max_delay_ms}ms"
    )

    click.echo("\n  Providers:")
    for name, prov in config.providers.items():
        has_key = "configured" if prov.api_key else "not set"
        click.echo(f"    {name}: model={prov.default_model}, key={has_key}")

    click.echo("\n  Search:")
    for name, search in config.search.items():
        has_key = "configured" if search.api_key else "not set"
        click.echo(f"    {name}: interval={search.rate_interval_ms}ms, key={has_key}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value.

    Modifies the TOML config file. Key uses dot notation, e.g.:
    research.default_depth, memory.depth, mongodb.uri
    """
    path = DEFAULT_CONFIG_PATH
    if not path.exists():
        click.echo("No config file found. Run 'deepresearch config init' first.", err=True)
        return

    with open(path, "rb") as f:
        data = tomllib.load(f)

    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = coerce_value(value)

    with open(path, "wb") as f:
        tomli_w.dump(data, f)

    click.echo(f"Set {key} = {value}")
