"""CLI entry point for bulk-release."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import click

from bulk_release.config import Flags
from bulk_release.pipeline import run
from bulk_release.tags import format_tag, parse_tag


def _parse_env(values: tuple[str, ...]) -> dict[str, str]:
    env: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint="--env")
        env[key] = value
    return env


@click.group()
@click.version_option(package_name="bulk-release")
def cli() -> None:
    """Monorepo bulk release: version, tag, build and publish every changed package."""


@cli.command("run")
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Workspace root.",
)
@click.option("--env", "env_items", multiple=True, metavar="KEY=VALUE", help="Extra variable for commands.")
@click.option("--dry-run", is_flag=True, help="Analyze and build, but do not publish.")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Max parallel commands.")
@click.option("--debug", is_flag=True, help="Print debug events.")
@click.option("--report", type=click.Path(dir_okay=False), default=None, help="Write the run state here.")
def run_command(
    cwd: str,
    env_items: tuple[str, ...],
    dry_run: bool,
    concurrency: int | None,
    debug: bool,
    report: str | None,
) -> None:
    """Release every package of the workspace that changed."""
    flags = Flags(dry_run=dry_run, concurrency=concurrency, debug=debug, report=report)
    env = _parse_env(env_items)
    try:
        asyncio.run(run(cwd=cwd, env=env, flags=flags))
    except Exception as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@cli.group()
def tag() -> None:
    """Release tag helpers."""


@tag.command("parse")
@click.argument("value")
def tag_parse(value: str) -> None:
    """Decode a release tag into JSON."""
    parsed = parse_tag(value)
    if parsed is None:
        raise click.ClickException(f"Not a release tag: {value}")
    click.echo(parsed.model_dump_json(indent=2))


@tag.command("format")
@click.argument("name")
@click.argument("version")
@click.option("--date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Release day (UTC).")
def tag_format(name: str, version: str, date: datetime | None) -> None:
    """Encode a release tag for a package version."""
    formatted = format_tag(name, version, date.replace(tzinfo=timezone.utc) if date else None)
    if formatted is None:
        raise click.ClickException(f"Cannot format a tag for {name}@{version}")
    click.echo(formatted)
