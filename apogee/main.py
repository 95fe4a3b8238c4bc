"""
apogee — CLI entrypoint.

Usage:
    eval "$(apogee)"                      # zsh / bash
    apogee --shell fish | source          # fish
    apogee --shell pwsh | Invoke-Expression
    apogee report
    apogee config check

stdout carries the generated script and nothing else. Diagnostics go
to stderr.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from apogee import __version__
from apogee.core.context import ShellContext, capture_context
from apogee.core.observability.logging_config import resolve_level, setup_logging

_SHELL_HELP = "Target shell: zsh, bash, fish or pwsh (default: auto-detect)."


def _shell_context(ctx: click.Context) -> ShellContext:
    return ctx.obj["shell_ctx"]


def _fail(message: str) -> None:
    click.secho(f"apogee: {message}", fg="red", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="apogee")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.toml (default: $APOGEE_CONFIG or XDG config dir).",
)
@click.option("--shell", "-s", "shell", default=None, help=_SHELL_HELP)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    shell: str | None,
) -> None:
    """apogee — generate shell initialization scripts from one config."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path).expanduser() if config_path else None
    ctx.obj["shell"] = shell

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("APOGEE_LOG_FILE"),
        log_file_level=os.environ.get("APOGEE_LOG_FILE_LEVEL"),
    )

    # ── Environment snapshot (once; tests may inject their own) ──
    if "shell_ctx" not in ctx.obj:
        ctx.obj["shell_ctx"] = capture_context()

    if ctx.invoked_subcommand is None:
        ctx.invoke(emit_cmd)


@cli.command("emit")
@click.option("--shell", "-s", "shell", default=None, help=_SHELL_HELP)
@click.pass_context
def emit_cmd(ctx: click.Context, shell: str | None) -> None:
    """Print the initialization script (default command)."""
    from apogee.core.use_cases.emit import run_emit

    result = run_emit(
        _shell_context(ctx),
        config_path=ctx.obj.get("config_path"),
        shell=shell or ctx.obj.get("shell"),
    )

    if result.error or result.script is None:
        _fail(result.error or "no script produced")
        return

    click.echo(result.script, nl=False)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--shell", "-s", "shell", default=None, help=_SHELL_HELP)
@click.pass_context
def report(ctx: click.Context, as_json: bool, shell: str | None) -> None:
    """Explain which modules are active, and why."""
    from apogee.core.use_cases.report import run_report

    result = run_report(
        _shell_context(ctx),
        config_path=ctx.obj.get("config_path"),
        shell=shell or ctx.obj.get("shell"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        _fail(result.error)
        return

    quiet = ctx.obj.get("quiet", False)
    if not quiet:
        click.secho(f"\n📋 {result.config_path}", fg="cyan", bold=True)
        click.echo(f"   Target shell: {result.shell.value if result.shell else '?'}")
        click.echo()

    active = sum(1 for m in result.modules if m.active)
    click.secho(f"   Modules: {active}/{len(result.modules)} active", bold=True)
    for row in result.modules:
        requires = f"  (requires {', '.join(row.requires)})" if row.requires else ""
        if row.active:
            click.secho(f"   ✓ {row.id} ", fg="green", nl=False)
        elif row.eligible:
            click.secho(f"   ~ {row.id} ", fg="yellow", nl=False)
        else:
            click.secho(f"   ✗ {row.id} ", fg="red", nl=False)
        click.echo(f"{row.reason}{requires}")

    if result.order:
        click.echo()
        click.echo(f"   Emission order: {' → '.join(result.order)}")
    click.echo()


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the configuration file."""
    from apogee.core.use_cases.config_check import run_config_check

    result = run_config_check(
        _shell_context(ctx),
        config_path=ctx.obj.get("config_path"),
        shell=ctx.obj.get("shell"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if not result.valid:
        click.secho("❌ Configuration error:", fg="red", bold=True, err=True)
        click.echo(f"   • {result.error}", err=True)
        sys.exit(1)

    click.secho("✅ Configuration is valid", fg="green", bold=True)
    click.echo(f"   File: {result.config_path}")
    click.echo(f"   Modules: {len(result.module_ids)}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()


def main() -> None:
    cli(prog_name="apogee")


if __name__ == "__main__":
    main()
