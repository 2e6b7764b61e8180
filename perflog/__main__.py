"""Command-line access to stored performance logs."""

import json
import logging
import sys

import click
import pyperclip
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config.settings_manager import (
    get_logger_settings,
    get_setting,
    set_settings,
    validate_setting,
)
from .services.performance_logger import PerformanceLogger


def _get_logger(ctx: click.Context) -> PerformanceLogger:
    """Build the PerformanceLogger once per invocation."""
    if "logger" not in ctx.obj:
        ctx.obj["logger"] = PerformanceLogger.from_settings()
    return ctx.obj["logger"]


def _fail(ctx: click.Context, error: Exception) -> None:
    if ctx.obj.get("debug"):
        raise error
    click.echo(click.style(f"Error: {error}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Inspect, export and clear recorded performance sessions."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option("--limit", default=50, show_default=True, help="Maximum sessions to show")
@click.pass_context
def show(ctx: click.Context, limit: int) -> None:
    """Print the formatted performance log."""
    try:
        click.echo(_get_logger(ctx).get_formatted_logs(limit), nl=False)
    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show storage usage of the session store."""
    try:
        logger = _get_logger(ctx)
        storage = logger.get_storage_info()
        active = logger.get_active_session_info()
    except Exception as e:
        _fail(ctx, e)
        return

    table = Table(title="Performance Log Storage")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Stored sessions", str(storage.session_count))
    table.add_row("Max sessions", str(logger.store.max_sessions))
    table.add_row("Estimated size", f"{storage.estimated_size_bytes:,} bytes")
    table.add_row("Max size", f"{storage.max_size_bytes:,} bytes")
    table.add_row("Active sessions", str(len(active)))
    Console().print(table)


@main.command()
@click.option("--limit", default=50, show_default=True, help="Maximum sessions to copy")
@click.pass_context
def copy(ctx: click.Context, limit: int) -> None:
    """Copy the formatted performance log to the clipboard."""
    try:
        text = _get_logger(ctx).get_formatted_logs(limit)
    except Exception as e:
        _fail(ctx, e)
        return

    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        click.echo(click.style(f"Could not copy to clipboard: {e}", fg="red"), err=True)
        sys.exit(1)
    click.echo(click.style("Performance log copied to clipboard", fg="green"))


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Delete all recorded performance sessions."""
    if not yes and not click.confirm("Delete all performance logs?"):
        click.echo("Aborted.")
        return
    try:
        _get_logger(ctx).clear_all()
    except Exception as e:
        _fail(ctx, e)
        return
    click.echo("All performance logs cleared.")


@main.command()
@click.pass_context
def prune(ctx: click.Context) -> None:
    """Remove only sessions beyond the configured limits."""
    try:
        removed = _get_logger(ctx).clear_old_logs_only()
    except Exception as e:
        _fail(ctx, e)
        return
    if removed:
        click.echo(f"Removed {removed} old sessions.")
    else:
        click.echo("Storage is within limits; nothing removed.")


def _parse_value(raw: str):
    """Read a command-line value as JSON, falling back to the plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@main.command()
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.pass_context
def config(ctx: click.Context, key: str, value: str) -> None:
    """Show logger settings, or set KEY to VALUE in config.json."""
    if key is None:
        settings = get_logger_settings()
        table = Table(title="Logger Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", justify="right")
        for name, current in vars(settings).items():
            table.add_row(name, json.dumps(current))
        Console().print(table)
        return

    if value is None:
        click.echo(json.dumps(get_setting(key)))
        return

    parsed = _parse_value(value)
    try:
        validate_setting(key, parsed)
    except ValueError as e:
        _fail(ctx, e)
        return
    set_settings({key: parsed})
    click.echo(f"Set {key} = {json.dumps(parsed)}")


if __name__ == "__main__":
    main()
