"""Helpers shared by the CLI commands."""

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import click
from rich.console import Console
from rich.panel import Panel

console = Console()


def error_panel(message: str, title: str = "Error") -> None:
    """Print a red error panel."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


def fail(message: str, title: str = "Error") -> None:
    """Print an error panel and exit with status 1."""
    error_panel(message, title)
    raise SystemExit(1)


def configure_logging(level: str, verbose: bool = False) -> None:
    """Route log records through rich."""
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def get_settings(ctx: click.Context):
    """Load settings for the invoked command, cached on the context."""
    from fxticket.config.settings import load_settings

    obj = ctx.ensure_object(dict)
    if "settings" not in obj:
        try:
            obj["settings"] = load_settings(obj.get("config_path"))
        except ValueError as e:
            fail(str(e), "Configuration Error")
        configure_logging(obj["settings"].log_level, obj.get("verbose", False))
    return obj["settings"]


def get_order_store(settings):
    """Get the paper order store."""
    from fxticket.db.store import OrderStore

    return OrderStore(Path(settings.db_path).expanduser())


def get_paper_transport(settings, store=None):
    """Get the paper order server."""
    from fxticket.transports.paper import PaperTransport

    return PaperTransport(
        store or get_order_store(settings),
        delay_ms=settings.server_validation_delay_ms,
        large_trade_threshold=settings.large_trade_threshold,
    )


def parse_assignments(assignments: Iterable[str]) -> list[tuple[str, str]]:
    """Split ``key=value`` options into pairs.

    Raises:
        ValueError: If an assignment has no ``=`` or an empty key.
    """
    pairs = []
    for item in assignments:
        key, sep, raw = item.partition("=")
        key = key.strip().replace("-", "_")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{item}'")
        pairs.append((key, raw))
    return pairs


def parse_values(assignments: Iterable[str], refdata: Optional[Any] = None) -> list[tuple[str, Any]]:
    """Parse ``key=value`` options into typed field values.

    An account may be given by name alone when reference data is at hand.

    Raises:
        ValueError: If an assignment is malformed or its value does not parse.
        KeyError: If a key is not a known field.
    """
    from fxticket.config.field_registry import parse_field_value

    values = []
    for key, raw in parse_assignments(assignments):
        if key == "account" and refdata is not None and ":" not in raw:
            values.append((key, _account_from_refdata(raw, refdata)))
            continue
        values.append((key, parse_field_value(key, raw)))
    return values


def _account_from_refdata(raw: str, refdata: Any) -> Any:
    text = raw.strip()
    if text.isdigit():
        match = next((a for a in refdata.data.accounts if a.sds_id == int(text)), None)
    else:
        match = refdata.find_account(text)
    if match is None:
        raise ValueError(f"Unknown account '{raw}'")
    return match.to_account()
