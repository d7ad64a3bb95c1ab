"""Order entry commands for FX Ticket CLI.

Handles validating, placing and amending orders through an order
ticket bound to the paper order server, plus the paper server's
fill and cancel controls.
"""

import asyncio
import json
from typing import Any, Optional

import click
from rich.panel import Panel
from rich.table import Table

from fxticket.cli.common import (
    console,
    fail,
    get_order_store,
    get_paper_transport,
    get_settings,
    parse_values,
)

SET_HELP = "Field assignment as key=value (repeatable), e.g. -s amount='2.5m GBP'."
CONTEXT_HELP = "JSON interop context, delivered as an OrderEntry intent before the edits."

TOAST_STYLES = {
    "success": "green",
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
}


def _build_ticket(settings, store):
    from fxticket.store.ticket import OrderTicket

    ticket = OrderTicket(
        get_paper_transport(settings, store),
        debounce_ms=settings.debounce_ms,
    )
    ticket.apply_user_preferences(settings.user_preferences())
    return ticket


async def _start(ticket) -> None:
    if not await ticket.initialize():
        raise RuntimeError(ticket.validation.global_error or "Ticket failed to initialize")


def _load_context(path: Optional[str]) -> Optional[Any]:
    """Read an interop context from a JSON file."""
    if path is None:
        return None
    with open(path) as f:
        return json.load(f)


def _raise_order_entry(ticket, context: Any) -> None:
    """Deliver ``context`` to the ticket as an OrderEntry intent."""
    from fxticket.interop import ORDER_ENTRY_INTENT, LocalInteropChannel

    channel = LocalInteropChannel()
    if not ticket.connect_interop(channel):
        raise RuntimeError("Interop bridge is already in use")
    try:
        channel.raise_intent(ORDER_ENTRY_INTENT, context)
    finally:
        ticket.disconnect_interop()


def _apply_edits(ticket, assignments: tuple[str, ...]) -> None:
    """Parse and write ``key=value`` assignments into the ticket.

    Raises:
        ValueError: If a value does not parse or the field is read-only.
    """
    from fxticket.config.field_registry import get_field_label

    for key, value in parse_values(assignments, ticket.refdata):
        if not ticket.edit_field(key, value):
            raise ValueError(
                f"{get_field_label(key)} cannot be changed while {ticket.edit_mode.value}"
            )


def _order_table(ticket, title: str) -> Table:
    """Render the ticket's visible fields."""
    from fxticket.config.field_registry import format_field_value, get_field_label

    values = ticket.values
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    keys = ["order_id", "currency_pair", "order_type", *ticket.visible_fields()]
    for key in dict.fromkeys(keys):
        if key == "order_id" and not values.get(key):
            continue
        table.add_row(get_field_label(key), format_field_value(key, values.get(key)))
    return table


def _issue_table(snapshot, schema_errors: dict[str, str]) -> Table:
    from fxticket.config.field_registry import get_field_label

    table = Table(title="Validation", show_header=True, header_style="bold cyan")
    table.add_column("Field", style="cyan")
    table.add_column("Severity")
    table.add_column("Message")

    rows = [
        (schema_errors, "[red]ERROR[/red]"),
        (snapshot.server_errors, "[red]SERVER[/red]"),
        (snapshot.ref_data_errors, "[red]REF DATA[/red]"),
        (snapshot.warnings, "[yellow]WARNING[/yellow]"),
    ]
    for errors, severity in rows:
        for key, message in errors.items():
            table.add_row(get_field_label(key), severity, message)
    return table


def _print_toast(toast: Any) -> None:
    color = TOAST_STYLES.get(toast.type, "white")
    console.print(Panel(
        f"[{color}]{toast.text}[/{color}]",
        title=f"[bold {color}]{toast.type.title()}[/bold {color}]",
        border_style=color,
    ))


def _finish_submission(ticket) -> None:
    """Report the outcome of a submission; exits 1 unless it succeeded."""
    toast = ticket.toast
    if toast is None:
        fail("No response from the order server")
    if toast.type == "error":
        snapshot = ticket.validation
        if snapshot.errors or snapshot.server_errors:
            console.print(_issue_table(snapshot, snapshot.errors))
        fail(toast.text, "Order Not Placed")
    _print_toast(toast)
    console.print(_order_table(ticket, "Order"))
    if ticket.validation.warnings:
        for key, message in ticket.validation.warnings.items():
            console.print(f"[yellow]Warning ({key}):[/yellow] {message}")


@click.command()
@click.option("-s", "--set", "assignments", multiple=True, help=SET_HELP)
@click.option("--context", "context_path", type=click.Path(exists=True, dir_okay=False),
              help=CONTEXT_HELP)
@click.pass_context
def validate(ctx: click.Context, assignments: tuple[str, ...],
             context_path: Optional[str]) -> None:
    """Validate an order without placing it.

    Runs the field checks (including the paper server's checks) and
    the full-order schema pass, then lists every problem found.

    \b
    Examples:
      fxticket validate
      fxticket validate -s order_type=TAKE_PROFIT -s level=1.2650
      fxticket validate -s amount="60m GBP"
      fxticket validate --context instrument.json
    """
    from fxticket.config.validation import validate_order_for_submission

    settings = get_settings(ctx)
    store = get_order_store(settings)

    async def run():
        ticket = _build_ticket(settings, store)
        await _start(ticket)
        context = _load_context(context_path)
        if context is not None:
            _raise_order_entry(ticket, context)
        _apply_edits(ticket, assignments)
        await ticket.settle()
        return ticket

    try:
        ticket = asyncio.run(run())
    except (ValueError, KeyError, RuntimeError) as e:
        fail(str(e).strip("'\""))

    result = validate_order_for_submission(ticket.values)
    snapshot = ticket.validation
    console.print(_order_table(ticket, "Order"))

    blocking = result.errors or snapshot.server_errors or snapshot.ref_data_errors
    if blocking or snapshot.warnings:
        console.print(_issue_table(snapshot, result.errors))
    if snapshot.global_error:
        console.print(f"[red]{snapshot.global_error}[/red]")
    if blocking:
        raise SystemExit(1)

    console.print(Panel(
        "[green]Order is valid and ready to place.[/green]",
        title="[bold green]Valid[/bold green]",
        border_style="green",
    ))


@click.command()
@click.option("-s", "--set", "assignments", multiple=True, help=SET_HELP)
@click.option("--context", "context_path", type=click.Path(exists=True, dir_okay=False),
              help=CONTEXT_HELP)
@click.pass_context
def place(ctx: click.Context, assignments: tuple[str, ...],
          context_path: Optional[str]) -> None:
    """Place an order on the paper order server.

    Unset fields come from the defaults and the [preferences] table
    of the settings file.

    \b
    Examples:
      fxticket place -s side=SELL -s amount="2.5m GBP" -s account=Acct
      fxticket place -s order_type=TAKE_PROFIT -s level=1.2650 -s account=1
      fxticket place --context instrument.json -s account=Acct
    """
    settings = get_settings(ctx)
    store = get_order_store(settings)

    async def run():
        ticket = _build_ticket(settings, store)
        await _start(ticket)
        context = _load_context(context_path)
        if context is not None:
            _raise_order_entry(ticket, context)
        _apply_edits(ticket, assignments)
        await ticket.settle()
        await ticket.submit_order()
        return ticket

    try:
        ticket = asyncio.run(run())
    except (ValueError, KeyError, RuntimeError) as e:
        fail(str(e).strip("'\""))

    _finish_submission(ticket)


@click.command()
@click.argument("order_id")
@click.option("-s", "--set", "assignments", multiple=True, help=SET_HELP)
@click.pass_context
def amend(ctx: click.Context, order_id: str, assignments: tuple[str, ...]) -> None:
    """Amend a live paper order.

    Only the fields the order type allows to amend can be set.

    \b
    Examples:
      fxticket amend PAPER_1A2B3C4D5E6F -s amount="3m GBP"
      fxticket amend PAPER_1A2B3C4D5E6F -s level=1.2700
    """
    settings = get_settings(ctx)
    store = get_order_store(settings)
    order = store.get_order(order_id)
    if order is None:
        fail(f"Order {order_id} not found")
    if not assignments:
        fail("Nothing to amend. Pass at least one -s key=value.")

    async def run():
        ticket = _build_ticket(settings, store)
        await _start(ticket)
        ticket.open_order(order)
        if not ticket.amend_order():
            raise ValueError(ticket.toast.text)
        _apply_edits(ticket, assignments)
        await ticket.settle()
        await ticket.submit_order()
        return ticket

    try:
        ticket = asyncio.run(run())
    except (ValueError, KeyError, RuntimeError) as e:
        fail(str(e).strip("'\""))

    _finish_submission(ticket)


def _finish_paper_order(ctx: click.Context, order_id: str, action: str) -> None:
    settings = get_settings(ctx)
    transport = get_paper_transport(settings)
    if action == "fill":
        response = transport.fill_order(order_id)
    else:
        response = transport.cancel_order(order_id)

    if not response.succeeded:
        fail(response.failure_reason or f"Could not {action} order {order_id}")

    verb = "filled" if action == "fill" else "cancelled"
    console.print(Panel(
        f"[green]Order {order_id} {verb}.[/green]",
        title=f"[bold green]Order {verb.title()}[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("order_id")
@click.pass_context
def fill(ctx: click.Context, order_id: str) -> None:
    """Fill an open paper order at its level.

    \b
    Examples:
      fxticket fill PAPER_1A2B3C4D5E6F
    """
    _finish_paper_order(ctx, order_id, "fill")


@click.command()
@click.argument("order_id")
@click.pass_context
def cancel(ctx: click.Context, order_id: str) -> None:
    """Cancel an open paper order.

    \b
    Examples:
      fxticket cancel PAPER_1A2B3C4D5E6F
    """
    _finish_paper_order(ctx, order_id, "cancel")
