"""Catalog commands for FX Ticket CLI.

Lists order types and their field layouts, and the orders kept by
the paper order server.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from fxticket.cli.common import console, fail, get_order_store, get_settings, parse_values

STATUS_STYLES = {
    "FILLED": "green",
    "CANCELLED": "dim",
    "EXPIRED": "dim",
    "REJECTED": "red",
}


@click.command()
def types() -> None:
    """List the order types and their field layouts.

    \b
    Examples:
      fxticket types
    """
    from fxticket.config.order_config import ORDER_TYPES

    table = Table(title="Order Types", show_header=True, header_style="bold cyan")
    table.add_column("Type", style="cyan")
    table.add_column("Fields")
    table.add_column("Amendable")
    table.add_column("Focus", style="dim")

    for order_type, config in sorted(ORDER_TYPES.items(), key=lambda item: item[0].value):
        table.add_row(
            order_type.value,
            ", ".join(config.fields),
            ", ".join(config.editable_fields),
            config.initial_focus,
        )

    console.print(table)


@click.command()
@click.argument("order_type")
@click.option("-s", "--set", "assignments", multiple=True,
              help="Field value that affects visibility, e.g. -s start_mode=START_AT.")
def fields(order_type: str, assignments: tuple[str, ...]) -> None:
    """Show the fields of an order type.

    Hidden fields are listed dimmed; set field values to see how the
    layout changes.

    \b
    Examples:
      fxticket fields STOP_LOSS
      fxticket fields STOP_LOSS -s liquidity_pool=FLOAT_POOL
      fxticket fields FLOAT -s start_mode=START_AT
    """
    from fxticket.config.field_registry import get_field_definition
    from fxticket.config.order_config import get_order_config
    from fxticket.config.visibility import is_visible
    from fxticket.store.layers import HARDCODED_DEFAULTS

    try:
        config = get_order_config(order_type.upper())
        values = {**HARDCODED_DEFAULTS, "order_type": order_type.upper()}
        values.update(parse_values(assignments))
    except (ValueError, KeyError) as e:
        fail(str(e).strip("'\""))

    table = Table(title=f"{order_type.upper()} Fields", show_header=True,
                  header_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Kind")
    table.add_column("Visible")
    table.add_column("Amendable")

    for key in config.fields:
        definition = get_field_definition(key)
        visible = is_visible(key, values)
        style = None if visible else "dim"
        table.add_row(
            key,
            definition.label + (" *" if key == config.initial_focus else ""),
            definition.kind.value,
            "[green]yes[/green]" if visible else "no",
            "yes" if key in config.editable_fields else "",
            style=style,
        )

    console.print(table)
    console.print("[dim]* initial focus[/dim]")


@click.command()
@click.option("--status", "status", default=None, help="Only orders with this status.")
@click.pass_context
def orders(ctx: click.Context, status: Optional[str]) -> None:
    """List orders on the paper order server.

    \b
    Examples:
      fxticket orders
      fxticket orders --status PENDING_LIVE
    """
    settings = get_settings(ctx)
    store = get_order_store(settings)
    rows = store.get_orders(status=status.upper() if status else None)

    if not rows:
        console.print("[dim]No orders found.[/dim]")
        return

    table = Table(title="Paper Orders", show_header=True, header_style="bold cyan")
    table.add_column("Order ID", style="cyan")
    table.add_column("Pair")
    table.add_column("Side")
    table.add_column("Type")
    table.add_column("Amount", justify="right")
    table.add_column("Level", justify="right")
    table.add_column("Status")

    for order in rows:
        side_color = "green" if order.side.value == "BUY" else "red"
        order_status = order.status.value if order.status else "-"
        status_color = STATUS_STYLES.get(order_status, "yellow")
        table.add_row(
            order.order_id,
            order.currency_pair,
            f"[{side_color}]{order.side.value}[/{side_color}]",
            order.order_type.value,
            f"{order.amount.amount:,.0f} {order.amount.ccy}",
            f"{order.level:.5f}" if order.level is not None else "-",
            f"[{status_color}]{order_status}[/{status_color}]",
        )

    console.print(table)

    stats = store.get_stats()
    console.print(
        "[dim]" + ", ".join(f"{name}: {count}" for name, count in sorted(stats.items()))
        + "[/dim]"
    )


@click.command()
@click.argument("order_id")
@click.pass_context
def show(ctx: click.Context, order_id: str) -> None:
    """Show a paper order with its amendments.

    \b
    Examples:
      fxticket show PAPER_1A2B3C4D5E6F
    """
    from fxticket.config.field_registry import format_field_value, get_field_label
    from fxticket.config.order_config import get_view_fields
    from fxticket.config.visibility import filter_visible_fields

    settings = get_settings(ctx)
    store = get_order_store(settings)
    order = store.get_order(order_id)
    if order is None:
        fail(f"Order {order_id} not found")

    values = order.to_values()
    keys = ["currency_pair", "order_type", "status",
            *filter_visible_fields(get_view_fields(order.order_type), values)]

    lines = [
        f"[cyan]{get_field_label(key)}:[/cyan] {format_field_value(key, values.get(key))}"
        for key in dict.fromkeys(keys)
    ]
    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]{order_id}[/bold]",
        border_style="cyan",
    ))

    amendments = store.get_amendments(order_id)
    if amendments:
        table = Table(title="Amendments", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("Changes")
        for number, payload in enumerate(amendments, 1):
            changes = ", ".join(
                f"{key}={value}" for key, value in payload.items() if key != "orderId"
            )
            table.add_row(str(number), changes)
        console.print(table)
