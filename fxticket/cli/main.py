"""Main CLI entry point for FX Ticket.

This module provides the main click group and lazy loading
of the command modules.
"""

import importlib
from typing import Optional

import click


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when one of their commands
    is actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        base = super().list_commands(ctx)
        return sorted(set(base) | set(self._lazy_subcommands))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.commands:
            return self.commands[cmd_name]
        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)
        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Import a command from its module path and register it."""
        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        cmd = getattr(module, cmd_name, None)
        if not isinstance(cmd, click.Command):
            # Commands whose function name differs from the command name
            cmd = next(
                (
                    attr for attr in vars(module).values()
                    if isinstance(attr, click.Command) and attr.name == cmd_name
                ),
                None,
            )
        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    # Catalog
    "types": "fxticket.cli.catalog",
    "fields": "fxticket.cli.catalog",
    "orders": "fxticket.cli.catalog",
    "show": "fxticket.cli.catalog",
    # Order entry
    "validate": "fxticket.cli.ticket",
    "place": "fxticket.cli.ticket",
    "amend": "fxticket.cli.ticket",
    # Paper server controls
    "fill": "fxticket.cli.ticket",
    "cancel": "fxticket.cli.ticket",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="fxticket")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ~/.config/fxticket/config.toml).",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logs.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """FX Ticket - order entry for FX algo orders.

    Build, validate and place orders against the paper order server.

    \b
    Quick Start:
      fxticket types                                  # Order types and their fields
      fxticket validate -s order_type=TAKE_PROFIT     # Check an order without placing it
      fxticket place -s side=SELL -s amount="2.5m GBP" -s account=Acct
      fxticket orders                                 # Placed paper orders
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
