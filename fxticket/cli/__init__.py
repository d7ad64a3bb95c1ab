"""CLI commands for FX Ticket.

This package provides the command-line interface for FX Ticket:
browsing order types, validating and placing orders, and managing
paper orders.
"""

from fxticket.cli.main import cli, main

__all__ = ["cli", "main"]
