"""FX Ticket: order entry for FX algo orders."""

__version__ = "0.1.0"
