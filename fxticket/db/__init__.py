"""Persistence for FX Ticket."""

from fxticket.db.store import OrderStore

__all__ = ["OrderStore"]
