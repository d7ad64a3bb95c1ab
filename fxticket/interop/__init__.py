"""Interop with other desktop applications."""

from fxticket.interop.bridge import (
    ORDER_ENTRY_INTENT,
    VIEW_INSTRUMENT_INTENT,
    IntentBridge,
    InteropChannel,
    Listener,
    LocalInteropChannel,
)
from fxticket.interop.intent_mapper import map_context_to_order

__all__ = [
    "ORDER_ENTRY_INTENT",
    "VIEW_INSTRUMENT_INTENT",
    "IntentBridge",
    "InteropChannel",
    "Listener",
    "LocalInteropChannel",
    "map_context_to_order",
]
