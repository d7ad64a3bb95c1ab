"""Order server transports for FX Ticket."""

from fxticket.transports.base import OrderTransport, TransportError
from fxticket.transports.paper import PaperTransport

__all__ = [
    "OrderTransport",
    "PaperTransport",
    "TransportError",
]
