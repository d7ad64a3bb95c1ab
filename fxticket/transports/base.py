"""Base order transport interface for FX Ticket."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from fxticket.models import FieldCheckRequest, FieldCheckResult, MutationResponse, OrderStatus
from fxticket.models.refdata import ReferenceData


class TransportError(Exception):
    """Raised when the order server cannot be reached or answers garbage."""


class OrderTransport(ABC):
    """Abstract base class for order server connections.

    All transports (the paper server, a real gateway, test fakes) must
    inherit from this class and implement all abstract methods. Business
    rejections are returned as a ``MutationResponse``; only failures to
    talk to the server raise.
    """

    @abstractmethod
    async def fetch_reference_data(self) -> ReferenceData:
        """Fetch accounts, pools, currency pairs and entitled order types.

        Returns:
            Complete reference data snapshot.

        Raises:
            TransportError: If the server cannot be reached.
        """
        pass

    @abstractmethod
    async def validate_field(self, request: FieldCheckRequest) -> FieldCheckResult:
        """Check a single field value against server-side rules.

        Args:
            request: Field, candidate value and order context.

        Returns:
            Check outcome; failures are typed SOFT or HARD.

        Raises:
            TransportError: If the server cannot be reached.
        """
        pass

    @abstractmethod
    async def create_order(self, payload: dict[str, Any]) -> MutationResponse:
        """Create an order.

        Args:
            payload: Flat create-order payload.

        Returns:
            Response with the new order id, or the rejection reason.

        Raises:
            TransportError: If the server cannot be reached.
        """
        pass

    @abstractmethod
    async def amend_order(self, payload: dict[str, Any]) -> MutationResponse:
        """Amend an existing order.

        Args:
            payload: Flat amend-order payload, including ``orderId``.

        Returns:
            Response echoing the order id, or the rejection reason.

        Raises:
            TransportError: If the server cannot be reached.
        """
        pass

    @abstractmethod
    async def get_order_status(self, order_id: str) -> Optional[OrderStatus]:
        """Get the latest status of an order.

        Returns:
            The status, or None if the order is unknown.
        """
        pass
