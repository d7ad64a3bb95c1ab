"""Shared fixtures: temporary stores and a controllable fake order server."""

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Optional

import pytest

from fxticket.db.store import OrderStore
from fxticket.models import (
    FieldCheckRequest,
    FieldCheckResult,
    MutationResponse,
    OrderStatus,
    ReferenceData,
)
from fxticket.store.refdata import build_reference_data
from fxticket.transports.base import OrderTransport
from fxticket.transports.paper import PaperTransport

ACCOUNTS = [{"sdsId": 1, "name": "Acct"}, {"sdsId": 2, "name": "Hedge Fund A"}]

ORDER_TYPES_WITH_POOLS = [
    {
        "order_type": order_type,
        "liquidity_pools": [
            {"name": "Hybrid", "value": "Hybrid"},
            {"name": "Pool 1", "value": "POOL1"},
            {"name": "Float Pool", "value": "FLOAT_POOL"},
        ],
    }
    for order_type in ("FLOAT", "TAKE_PROFIT", "STOP_LOSS", "LIQUIDITY_SEEKER", "TWAP")
]

CURRENCY_PAIRS = [
    {"symbol": "GBPUSD", "ccy1": "GBP", "ccy2": "USD"},
    {"symbol": "EURUSD", "ccy1": "EUR", "ccy2": "USD"},
]


def make_reference_data() -> ReferenceData:
    return build_reference_data(ACCOUNTS, ORDER_TYPES_WITH_POOLS, CURRENCY_PAIRS)


class FakeTransport(OrderTransport):
    """Order server whose field checks can be held until released.

    ``gate(field, value)`` returns an event; a check of that value does
    not answer until the event is set.
    """

    def __init__(self, reference_data: Optional[ReferenceData] = None):
        self.reference_data = reference_data or make_reference_data()
        self.field_results: dict[tuple[str, Any], FieldCheckResult] = {}
        self.gates: dict[tuple[str, Any], asyncio.Event] = {}
        self.field_calls: list[FieldCheckRequest] = []
        self.create_calls: list[dict[str, Any]] = []
        self.amend_calls: list[dict[str, Any]] = []
        self.create_response = MutationResponse(order_id="ORD-1", result="SUCCESS")
        self.amend_response = MutationResponse(order_id="ORD-1", result="SUCCESS")
        self.raise_on_submit: Optional[Exception] = None
        self.raise_on_fetch: Optional[Exception] = None
        self.submit_gate: Optional[asyncio.Event] = None
        self.statuses: dict[str, OrderStatus] = {}

    @staticmethod
    def _key(field: str, value: Any) -> tuple[str, Any]:
        return field, getattr(value, "amount", value)

    def gate(self, field: str, value: Any) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[self._key(field, value)] = event
        return event

    def respond(self, field: str, value: Any, ok: bool, kind: Optional[str] = None,
                message: Optional[str] = None) -> None:
        self.field_results[self._key(field, value)] = FieldCheckResult(
            field=field, ok=ok, type=kind, message=message
        )

    async def fetch_reference_data(self) -> ReferenceData:
        if self.raise_on_fetch is not None:
            raise self.raise_on_fetch
        return self.reference_data

    async def validate_field(self, request: FieldCheckRequest) -> FieldCheckResult:
        self.field_calls.append(request)
        key = self._key(request.field, request.value)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        return self.field_results.get(key, FieldCheckResult(field=request.field, ok=True))

    async def _submit(self, calls: list, payload: dict[str, Any],
                      response: MutationResponse) -> MutationResponse:
        calls.append(payload)
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if self.raise_on_submit is not None:
            raise self.raise_on_submit
        return response

    async def create_order(self, payload: dict[str, Any]) -> MutationResponse:
        return await self._submit(self.create_calls, payload, self.create_response)

    async def amend_order(self, payload: dict[str, Any]) -> MutationResponse:
        return await self._submit(self.amend_calls, payload, self.amend_response)

    async def get_order_status(self, order_id: str) -> Optional[OrderStatus]:
        return self.statuses.get(order_id)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def order_store(temp_dir: Path) -> OrderStore:
    return OrderStore(temp_dir / "orders.db")


@pytest.fixture
def paper(order_store: OrderStore) -> PaperTransport:
    """Paper server without the simulated round trip."""
    return PaperTransport(order_store, delay_ms=0)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
