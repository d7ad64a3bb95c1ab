"""Paper order server for simulated order entry."""

import asyncio
import logging
import math
import uuid
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from fxticket.config.constants import AMOUNT_CONFIG, FLOAT_POOL, VALIDATION_CONFIG
from fxticket.db.store import OrderStore
from fxticket.models import (
    TERMINAL_STATUSES,
    Amount,
    ExecutionInfo,
    FieldCheckRequest,
    FieldCheckResult,
    MutationResponse,
    Order,
    OrderStatus,
    OrderType,
)
from fxticket.models.refdata import ReferenceData
from fxticket.store.refdata import build_reference_data
from fxticket.store.submission import order_values_from_payload
from fxticket.transports.base import OrderTransport

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = [
    {"sdsId": 1, "name": "Acct"},
    {"sdsId": 2, "name": "Hedge Fund A"},
    {"sdsId": 3, "name": "Corporate Treasury"},
]

_STANDARD_POOLS = [
    {"name": "Hybrid", "value": "Hybrid"},
    {"name": "Pool 1", "value": "POOL1"},
    {"name": "Float Pool", "value": FLOAT_POOL},
]

DEFAULT_ORDER_TYPES_WITH_POOLS = [
    {"order_type": order_type.value, "liquidity_pools": _STANDARD_POOLS}
    for order_type in OrderType
]

CREATE_REQUIRED = ("currencyPair", "side", "orderType", "amount", "ccy")

DEFAULT_CURRENCY_PAIRS = [
    {"symbol": "GBPUSD", "ccy1": "GBP", "ccy2": "USD"},
    {"symbol": "EURUSD", "ccy1": "EUR", "ccy2": "USD"},
    {"symbol": "EURGBP", "ccy1": "EUR", "ccy2": "GBP"},
    {"symbol": "AUDUSD", "ccy1": "AUD", "ccy2": "USD"},
    {"symbol": "USDJPY", "ccy1": "USD", "ccy2": "JPY", "spot_precision": 3, "min_pip_step": 0.01},
]


def _number(value: Any) -> float:
    if isinstance(value, Amount):
        value = value.amount
    elif isinstance(value, Mapping):
        value = value.get("amount")
    if value is None or value == "" or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class PaperTransport(OrderTransport):
    """Simulated order server.

    Checks fields against firm limits and its own reference data, keeps
    orders in SQLite, and answers after a configurable delay to mimic a
    network round trip.
    """

    def __init__(
        self,
        order_store: OrderStore,
        delay_ms: int = VALIDATION_CONFIG["SERVER_VALIDATION_DELAY_MS"],
        large_trade_threshold: float = AMOUNT_CONFIG["LARGE_TRADE_THRESHOLD"],
        accounts: Optional[Iterable[Mapping[str, Any]]] = None,
        order_types_with_pools: Optional[Iterable[Mapping[str, Any]]] = None,
        currency_pairs: Optional[Iterable[Mapping[str, Any]]] = None,
    ):
        """Initialize the paper server.

        Args:
            order_store: OrderStore instance for persistence.
            delay_ms: Simulated round trip per call.
            large_trade_threshold: Amounts above this get a soft warning.
            accounts: Accounts to serve instead of the built-in ones.
            order_types_with_pools: Entitlements to serve instead of the built-in ones.
            currency_pairs: Currency pairs to serve instead of the built-in ones.
        """
        self._store = order_store
        self._delay = delay_ms / 1000
        self._large_trade_threshold = large_trade_threshold
        self._reference_data = build_reference_data(
            accounts if accounts is not None else DEFAULT_ACCOUNTS,
            order_types_with_pools if order_types_with_pools is not None
            else DEFAULT_ORDER_TYPES_WITH_POOLS,
            currency_pairs if currency_pairs is not None else DEFAULT_CURRENCY_PAIRS,
        )

    @property
    def reference_data(self) -> ReferenceData:
        return self._reference_data

    async def _round_trip(self) -> None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)

    # -- checks --------------------------------------------------------------

    def _has_account(self, sds_id: Any) -> bool:
        return any(str(a.sds_id) == str(sds_id) for a in self._reference_data.accounts)

    def _has_pool(self, value: Any) -> bool:
        return any(p.value == value for p in self._reference_data.pools)

    def _has_pair(self, symbol: Any) -> bool:
        return any(p.symbol == symbol for p in self._reference_data.currency_pairs)

    def check_field(self, request: FieldCheckRequest) -> FieldCheckResult:
        """Apply the server-side rules for one field without the delay."""
        field = request.field

        def fail(message: str, kind: str = "HARD") -> FieldCheckResult:
            return FieldCheckResult(field=field, ok=False, type=kind, message=message)

        if field == "amount":
            amount = _number(request.value)
            if not math.isfinite(amount):
                return fail("Amount must be a number")
            if amount <= 0:
                return fail("Amount must be positive")
            if amount > AMOUNT_CONFIG["MAX_FIRM_LIMIT"]:
                return fail("Exceeds firm trading limit")
            if amount > self._large_trade_threshold:
                return fail(f"Large trade: above {self._large_trade_threshold:,.0f}", "SOFT")
        elif field == "level":
            price = _number(request.value)
            if not math.isfinite(price):
                return fail("Price must be a number")
            if price <= 0:
                return fail("Price must be positive")
        elif field == "account" and request.account is not None:
            if not self._has_account(request.account):
                return fail("Account not available")
        elif field == "liquidity_pool" and request.liquidity_pool:
            if not self._has_pool(request.liquidity_pool):
                return fail("Liquidity pool not available")
        elif field == "currency_pair" and request.currency_pair:
            if not self._has_pair(request.currency_pair):
                return fail("Currency pair not available")
        return FieldCheckResult(field=field, ok=True)

    def _rejection(
        self, payload: Mapping[str, Any], required: Iterable[str] = ()
    ) -> Optional[str]:
        missing = [key for key in required if payload.get(key) in (None, "")]
        if missing:
            return f"Missing required fields: {', '.join(missing)}"
        if "amount" in payload:
            amount = _number(payload["amount"])
            if not math.isfinite(amount) or amount <= 0:
                return "Amount must be positive"
            if amount > AMOUNT_CONFIG["MAX_FIRM_LIMIT"]:
                return "Exceeds firm trading limit"
        if "account" in payload and not self._has_account(payload["account"]):
            return "Account not available"
        if "liquidityPool" in payload and not self._has_pool(payload["liquidityPool"]):
            return "Liquidity pool not available"
        if "currencyPair" in payload and not self._has_pair(payload["currencyPair"]):
            return "Currency pair not available"
        return None

    # -- OrderTransport ------------------------------------------------------

    async def fetch_reference_data(self) -> ReferenceData:
        await self._round_trip()
        return self._reference_data

    async def validate_field(self, request: FieldCheckRequest) -> FieldCheckResult:
        await self._round_trip()
        return self.check_field(request)

    async def create_order(self, payload: dict[str, Any]) -> MutationResponse:
        await self._round_trip()
        reason = self._rejection(payload, required=CREATE_REQUIRED)
        if reason:
            logger.info("Paper order rejected: %s", reason)
            return MutationResponse(result="FAILURE", failure_reason=reason)

        order_id = f"PAPER_{uuid.uuid4().hex[:12].upper()}"
        values = order_values_from_payload(payload)
        try:
            order = Order.model_validate({
                **values,
                "order_id": order_id,
                "status": OrderStatus.PENDING_LIVE,
                "execution": ExecutionInfo(
                    status=OrderStatus.PENDING_LIVE,
                    filled=Amount(amount=0, ccy=values["amount"].ccy),
                ),
            })
        except ValidationError as e:
            return MutationResponse(
                result="FAILURE", failure_reason=f"Invalid order: {e.errors()[0]['msg']}"
            )
        self._store.save_order(order)
        logger.info("Paper order %s created", order_id)
        return MutationResponse(order_id=order_id, result="SUCCESS")

    async def amend_order(self, payload: dict[str, Any]) -> MutationResponse:
        await self._round_trip()
        order_id = payload.get("orderId")
        order = self._store.get_order(order_id) if order_id else None
        if order is None:
            return MutationResponse(
                order_id=order_id, result="FAILURE", failure_reason="Order not found"
            )
        if order.status in TERMINAL_STATUSES:
            return MutationResponse(
                order_id=order_id, result="FAILURE",
                failure_reason=f"Order is {order.status.value} and cannot be amended",
            )
        reason = self._rejection(payload)
        if reason:
            return MutationResponse(order_id=order_id, result="FAILURE", failure_reason=reason)

        changes = order_values_from_payload(payload)
        changes.pop("order_id", None)
        try:
            amended = Order.model_validate({**order.model_dump(exclude_none=True), **changes})
        except ValidationError as e:
            return MutationResponse(
                order_id=order_id, result="FAILURE",
                failure_reason=f"Invalid amendment: {e.errors()[0]['msg']}",
            )
        self._store.save_order(amended)
        self._store.log_amendment(order_id, dict(payload))
        logger.info("Paper order %s amended", order_id)
        return MutationResponse(order_id=order_id, result="SUCCESS")

    async def get_order_status(self, order_id: str) -> Optional[OrderStatus]:
        order = self._store.get_order(order_id)
        return order.status if order else None

    # -- simulation controls -------------------------------------------------

    def _finish(self, order_id: str, status: OrderStatus) -> MutationResponse:
        order = self._store.get_order(order_id)
        if order is None:
            return MutationResponse(
                order_id=order_id, result="FAILURE", failure_reason="Order not found"
            )
        if order.status in TERMINAL_STATUSES:
            return MutationResponse(
                order_id=order_id, result="FAILURE",
                failure_reason=f"Order is already {order.status.value}",
            )
        filled = Amount(amount=0, ccy=order.amount.ccy)
        if status == OrderStatus.FILLED:
            filled = order.amount
        execution = ExecutionInfo(
            status=status,
            filled=filled,
            average_fill_rate=order.level if status == OrderStatus.FILLED else None,
        )
        self._store.save_order(
            order.model_copy(update={"status": status, "execution": execution})
        )
        logger.info("Paper order %s %s", order_id, status.value.lower())
        return MutationResponse(order_id=order_id, result="SUCCESS")

    def fill_order(self, order_id: str) -> MutationResponse:
        """Fill an open paper order completely at its level."""
        return self._finish(order_id, OrderStatus.FILLED)

    def cancel_order(self, order_id: str) -> MutationResponse:
        """Cancel an open paper order."""
        return self._finish(order_id, OrderStatus.CANCELLED)
