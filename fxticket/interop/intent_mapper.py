"""Map external interop contexts onto order field values.

Another desktop application can ask the ticket to pre-fill an order by
sending a context such as::

    {
        "type": "fdc3.instrument",
        "id": {"ticker": "GBP/USD"},
        "customData": {"amount": 2500000, "ccy": "GBP", "side": "SELL", "type": "TAKE_PROFIT"},
    }

Only what the context carries ends up in the patch; nothing is defaulted
except the currency of an amount and the id of an account, which the
context may leave out.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from fxticket.models.enums import OrderType, Side
from fxticket.models.order import Account, Amount

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT_CCY = "USD"


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _enum_or_raw(enum_cls: type[Enum], value: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        # Left as is so validation reports it against the field.
        return value


def map_context_to_order(context: Any) -> dict[str, Any]:
    """Convert an interop context into a partial set of order values.

    Args:
        context: Loosely typed context mapping; anything else maps to ``{}``.

    Returns:
        Order field values found in the context.
    """
    if not isinstance(context, Mapping):
        return {}
    patch: dict[str, Any] = {}

    ids = context.get("id")
    if isinstance(ids, Mapping) and ids.get("ticker"):
        patch["currency_pair"] = str(ids["ticker"]).replace("/", "")

    custom = context.get("customData")
    if not isinstance(custom, Mapping):
        return patch

    if custom.get("amount"):
        amount = _to_float(custom["amount"])
        if amount is not None:
            patch["amount"] = Amount(amount=amount, ccy=str(custom.get("ccy") or DEFAULT_AMOUNT_CCY))
        else:
            logger.debug("Ignoring non-numeric amount in context: %r", custom["amount"])

    if custom.get("side"):
        patch["side"] = _enum_or_raw(Side, custom["side"])

    if custom.get("type"):
        patch["order_type"] = _enum_or_raw(OrderType, custom["type"])

    if custom.get("level"):
        level = _to_float(custom["level"])
        if level is not None:
            patch["level"] = level

    if custom.get("orderId"):
        patch["order_id"] = str(custom["orderId"])

    if custom.get("accountName"):
        patch["account"] = Account(
            name=str(custom["accountName"]), sds_id=_to_int(custom.get("accountSdsId"))
        )

    return patch
