"""Field visibility rules.

Each field has at most one rule taking the derived order values and
returning whether the field is shown. Fields without a rule are always
visible. Rules only read the order values, never reference data or
validation state, so they can be evaluated on every render.
"""

from typing import Any, Callable, Iterable, Mapping

from fxticket.config.constants import FLOAT_POOL
from fxticket.models.enums import DATE_BOUND_STRATEGIES, OrderType, StartMode

VisibilityRule = Callable[[Mapping[str, Any]], bool]

# Order types that carry a price level.
LEVEL_ORDER_TYPES = frozenset({
    OrderType.STOP_LOSS,
    OrderType.TAKE_PROFIT,
    OrderType.POUNCE,
    OrderType.CALL_LEVEL,
    OrderType.FLOAT,
})


def _order_type_in(*order_types: OrderType) -> VisibilityRule:
    allowed = frozenset(order_types)
    return lambda values: values.get("order_type") in allowed


def _level_visible(values: Mapping[str, Any]) -> bool:
    order_type = values.get("order_type")
    if order_type not in LEVEL_ORDER_TYPES:
        return False
    # Stop losses routed to the float pool have no level.
    if order_type == OrderType.STOP_LOSS and values.get("liquidity_pool") == FLOAT_POOL:
        return False
    return True


def _starts_at(values: Mapping[str, Any]) -> bool:
    return values.get("start_mode") == StartMode.START_AT


def _expiry_strategy(values: Mapping[str, Any]) -> Any:
    expiry = values.get("expiry")
    if expiry is None:
        return None
    if isinstance(expiry, Mapping):
        return expiry.get("strategy")
    return getattr(expiry, "strategy", None)


def _date_bound_expiry(values: Mapping[str, Any]) -> bool:
    return _expiry_strategy(values) in DATE_BOUND_STRATEGIES


FIELD_VISIBILITY_RULES: dict[str, VisibilityRule] = {
    "level": _level_visible,
    "liquidity_pool": lambda values: values.get("order_type") != OrderType.FIXING,
    "start_time": _starts_at,
    "start_date": _starts_at,
    "time_zone": _starts_at,
    "expiry_time": _date_bound_expiry,
    "expiry_date": _date_bound_expiry,
    "expiry_time_zone": _date_bound_expiry,
    "target_execution_rate": _order_type_in(OrderType.FLOAT, OrderType.LIQUIDITY_SEEKER),
    "participation_rate": _order_type_in(OrderType.PARTICIPATION),
    "execution_style": _order_type_in(OrderType.AGGRESSIVE, OrderType.PARTICIPATION),
    "discretion_factor": _order_type_in(OrderType.PARTICIPATION, OrderType.PEG),
    "trigger_side": _order_type_in(OrderType.STOP_LOSS),
    "iceberg": _order_type_in(OrderType.TAKE_PROFIT),
    "fixing_id": _order_type_in(OrderType.FIXING),
    "fixing_date": _order_type_in(OrderType.FIXING),
    "twap_target_end_time": _order_type_in(OrderType.TWAP),
    "twap_time_zone": _order_type_in(OrderType.TWAP),
    "skew": _order_type_in(OrderType.ADAPT, OrderType.PARTICIPATION),
    "franchise_exposure": _order_type_in(OrderType.ADAPT, OrderType.PARTICIPATION),
    "delay_behaviour": _order_type_in(OrderType.PARTICIPATION),
}


def is_visible(field_key: str, values: Mapping[str, Any]) -> bool:
    """Check whether a field is shown for the given order values."""
    rule = FIELD_VISIBILITY_RULES.get(field_key)
    return True if rule is None else bool(rule(values))


def filter_visible_fields(fields: Iterable[str], values: Mapping[str, Any]) -> list[str]:
    """Return the fields that pass their visibility rule, in the given order."""
    return [key for key in fields if is_visible(key, values)]
