"""Order type configuration: which fields each order type shows.

Each order type declares the ordered list of fields the ticket renders,
the subset that may still be changed once the order is placed, and the
field that takes focus when the type is selected.
"""

from pydantic import BaseModel, Field, model_validator

from fxticket.models.enums import OrderType

# Every order type must capture these.
REQUIRED_FIELDS = ("side", "amount", "account")

# Prepended to the configured fields when showing a placed order.
EXECUTION_FIELD = "execution"

_START_FIELDS = ("start_mode", "time_zone", "start_time", "start_date")
_EXPIRY_FIELDS = ("expiry", "expiry_time_zone", "expiry_time", "expiry_date")


class OrderConfig(BaseModel):
    """Field layout of a single order type."""

    fields: tuple[str, ...] = Field(..., min_length=1, description="Fields, top to bottom")
    editable_fields: tuple[str, ...] = Field(..., description="Fields that can be amended")
    initial_focus: str = Field(..., description="Field focused on selection")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_layout(self) -> "OrderConfig":
        missing = [f for f in REQUIRED_FIELDS if f not in self.fields]
        if missing:
            raise ValueError(f"Order type config is missing required fields: {missing}")
        stray = [f for f in self.editable_fields if f not in self.fields]
        if stray:
            raise ValueError(f"Editable fields not in field list: {stray}")
        if self.initial_focus not in self.fields:
            raise ValueError(f"Initial focus '{self.initial_focus}' not in field list")
        return self


ORDER_TYPES: dict[OrderType, OrderConfig] = {
    OrderType.POUNCE: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "level", "expiry", "account"),
        editable_fields=("amount", "level", "expiry"),
        initial_focus="level",
    ),
    OrderType.TAKE_PROFIT: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "level", "iceberg",
                *_START_FIELDS, *_EXPIRY_FIELDS, "account"),
        editable_fields=("amount", "level", "iceberg", *_START_FIELDS, *_EXPIRY_FIELDS),
        initial_focus="level",
    ),
    OrderType.STOP_LOSS: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "level", "trigger_side",
                *_START_FIELDS, *_EXPIRY_FIELDS, "account"),
        editable_fields=("amount", "level", "trigger_side", *_START_FIELDS, *_EXPIRY_FIELDS),
        initial_focus="level",
    ),
    OrderType.FLOAT: OrderConfig(
        fields=("side", "liquidity_pool", "target_execution_rate", "level", "amount",
                *_START_FIELDS, *_EXPIRY_FIELDS, "account"),
        editable_fields=("target_execution_rate", "amount", "level",
                         *_START_FIELDS, *_EXPIRY_FIELDS),
        initial_focus="amount",
    ),
    OrderType.LIQUIDITY_SEEKER: OrderConfig(
        fields=("side", "liquidity_pool", "amount", *_START_FIELDS, *_EXPIRY_FIELDS, "account"),
        editable_fields=("amount", *_START_FIELDS, *_EXPIRY_FIELDS),
        initial_focus="amount",
    ),
    OrderType.PARTICIPATION: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "participation_rate", "execution_style",
                "expiry", "account"),
        editable_fields=("amount", "participation_rate", "expiry"),
        initial_focus="participation_rate",
    ),
    OrderType.TWAP: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "twap_target_end_time", "twap_time_zone",
                "account"),
        editable_fields=("amount", "twap_target_end_time"),
        initial_focus="twap_target_end_time",
    ),
    OrderType.FIXING: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "fixing_id", "fixing_date", "account"),
        editable_fields=("amount",),
        initial_focus="fixing_id",
    ),
    OrderType.AGGRESSIVE: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "execution_style", "discretion_factor",
                "expiry", "account"),
        editable_fields=("amount", "expiry"),
        initial_focus="amount",
    ),
    OrderType.IOC: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "account"),
        editable_fields=("amount",),
        initial_focus="amount",
    ),
    OrderType.ADAPT: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "skew", "franchise_exposure", "expiry",
                "account"),
        editable_fields=("amount", "skew", "expiry"),
        initial_focus="amount",
    ),
    OrderType.CALL_LEVEL: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "level", "account"),
        editable_fields=("amount", "level"),
        initial_focus="level",
    ),
    OrderType.PEG: OrderConfig(
        fields=("side", "liquidity_pool", "amount", "discretion_factor", "expiry", "account"),
        editable_fields=("amount", "discretion_factor", "expiry"),
        initial_focus="amount",
    ),
}


def get_order_config(order_type: str) -> OrderConfig:
    """Look up the configuration of an order type.

    Args:
        order_type: Order type name (enum member or its string value).

    Returns:
        The order type's configuration.

    Raises:
        ValueError: If the order type is unknown.
    """
    try:
        return ORDER_TYPES[OrderType(order_type)]
    except ValueError:
        raise ValueError(f"Unknown order type: {order_type}") from None


def get_view_fields(order_type: str) -> tuple[str, ...]:
    """Fields shown for a placed order: execution marker first, then the layout."""
    return (EXECUTION_FIELD, *get_order_config(order_type).fields)
