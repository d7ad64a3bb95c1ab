"""Order data models."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from fxticket.models.enums import (
    DelayBehaviour,
    DiscretionFactor,
    ExecutionStyle,
    ExpiryStrategy,
    FranchiseExposure,
    OrderStatus,
    OrderType,
    ParticipationRate,
    Side,
    Skew,
    StartMode,
    TargetExecutionRate,
    TriggerSide,
)


class Amount(BaseModel):
    """Notional amount with its currency."""

    amount: float = Field(..., description="Notional amount")
    ccy: str = Field(..., description="Currency of the notional (e.g., GBP)")

    model_config = {"frozen": True}


class Account(BaseModel):
    """Trading account an order is booked to."""

    name: str = Field(..., description="Account display name")
    sds_id: int = Field(..., alias="sdsId", description="Account id as returned by the server")

    model_config = {"frozen": True, "populate_by_name": True}


class Expiry(BaseModel):
    """Order expiration configuration."""

    strategy: ExpiryStrategy = Field(..., description="GTC, GTD or GTT")
    end_time: Optional[str] = Field(default=None, description="End time (HH:MM:SS)")
    end_time_zone: Optional[str] = Field(default=None, description="Time zone of the end time")

    model_config = {"frozen": True}


class ExecutionInfo(BaseModel):
    """Server-side execution state of a placed order."""

    status: OrderStatus = Field(..., description="Execution status")
    filled: Optional[Amount] = Field(default=None, description="Filled amount")
    average_fill_rate: Optional[float] = Field(default=None, description="Average fill rate")
    reject_reason: Optional[str] = Field(default=None, description="Rejection reason")

    model_config = {"frozen": True}


class Order(BaseModel):
    """Read-only view of an order.

    The ticket never edits an ``Order`` in place: the effective order is
    derived from the layered value store, and an ``Order`` is only built
    from that derivation once it has been placed (or loaded from the server).
    """

    order_id: Optional[str] = Field(default=None, description="Server order id")
    currency_pair: Optional[str] = Field(default=None, description="Currency pair (e.g., GBPUSD)")
    side: Optional[Side] = Field(default=None, description="Order side")
    order_type: Optional[OrderType] = Field(default=None, description="Order type")
    amount: Optional[Amount] = Field(default=None, description="Notional amount")
    level: Optional[float] = Field(default=None, description="Price level")
    liquidity_pool: Optional[str] = Field(default=None, description="Liquidity pool id")
    account: Optional[Account] = Field(default=None, description="Booking account")

    start_mode: Optional[StartMode] = Field(default=None, description="Start now or at a time")
    start_time: Optional[str] = Field(default=None, description="Start time (HH:MM:SS)")
    start_date: Optional[str] = Field(default=None, description="Start date (YYYY-MM-DD)")
    time_zone: Optional[str] = Field(default=None, description="Start time zone")
    expiry: Optional[Expiry] = Field(default=None, description="Expiry configuration")
    expiry_time: Optional[str] = Field(default=None, description="Expiry time (HH:MM:SS)")
    expiry_date: Optional[str] = Field(default=None, description="Expiry date (YYYY-MM-DD)")
    expiry_time_zone: Optional[str] = Field(default=None, description="Expiry time zone")

    target_execution_rate: Optional[TargetExecutionRate] = None
    participation_rate: Optional[ParticipationRate] = None
    execution_style: Optional[ExecutionStyle] = None
    discretion_factor: Optional[DiscretionFactor] = None
    trigger_side: Optional[TriggerSide] = None
    iceberg: Optional[float] = None
    skew: Optional[Skew] = None
    franchise_exposure: Optional[FranchiseExposure] = None
    delay_behaviour: Optional[DelayBehaviour] = None
    fixing_id: Optional[int] = None
    fixing_date: Optional[str] = None
    twap_target_end_time: Optional[int] = Field(default=None, description="Epoch milliseconds")
    twap_time_zone: Optional[str] = None

    execution: Optional[ExecutionInfo] = Field(default=None, description="Execution state")
    status: Optional[OrderStatus] = Field(default=None, description="Last known status")

    model_config = {"frozen": True}

    def to_values(self) -> dict[str, Any]:
        """Return the populated fields as a layer-ready mapping.

        Nested objects are kept as models so they are replaced wholesale
        when merged into the layered value store.
        """
        return {
            key: getattr(self, key)
            for key in self.model_fields_set
            if getattr(self, key) is not None
        }


# Every key an order value mapping may carry.
ORDER_FIELDS: tuple[str, ...] = tuple(Order.model_fields)
