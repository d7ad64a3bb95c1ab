"""Data models for the FX order ticket."""

from fxticket.models.enums import (
    DATE_BOUND_STRATEGIES,
    TERMINAL_STATUSES,
    DelayBehaviour,
    DiscretionFactor,
    EditMode,
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
    TicketStatus,
    TriggerSide,
)
from fxticket.models.order import ORDER_FIELDS, Account, Amount, ExecutionInfo, Expiry, Order
from fxticket.models.refdata import (
    AccountRef,
    CurrencyPair,
    LiquidityPool,
    OrderTypePools,
    ReferenceData,
    UserPreferences,
)
from fxticket.models.transport import FieldCheckRequest, FieldCheckResult, MutationResponse, Toast

__all__ = [
    "DATE_BOUND_STRATEGIES",
    "ORDER_FIELDS",
    "TERMINAL_STATUSES",
    "Account",
    "AccountRef",
    "Amount",
    "CurrencyPair",
    "DelayBehaviour",
    "DiscretionFactor",
    "EditMode",
    "ExecutionInfo",
    "ExecutionStyle",
    "Expiry",
    "ExpiryStrategy",
    "FieldCheckRequest",
    "FieldCheckResult",
    "FranchiseExposure",
    "LiquidityPool",
    "MutationResponse",
    "Order",
    "OrderStatus",
    "OrderType",
    "OrderTypePools",
    "ParticipationRate",
    "ReferenceData",
    "Side",
    "Skew",
    "StartMode",
    "TargetExecutionRate",
    "TicketStatus",
    "Toast",
    "TriggerSide",
    "UserPreferences",
]
