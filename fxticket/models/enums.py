"""Enumerations shared by the order ticket and the order server."""

from enum import Enum


class OrderType(str, Enum):
    """Order types offered by the FX order server."""

    ADAPT = "ADAPT"
    AGGRESSIVE = "AGGRESSIVE"
    CALL_LEVEL = "CALL_LEVEL"
    FIXING = "FIXING"
    FLOAT = "FLOAT"
    IOC = "IOC"
    LIQUIDITY_SEEKER = "LIQUIDITY_SEEKER"
    PARTICIPATION = "PARTICIPATION"
    PEG = "PEG"
    POUNCE = "POUNCE"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    TWAP = "TWAP"


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    """Execution status reported by the server for a placed order."""

    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    FILLED = "FILLED"
    LIVE = "LIVE"
    LIVE_DELAYED = "LIVE_DELAYED"
    LIVE_SUSPENDED = "LIVE_SUSPENDED"
    LOADING = "LOADING"
    PENDING_AMEND = "PENDING_AMEND"
    PENDING_CANCEL = "PENDING_CANCEL"
    PENDING_FILL = "PENDING_FILL"
    PENDING_LIVE = "PENDING_LIVE"
    REJECTED = "REJECTED"
    UNSPECIFIED = "UNSPECIFIED"


TERMINAL_STATUSES = frozenset(
    {OrderStatus.FILLED, OrderStatus.CANCELLED, OrderStatus.REJECTED, OrderStatus.EXPIRED}
)


class ExpiryStrategy(str, Enum):
    GTC = "GTC"
    GTD = "GTD"
    GTT = "GTT"


# Strategies that carry an end date/time.
DATE_BOUND_STRATEGIES = frozenset({ExpiryStrategy.GTD, ExpiryStrategy.GTT})


class StartMode(str, Enum):
    START_NOW = "START_NOW"
    START_AT = "START_AT"


class DelayBehaviour(str, Enum):
    CONSTANT = "CONSTANT"
    SPEED_UP_CANCEL = "SPEED_UP_CANCEL"
    SPEED_UP_EXTEND = "SPEED_UP_EXTEND"


class DiscretionFactor(str, Enum):
    AGGRESSIVE = "AGGRESSIVE"
    NEUTRAL = "NEUTRAL"
    PASSIVE = "PASSIVE"


class ExecutionStyle(str, Enum):
    AGGRESSIVE = "EXECUTION_STYLE_AGGRESSIVE"
    NEUTRAL = "EXECUTION_STYLE_NEUTRAL"
    PASSIVE = "EXECUTION_STYLE_PASSIVE"


class FranchiseExposure(str, Enum):
    FAST = "FRANCHISE_EXPOSURE_FAST"
    MEDIUM_PLUS = "FRANCHISE_EXPOSURE_MEDIUM_PLUS"
    MEDIUM = "FRANCHISE_EXPOSURE_MEDIUM"
    MEDIUM_MINUS = "FRANCHISE_EXPOSURE_MEDIUM_MINUS"
    SLOW = "FRANCHISE_EXPOSURE_SLOW"


class TargetExecutionRate(str, Enum):
    FAST = "TARGET_EXECUTION_RATE_FAST"
    MEDIUM_PLUS = "TARGET_EXECUTION_RATE_MEDIUM_PLUS"
    MEDIUM = "TARGET_EXECUTION_RATE_MEDIUM"
    MEDIUM_MINUS = "TARGET_EXECUTION_RATE_MEDIUM_MINUS"
    SLOW = "TARGET_EXECUTION_RATE_SLOW"


class ParticipationRate(str, Enum):
    FAST = "PARTICIPATION_RATE_FAST"
    MEDIUM_PLUS = "PARTICIPATION_RATE_MEDIUM_PLUS"
    MEDIUM = "PARTICIPATION_RATE_MEDIUM"
    MEDIUM_MINUS = "PARTICIPATION_RATE_MEDIUM_MINUS"
    SLOW = "PARTICIPATION_RATE_SLOW"


class Skew(str, Enum):
    NONE = "SKEW_NONE"
    LOW = "SKEW_LOW"
    MEDIUM = "SKEW_MEDIUM"
    HIGH = "SKEW_HIGH"


class TriggerSide(str, Enum):
    LEADING = "LEADING"
    MID = "MID"
    SL = "SL"
    SL_B = "SL_B"
    SL_S = "SL_S"
    SL_OT = "SL_OT"
    TRAILING = "TRAILING"


class EditMode(str, Enum):
    """Lifecycle of the ticket form."""

    CREATING = "creating"
    VIEWING = "viewing"
    AMENDING = "amending"


class TicketStatus(str, Enum):
    """Lifecycle of the ticket itself (loading, idle, submitting)."""

    INITIALIZING = "INITIALIZING"
    IDLE = "IDLE"
    SUBMITTING = "SUBMITTING"
    ERROR = "ERROR"
