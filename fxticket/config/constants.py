"""Application-wide constants.

Values are wrapped in read-only mappings so no code path can change them
at runtime.
"""

from types import MappingProxyType

PRICE_CONFIG = MappingProxyType({
    # Step for price inputs (one pip for most pairs)
    "PRICE_STEP": 0.0001,
    "PRICE_DECIMALS": 5,
    # Smallest price the schema accepts
    "MIN_VALID_PRICE": 0.00001,
})

AMOUNT_CONFIG = MappingProxyType({
    "MIN_AMOUNT": 1000,
    "STEP_AMOUNT": 100000,
    # Above this the server rejects the order outright
    "MAX_FIRM_LIMIT": 50_000_000,
    # Above this the server warns but accepts
    "LARGE_TRADE_THRESHOLD": 10_000_000,
})

VALIDATION_CONFIG = MappingProxyType({
    "DEBOUNCE_MS": 300,
    "SERVER_VALIDATION_DELAY_MS": 300,
})

NOTIONAL_LIMITS = MappingProxyType({
    "MIN": 1,
    "MAX": 100_000_000_000,
})

# Pool id that disables the price level for stop losses.
FLOAT_POOL = "FLOAT_POOL"

# Global advisory shown while the order references unavailable data.
REF_DATA_GLOBAL_ERROR = "Please contact support@example.com"
