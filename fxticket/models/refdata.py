"""Reference data and user preference models."""

from typing import Optional

from pydantic import BaseModel, Field

from fxticket.models.order import Account


class AccountRef(BaseModel):
    """Account entry as served by the reference data fetch."""

    sds_id: int = Field(..., alias="sdsId", description="Account id")
    name: str = Field(..., min_length=1, description="Account display name")

    model_config = {"frozen": True, "populate_by_name": True}

    def to_account(self) -> Account:
        return Account(name=self.name, sds_id=self.sds_id)


class LiquidityPool(BaseModel):
    """Liquidity pool an order can be routed to."""

    name: str = Field(..., description="Pool display name")
    value: str = Field(..., min_length=1, description="Pool id")

    model_config = {"frozen": True}


class CurrencyPair(BaseModel):
    """Static descriptor of a tradable currency pair."""

    symbol: str = Field(..., min_length=6, description="Pair symbol (e.g., GBPUSD)")
    ccy1: str = Field(..., description="Base currency")
    ccy2: str = Field(..., description="Terms currency")
    spot_precision: int = Field(default=5, ge=0, description="Decimal places for prices")
    min_pip_step: float = Field(default=0.0001, gt=0, description="Smallest price step")
    default_tenor: str = Field(default="SPOT", description="Default tenor")
    stop_loss_allowed: bool = Field(default=True, description="Whether stop losses are allowed")

    model_config = {"frozen": True}


class OrderTypePools(BaseModel):
    """Entitled order type with the pools it may route to."""

    order_type: str = Field(..., description="Order type name")
    liquidity_pools: list[LiquidityPool] = Field(default_factory=list)

    model_config = {"frozen": True}


class ReferenceData(BaseModel):
    """Server-confirmed reference data snapshot.

    A snapshot is always replaced as a whole; it is never merged with the
    previous one.
    """

    accounts: tuple[AccountRef, ...] = Field(default=())
    pools: tuple[LiquidityPool, ...] = Field(default=())
    currency_pairs: tuple[CurrencyPair, ...] = Field(default=())
    entitled_order_types: tuple[str, ...] = Field(default=())

    model_config = {"frozen": True}


class UserPreferences(BaseModel):
    """User preferences pushed by the preference stream."""

    default_account: Optional[Account] = Field(default=None, description="Preferred account")
    default_liquidity_pool: Optional[str] = Field(default=None, description="Preferred pool")
    default_order_type: Optional[str] = Field(default=None, description="Preferred order type")

    model_config = {"frozen": True}
