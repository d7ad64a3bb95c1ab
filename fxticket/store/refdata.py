"""Reference data store.

Holds the server-confirmed accounts, pools, currency pairs and entitled
order types. A new snapshot always replaces the previous one.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Union

from fxticket.models.refdata import (
    AccountRef,
    CurrencyPair,
    LiquidityPool,
    OrderTypePools,
    ReferenceData,
)

logger = logging.getLogger(__name__)


def build_reference_data(
    accounts: Iterable[Union[AccountRef, Mapping[str, Any]]],
    order_types_with_pools: Iterable[Union[OrderTypePools, Mapping[str, Any]]],
    currency_pairs: Iterable[Union[CurrencyPair, Mapping[str, Any]]],
) -> ReferenceData:
    """Assemble a snapshot from the raw reference data responses.

    Pools are listed under each entitled order type by the server; they are
    flattened here and deduplicated by pool id, keeping the first seen.

    Args:
        accounts: Account entries (``{"sdsId": ..., "name": ...}``).
        order_types_with_pools: Entitled order types with their pools.
        currency_pairs: Currency pair descriptors.

    Returns:
        A complete reference data snapshot.
    """
    entries = [
        e if isinstance(e, OrderTypePools) else OrderTypePools.model_validate(e)
        for e in order_types_with_pools
    ]
    pools: dict[str, LiquidityPool] = {}
    for entry in entries:
        for pool in entry.liquidity_pools:
            pools.setdefault(pool.value, pool)

    return ReferenceData(
        accounts=tuple(
            a if isinstance(a, AccountRef) else AccountRef.model_validate(a) for a in accounts
        ),
        pools=tuple(pools.values()),
        currency_pairs=tuple(
            p if isinstance(p, CurrencyPair) else CurrencyPair.model_validate(p)
            for p in currency_pairs
        ),
        entitled_order_types=tuple(entry.order_type for entry in entries),
    )


class ReferenceDataStore:
    """Single-owner holder of the current reference data snapshot."""

    def __init__(self, data: Optional[ReferenceData] = None):
        self._data = data or ReferenceData()
        self._loaded = data is not None

    @property
    def data(self) -> ReferenceData:
        return self._data

    @property
    def is_loaded(self) -> bool:
        """Whether a snapshot has been received from the server."""
        return self._loaded

    def set_reference_data(self, data: ReferenceData) -> None:
        """Replace the snapshot as a whole."""
        self._data = data
        self._loaded = True
        logger.info(
            "Reference data loaded: %d accounts, %d pools, %d pairs, %d order types",
            len(data.accounts), len(data.pools), len(data.currency_pairs),
            len(data.entitled_order_types),
        )

    def has_account(self, sds_id: int) -> bool:
        return any(a.sds_id == sds_id for a in self._data.accounts)

    def has_pool(self, value: str) -> bool:
        return any(p.value == value for p in self._data.pools)

    def has_currency_pair(self, symbol: str) -> bool:
        return any(p.symbol == symbol for p in self._data.currency_pairs)

    def is_entitled(self, order_type: str) -> bool:
        return order_type in self._data.entitled_order_types

    def find_account(self, name: str) -> Optional[AccountRef]:
        """Look up an account by display name."""
        return next((a for a in self._data.accounts if a.name == name), None)
