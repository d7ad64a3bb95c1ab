"""Layered value store.

The order being edited is never stored as one object. It is derived on
demand by merging four layers, lowest precedence first::

    defaults < preferences < intent < edits

Later layers overwrite earlier ones key by key. Nested values (amount,
account, expiry) are replaced whole, never deep-merged. A key present in a
layer wins even when its value is ``None``, which is how a user clears a
field. Server-owned values (order id, status) are overlaid last.
"""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

from fxticket.models.enums import ExpiryStrategy, OrderType, Side, StartMode
from fxticket.models.order import ORDER_FIELDS, Amount, Expiry
from fxticket.models.refdata import UserPreferences
from fxticket.store.validation import ValidationState

logger = logging.getLogger(__name__)

HARDCODED_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "currency_pair": "GBPUSD",
    "side": Side.BUY,
    "order_type": OrderType.FLOAT,
    "amount": Amount(amount=1_000_000, ccy="GBP"),
    "liquidity_pool": "Hybrid",
    "start_mode": StartMode.START_NOW,
    "expiry": Expiry(strategy=ExpiryStrategy.GTC),
})

# Values owned by the server, overlaid on top of every layer.
OVERLAY_FIELDS = ("order_id", "status", "execution")


def _check_keys(values: Mapping[str, Any]) -> None:
    unknown = [key for key in values if key not in ORDER_FIELDS]
    if unknown:
        raise KeyError(f"Unknown order fields: {unknown}")


class LayeredValueStore:
    """Four ordered layers plus the merge that derives the effective order.

    The edit layer is written only through ``set_field_value``. Clearing it
    also clears the validation state it shares with the validation engine,
    in the same step.
    """

    def __init__(
        self,
        validation: ValidationState,
        defaults: Mapping[str, Any] = HARDCODED_DEFAULTS,
    ):
        _check_keys(defaults)
        self._validation = validation
        self._defaults = dict(defaults)
        self._preferences: dict[str, Any] = {}
        self._intent: dict[str, Any] = {}
        self._edits: dict[str, Any] = {}
        self._pending_intent: Optional[dict[str, Any]] = None
        self._overlays: dict[str, Any] = {}

    # -- reads ---------------------------------------------------------------

    @property
    def defaults(self) -> dict[str, Any]:
        return dict(self._defaults)

    @property
    def preferences(self) -> dict[str, Any]:
        return dict(self._preferences)

    @property
    def intent(self) -> dict[str, Any]:
        return dict(self._intent)

    @property
    def edits(self) -> dict[str, Any]:
        return dict(self._edits)

    @property
    def pending_intent(self) -> Optional[dict[str, Any]]:
        return None if self._pending_intent is None else dict(self._pending_intent)

    @property
    def has_pending_intent(self) -> bool:
        return self._pending_intent is not None

    def get_derived_values(self) -> dict[str, Any]:
        """Merge the layers into the effective order values."""
        merged: dict[str, Any] = {}
        for layer in (self._defaults, self._preferences, self._intent, self._edits):
            merged.update(layer)
        merged.update(self._overlays)
        return merged

    def get_base_values(self) -> dict[str, Any]:
        """Effective values without the user's edits."""
        merged: dict[str, Any] = {}
        for layer in (self._defaults, self._preferences, self._intent):
            merged.update(layer)
        merged.update(self._overlays)
        return merged

    def is_dirty(self) -> bool:
        """Whether the user has edited any field since the last reset."""
        return bool(self._edits)

    # -- writes --------------------------------------------------------------

    def set_field_value(self, key: str, value: Any) -> None:
        """Record a user edit and drop the stale errors of that field.

        Raises:
            KeyError: If ``key`` is not an order field.
        """
        if key not in ORDER_FIELDS:
            raise KeyError(f"Unknown order field: {key}")
        self._edits[key] = value
        self._validation.clear_field(key)

    def reset(self) -> None:
        """Drop every user edit and all validation state."""
        self._edits = {}
        self._validation.reset()

    def apply_user_preferences(self, prefs: UserPreferences) -> None:
        """Write the preferences a user has set into the preference layer."""
        if prefs.default_account is not None:
            self._preferences["account"] = prefs.default_account
        if prefs.default_liquidity_pool:
            self._preferences["liquidity_pool"] = prefs.default_liquidity_pool
        if prefs.default_order_type:
            self._preferences["order_type"] = OrderType(prefs.default_order_type)

    def apply_external_intent(self, patch: Mapping[str, Any]) -> bool:
        """Apply an external order patch, or stage it if the form is dirty.

        Returns:
            True if applied, False if staged for confirmation.
        """
        _check_keys(patch)
        if self.is_dirty():
            self._pending_intent = dict(patch)
            return False
        self.replace_intent(patch)
        return True

    def replace_intent(self, patch: Mapping[str, Any]) -> None:
        """Make ``patch`` the whole intent layer, dropping any user edits."""
        _check_keys(patch)
        self._intent = dict(patch)
        self._pending_intent = None
        if self._edits:
            self.reset()

    def confirm_pending_intent(self) -> bool:
        """Apply the staged intent in place of the user's edits."""
        if self._pending_intent is None:
            return False
        self.replace_intent(self._pending_intent)
        return True

    def discard_pending_intent(self) -> bool:
        """Drop the staged intent and keep the user's edits."""
        if self._pending_intent is None:
            return False
        self._pending_intent = None
        return True

    def set_overlay(self, key: str, value: Any) -> None:
        """Set a server-owned value such as the order id or status."""
        if key not in OVERLAY_FIELDS:
            raise KeyError(f"Not a server-owned field: {key}")
        if value is None:
            self._overlays.pop(key, None)
        else:
            self._overlays[key] = value

    def clear_overlays(self) -> None:
        self._overlays = {}
