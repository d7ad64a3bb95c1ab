"""Validation state and the engine that fills it.

Four kinds of per-field results are tracked:

- ``errors``: synchronous schema violations, block submission.
- ``server_errors``: hard failures from the server field check, block submission.
- ``warnings``: soft advisories from the server field check, never block.
- ``ref_data_errors``: values pointing at reference data that is not available.

Every field has a request counter. A validation run takes the next id
when it starts and may only write its results while that id is still the
field's latest; results of superseded runs are dropped.
"""

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic import BaseModel, Field

from fxticket.config.constants import REF_DATA_GLOBAL_ERROR
from fxticket.config.validation import ValidationResult, collect_issues, validate_order_for_submission
from fxticket.models.transport import FieldCheckRequest
from fxticket.store.refdata import ReferenceDataStore

if TYPE_CHECKING:
    from fxticket.store.layers import LayeredValueStore
    from fxticket.transports.base import OrderTransport

logger = logging.getLogger(__name__)

# Fields cross-checked with the server after passing the schema.
SERVER_CHECKED_FIELDS = frozenset({"amount", "level"})

REF_DATA_MESSAGES = {
    "account": "Account not available",
    "order_type": "Order type not supported",
    "currency_pair": "Currency pair not available for this order type",
    "liquidity_pool": "Liquidity pool not available",
}


class ValidationSnapshot(BaseModel):
    """Point-in-time copy of the validation state."""

    errors: dict[str, str] = Field(default_factory=dict)
    server_errors: dict[str, str] = Field(default_factory=dict)
    warnings: dict[str, str] = Field(default_factory=dict)
    ref_data_errors: dict[str, str] = Field(default_factory=dict)
    is_validating: dict[str, bool] = Field(default_factory=dict)
    global_error: Optional[str] = None

    model_config = {"frozen": True}


class ValidationState:
    """Per-field validation results with their request counters."""

    def __init__(self):
        self._errors: dict[str, str] = {}
        self._server_errors: dict[str, str] = {}
        self._warnings: dict[str, str] = {}
        self._ref_data_errors: dict[str, str] = {}
        self._is_validating: dict[str, bool] = {}
        self._request_ids: dict[str, int] = {}
        self._global_error: Optional[str] = None

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def server_errors(self) -> dict[str, str]:
        return dict(self._server_errors)

    @property
    def warnings(self) -> dict[str, str]:
        return dict(self._warnings)

    @property
    def ref_data_errors(self) -> dict[str, str]:
        return dict(self._ref_data_errors)

    @property
    def is_validating(self) -> dict[str, bool]:
        return {k: v for k, v in self._is_validating.items() if v}

    @property
    def global_error(self) -> Optional[str]:
        return self._global_error

    def request_id(self, key: str) -> int:
        return self._request_ids.get(key, 0)

    def snapshot(self) -> ValidationSnapshot:
        return ValidationSnapshot(
            errors=self.errors,
            server_errors=self.server_errors,
            warnings=self.warnings,
            ref_data_errors=self.ref_data_errors,
            is_validating=self.is_validating,
            global_error=self._global_error,
        )

    # -- request tracking ----------------------------------------------------

    def begin(self, key: str) -> int:
        """Start a validation run for ``key`` and return its request id."""
        request_id = self._request_ids.get(key, 0) + 1
        self._request_ids[key] = request_id
        self._is_validating[key] = True
        self._errors.pop(key, None)
        return request_id

    def is_current(self, key: str, request_id: int) -> bool:
        return self._request_ids.get(key, 0) == request_id

    def finish(self, key: str, request_id: int) -> None:
        if self.is_current(key, request_id):
            self._is_validating[key] = False

    # -- writers -------------------------------------------------------------

    def set_error(self, key: str, request_id: int, message: str) -> bool:
        """Write a schema error if the run is still current."""
        if not self.is_current(key, request_id):
            return False
        self._errors[key] = message
        return True

    def set_server_result(
        self, key: str, request_id: int, hard: Optional[str], soft: Optional[str]
    ) -> bool:
        """Write a server check outcome if the run is still current."""
        if not self.is_current(key, request_id):
            return False
        self._server_errors.pop(key, None)
        self._warnings.pop(key, None)
        if hard:
            self._server_errors[key] = hard
        elif soft:
            self._warnings[key] = soft
        return True

    def replace_errors(self, errors: Mapping[str, str]) -> None:
        """Replace the schema errors with the result of a full-order pass."""
        self._errors = dict(errors)

    def clear_field(self, key: str) -> None:
        """Drop the errors of a field that was just edited."""
        self._errors.pop(key, None)
        self._server_errors.pop(key, None)

    def clear_server_results(self) -> None:
        self._server_errors = {}
        self._warnings = {}

    def set_ref_data_errors(self, errors: Mapping[str, str]) -> None:
        self._ref_data_errors = dict(errors)
        if self._ref_data_errors:
            # A distinct global error set by the server is kept.
            if self._global_error in (None, REF_DATA_GLOBAL_ERROR):
                self._global_error = REF_DATA_GLOBAL_ERROR
        elif self._global_error == REF_DATA_GLOBAL_ERROR:
            self._global_error = None

    def set_global_error(self, message: Optional[str]) -> None:
        self._global_error = message

    def reset(self) -> None:
        """Clear every result and supersede all in-flight runs."""
        self._errors = {}
        self._server_errors = {}
        self._warnings = {}
        self._ref_data_errors = {}
        self._is_validating = {}
        self._global_error = None
        for key in self._request_ids:
            self._request_ids[key] += 1

    def has_blocking_errors(self) -> bool:
        return bool(self._errors or self._server_errors or self._ref_data_errors)


def _account_id(account: Any) -> Optional[int]:
    if account is None:
        return None
    if isinstance(account, Mapping):
        return account.get("sds_id", account.get("sdsId"))
    return getattr(account, "sds_id", None)


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


class ValidationEngine:
    """Runs schema, server and reference data checks against the store.

    None of the methods raise under normal operation: faults in the schema
    engine or the transport are logged and treated as "no result".
    """

    def __init__(
        self,
        store: "LayeredValueStore",
        state: ValidationState,
        refdata: ReferenceDataStore,
        transport: Optional["OrderTransport"] = None,
        instance_id: str = "-",
    ):
        self._store = store
        self._state = state
        self._refdata = refdata
        self._transport = transport
        self._instance_id = instance_id

    @property
    def state(self) -> ValidationState:
        return self._state

    async def validate_field(self, key: str, value: Any) -> None:
        """Validate one field in the context of the whole derived order.

        Args:
            key: Field key.
            value: Candidate value for the field.
        """
        request_id = self._state.begin(key)
        try:
            values = self._store.get_derived_values()
            values[key] = value

            try:
                issue = next((i for i in collect_issues(values) if i.field == key), None)
            except Exception:
                logger.error("[%s] Schema validation fault on %s", self._instance_id, key,
                             exc_info=True)
                issue = None

            if issue is not None:
                self._state.set_error(key, request_id, issue.message)
                return

            if key in SERVER_CHECKED_FIELDS and self._transport is not None:
                await self._check_with_server(key, value, values, request_id)
        finally:
            self._state.finish(key, request_id)

    async def _check_with_server(
        self, key: str, value: Any, values: Mapping[str, Any], request_id: int
    ) -> None:
        try:
            request = FieldCheckRequest(
                field=key,
                value=value,
                order_type=_plain(values.get("order_type")),
                currency_pair=values.get("currency_pair"),
                account=_account_id(values.get("account")),
                liquidity_pool=values.get("liquidity_pool"),
            )
            result = await self._transport.validate_field(request)
        except Exception:
            logger.error("[%s] Server validation failed for %s", self._instance_id, key,
                         exc_info=True)
            return

        if not self._state.is_current(key, request_id):
            logger.debug("[%s] Dropping stale server result for %s (request %d)",
                         self._instance_id, key, request_id)
            return

        hard = soft = None
        if not result.ok:
            if result.type == "HARD":
                hard = result.message or "Invalid"
            elif result.type == "SOFT":
                soft = result.message or "Check value"
        self._state.set_server_result(key, request_id, hard, soft)

    def validate_ref_data(self) -> dict[str, str]:
        """Check the derived order against the reference data snapshot.

        Returns:
            The reference data errors now in effect.
        """
        values = self._store.get_derived_values()
        errors: dict[str, str] = {}

        sds_id = _account_id(values.get("account"))
        if sds_id is not None and not self._refdata.has_account(sds_id):
            errors["account"] = REF_DATA_MESSAGES["account"]

        order_type = values.get("order_type")
        if order_type and not self._refdata.is_entitled(_plain(order_type)):
            errors["order_type"] = REF_DATA_MESSAGES["order_type"]

        pair = values.get("currency_pair")
        if pair and not self._refdata.has_currency_pair(pair):
            errors["currency_pair"] = REF_DATA_MESSAGES["currency_pair"]

        pool = values.get("liquidity_pool")
        if pool and not self._refdata.has_pool(pool):
            errors["liquidity_pool"] = REF_DATA_MESSAGES["liquidity_pool"]

        if errors != self._state.ref_data_errors:
            logger.info("[%s] Reference data errors: %s", self._instance_id, errors or "none")
        self._state.set_ref_data_errors(errors)
        return errors

    def validate_order(self, values: Optional[Mapping[str, Any]] = None) -> ValidationResult:
        """Schema-check every field of the order in one pass."""
        if values is None:
            values = self._store.get_derived_values()
        try:
            return validate_order_for_submission(values)
        except Exception:
            logger.error("[%s] Schema validation fault on full order", self._instance_id,
                         exc_info=True)
            return ValidationResult(valid=True)
