"""Order submission and amendment.

Submitting runs the full schema pass over the derived order, then sends a
create or an amend to the transport. The outcome is reported as a toast;
nothing raised by the transport escapes ``submit_order``.

Wire payloads are flat, with the server's camelCase names: nested values
are spread over several keys (``amount`` + ``ccy``, ``account`` +
``accountName``, ``expiryStrategy`` + ``expiryEndTime`` + ``expiryEndTimeZone``).
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional

from pydantic.alias_generators import to_camel, to_snake

from fxticket.models.enums import EditMode, TicketStatus
from fxticket.models.order import Account, Amount, Expiry, Order
from fxticket.models.transport import MutationResponse, Toast
from fxticket.store.layers import LayeredValueStore
from fxticket.store.validation import ValidationEngine, ValidationState

if TYPE_CHECKING:
    from fxticket.transports.base import OrderTransport

logger = logging.getLogger(__name__)

# Fields sent when creating an order.
CREATE_FIELDS = (
    "currency_pair", "side", "order_type", "amount", "level", "liquidity_pool", "account",
    "start_mode", "start_time", "start_date", "time_zone",
    "expiry", "expiry_time", "expiry_date", "expiry_time_zone",
    "iceberg", "trigger_side", "target_execution_rate", "participation_rate",
    "execution_style", "discretion_factor", "delay_behaviour", "skew", "franchise_exposure",
    "twap_target_end_time", "twap_time_zone", "fixing_id", "fixing_date",
)

# Fields sent when amending; the server keeps everything else.
AMEND_FIELDS = (
    "order_id", "order_type", "amount", "level", "liquidity_pool",
    "start_time", "start_date", "time_zone",
    "expiry", "expiry_time", "expiry_date", "expiry_time_zone",
    "iceberg", "trigger_side", "target_execution_rate", "participation_rate",
    "skew", "franchise_exposure", "discretion_factor", "delay_behaviour",
    "twap_target_end_time", "fixing_id", "fixing_date",
)


def _coerce(model: type, value: Any) -> Any:
    return model.model_validate(value) if isinstance(value, Mapping) else value


def _wire_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _build_payload(values: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key in fields:
        value = values.get(key)
        if value is None:
            continue
        if key == "amount":
            amount = _coerce(Amount, value)
            payload["amount"] = amount.amount
            payload["ccy"] = amount.ccy
        elif key == "account":
            account = _coerce(Account, value)
            payload["account"] = account.sds_id
            payload["accountName"] = account.name
        elif key == "expiry":
            expiry = _coerce(Expiry, value)
            payload["expiryStrategy"] = expiry.strategy.value
            if expiry.end_time is not None:
                payload["expiryEndTime"] = expiry.end_time
            if expiry.end_time_zone is not None:
                payload["expiryEndTimeZone"] = expiry.end_time_zone
        else:
            payload[to_camel(key)] = _wire_value(value)
    return payload


def build_create_payload(values: Mapping[str, Any]) -> dict[str, Any]:
    """Map derived order values onto the create-order wire shape."""
    return _build_payload(values, CREATE_FIELDS)


def build_amend_payload(values: Mapping[str, Any]) -> dict[str, Any]:
    """Map derived order values onto the amend-order wire shape."""
    return _build_payload(values, AMEND_FIELDS)


def order_values_from_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Turn a flat wire payload back into order field values."""
    data = {to_snake(key): value for key, value in payload.items()}
    values: dict[str, Any] = {}
    if "amount" in data:
        values["amount"] = Amount(amount=data.pop("amount"), ccy=data.pop("ccy", "USD"))
    if "account" in data:
        values["account"] = Account(name=data.pop("account_name", ""), sds_id=data.pop("account"))
    if "expiry_strategy" in data:
        values["expiry"] = Expiry(
            strategy=data.pop("expiry_strategy"),
            end_time=data.pop("expiry_end_time", None),
            end_time_zone=data.pop("expiry_end_time_zone", None),
        )
    values.update(data)
    return values


def order_from_payload(payload: Mapping[str, Any]) -> Order:
    """Build an ``Order`` from a flat wire payload."""
    return Order.model_validate(order_values_from_payload(payload))


def summarize_errors(errors: Mapping[str, str]) -> str:
    """One-line summary of field errors for a toast."""
    if len(errors) == 1:
        key, message = next(iter(errors.items()))
        return f"{key}: {message}"
    return f"{len(errors)} validation errors found"


class SubmissionStateMachine:
    """Drives the ticket through create, view and amend.

    ``status`` tracks the submission in flight; ``edit_mode`` tracks the
    form lifecycle (creating, viewing, amending).
    """

    def __init__(
        self,
        store: LayeredValueStore,
        engine: ValidationEngine,
        transport: "OrderTransport",
        instance_id: str = "-",
    ):
        self._store = store
        self._engine = engine
        self._transport = transport
        self._instance_id = instance_id
        self.status = TicketStatus.INITIALIZING
        self.edit_mode = EditMode.CREATING
        self.current_order_id: Optional[str] = None
        self.toast: Optional[Toast] = None
        self.placed_values: Optional[dict[str, Any]] = None

    @property
    def _state(self) -> ValidationState:
        return self._engine.state

    def set_status(self, status: TicketStatus) -> None:
        if status != self.status:
            logger.debug("[%s] Status %s -> %s", self._instance_id, self.status.value,
                         status.value)
        self.status = status

    def _set_edit_mode(self, mode: EditMode) -> None:
        if mode != self.edit_mode:
            logger.info("[%s] Edit mode %s -> %s", self._instance_id, self.edit_mode.value,
                        mode.value)
        self.edit_mode = mode

    def _notify(self, kind: str, text: str) -> None:
        self.toast = Toast(type=kind, text=text)

    async def submit_order(self) -> None:
        """Validate the derived order and send it as a create or an amend."""
        if self.status == TicketStatus.SUBMITTING:
            logger.warning("[%s] Already submitting, ignoring duplicate request",
                           self._instance_id)
            return

        values = self._store.get_derived_values()
        is_amending = self.edit_mode == EditMode.AMENDING and bool(values.get("order_id"))
        self.set_status(TicketStatus.SUBMITTING)

        result = self._engine.validate_order(values)
        blocking = result.errors or self._state.server_errors
        if blocking:
            if result.errors:
                self._state.replace_errors(result.errors)
            self.set_status(TicketStatus.IDLE)
            self._notify("error", summarize_errors(blocking))
            logger.error("[%s] Order validation failed: %s", self._instance_id, blocking)
            return

        try:
            if is_amending:
                response = await self._transport.amend_order(build_amend_payload(values))
            else:
                response = await self._transport.create_order(build_create_payload(values))
        except Exception:
            logger.error("[%s] Submission error", self._instance_id, exc_info=True)
            self._on_transport_error()
            return

        self._on_response(values, is_amending, response)

    def _on_response(
        self, values: Mapping[str, Any], is_amending: bool, response: MutationResponse
    ) -> None:
        pair = values.get("currency_pair")
        succeeded = response.succeeded and (is_amending or bool(response.order_id))

        if not succeeded:
            reason = response.failure_reason or (
                "Amendment failed" if is_amending else "Order submission failed"
            )
            logger.error("[%s] %s rejected: %s", self._instance_id,
                         "Amendment" if is_amending else "Order creation", reason)
            self.set_status(TicketStatus.IDLE)
            if is_amending:
                self._set_edit_mode(EditMode.VIEWING)
            self._notify("error", reason)
            return

        if not is_amending:
            self.current_order_id = response.order_id
            self._store.set_overlay("order_id", response.order_id)
        logger.info("[%s] Order %s %s", self._instance_id, self.current_order_id,
                    "amended" if is_amending else "created")

        self.set_status(TicketStatus.IDLE)
        self._set_edit_mode(EditMode.VIEWING)
        self._state.clear_server_results()
        self.placed_values = self._store.get_derived_values()
        side = values.get("side")
        side = getattr(side, "value", side)
        self._notify(
            "success",
            f"Order {pair} Amended!" if is_amending else f"Order {side} {pair} Placed!",
        )

    def _on_transport_error(self) -> None:
        self.set_status(TicketStatus.IDLE)
        if self.current_order_id is not None:
            # The order may exist even though the call failed.
            self._set_edit_mode(EditMode.VIEWING)
            self._notify("error", "Error tracking order status")
        else:
            self._notify("error", "Submission Failed")

    def amend_order(self) -> bool:
        """Enter amend mode, keeping the user's edits.

        Only a placed or opened order being viewed can be amended.

        Returns:
            False if refused because there is no order on view or reference
            data is unavailable.
        """
        if self.edit_mode != EditMode.VIEWING or self.current_order_id is None:
            logger.warning("[%s] Amend refused: no order on view (mode %s)",
                           self._instance_id, self.edit_mode.value)
            self._notify("error", "No placed order to amend")
            return False
        if self._state.ref_data_errors:
            logger.warning("[%s] Amend refused: reference data errors %s",
                           self._instance_id, self._state.ref_data_errors)
            self._notify("error", "Cannot amend order with unavailable data")
            return False
        self._set_edit_mode(EditMode.AMENDING)
        return True

    def view_order(self, order_id: str) -> None:
        """Show an existing order read-only."""
        self.current_order_id = order_id
        self.placed_values = self._store.get_derived_values()
        self._set_edit_mode(EditMode.VIEWING)

    def reset(self) -> None:
        """Forget the placed order and go back to creating."""
        self.current_order_id = None
        self.placed_values = None
        self.toast = None
        self._set_edit_mode(EditMode.CREATING)
