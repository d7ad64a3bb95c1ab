"""Order ticket: the state container behind one order entry form.

``OrderTicket`` owns every piece of ticket state (layers, validation,
reference data, submission) and exposes read properties plus a small set
of mutation entry points. Each entry point applies all of its changes
before returning, so a reader never sees a half-applied update.
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any, Mapping, Optional

from fxticket.config.order_config import get_order_config, get_view_fields
from fxticket.config.visibility import filter_visible_fields
from fxticket.interop.bridge import IntentBridge, InteropChannel
from fxticket.interop.intent_mapper import map_context_to_order
from fxticket.models.enums import TERMINAL_STATUSES, EditMode, OrderStatus, TicketStatus
from fxticket.models.order import ExecutionInfo, Order
from fxticket.models.refdata import UserPreferences
from fxticket.models.transport import Toast
from fxticket.store.layers import HARDCODED_DEFAULTS, OVERLAY_FIELDS, LayeredValueStore
from fxticket.store.refdata import ReferenceDataStore
from fxticket.store.scheduler import FieldDebouncer
from fxticket.store.submission import SubmissionStateMachine
from fxticket.store.validation import ValidationEngine, ValidationSnapshot, ValidationState

if TYPE_CHECKING:
    from fxticket.transports.base import OrderTransport

logger = logging.getLogger(__name__)

# Never writable from the form body.
ALWAYS_READ_ONLY = frozenset({"currency_pair", "execution", "status"})

# The header owns the pair selector while creating.
HEADER_FIELDS = frozenset({"currency_pair"})

REF_DATA_LOAD_ERROR = "Failed to load reference data"


class OrderTicket:
    """One order entry form bound to an order server.

    Example:
        ticket = OrderTicket(PaperTransport(OrderStore(db_path)))
        await ticket.initialize()
        ticket.edit_field("amount", Amount(amount=2_500_000, ccy="GBP"))
        await ticket.settle()
        await ticket.submit_order()
    """

    def __init__(
        self,
        transport: "OrderTransport",
        debounce_ms: int = 300,
        defaults: Mapping[str, Any] = HARDCODED_DEFAULTS,
        instance_id: Optional[str] = None,
    ):
        """Initialize the ticket.

        Args:
            transport: Order server connection.
            debounce_ms: Quiet period before an edited field is validated.
            defaults: Lowest-precedence order values.
            instance_id: Log prefix; a random short id when omitted.
        """
        self.instance_id = instance_id or uuid.uuid4().hex[:8]
        self._transport = transport
        self._state = ValidationState()
        self._store = LayeredValueStore(self._state, defaults)
        self._refdata = ReferenceDataStore()
        self._engine = ValidationEngine(
            self._store, self._state, self._refdata, transport, self.instance_id
        )
        self._debouncer = FieldDebouncer(self._engine.validate_field, debounce_ms)
        self._machine = SubmissionStateMachine(
            self._store, self._engine, transport, self.instance_id
        )
        self._intent_queue: list[dict[str, Any]] = []
        self._interop_connected = False

    # -- reads ---------------------------------------------------------------

    @property
    def store(self) -> LayeredValueStore:
        return self._store

    @property
    def refdata(self) -> ReferenceDataStore:
        return self._refdata

    @property
    def validation(self) -> ValidationSnapshot:
        return self._state.snapshot()

    @property
    def values(self) -> dict[str, Any]:
        """The derived order values."""
        return self._store.get_derived_values()

    @property
    def status(self) -> TicketStatus:
        return self._machine.status

    @property
    def edit_mode(self) -> EditMode:
        return self._machine.edit_mode

    @property
    def current_order_id(self) -> Optional[str]:
        return self._machine.current_order_id

    @property
    def toast(self) -> Optional[Toast]:
        return self._machine.toast

    @property
    def placed_order(self) -> Optional[Order]:
        """The order as last placed, amended or opened."""
        if self._machine.placed_values is None:
            return None
        return Order.model_validate(self._machine.placed_values)

    @property
    def has_pending_intent(self) -> bool:
        return self._store.has_pending_intent

    def visible_fields(self) -> list[str]:
        """Fields of the current order type that are shown for the current values."""
        values = self.values
        order_type = values.get("order_type")
        try:
            if self.edit_mode == EditMode.CREATING:
                fields = get_order_config(order_type).fields
            else:
                fields = get_view_fields(order_type)
        except ValueError:
            return []
        return filter_visible_fields(fields, values)

    def _editable_fields(self) -> tuple[str, ...]:
        try:
            return get_order_config(self.values.get("order_type")).editable_fields
        except ValueError:
            return ()

    def is_field_read_only(self, key: str) -> bool:
        if key in ALWAYS_READ_ONLY:
            return True
        if self.edit_mode == EditMode.VIEWING:
            return True
        if self.edit_mode == EditMode.AMENDING:
            return key not in self._editable_fields() or key in self._state.ref_data_errors
        return False

    def is_field_amendable(self, key: str) -> bool:
        """Whether a viewed field offers to switch the ticket into amend mode."""
        return self.edit_mode == EditMode.VIEWING and key in self._editable_fields()

    def is_form_valid(self) -> bool:
        return not self._state.has_blocking_errors()

    # -- lifecycle -----------------------------------------------------------

    async def initialize(self) -> bool:
        """Load reference data and apply the latest intent received meanwhile.

        Returns:
            False if reference data could not be loaded.
        """
        try:
            data = await self._transport.fetch_reference_data()
        except Exception:
            logger.error("[%s] Reference data fetch failed", self.instance_id, exc_info=True)
            self._machine.set_status(TicketStatus.ERROR)
            self._state.set_global_error(REF_DATA_LOAD_ERROR)
            return False

        self._refdata.set_reference_data(data)
        if self._state.global_error == REF_DATA_LOAD_ERROR:
            self._state.set_global_error(None)
        self._machine.set_status(TicketStatus.IDLE)

        if self._intent_queue:
            latest = self._intent_queue[-1]
            dropped = len(self._intent_queue) - 1
            self._intent_queue = []
            self._store.replace_intent(latest)
            logger.info("[%s] Applied queued intent (%d older dropped)", self.instance_id,
                        dropped)

        self._engine.validate_ref_data()
        return True

    def apply_user_preferences(self, prefs: UserPreferences) -> None:
        self._store.apply_user_preferences(prefs)
        logger.info("[%s] User preferences applied", self.instance_id)
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()

    # -- editing -------------------------------------------------------------

    def edit_field(self, key: str, value: Any) -> bool:
        """Write a user edit and schedule its validation.

        Returns:
            False if the field is read-only in the current mode.

        Raises:
            KeyError: If ``key`` is not an order field.
        """
        header_edit = key in HEADER_FIELDS and self.edit_mode == EditMode.CREATING
        if self.is_field_read_only(key) and not header_edit:
            logger.warning("[%s] Refusing edit of read-only field %s in %s mode",
                           self.instance_id, key, self.edit_mode.value)
            return False

        self._store.set_field_value(key, value)
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[%s] No event loop, validation of %s not scheduled",
                         self.instance_id, key)
        else:
            self._debouncer.schedule(key, value)
        return True

    async def validate_field(self, key: str, value: Any) -> None:
        """Validate a field now, skipping the debounce window."""
        await self._engine.validate_field(key, value)

    async def settle(self) -> None:
        """Wait for every scheduled field validation to complete."""
        await self._debouncer.drain()

    # -- external intents ----------------------------------------------------

    def receive_context(self, context: Any) -> None:
        """Entry point for the intent bridge: map a raw context and apply it."""
        patch = map_context_to_order(context)
        if not patch:
            logger.debug("[%s] Context carried no order values", self.instance_id)
            return
        self.receive_intent(patch)

    def connect_interop(self, channel: Optional[InteropChannel]) -> bool:
        """Route order intents raised on ``channel`` into this ticket.

        The bridge is process-wide: only one ticket can hold it at a time.

        Returns:
            True if this ticket is now listening on ``channel``.
        """
        bridge = IntentBridge.get_instance()
        if bridge.is_initialized:
            logger.warning("[%s] Interop bridge already in use", self.instance_id)
            return False
        self._interop_connected = bridge.initialize(channel, self.receive_context)
        if not self._interop_connected:
            bridge.shutdown()
        return self._interop_connected

    def disconnect_interop(self) -> None:
        """Stop listening for intents, if this ticket holds the bridge."""
        if self._interop_connected:
            IntentBridge.get_instance().shutdown()
            self._interop_connected = False

    def receive_intent(self, patch: Mapping[str, Any]) -> None:
        """Apply an order patch from another application.

        Patches received before reference data is loaded are queued; a
        patch received while the form has unsaved edits is staged until
        confirmed or discarded.
        """
        if self.status == TicketStatus.INITIALIZING:
            self._intent_queue.append(dict(patch))
            logger.info("[%s] Queued intent until initialized", self.instance_id)
            return

        if self._store.apply_external_intent(patch):
            logger.info("[%s] Applied intent: %s", self.instance_id, sorted(patch))
        else:
            logger.info("[%s] Form has unsaved edits, intent staged", self.instance_id)
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()

    def confirm_pending_intent(self) -> bool:
        if not self._store.confirm_pending_intent():
            return False
        self._debouncer.cancel_all()
        logger.info("[%s] Staged intent confirmed", self.instance_id)
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()
        return True

    def discard_pending_intent(self) -> bool:
        if not self._store.discard_pending_intent():
            return False
        logger.info("[%s] Staged intent discarded", self.instance_id)
        return True

    # -- orders --------------------------------------------------------------

    async def submit_order(self) -> None:
        await self._machine.submit_order()

    def amend_order(self) -> bool:
        return self._machine.amend_order()

    def new_order(self) -> None:
        """Start a fresh order, keeping defaults, preferences and intent."""
        self._debouncer.cancel_all()
        self._store.reset()
        self._store.clear_overlays()
        intent = self._store.intent
        if "order_id" in intent:
            del intent["order_id"]
            self._store.replace_intent(intent)
        self._machine.reset()
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()

    def open_order(self, order: Order) -> None:
        """Show a stored order read-only so it can be amended."""
        self._debouncer.cancel_all()
        values = order.to_values()
        for key in OVERLAY_FIELDS:
            values.pop(key, None)

        self._store.reset()
        self._store.replace_intent(values)
        self._store.clear_overlays()
        self._store.set_overlay("order_id", order.order_id)
        self._store.set_overlay("status", order.status)
        self._store.set_overlay("execution", order.execution)
        self._machine.view_order(order.order_id)
        logger.info("[%s] Opened order %s", self.instance_id, order.order_id)
        if self._refdata.is_loaded:
            self._engine.validate_ref_data()

    def apply_order_update(
        self, status: OrderStatus, execution: Optional[ExecutionInfo] = None
    ) -> None:
        """Overlay the latest server status of the current order."""
        self._store.set_overlay("status", status)
        if execution is not None:
            self._store.set_overlay("execution", execution)
        logger.info("[%s] Order %s is %s", self.instance_id, self.current_order_id,
                    status.value)

        if status not in TERMINAL_STATUSES:
            return
        if status == OrderStatus.FILLED:
            self._machine.toast = Toast(type="success", text="Order Filled Successfully!")
        elif status == OrderStatus.CANCELLED:
            self._machine.toast = Toast(type="info", text="Order Cancelled")
        elif status == OrderStatus.EXPIRED:
            self._machine.toast = Toast(type="info", text="Order Expired")
        else:
            reason = (execution.reject_reason if execution else None) or "Unknown reason"
            self._machine.toast = Toast(type="error", text=f"Order Rejected: {reason}")

    async def refresh_order_status(self) -> Optional[OrderStatus]:
        """Ask the server for the current order's status and overlay it."""
        order_id = self.current_order_id
        if order_id is None:
            return None
        try:
            status = await self._transport.get_order_status(order_id)
        except Exception:
            logger.error("[%s] Status query failed for %s", self.instance_id, order_id,
                         exc_info=True)
            self._machine.toast = Toast(type="error", text="Failed to track order status")
            return None
        if status is not None:
            self.apply_order_update(status)
        return status
