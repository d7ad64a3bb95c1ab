"""Tests for the order ticket state container."""

import pytest

from conftest import FakeTransport
from fxticket.models import (
    Account,
    Amount,
    EditMode,
    ExecutionInfo,
    Order,
    OrderStatus,
    OrderType,
    Side,
    TicketStatus,
    UserPreferences,
)
from fxticket.interop import ORDER_ENTRY_INTENT, IntentBridge, LocalInteropChannel
from fxticket.store.ticket import OrderTicket
from fxticket.transports.base import TransportError

pytestmark = pytest.mark.anyio

ACCT = Account(name="Acct", sds_id=1)


def make_ticket(transport: FakeTransport) -> OrderTicket:
    return OrderTicket(transport, debounce_ms=0, instance_id="test")


async def ready_ticket(transport: FakeTransport) -> OrderTicket:
    ticket = make_ticket(transport)
    assert await ticket.initialize()
    return ticket


def placed_order(**overrides) -> Order:
    data = dict(
        order_id="ORD-7",
        currency_pair="GBPUSD",
        side=Side.BUY,
        order_type=OrderType.TAKE_PROFIT,
        amount=Amount(amount=1_000_000, ccy="GBP"),
        level=1.2650,
        liquidity_pool="POOL1",
        account=ACCT,
        status=OrderStatus.LIVE,
        execution=ExecutionInfo(status=OrderStatus.LIVE),
    )
    data.update(overrides)
    return Order(**data)


class TestInitialization:
    async def test_loads_reference_data(self, fake_transport: FakeTransport):
        ticket = make_ticket(fake_transport)
        assert ticket.status == TicketStatus.INITIALIZING
        assert await ticket.initialize()
        assert ticket.status == TicketStatus.IDLE
        assert ticket.refdata.is_loaded
        assert ticket.edit_mode == EditMode.CREATING

    async def test_fetch_failure(self, fake_transport: FakeTransport):
        fake_transport.raise_on_fetch = TransportError("down")
        ticket = make_ticket(fake_transport)
        assert not await ticket.initialize()
        assert ticket.status == TicketStatus.ERROR
        assert ticket.validation.global_error == "Failed to load reference data"

    async def test_only_latest_queued_intent_applied(self, fake_transport: FakeTransport):
        ticket = make_ticket(fake_transport)
        ticket.receive_intent({"currency_pair": "EURUSD", "level": 1.1})
        ticket.receive_intent({"side": Side.SELL})
        assert ticket.values["currency_pair"] == "GBPUSD"

        await ticket.initialize()
        assert ticket.values["side"] is Side.SELL
        assert ticket.values["currency_pair"] == "GBPUSD"
        assert "level" not in ticket.values

    async def test_queued_intent_checked_against_ref_data(self, fake_transport: FakeTransport):
        ticket = make_ticket(fake_transport)
        ticket.receive_intent({"liquidity_pool": "DARK"})
        await ticket.initialize()
        assert ticket.validation.ref_data_errors == {
            "liquidity_pool": "Liquidity pool not available"
        }

    async def test_preferences(self, fake_transport: FakeTransport):
        ticket = make_ticket(fake_transport)
        ticket.apply_user_preferences(UserPreferences(default_account=ACCT))
        await ticket.initialize()
        assert ticket.values["account"] == ACCT


class TestEditing:
    async def test_edit_validates_after_debounce(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        assert ticket.edit_field("amount", Amount(amount=0, ccy="GBP"))
        await ticket.settle()
        assert ticket.validation.errors == {"amount": "Minimum amount is 1"}
        assert not ticket.is_form_valid()

    async def test_edit_runs_server_check(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        fake_transport.respond("amount", 20_000_000, ok=False, kind="SOFT",
                               message="Large trade")
        ticket.edit_field("amount", Amount(amount=20_000_000, ccy="GBP"))
        await ticket.settle()
        assert ticket.validation.warnings == {"amount": "Large trade"}
        assert ticket.is_form_valid()

    async def test_edit_rechecks_ref_data(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.edit_field("account", Account(name="Gone", sds_id=99))
        assert ticket.validation.ref_data_errors == {"account": "Account not available"}
        ticket.edit_field("account", ACCT)
        assert ticket.validation.ref_data_errors == {}

    async def test_pair_editable_from_header_while_creating(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        assert ticket.is_field_read_only("currency_pair")
        assert ticket.edit_field("currency_pair", "EURUSD")
        assert ticket.values["currency_pair"] == "EURUSD"

    async def test_server_fields_refused(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        assert not ticket.edit_field("status", OrderStatus.FILLED)
        assert "status" not in ticket.values

    def test_edit_without_event_loop(self, fake_transport: FakeTransport):
        ticket = make_ticket(fake_transport)
        assert ticket.edit_field("level", 1.25)
        assert ticket.values["level"] == 1.25

    async def test_visible_fields(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.edit_field("order_type", OrderType.STOP_LOSS)
        ticket.edit_field("liquidity_pool", "FLOAT_POOL")
        assert "level" not in ticket.visible_fields()
        ticket.edit_field("liquidity_pool", "POOL1")
        assert "level" in ticket.visible_fields()
        assert "execution" not in ticket.visible_fields()


class TestIntents:
    async def test_clean_form_applies_context(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.receive_context({
            "type": "fdc3.instrument",
            "id": {"ticker": "EUR/USD"},
            "customData": {"amount": 5_000_000, "ccy": "EUR", "side": "SELL"},
        })
        assert ticket.values["currency_pair"] == "EURUSD"
        assert ticket.values["amount"] == Amount(amount=5_000_000, ccy="EUR")
        assert ticket.values["side"] is Side.SELL

    async def test_dirty_form_stages_until_confirmed(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.edit_field("level", 1.3)
        ticket.receive_intent({"currency_pair": "EURUSD"})
        assert ticket.has_pending_intent
        assert ticket.values["level"] == 1.3

        assert ticket.confirm_pending_intent()
        assert ticket.values["currency_pair"] == "EURUSD"
        assert "level" not in ticket.values
        assert not ticket.has_pending_intent

    async def test_discard(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.edit_field("level", 1.3)
        ticket.receive_intent({"currency_pair": "EURUSD"})
        assert ticket.discard_pending_intent()
        assert ticket.values["currency_pair"] == "GBPUSD"
        assert not ticket.discard_pending_intent()

    async def test_empty_context_ignored(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.receive_context({"type": "fdc3.nothing"})
        assert ticket.store.intent == {}



class TestInteropConnection:
    @pytest.fixture(autouse=True)
    def release_bridge(self):
        yield
        IntentBridge.get_instance().shutdown()

    async def test_raised_intent_reaches_ticket(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        channel = LocalInteropChannel()
        assert ticket.connect_interop(channel)

        assert channel.raise_intent(ORDER_ENTRY_INTENT, {"id": {"ticker": "EUR/USD"}}) == 1
        assert ticket.values["currency_pair"] == "EURUSD"

    async def test_bridge_held_by_one_ticket(self, fake_transport: FakeTransport):
        first = await ready_ticket(fake_transport)
        second = await ready_ticket(fake_transport)
        assert first.connect_interop(LocalInteropChannel())
        assert not second.connect_interop(LocalInteropChannel())

        second.disconnect_interop()
        assert IntentBridge.get_instance().is_initialized

        first.disconnect_interop()
        assert second.connect_interop(LocalInteropChannel())

    async def test_no_channel(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        assert not ticket.connect_interop(None)
        assert not IntentBridge.get_instance().is_initialized

    async def test_disconnected_ticket_stops_listening(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        channel = LocalInteropChannel()
        ticket.connect_interop(channel)
        ticket.disconnect_interop()

        assert channel.raise_intent(ORDER_ENTRY_INTENT, {"id": {"ticker": "EUR/USD"}}) == 0
        assert ticket.values["currency_pair"] == "GBPUSD"

class TestOrderLifecycle:
    async def test_place_then_amend(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.edit_field("account", ACCT)
        ticket.edit_field("side", Side.SELL)
        await ticket.settle()
        await ticket.submit_order()

        assert ticket.edit_mode == EditMode.VIEWING
        assert ticket.current_order_id == "ORD-1"
        assert ticket.placed_order.side is Side.SELL
        assert ticket.is_field_read_only("amount")
        assert ticket.is_field_amendable("amount")
        assert not ticket.edit_field("amount", Amount(amount=2_000_000, ccy="GBP"))

        assert ticket.amend_order()
        assert ticket.edit_field("amount", Amount(amount=2_000_000, ccy="GBP"))
        assert not ticket.edit_field("side", Side.BUY)
        await ticket.settle()
        await ticket.submit_order()
        assert fake_transport.amend_calls[0]["amount"] == 2_000_000
        assert ticket.toast.type == "success"

    async def test_open_order(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())

        assert ticket.edit_mode == EditMode.VIEWING
        assert ticket.current_order_id == "ORD-7"
        assert ticket.values["order_id"] == "ORD-7"
        assert ticket.values["status"] is OrderStatus.LIVE
        assert ticket.values["level"] == 1.2650
        assert ticket.visible_fields()[0] == "execution"
        assert ticket.placed_order.order_id == "ORD-7"

    async def test_amend_fields_follow_order_type(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        assert ticket.amend_order()
        assert not ticket.is_field_read_only("level")
        assert not ticket.is_field_read_only("iceberg")
        assert ticket.is_field_read_only("side")
        assert ticket.is_field_read_only("account")

    async def test_ref_data_error_blocks_amend(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order(liquidity_pool="DARK"))
        assert not ticket.amend_order()
        assert ticket.edit_mode == EditMode.VIEWING
        assert ticket.toast.text == "Cannot amend order with unavailable data"

    async def test_amend_without_order_refused(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)

        assert not ticket.amend_order()
        assert ticket.edit_mode == EditMode.CREATING
        assert not ticket.is_field_read_only("side")
        assert ticket.edit_field("side", Side.SELL)

    async def test_new_order(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        ticket.new_order()

        assert ticket.edit_mode == EditMode.CREATING
        assert ticket.current_order_id is None
        assert ticket.placed_order is None
        assert "order_id" not in ticket.values
        assert "status" not in ticket.values
        assert not ticket.store.is_dirty()

    @pytest.mark.parametrize(
        "status,kind,text",
        [
            (OrderStatus.FILLED, "success", "Order Filled Successfully!"),
            (OrderStatus.CANCELLED, "info", "Order Cancelled"),
            (OrderStatus.EXPIRED, "info", "Order Expired"),
            (OrderStatus.REJECTED, "error", "Order Rejected: Unknown reason"),
        ],
    )
    async def test_terminal_status_toasts(self, fake_transport: FakeTransport, status,
                                          kind, text):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        ticket.apply_order_update(status)
        assert ticket.values["status"] is status
        assert ticket.toast.type == kind
        assert ticket.toast.text == text

    async def test_rejection_reason(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        ticket.apply_order_update(
            OrderStatus.REJECTED,
            ExecutionInfo(status=OrderStatus.REJECTED, reject_reason="Market closed"),
        )
        assert ticket.toast.text == "Order Rejected: Market closed"

    async def test_live_status_no_toast(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        ticket.apply_order_update(OrderStatus.LIVE_DELAYED)
        assert ticket.toast is None

    async def test_refresh_status(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())
        fake_transport.statuses["ORD-7"] = OrderStatus.FILLED
        assert await ticket.refresh_order_status() is OrderStatus.FILLED
        assert ticket.values["status"] is OrderStatus.FILLED

    async def test_refresh_status_failure(self, fake_transport: FakeTransport):
        ticket = await ready_ticket(fake_transport)
        ticket.open_order(placed_order())

        async def broken(order_id):
            raise TransportError("down")

        fake_transport.get_order_status = broken
        assert await ticket.refresh_order_status() is None
        assert ticket.toast.text == "Failed to track order status"
