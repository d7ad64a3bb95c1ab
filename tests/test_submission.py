"""Tests for the submission state machine and wire payloads."""

import asyncio

import pytest

from conftest import FakeTransport, make_reference_data
from fxticket.models import (
    Account,
    Amount,
    EditMode,
    Expiry,
    ExpiryStrategy,
    MutationResponse,
    OrderType,
    Side,
    TicketStatus,
)
from fxticket.store.layers import LayeredValueStore
from fxticket.store.refdata import ReferenceDataStore
from fxticket.store.submission import (
    SubmissionStateMachine,
    build_amend_payload,
    build_create_payload,
    order_from_payload,
    summarize_errors,
)
from fxticket.store.validation import ValidationEngine, ValidationState
from fxticket.transports.base import TransportError

SCENARIO_ORDER = {
    "currency_pair": "GBPUSD",
    "side": Side.SELL,
    "order_type": OrderType.FLOAT,
    "amount": Amount(amount=2_500_000, ccy="GBP"),
    "account": Account(name="Acct", sds_id=1),
    "liquidity_pool": "POOL1",
}


def make_machine(transport: FakeTransport, intent=None):
    state = ValidationState()
    store = LayeredValueStore(state)
    engine = ValidationEngine(store, state, ReferenceDataStore(make_reference_data()),
                              transport, instance_id="test")
    machine = SubmissionStateMachine(store, engine, transport, instance_id="test")
    machine.status = TicketStatus.IDLE
    store.replace_intent(SCENARIO_ORDER if intent is None else intent)
    return machine, store, engine


async def place(machine: SubmissionStateMachine) -> None:
    await machine.submit_order()
    assert machine.edit_mode == EditMode.VIEWING


@pytest.mark.anyio
class TestCreate:
    async def test_create_success(self, fake_transport: FakeTransport):
        machine, store, _ = make_machine(fake_transport)
        await machine.submit_order()

        assert len(fake_transport.create_calls) == 1
        assert machine.status == TicketStatus.IDLE
        assert machine.edit_mode == EditMode.VIEWING
        assert machine.current_order_id == "ORD-1"
        assert machine.toast.type == "success"
        assert "SELL" in machine.toast.text and "GBPUSD" in machine.toast.text
        assert store.get_derived_values()["order_id"] == "ORD-1"
        assert machine.placed_values["amount"] == Amount(amount=2_500_000, ccy="GBP")

    async def test_create_payload_is_flat(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        await machine.submit_order()
        assert fake_transport.create_calls[0] == {
            "currencyPair": "GBPUSD",
            "side": "SELL",
            "orderType": "FLOAT",
            "amount": 2_500_000,
            "ccy": "GBP",
            "liquidityPool": "POOL1",
            "account": 1,
            "accountName": "Acct",
            "startMode": "START_NOW",
            "expiryStrategy": "GTC",
        }

    async def test_success_clears_server_results(self, fake_transport: FakeTransport):
        machine, _, engine = make_machine(fake_transport)
        rid = engine.state.begin("amount")
        engine.state.set_server_result("amount", rid, None, "Large trade")
        await machine.submit_order()
        assert engine.state.warnings == {}

    async def test_blocked_by_schema(self, fake_transport: FakeTransport):
        machine, store, engine = make_machine(fake_transport)
        store.set_field_value("amount", None)
        await machine.submit_order()

        assert fake_transport.create_calls == []
        assert machine.edit_mode == EditMode.CREATING
        assert machine.status == TicketStatus.IDLE
        assert engine.state.errors == {"amount": "Amount is required"}
        assert machine.toast.type == "error"
        assert machine.toast.text == "amount: Amount is required"

    async def test_blocked_by_server_error(self, fake_transport: FakeTransport):
        machine, _, engine = make_machine(fake_transport)
        rid = engine.state.begin("amount")
        engine.state.set_server_result("amount", rid, "Exceeds firm trading limit", None)
        await machine.submit_order()

        assert fake_transport.create_calls == []
        assert machine.toast.text == "amount: Exceeds firm trading limit"

    async def test_duplicate_submit_ignored(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        machine.status = TicketStatus.SUBMITTING
        await machine.submit_order()

        assert fake_transport.create_calls == []
        assert machine.status == TicketStatus.SUBMITTING
        assert machine.toast is None

    async def test_concurrent_submit_dispatches_once(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        fake_transport.submit_gate = asyncio.Event()

        first = asyncio.create_task(machine.submit_order())
        await asyncio.sleep(0)
        assert machine.status == TicketStatus.SUBMITTING
        await machine.submit_order()
        fake_transport.submit_gate.set()
        await first

        assert len(fake_transport.create_calls) == 1
        assert machine.status == TicketStatus.IDLE

    async def test_rejection_shows_reason(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        fake_transport.create_response = MutationResponse(
            result="FAILURE", failure_reason="Credit limit reached"
        )
        await machine.submit_order()

        assert machine.toast.text == "Credit limit reached"
        assert machine.edit_mode == EditMode.CREATING
        assert machine.current_order_id is None
        assert machine.status == TicketStatus.IDLE

    @pytest.mark.parametrize(
        "response",
        [MutationResponse(result="FAILURE"), MutationResponse(result="SUCCESS")],
    )
    async def test_rejection_fallback(self, fake_transport: FakeTransport, response):
        machine, _, _ = make_machine(fake_transport)
        fake_transport.create_response = response
        await machine.submit_order()
        assert machine.toast.text == "Order submission failed"
        assert machine.edit_mode == EditMode.CREATING

    async def test_transport_error(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        fake_transport.raise_on_submit = TransportError("connection reset")
        await machine.submit_order()

        assert machine.toast.text == "Submission Failed"
        assert machine.edit_mode == EditMode.CREATING
        assert machine.status == TicketStatus.IDLE


@pytest.mark.anyio
class TestAmend:
    async def test_amend_success(self, fake_transport: FakeTransport):
        machine, store, _ = make_machine(fake_transport)
        await place(machine)
        assert machine.amend_order()
        assert machine.edit_mode == EditMode.AMENDING

        store.set_field_value("amount", Amount(amount=3_000_000, ccy="GBP"))
        await machine.submit_order()

        assert fake_transport.create_calls and len(fake_transport.create_calls) == 1
        payload = fake_transport.amend_calls[0]
        assert payload["orderId"] == "ORD-1"
        assert payload["amount"] == 3_000_000
        assert "side" not in payload
        assert machine.edit_mode == EditMode.VIEWING
        assert machine.current_order_id == "ORD-1"
        assert machine.toast.text == "Order GBPUSD Amended!"

    async def test_amend_keeps_edits(self, fake_transport: FakeTransport):
        machine, store, _ = make_machine(fake_transport)
        await place(machine)
        machine.amend_order()
        store.set_field_value("level", 1.27)
        machine.edit_mode = EditMode.VIEWING
        machine.amend_order()
        assert store.get_derived_values()["level"] == 1.27

    async def test_amend_rejection_stays_viewing(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        await place(machine)
        machine.amend_order()
        fake_transport.amend_response = MutationResponse(order_id="ORD-1", result="FAILURE")
        await machine.submit_order()

        assert machine.toast.text == "Amendment failed"
        assert machine.edit_mode == EditMode.VIEWING
        assert machine.current_order_id == "ORD-1"

    async def test_amend_transport_error_with_known_order(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        await place(machine)
        machine.amend_order()
        fake_transport.raise_on_submit = TransportError("timeout")
        await machine.submit_order()

        assert machine.toast.text == "Error tracking order status"
        assert machine.edit_mode == EditMode.VIEWING

    async def test_amend_without_order_id_creates(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        machine.edit_mode = EditMode.AMENDING
        await machine.submit_order()
        assert len(fake_transport.create_calls) == 1
        assert fake_transport.amend_calls == []


class TestAmendGuard:
    """Amending needs an order on view whose reference data is available."""

    def test_refused_with_ref_data_errors(self, fake_transport: FakeTransport):
        machine, _, engine = make_machine(fake_transport, {**SCENARIO_ORDER,
                                                           "liquidity_pool": "DARK"})
        machine.view_order("ORD-1")
        engine.validate_ref_data()

        assert not machine.amend_order()
        assert machine.edit_mode == EditMode.VIEWING
        assert machine.toast.type == "error"
        assert machine.toast.text == "Cannot amend order with unavailable data"

    def test_allowed_without_ref_data_errors(self, fake_transport: FakeTransport):
        machine, _, engine = make_machine(fake_transport)
        machine.view_order("ORD-1")
        engine.validate_ref_data()

        assert machine.amend_order()
        assert machine.edit_mode == EditMode.AMENDING

    def test_refused_while_creating(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)

        assert not machine.amend_order()
        assert machine.edit_mode == EditMode.CREATING
        assert machine.current_order_id is None
        assert machine.toast.text == "No placed order to amend"

    def test_refused_when_viewing_without_order(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        machine.edit_mode = EditMode.VIEWING

        assert not machine.amend_order()
        assert machine.edit_mode == EditMode.VIEWING

    def test_refused_while_already_amending(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        machine.view_order("ORD-1")
        assert machine.amend_order()

        assert not machine.amend_order()
        assert machine.edit_mode == EditMode.AMENDING

    def test_view_and_reset(self, fake_transport: FakeTransport):
        machine, _, _ = make_machine(fake_transport)
        machine.view_order("ORD-9")
        assert machine.edit_mode == EditMode.VIEWING
        assert machine.current_order_id == "ORD-9"
        machine.reset()
        assert machine.edit_mode == EditMode.CREATING
        assert machine.current_order_id is None
        assert machine.placed_values is None


class TestPayloads:
    def test_expiry_flattened(self):
        payload = build_create_payload({
            **SCENARIO_ORDER,
            "expiry": Expiry(strategy=ExpiryStrategy.GTT, end_time="17:00:00",
                             end_time_zone="UTC"),
        })
        assert payload["expiryStrategy"] == "GTT"
        assert payload["expiryEndTime"] == "17:00:00"
        assert payload["expiryEndTimeZone"] == "UTC"
        assert "expiry" not in payload

    def test_nested_dicts_accepted(self):
        payload = build_create_payload({
            "amount": {"amount": 1000, "ccy": "EUR"},
            "account": {"name": "Acct", "sdsId": 1},
        })
        assert payload == {"amount": 1000, "ccy": "EUR", "account": 1, "accountName": "Acct"}

    def test_none_omitted(self):
        payload = build_amend_payload({"order_id": "ORD-1", "level": None, "iceberg": 0.0})
        assert payload == {"orderId": "ORD-1", "iceberg": 0.0}

    def test_amend_excludes_identity_fields(self):
        payload = build_amend_payload(SCENARIO_ORDER)
        assert "currencyPair" not in payload
        assert "side" not in payload
        assert "account" not in payload

    def test_payload_back_to_order(self):
        order = order_from_payload({**build_create_payload(SCENARIO_ORDER), "orderId": "X"})
        assert order.order_id == "X"
        assert order.amount == SCENARIO_ORDER["amount"]
        assert order.account == SCENARIO_ORDER["account"]
        assert order.side is Side.SELL

    def test_summarize_errors(self):
        assert summarize_errors({"amount": "Amount is required"}) == \
            "amount: Amount is required"
        assert summarize_errors({"amount": "a", "level": "b"}) == "2 validation errors found"
