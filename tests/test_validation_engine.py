"""Tests for the validation engine: race safety, server checks, reference data."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeTransport, make_reference_data
from fxticket.config.constants import REF_DATA_GLOBAL_ERROR
from fxticket.models import Account, Amount, Expiry, ExpiryStrategy, OrderType, StartMode
from fxticket.store.layers import LayeredValueStore
from fxticket.store.refdata import ReferenceDataStore
from fxticket.store.validation import ValidationEngine, ValidationState
from fxticket.transports.base import TransportError


def make_engine_with_store(transport=None) -> tuple[ValidationEngine, LayeredValueStore]:
    state = ValidationState()
    store = LayeredValueStore(state)
    refdata = ReferenceDataStore(make_reference_data())
    return ValidationEngine(store, state, refdata, transport, instance_id="test"), store


def make_engine(transport=None) -> ValidationEngine:
    return make_engine_with_store(transport)[0]


def gbp(amount: float) -> Amount:
    return Amount(amount=amount, ccy="GBP")


@pytest.mark.anyio
class TestRaceSafety:
    """
    *For any* two validations of the same field, only the one started last
    may write results, whatever order their responses arrive in.
    """

    async def test_late_stale_response_dropped(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=False, kind="HARD", message="stale")
        gate = fake_transport.gate("amount", 100)

        first = asyncio.create_task(engine.validate_field("amount", gbp(100)))
        await asyncio.sleep(0)
        await engine.validate_field("amount", gbp(200))
        gate.set()
        await first

        assert "amount" not in engine.state.server_errors
        assert "amount" not in engine.state.errors
        assert "amount" not in engine.state.is_validating

    async def test_late_response_cannot_override_newer_error(
        self, fake_transport: FakeTransport
    ):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=True)
        fake_transport.respond("amount", 200, ok=False, kind="HARD",
                               message="Exceeds firm trading limit")
        gate = fake_transport.gate("amount", 100)

        first = asyncio.create_task(engine.validate_field("amount", gbp(100)))
        await asyncio.sleep(0)
        await engine.validate_field("amount", gbp(200))
        gate.set()
        await first

        assert engine.state.server_errors == {"amount": "Exceeds firm trading limit"}

    async def test_newer_schema_error_survives_stale_server_result(
        self, fake_transport: FakeTransport
    ):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=False, kind="HARD", message="stale")
        gate = fake_transport.gate("amount", 100)

        first = asyncio.create_task(engine.validate_field("amount", gbp(100)))
        await asyncio.sleep(0)
        await engine.validate_field("amount", gbp(0.5))
        gate.set()
        await first

        assert engine.state.errors == {"amount": "Minimum amount is 1"}
        assert engine.state.server_errors == {}

    async def test_in_order_responses(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=False, kind="HARD", message="first")
        await engine.validate_field("amount", gbp(100))
        assert engine.state.server_errors == {"amount": "first"}

        await engine.validate_field("amount", gbp(200))
        assert engine.state.server_errors == {}

    async def test_reset_supersedes_in_flight(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=False, kind="HARD", message="late")
        gate = fake_transport.gate("amount", 100)

        task = asyncio.create_task(engine.validate_field("amount", gbp(100)))
        await asyncio.sleep(0)
        engine.state.reset()
        gate.set()
        await task

        assert engine.state.server_errors == {}


@pytest.mark.anyio
class TestServerChecks:
    async def test_validating_flag_while_in_flight(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        gate = fake_transport.gate("amount", 100)
        task = asyncio.create_task(engine.validate_field("amount", gbp(100)))
        await asyncio.sleep(0)
        assert engine.state.is_validating == {"amount": True}
        gate.set()
        await task
        assert engine.state.is_validating == {}

    async def test_soft_result_is_warning(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 20_000_000, ok=False, kind="SOFT",
                               message="Large trade")
        await engine.validate_field("amount", gbp(20_000_000))
        assert engine.state.warnings == {"amount": "Large trade"}
        assert engine.state.server_errors == {}
        assert not engine.state.has_blocking_errors()

    async def test_fallback_messages(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.respond("amount", 100, ok=False, kind="HARD")
        fake_transport.respond("level", 1.5, ok=False, kind="SOFT")
        await engine.validate_field("amount", gbp(100))
        await engine.validate_field("level", 1.5)
        assert engine.state.server_errors == {"amount": "Invalid"}
        assert engine.state.warnings == {"level": "Check value"}

    async def test_request_carries_order_context(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        await engine.validate_field("level", 1.2650)
        request = fake_transport.field_calls[-1]
        assert request.field == "level"
        assert request.value == 1.2650
        assert request.order_type == "FLOAT"
        assert request.currency_pair == "GBPUSD"
        assert request.liquidity_pool == "Hybrid"

    async def test_schema_error_skips_server(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        await engine.validate_field("amount", gbp(0))
        assert engine.state.errors == {"amount": "Minimum amount is 1"}
        assert fake_transport.field_calls == []

    async def test_other_fields_not_sent(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        await engine.validate_field("liquidity_pool", "POOL1")
        assert fake_transport.field_calls == []

    async def test_transport_failure_is_no_result(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        fake_transport.validate_field = AsyncMock(side_effect=TransportError("down"))
        await engine.validate_field("amount", gbp(100))
        assert engine.state.server_errors == {}
        assert engine.state.is_validating == {}

    async def test_schema_fault_is_no_result(self, fake_transport: FakeTransport):
        engine = make_engine(fake_transport)
        with patch("fxticket.store.validation.collect_issues", side_effect=RuntimeError):
            await engine.validate_field("amount", gbp(100))
        assert engine.state.errors == {}

    async def test_without_transport(self):
        engine = make_engine()
        await engine.validate_field("amount", gbp(100))
        assert engine.state.errors == {}
        assert engine.state.is_validating == {}

    async def test_malformed_context_is_no_result(self, fake_transport: FakeTransport):
        engine, store = make_engine_with_store(fake_transport)
        store.set_field_value("account", {"name": "X", "sdsId": "abc"})

        await engine.validate_field("amount", gbp(2_000_000))

        assert fake_transport.field_calls == []
        assert engine.state.server_errors == {}
        assert engine.state.is_validating == {}


@pytest.mark.anyio
class TestCrossFieldRules:
    """Field validation sees the whole derived order, not the field alone."""

    async def test_start_time_required_for_start_at(self):
        engine, store = make_engine_with_store()
        store.set_field_value("start_mode", StartMode.START_AT)

        await engine.validate_field("start_time", "")

        assert engine.state.errors == {
            "start_time": "Start time is required when Start Mode is 'Start At'"
        }

    async def test_start_time_given(self):
        engine, store = make_engine_with_store()
        store.set_field_value("start_mode", StartMode.START_AT)

        await engine.validate_field("start_time", "09:30:00")

        assert engine.state.errors == {}

    async def test_issue_stays_on_dependent_field(self):
        engine, _ = make_engine_with_store()

        await engine.validate_field("start_mode", StartMode.START_AT)

        assert "start_mode" not in engine.state.errors
        assert engine.state.errors == {}

    async def test_expiry_time_required_for_gtd(self):
        engine, store = make_engine_with_store()
        store.set_field_value("expiry", Expiry(strategy=ExpiryStrategy.GTD))

        await engine.validate_field("expiry_time", None)

        assert engine.state.errors == {
            "expiry_time": "Expiry time is required for GTD/GTT orders"
        }


class TestReferenceData:
    def test_consistent_order_has_no_errors(self):
        engine = make_engine()
        assert engine.validate_ref_data() == {}
        assert engine.state.global_error is None

    def test_unknown_values_flagged(self):
        engine = make_engine()
        engine._store.replace_intent({
            "account": Account(name="Gone", sds_id=99),
            "order_type": OrderType.PEG,
            "currency_pair": "USDCHF",
            "liquidity_pool": "DARK",
        })
        errors = engine.validate_ref_data()
        assert errors == {
            "account": "Account not available",
            "order_type": "Order type not supported",
            "currency_pair": "Currency pair not available for this order type",
            "liquidity_pool": "Liquidity pool not available",
        }
        assert engine.state.global_error == REF_DATA_GLOBAL_ERROR
        assert engine.state.has_blocking_errors()

    def test_global_error_cleared_when_fixed(self):
        engine = make_engine()
        engine._store.replace_intent({"liquidity_pool": "DARK"})
        engine.validate_ref_data()
        engine._store.replace_intent({})
        assert engine.validate_ref_data() == {}
        assert engine.state.global_error is None

    def test_server_global_error_not_overwritten(self):
        engine = make_engine()
        engine.state.set_global_error("Server maintenance")
        engine._store.replace_intent({"liquidity_pool": "DARK"})
        engine.validate_ref_data()
        assert engine.state.global_error == "Server maintenance"
        engine._store.replace_intent({})
        engine.validate_ref_data()
        assert engine.state.global_error == "Server maintenance"


class TestFullOrderValidation:
    def test_valid_default_order_with_account(self):
        engine = make_engine()
        engine._store.replace_intent({"account": Account(name="Acct", sds_id=1)})
        assert engine.validate_order().valid

    def test_fault_is_treated_as_valid(self):
        engine = make_engine()
        with patch("fxticket.store.validation.validate_order_for_submission",
                   side_effect=RuntimeError("boom")):
            assert engine.validate_order().valid
