"""Field registry: label and render kind of every order field.

The render kind is a closed set. Each kind has exactly one codec that
knows how to show a value of that kind and how to turn a raw string
(typed on the command line) back into a value.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from fxticket.config.constants import AMOUNT_CONFIG, PRICE_CONFIG
from fxticket.models.enums import (
    DelayBehaviour,
    DiscretionFactor,
    ExecutionStyle,
    ExpiryStrategy,
    FranchiseExposure,
    OrderStatus,
    OrderType,
    ParticipationRate,
    Side,
    Skew,
    StartMode,
    TargetExecutionRate,
    TriggerSide,
)
from fxticket.models.order import Account, Amount, ExecutionInfo, Expiry


class FieldKind(str, Enum):
    """How a field is rendered and edited."""

    TOGGLE = "TOGGLE"
    SELECT = "SELECT"
    NUMBER = "NUMBER"
    TEXT = "TEXT"
    AMOUNT = "AMOUNT"
    ACCOUNT = "ACCOUNT"
    EXPIRY = "EXPIRY"
    DATE = "DATE"
    TIME = "TIME"
    EPOCH = "EPOCH"
    STATUS = "STATUS"


class FieldDefinition(BaseModel):
    """Static description of a form field."""

    key: str = Field(..., description="Field key in the order values")
    label: str = Field(..., description="Human-readable label")
    kind: FieldKind = Field(..., description="Render kind")
    options: Optional[type[Enum]] = Field(default=None, description="Enum of allowed values")
    integer: bool = Field(default=False, description="Whether NUMBER values are integral")
    step: Optional[float] = Field(default=None, description="Input step")
    decimals: Optional[int] = Field(default=None, description="Display precision")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}


class FieldCodec(ABC):
    """Formats and parses the values of one field kind."""

    @abstractmethod
    def format(self, value: Any, definition: FieldDefinition) -> str:
        """Render a value for display."""
        pass

    @abstractmethod
    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        """Parse a raw string into a field value.

        Raises:
            ValueError: If the string is not a valid value for the field.
        """
        pass


def _enum_value(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _parse_choice(raw: str, definition: FieldDefinition) -> Any:
    text = raw.strip()
    if definition.options is None:
        if not text:
            raise ValueError(f"{definition.label} cannot be empty")
        return text
    candidate = text.upper()
    for member in definition.options:
        if candidate in (member.value, member.name):
            return member
    allowed = ", ".join(m.value for m in definition.options)
    raise ValueError(f"Invalid {definition.label}: '{raw}' (expected one of {allowed})")


class ToggleCodec(FieldCodec):
    """Two-state segmented control, e.g. BUY/SELL."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        return "" if value is None else _enum_value(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        return _parse_choice(raw, definition)


class SelectCodec(FieldCodec):
    """Drop-down of enum members or free identifiers (pools, pairs)."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        return "" if value is None else _enum_value(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        value = _parse_choice(raw, definition)
        if definition.key == "currency_pair":
            value = value.replace("/", "").upper()
        return value


class NumberCodec(FieldCodec):
    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        if definition.integer:
            return str(int(value))
        if definition.decimals is not None:
            return f"{float(value):.{definition.decimals}f}"
        return f"{value:g}"

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        text = raw.strip().replace(",", "")
        try:
            return int(text) if definition.integer else float(text)
        except ValueError:
            raise ValueError(f"{definition.label} must be a number, got '{raw}'") from None


class TextCodec(FieldCodec):
    def format(self, value: Any, definition: FieldDefinition) -> str:
        return "" if value is None else str(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        return raw.strip()


_AMOUNT_RE = re.compile(r"^\s*([0-9][0-9_,]*(?:\.[0-9]+)?)\s*([kKmMbB]?)\s*([A-Za-z]{3})?\s*$")
_MULTIPLIERS = {"": 1, "k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


class AmountCodec(FieldCodec):
    """Notional with currency, e.g. ``2500000 GBP`` or ``2.5m GBP``."""

    default_ccy = "USD"

    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        if isinstance(value, dict):
            value = Amount(**value)
        return f"{value.amount:,.0f} {value.ccy}"

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        match = _AMOUNT_RE.match(raw)
        if not match:
            raise ValueError(f"Invalid amount '{raw}' (expected e.g. '2500000 GBP' or '2.5m GBP')")
        number, suffix, ccy = match.groups()
        amount = float(number.replace(",", "").replace("_", "")) * _MULTIPLIERS[suffix.lower()]
        return Amount(amount=amount, ccy=(ccy or self.default_ccy).upper())


class AccountCodec(FieldCodec):
    """Account as ``name:id``; the id alone is also accepted."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        if isinstance(value, dict):
            value = Account(**value)
        return f"{value.name} ({value.sds_id})"

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        name, sep, sds_id = raw.strip().rpartition(":")
        if not sep:
            name, sds_id = "", raw.strip()
        try:
            return Account(name=name.strip(), sds_id=int(sds_id))
        except ValueError:
            raise ValueError(f"Invalid account '{raw}' (expected 'name:id')") from None


class ExpiryCodec(FieldCodec):
    """Expiry strategy, optionally with end time and zone: ``GTT@17:00:00/UTC``."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        if isinstance(value, dict):
            value = Expiry(**value)
        text = value.strategy.value
        if value.end_time:
            text += f" {value.end_time}"
        if value.end_time_zone:
            text += f" {value.end_time_zone}"
        return text

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        strategy, _, rest = raw.strip().partition("@")
        end_time, _, zone = rest.partition("/")
        try:
            return Expiry(
                strategy=ExpiryStrategy(strategy.strip().upper()),
                end_time=end_time or None,
                end_time_zone=zone or None,
            )
        except ValueError:
            raise ValueError(f"Invalid expiry '{raw}' (expected GTC, GTD or GTT)") from None


class DateCodec(FieldCodec):
    def format(self, value: Any, definition: FieldDefinition) -> str:
        return "" if value is None else str(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        try:
            return datetime.strptime(raw.strip(), "%Y-%m-%d").date().isoformat()
        except ValueError:
            raise ValueError(f"{definition.label} must be YYYY-MM-DD, got '{raw}'") from None


class TimeCodec(FieldCodec):
    def format(self, value: Any, definition: FieldDefinition) -> str:
        return "" if value is None else str(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        text = raw.strip()
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                return datetime.strptime(text, fmt).strftime("%H:%M:%S")
            except ValueError:
                continue
        raise ValueError(f"{definition.label} must be HH:MM[:SS], got '{raw}'")


class EpochCodec(FieldCodec):
    """Timestamp in epoch milliseconds, entered as ISO datetime or raw millis."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        moment = datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
        return moment.strftime("%Y-%m-%d %H:%M:%S UTC")

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        text = raw.strip()
        if text.isdigit():
            return int(text)
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"{definition.label} must be epoch millis or ISO datetime") from None
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return int(moment.timestamp() * 1000)


class StatusCodec(FieldCodec):
    """Server execution state; display only."""

    def format(self, value: Any, definition: FieldDefinition) -> str:
        if value is None:
            return ""
        if isinstance(value, ExecutionInfo):
            text = value.status.value
            if value.filled is not None:
                text += f" ({value.filled.amount:,.0f} {value.filled.ccy} filled)"
            if value.reject_reason:
                text += f": {value.reject_reason}"
            return text
        return _enum_value(value)

    def parse(self, raw: str, definition: FieldDefinition) -> Any:
        raise ValueError(f"{definition.label} is set by the server and cannot be entered")


CODECS: dict[FieldKind, FieldCodec] = {
    FieldKind.TOGGLE: ToggleCodec(),
    FieldKind.SELECT: SelectCodec(),
    FieldKind.NUMBER: NumberCodec(),
    FieldKind.TEXT: TextCodec(),
    FieldKind.AMOUNT: AmountCodec(),
    FieldKind.ACCOUNT: AccountCodec(),
    FieldKind.EXPIRY: ExpiryCodec(),
    FieldKind.DATE: DateCodec(),
    FieldKind.TIME: TimeCodec(),
    FieldKind.EPOCH: EpochCodec(),
    FieldKind.STATUS: StatusCodec(),
}


def _field(key: str, label: str, kind: FieldKind, **kwargs: Any) -> FieldDefinition:
    return FieldDefinition(key=key, label=label, kind=kind, **kwargs)


FIELD_REGISTRY: dict[str, FieldDefinition] = {
    d.key: d
    for d in (
        _field("order_id", "Order ID", FieldKind.TEXT),
        _field("currency_pair", "Currency Pair", FieldKind.SELECT),
        _field("side", "Side", FieldKind.TOGGLE, options=Side),
        _field("order_type", "Order Type", FieldKind.SELECT, options=OrderType),
        _field("amount", "Amount", FieldKind.AMOUNT, step=AMOUNT_CONFIG["STEP_AMOUNT"]),
        _field("level", "Level", FieldKind.NUMBER,
               step=PRICE_CONFIG["PRICE_STEP"], decimals=PRICE_CONFIG["PRICE_DECIMALS"]),
        _field("liquidity_pool", "Liquidity Pool", FieldKind.SELECT),
        _field("account", "Account", FieldKind.ACCOUNT),
        _field("start_mode", "Start Mode", FieldKind.TOGGLE, options=StartMode),
        _field("start_time", "Start Time", FieldKind.TIME),
        _field("start_date", "Start Date", FieldKind.DATE),
        _field("time_zone", "Time Zone", FieldKind.SELECT),
        _field("expiry", "Expiry", FieldKind.EXPIRY),
        _field("expiry_time", "Expiry Time", FieldKind.TIME),
        _field("expiry_date", "Expiry Date", FieldKind.DATE),
        _field("expiry_time_zone", "Expiry Time Zone", FieldKind.SELECT),
        _field("target_execution_rate", "Target Execution Rate", FieldKind.SELECT,
               options=TargetExecutionRate),
        _field("participation_rate", "Participation Rate", FieldKind.SELECT,
               options=ParticipationRate),
        _field("execution_style", "Execution Style", FieldKind.SELECT, options=ExecutionStyle),
        _field("discretion_factor", "Discretion Factor", FieldKind.SELECT,
               options=DiscretionFactor),
        _field("trigger_side", "Trigger Side", FieldKind.SELECT, options=TriggerSide),
        _field("iceberg", "Iceberg", FieldKind.NUMBER, step=AMOUNT_CONFIG["STEP_AMOUNT"]),
        _field("skew", "Skew", FieldKind.SELECT, options=Skew),
        _field("franchise_exposure", "Franchise Exposure", FieldKind.SELECT,
               options=FranchiseExposure),
        _field("delay_behaviour", "Delay Behaviour", FieldKind.SELECT, options=DelayBehaviour),
        _field("fixing_id", "Fixing", FieldKind.NUMBER, integer=True),
        _field("fixing_date", "Fixing Date", FieldKind.DATE),
        _field("twap_target_end_time", "Target End Time", FieldKind.EPOCH),
        _field("twap_time_zone", "TWAP Time Zone", FieldKind.SELECT),
        _field("execution", "Execution", FieldKind.STATUS),
        _field("status", "Status", FieldKind.STATUS, options=OrderStatus),
    )
}


def get_field_definition(key: str) -> FieldDefinition:
    """Look up a field definition, raising ``KeyError`` for unknown keys."""
    try:
        return FIELD_REGISTRY[key]
    except KeyError:
        raise KeyError(f"Unknown field: {key}") from None


def get_field_label(key: str) -> str:
    """Label of a field, falling back to the key itself."""
    definition = FIELD_REGISTRY.get(key)
    return definition.label if definition else key


def codec_for(key: str) -> FieldCodec:
    """Return the codec that handles a field's render kind."""
    return CODECS[get_field_definition(key).kind]


def parse_field_value(key: str, raw: str) -> Any:
    """Parse a raw string into a value for the given field."""
    return codec_for(key).parse(raw, get_field_definition(key))


def format_field_value(key: str, value: Any) -> str:
    """Format a field value for display."""
    return codec_for(key).format(value, get_field_definition(key))
