"""Validation schemas for each order type.

Every order type has a pydantic model describing the values it accepts.
Validation never raises: failures are reported as ``SchemaIssue`` records
whose path starts with the offending top-level field key, so the ticket
can show the message next to that field.

Rules that span several fields (start-at scheduling, date-bound expiry)
are checked on the whole order after the per-field pass.
"""

import math
from enum import Enum
from typing import Annotated, Any, Mapping, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    ValidationError,
)
from pydantic_core import PydanticCustomError

from fxticket.config.constants import NOTIONAL_LIMITS, PRICE_CONFIG
from fxticket.config.field_registry import get_field_label
from fxticket.models.enums import DATE_BOUND_STRATEGIES, ExpiryStrategy, OrderType, Side, StartMode

# Key used for issues that do not belong to a field.
ROOT_KEY = "_root"

_NESTED_LABELS = {
    "ccy": "Currency",
    "name": "Account name",
    "sds_id": "Account sdsId",
    "strategy": "Expiry strategy",
}

_NUMBER_ERRORS = frozenset({"float_type", "float_parsing", "int_type", "int_parsing",
                            "int_from_float", "finite_number"})


class SchemaIssue(BaseModel):
    """A single schema violation."""

    path: tuple[Union[str, int], ...] = Field(default=(), description="Location of the issue")
    message: str = Field(..., description="User-facing message")

    model_config = {"frozen": True}

    @property
    def field(self) -> str:
        """Top-level field key the issue belongs to."""
        return str(self.path[0]) if self.path else ROOT_KEY


class ValidationResult(BaseModel):
    """Outcome of validating a whole order."""

    valid: bool
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


# -- building blocks ---------------------------------------------------------

def _number(message: str) -> BeforeValidator:
    def check(value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise PydanticCustomError("number_type", message)
        if not math.isfinite(value):
            raise PydanticCustomError("number_type", message)
        return value
    return BeforeValidator(check)


def _non_empty(message: str) -> BeforeValidator:
    def check(value: Any) -> Any:
        if not isinstance(value, str) or not value:
            raise PydanticCustomError("string_required", message)
        return value
    return BeforeValidator(check)


def _choice(enum_cls: type[Enum], message: str) -> BeforeValidator:
    def check(value: Any) -> Any:
        try:
            return enum_cls(value)
        except ValueError:
            raise PydanticCustomError("invalid_choice", message) from None
    return BeforeValidator(check)


def _notional_range(value: float) -> float:
    if value < NOTIONAL_LIMITS["MIN"]:
        raise PydanticCustomError("notional_min", "Minimum amount is 1")
    if value > NOTIONAL_LIMITS["MAX"]:
        raise PydanticCustomError("notional_max", "Amount exceeds pool limit")
    return value


def _positive_price(value: float) -> float:
    if value < PRICE_CONFIG["MIN_VALID_PRICE"]:
        raise PydanticCustomError("price_positive", "Price must be positive")
    return value


Price = Annotated[float, _number("Price must be a number"), AfterValidator(_positive_price)]
SideValue = Annotated[Side, _choice(Side, "Side must be BUY or SELL")]
OrderTypeValue = Annotated[OrderType, _choice(OrderType, "Invalid order type")]
ExpiryStrategyValue = Annotated[ExpiryStrategy, _choice(ExpiryStrategy, "Invalid expiry strategy")]


class AmountSchema(BaseModel):
    amount: Annotated[
        float, _number("Amount must be a number"), AfterValidator(_notional_range)
    ]
    ccy: Annotated[str, _non_empty("Currency is required")]


class AccountSchema(BaseModel):
    name: Annotated[str, _non_empty("Account name is required")]
    sds_id: Annotated[int, _number("Account sdsId is required")]


class ExpirySchema(BaseModel):
    strategy: ExpiryStrategyValue
    end_time: Optional[Union[str, int]] = None
    end_time_zone: Optional[str] = None


# -- order type schemas ------------------------------------------------------

class OrderBaseSchema(BaseModel):
    """Fields shared by every order type."""

    currency_pair: Annotated[str, _non_empty("Currency pair is required")]
    side: SideValue
    order_type: OrderTypeValue
    amount: AmountSchema

    order_id: Optional[str] = None
    level: Optional[float] = None
    liquidity_pool: Optional[str] = None
    account: Optional[AccountSchema] = None
    start_mode: Optional[str] = None
    start_time: Optional[str] = None
    start_date: Optional[str] = None
    time_zone: Optional[str] = None
    expiry: Optional[ExpirySchema] = None
    expiry_time: Optional[str] = None
    expiry_date: Optional[str] = None
    expiry_time_zone: Optional[str] = None

    model_config = {"extra": "ignore"}


class FloatOrderSchema(OrderBaseSchema):
    """Float: level optional, validated when given."""

    level: Optional[Price] = None
    target_execution_rate: Optional[str] = None


class TakeProfitOrderSchema(OrderBaseSchema):
    level: Price
    iceberg: Optional[float] = None


class StopLossOrderSchema(OrderBaseSchema):
    level: Price
    trigger_side: Optional[str] = None


class LiquiditySeekerOrderSchema(OrderBaseSchema):
    target_execution_rate: Optional[str] = None


class AggressiveOrderSchema(OrderBaseSchema):
    execution_style: Optional[str] = None
    discretion_factor: Optional[str] = None


class IocOrderSchema(OrderBaseSchema):
    pass


class AdaptOrderSchema(OrderBaseSchema):
    skew: Optional[str] = None
    franchise_exposure: Optional[str] = None


class CallLevelOrderSchema(OrderBaseSchema):
    level: Price


class PounceOrderSchema(OrderBaseSchema):
    level: Price


class PegOrderSchema(OrderBaseSchema):
    discretion_factor: Optional[str] = None


class ParticipationOrderSchema(OrderBaseSchema):
    participation_rate: Optional[str] = None
    execution_style: Optional[str] = None
    discretion_factor: Optional[str] = None
    delay_behaviour: Optional[str] = None
    skew: Optional[str] = None
    franchise_exposure: Optional[str] = None


class TwapOrderSchema(OrderBaseSchema):
    twap_target_end_time: Optional[int] = None
    twap_time_zone: Optional[str] = None


class FixingOrderSchema(OrderBaseSchema):
    fixing_id: Optional[int] = None
    fixing_date: Optional[str] = None


SCHEMA_MAP: dict[OrderType, type[OrderBaseSchema]] = {
    OrderType.FLOAT: FloatOrderSchema,
    OrderType.TAKE_PROFIT: TakeProfitOrderSchema,
    OrderType.STOP_LOSS: StopLossOrderSchema,
    OrderType.LIQUIDITY_SEEKER: LiquiditySeekerOrderSchema,
    OrderType.AGGRESSIVE: AggressiveOrderSchema,
    OrderType.IOC: IocOrderSchema,
    OrderType.ADAPT: AdaptOrderSchema,
    OrderType.CALL_LEVEL: CallLevelOrderSchema,
    OrderType.POUNCE: PounceOrderSchema,
    OrderType.PEG: PegOrderSchema,
    OrderType.PARTICIPATION: ParticipationOrderSchema,
    OrderType.TWAP: TwapOrderSchema,
    OrderType.FIXING: FixingOrderSchema,
}


# -- issue collection --------------------------------------------------------

def normalize_values(values: Mapping[str, Any]) -> dict[str, Any]:
    """Prepare order values for schema validation.

    ``None`` means "not provided" and is dropped; nested models are dumped
    to plain dicts and enum members to their values.
    """
    normalized: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", exclude_none=True)
        elif isinstance(value, Enum):
            value = value.value
        normalized[key] = value
    return normalized


def _issue_message(error: Mapping[str, Any]) -> str:
    loc = tuple(error.get("loc", ()))
    error_type = error.get("type", "")
    if loc:
        label = (_NESTED_LABELS.get(str(loc[-1]), get_field_label(str(loc[-1])))
                 if len(loc) > 1 else get_field_label(str(loc[0])))
    else:
        label = "Order"
    if error_type == "missing":
        return f"{label} is required"
    if error_type in _NUMBER_ERRORS:
        return f"{label} must be a number"
    return error["msg"]


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _expiry_strategy(values: Mapping[str, Any]) -> Any:
    expiry = values.get("expiry")
    if isinstance(expiry, Mapping):
        return expiry.get("strategy")
    return getattr(expiry, "strategy", None)


def cross_field_issues(values: Mapping[str, Any]) -> list[SchemaIssue]:
    """Check rules that depend on more than one field."""
    issues = []
    if values.get("start_mode") == StartMode.START_AT:
        if _blank(values.get("start_time")):
            issues.append(SchemaIssue(
                path=("start_time",),
                message="Start time is required when Start Mode is 'Start At'"))
        if _blank(values.get("start_date")):
            issues.append(SchemaIssue(
                path=("start_date",),
                message="Start date is required when Start Mode is 'Start At'"))
        if _blank(values.get("time_zone")):
            issues.append(SchemaIssue(
                path=("time_zone",),
                message="Timezone is required when Start Mode is 'Start At'"))

    if _expiry_strategy(values) in DATE_BOUND_STRATEGIES:
        if _blank(values.get("expiry_time")):
            issues.append(SchemaIssue(
                path=("expiry_time",), message="Expiry time is required for GTD/GTT orders"))
        if _blank(values.get("expiry_date")):
            issues.append(SchemaIssue(
                path=("expiry_date",), message="Expiry date is required for GTD/GTT orders"))
        if _blank(values.get("expiry_time_zone")):
            issues.append(SchemaIssue(
                path=("expiry_time_zone",),
                message="Expiry timezone is required for GTD/GTT orders"))
    return issues


def collect_issues(values: Mapping[str, Any]) -> list[SchemaIssue]:
    """Validate order values against the schema of their order type.

    Args:
        values: Derived order values (field key to value).

    Returns:
        Every schema issue found, per-field issues first. Empty if valid.
    """
    data = normalize_values(values)
    order_type = data.get("order_type")
    if order_type is None:
        return [SchemaIssue(path=("order_type",), message="Order Type is required")]
    try:
        schema = SCHEMA_MAP[OrderType(order_type)]
    except ValueError:
        return [SchemaIssue(path=("order_type",), message="Invalid order type")]

    issues: list[SchemaIssue] = []
    try:
        schema.model_validate(data)
    except ValidationError as e:
        for error in e.errors():
            issues.append(SchemaIssue(path=tuple(error["loc"]), message=_issue_message(error)))
    issues.extend(cross_field_issues(data))
    return issues


def issues_to_errors(issues: list[SchemaIssue]) -> dict[str, str]:
    """Reduce issues to one message per field, keeping the first."""
    errors: dict[str, str] = {}
    for issue in issues:
        errors.setdefault(issue.field, issue.message)
    return errors


def validate_order_for_submission(values: Mapping[str, Any]) -> ValidationResult:
    """Run the full schema pass used before a create or amend."""
    errors = issues_to_errors(collect_issues(values))
    return ValidationResult(valid=not errors, errors=errors)
