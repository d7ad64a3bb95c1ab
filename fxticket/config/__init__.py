"""Static configuration: order types, fields, visibility and validation."""

from fxticket.config.field_registry import (
    FIELD_REGISTRY,
    FieldCodec,
    FieldDefinition,
    FieldKind,
    codec_for,
    format_field_value,
    get_field_label,
    parse_field_value,
)
from fxticket.config.order_config import ORDER_TYPES, OrderConfig, get_order_config, get_view_fields
from fxticket.config.settings import TicketSettings, load_settings
from fxticket.config.validation import (
    SCHEMA_MAP,
    SchemaIssue,
    ValidationResult,
    collect_issues,
    validate_order_for_submission,
)
from fxticket.config.visibility import FIELD_VISIBILITY_RULES, filter_visible_fields, is_visible

__all__ = [
    "FIELD_REGISTRY",
    "FIELD_VISIBILITY_RULES",
    "ORDER_TYPES",
    "SCHEMA_MAP",
    "FieldCodec",
    "FieldDefinition",
    "FieldKind",
    "OrderConfig",
    "SchemaIssue",
    "TicketSettings",
    "ValidationResult",
    "codec_for",
    "collect_issues",
    "filter_visible_fields",
    "format_field_value",
    "get_field_label",
    "get_order_config",
    "get_view_fields",
    "is_visible",
    "load_settings",
    "parse_field_value",
    "validate_order_for_submission",
]
