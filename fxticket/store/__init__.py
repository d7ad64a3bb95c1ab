"""Ticket state: layered values, validation, reference data and submission."""

from fxticket.store.layers import HARDCODED_DEFAULTS, OVERLAY_FIELDS, LayeredValueStore
from fxticket.store.refdata import ReferenceDataStore, build_reference_data
from fxticket.store.scheduler import FieldDebouncer
from fxticket.store.submission import (
    SubmissionStateMachine,
    build_amend_payload,
    build_create_payload,
)
from fxticket.store.ticket import OrderTicket
from fxticket.store.validation import ValidationEngine, ValidationSnapshot, ValidationState

__all__ = [
    "HARDCODED_DEFAULTS",
    "OVERLAY_FIELDS",
    "FieldDebouncer",
    "LayeredValueStore",
    "OrderTicket",
    "ReferenceDataStore",
    "SubmissionStateMachine",
    "ValidationEngine",
    "ValidationSnapshot",
    "ValidationState",
    "build_amend_payload",
    "build_create_payload",
    "build_reference_data",
]
