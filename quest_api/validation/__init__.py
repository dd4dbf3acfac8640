"""Strict schema validation for request bodies."""

from quest_api.validation import schema
from quest_api.validation.fields import FieldKind, FieldSpec, ValidationSchema
from quest_api.validation.validator import (
    FieldViolation,
    ValidationResult,
    validate,
    validate_or_raise,
)

__all__ = [
    "FieldKind",
    "FieldSpec",
    "FieldViolation",
    "ValidationResult",
    "ValidationSchema",
    "schema",
    "validate",
    "validate_or_raise",
]
