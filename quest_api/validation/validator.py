"""Strict schema validation for untyped request bodies.

Checks every declared field, collects all violations instead of stopping at
the first one, and returns a sanitized dict holding only declared fields.
Undeclared input fields either fail validation (the default) or are dropped.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

from quest_api.core.errors import ValidationFailedError
from quest_api.validation.fields import (
    ArrayField,
    EnumField,
    FieldKind,
    FieldSpec,
    NumberField,
    ObjectField,
    ValidationSchema,
    TextFieldSpec,
)

logger = logging.getLogger(__name__)

ROOT_FIELD = "$root"

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
ALLOWED_URL_SCHEMES = frozenset({"http", "https"})
_WHITESPACE = re.compile(r"[\s\x00-\x1f\x7f]")


@dataclass(frozen=True)
class FieldViolation:
    """One problem with one field.

    Messages name the violated constraint only, never internal state.
    """

    field: str
    code: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    """Sanitized data on success, or the full list of violations."""

    data: dict[str, Any] | None
    violations: tuple[FieldViolation, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def invalid_fields(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(v.field for v in self.violations))

    def unwrap(self) -> dict[str, Any]:
        """Return the sanitized data or raise ``ValidationFailedError``."""
        if self.violations or self.data is None:
            raise ValidationFailedError(self.violations)
        return self.data


class _FieldError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class _Context:
    reject_unknown_fields: bool
    violations: list[FieldViolation] = field(default_factory=list)

    def add(self, path: str, code: str, message: str) -> None:
        self.violations.append(FieldViolation(path, code, message))


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _check_text(value: Any, spec: TextFieldSpec) -> str:
    if not isinstance(value, str):
        raise _FieldError("type", f"Expected string, got {_type_name(value)}")

    text = value.strip() if spec.trim else value

    if len(text) < spec.min_length:
        raise _FieldError(
            "min_length",
            f"String length {len(text)} is less than minimum {spec.min_length}",
        )
    if len(text) > spec.max_length:
        raise _FieldError("max_length", f"String length exceeds maximum of {spec.max_length}")
    if spec.pattern is not None and not spec.pattern.search(text):
        raise _FieldError("pattern", "String does not match required pattern")

    return text


def _check_string(value: Any, spec: FieldSpec, path: str, ctx: _Context) -> str:
    return _check_text(value, spec)


def _check_email(value: Any, spec: FieldSpec, path: str, ctx: _Context) -> str:
    text = _check_text(value, spec)
    if not EMAIL_PATTERN.fullmatch(text):
        raise _FieldError("format", "Invalid email format")
    return text.lower()


def _check_url(value: Any, spec: FieldSpec, path: str, ctx: _Context) -> str:
    text = _check_text(value, spec)
    if _WHITESPACE.search(text):
        raise _FieldError("format", "Invalid URL format")
    try:
        parts = urlsplit(text)
        # Accessing .port validates it.
        parts.port
    except ValueError:
        raise _FieldError("format", "Invalid URL format") from None

    if not parts.scheme:
        raise _FieldError("format", "Invalid URL format")
    if parts.scheme not in ALLOWED_URL_SCHEMES:
        raise _FieldError("scheme", "Only HTTP and HTTPS URLs are allowed")
    if not parts.hostname:
        raise _FieldError("format", "Invalid URL format")
    return text


def _check_number(value: Any, spec: NumberField, path: str, ctx: _Context) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _FieldError("type", f"Expected number, got {_type_name(value)}")
    if isinstance(value, float) and not math.isfinite(value):
        raise _FieldError("type", "Expected a finite number")
    if spec.integer_only and isinstance(value, float) and not value.is_integer():
        raise _FieldError("integer", "Expected integer")
    if spec.min is not None and value < spec.min:
        raise _FieldError("min", f"Number {value} is less than minimum {spec.min}")
    if spec.max is not None and value > spec.max:
        raise _FieldError("max", f"Number {value} exceeds maximum {spec.max}")
    return value


def _check_boolean(value: Any, spec: FieldSpec, path: str, ctx: _Context) -> bool:
    if not isinstance(value, bool):
        raise _FieldError("type", f"Expected boolean, got {_type_name(value)}")
    return value


def _same_member(value: Any, allowed: Any) -> bool:
    # True == 1 in Python; enum membership must not conflate them.
    if isinstance(value, bool) or isinstance(allowed, bool):
        return type(value) is type(allowed) and value == allowed
    return value == allowed


def _check_enum(value: Any, spec: EnumField, path: str, ctx: _Context) -> Any:
    if not any(_same_member(value, allowed) for allowed in spec.allowed_values):
        choices = ", ".join(str(allowed) for allowed in spec.allowed_values)
        raise _FieldError("enum", f"Value must be one of: {choices}")
    return value


def _check_array(value: Any, spec: ArrayField, path: str, ctx: _Context) -> list[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise _FieldError("type", f"Expected array, got {_type_name(value)}")
    if len(value) > spec.max_items:
        raise _FieldError(
            "max_items",
            f"Array length {len(value)} exceeds maximum of {spec.max_items}",
        )
    if spec.item_schema is None:
        return list(value)

    items: list[Any] = []
    for index, item in enumerate(value):
        _, checked = _validate_value(item, spec.item_schema, f"{path}[{index}]", ctx)
        items.append(checked)
    return items


def _check_object(value: Any, spec: ObjectField, path: str, ctx: _Context) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise _FieldError("type", f"Expected object, got {_type_name(value)}")
    if spec.schema is None:
        return dict(value)
    return _validate_fields(value, spec.schema, f"{path}.", ctx)


_Check = Callable[[Any, Any, str, _Context], Any]

_CHECKS: dict[FieldKind, _Check] = {
    FieldKind.STRING: _check_string,
    FieldKind.EMAIL: _check_email,
    FieldKind.NUMBER: _check_number,
    FieldKind.BOOLEAN: _check_boolean,
    FieldKind.ENUM: _check_enum,
    FieldKind.URL: _check_url,
    FieldKind.ARRAY: _check_array,
    FieldKind.OBJECT: _check_object,
}

_unhandled = set(FieldKind) - set(_CHECKS)
if _unhandled:
    raise RuntimeError(f"no check registered for field kinds: {sorted(k.value for k in _unhandled)}")


def _validate_value(value: Any, spec: FieldSpec, path: str, ctx: _Context) -> tuple[bool, Any]:
    if value is None:
        if spec.required:
            ctx.add(path, "required", "Field is required")
            return False, None
        return True, None

    try:
        return True, _CHECKS[spec.kind](value, spec, path, ctx)
    except _FieldError as exc:
        ctx.add(path, exc.code, exc.message)
        return False, None


def _validate_fields(
    data: Mapping[str, Any],
    schema: ValidationSchema,
    prefix: str,
    ctx: _Context,
) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}

    for name, spec in schema.items():
        path = f"{prefix}{name}"
        if name not in data:
            if spec.required:
                ctx.add(path, "required", "Field is required")
            continue
        ok, value = _validate_value(data[name], spec, path, ctx)
        if ok:
            sanitized[name] = value

    if ctx.reject_unknown_fields:
        for key in data:
            if key not in schema:
                ctx.add(f"{prefix}{key}", "unknown_field", "Unexpected field")

    return sanitized


def validate(
    data: Any,
    schema: ValidationSchema | Mapping[str, FieldSpec],
    *,
    reject_unknown_fields: bool = True,
) -> ValidationResult:
    """Validate ``data`` against ``schema``.

    Args:
        data: Parsed request body (any JSON value).
        schema: Declared fields.
        reject_unknown_fields: Fail on undeclared input fields when True,
            drop them silently when False.

    Returns:
        ValidationResult: sanitized data, or every violation found.
    """

    if not isinstance(schema, ValidationSchema):
        schema = ValidationSchema(schema)

    if not isinstance(data, Mapping):
        violation = FieldViolation(ROOT_FIELD, "root_type", "Expected object as root value")
        logger.info(
            "validation.failed",
            extra={"violation_fields": [ROOT_FIELD], "violation_codes": ["root_type"]},
        )
        return ValidationResult(data=None, violations=(violation,))

    ctx = _Context(reject_unknown_fields=reject_unknown_fields)
    sanitized = _validate_fields(data, schema, "", ctx)

    if ctx.violations:
        logger.info(
            "validation.failed",
            extra={
                "violation_fields": [v.field for v in ctx.violations],
                "violation_codes": [v.code for v in ctx.violations],
            },
        )
        return ValidationResult(data=None, violations=tuple(ctx.violations))

    return ValidationResult(data=sanitized)


def validate_or_raise(
    data: Any,
    schema: ValidationSchema | Mapping[str, FieldSpec],
    *,
    reject_unknown_fields: bool = True,
) -> dict[str, Any]:
    """Validate and return sanitized data.

    Raises:
        ValidationFailedError: Listing every violated field.
    """

    return validate(data, schema, reject_unknown_fields=reject_unknown_fields).unwrap()
