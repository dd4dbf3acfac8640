"""Shorthand constructors for field specs.

Each kind comes in an optional and a required form::

    WAITLIST_SCHEMA = ValidationSchema(
        firstName=schema.required_string(min_length=1, max_length=100),
        email=schema.required_email(),
        role=schema.required_enum(["student", "teacher"]),
        organization=schema.string(max_length=255),
    )
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Pattern

from quest_api.validation.fields import (
    DEFAULT_ARRAY_MAX_ITEMS,
    DEFAULT_EMAIL_MAX_LENGTH,
    DEFAULT_STRING_MAX_LENGTH,
    DEFAULT_URL_MAX_LENGTH,
    ArrayField,
    BooleanField,
    EmailField,
    EnumField,
    FieldSpec,
    NumberField,
    ObjectField,
    StringField,
    UrlField,
    ValidationSchema,
)


def string(
    *,
    min_length: int = 0,
    max_length: int = DEFAULT_STRING_MAX_LENGTH,
    pattern: Pattern[str] | str | None = None,
    trim: bool = True,
    required: bool = False,
) -> StringField:
    return StringField(
        required=required,
        min_length=min_length,
        max_length=max_length,
        pattern=pattern,
        trim=trim,
    )


def required_string(**constraints: Any) -> StringField:
    return string(required=True, **constraints)


def email(
    *,
    min_length: int = 0,
    max_length: int = DEFAULT_EMAIL_MAX_LENGTH,
    pattern: Pattern[str] | str | None = None,
    required: bool = False,
) -> EmailField:
    return EmailField(
        required=required,
        min_length=min_length,
        max_length=max_length,
        pattern=pattern,
    )


def required_email(**constraints: Any) -> EmailField:
    return email(required=True, **constraints)


def number(
    *,
    min: float | None = None,
    max: float | None = None,
    integer_only: bool = False,
    required: bool = False,
) -> NumberField:
    return NumberField(required=required, min=min, max=max, integer_only=integer_only)


def required_number(**constraints: Any) -> NumberField:
    return number(required=True, **constraints)


def boolean(*, required: bool = False) -> BooleanField:
    return BooleanField(required=required)


def required_boolean() -> BooleanField:
    return boolean(required=True)


def enum(allowed_values: Iterable[Any], *, required: bool = False) -> EnumField:
    return EnumField(required=required, allowed_values=tuple(allowed_values))


def required_enum(allowed_values: Iterable[Any]) -> EnumField:
    return enum(allowed_values, required=True)


def url(
    *,
    min_length: int = 0,
    max_length: int = DEFAULT_URL_MAX_LENGTH,
    required: bool = False,
) -> UrlField:
    return UrlField(required=required, min_length=min_length, max_length=max_length)


def required_url(**constraints: Any) -> UrlField:
    return url(required=True, **constraints)


def array(
    item_schema: FieldSpec | None = None,
    *,
    max_items: int = DEFAULT_ARRAY_MAX_ITEMS,
    required: bool = False,
) -> ArrayField:
    return ArrayField(required=required, item_schema=item_schema, max_items=max_items)


def required_array(item_schema: FieldSpec | None = None, **constraints: Any) -> ArrayField:
    return array(item_schema, required=True, **constraints)


def object_(
    fields: ValidationSchema | Mapping[str, FieldSpec] | None = None,
    *,
    required: bool = False,
) -> ObjectField:
    """Object field; pass ``fields`` to validate its contents recursively."""
    return ObjectField(
        required=required,
        schema=ValidationSchema(fields) if fields is not None else None,
    )


def required_object(
    fields: ValidationSchema | Mapping[str, FieldSpec] | None = None,
) -> ObjectField:
    return object_(fields, required=True)
