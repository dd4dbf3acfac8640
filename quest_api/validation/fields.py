"""Field specifications for request body schemas.

A ``FieldSpec`` is one of a closed set of frozen dataclasses, one per
``FieldKind``. Constraint consistency is checked when the spec is built, so a
bad schema fails at import time of the handler that declares it rather than
while a request is being validated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, Mapping, Pattern


class FieldKind(str, Enum):
    STRING = "string"
    EMAIL = "email"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    URL = "url"
    ARRAY = "array"
    OBJECT = "object"


DEFAULT_STRING_MAX_LENGTH = 255
DEFAULT_EMAIL_MAX_LENGTH = 254
DEFAULT_URL_MAX_LENGTH = 2048
DEFAULT_ARRAY_MAX_ITEMS = 100


@dataclass(frozen=True)
class FieldSpec:
    """Base class for every field kind."""

    kind: ClassVar[FieldKind]

    required: bool = False


@dataclass(frozen=True)
class TextFieldSpec(FieldSpec):
    min_length: int = 0
    max_length: int = DEFAULT_STRING_MAX_LENGTH
    pattern: Pattern[str] | str | None = None
    trim: bool = True

    def __post_init__(self) -> None:
        if self.min_length < 0:
            raise ValueError("min_length must be >= 0")
        if self.max_length < self.min_length:
            raise ValueError("max_length must be >= min_length")
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))


@dataclass(frozen=True)
class StringField(TextFieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.STRING


@dataclass(frozen=True)
class EmailField(TextFieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.EMAIL

    max_length: int = DEFAULT_EMAIL_MAX_LENGTH


@dataclass(frozen=True)
class UrlField(TextFieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.URL

    max_length: int = DEFAULT_URL_MAX_LENGTH


@dataclass(frozen=True)
class NumberField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.NUMBER

    min: float | None = None
    max: float | None = None
    integer_only: bool = False

    def __post_init__(self) -> None:
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must be <= max")


@dataclass(frozen=True)
class BooleanField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.BOOLEAN


@dataclass(frozen=True)
class EnumField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.ENUM

    allowed_values: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not self.allowed_values:
            raise ValueError("allowed_values must not be empty")
        object.__setattr__(self, "allowed_values", tuple(self.allowed_values))


@dataclass(frozen=True)
class ArrayField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.ARRAY

    item_schema: FieldSpec | None = None
    max_items: int = DEFAULT_ARRAY_MAX_ITEMS

    def __post_init__(self) -> None:
        if self.max_items < 0:
            raise ValueError("max_items must be >= 0")
        if self.item_schema is not None and not isinstance(self.item_schema, FieldSpec):
            raise TypeError("item_schema must be a FieldSpec")


@dataclass(frozen=True)
class ObjectField(FieldSpec):
    kind: ClassVar[FieldKind] = FieldKind.OBJECT

    schema: ValidationSchema | None = None

    def __post_init__(self) -> None:
        if self.schema is not None and not isinstance(self.schema, ValidationSchema):
            object.__setattr__(self, "schema", ValidationSchema(self.schema))


class ValidationSchema(Mapping[str, FieldSpec]):
    """Immutable mapping of field name to ``FieldSpec``."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, FieldSpec] | None = None, /, **kwargs: FieldSpec) -> None:
        merged = dict(fields or {}, **kwargs)
        for name, spec in merged.items():
            if not isinstance(name, str) or not name:
                raise ValueError("field names must be non-empty strings")
            if not isinstance(spec, FieldSpec):
                raise TypeError(f"field '{name}' must be declared with a FieldSpec")
        self._fields = MappingProxyType(merged)

    def __getitem__(self, name: str) -> FieldSpec:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __hash__(self) -> int:
        return hash(tuple(self._fields.items()))

    def __repr__(self) -> str:
        return f"ValidationSchema({dict(self._fields)!r})"
