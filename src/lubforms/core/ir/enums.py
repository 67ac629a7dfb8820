"""
Enumerations for the lubforms form definition model.
"""

from __future__ import annotations

from enum import StrEnum


class FieldType(StrEnum):
    """Closed set of field kinds a server-defined form may contain."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    URL = "url"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    CHECKBOX_GROUP = "checkbox_group"
    FILE = "file"
    HIDDEN = "hidden"
    COUNTRY = "country"
    STATE = "state"
    # Display-only kinds, never part of a compiled schema
    HTML = "html"
    DIVIDER = "divider"
    RECAPTCHA = "recaptcha"


DISPLAY_ONLY_TYPES: frozenset[str] = frozenset(
    {FieldType.HTML, FieldType.DIVIDER, FieldType.RECAPTCHA}
)


class FieldWidth(StrEnum):
    """Fractional width a field occupies in a row."""

    FULL = "full"
    HALF = "half"
    THIRD = "third"
    QUARTER = "quarter"


class Operator(StrEnum):
    """Comparison operators available to condition trees."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class FormLayout(StrEnum):
    """Overall layout of the rendered field set."""

    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    TWO_COLUMN = "two_column"


class SessionStatus(StrEnum):
    """Lifecycle states of a form session."""

    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"
