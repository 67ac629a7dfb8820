"""
Visibility and requiredness resolution for form fields.

Derives, for a field set and a value snapshot, which fields are shown and
which are required. All functions are pure and safe to call on every
value change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from lubforms.core.errors import DefinitionError
from lubforms.core.ir import FieldDefinition

from .condition_evaluator import evaluate_condition


def is_visible(field: FieldDefinition, values: Mapping[str, Any]) -> bool:
    """
    Check whether a field is currently shown.

    ``show_if`` takes precedence over ``hide_if``; a field with neither is
    always visible.
    """
    if field is None:
        raise DefinitionError("is_visible() requires a field definition")

    logic = field.conditional_logic
    if logic is None:
        return True
    if logic.show_if is not None:
        return evaluate_condition(logic.show_if, values)
    if logic.hide_if is not None:
        return not evaluate_condition(logic.hide_if, values)
    return True


def is_required(field: FieldDefinition, values: Mapping[str, Any]) -> bool:
    """
    Check whether a field is currently required.

    ``required_if`` can only add requiredness to the static flag.
    """
    if field is None:
        raise DefinitionError("is_required() requires a field definition")

    if field.required:
        return True
    logic = field.conditional_logic
    if logic is not None and logic.required_if is not None:
        return evaluate_condition(logic.required_if, values)
    return False


def visible_fields(
    fields: Sequence[FieldDefinition], values: Mapping[str, Any]
) -> list[FieldDefinition]:
    """Active fields that are currently visible, in the given order."""
    _require_fields(fields)
    return [f for f in fields if f.is_active and is_visible(f, values)]


def required_names(fields: Iterable[FieldDefinition], values: Mapping[str, Any]) -> set[str]:
    """Names of active fields that are currently required."""
    _require_fields(fields)
    return {f.name for f in fields if f.is_active and is_required(f, values)}


class FieldResolver:
    """
    Name-based lookups over a fixed field list.

    Unknown names are reported as neither visible nor required.
    """

    def __init__(self, fields: Sequence[FieldDefinition]):
        _require_fields(fields)
        self.fields = list(fields)
        self._by_name = {f.name: f for f in self.fields if f.is_active}

    def get(self, name: str) -> FieldDefinition | None:
        return self._by_name.get(name)

    def is_field_visible(self, name: str, values: Mapping[str, Any]) -> bool:
        field = self._by_name.get(name)
        if field is None:
            return False
        return is_visible(field, values)

    def is_field_required(self, name: str, values: Mapping[str, Any]) -> bool:
        field = self._by_name.get(name)
        if field is None:
            return False
        return is_required(field, values)

    def visible_fields(self, values: Mapping[str, Any]) -> list[FieldDefinition]:
        return visible_fields(self.fields, values)

    def required_names(self, values: Mapping[str, Any]) -> set[str]:
        return required_names(self.fields, values)


def _require_fields(fields: Iterable[FieldDefinition] | None) -> None:
    if fields is None:
        raise DefinitionError("Field resolution requires a list of field definitions")
