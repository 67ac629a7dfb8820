"""
Field definition types for lubforms.

This module contains the declarative field model consumed by the
condition evaluator, the resolver, the schema compiler and the step
partitioner.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .conditions import ConditionalLogic
from .enums import DISPLAY_ONLY_TYPES, FieldType, FieldWidth


class ValidationRules(BaseModel):
    """
    Declarative validation rules for a field.

    Only the subset meaningful for the field's type is applied; the rest
    are ignored.
    """

    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    allowed_types: list[str] | None = None
    max_file_size: float | None = None  # megabytes
    custom_error: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SelectOption(BaseModel):
    """A choice offered by select, radio and checkbox_group fields."""

    value: str
    label: str = ""
    selected: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    @field_validator("label", "selected", mode="before")
    @classmethod
    def null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Treat an explicit null as the field default."""
        return _default_if_none(cls, v, info)


class FieldOptions(BaseModel):
    """Choice configuration for option-bearing fields."""

    options: list[SelectOption] = Field(default_factory=list)
    allow_other: bool = False
    other_label: str | None = None
    multiple: bool = False
    searchable: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def values(self) -> list[str]:
        return [o.value for o in self.options]


class FileUpload(BaseModel):
    """
    A file-like value held in the value snapshot.

    Mirrors what a browser exposes for a selected file: name, size in
    bytes and MIME type.
    """

    name: str
    size: int = 0
    content_type: str = Field(default="", validation_alias=AliasChoices("content_type", "type"))

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FieldDefinition(BaseModel):
    """
    A single field of a server-defined form.

    ``field_type`` is kept as a plain string when the server sends a kind
    this client does not know; such fields compile to an accept-anything
    validator.
    """

    id: str
    name: str
    field_type: FieldType | str = Field(validation_alias=AliasChoices("field_type", "type"))
    label: str = ""
    placeholder: str | None = None
    default_value: Any = None
    help_text: str | None = None
    display_order: int = 0
    required: bool = False
    validation_rules: ValidationRules | None = None
    options: FieldOptions | None = None
    conditional_logic: ConditionalLogic | None = None
    width: FieldWidth | str = FieldWidth.FULL
    css_class: str | None = None
    is_active: bool = True

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    @field_validator("label", "display_order", "required", "width", "is_active", mode="before")
    @classmethod
    def null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Treat an explicit null as the field default."""
        return _default_if_none(cls, v, info)

    @property
    def is_input(self) -> bool:
        """Check if this field carries user input (i.e. is not display-only)."""
        return self.field_type not in DISPLAY_ONLY_TYPES

    @property
    def custom_error(self) -> str | None:
        if self.validation_rules:
            return self.validation_rules.custom_error
        return None


def _default_if_none(model: type[BaseModel], value: Any, info: ValidationInfo) -> Any:
    if value is None and info.field_name is not None:
        return model.model_fields[info.field_name].get_default(call_default_factory=True)
    return value
