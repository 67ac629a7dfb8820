"""
Field renderer registry.

Maps a field type to the object that renders it. Validation dispatches on
the closed FieldType enum, but rendering is open: custom field types can
be registered here without touching the compiler.

The built-in renderers produce one-line text previews used by the CLI.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from lubforms.core.ir import FieldDefinition, FieldType, FileUpload


@runtime_checkable
class FieldRenderer(Protocol):
    """Anything that can render a field with its current value."""

    def render(self, field: FieldDefinition, value: Any) -> str: ...


class InputRenderer:
    """Single-line inputs: text, email, phone, url, number, dates."""

    def render(self, field: FieldDefinition, value: Any) -> str:
        shown = value if value not in (None, "") else (field.placeholder or "")
        return f"[{field.field_type}] {shown}".rstrip()


class TextareaRenderer:
    def render(self, field: FieldDefinition, value: Any) -> str:
        text = str(value or "")
        first_line = text.splitlines()[0] if text else ""
        suffix = " ..." if "\n" in text else ""
        return f"[textarea] {first_line}{suffix}".rstrip()


class ChoiceRenderer:
    """select, radio, country, state and checkbox_group."""

    def render(self, field: FieldDefinition, value: Any) -> str:
        selected = set(value) if isinstance(value, list | tuple) else {value}
        options = field.options.options if field.options else []
        if not options:
            return f"[{field.field_type}] {value or ''}".rstrip()
        marks = [f"({'x' if o.value in selected else ' '}) {o.label or o.value}" for o in options]
        return f"[{field.field_type}] " + "  ".join(marks)


class CheckboxRenderer:
    def render(self, field: FieldDefinition, value: Any) -> str:
        return f"[{'x' if value is True else ' '}] {field.label or field.name}"


class FileRenderer:
    def render(self, field: FieldDefinition, value: Any) -> str:
        files = value if isinstance(value, list | tuple) else ([value] if value else [])
        names = [_file_name(f) for f in files]
        return f"[file] {', '.join(names) or 'no file chosen'}"


def _file_name(value: Any) -> str:
    if isinstance(value, FileUpload):
        return value.name
    if isinstance(value, dict):
        return str(value.get("name", "?"))
    return str(value)


class HiddenRenderer:
    def render(self, field: FieldDefinition, value: Any) -> str:
        return "[hidden]"


class DisplayRenderer:
    """html, divider and recaptcha: no input, just a marker."""

    def render(self, field: FieldDefinition, value: Any) -> str:
        if field.field_type == FieldType.DIVIDER:
            return "-" * 20
        if field.field_type == FieldType.HTML:
            return f"[html] {field.default_value or field.label}".rstrip()
        return f"[{field.field_type}]"


_input = InputRenderer()
_choice = ChoiceRenderer()
_display = DisplayRenderer()

_renderers: dict[str, FieldRenderer] = {
    FieldType.TEXT: _input,
    FieldType.EMAIL: _input,
    FieldType.PHONE: _input,
    FieldType.URL: _input,
    FieldType.NUMBER: _input,
    FieldType.DATE: _input,
    FieldType.TIME: _input,
    FieldType.DATETIME: _input,
    FieldType.TEXTAREA: TextareaRenderer(),
    FieldType.SELECT: _choice,
    FieldType.RADIO: _choice,
    FieldType.COUNTRY: _choice,
    FieldType.STATE: _choice,
    FieldType.CHECKBOX_GROUP: _choice,
    FieldType.CHECKBOX: CheckboxRenderer(),
    FieldType.FILE: FileRenderer(),
    FieldType.HIDDEN: HiddenRenderer(),
    FieldType.HTML: _display,
    FieldType.DIVIDER: _display,
    FieldType.RECAPTCHA: _display,
}


def get_field_renderer(field_type: str) -> FieldRenderer | None:
    """Renderer registered for a field type, or None if there is none."""
    return _renderers.get(str(field_type))


def register_field_renderer(field_type: str, renderer: FieldRenderer) -> None:
    """Register (or replace) the renderer for a field type."""
    if not isinstance(renderer, FieldRenderer):
        raise TypeError(f"{renderer!r} does not implement render(field, value)")
    _renderers[str(field_type)] = renderer
