"""
Step partitioning and row layout for forms.

Groups a form's fields into ordered steps and packs a field list into
rows for the two-column layout.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from lubforms.core.errors import DefinitionError
from lubforms.core.ir import FieldDefinition, FieldWidth, FormDefinition, FormLayout, FormStep

from .visibility import visible_fields

IMPLICIT_STEP_ID = "__all__"

FIELD_WIDTHS: dict[str, float] = {
    FieldWidth.FULL: 1.0,
    FieldWidth.HALF: 0.5,
    FieldWidth.THIRD: 0.333,
    FieldWidth.QUARTER: 0.25,
}


@dataclass(frozen=True)
class StepView:
    """A step together with its member fields, in display order."""

    step: FormStep
    fields: list[FieldDefinition]

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


def steps_for(form: FormDefinition, values: Mapping[str, Any] | None = None) -> list[StepView]:
    """
    Partition a form's active fields into ordered steps.

    Single-step forms (or multi-step forms without declared steps) yield one
    implicit step holding every active field. When ``values`` is given,
    fields hidden by conditional logic are dropped from every step.

    Args:
        form: Form definition
        values: Optional value snapshot for visibility filtering

    Returns:
        Steps in display order; a step may have no fields
    """
    if form is None:
        raise DefinitionError("steps_for() requires a form definition")

    active = form.active_fields
    if values is not None:
        active = visible_fields(active, values)

    if not form.is_multi_step or not form.steps:
        implicit = FormStep(
            id=IMPLICIT_STEP_ID,
            name=form.name,
            description=None,
            field_ids=[f.id for f in active],
        )
        return [StepView(step=implicit, fields=active)]

    ordered_steps = sorted(form.steps, key=lambda s: s.display_order)
    views = []
    for step in ordered_steps:
        member_ids = set(step.field_ids)
        views.append(StepView(step=step, fields=[f for f in active if f.id in member_ids]))
    return views


def total_steps(form: FormDefinition) -> int:
    """Number of steps the form is navigated through (at least 1)."""
    if form.is_multi_step and form.steps:
        return len(form.steps)
    return 1


def field_width_value(width: FieldWidth | str | None) -> float:
    """Fractional width of a field; unknown widths count as full."""
    if width is None:
        return 1.0
    return FIELD_WIDTHS.get(width, 1.0)


def layout_rows(
    fields: Sequence[FieldDefinition], layout: FormLayout | str = FormLayout.VERTICAL
) -> list[list[FieldDefinition]]:
    """
    Group fields into rows for rendering.

    Only the two-column layout packs several fields per row; every other
    layout puts each field on its own row. Packing is greedy first-fit in
    the given order: full-width fields flush the current row and stand
    alone, other fields start a new row when they would push the running
    width above 1.

    Args:
        fields: Fields in display order
        layout: Form layout

    Returns:
        Rows of fields, in order
    """
    if layout != FormLayout.TWO_COLUMN:
        return [[f] for f in fields]

    rows: list[list[FieldDefinition]] = []
    current_row: list[FieldDefinition] = []
    current_width = 0.0

    for field in fields:
        width = field_width_value(field.width)

        if width >= 1:
            if current_row:
                rows.append(current_row)
                current_row = []
                current_width = 0.0
            rows.append([field])
            continue

        if current_width + width > 1:
            rows.append(current_row)
            current_row = [field]
            current_width = width
        else:
            current_row.append(field)
            current_width += width

    if current_row:
        rows.append(current_row)

    return rows


def progress(current_step: int, step_count: int) -> int:
    """Percentage of the form reached at ``current_step`` (0-based)."""
    if step_count <= 1:
        return 100
    return math.floor((current_step + 1) / step_count * 100 + 0.5)
