"""
Tests for step partitioning, row packing and progress.
"""

import pytest

from lubforms.core.errors import DefinitionError
from lubforms.core.ir import FormDefinition
from lubforms.runtime.step_partitioner import (
    IMPLICIT_STEP_ID,
    field_width_value,
    layout_rows,
    progress,
    steps_for,
    total_steps,
)


def widths(rows):
    return [[f.width for f in row] for row in rows]


class TestLayoutRows:
    """Tests for greedy first-fit two-column packing."""

    def test_mixed_widths(self, make_field):
        order = ["half", "half", "third", "full", "quarter", "quarter"]
        fields = [make_field(f"f{i}", width=w) for i, w in enumerate(order)]

        rows = layout_rows(fields, "two_column")

        assert widths(rows) == [
            ["half", "half"],
            ["third"],
            ["full"],
            ["quarter", "quarter"],
        ]
        assert [f.name for row in rows for f in row] == [f.name for f in fields]

    def test_three_thirds_share_a_row(self, make_field):
        fields = [make_field(f"f{i}", width="third") for i in range(4)]
        assert widths(layout_rows(fields, "two_column")) == [
            ["third", "third", "third"],
            ["third"],
        ]

    def test_full_width_flushes_partial_row(self, make_field):
        fields = [make_field("a", width="quarter"), make_field("b"), make_field("c", width="half")]
        assert widths(layout_rows(fields, "two_column")) == [["quarter"], ["full"], ["half"]]

    @pytest.mark.parametrize("layout", ["vertical", "horizontal"])
    def test_other_layouts_put_one_field_per_row(self, make_field, layout):
        fields = [make_field("a", width="half"), make_field("b", width="half")]
        assert len(layout_rows(fields, layout)) == 2

    def test_empty(self):
        assert layout_rows([], "two_column") == []

    def test_width_values(self):
        assert field_width_value("half") == 0.5
        assert field_width_value("third") == 0.333
        assert field_width_value("giant") == 1.0
        assert field_width_value(None) == 1.0


class TestStepsFor:
    def test_single_step_form_yields_implicit_step(self, make_field):
        form = FormDefinition(
            id="f",
            name="Newsletter",
            fields=[
                make_field("b", display_order=2),
                make_field("a", display_order=1),
                make_field("gone", display_order=0, is_active=False),
            ],
        )
        (view,) = steps_for(form)
        assert view.step.id == IMPLICIT_STEP_ID
        assert view.step.name == "Newsletter"
        assert view.field_names == ["a", "b"]
        assert total_steps(form) == 1

    def test_multi_step_without_steps_is_single_step(self, make_field):
        form = FormDefinition(id="f", is_multi_step=True, steps=[], fields=[make_field("a")])
        assert [v.step.id for v in steps_for(form)] == [IMPLICIT_STEP_ID]
        assert total_steps(form) == 1

    def test_steps_sorted_and_fields_in_display_order(self, two_step_form):
        views = steps_for(two_step_form)
        assert [v.step.id for v in views] == ["s1", "s2"]
        assert [v.field_names for v in views] == [["email", "name"], ["message", "tier"]]
        assert total_steps(two_step_form) == 2

    def test_fields_in_no_step_are_not_shown(self, two_step_form_data):
        two_step_form_data["fields"].append(
            {"id": "f_orphan", "name": "orphan", "type": "text", "display_order": 9}
        )
        form = FormDefinition.model_validate(two_step_form_data)
        names = [n for v in steps_for(form) for n in v.field_names]
        assert "orphan" not in names

    def test_values_filter_hidden_fields(self, make_field):
        form = FormDefinition(
            id="f",
            fields=[
                make_field("kind"),
                make_field(
                    "company",
                    conditional_logic={
                        "show_if": {"field_name": "kind", "operator": "equals", "value": "biz"}
                    },
                ),
            ],
        )
        assert steps_for(form)[0].field_names == ["kind", "company"]
        assert steps_for(form, {"kind": "home"})[0].field_names == ["kind"]

    def test_requires_form(self):
        with pytest.raises(DefinitionError):
            steps_for(None)


class TestProgress:
    @pytest.mark.parametrize(
        ("current", "count", "expected"),
        [
            (0, 1, 100),
            (0, 0, 100),
            (0, 2, 50),
            (1, 2, 100),
            (0, 3, 33),
            (1, 3, 67),
            (0, 8, 13),
        ],
    )
    def test_progress(self, current, count, expected):
        assert progress(current, count) == expected
