"""
Condition tree types for conditional field logic.

A condition is a base comparison on one field plus optional nested ``and``
and ``or`` children. The wire format uses the keys ``and``/``or``; since
those are Python keywords the attributes are ``and_``/``or_``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import Operator


class Condition(BaseModel):
    """
    A recursive boolean expression node.

    Examples:
        - country equals "US"
        - plan equals "pro" and seats greater_than 10
    """

    field_name: str = ""
    # Unknown operators are kept as plain strings and evaluate fail-open
    operator: Operator | str | None = None
    value: Any = None
    and_: list[Condition] | None = Field(default=None, alias="and")
    or_: list[Condition] | None = Field(default=None, alias="or")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ConditionalLogic(BaseModel):
    """Visibility and requiredness rules attached to a field."""

    show_if: Condition | None = None
    hide_if: Condition | None = None
    required_if: Condition | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")
