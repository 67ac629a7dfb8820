"""
Condition tree evaluator for conditional field logic.

Evaluates a Condition against a snapshot of form values. Evaluation is
pure and total: malformed conditions never raise, unknown operators
fail open (evaluate to True) so a misconfigured rule cannot hide fields.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from lubforms.core.ir import Condition, Operator

from .logging import get_engine_logger, log_with_context

logger = get_engine_logger()

# =============================================================================
# Condition Evaluation
# =============================================================================


def evaluate_condition(
    condition: Condition | Mapping[str, Any], values: Mapping[str, Any]
) -> bool:
    """
    Evaluate a condition tree against form values.

    The base comparison is computed first. ``and`` children must all be
    true, otherwise the whole condition is false. ``or`` children gate the
    base result: the outcome is ``base AND any(or children)``.

    Args:
        condition: Condition tree to evaluate
        values: Field name -> raw value snapshot (never mutated)

    Returns:
        True if the condition holds
    """
    if isinstance(condition, Mapping):
        try:
            condition = Condition.model_validate(condition)
        except ValidationError as exc:
            log_with_context(
                logger,
                logging.WARNING,
                "Malformed condition, treating as satisfied",
                error_count=exc.error_count(),
            )
            return True

    field_value = values.get(condition.field_name) if condition.field_name else None
    result = compare_values(field_value, condition.operator, condition.value)

    if condition.and_:
        for child in condition.and_:
            if not evaluate_condition(child, values):
                return False

    if condition.or_:
        or_result = any(evaluate_condition(child, values) for child in condition.or_)
        result = result and or_result

    return result


def compare_values(field_value: Any, operator: Operator | str | None, compare_value: Any) -> bool:
    """
    Compare a field value against a condition value.

    Args:
        field_value: Current value from the snapshot (None when absent)
        operator: Comparison operator
        compare_value: Literal from the condition

    Returns:
        True if the comparison passes; True for unknown operators
    """
    if operator == Operator.EQUALS:
        return normalize_value(field_value) == normalize_value(compare_value)
    if operator == Operator.NOT_EQUALS:
        return normalize_value(field_value) != normalize_value(compare_value)
    if operator == Operator.CONTAINS:
        # A missing condition value is contained in nothing
        if compare_value is None:
            return False
        return _stringify(compare_value).lower() in _stringify(field_value).lower()
    if operator == Operator.NOT_CONTAINS:
        if compare_value is None:
            return True
        return _stringify(compare_value).lower() not in _stringify(field_value).lower()
    if operator == Operator.GREATER_THAN:
        # NaN compares false both ways
        return to_number(field_value) > to_number(compare_value)
    if operator == Operator.LESS_THAN:
        return to_number(field_value) < to_number(compare_value)
    if operator == Operator.IS_EMPTY:
        return is_empty(field_value)
    if operator == Operator.IS_NOT_EMPTY:
        return not is_empty(field_value)

    log_with_context(
        logger,
        logging.WARNING,
        "Unknown condition operator, treating as satisfied",
        operator=operator,
    )
    return True


# =============================================================================
# Value Helpers
# =============================================================================


def normalize_value(value: Any) -> str:
    """
    Normalize a value for equality comparison.

    Strings are lower-cased and trimmed. Lists are normalized element-wise,
    sorted and joined with commas so multi-select comparisons are
    order-insensitive. The input is never mutated.
    """
    if value is None:
        return ""
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(sorted(normalize_value(v) for v in value))
    return _stringify(value).lower().strip()


def is_empty(value: Any) -> bool:
    """
    Check whether a value counts as empty.

    True for None, blank strings, empty sequences and empty mappings.
    ``0`` and ``False`` are not empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, list | tuple | set | frozenset | Mapping):
        return len(value) == 0
    return False


def to_number(value: Any) -> float:
    """Coerce a value to a float; anything non-numeric becomes NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _stringify(value: Any) -> str:
    """String form of a snapshot value, matching how browsers stringify input."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list | tuple):
        return ",".join(_stringify(v) for v in value)
    return str(value)
