"""
lubforms runtime.

This module provides:
- Condition evaluation and visibility/requiredness resolution
- Validation schema compilation
- Step partitioning and two-column row packing
- The public forms API client
- Form sessions and the embed session registry

Example usage:
    >>> from lubforms.runtime import FormSession, LubFormsClient
    >>>
    >>> async with LubFormsClient("https://api.example.com") as client:
    ...     session = FormSession("contact", client)
    ...     await session.load()
    ...     session.set_value("email", "a@b.com")
    ...     await session.submit()
"""

from lubforms.runtime.client import (
    LubFormsClient,
    create_client,
    get_default_client,
    parse_error,
    set_default_client,
)
from lubforms.runtime.condition_evaluator import (
    compare_values,
    evaluate_condition,
    is_empty,
    normalize_value,
    to_number,
)
from lubforms.runtime.embed import SessionRegistry, get_registry
from lubforms.runtime.logging import get_logger, log_with_context, setup_logging
from lubforms.runtime.renderers import (
    FieldRenderer,
    get_field_renderer,
    register_field_renderer,
)
from lubforms.runtime.schema_compiler import (
    FieldValidator,
    FormValidator,
    ValidationResult,
    compile_field,
    compile_schema,
)
from lubforms.runtime.session import FormSession, build_default_values, utm_from_url
from lubforms.runtime.step_partitioner import (
    StepView,
    field_width_value,
    layout_rows,
    progress,
    steps_for,
    total_steps,
)
from lubforms.runtime.visibility import (
    FieldResolver,
    is_required,
    is_visible,
    required_names,
    visible_fields,
)

__all__ = [
    # Conditions
    "compare_values",
    "evaluate_condition",
    "is_empty",
    "normalize_value",
    "to_number",
    # Resolution
    "FieldResolver",
    "is_required",
    "is_visible",
    "required_names",
    "visible_fields",
    # Validation
    "FieldValidator",
    "FormValidator",
    "ValidationResult",
    "compile_field",
    "compile_schema",
    # Steps
    "StepView",
    "field_width_value",
    "layout_rows",
    "progress",
    "steps_for",
    "total_steps",
    # Client
    "LubFormsClient",
    "create_client",
    "get_default_client",
    "parse_error",
    "set_default_client",
    # Sessions
    "FormSession",
    "SessionRegistry",
    "build_default_values",
    "get_registry",
    "utm_from_url",
    # Rendering
    "FieldRenderer",
    "get_field_renderer",
    "register_field_renderer",
    # Logging
    "get_logger",
    "log_with_context",
    "setup_logging",
]
