"""
lubforms definition model.

Pydantic types for server-defined forms and the public API payloads.
All types are re-exported from this package.
"""

from .api import (
    UTM_KEYS,
    ApiError,
    ConfirmOptInResponse,
    SubmitFormRequest,
    SubmitFormResponse,
    UTMParameters,
)
from .conditions import Condition, ConditionalLogic
from .enums import (
    DISPLAY_ONLY_TYPES,
    FieldType,
    FieldWidth,
    FormLayout,
    Operator,
    SessionStatus,
)
from .fields import (
    FieldDefinition,
    FieldOptions,
    FileUpload,
    SelectOption,
    ValidationRules,
)
from .forms import ButtonStyle, FormDefinition, FormDesign, FormSettings, FormStep

__all__ = [
    # Enums
    "DISPLAY_ONLY_TYPES",
    "FieldType",
    "FieldWidth",
    "FormLayout",
    "Operator",
    "SessionStatus",
    # Conditions
    "Condition",
    "ConditionalLogic",
    # Fields
    "FieldDefinition",
    "FieldOptions",
    "FileUpload",
    "SelectOption",
    "ValidationRules",
    # Forms
    "ButtonStyle",
    "FormDefinition",
    "FormDesign",
    "FormSettings",
    "FormStep",
    # API
    "UTM_KEYS",
    "ApiError",
    "ConfirmOptInResponse",
    "SubmitFormRequest",
    "SubmitFormResponse",
    "UTMParameters",
]
