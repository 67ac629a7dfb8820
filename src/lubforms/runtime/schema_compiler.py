"""
Validation schema compiler for form fields.

Turns a field list into a FormValidator backed by a pydantic model built
with ``create_model``: one model field per active, input-bearing form
field, typed by dispatching on the field type. Blank and required handling
happens before the model runs; pydantic error types are then mapped back
to the per-field messages shown to users.

Compilation never fails on user data: unknown field types accept anything
and an invalid regex pattern is skipped with a warning.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    AnyUrl,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    StrictStr,
    StringConstraints,
    ValidationError,
    WrapValidator,
    create_model,
)
from pydantic_core import PydanticCustomError

from lubforms.core.ir import FieldDefinition, FieldType, FileUpload

from .logging import get_engine_logger, log_with_context

logger = get_engine_logger()

MIN_PHONE_DIGITS = 10
BYTES_PER_MB = 1024 * 1024

# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a value snapshot.

    Attributes:
        valid: True when no field failed
        errors: Field name -> first failing message
        data: Normalized values of the validated fields
    """

    valid: bool
    errors: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Field Validators
# =============================================================================


def _blank_string(value: Any) -> bool:
    return value is None or value == ""


def _blank_list(value: Any) -> bool:
    return value is None or (isinstance(value, list | tuple) and len(value) == 0)


def _absent(value: Any) -> bool:
    return value is None


@dataclass(frozen=True)
class TypeRule:
    """The pydantic type for a present value and its error messages."""

    annotation: Any
    fallback_message: str
    # pydantic error type -> message
    messages: Mapping[str, str] = field(default_factory=dict)
    is_blank: Callable[[Any], bool] = _blank_string
    # Optional blank inputs other than None are kept in the output
    keep_blank: bool = True
    required_message: str | None = None
    accepts_anything: bool = False


@dataclass(frozen=True)
class FieldValidator:
    """Compiled validator for a single field."""

    name: str
    field_type: str
    required: bool
    rule: TypeRule
    required_message: str
    custom_error: str | None = None

    @property
    def annotation(self) -> Any:
        return self.rule.annotation

    def message_for(self, error_type: str) -> str:
        """Map a pydantic error type to the message shown for this field."""
        if self.custom_error:
            return self.custom_error
        return self.rule.messages.get(error_type, self.rule.fallback_message)


class FormValidator:
    """
    Composite validator over a compiled field set.

    Values for names outside the schema are ignored and do not appear in
    the normalized output. Form field names become model field aliases,
    so any name the server sends is usable.
    """

    def __init__(self, validators: Sequence[FieldValidator]):
        self._validators = {v.name: v for v in validators}
        self._attrs = {name: f"field_{i}" for i, name in enumerate(self._validators)}
        self.model = create_model(
            "FormSubmission",
            __config__=ConfigDict(extra="ignore"),
            **{
                self._attrs[name]: (v.annotation, Field(default=None, alias=name))
                for name, v in self._validators.items()
            },
        )

    @property
    def names(self) -> list[str]:
        return list(self._validators)

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def get(self, name: str) -> FieldValidator | None:
        return self._validators.get(name)

    def validate(
        self, values: Mapping[str, Any], only: Iterable[str] | None = None
    ) -> ValidationResult:
        """
        Validate a value snapshot.

        Args:
            values: Field name -> raw value
            only: Restrict validation to these field names

        Returns:
            ValidationResult with per-field errors and normalized data
        """
        selected = set(only) if only is not None else None
        errors: dict[str, str] = {}
        data: dict[str, Any] = {}
        present: dict[str, Any] = {}

        for name, validator in self._validators.items():
            if selected is not None and name not in selected:
                continue
            value = values.get(name)
            if validator.rule.is_blank(value):
                if validator.required:
                    errors[name] = validator.required_message
                elif value is not None and validator.rule.keep_blank:
                    data[name] = value
                continue
            present[name] = value

        try:
            instance = self.model.model_validate(present)
        except ValidationError as exc:
            for error in exc.errors():
                name = str(error["loc"][0])
                if name not in errors:
                    errors[name] = self._validators[name].message_for(error["type"])
            present = {name: value for name, value in present.items() if name not in errors}
            instance = self.model.model_validate(present)

        for name in present:
            data[name] = getattr(instance, self._attrs[name])

        return ValidationResult(valid=not errors, errors=errors, data=data)


# =============================================================================
# Compilation
# =============================================================================


def compile_schema(
    fields: Iterable[FieldDefinition], required_names: Iterable[str] | None = None
) -> FormValidator:
    """
    Compile a field list into a FormValidator.

    Inactive and display-only fields (html, divider, recaptcha) are left out.

    Args:
        fields: Field definitions
        required_names: Extra names to treat as required (e.g. from
            ``required_if``); never removes a static ``required``

    Returns:
        FormValidator for the input-bearing fields
    """
    extra_required = set(required_names or ())
    validators = [
        compile_field(f, required=f.required or f.name in extra_required)
        for f in fields
        if f.is_active and f.is_input
    ]
    return FormValidator(validators)


def compile_field(field_def: FieldDefinition, required: bool | None = None) -> FieldValidator:
    """Compile the validator for one field."""
    is_req = field_def.required if required is None else required
    rule = _build_type_rule(field_def, is_req)
    if rule.accepts_anything:
        is_req = False
    custom = field_def.custom_error
    return FieldValidator(
        name=field_def.name,
        field_type=str(field_def.field_type),
        required=is_req,
        rule=rule,
        required_message=custom or rule.required_message or _required_message(field_def),
        custom_error=custom,
    )


def _build_type_rule(field_def: FieldDefinition, required: bool) -> TypeRule:
    match field_def.field_type:
        case FieldType.TEXT | FieldType.TEXTAREA | FieldType.HIDDEN:
            return _string_rule(field_def)
        case FieldType.EMAIL:
            return TypeRule(EmailStr, "Please enter a valid email address")
        case FieldType.PHONE:
            return TypeRule(
                Annotated[str, StringConstraints(strict=True), AfterValidator(_check_phone)],
                "Please enter a valid phone number",
            )
        case FieldType.URL:
            return TypeRule(
                Annotated[AnyUrl, WrapValidator(_keep_input), BeforeValidator(_text_input)],
                "Please enter a valid URL",
            )
        case FieldType.NUMBER:
            return _number_rule(field_def)
        case FieldType.DATE | FieldType.TIME | FieldType.DATETIME:
            return TypeRule(
                Annotated[
                    _DATE_TYPES[field_def.field_type],
                    WrapValidator(_keep_input),
                    BeforeValidator(_text_input),
                ],
                "Please enter a valid date",
            )
        case FieldType.SELECT | FieldType.RADIO | FieldType.COUNTRY | FieldType.STATE:
            return _select_rule(field_def)
        case FieldType.CHECKBOX:
            return _checkbox_rule(field_def, required)
        case FieldType.CHECKBOX_GROUP:
            return _checkbox_group_rule(field_def)
        case FieldType.FILE:
            return _file_rule(field_def)
        case _:
            log_with_context(
                logger,
                logging.WARNING,
                "Unknown field type, accepting any value",
                field_name=field_def.name,
                field_type=str(field_def.field_type),
            )
            return TypeRule(Any, "", is_blank=_absent, accepts_anything=True)


# =============================================================================
# Type Rules
# =============================================================================


_DATE_TYPES: dict[str, Any] = {
    FieldType.DATE: date | datetime,
    FieldType.TIME: time,
    FieldType.DATETIME: datetime,
}


def _string_rule(field_def: FieldDefinition) -> TypeRule:
    rules = field_def.validation_rules
    label = _label(field_def)
    min_length = (rules.min_length if rules else None) or None
    max_length = (rules.max_length if rules else None) or None
    annotation: Any = Annotated[
        str, StringConstraints(strict=True, min_length=min_length, max_length=max_length)
    ]
    pattern = _compile_pattern(field_def)
    if pattern is not None:
        annotation = Annotated[annotation, AfterValidator(_matches(pattern))]

    return TypeRule(
        annotation,
        f"{label} is invalid",
        messages={
            "string_too_short": f"{label} must be at least {min_length} characters",
            "string_too_long": f"{label} must be at most {max_length} characters",
            "string_pattern_mismatch": f"{label} has an invalid format",
        },
    )


def _number_rule(field_def: FieldDefinition) -> TypeRule:
    rules = field_def.validation_rules
    label = _label(field_def)
    minimum = rules.min if rules else None
    maximum = rules.max if rules else None
    annotation = Annotated[
        float,
        Field(ge=minimum, le=maximum, allow_inf_nan=False),
        AfterValidator(_integral),
        BeforeValidator(_numeric_input),
    ]

    messages = {}
    if minimum is not None:
        messages["greater_than_equal"] = f"{label} must be at least {_format_number(minimum)}"
    if maximum is not None:
        messages["less_than_equal"] = f"{label} must be at most {_format_number(maximum)}"
    # Optional blank numbers are dropped from the output
    return TypeRule(annotation, f"{label} must be a number", messages, keep_blank=False)


def _select_rule(field_def: FieldDefinition) -> TypeRule:
    allowed = _allowed_values(field_def)
    annotation: Any = Literal[allowed] if allowed else StrictStr
    return TypeRule(
        annotation,
        f"{_label(field_def)} is invalid",
        messages={"literal_error": "Please select a valid option"},
    )


def _checkbox_rule(field_def: FieldDefinition, required: bool) -> TypeRule:
    annotation: Any = StrictBool
    if required:
        annotation = Annotated[StrictBool, AfterValidator(_must_be_checked)]
    return TypeRule(
        annotation,
        f"{_label(field_def)} is invalid",
        messages={"checkbox_unchecked": _required_message(field_def)},
        is_blank=_absent,
    )


def _checkbox_group_rule(field_def: FieldDefinition) -> TypeRule:
    allowed = _allowed_values(field_def)
    annotation: Any = list[Literal[allowed]] if allowed else list[StrictStr]
    return TypeRule(
        annotation,
        f"{_label(field_def)} is invalid",
        messages={"literal_error": "Please select valid options"},
        is_blank=_blank_list,
        required_message="Please select at least one option",
    )


def _file_rule(field_def: FieldDefinition) -> TypeRule:
    rules = field_def.validation_rules
    allowed_types = list(rules.allowed_types or []) if rules else []
    max_size_mb = rules.max_file_size if rules else None

    def check(value: FileUpload | list[FileUpload]) -> FileUpload | list[FileUpload]:
        files = value if isinstance(value, list) else [value]
        if allowed_types and not all(_file_type_allowed(f, allowed_types) for f in files):
            raise PydanticCustomError("file_type", "File type is not allowed")
        if max_size_mb and any(f.size > max_size_mb * BYTES_PER_MB for f in files):
            raise PydanticCustomError("file_size", "File is too large")
        return value

    messages = {"file_type": f"File must be one of: {', '.join(allowed_types)}"}
    if max_size_mb:
        messages["file_size"] = f"File must be smaller than {_format_number(max_size_mb)}MB"
    return TypeRule(
        Annotated[FileUpload | list[FileUpload], AfterValidator(check)],
        f"{_label(field_def)} must be a file",
        messages,
        is_blank=_blank_list,
    )


# =============================================================================
# Validators
# =============================================================================


def _text_input(value: Any) -> Any:
    if not isinstance(value, str):
        raise PydanticCustomError("string_type", "Input should be a valid string")
    return value


def _keep_input(value: Any, handler: Callable[[Any], Any]) -> Any:
    """Check the value parses, but keep the text the user entered."""
    handler(value)
    return value


def _numeric_input(value: Any) -> Any:
    if isinstance(value, bool):
        raise PydanticCustomError("float_type", "Input should be a valid number")
    if isinstance(value, str):
        return value.strip()
    return value


def _integral(number: float) -> int | float:
    return int(number) if number.is_integer() else number


def _check_phone(text: str) -> str:
    if len(re.sub(r"\D", "", text)) < MIN_PHONE_DIGITS:
        raise PydanticCustomError("phone_invalid", "Too few digits for a phone number")
    return text


def _must_be_checked(checked: bool) -> bool:
    if not checked:
        raise PydanticCustomError("checkbox_unchecked", "Checkbox must be checked")
    return checked


def _matches(pattern: re.Pattern[str]) -> Callable[[str], str]:
    def check(text: str) -> str:
        if not pattern.search(text):
            raise PydanticCustomError(
                "string_pattern_mismatch",
                "String should match pattern '{pattern}'",
                {"pattern": pattern.pattern},
            )
        return text

    return check


# =============================================================================
# Helpers
# =============================================================================


def _label(field_def: FieldDefinition) -> str:
    return field_def.label or field_def.name


def _required_message(field_def: FieldDefinition) -> str:
    return f"{_label(field_def)} is required"


def _allowed_values(field_def: FieldDefinition) -> tuple[str, ...]:
    options = field_def.options
    if options is None or not options.options or options.allow_other:
        return ()
    return tuple(options.values)


def _compile_pattern(field_def: FieldDefinition) -> re.Pattern[str] | None:
    rules = field_def.validation_rules
    if not rules or not rules.pattern:
        return None
    try:
        return re.compile(rules.pattern)
    except re.error as exc:
        log_with_context(
            logger,
            logging.WARNING,
            "Invalid validation pattern, skipping",
            field_name=field_def.name,
            pattern=rules.pattern,
            error=str(exc),
        )
        return None


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _file_type_allowed(upload: FileUpload, allowed_types: list[str]) -> bool:
    name = upload.name.lower()
    for allowed in allowed_types:
        if upload.content_type == allowed:
            return True
        if name.endswith("." + allowed.replace(".", "", 1).lower()):
            return True
    return False
