"""
Form session controller.

A FormSession owns one form lifecycle:

    loading -> ready -> submitting -> success
    loading -> error

It holds the current step, the value snapshot and the submission state,
and re-runs the pure resolver/compiler/partitioner on every call instead
of caching derived state. Only fetching and submitting are asynchronous.

Usage:
    session = FormSession("contact", client)
    await session.load()
    session.set_value("email", "a@b.com")
    if session.next_step():
        ...
    response = await session.submit()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

from lubforms.core.errors import (
    DefinitionError,
    FormApiError,
    SessionStateError,
    SubmissionInFlightError,
)
from lubforms.core.ir import (
    UTM_KEYS,
    ApiError,
    FieldDefinition,
    FormDefinition,
    FormStep,
    SessionStatus,
    SubmitFormRequest,
    SubmitFormResponse,
    UTMParameters,
)

from .client import LubFormsClient, get_default_client
from .logging import get_session_logger, log_with_context
from .schema_compiler import ValidationResult, compile_schema
from .step_partitioner import StepView, layout_rows, progress, steps_for
from .visibility import is_required, is_visible, required_names, visible_fields

logger = get_session_logger()

CONSENT_FIELD = "_consent"
CONSENT_MESSAGE = "You must agree to continue"
RECAPTCHA_TOKEN_FIELD = "_recaptcha_token"

SuccessCallback = Callable[[SubmitFormResponse], None]
ErrorCallback = Callable[[ApiError], None]
ValidationErrorCallback = Callable[[dict[str, str]], None]
StepChangeCallback = Callable[[int, int], None]


class FormSession:
    """
    Controller for a single embedded form instance.

    Sessions share no mutable state with each other. Once a submission
    succeeds the session is finished; start a new session to fill the form
    again.
    """

    def __init__(
        self,
        form_id: str,
        client: LubFormsClient | None = None,
        *,
        base_url: str = "",
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
        on_step_change: StepChangeCallback | None = None,
    ):
        self.form_id = form_id
        self._client = client
        self._base_url = base_url
        self.on_success = on_success
        self.on_error = on_error
        self.on_validation_error = on_validation_error
        self.on_step_change = on_step_change

        self.status = SessionStatus.LOADING
        self.form: FormDefinition | None = None
        self.error: ApiError | None = None
        self.response: SubmitFormResponse | None = None
        self.errors: dict[str, str] = {}
        self.current_step = 0

        self._values: dict[str, Any] = {}
        self._steps: list[StepView] = []
        self._destroyed = False
        self._inflight: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_definition(cls, form: FormDefinition, **kwargs: Any) -> FormSession:
        """Create a ready session from an already fetched definition."""
        session = cls(form.id, **kwargs)
        session._apply_definition(form)
        return session

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def load(self) -> FormDefinition | None:
        """
        Fetch the form definition and move to ``ready``.

        A fetch failure moves the session to the terminal ``error`` state and
        reports the ApiError through ``on_error``. If the session is destroyed
        while the fetch is in flight the result is discarded.
        """
        self._ensure_alive()
        if self.status != SessionStatus.LOADING:
            raise SessionStateError(f"Form '{self.form_id}' is already loaded")

        with self._tracked():
            try:
                form = await self.client.get_form(self.form_id)
            except FormApiError as exc:
                if self._destroyed:
                    return None
                self.status = SessionStatus.ERROR
                self.error = exc.api_error
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Form fetch failed",
                    form_id=self.form_id,
                    error=exc.api_error.error,
                )
                if self.on_error:
                    self.on_error(exc.api_error)
                return None

        if self._destroyed:
            logger.debug("Discarding fetched form for destroyed session %s", self.form_id)
            return None

        self._apply_definition(form)
        return form

    def destroy(self) -> None:
        """
        Abandon the session.

        In-flight fetch/submit tasks are cancelled and any late result is
        discarded without touching session state.
        """
        if self._destroyed:
            return
        self._destroyed = True
        current = _current_task()
        for task in list(self._inflight):
            if task is not current:
                task.cancel()
        logger.debug("Destroyed session for form %s", self.form_id)

    @property
    def client(self) -> LubFormsClient:
        """The API client, resolved lazily (explicit, then default, then new)."""
        if self._client is None:
            self._client = get_default_client() or LubFormsClient(self._base_url)
        return self._client

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_submitting(self) -> bool:
        return self.status == SessionStatus.SUBMITTING

    # =========================================================================
    # Values
    # =========================================================================

    @property
    def values(self) -> dict[str, Any]:
        """A copy of the current value snapshot."""
        return dict(self._values)

    def get_value(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set_value(self, name: str, value: Any) -> None:
        self._ensure_editable()
        self._values[name] = value

    def set_values(self, values: Mapping[str, Any]) -> None:
        self._ensure_editable()
        self._values.update(values)

    def is_field_visible(self, name: str) -> bool:
        field = self._definition().get_field(name)
        return field is not None and is_visible(field, self._values)

    def is_field_required(self, name: str) -> bool:
        field = self._definition().get_field(name)
        return field is not None and is_required(field, self._values)

    # =========================================================================
    # Steps
    # =========================================================================

    @property
    def steps(self) -> list[StepView]:
        """Declared (or implicit) steps with their active member fields."""
        self._definition()
        return list(self._steps)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_first_step(self) -> bool:
        return self.current_step == 0

    @property
    def is_last_step(self) -> bool:
        return self.current_step >= self.total_steps - 1

    @property
    def progress(self) -> int:
        return progress(self.current_step, self.total_steps)

    @property
    def current_step_data(self) -> FormStep:
        return self.steps[self.current_step].step

    @property
    def current_step_fields(self) -> list[FieldDefinition]:
        """Active fields of the current step, visible or not."""
        return list(self.steps[self.current_step].fields)

    @property
    def visible_step_fields(self) -> list[FieldDefinition]:
        """Fields of the current step that are currently shown."""
        return visible_fields(self.current_step_fields, self._values)

    @property
    def current_rows(self) -> list[list[FieldDefinition]]:
        """Visible fields of the current step grouped into layout rows."""
        return layout_rows(self.visible_step_fields, self._definition().layout)

    def validate_step(self, index: int | None = None) -> ValidationResult:
        """Validate the visible fields of one step (the current one by default)."""
        step_index = self.current_step if index is None else index
        fields = visible_fields(self.steps[step_index].fields, self._values)
        return _validate(fields, self._values)

    def next_step(self) -> bool:
        """
        Validate the current step and advance when it passes.

        Returns:
            True if the session moved to the next step
        """
        self._ensure_ready()
        result = self.validate_step()
        self.errors = dict(result.errors)
        if not result.valid:
            log_with_context(
                logger,
                logging.DEBUG,
                "Step validation failed",
                step=self.current_step,
                fields=sorted(result.errors),
            )
            if self.on_validation_error:
                self.on_validation_error(dict(result.errors))
            return False
        if self.is_last_step:
            return False
        self._move_to(self.current_step + 1)
        return True

    def prev_step(self) -> bool:
        """Go back one step without validation."""
        self._ensure_ready()
        if self.is_first_step:
            return False
        self._move_to(self.current_step - 1)
        return True

    def go_to_step(self, step: int) -> bool:
        """Jump to a step; out-of-range indexes are ignored."""
        self._ensure_ready()
        if not 0 <= step < self.total_steps:
            return False
        self._move_to(step)
        return True

    # =========================================================================
    # Submission
    # =========================================================================

    def validate(self, values: Mapping[str, Any] | None = None) -> ValidationResult:
        """
        Validate a snapshot for submission.

        Covers every visible input field of the form, plus the consent
        checkbox when the form shows one.
        """
        form = self._definition()
        snapshot = self._values if values is None else values
        result = _validate(visible_fields(form.active_fields, snapshot), snapshot)
        if form.settings.show_consent_checkbox and snapshot.get(CONSENT_FIELD) is not True:
            errors = {**result.errors, CONSENT_FIELD: CONSENT_MESSAGE}
            return ValidationResult(valid=False, errors=errors, data=result.data)
        return result

    async def submit(
        self,
        *,
        referrer: str | None = None,
        utm_parameters: UTMParameters | None = None,
        honeypot: str | None = None,
    ) -> SubmitFormResponse | None:
        """
        Validate and submit the value snapshot taken at call time.

        Returns:
            The server response on success; None when validation or the
            request failed (see ``errors`` / ``error``)

        Raises:
            SubmissionInFlightError: A submission is already running
            SessionStateError: The session is not ready (not loaded,
                finished or destroyed)
        """
        self._ensure_alive()
        if self.status == SessionStatus.SUBMITTING:
            raise SubmissionInFlightError(f"Form '{self.form_id}' is already being submitted")
        self._ensure_ready()

        snapshot = dict(self._values)
        result = self.validate(snapshot)
        self.errors = dict(result.errors)
        if not result.valid:
            if self.on_validation_error:
                self.on_validation_error(dict(result.errors))
            return None

        form = self._definition()
        request = SubmitFormRequest(
            data=result.data,
            utm_parameters=utm_parameters,
            referrer=referrer,
            recaptcha_token=snapshot.get(RECAPTCHA_TOKEN_FIELD) or None,
            honeypot=honeypot,
        )

        self.status = SessionStatus.SUBMITTING
        self.error = None
        with self._tracked():
            try:
                response = await self.client.submit_form(form.id, request)
            except FormApiError as exc:
                if self._destroyed:
                    return None
                self.status = SessionStatus.READY
                self.error = exc.api_error
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Form submission failed",
                    form_id=form.id,
                    error=exc.api_error.error,
                )
                if self.on_error:
                    self.on_error(exc.api_error)
                return None
            except asyncio.CancelledError:
                if not self._destroyed:
                    self.status = SessionStatus.READY
                raise

        if self._destroyed:
            logger.debug("Discarding submit response for destroyed session %s", form.id)
            return None

        self.status = SessionStatus.SUCCESS
        self.response = response
        log_with_context(
            logger,
            logging.INFO,
            "Form submitted",
            form_id=form.id,
            submission_id=response.submission_id,
        )
        if self.on_success:
            self.on_success(response)
        return response

    # =========================================================================
    # Internals
    # =========================================================================

    def _apply_definition(self, form: FormDefinition) -> None:
        self.form = form
        self._steps = steps_for(form)
        self._values = build_default_values(form)
        self.current_step = 0
        self.status = SessionStatus.READY
        logger.debug("Form %s ready with %d step(s)", form.id, len(self._steps))

    def _move_to(self, step: int) -> None:
        self.current_step = step
        if self.on_step_change:
            self.on_step_change(step, self.total_steps)

    def _definition(self) -> FormDefinition:
        if self.form is None:
            raise DefinitionError(f"Form '{self.form_id}' has not been loaded")
        return self.form

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise SessionStateError(f"Session for form '{self.form_id}' has been destroyed")

    def _ensure_ready(self) -> None:
        self._ensure_alive()
        if self.status != SessionStatus.READY:
            raise SessionStateError(
                f"Session for form '{self.form_id}' is {self.status}, expected ready"
            )

    def _ensure_editable(self) -> None:
        self._ensure_alive()
        if self.status not in (SessionStatus.READY, SessionStatus.SUBMITTING):
            raise SessionStateError(
                f"Values of form '{self.form_id}' cannot change while {self.status}"
            )

    def _tracked(self) -> _TaskTracker:
        return _TaskTracker(self._inflight)


class _TaskTracker:
    """Registers the running task as in flight for the duration of a block."""

    def __init__(self, inflight: set[asyncio.Task[Any]]):
        self._inflight = inflight
        self._task: asyncio.Task[Any] | None = None

    def __enter__(self) -> None:
        self._task = _current_task()
        if self._task is not None:
            self._inflight.add(self._task)

    def __exit__(self, *exc_info: object) -> None:
        if self._task is not None:
            self._inflight.discard(self._task)


# =============================================================================
# Helpers
# =============================================================================


def build_default_values(form: FormDefinition) -> dict[str, Any]:
    """
    Initial value snapshot for a form.

    Uses each field's ``default_value``; a pre-selected option wins.
    """
    defaults: dict[str, Any] = {}
    for field in form.active_fields:
        if field.default_value not in (None, ""):
            defaults[field.name] = field.default_value
        if field.options is not None:
            selected = next((o for o in field.options.options if o.selected), None)
            if selected is not None:
                defaults[field.name] = selected.value
    return defaults


def utm_from_url(url: str) -> UTMParameters | None:
    """Extract ``utm_*`` query parameters from a URL or bare query string."""
    query = urlsplit(url).query if "?" in url or "://" in url else url.lstrip("?")
    params = parse_qs(query)
    found = {key: params[f"utm_{key}"][0] for key in UTM_KEYS if params.get(f"utm_{key}")}
    if not found:
        return None
    return UTMParameters(**found)


def _validate(fields: list[FieldDefinition], values: Mapping[str, Any]) -> ValidationResult:
    return compile_schema(fields, required_names(fields, values)).validate(values)


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
