"""
Tests for the form session controller.

Covers:
- Step navigation and per-step validation
- Default values, progress and layout rows
- Submission: snapshot isolation, in-flight rejection, failure and success
- Loading and destroy semantics
"""

import asyncio
import json

import httpx
import pytest

from lubforms.core.errors import DefinitionError, SessionStateError, SubmissionInFlightError
from lubforms.core.ir import FormDefinition, SessionStatus, UTMParameters
from lubforms.runtime.client import set_default_client
from lubforms.runtime.session import (
    CONSENT_FIELD,
    CONSENT_MESSAGE,
    FormSession,
    build_default_values,
    utm_from_url,
)

SUCCESS_BODY = {"success": True, "submission_id": "sub_1", "message": "Thanks!"}


@pytest.fixture
def session(two_step_form) -> FormSession:
    return FormSession.from_definition(two_step_form)


# =============================================================================
# Steps
# =============================================================================


class TestStepNavigation:
    """Tests for next/prev/go-to step."""

    def test_next_step_requires_valid_current_step(self, session):
        session.set_value("email", "")

        assert not session.next_step()
        assert session.current_step == 0
        assert session.errors == {"email": "Email is required"}

        session.set_value("email", "a@b.com")

        assert session.next_step()
        assert session.current_step == 1
        assert session.errors == {}

    def test_next_step_validates_only_current_step(self, two_step_form_data):
        two_step_form_data["fields"][2]["required"] = True  # message, step 2
        session = FormSession.from_definition(FormDefinition.model_validate(two_step_form_data))
        session.set_value("email", "a@b.com")
        assert session.next_step()

    def test_next_step_on_last_step_does_not_advance(self, session):
        session.set_value("email", "a@b.com")
        session.next_step()
        assert session.is_last_step
        assert not session.next_step()
        assert session.current_step == 1

    def test_prev_step_skips_validation(self, session):
        session.set_value("email", "a@b.com")
        session.next_step()
        session.set_value("email", "")
        assert session.prev_step()
        assert session.current_step == 0
        assert not session.prev_step()

    def test_go_to_step_ignores_out_of_range(self, session):
        assert not session.go_to_step(5)
        assert not session.go_to_step(-1)
        assert session.current_step == 0
        assert session.go_to_step(1)
        assert session.current_step == 1

    def test_callbacks(self, two_step_form):
        changes, failures = [], []
        session = FormSession.from_definition(
            two_step_form,
            on_step_change=lambda step, total: changes.append((step, total)),
            on_validation_error=failures.append,
        )
        session.next_step()
        session.set_value("email", "a@b.com")
        session.next_step()
        session.prev_step()

        assert failures == [{"email": "Email is required"}]
        assert changes == [(1, 2), (0, 2)]

    def test_step_flags_and_progress(self, session):
        assert session.total_steps == 2
        assert session.is_first_step
        assert not session.is_last_step
        assert session.progress == 50
        assert session.current_step_data.id == "s1"
        session.go_to_step(1)
        assert session.progress == 100
        assert session.current_step_data.name == "Details"

    def test_current_rows_pack_two_columns(self, session):
        rows = session.current_rows
        assert [[f.name for f in row] for row in rows] == [["email", "name"]]

    def test_hidden_fields_are_skipped_in_step_validation(self, two_step_form_data):
        two_step_form_data["fields"][1].update(
            required=True,
            conditional_logic={
                "show_if": {"field_name": "email", "operator": "contains", "value": "@corp"}
            },
        )
        session = FormSession.from_definition(FormDefinition.model_validate(two_step_form_data))
        session.set_value("email", "a@b.com")

        assert [f.name for f in session.visible_step_fields] == ["email"]
        assert [f.name for f in session.current_step_fields] == ["email", "name"]
        assert session.next_step()

        session.go_to_step(0)
        session.set_value("email", "a@corp.com")
        assert not session.next_step()
        assert session.errors == {"name": "Name is required"}


# =============================================================================
# Values
# =============================================================================


class TestValues:
    def test_default_values(self, session):
        assert session.values == {"tier": "free"}

    @pytest.mark.asyncio
    async def test_loads_definition_with_loose_field_payloads(self, mock_client):
        payload = {
            "id": "survey",
            "fields": [
                {
                    "id": 1,
                    "name": "seats",
                    "type": "radio",
                    "label": None,
                    "width": None,
                    "required": True,
                    "options": {"options": [{"value": 1, "label": None}, {"value": 5}]},
                }
            ],
        }
        client = mock_client(lambda request: httpx.Response(200, json=payload))
        session = FormSession("survey", client)

        assert await session.load() is not None
        assert session.status == SessionStatus.READY

        session.set_value("seats", "5")
        assert session.validate().valid
        session.set_value("seats", 5)
        assert session.validate().errors == {"seats": "Please select a valid option"}

    def test_default_value_and_selected_option(self, make_field):
        form = FormDefinition(
            id="f",
            fields=[
                make_field("source", "hidden", default_value="web"),
                make_field("blank", default_value=""),
                make_field(
                    "size",
                    "select",
                    default_value="m",
                    options={"options": [{"value": "s"}, {"value": "l", "selected": True}]},
                ),
            ],
        )
        assert build_default_values(form) == {"source": "web", "size": "l"}

    def test_values_returns_a_copy(self, session):
        values = session.values
        values["email"] = "x@y.com"
        assert session.get_value("email") is None

    def test_field_queries(self, session):
        assert session.is_field_visible("email")
        assert session.is_field_required("email")
        assert not session.is_field_required("name")
        assert not session.is_field_visible("missing")

    def test_operations_before_load(self):
        session = FormSession("contact")
        assert session.status == SessionStatus.LOADING
        with pytest.raises(SessionStateError):
            session.set_value("email", "a@b.com")
        with pytest.raises(SessionStateError):
            session.next_step()
        with pytest.raises(DefinitionError):
            session.steps


# =============================================================================
# Validation for Submission
# =============================================================================


class TestSubmitValidation:
    def test_invisible_fields_neither_block_nor_submit(self, make_field):
        form = FormDefinition(
            id="f",
            fields=[
                make_field("kind"),
                make_field(
                    "company",
                    required=True,
                    conditional_logic={
                        "show_if": {"field_name": "kind", "operator": "equals", "value": "biz"}
                    },
                ),
            ],
        )
        session = FormSession.from_definition(form)
        session.set_values({"kind": "home", "company": "Acme"})

        result = session.validate()

        assert result.valid
        assert result.data == {"kind": "home"}

    def test_required_if_applies_on_submit(self, make_field):
        form = FormDefinition(
            id="f",
            fields=[
                make_field("country"),
                make_field(
                    "state",
                    "state",
                    label="State",
                    conditional_logic={
                        "required_if": {"field_name": "country", "operator": "equals", "value": "US"}
                    },
                ),
            ],
        )
        session = FormSession.from_definition(form)
        assert session.validate().valid
        session.set_value("country", "US")
        assert session.validate().errors == {"state": "State is required"}

    def test_consent_checkbox(self, two_step_form_data):
        two_step_form_data["settings"]["show_consent_checkbox"] = True
        session = FormSession.from_definition(FormDefinition.model_validate(two_step_form_data))
        session.set_value("email", "a@b.com")

        assert session.validate().errors == {CONSENT_FIELD: CONSENT_MESSAGE}

        session.set_value(CONSENT_FIELD, True)
        result = session.validate()
        assert result.valid
        assert CONSENT_FIELD not in result.data


# =============================================================================
# Loading
# =============================================================================


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_moves_to_ready(self, mock_client, two_step_form_data):
        client = mock_client(lambda request: httpx.Response(200, json=two_step_form_data))
        session = FormSession("contact", client)

        form = await session.load()

        assert form is not None
        assert session.status == SessionStatus.READY
        assert session.form is form
        assert session.values == {"tier": "free"}

    @pytest.mark.asyncio
    async def test_fetch_failure_is_terminal(self, mock_client):
        errors = []
        client = mock_client(
            lambda request: httpx.Response(404, json={"error": "Form not found", "code": "404"})
        )
        session = FormSession("missing", client, on_error=errors.append)

        assert await session.load() is None

        assert session.status == SessionStatus.ERROR
        assert session.error.error == "Form not found"
        assert [e.error for e in errors] == ["Form not found"]
        with pytest.raises(SessionStateError):
            await session.load()

    @pytest.mark.asyncio
    async def test_uses_default_client(self, mock_client, two_step_form_data):
        client = mock_client(lambda request: httpx.Response(200, json=two_step_form_data))
        set_default_client(client)
        session = FormSession("contact")

        assert session.client is client
        await session.load()
        assert session.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_destroy_during_load_discards_result(self, mock_client, two_step_form_data):
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200, json=two_step_form_data)

        session = FormSession("contact", mock_client(handler))
        task = asyncio.create_task(session.load())
        await asyncio.sleep(0.01)

        session.destroy()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert session.is_destroyed
        assert session.form is None
        assert session.status == SessionStatus.LOADING


# =============================================================================
# Submission
# =============================================================================


def recording_handler(bodies, status=200, body=None):
    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(status, json=body if body is not None else SUCCESS_BODY)

    return handler


class TestSubmit:
    @pytest.mark.asyncio
    async def test_successful_submission_is_terminal(self, mock_client, two_step_form):
        bodies, successes = [], []
        session = FormSession.from_definition(
            two_step_form,
            client=mock_client(recording_handler(bodies)),
            on_success=successes.append,
        )
        session.set_values({"email": "a@b.com", "_recaptcha_token": "tok"})

        response = await session.submit(
            referrer="https://example.com/landing",
            utm_parameters=UTMParameters(campaign="spring"),
            honeypot="",
        )

        assert response.submission_id == "sub_1"
        assert session.status == SessionStatus.SUCCESS
        assert session.response is response
        assert successes == [response]
        assert bodies == [
            {
                "data": {"email": "a@b.com", "tier": "free"},
                "utm_parameters": {"campaign": "spring"},
                "referrer": "https://example.com/landing",
                "recaptcha_token": "tok",
                "honeypot": "",
            }
        ]

        with pytest.raises(SessionStateError):
            await session.submit()
        with pytest.raises(SessionStateError):
            session.set_value("email", "b@c.com")

    @pytest.mark.asyncio
    async def test_invalid_snapshot_is_not_sent(self, mock_client, two_step_form):
        bodies, failures = [], []
        session = FormSession.from_definition(
            two_step_form,
            client=mock_client(recording_handler(bodies)),
            on_validation_error=failures.append,
        )

        assert await session.submit() is None

        assert bodies == []
        assert session.status == SessionStatus.READY
        assert failures == [{"email": "Email is required"}]

    @pytest.mark.asyncio
    async def test_failure_returns_to_ready_and_allows_retry(self, mock_client, two_step_form):
        responses = [
            httpx.Response(500, json={"error": "Server down"}),
            httpx.Response(200, json=SUCCESS_BODY),
        ]
        errors = []
        session = FormSession.from_definition(
            two_step_form,
            client=mock_client(lambda request: responses.pop(0)),
            on_error=errors.append,
        )
        session.set_value("email", "a@b.com")

        assert await session.submit() is None
        assert session.status == SessionStatus.READY
        assert session.error.error == "Server down"
        assert [e.error for e in errors] == ["Server down"]

        assert await session.submit() is not None
        assert session.status == SessionStatus.SUCCESS
        assert session.error is None

    @pytest.mark.asyncio
    async def test_second_submit_while_in_flight_is_rejected(self, mock_client, two_step_form):
        release = asyncio.Event()
        bodies = []

        async def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            await release.wait()
            return httpx.Response(200, json=SUCCESS_BODY)

        session = FormSession.from_definition(two_step_form, client=mock_client(handler))
        session.set_value("email", "a@b.com")

        task = asyncio.create_task(session.submit())
        while not bodies:
            await asyncio.sleep(0)

        assert session.is_submitting
        with pytest.raises(SubmissionInFlightError):
            await session.submit()

        # Edits during flight do not leak into the in-flight request
        session.set_value("email", "changed@b.com")
        release.set()
        await task

        assert len(bodies) == 1
        assert bodies[0]["data"]["email"] == "a@b.com"
        assert session.status == SessionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_destroy_during_submit_discards_response(self, mock_client, two_step_form):
        release = asyncio.Event()
        started = []
        successes = []

        async def handler(request: httpx.Request) -> httpx.Response:
            started.append(request)
            await release.wait()
            return httpx.Response(200, json=SUCCESS_BODY)

        session = FormSession.from_definition(
            two_step_form, client=mock_client(handler), on_success=successes.append
        )
        session.set_value("email", "a@b.com")

        task = asyncio.create_task(session.submit())
        while not started:
            await asyncio.sleep(0)

        session.destroy()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert successes == []
        assert session.response is None
        with pytest.raises(SessionStateError):
            await session.submit()


# =============================================================================
# Helpers
# =============================================================================


class TestUtmFromUrl:
    def test_extracts_utm_parameters(self):
        utm = utm_from_url("https://example.com/?utm_source=google&utm_medium=cpc&ref=x")
        assert utm == UTMParameters(source="google", medium="cpc")

    def test_bare_query_string(self):
        assert utm_from_url("?utm_campaign=spring").campaign == "spring"
        assert utm_from_url("utm_term=forms").term == "forms"

    def test_no_utm_parameters(self):
        assert utm_from_url("https://example.com/?ref=x") is None
        assert utm_from_url("") is None
