"""Shared pytest fixtures for lubforms tests."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from lubforms.core.ir import FieldDefinition, FormDefinition
from lubforms.runtime.client import LubFormsClient, set_default_client
from lubforms.runtime.logging import ROOT_LOGGER

BASE_URL = "https://api.test"


@pytest.fixture(autouse=True)
def _reset_globals():
    """Reset the default client and lubforms log handlers between tests."""
    yield
    set_default_client(None)
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def make_field() -> Callable[..., FieldDefinition]:
    """Factory for field definitions using the wire format (``type`` key)."""

    def _make(name: str, field_type: str = "text", **kwargs: Any) -> FieldDefinition:
        data = {"id": f"f_{name}", "name": name, "type": field_type, **kwargs}
        return FieldDefinition.model_validate(data)

    return _make


@pytest.fixture
def two_step_form_data() -> dict[str, Any]:
    """
    Wire JSON for a two-step contact form.

    Step 1 holds a required ``email`` and an optional ``name`` (half width
    each); step 2 holds ``message`` and a ``tier`` select with a
    pre-selected option. Steps are declared out of order.
    """
    return {
        "id": "contact",
        "name": "Contact us",
        "description": "Get in touch",
        "is_multi_step": True,
        "design": {"layout": "two_column"},
        "steps": [
            {
                "id": "s2",
                "name": "Details",
                "field_ids": ["f_tier", "f_message"],
                "display_order": 1,
            },
            {
                "id": "s1",
                "name": "About you",
                "field_ids": ["f_email", "f_name"],
                "display_order": 0,
            },
        ],
        "fields": [
            {
                "id": "f_email",
                "name": "email",
                "type": "text",
                "label": "Email",
                "required": True,
                "display_order": 0,
                "width": "half",
            },
            {
                "id": "f_name",
                "name": "name",
                "type": "text",
                "label": "Name",
                "display_order": 1,
                "width": "half",
            },
            {
                "id": "f_message",
                "name": "message",
                "type": "textarea",
                "label": "Message",
                "display_order": 2,
            },
            {
                "id": "f_tier",
                "name": "tier",
                "type": "select",
                "label": "Tier",
                "display_order": 3,
                "options": {
                    "options": [
                        {"value": "free", "label": "Free", "selected": True},
                        {"value": "pro", "label": "Pro"},
                    ]
                },
            },
        ],
        "settings": {"submit_button_text": "Send"},
        "some_future_key": {"ignored": True},
    }


@pytest.fixture
def two_step_form(two_step_form_data: dict[str, Any]) -> FormDefinition:
    return FormDefinition.model_validate(two_step_form_data)


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], Any]], LubFormsClient]:
    """Build a LubFormsClient whose transport is an httpx.MockTransport."""

    def _make(handler: Callable[[httpx.Request], Any]) -> LubFormsClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return LubFormsClient(BASE_URL, http_client=http)

    return _make
