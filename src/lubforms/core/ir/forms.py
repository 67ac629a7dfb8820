"""
Form aggregate types for lubforms.

A FormDefinition is fetched once per session and never mutated; every
derived view (visible subset, compiled schema, steps) is recomputed from it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .enums import FormLayout
from .fields import FieldDefinition


class FormStep(BaseModel):
    """
    One page of a multi-step form.

    Attributes:
        id: Step identifier
        name: Title shown in the step indicator
        description: Optional text shown under the indicator
        field_ids: Ordered ids of the member fields
        display_order: Position of the step in the form
    """

    id: str
    name: str = ""
    description: str | None = None
    field_ids: list[str] = Field(default_factory=list)
    display_order: int = 0

    model_config = ConfigDict(frozen=True, extra="ignore")


class ButtonStyle(BaseModel):
    background_color: str | None = None
    text_color: str | None = None
    border_radius: str | None = None
    size: str | None = None
    full_width: bool | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class FormDesign(BaseModel):
    """Presentation settings. Only ``layout`` influences the engine."""

    layout: FormLayout | str = FormLayout.VERTICAL
    theme: str = "default"
    background_color: str | None = None
    text_color: str | None = None
    primary_color: str | None = None
    border_color: str | None = None
    font_family: str | None = None
    font_size: str | None = None
    padding: str | None = None
    field_spacing: str | None = None
    button_style: ButtonStyle | None = None
    custom_css: str | None = None
    show_logo: bool = False
    logo_url: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class FormSettings(BaseModel):
    """Public behaviour settings of a form."""

    submit_button_text: str = "Submit"
    success_message: str = "Thank you for your submission."
    enable_recaptcha: bool = False
    recaptcha_site_key: str | None = None
    show_consent_checkbox: bool = False
    consent_text: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class FormDefinition(BaseModel):
    """
    Aggregate root for a server-defined form.

    Attributes:
        id: Form identifier
        name: Form title
        description: Form description
        fields: All field definitions, active or not
        design: Presentation settings
        is_multi_step: Whether ``steps`` partition the fields
        steps: Declared steps (multi-step forms only)
        settings: Public behaviour settings
    """

    id: str
    name: str = ""
    description: str = ""
    fields: list[FieldDefinition] = Field(default_factory=list)
    design: FormDesign = Field(default_factory=FormDesign)
    is_multi_step: bool = False
    steps: list[FormStep] | None = None
    settings: FormSettings = Field(default_factory=FormSettings)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def active_fields(self) -> list[FieldDefinition]:
        """Active fields in display order."""
        return sorted((f for f in self.fields if f.is_active), key=lambda f: f.display_order)

    @property
    def layout(self) -> str:
        return str(self.design.layout)

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get an active field by name."""
        for field in self.fields:
            if field.is_active and field.name == name:
                return field
        return None
