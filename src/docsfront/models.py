"""Pydantic models for docsfront.

This module defines the data structures shared by the widgets:
- Picker options, selections and picker-gated content sections
- Minitoc entries that follow section visibility
- Search suggestions
- Analytics events posted to the events sink
- Locale/version navigation context and its resolution

All models use Pydantic for validation and serialization.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

PickerKind = Literal["platform", "tool", "language", "version"]
PICKER_KINDS: tuple[PickerKind, ...] = ("platform", "tool", "language", "version")

EventType = Literal["pageview", "survey", "exit"]


class PickerOption(BaseModel):
    """One choice offered by a picker on the current page."""

    value: str = Field(..., description="Value written to URL and preference store")
    label: str = Field(..., description="Human-readable label shown in the picker")


class PickerSelection(BaseModel):
    """Active value for one picker kind.

    Attributes:
        kind: Picker kind (platform, tool, language or version).
        value: Selected option value.
    """

    kind: PickerKind = Field(..., description="Picker kind")
    value: str = Field(..., description="Selected value")

    @field_validator("value")
    @classmethod
    def validate_value(cls, value: str) -> str:
        """Ensure values are non-empty."""
        if not value or not value.strip():
            raise ValueError("value must be non-empty")
        return value


class ContentSection(BaseModel):
    """Picker-gated block of article content.

    A section is visible when every one of its required selections matches
    the current selection for that kind. Sections without requirements are
    always visible.
    """

    id: str = Field(..., description="Section identifier (anchor)")
    heading: str | None = Field(default=None, description="Section heading text")
    required_selections: list[PickerSelection] = Field(default_factory=list)

    def is_visible(self, current: dict[str, str]) -> bool:
        return all(
            current.get(required.kind) == required.value
            for required in self.required_selections
        )


class MinitocEntry(BaseModel):
    """Entry in the secondary in-page table of contents."""

    anchor: str = Field(..., description="Target anchor within the page")
    title: str = Field(..., description="Link text")
    section_id: str | None = Field(
        default=None, description="Gated section this entry points into"
    )


class Suggestion(BaseModel):
    """Autocomplete candidate shown in the search overlay."""

    text: str = Field(..., description="Suggestion text")
    target_url: str | None = Field(
        default=None, description="Page to open when this suggestion is chosen"
    )


class AnalyticsEvent(BaseModel):
    """Event posted to the analytics sink.

    Attributes:
        type: Event type (pageview, survey, exit, ...).
        page_id: Identifier of the page load that produced the event.
        path: Page path at the time of the event.
        locale: Effective locale of the page.
        version: Effective product version of the page.
        survey_vote: True for a thumbs up, False for a thumbs down.
        survey_comment: Free-text survey comment, when submitted.
        survey_email: Survey contact address, when submitted.
        timestamp: When the event was created (UTC).
    """

    type: EventType = Field(..., description="Event type")
    page_id: str | None = Field(default=None, description="Page load identifier")
    path: str | None = Field(default=None, description="Page path")
    locale: str | None = Field(default=None, description="Effective locale")
    version: str | None = Field(default=None, description="Effective version")
    survey_vote: bool | None = Field(default=None, description="Survey vote")
    survey_comment: str | None = Field(default=None, description="Survey comment")
    survey_email: str | None = Field(default=None, description="Survey email")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the wire, dropping unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class LocaleVersionContext(BaseModel):
    """Inputs to locale/version negotiation for one navigation."""

    requested_locale: str | None = None
    cookie_locale: str | None = None
    requested_version: str | None = None
    cookie_version: str | None = None


class ResolvedNavigation(BaseModel):
    """Outcome of locale/version negotiation.

    When ``redirect_to`` is set the page must not render; the caller follows
    the redirect instead.
    """

    effective_locale: str
    effective_version: str
    path: str = Field(..., description="Path without locale or version segments")
    query: str = Field(default="", description="Raw query string, without '?'")
    redirect_to: str | None = None
    set_cookies: dict[str, str] = Field(default_factory=dict)

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


class PageInfo(BaseModel):
    """Summary of a documentation page, used for hover card previews."""

    title: str = Field(..., description="Page title")
    intro: str = Field(default="", description="Introductory paragraph")
    product: str | None = Field(default=None, description="Product the page belongs to")
