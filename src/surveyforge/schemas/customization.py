"""Schemas for section selection and per-template customization state."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.survey import SurveySection


def _ordered_unique(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    seen: dict[str, None] = {}
    for item in v:
        seen.setdefault(str(item), None)
    return list(seen)


class SelectionState(BaseModel):
    """The user's current section inclusion choices for the active template."""

    selected_screener_titles: list[str] = Field(
        default_factory=list, description="Selected screener titles in insertion order"
    )
    selected_content_titles: list[str] = Field(
        default_factory=list, description="Selected content titles in insertion order"
    )

    @field_validator("selected_screener_titles", "selected_content_titles", mode="before")
    @classmethod
    def normalize_titles(cls, v: Any) -> list[str]:
        """De-duplicate titles, keeping the first occurrence."""
        return _ordered_unique(v)


class CustomizationRecord(BaseModel):
    """Last-saved state for one template.

    None for a customized list means the template defaults apply; an empty
    list means the user removed every section.
    """

    generated_sections: list[SurveySection] = Field(default_factory=list)
    customized_content_sections: Optional[list[FrameworkSection]] = None
    customized_screener_sections: Optional[list[FrameworkSection]] = None
