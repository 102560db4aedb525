"""Schema for framework sections offered by templates and the section library."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from surveyforge.schemas.survey import SurveyQuestion

SCREENER_PREFIX = "screener:"


def is_screener_title(title: str) -> bool:
    """Return True if a section title follows the screener naming convention."""
    return title.strip().lower().startswith(SCREENER_PREFIX)


class FrameworkSection(BaseModel):
    """A named, reusable block of example questions."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(description="Unique section title")
    description: str = Field(default="", description="What this section covers")
    example_questions: list[SurveyQuestion] = Field(
        default_factory=list,
        alias="exampleQuestions",
        description="Ordered example questions guiding generation",
    )

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v: Any) -> str:
        """Treat a missing description as empty."""
        if v is None:
            return ""
        return str(v)

    @property
    def is_screener(self) -> bool:
        """Whether this section qualifies or disqualifies respondents."""
        return is_screener_title(self.title)
