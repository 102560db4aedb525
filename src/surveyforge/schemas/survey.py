"""Schemas for survey documents exchanged with the AI generation collaborator."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from surveyforge.schemas.configuration import TimeSeriesConfig

QuestionType = Literal["screener", "closedText", "openText", "scale", "photo", "video", "stimulus"]

QUESTION_TYPES: tuple[str, ...] = (
    "screener",
    "closedText",
    "openText",
    "scale",
    "photo",
    "video",
    "stimulus",
)

SCREEN_IN_MARKER = "(Screen In)"

QUESTION_TYPE_DISPLAY_NAMES = {
    "screener": "Screener",
    "closedText": "Closed Text",
    "openText": "Open Text",
    "scale": "Scale",
    "photo": "Photo",
    "video": "Video",
    "stimulus": "Stimulus",
}

# Lower-cased spellings seen in model output and legacy example questions
_QUESTION_TYPE_ALIASES = {
    "radio": "closedText",
    "checkbox": "closedText",
    "multiplechoice": "closedText",
    "singlechoice": "closedText",
    "text": "openText",
    "textarea": "openText",
    "rating": "scale",
    "likert": "scale",
}


def _option_text(option: Any) -> str:
    if isinstance(option, dict):
        for key in ("label", "text", "value"):
            if key in option and option[key] is not None:
                return str(option[key])
    return str(option)


class SurveyQuestion(BaseModel):
    """A single question in a survey section."""

    model_config = ConfigDict(populate_by_name=True)

    question_text: str = Field(alias="questionText", description="The question wording")
    question_type: QuestionType = Field(
        alias="questionType",
        description="One of: screener, closedText, openText, scale, photo, video, stimulus",
    )
    options: list[str] = Field(
        default_factory=list,
        description="Answer options for screener, closedText and scale questions",
    )

    @field_validator("question_type", mode="before")
    @classmethod
    def normalize_question_type(cls, v: Any) -> Any:
        """Map legacy and loosely-cased question types onto the supported set."""
        if not isinstance(v, str):
            return v
        stripped = v.strip()
        if stripped in QUESTION_TYPES:
            return stripped
        lowered = stripped.replace("_", "").replace(" ", "").lower()
        for known in QUESTION_TYPES:
            if known.lower() == lowered:
                return known
        return _QUESTION_TYPE_ALIASES.get(lowered, stripped)

    @field_validator("options", mode="before")
    @classmethod
    def normalize_options(cls, v: Any) -> list[str]:
        """Normalize options to a list of strings; {value, label} objects become labels."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [_option_text(item) for item in v]
        return [str(v)]


class SurveySection(BaseModel):
    """A titled group of survey questions."""

    model_config = ConfigDict(populate_by_name=True)

    section_title: str = Field(alias="sectionTitle", description="Verbatim section title")
    section_description: Optional[str] = Field(
        default=None, alias="sectionDescription", description="Optional section description"
    )
    questions: list[SurveyQuestion] = Field(
        default_factory=list, description="Ordered questions in this section"
    )

    @field_validator("questions", mode="before")
    @classmethod
    def normalize_questions(cls, v: Any) -> Any:
        """Treat a missing question list as empty."""
        if v is None:
            return []
        return v


class SuggestSurveyRequest(BaseModel):
    """Request sent to the survey generation collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    survey_description: str = Field(
        alias="surveyDescription", description="The compiled generation request text"
    )
    include_photo_questions: bool = Field(default=False, alias="includePhotoQuestions")
    include_video_questions: bool = Field(default=False, alias="includeVideoQuestions")
    time_series_config: Optional[TimeSeriesConfig] = Field(
        default=None, alias="timeSeriesConfig", description="Wave settings for tracking studies"
    )
    selected_market: Optional[str] = Field(
        default=None, alias="selectedMarket", description="Comma-separated market labels"
    )
    project_context: Optional[str] = Field(
        default=None, alias="projectContext", description="Free-text project background"
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys and ISO dates, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SuggestSurveyResponse(BaseModel):
    """Survey document returned by the generation collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    survey_title: str = Field(alias="surveyTitle", description="Title of the survey")
    survey_introduction: str = Field(
        alias="surveyIntroduction", description="Introduction shown to respondents"
    )
    survey_sections: list[SurveySection] = Field(
        alias="surveySections", description="Ordered survey sections"
    )
    estimated_incidence_rate: float = Field(
        alias="estimatedIncidenceRate",
        ge=0,
        le=100,
        description="Estimated percentage of the population that qualifies",
    )
    incidence_rate_rationale: str = Field(
        default="", alias="incidenceRateRationale", description="Reasoning behind the estimate"
    )
    incidence_rate_sources: list[str] = Field(
        default_factory=list, alias="incidenceRateSources", description="Sources for the estimate"
    )

    @field_validator("estimated_incidence_rate", mode="before")
    @classmethod
    def normalize_incidence_rate(cls, v: Any) -> Any:
        """Accept percentages written as strings such as '15%'."""
        if isinstance(v, str):
            cleaned = v.strip().rstrip("%").strip()
            try:
                return float(cleaned)
            except ValueError:
                return v
        return v

    @field_validator("incidence_rate_sources", mode="before")
    @classmethod
    def normalize_sources(cls, v: Any) -> list[str]:
        """Normalize sources to list of strings."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(item) for item in v]
        return [str(v)]

    @classmethod
    def fallback(cls) -> "SuggestSurveyResponse":
        """Return the fixed document used when the collaborator output is unusable."""
        return cls(
            survey_title="Feedback Survey",
            survey_introduction=(
                "Welcome to our survey. Your input is valuable and will take a few minutes."
            ),
            survey_sections=[],
            estimated_incidence_rate=0,
            incidence_rate_rationale=(
                "Incidence rate could not be estimated due to an unexpected issue."
            ),
            incidence_rate_sources=["N/A"],
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
