"""Schemas for the user profile and the launch submission written to the document store."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from surveyforge.schemas.configuration import (
    PhotoConfig,
    SegmentationConfig,
    TimeSeriesConfig,
    VideoConfig,
)

SUBMISSIONS_COLLECTION = "surveySubmissions"


class UserProfile(BaseModel):
    """Locally stored details about the person designing surveys."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    organisation: Optional[str] = None
    role: Optional[str] = None
    custom_role: Optional[str] = Field(default=None, alias="customRole")
    industry: Optional[str] = None
    custom_industry: Optional[str] = Field(default=None, alias="customIndustry")

    @property
    def is_complete(self) -> bool:
        """A profile counts as set up once it has a name and an email."""
        return bool((self.name or "").strip() and (self.email or "").strip())


class SubmittedQuestion(BaseModel):
    """A question as recorded in a submission."""

    text: str
    type: str
    options: list[str] = Field(default_factory=list)


class SubmittedSection(BaseModel):
    """A section as recorded in a submission."""

    title: str
    description: Optional[str] = None
    questions: list[SubmittedQuestion] = Field(default_factory=list)


class SurveySummary(BaseModel):
    """Condensed view of the generated survey."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    introduction: str
    sections: list[SubmittedSection] = Field(default_factory=list)
    question_count: int = Field(default=0, ge=0, alias="questionCount")


class ConfigurationDetails(BaseModel):
    """Everything the user configured before launching."""

    model_config = ConfigDict(populate_by_name=True)

    solution_type: str = Field(alias="solutionType", description="explore or pulse")
    template: str = Field(description="Template title, or 'Pulse'")
    template_configuration: dict[str, str] = Field(
        default_factory=dict, alias="templateConfiguration", description="Follow-up answers"
    )
    pulse_survey_description: Optional[str] = Field(default=None, alias="pulseSurveyDescription")
    sample_size: int = Field(alias="sampleSize")
    markets: list[str] = Field(default_factory=list, description="Market labels")
    estimated_ir: Optional[float] = Field(default=None, alias="estimatedIR")
    photo_configuration: Optional[PhotoConfig] = Field(default=None, alias="photoConfiguration")
    video_configuration: Optional[VideoConfig] = Field(default=None, alias="videoConfiguration")
    segmentation_configuration: Optional[SegmentationConfig] = Field(
        default=None, alias="segmentationConfiguration"
    )
    time_series_configuration: Optional[TimeSeriesConfig] = Field(
        default=None, alias="timeSeriesConfiguration"
    )


class SurveySubmission(BaseModel):
    """Document written to the store when a survey is launched."""

    model_config = ConfigDict(populate_by_name=True)

    survey_summary: SurveySummary = Field(alias="surveySummary")
    configuration_details: ConfigurationDetails = Field(alias="configurationDetails")
    user_profile: Optional[UserProfile] = Field(default=None, alias="userProfile")
    submitted_at: datetime = Field(alias="submittedAt")

    def to_document(self) -> dict[str, Any]:
        """Serialize with camelCase keys and ISO timestamps."""
        return self.model_dump(mode="json", by_alias=True)
