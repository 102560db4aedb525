"""Schemas for survey configuration and feasibility estimates."""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_SAMPLE_SIZE = 51

MediaPurpose = Literal["quantitative", "qualitative", ""]
Cadence = Literal["weekly", "fortnightly", "monthly", "quarterly", ""]
SegmentationGoal = Literal["create_new", "map_existing", ""]


def _normalize_str_list(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, list):
        return [str(item) for item in v]
    return [str(v)]


def parse_start_date(v: Any) -> date:
    """Parse an ISO date, falling back to today for blank, invalid or 'Not specified' values."""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str) and v.strip() and v.strip().lower() != "not specified":
        text = v.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    return date.today()


class Country(BaseModel):
    """A market respondents can be recruited from."""

    value: str = Field(description="Lowercase ISO 3166 alpha-2 code")
    label: str = Field(description="Display name")
    flag: str = Field(default="", description="Flag emoji")


class PhotoConfig(BaseModel):
    """Photo upload add-on."""

    model_config = ConfigDict(populate_by_name=True)

    purpose: MediaPurpose = Field(
        default="", description="quantitative (whole sample) or qualitative (a subset)"
    )
    num_photos: int = Field(
        default=0, ge=0, alias="numPhotos", description="Respondents asked for photos (qualitative)"
    )
    description: str = Field(default="", description="What respondents should photograph")


class VideoConfig(BaseModel):
    """Video upload add-on."""

    model_config = ConfigDict(populate_by_name=True)

    purpose: MediaPurpose = Field(
        default="", description="quantitative (whole sample) or qualitative (a subset)"
    )
    num_videos: int = Field(
        default=0, ge=0, alias="numVideos", description="Respondents asked for videos (qualitative)"
    )
    description: str = Field(default="", description="What respondents should record")


class TimeSeriesConfig(BaseModel):
    """Wave settings for tracking studies."""

    model_config = ConfigDict(populate_by_name=True)

    cadence: Cadence = Field(default="", description="weekly, fortnightly, monthly or quarterly")
    num_waves: int = Field(default=0, ge=0, alias="numWaves", description="Number of waves")
    start_date: date = Field(
        default_factory=date.today, alias="startDate", description="First wave date"
    )
    key_metric_focus: list[str] = Field(
        default_factory=list, alias="keyMetricFocus", description="Metrics tracked across waves"
    )

    @field_validator("cadence", mode="before")
    @classmethod
    def normalize_cadence(cls, v: Any) -> str:
        """Lower-case the cadence; unknown values become blank."""
        if v is None:
            return ""
        text = str(v).strip().lower()
        if text in ("weekly", "fortnightly", "monthly", "quarterly"):
            return text
        return ""

    @field_validator("start_date", mode="before")
    @classmethod
    def normalize_start_date(cls, v: Any) -> date:
        """Parse start dates tolerantly."""
        return parse_start_date(v)

    @field_validator("key_metric_focus", mode="before")
    @classmethod
    def normalize_key_metric_focus(cls, v: Any) -> list[str]:
        """Normalize key_metric_focus to list of strings."""
        return _normalize_str_list(v)


class SegmentationBases(BaseModel):
    """Dimensions a segmentation is built on."""

    model_config = ConfigDict(populate_by_name=True)

    audiences: bool = False
    occasions: bool = False
    need_states: bool = Field(default=False, alias="needStates")
    jobs_to_be_done: bool = Field(default=False, alias="jobsToBeDone")
    shopper_missions: bool = Field(default=False, alias="shopperMissions")


class SegmentationConfig(BaseModel):
    """Segmentation study settings."""

    model_config = ConfigDict(populate_by_name=True)

    segmentation_goal: SegmentationGoal = Field(
        default="", alias="segmentationGoal", description="create_new or map_existing"
    )
    segmentation_bases: SegmentationBases = Field(
        default_factory=SegmentationBases, alias="segmentationBases"
    )
    overall_use_case_description: str = Field(default="", alias="overallUseCaseDescription")


class SurveyConfiguration(BaseModel):
    """Configuration the estimator and launch payload are derived from."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    sample_size: int = Field(
        default=100,
        alias="sampleSize",
        description=f"Number of respondents (at least {MIN_SAMPLE_SIZE})",
    )
    selected_countries: list[Country] = Field(
        default_factory=list, alias="selectedCountries", description="Ordered target markets"
    )
    photo_config: Optional[PhotoConfig] = Field(default=None, alias="photoConfig")
    video_config: Optional[VideoConfig] = Field(default=None, alias="videoConfig")
    estimated_incidence_rate: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        alias="estimatedIncidenceRate",
        description="Estimated incidence rate (0-100), None when unknown",
    )
    estimated_ir_rationale: str = Field(default="", alias="estimatedIRRationale")
    estimated_ir_sources: list[str] = Field(default_factory=list, alias="estimatedIRSources")
    time_series_config: Optional[TimeSeriesConfig] = Field(default=None, alias="timeSeriesConfig")
    segmentation_config: Optional[SegmentationConfig] = Field(
        default=None, alias="segmentationConfig"
    )

    @field_validator("sample_size", mode="before")
    @classmethod
    def normalize_sample_size(cls, v: Any) -> int:
        """Raise sample sizes below the minimum to the minimum."""
        if v is None:
            return MIN_SAMPLE_SIZE
        return max(MIN_SAMPLE_SIZE, int(v))

    @field_validator("estimated_ir_sources", mode="before")
    @classmethod
    def normalize_sources(cls, v: Any) -> list[str]:
        """Normalize sources to list of strings."""
        if isinstance(v, str):
            return [v]
        return _normalize_str_list(v)


class FeasibilityEstimate(BaseModel):
    """Derived feasibility and cost metrics for a configuration."""

    feasibility_score: float = Field(ge=0, le=100, description="Feasibility score 0-100")
    feasibility_level: Literal["High", "Medium", "Low"] = Field(description="Score bucket")
    key_reasons: list[str] = Field(
        default_factory=list, description="Up to three factors driving the score"
    )
    estimated_tokens: int = Field(ge=0, description="Estimated token cost")
    video_respondents: int = Field(ge=0, description="Respondents in the video cohort")
    photo_respondents: int = Field(ge=0, description="Respondents in the photo cohort")
    text_respondents: int = Field(ge=0, description="Respondents answering text only")
    field_time: str = Field(description="Field-time bucket")
    survey_length: str = Field(description="Survey-length bucket")
