"""Schema for contextual configuration suggestions."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NOT_SPECIFIED = "Not specified"


class SuggestedMedia(BaseModel):
    """Suggested photo or video task."""

    description: str = Field(default="", description="What respondents should capture")

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)


class SuggestedTimeSeries(BaseModel):
    """Suggested tracking-study settings."""

    model_config = ConfigDict(populate_by_name=True)

    cadence: str = Field(default=NOT_SPECIFIED, description="weekly, monthly, quarterly, ...")
    num_waves: int = Field(default=0, ge=0, alias="numWaves")
    start_date: str = Field(
        default=NOT_SPECIFIED, alias="startDate", description="ISO date or 'Not specified'"
    )
    key_metric_focus: list[str] = Field(default_factory=list, alias="keyMetricFocus")

    @field_validator("cadence", "start_date", mode="before")
    @classmethod
    def normalize_text(cls, v: Any) -> str:
        """Blank values become 'Not specified'."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return NOT_SPECIFIED
        return str(v)

    @field_validator("num_waves", mode="before")
    @classmethod
    def normalize_num_waves(cls, v: Any) -> int:
        """Missing or non-numeric wave counts become 0."""
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 0

    @field_validator("key_metric_focus", mode="before")
    @classmethod
    def normalize_key_metric_focus(cls, v: Any) -> list[str]:
        """Normalize key_metric_focus to list of strings."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(item) for item in v]
        return [str(v)]


class ContextualConfigSuggestion(BaseModel):
    """Configuration hints extracted from a project description."""

    model_config = ConfigDict(populate_by_name=True)

    suggested_markets: list[str] = Field(
        default_factory=list,
        alias="suggestedMarkets",
        description="Country names or codes mentioned in the context",
    )
    suggested_photo: Optional[SuggestedMedia] = Field(default=None, alias="suggestedPhoto")
    suggested_video: Optional[SuggestedMedia] = Field(default=None, alias="suggestedVideo")
    suggested_time_series: Optional[SuggestedTimeSeries] = Field(
        default=None, alias="suggestedTimeSeries"
    )

    @field_validator("suggested_markets", mode="before")
    @classmethod
    def normalize_markets(cls, v: Any) -> list[str]:
        """Normalize suggested_markets to list of strings."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list):
            return [str(item) for item in v]
        return [str(v)]

    def is_empty(self) -> bool:
        """True when nothing was suggested."""
        return (
            not self.suggested_markets
            and self.suggested_photo is None
            and self.suggested_video is None
            and self.suggested_time_series is None
        )
