"""Schemas for explore templates and their follow-up questions."""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from surveyforge.schemas.sections import FrameworkSection

FollowUpType = Literal["text", "textarea", "radio", "dropdown", "number_dropdown", "file_upload"]


class LiteralText(BaseModel):
    """Fixed label or placeholder text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["literal"] = "literal"
    value: str = Field(description="The text shown as-is")


class ComputedText(BaseModel):
    """Label or placeholder text derived from earlier answers."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["computed"] = "computed"
    resolver: str = Field(description="Name of a registered answers -> str function")


TextSpec = Annotated[Union[LiteralText, ComputedText], Field(discriminator="kind")]


def _coerce_text_spec(v: Any) -> Any:
    if isinstance(v, str):
        return {"kind": "literal", "value": v}
    return v


class FollowUpOption(BaseModel):
    """A selectable answer for radio and dropdown follow-up questions."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class ShowIf(BaseModel):
    """Shows a follow-up question only when another answer has a given value."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    question_id: str = Field(alias="questionId")
    expected_value: str = Field(alias="expectedValue")


class FollowUpQuestion(BaseModel):
    """A question asked before generation to collect project context."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="Answer key, also the placeholder name in seed text")
    label: TextSpec = Field(description="Literal or computed label")
    description: Optional[str] = None
    type: FollowUpType = "text"
    placeholder: Optional[TextSpec] = None
    required: bool = False
    default_value: Optional[str] = Field(default=None, alias="defaultValue")
    options: list[FollowUpOption] = Field(default_factory=list)
    show_if: Optional[ShowIf] = Field(default=None, alias="showIf")
    min: Optional[int] = None
    max: Optional[int] = None
    accept: Optional[str] = None

    @field_validator("label", "placeholder", mode="before")
    @classmethod
    def normalize_text_spec(cls, v: Any) -> Any:
        """Plain strings are literal text."""
        return _coerce_text_spec(v)

    @field_validator("default_value", mode="before")
    @classmethod
    def normalize_default_value(cls, v: Any) -> Optional[str]:
        """Answers are strings; numeric defaults are stringified."""
        if v is None:
            return None
        return str(v)


class Template(BaseModel):
    """A static explore template: seed text, framework sections and follow-ups."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="Unique template id")
    title: str
    description: str = ""
    seed_text: str = Field(alias="seedText", description="Generation request with placeholders")
    framework_sections: list[FrameworkSection] = Field(
        default_factory=list, alias="frameworkSections"
    )
    follow_up_questions: list[FollowUpQuestion] = Field(
        default_factory=list, alias="followUpQuestions"
    )
    is_popular: bool = Field(default=False, alias="isPopular")
    interpolation: Optional[Literal["themes", "usage_experience"]] = Field(
        default=None,
        description="Bespoke branch interpolator name, None for generic substitution",
    )

    def follow_up(self, question_id: str) -> Optional[FollowUpQuestion]:
        """Return the follow-up question with the given id, if any."""
        for question in self.follow_up_questions:
            if question.id == question_id:
                return question
        return None
