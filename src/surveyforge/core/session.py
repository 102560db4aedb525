"""Survey design session: owns selection, configuration and generated content."""

from datetime import datetime, timezone
from typing import Iterable, Literal, Optional, Union

from pydantic import BaseModel

from surveyforge.assembler.document_export import generate_doc_content
from surveyforge.assembler.prompt_compiler import (
    PROJECT_CONTEXT_KEY,
    PromptCompiler,
    section_titles_for,
)
from surveyforge.catalog.countries import COUNTRIES, find_country, match_markets, merge_markets
from surveyforge.catalog.templates import get_template
from surveyforge.core.config import DEFAULT_HARDER_ACCESS_MARKETS
from surveyforge.core.customization_cache import CustomizationCache
from surveyforge.core.estimator import estimate_feasibility
from surveyforge.core.follow_up import default_answers, missing_required
from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.logging import get_logger
from surveyforge.core.merge import current_sections, resolve_sections
from surveyforge.core.retry import CircuitBreakerError
from surveyforge.core.storage import DocumentStore, ProfileStore
from surveyforge.schemas.configuration import (
    Country,
    FeasibilityEstimate,
    PhotoConfig,
    SegmentationConfig,
    SurveyConfiguration,
    TimeSeriesConfig,
    VideoConfig,
    parse_start_date,
)
from surveyforge.schemas.contextual import ContextualConfigSuggestion
from surveyforge.schemas.customization import SelectionState
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.submission import (
    SUBMISSIONS_COLLECTION,
    ConfigurationDetails,
    SubmittedQuestion,
    SubmittedSection,
    SurveySubmission,
    SurveySummary,
    UserProfile,
)
from surveyforge.schemas.survey import (
    SCREEN_IN_MARKER,
    QuestionType,
    SuggestSurveyRequest,
    SuggestSurveyResponse,
    SurveyQuestion,
    SurveySection,
)
from surveyforge.schemas.template import Template
from surveyforge.stages.config_extractor import ContextualConfigExtractor
from surveyforge.stages.survey_suggester import SurveySuggester

logger = get_logger("surveyforge.session")

SolutionType = Literal["explore", "pulse"]

DEFAULT_SURVEY_TITLE = "Survey Title"
DEFAULT_SURVEY_INTRODUCTION = "Welcome to this survey. Your feedback is valuable."


class Notification(BaseModel):
    """A user-visible message raised by a session operation."""

    title: str
    description: str
    severity: Literal["success", "info", "error"] = "info"


class SurveyDesignSession:
    """
    State and operations behind one survey design flow.

    The session owns the selection, configuration, customization cache and
    generated content. Every section or question mutation is persisted to
    the cache under the active template, so switching templates and back
    restores the user's work. Generation, contextual suggestion and launch
    never raise: failures are recorded as notifications.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClientBase] = None,
        solution_type: SolutionType = "explore",
        suggester: Optional[SurveySuggester] = None,
        extractor: Optional[ContextualConfigExtractor] = None,
        document_store: Optional[DocumentStore] = None,
        profile_store: Optional[ProfileStore] = None,
        customization_cache: Optional[CustomizationCache] = None,
        sample_size: int = 100,
        harder_access_markets: Iterable[str] = DEFAULT_HARDER_ACCESS_MARKETS,
    ):
        """
        Initialize a session.

        Args:
            llm_client: Client used to build the default stages
            solution_type: "explore" (template driven) or "pulse" (free text)
            suggester: Survey suggestion stage (built from llm_client if None)
            extractor: Contextual config stage (built from llm_client if None)
            document_store: Store launched surveys are written to
            profile_store: Local store holding the user profile
            customization_cache: Per-template cache (a new one if None)
            sample_size: Initial sample size
            harder_access_markets: Market codes the estimator penalizes
        """
        self.solution_type: SolutionType = solution_type
        if suggester is None and llm_client is not None:
            suggester = SurveySuggester(llm_client)
        if extractor is None and llm_client is not None:
            extractor = ContextualConfigExtractor(llm_client)
        self.suggester = suggester
        self.extractor = extractor
        self.document_store = document_store
        self.profile_store = profile_store
        self.customization_cache = (
            customization_cache if customization_cache is not None else CustomizationCache()
        )
        self.harder_access_markets = list(harder_access_markets)
        self.compiler = PromptCompiler()

        self.template: Optional[Template] = None
        self.answers: dict[str, str] = {}
        self.pulse_survey_description = ""
        self.customized_screener_sections: Optional[list[FrameworkSection]] = None
        self.customized_content_sections: Optional[list[FrameworkSection]] = None

        self.sections: list[SurveySection] = []
        self.title = ""
        self.introduction = ""
        self.initial_sample_size = sample_size
        self.configuration = SurveyConfiguration(sample_size=sample_size)

        self.is_generating = False
        self.setup_complete = False
        self.notifications: list[Notification] = []

        self.profile: Optional[UserProfile] = (
            profile_store.load() if profile_store is not None else None
        )

    # Template selection

    @property
    def template_id(self) -> Optional[str]:
        return self.template.id if self.template else None

    def select_template(self, template: Union[Template, str, None]) -> None:
        """
        Switch the active template, saving the current one's edits first.

        Passing None returns to template selection. Generated title,
        introduction, answers and the survey configuration are reset; sections and
        customizations are restored from the cache when the template was
        visited before.

        Args:
            template: Template, template id, or None

        Raises:
            ValueError: If a template id is unknown
        """
        if isinstance(template, str):
            template = get_template(template)
        new_id = template.id if template else None
        if new_id == self.template_id:
            return

        self._persist()
        self.template = template

        record = self.customization_cache.restore(new_id)
        if record is not None:
            self.sections = record.generated_sections
            self.customized_content_sections = record.customized_content_sections
            self.customized_screener_sections = record.customized_screener_sections
        else:
            self.sections = []
            self.customized_content_sections = None
            self.customized_screener_sections = None

        self.title = ""
        self.introduction = ""
        self.answers = default_answers(template) if template else {}
        self.configuration = SurveyConfiguration(sample_size=self.initial_sample_size)
        self.setup_complete = any(section.questions for section in self.sections)

        logger.log_session_event(
            "template_selected", template_id=new_id, restored=record is not None
        )

    # Follow-up answers

    def set_answer(self, question_id: str, value: str) -> None:
        """Record a follow-up answer."""
        self.answers[question_id] = value

    def set_answers(self, answers: dict[str, str]) -> None:
        """Merge several follow-up answers."""
        self.answers.update(answers)

    def set_pulse_description(self, description: str) -> None:
        """Set the free-text request used by pulse surveys."""
        self.pulse_survey_description = description

    def missing_answers(self) -> list[str]:
        """Ids of visible required follow-ups that are still blank."""
        if self.template is None:
            return []
        return [q.id for q in missing_required(self.template, self.answers)]

    def can_finish_setup(self) -> bool:
        """Whether enough input exists to request generation."""
        if self.solution_type == "pulse":
            return bool(self.pulse_survey_description.strip())
        return self.template is not None and not self.missing_answers()

    # Section selection

    def current_framework(self) -> tuple[list[FrameworkSection], list[FrameworkSection]]:
        """(screener sections, content sections) currently in effect."""
        if self.template is None:
            return [], []
        return current_sections(
            self.template, self.customized_screener_sections, self.customized_content_sections
        )

    def selection_state(self) -> SelectionState:
        """Titles currently selected for the active template."""
        screeners, content = self.current_framework()
        return SelectionState(
            selected_screener_titles=[s.title for s in screeners],
            selected_content_titles=[s.title for s in content],
        )

    def resolved_section_titles(self) -> list[str]:
        """Ordered titles the generation request will demand."""
        return section_titles_for(*self.current_framework())

    def apply_section_customization(self, state: SelectionState) -> None:
        """
        Save a new screener and content selection for the active template.

        Raises:
            ValueError: If no template is active
        """
        if self.template is None:
            raise ValueError("Select a template before customizing sections")
        screeners, content = resolve_sections(
            state,
            self.template,
            self.customized_screener_sections,
            self.customized_content_sections,
        )
        self.customized_screener_sections = screeners
        self.customized_content_sections = content
        self._persist()
        logger.log_session_event(
            "sections_customized",
            template_id=self.template_id,
            screeners=len(screeners),
            content=len(content),
        )

    def set_selected_screeners(self, titles: list[str]) -> None:
        """Replace the screener selection, keeping the content selection."""
        state = self.selection_state()
        self.apply_section_customization(
            SelectionState(
                selected_screener_titles=titles,
                selected_content_titles=state.selected_content_titles,
            )
        )

    def set_selected_content(self, titles: list[str]) -> None:
        """Replace the content selection, keeping the screener selection."""
        state = self.selection_state()
        self.apply_section_customization(
            SelectionState(
                selected_screener_titles=state.selected_screener_titles,
                selected_content_titles=titles,
            )
        )

    # Configuration

    def set_sample_size(self, sample_size: int) -> None:
        """Set the sample size (raised to the minimum when too small)."""
        self.configuration.sample_size = sample_size

    def set_markets(self, codes_or_labels: Iterable[str]) -> None:
        """
        Replace the selected markets.

        Raises:
            ValueError: If a market is unknown
        """
        countries = []
        for item in codes_or_labels:
            country = find_country(item)
            if country is None:
                raise ValueError(f"Unknown market: {item}")
            countries.append(country)
        self.configuration.selected_countries = merge_markets([], countries)

    def add_market(self, code_or_label: str) -> None:
        """Add one market if not already selected."""
        country = find_country(code_or_label)
        if country is None:
            raise ValueError(f"Unknown market: {code_or_label}")
        self.configuration.selected_countries = merge_markets(
            self.configuration.selected_countries, [country]
        )

    def remove_market(self, code: str) -> None:
        """Remove a market by code."""
        self.configuration.selected_countries = [
            c for c in self.configuration.selected_countries if c.value != code.lower()
        ]

    def set_photo_config(self, config: Optional[PhotoConfig]) -> None:
        self.configuration.photo_config = config

    def set_video_config(self, config: Optional[VideoConfig]) -> None:
        self.configuration.video_config = config

    def set_time_series_config(self, config: Optional[TimeSeriesConfig]) -> None:
        self.configuration.time_series_config = config

    def set_segmentation_config(self, config: Optional[SegmentationConfig]) -> None:
        self.configuration.segmentation_config = config

    def set_incidence_rate(self, rate: Optional[float]) -> None:
        """Set the incidence rate, clamped to 0-100."""
        if rate is not None:
            rate = min(100.0, max(0.0, float(rate)))
        self.configuration.estimated_incidence_rate = rate

    def estimate(self) -> FeasibilityEstimate:
        """Feasibility and cost estimate for the current configuration."""
        return estimate_feasibility(self.configuration, self.harder_access_markets)

    # Generation

    def compile_prompt(self) -> str:
        """
        Build the generation request text.

        Raises:
            ValueError: If no template is active for an explore session
        """
        if self.solution_type == "pulse":
            return self.pulse_survey_description
        if self.template is None:
            raise ValueError("Select a template before compiling the generation request")
        return self.compiler.compile(self.template, self.answers, self.resolved_section_titles())

    def _market_string(self) -> Optional[str]:
        labels = ", ".join(c.label for c in self.configuration.selected_countries)
        return labels or None

    def build_request(self) -> SuggestSurveyRequest:
        """Assemble the generation request from the current state."""
        project_context = (self.answers.get(PROJECT_CONTEXT_KEY) or "").strip() or None
        return SuggestSurveyRequest(
            survey_description=self.compile_prompt(),
            include_photo_questions=self.configuration.photo_config is not None,
            include_video_questions=self.configuration.video_config is not None,
            time_series_config=self.configuration.time_series_config,
            selected_market=self._market_string(),
            project_context=project_context,
        )

    def apply_survey_document(self, document: SuggestSurveyResponse) -> None:
        """Replace generated content with a survey document."""
        self.sections = list(document.survey_sections)
        self.title = document.survey_title or DEFAULT_SURVEY_TITLE
        self.introduction = document.survey_introduction or DEFAULT_SURVEY_INTRODUCTION
        self.set_incidence_rate(document.estimated_incidence_rate)
        self.configuration.estimated_ir_rationale = document.incidence_rate_rationale
        self.configuration.estimated_ir_sources = list(document.incidence_rate_sources)
        self.setup_complete = any(section.questions for section in self.sections)
        self._persist()

    def finish_setup(self) -> bool:
        """
        Generate the survey for the current setup.

        Does nothing while a generation is running or once setup is complete.
        On success the contextual configuration step runs as well.

        Returns:
            True if a survey with at least one question was generated
        """
        if self.is_generating or self.setup_complete:
            return False
        if not self.can_finish_setup():
            logger.debug("Setup is not ready for generation")
            return False
        if self.suggester is None:
            raise ValueError("No survey suggester configured")

        self.is_generating = True
        try:
            request = self.build_request()
            document = self.suggester.suggest(request)
            self.apply_survey_document(document)
            if self.setup_complete:
                self.suggest_contextual_config(request.project_context)
            return self.setup_complete
        except (RuntimeError, CircuitBreakerError, ValueError) as e:
            logger.error(
                f"Survey generation failed: {e}",
                context={"template_id": self.template_id, "solution_type": self.solution_type},
            )
            self._notify(
                "Generation Error",
                "Could not generate survey content. Please try again.",
                "error",
            )
            self.setup_complete = False
            return False
        finally:
            self.is_generating = False

    def regenerate(self) -> bool:
        """Allow generation again and run it."""
        self.setup_complete = False
        return self.finish_setup()

    # Contextual configuration

    def suggest_contextual_config(self, project_context: Optional[str] = None) -> bool:
        """
        Extract configuration hints from the project context and apply them.

        Args:
            project_context: Context text (defaults to the projectBigQuestion answer)

        Returns:
            True if suggestions were applied
        """
        context = project_context
        if context is None:
            context = self.answers.get(PROJECT_CONTEXT_KEY)
        if not context or not context.strip() or self.extractor is None:
            return False

        try:
            suggestion = self.extractor.extract(context)
        except (RuntimeError, CircuitBreakerError, ValueError) as e:
            logger.warning(f"Contextual configuration suggestion failed: {e}")
            self._notify(
                "Configuration Suggestion Error",
                "Could not automatically suggest configurations from project context.",
                "info",
            )
            return False

        self.apply_contextual_suggestion(suggestion)
        return not suggestion.is_empty()

    def apply_contextual_suggestion(
        self,
        suggestion: ContextualConfigSuggestion,
        countries: Optional[Iterable[Country]] = None,
    ) -> None:
        """
        Merge suggested markets, media tasks and tracking settings into the configuration.

        Existing markets are kept and matches are appended. Existing media
        purposes and counts are kept; the description comes from the suggestion.
        """
        config = self.configuration
        sample_size = config.sample_size
        default_media_count = max(1, int(sample_size * 0.1 + 0.5))

        if suggestion.suggested_markets:
            matched = match_markets(
                suggestion.suggested_markets, countries if countries is not None else COUNTRIES
            )
            config.selected_countries = merge_markets(config.selected_countries, matched)

        if suggestion.suggested_photo is not None:
            previous = config.photo_config
            config.photo_config = PhotoConfig(
                purpose=(previous.purpose if previous else "") or "qualitative",
                num_photos=(previous.num_photos if previous else 0) or default_media_count,
                description=suggestion.suggested_photo.description,
            )

        if suggestion.suggested_video is not None:
            previous_video = config.video_config
            config.video_config = VideoConfig(
                purpose=(previous_video.purpose if previous_video else "") or "qualitative",
                num_videos=(previous_video.num_videos if previous_video else 0)
                or default_media_count,
                description=suggestion.suggested_video.description,
            )

        suggested_series = suggestion.suggested_time_series
        if suggested_series is not None:
            series = TimeSeriesConfig(
                cadence=suggested_series.cadence,
                num_waves=suggested_series.num_waves or 3,
                start_date=parse_start_date(suggested_series.start_date),
                key_metric_focus=suggested_series.key_metric_focus,
            )
            if not series.cadence:
                series = series.model_copy(update={"cadence": "monthly"})
            config.time_series_config = series

        logger.log_session_event(
            "contextual_config_applied",
            template_id=self.template_id,
            markets=[c.value for c in config.selected_countries],
        )

    # Generated content edits

    def set_title(self, title: str) -> None:
        self.title = title

    def set_introduction(self, introduction: str) -> None:
        self.introduction = introduction

    def update_section(
        self,
        section_index: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Change a section's title and/or description."""
        section = self.sections[section_index]
        if title is not None:
            section.section_title = title
        if description is not None:
            section.section_description = description
        self._persist()

    def update_question(
        self,
        section_index: int,
        question_index: int,
        text: Optional[str] = None,
        question_type: Optional[QuestionType] = None,
        options: Optional[list[str]] = None,
    ) -> None:
        """Change a question's text, type and/or options."""
        current = self.sections[section_index].questions[question_index]
        self.sections[section_index].questions[question_index] = SurveyQuestion(
            question_text=current.question_text if text is None else text,
            question_type=current.question_type if question_type is None else question_type,
            options=list(current.options) if options is None else options,
        )
        self._persist()

    def update_option(
        self, section_index: int, question_index: int, option_index: int, text: str
    ) -> None:
        """
        Edit an option, or append one when the index is past the end.

        A screener option that was marked as screen-in keeps its marker.
        """
        question = self.sections[section_index].questions[question_index]
        options = list(question.options)
        is_screener = question.question_type == "screener"

        if option_index >= len(options):
            options.append(text.strip() if is_screener and SCREEN_IN_MARKER not in text else text)
        else:
            if is_screener and SCREEN_IN_MARKER in options[option_index]:
                text = f"{text.strip()} {SCREEN_IN_MARKER}"
            options[option_index] = text

        question.options = options
        self._persist()

    def delete_option(self, section_index: int, question_index: int, option_index: int) -> None:
        question = self.sections[section_index].questions[question_index]
        options = list(question.options)
        del options[option_index]
        question.options = options
        self._persist()

    def toggle_screen_in(
        self, section_index: int, question_index: int, option_index: int, checked: bool
    ) -> None:
        """Mark or unmark a screener option as qualifying. Non-screeners are left alone."""
        question = self.sections[section_index].questions[question_index]
        if question.question_type != "screener" or not question.options:
            return
        options = list(question.options)
        text = options[option_index].replace(SCREEN_IN_MARKER, "", 1).strip()
        options[option_index] = f"{text} {SCREEN_IN_MARKER}" if checked else text
        question.options = options
        self._persist()

    def add_section(self) -> SurveySection:
        """Append an empty section."""
        section = SurveySection(
            section_title=f"New Section {len(self.sections) + 1}",
            section_description="",
            questions=[],
        )
        self.sections.append(section)
        self._persist()
        return section

    def add_question(self, section_index: int) -> SurveyQuestion:
        """Append an open-text question to a section."""
        section = self.sections[section_index]
        question = SurveyQuestion(
            question_text=f"New Question {len(section.questions) + 1}",
            question_type="openText",
            options=[],
        )
        section.questions.append(question)
        self._persist()
        return question

    def move_section(self, from_index: int, to_index: int) -> None:
        section = self.sections.pop(from_index)
        self.sections.insert(to_index, section)
        self._persist()

    def move_question(self, section_index: int, from_index: int, to_index: int) -> None:
        questions = self.sections[section_index].questions
        question = questions.pop(from_index)
        questions.insert(to_index, question)
        self._persist()

    def delete_section(self, section_index: int) -> None:
        del self.sections[section_index]
        self._persist()

    def delete_question(self, section_index: int, question_index: int) -> None:
        del self.sections[section_index].questions[question_index]
        self._persist()

    # Profile and launch

    def save_profile(self, profile: UserProfile) -> None:
        """Remember the profile and write it to the profile store."""
        self.profile = profile
        if self.profile_store is not None:
            self.profile_store.save(profile)

    def build_submission(self) -> SurveySubmission:
        """Assemble the launch document from the current state."""
        config = self.configuration
        summary = SurveySummary(
            title=self.title,
            introduction=self.introduction,
            sections=[
                SubmittedSection(
                    title=section.section_title,
                    description=section.section_description,
                    questions=[
                        SubmittedQuestion(
                            text=q.question_text, type=q.question_type, options=list(q.options)
                        )
                        for q in section.questions
                    ],
                )
                for section in self.sections
            ],
            question_count=sum(len(section.questions) for section in self.sections),
        )
        details = ConfigurationDetails(
            solution_type=self.solution_type,
            template=self.template.title if self.template else "Pulse",
            template_configuration=dict(self.answers),
            pulse_survey_description=(
                self.pulse_survey_description if self.solution_type == "pulse" else None
            ),
            sample_size=config.sample_size,
            markets=[c.label for c in config.selected_countries],
            estimated_ir=config.estimated_incidence_rate,
            photo_configuration=config.photo_config,
            video_configuration=config.video_config,
            segmentation_configuration=config.segmentation_config,
            time_series_configuration=config.time_series_config,
        )
        return SurveySubmission(
            survey_summary=summary,
            configuration_details=details,
            user_profile=self.profile,
            submitted_at=datetime.now(timezone.utc),
        )

    def launch(self, profile: Optional[UserProfile] = None) -> Optional[str]:
        """
        Write the survey and its configuration to the document store.

        Args:
            profile: Profile to save first (e.g. collected at launch time)

        Returns:
            Stored document id, or None on failure
        """
        if profile is not None:
            self.save_profile(profile)
        if self.profile is None or not self.profile.is_complete:
            self._notify(
                "Profile Required",
                "Please add your name and email before launching.",
                "info",
            )
            return None
        if self.document_store is None:
            raise ValueError("No document store configured")

        try:
            document_id = self.document_store.add(
                SUBMISSIONS_COLLECTION, self.build_submission().to_document()
            )
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Could not store survey submission: {e}")
            self._notify(
                "Launch Error",
                "Could not save survey data to the database. Please try again.",
                "error",
            )
            return None

        self._notify(
            "Survey Launch Data Saved!",
            "Your survey configuration and details have been saved to the database.",
            "success",
        )
        return document_id

    def export_text(self) -> str:
        """Plain-text rendering of the generated survey."""
        return generate_doc_content(self.title, self.introduction, self.sections)

    # Internals

    def _persist(self) -> None:
        self.customization_cache.persist(
            self.template_id,
            self.sections,
            self.customized_content_sections,
            self.customized_screener_sections,
        )

    def _notify(self, title: str, description: str, severity: str) -> None:
        notification = Notification(title=title, description=description, severity=severity)
        self.notifications.append(notification)
        logger.info(f"Notification: {title}", context={"severity": severity})
