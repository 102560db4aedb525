"""Survey suggestion stage: compiled request in, structured survey document out."""

import time
from pathlib import Path
from typing import Optional

from surveyforge.core.cache import ResponseCache
from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.logging import get_logger
from surveyforge.core.validator import validate_schema
from surveyforge.schemas.configuration import TimeSeriesConfig
from surveyforge.schemas.survey import SuggestSurveyRequest, SuggestSurveyResponse

logger = get_logger("surveyforge.stages.suggest")

STAGE_NAME = "survey_suggestion"
UNSPECIFIED_MARKET = "'not specified (assume general/global or use surveyDescription for cues)'"


def _time_series_block(config: Optional[TimeSeriesConfig]) -> str:
    if config is None:
        return ""
    return (
        "- Time Series Tracking: Enabled\n"
        f"  - Cadence: {config.cadence}\n"
        f"  - Number of Waves: {config.num_waves}\n"
        f"  - Start Date: {config.start_date.isoformat()}\n"
        f"  - Key Metrics: {', '.join(config.key_metric_focus)}\n"
        "  (If Time Series Tracking is enabled, ensure some questions are suitable for repeated "
        "measurement across waves, particularly focusing on the specified Key Metrics. You may "
        'want to add a "Key Metrics Tracking" section or integrate these into existing relevant '
        "sections.)\n"
    )


def _project_context_block(project_context: Optional[str]) -> str:
    if not project_context or not project_context.strip():
        return ""
    return (
        "Additional Project Context / Big Question:\n"
        f"{project_context.strip()}\n"
        "(Use this context to further refine question phrasing, emphasis, and the overall survey "
        "flow to better meet the user's underlying research objectives.)\n"
    )


class SurveySuggester:
    """Generates a survey document from a compiled generation request."""

    def __init__(
        self,
        llm_client: LLMClientBase,
        cache: Optional[ResponseCache] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        """
        Initialize survey suggester.

        Args:
            llm_client: LLM client for API calls
            cache: Optional response cache
            provider: Provider name used in cache keys
            model: Model name used in cache keys
        """
        self.llm_client = llm_client
        self.cache = cache
        self.provider = provider
        self.model = model
        self.prompt_template = self._load_template()

    def _load_template(self) -> str:
        """Load prompt template from file."""
        template_path = Path(__file__).parent.parent / "prompts" / "suggest_survey.txt"
        return template_path.read_text(encoding="utf-8")

    def build_prompt(self, request: SuggestSurveyRequest) -> str:
        """Format the suggestion prompt for a request."""
        market = (
            f"'{request.selected_market}'" if request.selected_market else UNSPECIFIED_MARKET
        )
        return self.prompt_template.format(
            survey_description=request.survey_description,
            include_photo=str(request.include_photo_questions).lower(),
            include_video=str(request.include_video_questions).lower(),
            time_series_block=_time_series_block(request.time_series_config),
            project_context_block=_project_context_block(request.project_context),
            market_description=market,
        )

    def suggest(self, request: SuggestSurveyRequest) -> SuggestSurveyResponse:
        """
        Generate a survey for a request.

        Unusable model output (no JSON, failed validation, blank title or
        introduction) yields SuggestSurveyResponse.fallback().

        Args:
            request: Generation request

        Returns:
            Validated survey document, or the fallback document

        Raises:
            RuntimeError: If the provider call fails
            CircuitBreakerError: If the provider circuit is open
        """
        start_time = time.time()
        logger.log_pipeline_stage(STAGE_NAME, "started")

        cache_key = None
        if self.cache is not None:
            cache_key = ResponseCache.make_key(
                STAGE_NAME, request.to_wire(), self.provider, self.model
            )
            cached = self.cache.get(cache_key)
            if cached:
                logger.info("Using cached survey suggestion")
                return SuggestSurveyResponse.model_validate(cached)

        prompt = self.build_prompt(request)

        # Call LLM; transport errors propagate to the caller
        response = self.llm_client.generate(prompt)

        try:
            json_data = self.llm_client.extract_json(response)
            result = validate_schema(
                json_data,
                SuggestSurveyResponse,
                llm_client=self.llm_client,
                original_prompt=prompt,
            )
        except ValueError as e:
            logger.warning(
                "Survey suggestion output unusable, returning fallback document",
                context={"error": str(e)[:500]},
            )
            return SuggestSurveyResponse.fallback()

        if not result.survey_title.strip() or not result.survey_introduction.strip():
            logger.warning("Survey suggestion is missing its title or introduction, returning fallback document")
            return SuggestSurveyResponse.fallback()

        if self.cache is not None and cache_key is not None:
            self.cache.set(cache_key, result.to_wire(), metadata={"stage": STAGE_NAME})

        duration_ms = (time.time() - start_time) * 1000
        logger.log_pipeline_stage(
            STAGE_NAME,
            "completed",
            duration_ms=duration_ms,
            section_count=len(result.survey_sections),
        )
        return result
