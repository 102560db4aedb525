"""Contextual configuration extraction from a free-text project description."""

import time
from datetime import date
from pathlib import Path
from typing import Optional

from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.logging import get_logger
from surveyforge.core.validator import validate_schema
from surveyforge.schemas.contextual import ContextualConfigSuggestion

logger = get_logger("surveyforge.stages.extract")

STAGE_NAME = "config_extraction"


class ContextualConfigExtractor:
    """Suggests markets, media tasks and tracking settings from project context."""

    def __init__(self, llm_client: LLMClientBase):
        """
        Initialize config extractor.

        Args:
            llm_client: LLM client for API calls
        """
        self.llm_client = llm_client
        self.prompt_template = self._load_template()

    def _load_template(self) -> str:
        """Load prompt template from file."""
        template_path = Path(__file__).parent.parent / "prompts" / "extract_config.txt"
        return template_path.read_text(encoding="utf-8")

    def extract(
        self, project_context: str, today: Optional[date] = None
    ) -> ContextualConfigSuggestion:
        """
        Extract configuration hints from project context.

        Args:
            project_context: Free-text project description
            today: Reference date for suggested start dates (defaults to today)

        Returns:
            Suggestions; empty when the context mentions nothing relevant

        Raises:
            ValueError: If the response is not valid JSON or fails validation
            RuntimeError: If the provider call fails
        """
        if not project_context or not project_context.strip():
            return ContextualConfigSuggestion()

        start_time = time.time()
        logger.log_pipeline_stage(STAGE_NAME, "started")

        # Format template
        prompt = self.prompt_template.format(
            project_context=project_context.strip(),
            today=(today or date.today()).isoformat(),
        )

        # Call LLM
        response = self.llm_client.generate(prompt)

        # Extract JSON; a bare "null" or empty object means nothing was found
        if response.strip() in ("", "null", "{}"):
            json_data: dict = {}
        else:
            json_data = self.llm_client.extract_json(response)

        result = validate_schema(json_data, ContextualConfigSuggestion)

        duration_ms = (time.time() - start_time) * 1000
        logger.log_pipeline_stage(
            STAGE_NAME,
            "completed",
            duration_ms=duration_ms,
            market_count=len(result.suggested_markets),
        )
        return result
