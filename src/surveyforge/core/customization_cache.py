"""Per-template customization cache."""

from typing import Optional

from surveyforge.core.logging import get_logger
from surveyforge.schemas.customization import CustomizationRecord
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.survey import SurveySection

logger = get_logger("surveyforge.customization")


class CustomizationCache:
    """
    Keyed store of the last-saved edits for each visited template.

    The session controller owns one instance and persists into it on every
    section or question mutation, so switching templates never loses work.
    Records are deep-copied on the way in and on the way out.
    """

    def __init__(self):
        """Initialize an empty cache."""
        self._records: dict[str, CustomizationRecord] = {}

    def persist(
        self,
        template_id: Optional[str],
        generated_sections: list[SurveySection],
        custom_content: Optional[list[FrameworkSection]],
        custom_screener: Optional[list[FrameworkSection]],
    ) -> None:
        """
        Upsert the record for a template.

        Args:
            template_id: Template the state belongs to; None or "" is ignored
            generated_sections: Generated survey sections
            custom_content: Customized content sections, None for template defaults
            custom_screener: Customized screener sections, None for template defaults
        """
        if not template_id:
            return

        record = CustomizationRecord(
            generated_sections=list(generated_sections),
            customized_content_sections=(
                list(custom_content) if custom_content is not None else None
            ),
            customized_screener_sections=(
                list(custom_screener) if custom_screener is not None else None
            ),
        )
        self._records[template_id] = record.model_copy(deep=True)
        logger.debug(
            f"Persisted customization for {template_id}",
            context={
                "template_id": template_id,
                "generated_sections": len(generated_sections),
                "custom_content": None if custom_content is None else len(custom_content),
                "custom_screener": None if custom_screener is None else len(custom_screener),
            },
        )

    def restore(self, template_id: Optional[str]) -> Optional[CustomizationRecord]:
        """Return a copy of the saved record, or None on a cache miss."""
        if not template_id:
            return None
        record = self._records.get(template_id)
        if record is None:
            return None
        return record.model_copy(deep=True)

    def clear(self) -> None:
        """Forget every saved customization."""
        self._records.clear()

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._records

    def __len__(self) -> int:
        return len(self._records)
