"""Compile a template's seed text into the survey generation request."""

import json
import re
from typing import Callable, Iterable, Mapping

from surveyforge.core.logging import get_logger
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.template import Template

logger = get_logger("surveyforge.compiler")

SECTION_TITLES_SLOT = "{{sectionTitles}}"
PROJECT_CONTEXT_KEY = "projectBigQuestion"
FALLBACK_TEXT = "relevant details"

_IF_BLOCK_PATTERN = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_TRIPLE_STASH_PATTERN = re.compile(r"\{\{\{(\w+)\}\}\}")
_BRACKETED_TITLES_PATTERN = re.compile(r"The section titles MUST BE EXACTLY:\s*\[.*?\]\.?", re.DOTALL)
_AS_FOLLOWS_PATTERN = re.compile(
    r"The survey MUST be structured into the following(?: [\w\s]+?)? sections.*?"
    r"The section titles MUST BE EXACTLY as follows:",
    re.DOTALL,
)
_PLACEHOLDER_PATTERN = re.compile(r"\{[a-zA-Z0-9_]+\}")
_DEFERRED_PATTERN = re.compile("\x00(\\d+)\x00")


def section_titles_for(
    screeners: Iterable[FrameworkSection], content: Iterable[FrameworkSection]
) -> list[str]:
    """Titles in generation order: screeners first, then content."""
    return [s.title for s in screeners] + [s.title for s in content]


def _structure_sentence(titles: list[str]) -> str:
    return (
        "The survey MUST be structured into the following sections. Each section MUST have a "
        "'sectionTitle', an optional 'sectionDescription', and an array of 'questions'. "
        f"The section titles MUST BE EXACTLY: {json.dumps(titles, ensure_ascii=False)}."
    )


def _answer(answers: Mapping[str, str], key: str) -> str:
    return (answers.get(key) or "").strip()


def _defer(deferred: list[str], value: str) -> str:
    deferred.append(value)
    return f"\x00{len(deferred) - 1}\x00"


def _replace_all(text: str, values: Mapping[str, str], deferred: list[str]) -> str:
    for key, value in values.items():
        placeholder = "{" + key + "}"
        if placeholder in text:
            text = text.replace(placeholder, _defer(deferred, value))
    return text


def _themes_values(answers: Mapping[str, str]) -> dict[str, str]:
    focus = _answer(answers, "explorationFocus") or "not specified"
    theme = "the specified theme"
    context = "the relevant category or context"

    if focus == "definitions":
        theme = _answer(answers, "themeDescriptionForDefinitions") or "the specified theme/trend"
        context = "the general category related to this theme/trend"
    elif focus == "relevance":
        theme = _answer(answers, "themeDescriptionForRelevance") or "the specified theme/trend"
        product = _answer(answers, "productDescriptionForRelevance") or "the specified product/service"
        context = f'the product/service: "{product}"'
    elif focus == "alignment":
        theme = _answer(answers, "themeDescriptionForAlignment") or "the specified theme/trend"
        brand = _answer(answers, "brandDescriptionForAlignment") or "the specified brand"
        context = f'the brand: "{brand}"'

    return {
        "explorationFocus": focus,
        "themeDescription": theme,
        "contextDescription": context,
    }


def _usage_values(answers: Mapping[str, str]) -> dict[str, str]:
    depth = _answer(answers, "usageUnderstandingDepth")
    values = {
        "usageFocusType": _answer(answers, "usageFocusType") or "unspecified type",
        "usageFocusDescription": _answer(answers, "usageFocusDescription") or "not specified",
    }

    if depth == "broad":
        values["usageAnalysisGoal"] = "understand broad usage behaviours across all occasions / moments"
    elif depth == "deepDive":
        occasion = _answer(answers, "usageDeepDiveOccasion") or "a specific occasion"
        values["usageAnalysisGoal"] = f'deep dive into the specific usage occasion of: "{occasion}"'
        values["usageDeepDiveOccasion"] = occasion
    else:
        values["usageAnalysisGoal"] = "understand usage (depth not specified)"
    return values


_BRANCH_INTERPOLATORS: dict[str, Callable[[Mapping[str, str]], dict[str, str]]] = {
    "themes": _themes_values,
    "usage_experience": _usage_values,
}


class PromptCompiler:
    """Turns a template, follow-up answers and resolved sections into request text."""

    def compile(
        self,
        template: Template,
        answers: Mapping[str, str],
        resolved_section_titles: list[str],
    ) -> str:
        """
        Compile the generation request for a template.

        Args:
            template: Active explore template
            answers: Follow-up answers keyed by question id
            resolved_section_titles: Ordered section titles from the merge engine

        Returns:
            Plain-text request with no unresolved placeholders
        """
        deferred: list[str] = []
        text = self._resolve_conditionals(template.seed_text, answers, deferred)

        interpolator = _BRANCH_INTERPOLATORS.get(template.interpolation or "")
        if interpolator is not None:
            text = _replace_all(text, interpolator(answers), deferred)
        else:
            text = _replace_all(
                text,
                {
                    key: (value.strip() if value and value.strip() else f"details about {key}")
                    for key, value in answers.items()
                    if key != PROJECT_CONTEXT_KEY
                },
                deferred,
            )

        text = self._inject_section_titles(text, list(resolved_section_titles))
        text = _PLACEHOLDER_PATTERN.sub(FALLBACK_TEXT, text)

        # Answer text is inserted last so braces the user typed are never swept
        text = _DEFERRED_PATTERN.sub(lambda m: deferred[int(m.group(1))], text)

        logger.debug(
            f"Compiled prompt for {template.id}",
            context={
                "template_id": template.id,
                "section_count": len(resolved_section_titles),
                "prompt_length": len(text),
            },
        )
        return text

    def _resolve_conditionals(
        self, text: str, answers: Mapping[str, str], deferred: list[str]
    ) -> str:
        """Keep {{#if key}} blocks whose answer is non-blank, drop the rest."""

        def defer(match: re.Match) -> str:
            return _defer(deferred, _answer(answers, match.group(1)))

        def resolve(match: re.Match) -> str:
            if not _answer(answers, match.group(1)):
                return ""
            return _TRIPLE_STASH_PATTERN.sub(defer, match.group(2))

        return _IF_BLOCK_PATTERN.sub(resolve, text)

    def _inject_section_titles(self, text: str, titles: list[str]) -> str:
        """Write the ordered title list into the section-list slot."""
        if SECTION_TITLES_SLOT in text:
            return text.replace(SECTION_TITLES_SLOT, json.dumps(titles, ensure_ascii=False))

        sentence = _structure_sentence(titles)
        if _AS_FOLLOWS_PATTERN.search(text):
            return _AS_FOLLOWS_PATTERN.sub(lambda _: sentence, text)
        if _BRACKETED_TITLES_PATTERN.search(text):
            return _BRACKETED_TITLES_PATTERN.sub(
                lambda _: f"The section titles MUST BE EXACTLY: {json.dumps(titles, ensure_ascii=False)}.",
                text,
            )
        return f"{text.rstrip()}\n\n{sentence}"
