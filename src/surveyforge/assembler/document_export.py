"""Plain-text export of a generated survey."""

from typing import Iterable

from surveyforge.schemas.survey import (
    QUESTION_TYPE_DISPLAY_NAMES,
    SCREEN_IN_MARKER,
    SurveyQuestion,
    SurveySection,
)

SEPARATOR = "-" * 40


def format_question_type(question_type: str) -> str:
    """Display name for a question type ("closedText" -> "Closed Text")."""
    return QUESTION_TYPE_DISPLAY_NAMES.get(question_type, question_type)


def _format_option(question: SurveyQuestion, option: str, index: int) -> str:
    letter = chr(ord("a") + index)
    display = f"{letter}) {option.replace(SCREEN_IN_MARKER, '', 1).strip()}"
    if question.question_type == "screener" and SCREEN_IN_MARKER in option:
        display += f" {SCREEN_IN_MARKER}"
    return display


def generate_doc_content(
    title: str, introduction: str, sections: Iterable[SurveySection]
) -> str:
    """
    Render a survey as a plain-text document.

    Options are lettered a), b), ...; the screen-in marker is kept only on
    screener questions.

    Args:
        title: Survey title
        introduction: Survey introduction
        sections: Ordered survey sections

    Returns:
        Document text
    """
    lines = [f"Survey Title: {title}", "", f"Introduction: {introduction}", "", SEPARATOR, ""]

    for section_index, section in enumerate(sections, start=1):
        lines.append(f"Section {section_index}: {section.section_title}")
        if section.section_description:
            lines.append(section.section_description)
        lines.append("")

        for question_index, question in enumerate(section.questions, start=1):
            lines.append(
                f"Q{question_index}: {question.question_text} "
                f"[{format_question_type(question.question_type)}]"
            )
            for option_index, option in enumerate(question.options):
                lines.append(f"  {_format_option(question, option, option_index)}")
            lines.append("")

        lines.append(SEPARATOR)
        lines.append("")

    return "\n".join(lines) + "\n"
