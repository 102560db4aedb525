"""Interactive CLI prompts for follow-up answers and the user profile."""

from typing import Optional

import click
from rich.console import Console

from surveyforge.core.follow_up import is_visible, resolve_text
from surveyforge.schemas.submission import UserProfile
from surveyforge.schemas.template import FollowUpQuestion, Template


def prompt_follow_up(question: FollowUpQuestion, answers: dict[str, str]) -> str:
    """Prompt for a single follow-up answer."""
    label = resolve_text(question.label, answers)
    placeholder = resolve_text(question.placeholder, answers)
    if question.description:
        click.echo(f"  {question.description}")
    if placeholder:
        click.echo(f"  {placeholder}")

    default = answers.get(question.id) or question.default_value or ""

    if question.options:
        choices = [option.value for option in question.options]
        for option in question.options:
            click.echo(f"    {option.value}: {option.label}")
        return click.prompt(
            label,
            type=click.Choice(choices, case_sensitive=False),
            default=default or None,
            show_choices=False,
        )

    suffix = "" if question.required else " (optional)"
    while True:
        value = click.prompt(
            f"{label}{suffix}", default=default, show_default=bool(default)
        ).strip()
        if value or not question.required:
            return value
        click.echo("This question is required.", err=True)


def prompt_follow_up_answers(
    template: Template, answers: Optional[dict[str, str]] = None, only_missing: bool = False
) -> dict[str, str]:
    """
    Walk through a template's follow-up questions.

    Questions hidden by show_if conditions are skipped; visibility is
    re-evaluated after each answer.

    Args:
        template: Active template
        answers: Answers collected so far
        only_missing: Only ask questions that have no answer yet

    Returns:
        Updated answers
    """
    collected = dict(answers or {})
    console = Console()
    console.print(f"\n[bold cyan]{template.title}[/bold cyan]")
    console.print("=" * 50)

    for question in template.follow_up_questions:
        if question.type == "file_upload" or not is_visible(question, collected):
            continue
        if only_missing and (collected.get(question.id) or "").strip():
            continue
        collected[question.id] = prompt_follow_up(question, collected)

    return collected


def prompt_profile(existing: Optional[UserProfile] = None) -> UserProfile:
    """Prompt for the user profile fields."""
    current = existing if existing is not None else UserProfile()

    def ask(label: str, value: Optional[str], required: bool = False) -> Optional[str]:
        while True:
            answer = click.prompt(label, default=value or "", show_default=bool(value)).strip()
            if answer or not required:
                return answer or None
            click.echo(f"{label} is required.", err=True)

    return UserProfile(
        name=ask("Name", current.name, required=True),
        email=ask("Email", current.email, required=True),
        organisation=ask("Organisation", current.organisation),
        role=ask("Role", current.role),
        industry=ask("Industry", current.industry),
    )
