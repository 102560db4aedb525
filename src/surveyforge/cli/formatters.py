"""Output formatting utilities built on rich."""

import json
import sys
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.json import JSON
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from surveyforge.assembler.document_export import format_question_type
from surveyforge.schemas.configuration import FeasibilityEstimate
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.survey import SurveySection
from surveyforge.schemas.template import Template

_LEVEL_STYLES = {"High": "green", "Medium": "yellow", "Low": "red"}


class OutputFormatter:
    """Formats CLI output with rich."""

    def __init__(self, force_color: bool = False, console: Optional[Console] = None):
        """Initialize formatter."""
        self.console = console or Console(force_terminal=force_color or None, file=sys.stdout)
        self.err_console = Console(stderr=True)

    def print_json(self, data: Any, indent: int = 2) -> None:
        """Print JSON with syntax highlighting."""
        self.console.print(JSON(json.dumps(data, indent=indent, ensure_ascii=False, default=str)))

    def print_markdown(self, text: str) -> None:
        """Print markdown with rich rendering."""
        self.console.print(Markdown(text))

    def print_text(self, text: str) -> None:
        """Print text verbatim (no markup interpretation)."""
        self.console.print(text, markup=False, highlight=False)

    def print_templates(self, templates: Iterable[Template]) -> None:
        """Print the template list as a table."""
        table = Table(title="Explore Templates", show_header=True, header_style="bold magenta")
        table.add_column("Id", style="cyan")
        table.add_column("Title")
        table.add_column("Sections", justify="right")
        table.add_column("Follow-ups", justify="right")
        table.add_column("Popular", justify="center")

        for template in templates:
            table.add_row(
                template.id,
                template.title,
                str(len(template.framework_sections)),
                str(len(template.follow_up_questions)),
                "★" if template.is_popular else "",
            )
        self.console.print(table)

    def print_sections(
        self,
        sections: Iterable[FrameworkSection],
        title: str = "Sections",
        selected: Optional[Iterable[str]] = None,
    ) -> None:
        """Print framework sections, marking selected titles."""
        selected_titles = set(selected or [])
        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("", width=1)
        table.add_column("Title", style="cyan")
        table.add_column("Description")

        for section in sections:
            marker = "✓" if section.title in selected_titles else ""
            table.add_row(marker, section.title, section.description)
        self.console.print(table)

    def print_estimate(self, estimate: FeasibilityEstimate, explanation: str = "") -> None:
        """Print a feasibility estimate."""
        level_style = _LEVEL_STYLES.get(estimate.feasibility_level, "white")
        table = Table(title="Feasibility Estimate", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row(
            "Feasibility",
            f"[{level_style}]{estimate.feasibility_level}[/{level_style}] "
            f"({estimate.feasibility_score:.1f})",
        )
        table.add_row("Estimated Tokens", str(estimate.estimated_tokens))
        table.add_row("Video Respondents", str(estimate.video_respondents))
        table.add_row("Photo Respondents", str(estimate.photo_respondents))
        table.add_row("Text Respondents", str(estimate.text_respondents))
        table.add_row("Field Time", estimate.field_time)
        table.add_row("Survey Length", estimate.survey_length)
        self.console.print(table)

        if estimate.key_reasons:
            self.console.print("[bold]Key reasons:[/bold]")
            for reason in estimate.key_reasons:
                self.console.print(f"  • {reason}")
        if explanation:
            self.console.print(f"[dim]{explanation}[/dim]")

    def print_survey(self, title: str, introduction: str, sections: Iterable[SurveySection]) -> None:
        """Print a generated survey."""
        self.console.print(Panel(introduction, title=f"[bold]{title}[/bold]", expand=False))
        for index, section in enumerate(sections, start=1):
            self.console.print(f"\n[bold cyan]Section {index}: {section.section_title}[/bold cyan]")
            if section.section_description:
                self.console.print(f"[dim]{section.section_description}[/dim]")
            for q_index, question in enumerate(section.questions, start=1):
                self.console.print(
                    f"  [bold]Q{q_index}[/bold] {question.question_text} "
                    f"[magenta]\\[{format_question_type(question.question_type)}][/magenta]"
                )
                for option in question.options:
                    self.console.print(f"      - {option}", markup=False)

    def print_stats(self, stats: dict[str, Any]) -> None:
        """Print statistics in a formatted table."""
        table = Table(title="Generation Statistics", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        for key, value in stats.items():
            table.add_row(key.replace("_", " ").title(), str(value))

        self.console.print(table)

    def print_success(self, message: str) -> None:
        """Print success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print error message."""
        self.err_console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self.console.print(f"[blue]ℹ[/blue] {message}")
