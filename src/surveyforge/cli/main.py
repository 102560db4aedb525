"""CLI interface for surveyforge."""

import json
import sys
import time
from pathlib import Path

import click
import yaml

from surveyforge import __version__
from surveyforge.assembler.document_export import generate_doc_content
from surveyforge.catalog.countries import COUNTRIES
from surveyforge.catalog.sections import get_addable_screeners, get_catalog
from surveyforge.catalog.templates import get_template, list_templates
from surveyforge.cli.formatters import OutputFormatter
from surveyforge.cli.interactive import prompt_follow_up_answers, prompt_profile
from surveyforge.core.cache import ResponseCache
from surveyforge.core.config import APP_DIR_NAME, Config
from surveyforge.core.estimator import explain_feasibility
from surveyforge.core.logging import configure_logging
from surveyforge.core.provider_factory import SUPPORTED_PROVIDERS, create_client, detect_provider
from surveyforge.core.llm_wrapper import wrap_client_with_logging
from surveyforge.core.session import SurveyDesignSession
from surveyforge.core.storage import JsonFileDocumentStore, ProfileStore
from surveyforge.schemas.configuration import PhotoConfig, TimeSeriesConfig, VideoConfig
from surveyforge.schemas.customization import SelectionState
from surveyforge.schemas.submission import UserProfile
from surveyforge.schemas.survey import SuggestSurveyResponse
from surveyforge.stages.config_extractor import ContextualConfigExtractor
from surveyforge.stages.survey_suggester import SurveySuggester


def _parse_answers(pairs: tuple[str, ...], answers_file: str | None) -> dict[str, str]:
    """Merge answers from a YAML/JSON file and repeated KEY=VALUE options."""
    answers: dict[str, str] = {}
    if answers_file:
        content = Path(answers_file).read_text(encoding="utf-8")
        data = json.loads(content) if answers_file.endswith(".json") else yaml.safe_load(content)
        if not isinstance(data, dict):
            raise click.BadParameter("Answers file must contain a mapping", param_hint="--answers-file")
        answers.update({str(k): "" if v is None else str(v) for k, v in data.items()})
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--answer")
        key, value = pair.split("=", 1)
        answers[key.strip()] = value
    return answers


def _parse_media(spec: str | None, option: str) -> tuple[str, int] | None:
    """Parse PURPOSE[:COUNT] media options."""
    if not spec:
        return None
    purpose, _, count = spec.partition(":")
    purpose = purpose.strip().lower()
    if purpose not in ("quantitative", "qualitative"):
        raise click.BadParameter("Purpose must be quantitative or qualitative", param_hint=option)
    try:
        return purpose, int(count) if count else 0
    except ValueError as e:
        raise click.BadParameter(f"Invalid count '{count}'", param_hint=option) from e


def _configure_session(
    session: SurveyDesignSession,
    sample_size: int | None,
    markets: tuple[str, ...],
    incidence_rate: float | None,
    photo: str | None,
    video: str | None,
    cadence: str | None = None,
    waves: int | None = None,
) -> None:
    """Apply configuration options shared by estimate and generate."""
    if sample_size is not None:
        session.set_sample_size(sample_size)
    if markets:
        session.set_markets(markets)
    if incidence_rate is not None:
        session.set_incidence_rate(incidence_rate)

    photo_spec = _parse_media(photo, "--photo")
    if photo_spec:
        session.set_photo_config(PhotoConfig(purpose=photo_spec[0], num_photos=photo_spec[1]))
    video_spec = _parse_media(video, "--video")
    if video_spec:
        session.set_video_config(VideoConfig(purpose=video_spec[0], num_videos=video_spec[1]))
    if cadence:
        session.set_time_series_config(TimeSeriesConfig(cadence=cadence, num_waves=waves or 3))


def _apply_selection(
    session: SurveyDesignSession, screeners: tuple[str, ...], content: tuple[str, ...]
) -> None:
    if not screeners and not content:
        return
    state = session.selection_state()
    session.apply_section_customization(
        SelectionState(
            selected_screener_titles=list(screeners) or state.selected_screener_titles,
            selected_content_titles=list(content) or state.selected_content_titles,
        )
    )


_answer_options = [
    click.option("--answer", "-a", "answer_pairs", multiple=True, help="Follow-up answer as KEY=VALUE (repeatable)"),
    click.option("--answers-file", type=click.Path(exists=True, dir_okay=False), default=None, help="YAML or JSON file of follow-up answers"),
    click.option("--screener", "screeners", multiple=True, help="Screener section title to include (repeatable, replaces template defaults)"),
    click.option("--section", "content_sections", multiple=True, help="Content section title to include (repeatable, replaces template defaults)"),
    click.option("--interactive", "-i", is_flag=True, default=False, help="Prompt for follow-up answers"),
]

_configuration_options = [
    click.option("--sample-size", "-n", type=int, default=None, help="Number of respondents (minimum 51)"),
    click.option("--market", "markets", multiple=True, help="Market code or name (repeatable)"),
    click.option("--ir", "incidence_rate", type=float, default=None, help="Estimated incidence rate (0-100)"),
    click.option("--photo", default=None, help="Photo task as PURPOSE[:COUNT], e.g. qualitative:10"),
    click.option("--video", default=None, help="Video task as PURPOSE[:COUNT], e.g. quantitative"),
]

_logging_options = [
    click.option("--log-level", default="WARNING", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False), help="Logging level (default: WARNING)"),
    click.option("--log-file", type=click.Path(), default=None, help="Path to log file (default: stderr)"),
    click.option("--json-logging", is_flag=True, default=False, help="Output logs in JSON format"),
]


def _add_options(options: list):
    def decorator(func):
        for option in reversed(options):
            func = option(func)
        return func

    return decorator


@click.group()
@click.version_option(version=__version__, prog_name="surveyforge")
def main():
    """
    surveyforge - Design research surveys from explore templates.

    Pick a template, answer its follow-up questions, customize the screener
    and content sections, then generate the survey with an LLM.

    Supported LLM Providers:
      - OpenRouter (requires OPENROUTER_API_KEY)
      - Google AI Gemini (requires GEMINI_API_KEY)
      - Ollama (local, requires running Ollama server)
    """
    pass


@main.command()
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text", help="Output format (default: text)")
def templates(output_format: str):
    """List the explore templates."""
    formatter = OutputFormatter()
    items = list_templates()
    if output_format == "json":
        formatter.print_json([t.model_dump(mode="json", by_alias=True) for t in items])
        return
    formatter.print_templates(items)


@main.command()
@click.option("--kind", type=click.Choice(["screener", "content"]), default="content", help="Catalog to list (default: content)")
@click.option("--template", "template_id", default=None, help="Mark the sections a template selects by default")
@click.option("--addable", is_flag=True, default=False, help="Only screeners offered for adding")
def sections(kind: str, template_id: str | None, addable: bool):
    """List the section library."""
    formatter = OutputFormatter()
    try:
        catalog = get_addable_screeners() if addable else get_catalog(kind)
        selected: list[str] = []
        if template_id:
            selected = [s.title for s in get_template(template_id).framework_sections]
    except ValueError as e:
        formatter.print_error(str(e))
        sys.exit(1)

    title = "Addable Screeners" if addable else f"{kind.title()} Sections"
    formatter.print_sections(catalog, title=title, selected=selected)


@main.command("markets")
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text", help="Output format (default: text)")
def list_markets(output_format: str):
    """List the markets respondents can be recruited from."""
    formatter = OutputFormatter()
    if output_format == "json":
        formatter.print_json([c.model_dump() for c in COUNTRIES])
        return
    for country in COUNTRIES:
        formatter.print_text(f"{country.value}  {country.flag}  {country.label}")


@main.command("compile")
@click.argument("template_id")
@_add_options(_answer_options)
@click.option("--output", "-o", type=click.Path(writable=True), default=None, help="Output file (default: stdout)")
def compile_command(
    template_id: str,
    answer_pairs: tuple[str, ...],
    answers_file: str | None,
    screeners: tuple[str, ...],
    content_sections: tuple[str, ...],
    interactive: bool,
    output: str | None,
):
    """
    Compile a template's generation request without calling an LLM.

    Examples:

      surveyforge compile brand -a brandDescription="Nike running shoes" -a brandCategory=Sportswear
    """
    formatter = OutputFormatter()
    try:
        session = SurveyDesignSession()
        session.select_template(template_id)
        session.set_answers(_parse_answers(answer_pairs, answers_file))
        if interactive:
            session.set_answers(prompt_follow_up_answers(session.template, session.answers))
        _apply_selection(session, screeners, content_sections)
        prompt = session.compile_prompt()
    except ValueError as e:
        formatter.print_error(str(e))
        sys.exit(1)

    missing = session.missing_answers()
    if missing:
        formatter.print_warning(f"Missing required answers: {', '.join(missing)}")

    if output:
        Path(output).write_text(prompt, encoding="utf-8")
        formatter.print_success(f"Request written to {output}")
    else:
        formatter.print_text(prompt)


@main.command()
@_add_options(_configuration_options)
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text", help="Output format (default: text)")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="Path to configuration file (YAML or JSON)")
def estimate(
    sample_size: int | None,
    markets: tuple[str, ...],
    incidence_rate: float | None,
    photo: str | None,
    video: str | None,
    output_format: str,
    config_file: str | None,
):
    """
    Estimate feasibility, token cost and field time for a configuration.

    Examples:

      surveyforge estimate -n 100 --market us --ir 30 --photo qualitative:10
    """
    formatter = OutputFormatter()
    config_obj = Config.load(config_file=Path(config_file) if config_file else None)
    try:
        session = SurveyDesignSession(
            sample_size=config_obj.sample_size,
            harder_access_markets=config_obj.harder_access_markets,
        )
        _configure_session(session, sample_size, markets, incidence_rate, photo, video)
    except ValueError as e:
        formatter.print_error(str(e))
        sys.exit(1)

    result = session.estimate()
    if output_format == "json":
        formatter.print_json(result.model_dump(mode="json"))
        return
    formatter.print_estimate(result, explain_feasibility(session.configuration, result))


@main.command()
@click.argument("template_id", required=False)
@click.option("--pulse", "pulse_description", default=None, help="Generate a pulse survey from this description instead of a template")
@_add_options(_answer_options)
@_add_options(_configuration_options)
@click.option("--cadence", type=click.Choice(["weekly", "fortnightly", "monthly", "quarterly"]), default=None, help="Enable wave tracking with this cadence")
@click.option("--waves", type=int, default=None, help="Number of tracking waves (default: 3)")
@click.option("--output", "-o", type=click.Path(writable=True), default=None, help="Output file (default: stdout)")
@click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default="text", help="Output format (default: text)")
@click.option("--provider", "-p", type=click.Choice(list(SUPPORTED_PROVIDERS), case_sensitive=False), default=None, help="LLM provider (default: auto-detect)")
@click.option("--model", "-m", default=None, help="Model name (provider-specific)")
@click.option("--temperature", "-t", type=float, default=None, help="Temperature for generation")
@click.option("--seed", "-s", type=int, default=None, help="Random seed")
@click.option("--base-url", default=None, help="Base URL (Ollama and OpenRouter only)")
@click.option("--api-key", default=None, help="API key (or use GEMINI_API_KEY/OPENROUTER_API_KEY)")
@click.option("--cache-dir", type=click.Path(), default=None, help="Directory for cache (default: ~/.surveyforge/cache)")
@click.option("--no-cache", is_flag=True, default=False, help="Disable caching")
@click.option("--no-suggest", is_flag=True, default=False, help="Skip configuration suggestions from the project context")
@click.option("--launch", is_flag=True, default=False, help="Save the survey and configuration to the submission store")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="Path to configuration file (YAML or JSON)")
@click.option("--stats/--no-stats", default=False, help="Show generation statistics")
@_add_options(_logging_options)
def generate(
    template_id: str | None,
    pulse_description: str | None,
    answer_pairs: tuple[str, ...],
    answers_file: str | None,
    screeners: tuple[str, ...],
    content_sections: tuple[str, ...],
    interactive: bool,
    sample_size: int | None,
    markets: tuple[str, ...],
    incidence_rate: float | None,
    photo: str | None,
    video: str | None,
    cadence: str | None,
    waves: int | None,
    output: str | None,
    output_format: str,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    seed: int | None,
    base_url: str | None,
    api_key: str | None,
    cache_dir: str | None,
    no_cache: bool,
    no_suggest: bool,
    launch: bool,
    config_file: str | None,
    stats: bool,
    log_level: str,
    log_file: str | None,
    json_logging: bool,
):
    """
    Generate a survey with an LLM.

    TEMPLATE_ID selects an explore template; use --pulse for a quick
    free-text pulse survey instead.

    Examples:

      surveyforge generate motivations -i --market gb -o survey.txt

      surveyforge generate --pulse "Quick feedback on our new checkout flow"
    """
    configure_logging(level=log_level, json_output=json_logging, log_file=log_file)
    formatter = OutputFormatter()

    if bool(template_id) == bool(pulse_description):
        formatter.print_error("Give either a TEMPLATE_ID or --pulse DESCRIPTION")
        sys.exit(1)

    cli_config = {
        "provider": provider,
        "model": model,
        "temperature": temperature,
        "seed": seed,
        "base_url": base_url,
        "api_key": api_key,
        "cache_dir": cache_dir,
    }
    config_obj = Config.load(
        {k: v for k, v in cli_config.items() if v is not None},
        config_file=Path(config_file) if config_file else None,
    )

    try:
        resolved_provider = config_obj.provider
        if resolved_provider == "auto":
            resolved_provider = detect_provider(config_obj.base_url)
        client = create_client(
            provider=resolved_provider,
            model=config_obj.model,
            temperature=config_obj.temperature,
            seed=config_obj.seed,
            base_url=config_obj.base_url,
            api_key=config_obj.api_key,
        )
    except ValueError as e:
        formatter.print_error(f"Error initializing LLM client: {e}")
        click.echo("\nTroubleshooting:", err=True)
        click.echo(f"  - Provider: {config_obj.provider}", err=True)
        click.echo("  - Set OPENROUTER_API_KEY or GEMINI_API_KEY, or start Ollama", err=True)
        sys.exit(1)

    llm_client = wrap_client_with_logging(client, resolved_provider, config_obj.model)
    cache = None if no_cache else ResponseCache(config_obj.get_cache_dir())
    session = SurveyDesignSession(
        solution_type="pulse" if pulse_description else "explore",
        suggester=SurveySuggester(llm_client, cache=cache, provider=resolved_provider, model=llm_client.model),
        extractor=None if no_suggest else ContextualConfigExtractor(llm_client),
        document_store=JsonFileDocumentStore(config_obj.get_store_dir()),
        profile_store=ProfileStore(config_obj.get_profile_path()),
        sample_size=config_obj.sample_size,
        harder_access_markets=config_obj.harder_access_markets,
    )

    try:
        if pulse_description:
            session.set_pulse_description(pulse_description)
        else:
            session.select_template(template_id)
            session.set_answers(_parse_answers(answer_pairs, answers_file))
            if interactive or session.missing_answers():
                session.set_answers(
                    prompt_follow_up_answers(session.template, session.answers, only_missing=not interactive)
                )
            _apply_selection(session, screeners, content_sections)
        _configure_session(session, sample_size, markets, incidence_rate, photo, video, cadence, waves)
    except ValueError as e:
        formatter.print_error(str(e))
        sys.exit(1)

    start_time = time.time()
    with formatter.console.status("Generating survey..."):
        generated = session.finish_setup()
    elapsed_time = time.time() - start_time

    for notification in session.notifications:
        if notification.severity == "error":
            formatter.print_error(f"{notification.title}: {notification.description}")
        else:
            formatter.print_info(f"{notification.title}: {notification.description}")

    if not generated:
        if not session.notifications:
            formatter.print_error("The model returned no usable survey. Try again or use a different model.")
        sys.exit(1)

    if output_format == "json":
        document = SuggestSurveyResponse(
            survey_title=session.title,
            survey_introduction=session.introduction,
            survey_sections=session.sections,
            estimated_incidence_rate=session.configuration.estimated_incidence_rate or 0,
            incidence_rate_rationale=session.configuration.estimated_ir_rationale,
            incidence_rate_sources=session.configuration.estimated_ir_sources,
        ).to_wire()
        output_text = json.dumps(document, indent=2, ensure_ascii=False)
    else:
        output_text = session.export_text()

    if output:
        Path(output).write_text(output_text, encoding="utf-8")
        formatter.print_success(f"Survey written to {output}")
    elif output_format == "json":
        click.echo(output_text)
    else:
        formatter.print_survey(session.title, session.introduction, session.sections)

    if stats:
        result = session.estimate()
        formatter.print_stats(
            {
                "time_taken": f"{elapsed_time:.2f}s",
                "sections": len(session.sections),
                "questions": sum(len(s.questions) for s in session.sections),
                "estimated_ir": session.configuration.estimated_incidence_rate,
                "feasibility": f"{result.feasibility_level} ({result.feasibility_score:.1f})",
                "estimated_tokens": result.estimated_tokens,
                "provider": resolved_provider,
                "model": llm_client.model,
            }
        )

    if launch:
        profile = session.profile
        if profile is None or not profile.is_complete:
            profile = prompt_profile(profile)
        document_id = session.launch(profile)
        notification = session.notifications[-1]
        if document_id:
            formatter.print_success(f"{notification.title} ({document_id})")
        else:
            formatter.print_error(f"{notification.title}: {notification.description}")
            sys.exit(1)


@main.command()
@click.argument("survey_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(writable=True), default=None, help="Output file (default: stdout)")
def export(survey_file: str, output: str | None):
    """Render a survey JSON file (as written by generate -f json) as plain text."""
    formatter = OutputFormatter()
    try:
        data = json.loads(Path(survey_file).read_text(encoding="utf-8"))
        document = SuggestSurveyResponse.model_validate(data)
    except (json.JSONDecodeError, ValueError) as e:
        formatter.print_error(f"Could not read survey file: {e}")
        sys.exit(1)

    text = generate_doc_content(
        document.survey_title, document.survey_introduction, document.survey_sections
    )
    if output:
        Path(output).write_text(text, encoding="utf-8")
        formatter.print_success(f"Survey written to {output}")
    else:
        click.echo(text, nl=False)


@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command("show")
def config_show():
    """Show the effective configuration."""
    formatter = OutputFormatter()
    data = Config.load().to_dict()
    if data.get("api_key"):
        data["api_key"] = "***"
    formatter.print_json(data)


@config.command("export")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file path (default: stdout)")
@click.option("--format", "-f", type=click.Choice(["yaml", "json"], case_sensitive=False), default="yaml", help="Output format (default: yaml)")
def config_export(output: str | None, format: str):
    """Export current configuration to file."""
    config_obj = Config.load()

    if output:
        output_path = Path(output)
        config_obj.save(output_path, format=format)
        click.echo(f"Configuration exported to: {output_path}")
    else:
        data = config_obj.to_dict()
        data.pop("api_key", None)
        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False)
        else:
            content = json.dumps(data, indent=2)
        click.echo(content)


@config.command("import")
@click.argument("config_file", type=click.Path(exists=True))
def config_import(config_file: str):
    """Import configuration from file into the user config."""
    config_obj = Config()
    config_obj._load_file(Path(config_file))

    user_config_path = Path.home() / APP_DIR_NAME / "config.yaml"
    config_obj.save(user_config_path, format="yaml")
    click.echo(f"Configuration imported and saved to: {user_config_path}")


@main.group()
def profile():
    """User profile commands."""
    pass


@profile.command("show")
def profile_show():
    """Show the stored user profile."""
    formatter = OutputFormatter()
    stored = ProfileStore(Config.load().get_profile_path()).load()
    if stored is None:
        formatter.print_info("No profile set. Use 'surveyforge profile set'.")
        return
    formatter.print_json(stored.model_dump(mode="json", by_alias=True, exclude_none=True))


@profile.command("set")
@click.option("--name", default=None, help="Your name")
@click.option("--email", default=None, help="Your email")
@click.option("--organisation", default=None, help="Organisation")
@click.option("--role", default=None, help="Role")
@click.option("--industry", default=None, help="Industry")
def profile_set(
    name: str | None,
    email: str | None,
    organisation: str | None,
    role: str | None,
    industry: str | None,
):
    """Create or update the user profile (prompts when name or email is missing)."""
    formatter = OutputFormatter()
    store = ProfileStore(Config.load().get_profile_path())
    updates = {
        "name": name,
        "email": email,
        "organisation": organisation,
        "role": role,
        "industry": industry,
    }
    stored = store.load()
    merged = (stored if stored is not None else UserProfile()).model_copy(
        update={k: v for k, v in updates.items() if v}
    )
    if not merged.is_complete:
        merged = prompt_profile(merged)
    store.save(merged)
    formatter.print_success("Profile saved")


if __name__ == "__main__":
    main()
