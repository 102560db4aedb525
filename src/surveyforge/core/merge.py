"""Merge Engine: resolve selected section titles into an ordered section list."""

from typing import Iterable, Optional

from surveyforge.catalog.sections import (
    get_catalog,
    template_content_sections,
    template_screeners,
)
from surveyforge.core.logging import get_logger
from surveyforge.schemas.customization import SelectionState
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.template import Template

logger = get_logger("surveyforge.merge")


def build_final_sections(
    selected_titles: Iterable[str],
    original_template_sections: Iterable[FrameworkSection],
    catalog: Iterable[FrameworkSection],
) -> list[FrameworkSection]:
    """
    Order the selected sections.

    Sections from the template's original framework keep their original
    relative order; sections added from outside it follow, in selection
    order. A selected title found neither in the catalog nor among the
    original sections is dropped.

    Args:
        selected_titles: Selected titles in insertion order
        original_template_sections: The sections the template (or the last
            customization) started from, in order
        catalog: Sections available for this kind

    Returns:
        The resolved section list
    """
    selected = list(dict.fromkeys(selected_titles))
    selected_set = set(selected)
    originals = list(original_template_sections)
    catalog_map: dict[str, FrameworkSection] = {}
    for section in catalog:
        catalog_map.setdefault(section.title, section)
    original_map = {section.title: section for section in originals}

    def lookup(title: str) -> Optional[FrameworkSection]:
        return catalog_map.get(title) or original_map.get(title)

    final_sections: list[FrameworkSection] = []
    placed: set[str] = set()

    for original in originals:
        if original.title in selected_set and original.title not in placed:
            section = lookup(original.title)
            if section is not None:
                final_sections.append(section)
                placed.add(original.title)

    for title in selected:
        if title in placed:
            continue
        section = lookup(title)
        if section is None:
            logger.debug(f"Dropping stale section title: {title}")
            continue
        final_sections.append(section)
        placed.add(title)

    return final_sections


def toggle_title(titles: list[str], title: str) -> list[str]:
    """Return titles with one title removed if present, appended otherwise."""
    if title in titles:
        return [t for t in titles if t != title]
    return [*titles, title]


def selection_from_sections(
    screeners: Iterable[FrameworkSection], content: Iterable[FrameworkSection]
) -> SelectionState:
    """Rebuild a SelectionState from resolved section lists."""
    return SelectionState(
        selected_screener_titles=[s.title for s in screeners],
        selected_content_titles=[s.title for s in content],
    )


def current_sections(
    template: Template,
    customized_screeners: Optional[list[FrameworkSection]],
    customized_content: Optional[list[FrameworkSection]],
) -> tuple[list[FrameworkSection], list[FrameworkSection]]:
    """
    Sections currently in effect for a template.

    None for a customized list means the template defaults apply.

    Returns:
        (screener sections, content sections)
    """
    screeners = (
        list(customized_screeners)
        if customized_screeners is not None
        else template_screeners(template)
    )
    content = (
        list(customized_content)
        if customized_content is not None
        else template_content_sections(template)
    )
    return screeners, content


def merge_base(
    template_sections: list[FrameworkSection],
    customized: Optional[list[FrameworkSection]],
) -> list[FrameworkSection]:
    """
    Sections a new selection is ordered against.

    The template's own sections come first in their original order, then
    any sections a previous customization added from outside the template.
    A deselected template section therefore returns to its original slot
    when selected again.
    """
    base = list(template_sections)
    known = {s.title for s in base}
    for section in customized or []:
        if section.title not in known:
            base.append(section)
            known.add(section.title)
    return base


def resolve_sections(
    state: SelectionState,
    template: Template,
    customized_screeners: Optional[list[FrameworkSection]] = None,
    customized_content: Optional[list[FrameworkSection]] = None,
) -> tuple[list[FrameworkSection], list[FrameworkSection]]:
    """
    Resolve a selection against the template and both catalogs.

    Args:
        state: Selected screener and content titles
        template: Active template
        customized_screeners: Last saved screener list, None for template defaults
        customized_content: Last saved content list, None for template defaults

    Returns:
        (screener sections, content sections)
    """
    base_screeners = merge_base(template_screeners(template), customized_screeners)
    base_content = merge_base(template_content_sections(template), customized_content)
    screeners = build_final_sections(
        state.selected_screener_titles, base_screeners, get_catalog("screener")
    )
    content = build_final_sections(
        state.selected_content_titles, base_content, get_catalog("content")
    )
    return screeners, content
