"""Unit tests for the merge engine."""

import pytest

from surveyforge.catalog.sections import template_content_sections, template_screeners
from surveyforge.catalog.templates import get_template
from surveyforge.core.merge import (
    build_final_sections,
    current_sections,
    merge_base,
    resolve_sections,
    selection_from_sections,
    toggle_title,
)
from surveyforge.schemas.customization import SelectionState
from surveyforge.schemas.sections import FrameworkSection


def _titles(sections):
    return [s.title for s in sections]


@pytest.fixture
def motivations():
    return get_template("motivations")


@pytest.fixture
def default_content(motivations):
    return _titles(template_content_sections(motivations))


class TestBuildFinalSections:
    """Test ordering of selected sections."""

    def test_original_order_kept(self):
        """Test that original sections keep their order regardless of selection order."""
        originals = [FrameworkSection(title=t) for t in ("A", "B", "C")]
        result = build_final_sections(["C", "A"], originals, [])
        assert _titles(result) == ["A", "C"]

    def test_new_sections_appended_in_selection_order(self):
        """Test that catalog additions follow the originals."""
        originals = [FrameworkSection(title=t) for t in ("A", "B")]
        catalog = [FrameworkSection(title=t) for t in ("Y", "X")]
        result = build_final_sections(["X", "B", "Y", "A"], originals, catalog)
        assert _titles(result) == ["A", "B", "X", "Y"]

    def test_stale_title_dropped(self):
        """Test that unknown titles are dropped."""
        originals = [FrameworkSection(title="A")]
        assert _titles(build_final_sections(["A", "Gone"], originals, [])) == ["A"]

    def test_catalog_definition_preferred(self):
        """Test that the catalog definition wins when both define a title."""
        originals = [FrameworkSection(title="A", description="template")]
        catalog = [FrameworkSection(title="A", description="catalog")]
        assert build_final_sections(["A"], originals, catalog)[0].description == "catalog"

    def test_original_used_outside_catalog(self):
        """Test that template-only sections resolve from the originals."""
        originals = [FrameworkSection(title="Bespoke", description="template only")]
        assert build_final_sections(["Bespoke"], originals, [])[0].description == "template only"

    def test_duplicate_selection(self):
        """Test that a title selected twice appears once."""
        originals = [FrameworkSection(title="A")]
        assert _titles(build_final_sections(["A", "A"], originals, [])) == ["A"]


class TestResolveSections:
    """Test resolution against packaged templates and catalogs."""

    def test_defaults_resolve_to_template(self, motivations, default_content):
        """Test that the default selection reproduces the template."""
        state = SelectionState(
            selected_screener_titles=["Screener: Category usage"],
            selected_content_titles=default_content,
        )
        screeners, content = resolve_sections(state, motivations)
        assert _titles(screeners) == ["Screener: Category usage"]
        assert _titles(content) == default_content

    def test_new_section_appended(self, motivations, default_content):
        """Test that a catalog section is placed after the template sections."""
        state = SelectionState(
            selected_screener_titles=["Screener: Category usage"],
            selected_content_titles=["Overall Satisfaction", *default_content],
        )
        _, content = resolve_sections(state, motivations)
        assert _titles(content) == [*default_content, "Overall Satisfaction"]

    def test_reselected_section_returns_to_slot(self, motivations, default_content):
        """Test deselect then reselect of a template section."""
        without = [t for t in default_content if t != "Product Repertoire"]
        _, customized = resolve_sections(
            SelectionState(selected_content_titles=without), motivations
        )
        assert "Product Repertoire" not in _titles(customized)

        _, content = resolve_sections(
            SelectionState(selected_content_titles=[*without, "Product Repertoire"]),
            motivations,
            customized_content=customized,
        )
        assert _titles(content) == default_content

    def test_added_sections_keep_order_across_customizations(self, motivations, default_content):
        """Test that earlier additions stay ahead of later ones."""
        _, first = resolve_sections(
            SelectionState(selected_content_titles=[*default_content, "Media Consumption"]),
            motivations,
        )
        _, second = resolve_sections(
            SelectionState(
                selected_content_titles=["Attitudes & Opinions", *default_content, "Media Consumption"]
            ),
            motivations,
            customized_content=first,
        )
        assert _titles(second)[-2:] == ["Media Consumption", "Attitudes & Opinions"]

    def test_added_screener(self, motivations):
        """Test adding a screener from the screener catalog."""
        screeners, _ = resolve_sections(
            SelectionState(selected_screener_titles=["Screener: Brand usage", "Screener: Category usage"]),
            motivations,
        )
        assert _titles(screeners) == ["Screener: Category usage", "Screener: Brand usage"]


class TestHelpers:
    """Test merge helpers."""

    def test_toggle_title(self):
        assert toggle_title(["A", "B"], "A") == ["B"]
        assert toggle_title(["A"], "B") == ["A", "B"]

    def test_merge_base(self):
        """Test that template sections precede customized extras."""
        template_sections = [FrameworkSection(title=t) for t in ("A", "B")]
        customized = [FrameworkSection(title=t) for t in ("X", "B")]
        assert _titles(merge_base(template_sections, customized)) == ["A", "B", "X"]
        assert _titles(merge_base(template_sections, None)) == ["A", "B"]

    def test_current_sections(self, motivations):
        """Test that None falls back to the template and an empty list stays empty."""
        screeners, content = current_sections(motivations, None, [])
        assert _titles(screeners) == _titles(template_screeners(motivations))
        assert content == []

    def test_selection_from_sections(self):
        state = selection_from_sections([FrameworkSection(title="Screener: S")], [FrameworkSection(title="C")])
        assert state.selected_screener_titles == ["Screener: S"]
        assert state.selected_content_titles == ["C"]
