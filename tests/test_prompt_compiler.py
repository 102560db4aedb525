"""Unit tests for prompt compilation."""

import json
import re

import pytest

from surveyforge.assembler.prompt_compiler import (
    FALLBACK_TEXT,
    PromptCompiler,
    section_titles_for,
)
from surveyforge.catalog.sections import template_content_sections, template_screeners
from surveyforge.catalog.templates import get_template
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.template import Template

UNRESOLVED = re.compile(r"\{[a-zA-Z0-9_]+\}")


@pytest.fixture
def compiler():
    return PromptCompiler()


def _default_titles(template_id: str) -> list[str]:
    template = get_template(template_id)
    return section_titles_for(template_screeners(template), template_content_sections(template))


class TestSectionTitles:
    """Test section title ordering."""

    def test_screeners_first(self):
        """Test that screeners precede content sections."""
        screeners = [FrameworkSection(title="Screener: B")]
        content = [FrameworkSection(title="A"), FrameworkSection(title="C")]
        assert section_titles_for(screeners, content) == ["Screener: B", "A", "C"]


class TestCompileTemplates:
    """Test compilation of the packaged templates."""

    def test_motivations(self, compiler):
        """Test generic substitution and exact title injection."""
        titles = _default_titles("motivations")
        text = compiler.compile(
            get_template("motivations"),
            {"motivationFocus": "product", "motivationDescription": "coffee maker", "projectBigQuestion": ""},
            titles,
        )
        assert 'regarding the product described as: "coffee maker"' in text
        assert f"The section titles MUST BE EXACTLY: {json.dumps(titles)}." in text
        assert "Additional Project Context" not in text
        assert UNRESOLVED.search(text) is None
        assert "{{" not in text

    def test_project_context_kept_verbatim(self, compiler):
        """Test that braces in the project context survive the placeholder sweep."""
        context = "Should we launch {productX} in Q3?"
        text = compiler.compile(
            get_template("motivations"),
            {"motivationFocus": "brand", "motivationDescription": "Acme", "projectBigQuestion": context},
            _default_titles("motivations"),
        )
        assert "Additional Project Context / Big Question:" in text
        assert context in text

    def test_substituted_answer_kept_verbatim(self, compiler):
        """Test that braces in a follow-up answer are not swept."""
        text = compiler.compile(
            get_template("motivations"),
            {"motivationFocus": "product", "motivationDescription": "the {Pro} model", "projectBigQuestion": ""},
            _default_titles("motivations"),
        )
        assert 'described as: "the {Pro} model"' in text
        assert f"the {FALLBACK_TEXT} model" not in text

    def test_interpolated_answer_kept_verbatim(self, compiler):
        text = compiler.compile(
            get_template("themes"),
            {"explorationFocus": "definitions", "themeDescriptionForDefinitions": "{Quiet} luxury"},
            _default_titles("themes"),
        )
        assert "{Quiet} luxury" in text

    def test_blank_answer_generic_text(self, compiler):
        """Test that a blank answer names the missing detail."""
        text = compiler.compile(
            get_template("brand"),
            {"brandDescription": "Acme", "brandCategory": "Anvils", "brandCompetitors": ""},
            _default_titles("brand"),
        )
        assert "(e.g., 'details about brandCompetitors')" in text
        assert f"(e.g., '{FALLBACK_TEXT}')" in text
        assert UNRESOLVED.search(text) is None

    def test_themes_relevance(self, compiler):
        """Test the themes branch for the relevance focus."""
        text = compiler.compile(
            get_template("themes"),
            {
                "explorationFocus": "relevance",
                "themeDescriptionForRelevance": "data privacy",
                "productDescriptionForRelevance": "a coffee box",
            },
            _default_titles("themes"),
        )
        assert "The theme/trend being explored is: 'data privacy'." in text
        assert "is: 'the product/service: \"a coffee box\"'." in text
        assert "focusing on relevance." in text
        assert UNRESOLVED.search(text) is None

    def test_themes_without_answers(self, compiler):
        """Test the themes branch before a focus is chosen."""
        text = compiler.compile(get_template("themes"), {}, _default_titles("themes"))
        assert "focusing on not specified." in text
        assert "'the specified theme'" in text

    def test_usage_deep_dive(self, compiler):
        """Test the usage branch for a deep-dive occasion."""
        text = compiler.compile(
            get_template("usageExperience"),
            {
                "usageFocusType": "product",
                "usageFocusDescription": "e-bike",
                "usageUnderstandingDepth": "deepDive",
                "usageDeepDiveOccasion": "Morning commute",
            },
            _default_titles("usageExperience"),
        )
        assert 'The goal is to deep dive into the specific usage occasion of: "Morning commute".' in text
        assert "during the specific occasion 'Morning commute'" in text
        assert UNRESOLVED.search(text) is None

    def test_usage_broad(self, compiler):
        """Test the usage branch for broad behaviours."""
        text = compiler.compile(
            get_template("usageExperience"),
            {"usageFocusType": "service", "usageFocusDescription": "car sharing", "usageUnderstandingDepth": "broad"},
            _default_titles("usageExperience"),
        )
        assert "The goal is to understand broad usage behaviours across all occasions / moments." in text
        assert f"'{FALLBACK_TEXT}'" in text

    @pytest.mark.parametrize("template_id", ["motivations", "themes", "usageExperience", "brand", "shoppersPurchases"])
    def test_no_unresolved_placeholders(self, compiler, template_id):
        """Test that every packaged template compiles without leftovers."""
        text = compiler.compile(get_template(template_id), {}, _default_titles(template_id))
        assert UNRESOLVED.search(text) is None
        assert "{{" not in text and "}}" not in text


class TestSectionInjection:
    """Test section title injection into seed texts without the slot."""

    def _template(self, seed_text: str) -> Template:
        return Template(id="custom", title="Custom", seed_text=seed_text)

    def test_as_follows_sentence_replaced(self, compiler):
        """Test rewriting of the older structure sentence."""
        template = self._template(
            "Ask about {topic}.\nThe survey MUST be structured into the following sections. "
            "The section titles MUST BE EXACTLY as follows:"
        )
        text = compiler.compile(template, {"topic": "tea"}, ["A", "B"])
        assert text.startswith("Ask about tea.")
        assert text.endswith('The section titles MUST BE EXACTLY: ["A", "B"].')
        assert "as follows" not in text

    def test_bracketed_list_replaced(self, compiler):
        """Test rewriting of an existing bracketed list."""
        template = self._template('Go.\nThe section titles MUST BE EXACTLY: ["Old"].')
        text = compiler.compile(template, {}, ["New", "Newer"])
        assert text == 'Go.\nThe section titles MUST BE EXACTLY: ["New", "Newer"].'

    def test_sentence_appended(self, compiler):
        """Test that a seed text without any section sentence gets one appended."""
        text = compiler.compile(self._template("Go."), {}, ["Only"])
        assert text.startswith("Go.\n\nThe survey MUST be structured into the following sections.")
        assert text.endswith('The section titles MUST BE EXACTLY: ["Only"].')

    def test_empty_selection(self, compiler):
        """Test that an empty selection yields an empty list."""
        text = compiler.compile(self._template("Go. {{sectionTitles}}"), {}, [])
        assert text == "Go. []"
