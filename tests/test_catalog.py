"""Unit tests for the template, section and market catalogs."""

import pytest

from surveyforge.catalog.countries import COUNTRIES, find_country, match_markets, merge_markets
from surveyforge.catalog.sections import (
    HIDDEN_ADDABLE_SCREENERS,
    available_to_add,
    create_example_questions,
    get_addable_screeners,
    get_catalog,
    template_content_sections,
    template_screeners,
)
from surveyforge.catalog.templates import get_template, list_templates, load_templates


class TestTemplates:
    """Test the packaged templates."""

    def test_ids_in_display_order(self):
        assert [t.id for t in list_templates()] == [
            "motivations",
            "themes",
            "usageExperience",
            "brand",
            "shoppersPurchases",
        ]

    def test_every_template_ends_with_project_context(self):
        """Test that the shared big-question follow-up closes every template."""
        for template in list_templates():
            assert template.follow_up_questions[-1].id == "projectBigQuestion"
            assert template.framework_sections

    def test_unknown_template(self):
        with pytest.raises(ValueError, match="Available templates: motivations"):
            get_template("nope")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "t.yaml"
        path.write_text("templates: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid template file"):
            load_templates(path)

    def test_invalid_template(self, tmp_path):
        path = tmp_path / "t.yaml"
        path.write_text("templates:\n  - id: x\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid template 'x'"):
            load_templates(path)

    def test_duplicate_ids(self, tmp_path):
        """Test that two templates cannot share an id."""
        entry = (
            "  - id: x\n"
            "    title: X\n"
            "    description: d\n"
            "    seed_text: s\n"
            "    framework_sections: []\n"
            "    follow_up_questions: []\n"
        )
        path = tmp_path / "t.yaml"
        path.write_text("templates:\n" + entry + entry, encoding="utf-8")
        with pytest.raises(ValueError, match="Duplicate template ids"):
            load_templates(path)

    def test_template_sections_split(self):
        template = get_template("brand")
        assert [s.title for s in template_screeners(template)] == [
            "Screener: Category usage",
            "Screener: Brand awareness",
        ]
        assert template_content_sections(template)[0].title == (
            "Brand funnel: Awareness, Consideration, Usage, Preferred"
        )


class TestSectionCatalog:
    """Test the section library."""

    def test_screener_catalog(self):
        """Test that screeners are sorted and all carry the prefix."""
        titles = [s.title for s in get_catalog("screener")]
        assert all(t.startswith("Screener:") for t in titles)
        assert titles == sorted(titles, key=str.casefold)
        assert "Screener: Activity" in titles

    def test_content_catalog(self):
        """Test that content sections are unique and contain no screeners."""
        titles = [s.title for s in get_catalog("content")]
        assert not any(t.startswith("Screener:") for t in titles)
        assert len(titles) == len(set(titles))
        assert titles == sorted(titles, key=str.casefold)
        assert "Media Consumption" in titles

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown catalog kind"):
            get_catalog("other")

    def test_addable_screeners(self):
        titles = {s.title for s in get_addable_screeners()}
        assert titles.isdisjoint(HIDDEN_ADDABLE_SCREENERS)
        assert "Screener: Brand usage" in titles

    def test_available_to_add(self):
        titles = [s.title for s in available_to_add("content", ["Media Consumption"])]
        assert "Media Consumption" not in titles
        assert "Demographics" in titles

    def test_example_questions(self):
        """Test the generic example questions."""
        generic = create_example_questions("Media Consumption")
        assert [q.question_type for q in generic] == ["openText", "scale", "closedText"]
        assert generic[0].question_text == "What are your thoughts on media consumption?"

        screener = create_example_questions("Activity", "Which activities do you do?")
        assert len(screener) == 1
        assert screener[0].options[-1] == "None of these"

    def test_screener_question_from_description(self):
        section = next(s for s in get_catalog("screener") if s.title == "Screener: Activity")
        assert section.example_questions[0].question_text == section.description


class TestCountries:
    """Test market lookup."""

    def test_catalog_sorted(self):
        labels = [c.label for c in COUNTRIES]
        assert labels == sorted(labels)

    @pytest.mark.parametrize("query", ["gb", "GB", "United Kingdom", " united kingdom "])
    def test_find_country(self, query):
        assert find_country(query).value == "gb"

    def test_find_country_missing(self):
        assert find_country("UK") is None

    def test_match_markets(self):
        """Test free-text matching in catalog order."""
        matched = match_markets(["the United States", "germany", "jp", "Atlantis", ""])
        assert [c.value for c in matched] == ["de", "jp", "us"]

    def test_codes_not_substring_matched(self):
        """Test that a name containing a code ("at") does not match Austria."""
        assert match_markets(["Atlantis"]) == []

    @pytest.mark.parametrize("code,expected", [("US", ["us"]), ("in", ["in"]), ("cn", ["cn"]), ("zz", [])])
    def test_short_suggestions_match_codes_only(self, code, expected):
        """Test that "US" does not also match Australia or Russia."""
        assert [c.value for c in match_markets([code])] == expected

    def test_merge_markets(self):
        merged = merge_markets([find_country("us")], [find_country("de"), find_country("us")])
        assert [c.value for c in merged] == ["us", "de"]
