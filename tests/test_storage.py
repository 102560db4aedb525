"""Unit tests for the document and profile stores."""

import json

import pytest

from surveyforge.core.customization_cache import CustomizationCache
from surveyforge.core.storage import PROFILE_KEY, JsonFileDocumentStore, ProfileStore
from surveyforge.schemas.sections import FrameworkSection
from surveyforge.schemas.submission import UserProfile
from surveyforge.schemas.survey import SurveyQuestion, SurveySection


class TestJsonFileDocumentStore:
    """Test JsonFileDocumentStore."""

    def test_add_and_get(self, tmp_path):
        """Test writing a document and reading it back."""
        store = JsonFileDocumentStore(tmp_path)
        document_id = store.add("surveySubmissions", {"a": 1})

        assert (tmp_path / "surveySubmissions" / f"{document_id}.json").exists()
        assert store.get("surveySubmissions", document_id) == {"a": 1}
        assert store.list_ids("surveySubmissions") == [document_id]

    def test_unique_ids(self, tmp_path):
        store = JsonFileDocumentStore(tmp_path)
        assert store.add("c", {}) != store.add("c", {})

    def test_missing(self, tmp_path):
        store = JsonFileDocumentStore(tmp_path)
        assert store.get("c", "nope") is None
        assert store.list_ids("c") == []


class TestProfileStore:
    """Test ProfileStore."""

    def test_missing_file(self, tmp_path):
        assert ProfileStore(tmp_path / "state.json").load() is None

    def test_save_and_load(self, tmp_path):
        """Test a round trip keeping unrelated keys."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        store = ProfileStore(path)

        store.save(UserProfile(name="Ada", email="ada@example.com", custom_role="Lead"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["theme"] == "dark"
        assert data[PROFILE_KEY] == {"name": "Ada", "email": "ada@example.com", "customRole": "Lead"}
        assert store.load().custom_role == "Lead"

    def test_profile_stored_as_string(self, tmp_path):
        """Test profiles written as a JSON string value."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({PROFILE_KEY: json.dumps({"name": "Ada"})}), encoding="utf-8")
        assert ProfileStore(path).load().name == "Ada"

    @pytest.mark.parametrize(
        "content",
        ["not json", json.dumps({PROFILE_KEY: "{broken"}), json.dumps({PROFILE_KEY: {"name": ["x"]}})],
    )
    def test_unreadable_profile(self, tmp_path, content):
        """Test that corrupt state yields no profile."""
        path = tmp_path / "state.json"
        path.write_text(content, encoding="utf-8")
        assert ProfileStore(path).load() is None


class TestCustomizationCache:
    """Test CustomizationCache."""

    @pytest.fixture
    def sections(self):
        return [
            SurveySection(
                section_title="S",
                questions=[SurveyQuestion(question_text="Q", question_type="openText")],
            )
        ]

    def test_persist_and_restore(self, sections):
        """Test a round trip through the cache."""
        cache = CustomizationCache()
        content = [FrameworkSection(title="C")]
        cache.persist("brand", sections, content, None)

        record = cache.restore("brand")
        assert record.generated_sections[0].section_title == "S"
        assert [s.title for s in record.customized_content_sections] == ["C"]
        assert record.customized_screener_sections is None
        assert "brand" in cache
        assert len(cache) == 1

    def test_miss(self):
        assert CustomizationCache().restore("brand") is None
        assert CustomizationCache().restore(None) is None

    def test_blank_id_ignored(self, sections):
        cache = CustomizationCache()
        cache.persist("", sections, None, None)
        cache.persist(None, sections, None, None)
        assert len(cache) == 0

    def test_records_are_copies(self, sections):
        """Test that later edits never leak into the stored record."""
        cache = CustomizationCache()
        cache.persist("brand", sections, None, None)

        sections[0].section_title = "Edited"
        restored = cache.restore("brand")
        restored.generated_sections[0].questions.clear()

        again = cache.restore("brand")
        assert again.generated_sections[0].section_title == "S"
        assert len(again.generated_sections[0].questions) == 1

    def test_empty_list_differs_from_none(self, sections):
        """Test that removing every section is remembered."""
        cache = CustomizationCache()
        cache.persist("brand", sections, [], None)
        assert cache.restore("brand").customized_content_sections == []

    def test_clear(self, sections):
        cache = CustomizationCache()
        cache.persist("brand", sections, None, None)
        cache.clear()
        assert cache.restore("brand") is None
