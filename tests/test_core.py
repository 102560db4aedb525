"""Unit tests for configuration, caching, validation and retry helpers."""

import json
from unittest.mock import MagicMock

import pytest
import yaml
from pydantic import ValidationError

from surveyforge.core.cache import ResponseCache
from surveyforge.core.config import DEFAULT_HARDER_ACCESS_MARKETS, Config
from surveyforge.core.llm_base import extract_json_object
from surveyforge.core.llm_client import OllamaClient
from surveyforge.core.provider_factory import create_client, detect_provider
from surveyforge.core.retry import (
    CircuitBreaker,
    CircuitBreakerError,
    retry_with_exponential_backoff,
)
from surveyforge.core.validator import format_validation_error, validate_schema
from surveyforge.schemas.survey import SuggestSurveyResponse, SurveyQuestion

VALID_DOCUMENT = {
    "surveyTitle": "T",
    "surveyIntroduction": "I",
    "surveySections": [],
    "estimatedIncidenceRate": 20,
}


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point the user and project config lookups at empty directories."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return home


class TestConfig:
    """Test Config loading hierarchy."""

    def test_defaults(self, isolated_home):
        config = Config.load()
        assert config.provider == "auto"
        assert config.sample_size == 100
        assert config.harder_access_markets == DEFAULT_HARDER_ACCESS_MARKETS

    def test_hierarchy(self, isolated_home, tmp_path):
        """Test that CLI args beat the explicit file, which beats the user file."""
        user_dir = isolated_home / ".surveyforge"
        user_dir.mkdir()
        (user_dir / "config.yaml").write_text(
            yaml.dump({"provider": "gemini", "temperature": 0.5, "sample_size": 300}), encoding="utf-8"
        )
        explicit = tmp_path / "explicit.json"
        explicit.write_text(json.dumps({"temperature": 0.9, "model": "m1"}), encoding="utf-8")

        config = Config.load({"model": "m2", "seed": None}, explicit)

        assert config.provider == "gemini"
        assert config.temperature == 0.9
        assert config.model == "m2"
        assert config.sample_size == 300
        assert config.seed is None

    def test_project_config(self, isolated_home):
        """Test the project file in the working directory."""
        with open(".surveyforge.yaml", "w", encoding="utf-8") as f:
            f.write("harder_access_markets: 'FR, de'\n")
        assert Config.load().harder_access_markets == ["fr", "de"]

    def test_unreadable_file_ignored(self, isolated_home, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("provider: [unclosed", encoding="utf-8")
        assert Config.load(config_file=bad).provider == "auto"

    def test_unknown_keys_ignored(self, isolated_home, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("colour: blue\n", encoding="utf-8")
        assert not hasattr(Config.load(config_file=path), "colour")

    def test_save_omits_secrets(self, tmp_path):
        """Test that api keys are never written."""
        config = Config()
        config.api_key = "secret"
        config.model = "m"
        path = tmp_path / "out" / "config.json"
        config.save(path, format="json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert "api_key" not in data
        assert data["model"] == "m"
        assert "seed" not in data

    def test_directories(self, tmp_path):
        config = Config()
        config.cache_dir = str(tmp_path / "cache")
        config.profile_path = str(tmp_path / "state.json")
        assert config.get_cache_dir().is_dir()
        assert config.get_profile_path() == tmp_path / "state.json"


class TestResponseCache:
    """Test ResponseCache."""

    def test_set_and_get(self, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set("k", {"a": 1}, metadata={"stage": "s"})
        assert cache.get("k") == {"a": 1}
        assert cache.get("other") is None

    def test_corrupt_entry(self, tmp_path):
        """Test that unreadable entries are treated as misses."""
        cache = ResponseCache(tmp_path)
        cache.set("k", 1)
        next(tmp_path.glob("*.json")).write_text("{", encoding="utf-8")
        assert cache.get("k") is None

    def test_delete_and_clear(self, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a")
        assert not cache.delete("a")
        assert cache.clear() == 1

    def test_make_key(self):
        """Test that keys ignore dict ordering but not provider or model."""
        first = ResponseCache.make_key("s", {"a": 1, "b": 2}, "ollama", "m")
        assert first == ResponseCache.make_key("s", {"b": 2, "a": 1}, "ollama", "m")
        assert first != ResponseCache.make_key("s", {"a": 1, "b": 2}, "gemini", "m")


class TestExtractJson:
    """Test JSON extraction from model responses."""

    def test_fenced_block(self):
        assert extract_json_object('Here:\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_text(self):
        assert extract_json_object('Sure! {"a": {"b": 2}} Hope this helps.') == {"a": {"b": 2}}

    @pytest.mark.parametrize("text", ["no json", "[1, 2]", "null"])
    def test_no_object(self, text):
        with pytest.raises(ValueError):
            extract_json_object(text)


class TestValidator:
    """Test schema validation and correction."""

    def test_valid(self):
        assert validate_schema(VALID_DOCUMENT, SuggestSurveyResponse).survey_title == "T"

    def test_invalid_without_client(self):
        """Test that the formatted errors are raised."""
        data = {k: v for k, v in VALID_DOCUMENT.items() if k != "surveySections"}
        with pytest.raises(ValueError, match="surveySections"):
            validate_schema(data, SuggestSurveyResponse)

    def test_correction(self):
        """Test that a corrected response is validated."""
        client = MagicMock(spec=OllamaClient)
        client.generate.return_value = json.dumps(VALID_DOCUMENT)
        client.extract_json.side_effect = extract_json_object
        data = {k: v for k, v in VALID_DOCUMENT.items() if k != "surveySections"}

        result = validate_schema(data, SuggestSurveyResponse, client, "Make a survey")

        assert result.survey_sections == []
        prompt = client.generate.call_args[0][0]
        assert "Original prompt:\nMake a survey" in prompt
        assert "Required field 'surveySections' is missing" in prompt

    def test_correction_failure(self):
        client = MagicMock(spec=OllamaClient)
        client.generate.side_effect = RuntimeError("down")
        with pytest.raises(ValueError):
            validate_schema({}, SuggestSurveyResponse, client, "Make a survey")

    def test_question_type_hint(self):
        """Test the hint for an unsupported question type."""
        with pytest.raises(ValidationError) as exc_info:
            SurveyQuestion.model_validate({"questionText": "Q", "questionType": "matrix"})
        message = format_validation_error(exc_info.value, SurveyQuestion)
        assert "Validation failed for SurveyQuestion:" in message
        assert "Suggestion: questionType must be one of" in message
        assert "Input value: matrix" in message


class TestRetry:
    """Test backoff and the circuit breaker."""

    def test_retries_then_succeeds(self):
        calls = []
        sleeps = []

        @retry_with_exponential_backoff(max_retries=2, initial_delay=1.0, jitter=False, sleep=sleeps.append)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RuntimeError("try again")
            return "ok"

        assert flaky() == "ok"
        assert sleeps == [1.0, 2.0]

    def test_gives_up(self):
        @retry_with_exponential_backoff(max_retries=1, jitter=False, sleep=lambda _: None)
        def broken():
            raise RuntimeError("down")

        with pytest.raises(RuntimeError):
            broken()

    def test_non_retryable(self):
        sleep = MagicMock()

        @retry_with_exponential_backoff(sleep=sleep)
        def wrong():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            wrong()
        sleep.assert_not_called()

    def test_circuit_opens(self):
        """Test that the breaker rejects calls after repeated failures."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        failing = MagicMock(side_effect=RuntimeError("down"))

        for _ in range(2):
            with pytest.raises(RuntimeError):
                breaker.call(failing)
        assert breaker.state == "open"

        with pytest.raises(CircuitBreakerError):
            breaker.call(failing)
        assert failing.call_count == 2

    def test_half_open_recovers(self):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        with pytest.raises(RuntimeError):
            breaker.call(MagicMock(side_effect=RuntimeError("down")))
        breaker.last_failure_time -= 1
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == "closed"


class TestProviderFactory:
    """Test provider detection."""

    def test_detect_prefers_openrouter(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "k")
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        assert detect_provider() == "openrouter"

    def test_detect_gemini(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        assert detect_provider() == "gemini"

    def test_nothing_available(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr(
            "surveyforge.core.provider_factory.check_ollama_available", lambda base_url=None: False
        )
        with pytest.raises(ValueError, match="No LLM provider available"):
            detect_provider()

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_client("claude")
