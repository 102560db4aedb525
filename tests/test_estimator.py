"""Unit tests for feasibility estimation."""

import pytest

from surveyforge.catalog.countries import find_country
from surveyforge.core.estimator import (
    FIELD_TIME_FAST,
    FIELD_TIME_MEDIUM,
    FIELD_TIME_SLOW,
    SURVEY_LENGTH,
    estimate_feasibility,
    explain_feasibility,
    feasibility_level,
    feasibility_score,
    field_time,
    key_reasons,
    partition_respondents,
    size_impact,
)
from surveyforge.schemas.configuration import PhotoConfig, SurveyConfiguration, VideoConfig


def _config(**kwargs) -> SurveyConfiguration:
    markets = kwargs.pop("markets", [])
    return SurveyConfiguration(
        selected_countries=[find_country(code) for code in markets], **kwargs
    )


class TestFeasibilityScore:
    """Test the feasibility score."""

    def test_large_sample_default_ir(self):
        """Test that a sample of 1000 with no markets keeps the base score."""
        assert feasibility_score(_config(sample_size=1000)) == 80.0

    def test_small_sample_penalty(self):
        """Test the size impact for a sample of 100."""
        assert feasibility_score(_config(sample_size=100)) == 35.0

    def test_country_complexity(self):
        """Test that each market costs two points."""
        assert feasibility_score(_config(sample_size=1000, markets=["us", "gb"])) == 76.0

    def test_harder_access_market(self):
        """Test the flat penalty for a harder-access market."""
        assert feasibility_score(_config(sample_size=1000, markets=["cn"])) == 73.0

    def test_custom_harder_access_markets(self):
        """Test that the harder-access set is configurable."""
        config = _config(sample_size=1000, markets=["us"])
        assert feasibility_score(config, harder_access_markets=["us"]) == 73.0
        assert feasibility_score(config, harder_access_markets=[]) == 78.0

    def test_incidence_rate_penalty(self):
        """Test the incidence-rate penalty."""
        config = _config(sample_size=1000, estimated_incidence_rate=10)
        assert feasibility_score(config) == 60.0

    def test_score_is_clamped(self):
        """Test that the score never leaves 0-100."""
        low = _config(sample_size=51, estimated_incidence_rate=0, markets=["cn", "jp", "in", "br"])
        high = _config(sample_size=5000, estimated_incidence_rate=100)
        assert feasibility_score(low) == 0.0
        assert feasibility_score(high) == 100.0

    @pytest.mark.parametrize("lower,higher", [(10, 30), (30, 60), (60, 90)])
    def test_monotonic_in_incidence_rate(self, lower, higher):
        """Test that raising the incidence rate never lowers the score."""
        assert feasibility_score(
            _config(sample_size=400, estimated_incidence_rate=lower)
        ) <= feasibility_score(_config(sample_size=400, estimated_incidence_rate=higher))

    def test_monotonic_in_market_count(self):
        """Test that adding markets never raises the score."""
        scores = [
            feasibility_score(_config(sample_size=1000, markets=markets))
            for markets in ([], ["us"], ["us", "gb"], ["us", "gb", "fr"])
        ]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.parametrize(
        "smaller,larger", [(51, 60), (100, 999), (1000, 5000), (119, 120), (120, 139), (999, 1000)]
    )
    def test_monotonic_in_sample_size(self, smaller, larger):
        """Test that a larger sample never raises the size impact or lowers the score."""
        assert size_impact(larger) <= size_impact(smaller)
        assert feasibility_score(_config(sample_size=smaller, markets=["gb"])) <= feasibility_score(
            _config(sample_size=larger, markets=["gb"])
        )

    @pytest.mark.parametrize("sample_size,impact", [(51, 48), (119, 45), (120, 44), (999, 1), (1000, 0), (5000, 0)])
    def test_size_impact_steps(self, sample_size, impact):
        """Test that the size impact drops one point per full 20 respondents."""
        assert size_impact(sample_size) == impact


class TestFeasibilityLevel:
    """Test score buckets."""

    @pytest.mark.parametrize(
        "score,level",
        [(100, "High"), (75.5, "High"), (75, "Medium"), (50.5, "Medium"), (50, "Low"), (0, "Low")],
    )
    def test_buckets(self, score, level):
        """Test bucket boundaries."""
        assert feasibility_level(score) == level


class TestPartitionRespondents:
    """Test respondent cohorts."""

    def test_no_media(self):
        """Test that everyone answers text only without media tasks."""
        assert partition_respondents(_config(sample_size=200)) == (0, 0, 200)

    def test_qualitative_photo(self):
        """Test that a qualitative photo task claims its configured count."""
        config = _config(sample_size=100, photo_config=PhotoConfig(purpose="qualitative", num_photos=10))
        assert partition_respondents(config) == (0, 10, 90)

    def test_quantitative_video_claims_everyone(self):
        """Test that a quantitative video task leaves nobody for photo or text."""
        config = _config(
            sample_size=100,
            video_config=VideoConfig(purpose="quantitative"),
            photo_config=PhotoConfig(purpose="quantitative"),
        )
        assert partition_respondents(config) == (100, 0, 0)

    def test_video_allocated_before_photo(self):
        """Test that video is allocated first and photo takes the remainder."""
        config = _config(
            sample_size=100,
            video_config=VideoConfig(purpose="qualitative", num_videos=30),
            photo_config=PhotoConfig(purpose="quantitative"),
        )
        assert partition_respondents(config) == (30, 70, 0)

    def test_count_capped_at_sample(self):
        """Test that a qualitative count larger than the sample is capped."""
        config = _config(sample_size=60, photo_config=PhotoConfig(purpose="qualitative", num_photos=500))
        assert partition_respondents(config) == (0, 60, 0)


class TestFieldTime:
    """Test field-time buckets."""

    def test_fast(self):
        assert field_time(80, 50) == FIELD_TIME_FAST

    def test_medium(self):
        assert field_time(60, 30) == FIELD_TIME_MEDIUM

    def test_slow(self):
        assert field_time(90, 10) == FIELD_TIME_SLOW

    def test_unset_incidence_rate_counts_as_zero(self):
        """Test that an unknown incidence rate gives the slowest bucket."""
        assert field_time(100, None) == FIELD_TIME_SLOW


class TestEstimateFeasibility:
    """Test the combined estimate."""

    def test_photo_token_example(self):
        """Test 100 respondents with a qualitative photo task for 10."""
        config = _config(sample_size=100, photo_config=PhotoConfig(purpose="qualitative", num_photos=10))
        result = estimate_feasibility(config)

        assert result.estimated_tokens == 120
        assert result.photo_respondents == 10
        assert result.text_respondents == 90
        assert result.video_respondents == 0
        assert result.survey_length == SURVEY_LENGTH

    def test_video_tokens(self):
        """Test that video respondents cost five tokens each."""
        config = _config(sample_size=100, video_config=VideoConfig(purpose="quantitative"))
        assert estimate_feasibility(config).estimated_tokens == 500

    def test_level_matches_score(self):
        """Test that the level is derived from the score."""
        result = estimate_feasibility(_config(sample_size=1000, estimated_incidence_rate=60))
        assert result.feasibility_score == 85.0
        assert result.feasibility_level == "High"
        assert result.field_time == FIELD_TIME_FAST


class TestExplanations:
    """Test key reasons and the explanation paragraph."""

    def test_key_reasons_limit(self):
        """Test that at most three reasons are returned."""
        config = _config(
            sample_size=800,
            estimated_incidence_rate=15,
            photo_config=PhotoConfig(purpose="qualitative", num_photos=5),
            video_config=VideoConfig(purpose="qualitative", num_videos=5),
            markets=["us", "gb"],
        )
        reasons = key_reasons(config)
        assert len(reasons) == 3
        assert reasons[0] == "Incidence rate of 15% is low, which can increase difficulty."
        assert reasons[1] == "Sample size of 800 is large, potentially increasing complexity."
        assert reasons[2] == "Photo requirement adds complexity."

    def test_single_market_reason(self):
        """Test the reason for a single market."""
        config = _config(sample_size=100, estimated_incidence_rate=45, markets=["gb"])
        assert key_reasons(config)[2] == "Targeting United Kingdom is focused."

    def test_explanation_mentions_score(self):
        """Test that the explanation closes with the score and level."""
        config = _config(sample_size=1000)
        estimate = estimate_feasibility(config)
        text = explain_feasibility(config, estimate)
        assert text.startswith("The estimated Incidence Rate (IR) of 50% is good")
        assert text.endswith("overall feasibility score of 80%, resulting in a high feasibility status.")

    def test_explanation_both_media(self):
        """Test the combined photo and video sentence."""
        config = _config(
            sample_size=1000,
            photo_config=PhotoConfig(purpose="qualitative", num_photos=5),
            video_config=VideoConfig(purpose="qualitative", num_videos=5),
        )
        text = explain_feasibility(config, estimate_feasibility(config))
        assert "both photo and video submissions" in text
