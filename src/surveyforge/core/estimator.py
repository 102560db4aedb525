"""Feasibility and cost estimation for a survey configuration."""

from typing import Iterable, Literal, Optional

from surveyforge.core.config import DEFAULT_HARDER_ACCESS_MARKETS
from surveyforge.schemas.configuration import FeasibilityEstimate, SurveyConfiguration

BASE_SCORE = 80
ASSUMED_INCIDENCE_RATE = 50
SURVEY_LENGTH = "8-12 minutes"

VIDEO_TOKENS = 5
PHOTO_TOKENS = 3
TEXT_TOKENS = 1

FIELD_TIME_FAST = "3-5 days"
FIELD_TIME_MEDIUM = "5-7 days"
FIELD_TIME_SLOW = "7-10+ days"


def _format_number(value: float) -> str:
    """Render 25.0 as "25" and 12.5 as "12.5"."""
    rounded = round(value, 1)
    if rounded == int(rounded):
        return str(int(rounded))
    return str(rounded)


def feasibility_level(score: float) -> Literal["High", "Medium", "Low"]:
    """Bucket a feasibility score: above 75 is High, above 50 Medium, else Low."""
    if score > 75:
        return "High"
    if score > 50:
        return "Medium"
    return "Low"


def size_impact(sample_size: int) -> int:
    """Penalty for a small sample: 50 minus one point per full 20 respondents, floored at 0."""
    return max(0, 50 - sample_size // 20)


def feasibility_score(
    configuration: SurveyConfiguration,
    harder_access_markets: Iterable[str] = DEFAULT_HARDER_ACCESS_MARKETS,
) -> float:
    """
    Score how easy a configuration is to field, from 0 to 100.

    Args:
        configuration: Survey configuration
        harder_access_markets: Market codes that add a flat access penalty

    Returns:
        Clamped score
    """
    harder = {code.lower() for code in harder_access_markets}
    countries = configuration.selected_countries

    size_penalty = size_impact(configuration.sample_size)
    country_complexity = 2 * len(countries)
    if any(country.value.lower() in harder for country in countries):
        country_complexity += 5

    incidence_rate = configuration.estimated_incidence_rate
    if incidence_rate is None:
        incidence_rate = ASSUMED_INCIDENCE_RATE
    ir_penalty = (50 - incidence_rate) / 2

    score = BASE_SCORE - size_penalty - country_complexity - ir_penalty
    return float(min(100, max(0, score)))


def partition_respondents(configuration: SurveyConfiguration) -> tuple[int, int, int]:
    """
    Split the sample into video, photo and text-only cohorts.

    Video is allocated first. A quantitative media task claims everyone
    still unallocated; any other purpose claims at most its configured count.

    Returns:
        (video respondents, photo respondents, text respondents)
    """
    remaining = configuration.sample_size

    video = 0
    if configuration.video_config is not None:
        if configuration.video_config.purpose == "quantitative":
            video = remaining
        else:
            video = min(configuration.video_config.num_videos, remaining)
    remaining -= video

    photo = 0
    if configuration.photo_config is not None:
        if configuration.photo_config.purpose == "quantitative":
            photo = remaining
        else:
            photo = min(configuration.photo_config.num_photos, remaining)
    remaining -= photo

    return video, photo, remaining


def field_time(score: float, incidence_rate: Optional[float]) -> str:
    """Pick the field-time bucket from the score and incidence rate (unset counts as 0)."""
    ir = incidence_rate if incidence_rate is not None else 0
    if score > 70 and ir > 40:
        return FIELD_TIME_FAST
    if score > 40 and ir > 20:
        return FIELD_TIME_MEDIUM
    return FIELD_TIME_SLOW


def key_reasons(configuration: SurveyConfiguration, limit: int = 3) -> list[str]:
    """Short statements naming the factors behind the score, most important first."""
    reasons: list[str] = []
    ir = configuration.estimated_incidence_rate or 0
    ir_text = _format_number(ir)
    if ir <= 20:
        reasons.append(f"Incidence rate of {ir_text}% is low, which can increase difficulty.")
    elif ir <= 40:
        reasons.append(f"Incidence rate of {ir_text}% is moderate.")
    else:
        reasons.append(f"Incidence rate of {ir_text}% is high, which is favorable.")

    sample_size = configuration.sample_size
    if sample_size < 100:
        reasons.append(f"Sample size of {sample_size} is relatively small and manageable.")
    elif sample_size <= 500:
        reasons.append(f"Sample size of {sample_size} is manageable.")
    else:
        reasons.append(f"Sample size of {sample_size} is large, potentially increasing complexity.")

    if configuration.photo_config is not None:
        reasons.append("Photo requirement adds complexity.")
    if configuration.video_config is not None:
        reasons.append("Video requirement adds complexity.")

    countries = configuration.selected_countries
    if len(countries) == 1:
        reasons.append(f"Targeting {countries[0].label or '1 market'} is focused.")
    elif len(countries) > 1:
        reasons.append(f"Targeting {len(countries)} markets adds coordination effort.")

    return reasons[:limit]


def explain_feasibility(configuration: SurveyConfiguration, estimate: FeasibilityEstimate) -> str:
    """One-paragraph explanation of an estimate for display."""
    ir = configuration.estimated_incidence_rate
    ir_value = ir if ir is not None else ASSUMED_INCIDENCE_RATE
    ir_text = _format_number(ir_value)

    parts = []
    if ir_value < 20:
        parts.append(
            f"The estimated Incidence Rate (IR) of {ir_text}% is quite low, making it more "
            "challenging to find qualified respondents."
        )
    elif ir_value < 40:
        parts.append(
            f"The estimated Incidence Rate (IR) of {ir_text}% is moderate, which is generally manageable."
        )
    else:
        parts.append(
            f"The estimated Incidence Rate (IR) of {ir_text}% is good, suggesting a wider pool "
            "of potential respondents."
        )

    has_photo = configuration.photo_config is not None
    has_video = configuration.video_config is not None
    if has_photo and has_video:
        parts.append(
            "The requirement for both photo and video submissions significantly adds to "
            "respondent effort and complexity."
        )
    elif has_photo:
        parts.append("Collecting photos adds a layer of complexity.")
    elif has_video:
        parts.append("Collecting videos adds a layer of complexity.")

    if configuration.sample_size > 500:
        parts.append(f"A sample size of {configuration.sample_size} is relatively large.")
    if len(configuration.selected_countries) > 3:
        parts.append(
            f"Targeting {len(configuration.selected_countries)} markets increases logistical complexity."
        )

    parts.append(
        f"These factors combined influence the overall feasibility score of "
        f"{_format_number(estimate.feasibility_score)}%, resulting in a "
        f"{estimate.feasibility_level.lower()} feasibility status."
    )
    return " ".join(parts)


def estimate_feasibility(
    configuration: SurveyConfiguration,
    harder_access_markets: Iterable[str] = DEFAULT_HARDER_ACCESS_MARKETS,
) -> FeasibilityEstimate:
    """
    Derive feasibility, token cost and timing buckets for a configuration.

    Args:
        configuration: Survey configuration
        harder_access_markets: Market codes that add a flat access penalty

    Returns:
        FeasibilityEstimate
    """
    score = feasibility_score(configuration, harder_access_markets)
    video, photo, text = partition_respondents(configuration)
    tokens = video * VIDEO_TOKENS + photo * PHOTO_TOKENS + text * TEXT_TOKENS

    return FeasibilityEstimate(
        feasibility_score=score,
        feasibility_level=feasibility_level(score),
        key_reasons=key_reasons(configuration),
        estimated_tokens=tokens,
        video_respondents=video,
        photo_respondents=photo,
        text_respondents=text,
        field_time=field_time(score, configuration.estimated_incidence_rate),
        survey_length=SURVEY_LENGTH,
    )
