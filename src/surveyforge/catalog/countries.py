"""Markets respondents can be recruited from."""

from typing import Iterable, Optional

from surveyforge.schemas.configuration import Country

_COUNTRY_ROWS = [
    ("ar", "Argentina", "🇦🇷"),
    ("au", "Australia", "🇦🇺"),
    ("at", "Austria", "🇦🇹"),
    ("be", "Belgium", "🇧🇪"),
    ("br", "Brazil", "🇧🇷"),
    ("ca", "Canada", "🇨🇦"),
    ("cl", "Chile", "🇨🇱"),
    ("cn", "China", "🇨🇳"),
    ("co", "Colombia", "🇨🇴"),
    ("dk", "Denmark", "🇩🇰"),
    ("eg", "Egypt", "🇪🇬"),
    ("fi", "Finland", "🇫🇮"),
    ("fr", "France", "🇫🇷"),
    ("de", "Germany", "🇩🇪"),
    ("hk", "Hong Kong", "🇭🇰"),
    ("in", "India", "🇮🇳"),
    ("id", "Indonesia", "🇮🇩"),
    ("ie", "Ireland", "🇮🇪"),
    ("it", "Italy", "🇮🇹"),
    ("jp", "Japan", "🇯🇵"),
    ("my", "Malaysia", "🇲🇾"),
    ("mx", "Mexico", "🇲🇽"),
    ("nl", "Netherlands", "🇳🇱"),
    ("nz", "New Zealand", "🇳🇿"),
    ("ng", "Nigeria", "🇳🇬"),
    ("no", "Norway", "🇳🇴"),
    ("ph", "Philippines", "🇵🇭"),
    ("pl", "Poland", "🇵🇱"),
    ("pt", "Portugal", "🇵🇹"),
    ("sa", "Saudi Arabia", "🇸🇦"),
    ("sg", "Singapore", "🇸🇬"),
    ("za", "South Africa", "🇿🇦"),
    ("kr", "South Korea", "🇰🇷"),
    ("es", "Spain", "🇪🇸"),
    ("se", "Sweden", "🇸🇪"),
    ("ch", "Switzerland", "🇨🇭"),
    ("th", "Thailand", "🇹🇭"),
    ("tr", "Turkey", "🇹🇷"),
    ("ae", "United Arab Emirates", "🇦🇪"),
    ("gb", "United Kingdom", "🇬🇧"),
    ("us", "United States", "🇺🇸"),
    ("vn", "Vietnam", "🇻🇳"),
]

COUNTRIES: list[Country] = [
    Country(value=value, label=label, flag=flag) for value, label, flag in _COUNTRY_ROWS
]


def find_country(code_or_label: str) -> Optional[Country]:
    """Exact, case-insensitive lookup by code or label."""
    needle = code_or_label.strip().lower()
    for country in COUNTRIES:
        if needle in (country.value, country.label.lower()):
            return country
    return None


def match_markets(
    suggestions: Iterable[str], countries: Optional[Iterable[Country]] = None
) -> list[Country]:
    """
    Map free-text market names onto known countries.

    A suggestion matches a country when either string contains the other,
    compared case-insensitively against the label, or when it equals the
    code. Suggestions of two characters or fewer are compared with codes
    only, since they occur inside many country names.

    Args:
        suggestions: Market names or codes (e.g. from the AI collaborator)
        countries: Candidate countries (defaults to COUNTRIES)

    Returns:
        Matched countries in candidate order
    """
    candidates = list(countries) if countries is not None else COUNTRIES
    needles = [s.strip().lower() for s in suggestions if s and s.strip()]
    matched: list[Country] = []
    for country in candidates:
        label = country.label.lower()
        code = country.value.lower()
        if any(
            n == code or (len(n) > 2 and (n in label or label in n)) for n in needles
        ):
            matched.append(country)
    return matched


def merge_markets(current: Iterable[Country], additions: Iterable[Country]) -> list[Country]:
    """Append additions to the current markets, skipping ones already selected."""
    merged = list(current)
    known = {c.value for c in merged}
    for country in additions:
        if country.value not in known:
            merged.append(country)
            known.add(country.value)
    return merged
