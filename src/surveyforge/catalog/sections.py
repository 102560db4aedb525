"""Section Library: the catalog of screener and content sections."""

from functools import lru_cache
from typing import Iterable, Optional

from surveyforge.schemas.sections import FrameworkSection, is_screener_title
from surveyforge.schemas.survey import SurveyQuestion
from surveyforge.schemas.template import Template

# Screeners that stay selectable on templates that ship them but are not offered for adding
HIDDEN_ADDABLE_SCREENERS = (
    "Screener: General Qualification",
    "Screener: Product Ownership",
)

CATALOG_KINDS = ("screener", "content")


def create_example_questions(
    label: str, screener_question_text: Optional[str] = None
) -> list[SurveyQuestion]:
    """
    Build generic example questions for a catalog section.

    Args:
        label: Short name the questions refer to
        screener_question_text: For screeners whose description is the question itself

    Returns:
        One option question for such screeners, otherwise an open, a scale
        and a closed question
    """
    if screener_question_text:
        return [
            SurveyQuestion(
                question_text=screener_question_text,
                question_type="closedText",
                options=[
                    f"[Option for {label} 1]",
                    f"[Option for {label} 2]",
                    f"[Option for {label} 3]",
                    "None of these",
                ],
            )
        ]

    subject = label.lower()
    return [
        SurveyQuestion(question_text=f"What are your thoughts on {subject}?", question_type="openText"),
        SurveyQuestion(
            question_text=f"How would you rate your overall experience with {subject}?",
            question_type="scale",
            options=["1 - Very Poor", "2 - Poor", "3 - Neutral", "4 - Good", "5 - Very Good"],
        ),
        SurveyQuestion(
            question_text=f"Which of the following best describes your primary use of {subject}?",
            question_type="closedText",
            options=["Option A", "Option B", "Option C", "Other (please specify)"],
        ),
    ]


# (title, description, example label, description doubles as the screener question)
_COMMON = [
    ("Screener: Category usage", "Qualify respondents based on their general interaction with the category.", "Category Usage Screening", False),
    ("Screener: Product Ownership", "Filter for users who own or have experience with specific products.", "Product Ownership Screening", False),
    ("Screener: General Qualification", "General questions to qualify or segment respondents before concept exposure.", "General Qualification Screening", False),
    ("Screener: Brand usage", "Which, if any, of the following brands do you use nowadays?", "Brand usage", True),
    ("Screener: Brand awareness", "Which, if any, of the following brands have you ever heard of before today?", "Brand awareness", True),
    ("Screener: Brand consideration", "Which, if any, of the following brands would you consider buying in future?", "Brand consideration", True),
    ("Screener: Brand non-rejector", "Are there any of the following brands that you would never consider buying?", "Brand non-rejector", True),
    ("Screener: Activity", "Which, if any, of the following activities do you take part in nowadays?", "Activity", True),
    ("Screener: Decision maker", "Which best describes your role when it comes to choosing which [category, product, brand, service] to buy?", "Decision maker", True),
    ("Screener: Category purchase", "Which, if any, of the following categories have you bought in the last month?", "Category purchase", True),
    ("Screener: Brand purchase", "Which, if any, of the following brands have you bought in the last month?", "Brand purchase", True),
    ("Screener: Purchase channel usage", "Where have you shopped for [category, product, brand] in the last month?", "Purchase channel usage", True),
    ("Demographics", "Collect standard demographic information like age, gender, location, etc.", "Demographics", False),
    ("Final Comments & Feedback", "Provide an open-ended opportunity for any additional thoughts or feedback.", "Final Comments", False),
]

_ENGAGEMENT = [
    ("Overall Satisfaction", "Gauge overall happiness and contentment with the subject.", "Overall Satisfaction", False),
    ("Product Appeal", "Assess the general attractiveness and desirability of the product.", "Product Appeal", False),
    ("Feature Importance & Satisfaction", "Evaluate which features are most important and how satisfied users are with them.", "Feature Importance", False),
    ("Unmet Needs & Pain Points", "Identify challenges, frustrations, and opportunities for improvement.", "Unmet Needs", False),
    ("Purchase Intent", "Measure the likelihood of future purchase or adoption.", "Purchase Intent", False),
    ("Emotional Drivers", "Explore the feelings and emotions that influence decisions and engagement.", "Emotional Drivers", False),
]

_BRAND_AND_MARKET = [
    ("Brand Perception", "Understand how consumers view and feel about the brand.", "Brand Perception", False),
    ("Brand funnel: Awareness, Consideration, Usage, Preferred", "Track consumer progression from awareness to loyalty for the brand.", "Brand Funnel", False),
    ("Key Brand Metrics", "Measure core brand health indicators and performance.", "Key Brand Metrics", False),
    ("Brand Purpose & Values Alignment", "Assess if the brand's mission and values resonate with consumers.", "Brand Values Alignment", False),
    ("Winning in the space", "Identify strategies and attributes of successful brands in the category.", "Winning in the Space", False),
    ("Competitor Comparison", "Understand how the brand stacks up against its main competitors.", "Competitor Comparison", False),
    ("Perception of brand", "Uncover spontaneous associations and detailed perceptions of the brand.", "Brand Perception Details", False),
]

_USAGE_AND_BEHAVIOUR = [
    ("Drivers of choice: Category", "Uncover motivations for engaging with the overall category.", "Category Drivers", False),
    ("Drivers of choice: Product", "Identify specific product attributes that influence selection.", "Product Drivers", False),
    ("Drivers of choice: Brand", "Explore brand-related factors that drive consumer preference.", "Brand Drivers", False),
    ("Drivers of choice: Channel", "Understand why consumers choose certain channels for purchase or interaction.", "Channel Drivers", False),
    ("Key benefits & features", "Determine the most desired benefits and features users look for.", "Key Benefits", False),
    ("Consumer definition", "Explore how consumers articulate and understand a specific theme or concept.", "Theme Definition", False),
    ("Importance of theme", "Assess the personal relevance and impact of a theme or concept.", "Theme Importance", False),
    ("Buying Patterns", "Understand purchase frequency, planning, and typical buying habits.", "Buying Patterns", False),
    ("Product Repertoire", "Explore the range of products consumers use or consider within the category.", "Product Repertoire", False),
    ("Brand Repertoire", "Investigate brand awareness, consideration, and loyalty within the category.", "Brand Repertoire", False),
    ("Consumption / Usage occasions", "Explore specific situations or needs that trigger product/service usage.", "Usage Occasions", False),
    ("Product Frustrations & Improvements", "Identify pain points and gather suggestions for product/service enhancement.", "Product Frustrations", False),
    ("Channel Repertoire & Preferences", "Map out the shopping channels consumers use and prefer for the category.", "Channel Repertoire", False),
    ("Usage context: Mood", "Explore the emotional state or mood of users during interaction.", "Usage Mood", False),
    ("Usage context: What (Activity)", "Identify specific activities or tasks performed with the product/service.", "Usage Activity", False),
    ("Usage context: When (Time)", "Determine the timing, day, and frequency of usage.", "Usage Time", False),
    ("Usage context: Who With", "Understand the social context: whether usage is solitary or with others.", "Usage Company", False),
    ("Usage context: Where (Location)", "Pinpoint common physical or virtual locations for usage.", "Usage Location", False),
    ("Consideration Set & Alternatives", "Identify what alternatives consumers consider or use instead.", "Consideration Set", False),
    ("Purchase Context: What Purchased", "Detail the specific items bought during a shopping trip.", "Items Purchased", False),
    ("Purchase Context: Type of Shopping Trip", "Understand the nature of the shopping trip (e.g., routine, specific mission, impulse).", "Shopping Trip Type", False),
    ("Purchase context: What", "Understand the specific items purchased during a shopping trip.", "Purchase Context What", False),
    ("Purchase context: When", "Determine the timing and day of the week for purchases.", "Purchase Context When", False),
    ("Purchase context: Who with", "Understand if purchases are made alone or with others.", "Purchase Context Who With", False),
    ("Purchase context: Where", "Identify the physical location of purchase if applicable.", "Purchase Context Where", False),
    ("Purchase context: Channel", "Explore the specific channels used for purchasing (online/offline, store/site).", "Purchase Context Channel", False),
]

_CONCEPT_TESTING = [
    ("Concept Introduction & Stimulus Exposure", "Present the concept or stimulus clearly to respondents.", "Concept Introduction", False),
    ("Overall Concept Evaluation", "Gather initial overall reactions and appeal of the concept.", "Concept Evaluation", False),
    ("Clarity & Understanding of Concept", "Assess how well respondents comprehend the presented concept.", "Concept Clarity", False),
    ("Likes & Dislikes of Concept", "Identify specific aspects of the concept that resonate positively or negatively.", "Concept Likes/Dislikes", False),
    ("Uniqueness & Differentiation of Concept", "Evaluate how distinct and novel the concept is perceived to be.", "Concept Uniqueness", False),
    ("Believability & Relevance of Concept", "Gauge the credibility of the concept and its personal relevance to respondents.", "Concept Believability", False),
    ("Purchase Intent for Concept", "Measure the likelihood of respondents purchasing or using the concept if available.", "Concept Purchase Intent", False),
]

_ADDITIONAL_GENERIC = [
    ("Attitudes & Opinions", "Explore general attitudes towards a topic or category.", "General Attitudes", False),
    ("Lifestyle & Habits", "Understand respondent lifestyles relevant to the survey context.", "Lifestyle Habits", False),
    ("Future Expectations", "Gather thoughts on future trends or desires related to the topic.", "Future Expectations", False),
    ("Media Consumption", "Understand media habits relevant for communication strategies.", "Media Consumption", False),
    ("Technology Usage", "Assess familiarity and usage of relevant technologies.", "Technology Usage", False),
]


def _build(rows: list[tuple]) -> list[FrameworkSection]:
    sections = []
    for title, description, label, asks_description in rows:
        question_text = description if asks_description else None
        sections.append(
            FrameworkSection(
                title=title,
                description=description,
                example_questions=create_example_questions(label, question_text),
            )
        )
    return sections


SECTION_GROUPS: dict[str, list[FrameworkSection]] = {
    "common": _build(_COMMON),
    "engagement": _build(_ENGAGEMENT),
    "brand_and_market": _build(_BRAND_AND_MARKET),
    "usage_and_behaviour": _build(_USAGE_AND_BEHAVIOUR),
    "concept_testing": _build(_CONCEPT_TESTING),
    "additional_generic": _build(_ADDITIONAL_GENERIC),
}


def _sort_for_display(sections: Iterable[FrameworkSection]) -> list[FrameworkSection]:
    return sorted(sections, key=lambda s: s.title.casefold())


def dedupe_by_title(sections: Iterable[FrameworkSection]) -> list[FrameworkSection]:
    """Drop later sections whose title was already seen."""
    seen: set[str] = set()
    unique = []
    for section in sections:
        if section.title in seen:
            continue
        seen.add(section.title)
        unique.append(section)
    return unique


@lru_cache(maxsize=1)
def _all_sections() -> tuple[FrameworkSection, ...]:
    merged = [section for group in SECTION_GROUPS.values() for section in group]
    return tuple(_sort_for_display(dedupe_by_title(merged)))


def get_all_sections() -> list[FrameworkSection]:
    """Every catalog section, de-duplicated by title and sorted for display."""
    return list(_all_sections())


def get_catalog(kind: str) -> list[FrameworkSection]:
    """
    Return the catalog for one kind of section.

    Args:
        kind: "screener" or "content"

    Returns:
        Sections sorted alphabetically by title

    Raises:
        ValueError: If kind is unknown
    """
    if kind == "screener":
        return _sort_for_display(s for s in SECTION_GROUPS["common"] if s.is_screener)
    if kind == "content":
        return [s for s in _all_sections() if not s.is_screener]
    raise ValueError(f"Unknown catalog kind: {kind}. Expected one of: {', '.join(CATALOG_KINDS)}")


def get_addable_screeners() -> list[FrameworkSection]:
    """Screener catalog without the screeners that are never offered for adding."""
    return [s for s in get_catalog("screener") if s.title not in HIDDEN_ADDABLE_SCREENERS]


def available_to_add(kind: str, selected_titles: Iterable[str]) -> list[FrameworkSection]:
    """Catalog sections of a kind that are not currently selected."""
    selected = set(selected_titles)
    catalog = get_addable_screeners() if kind == "screener" else get_catalog(kind)
    return [s for s in catalog if s.title not in selected]


def find_section(title: str, catalog: Iterable[FrameworkSection]) -> Optional[FrameworkSection]:
    """Return the section with an exact title match, or None."""
    for section in catalog:
        if section.title == title:
            return section
    return None


def template_screeners(template: Template) -> list[FrameworkSection]:
    """The template's own screener sections in template order."""
    return [s for s in template.framework_sections if is_screener_title(s.title)]


def template_content_sections(template: Template) -> list[FrameworkSection]:
    """The template's own content sections in template order."""
    return [s for s in template.framework_sections if not is_screener_title(s.title)]
