"""Follow-up question evaluation: computed text, visibility and required answers."""

from typing import Callable, Mapping, Optional, Union

from surveyforge.schemas.template import ComputedText, FollowUpQuestion, LiteralText, Template

Answers = Mapping[str, str]
Resolver = Callable[[Answers], str]

DEFAULT_FOCUS_PLACEHOLDER = "e.g., Describe your selection in detail."

_RESOLVERS: dict[str, Resolver] = {}


def register_resolver(name: str) -> Callable[[Resolver], Resolver]:
    """Register a function as a named computed-text resolver."""

    def decorator(func: Resolver) -> Resolver:
        _RESOLVERS[name] = func
        return func

    return decorator


def get_resolver(name: str) -> Resolver:
    """
    Look up a computed-text resolver.

    Raises:
        ValueError: If no resolver has that name
    """
    try:
        return _RESOLVERS[name]
    except KeyError:
        available = ", ".join(sorted(_RESOLVERS))
        raise ValueError(f"Unknown text resolver: {name}. Available resolvers: {available}") from None


def resolve_text(spec: Optional[Union[LiteralText, ComputedText]], answers: Answers) -> str:
    """
    Resolve a label or placeholder against the current answers.

    Args:
        spec: Literal or computed text, or None
        answers: Follow-up answers collected so far

    Returns:
        The text to display ("" for None)
    """
    if spec is None:
        return ""
    if isinstance(spec, LiteralText):
        return spec.value
    return get_resolver(spec.resolver)(answers)


def _focus_label(answers: Answers, key: str) -> str:
    focus = answers.get(key) or "item"
    return f"Describe your {focus.lower()}"


def _focus_placeholder(answers: Answers, key: str, examples: Mapping[str, str]) -> str:
    return examples.get(answers.get(key) or "", DEFAULT_FOCUS_PLACEHOLDER)


_MOTIVATION_EXAMPLES = {
    "product": "e.g., Our new mobile app for budget tracking.",
    "brand": "e.g., Nike is a global leader in athletic footwear and apparel.",
    "service": "e.g., A new food delivery service and its convenience factors.",
    "category": "e.g., The organic snack food category and consumer preferences within it.",
    "activity": "e.g., Learning a new language online and the challenges involved.",
}

_USAGE_EXAMPLES = {
    "product": "e.g., Our new mobile gaming app.",
    "brand": "e.g., Interacting with the Coca-Cola brand.",
    "service": "e.g., Using a new ride-sharing service for daily commutes.",
    "category": "e.g., Listening habits within the streaming music category.",
}

_SHOPPING_EXAMPLES = {
    "product": "e.g., Smart home devices like voice assistants or smart lighting.",
    "service": "e.g., Online grocery delivery services and their user adoption trends.",
    "category": "e.g., The sustainable fashion category and how consumers make choices within it.",
    "brand": "e.g., Shopping for Apple products versus competitor brands.",
}


@register_resolver("motivation_focus_label")
def motivation_focus_label(answers: Answers) -> str:
    return _focus_label(answers, "motivationFocus")


@register_resolver("motivation_focus_placeholder")
def motivation_focus_placeholder(answers: Answers) -> str:
    return _focus_placeholder(answers, "motivationFocus", _MOTIVATION_EXAMPLES)


@register_resolver("usage_focus_label")
def usage_focus_label(answers: Answers) -> str:
    return _focus_label(answers, "usageFocusType")


@register_resolver("usage_focus_placeholder")
def usage_focus_placeholder(answers: Answers) -> str:
    return _focus_placeholder(answers, "usageFocusType", _USAGE_EXAMPLES)


@register_resolver("shopping_focus_label")
def shopping_focus_label(answers: Answers) -> str:
    return _focus_label(answers, "shoppingPatternFocus")


@register_resolver("shopping_focus_placeholder")
def shopping_focus_placeholder(answers: Answers) -> str:
    return _focus_placeholder(answers, "shoppingPatternFocus", _SHOPPING_EXAMPLES)


@register_resolver("brand_category_placeholder")
def brand_category_placeholder(answers: Answers) -> str:
    brand_input = answers.get("brandDescription") or "your brand"
    first_word = brand_input.split(" ")[0]
    brand_name = first_word.replace(",", "").replace(".", "") if first_word else "YourBrand"
    return (
        f"e.g., If {brand_name} is Nike, the category is athletic footwear and apparel. "
        f"If {brand_name} is Apple, it's consumer electronics."
    )


def is_visible(question: FollowUpQuestion, answers: Answers) -> bool:
    """True unless the question's show_if condition is unmet."""
    if question.show_if is None:
        return True
    return answers.get(question.show_if.question_id) == question.show_if.expected_value


def visible_questions(template: Template, answers: Answers) -> list[FollowUpQuestion]:
    """Follow-up questions currently shown for the template, in order."""
    return [q for q in template.follow_up_questions if is_visible(q, answers)]


def missing_required(template: Template, answers: Answers) -> list[FollowUpQuestion]:
    """Visible required questions whose answer is blank."""
    return [
        q
        for q in visible_questions(template, answers)
        if q.required and not (answers.get(q.id) or "").strip()
    ]


def default_answers(template: Template) -> dict[str, str]:
    """Initial answers: every follow-up's default value, or blank."""
    return {q.id: q.default_value or "" for q in template.follow_up_questions}
