"""Schema validation for AI responses, with an optional LLM correction pass."""

import json
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.logging import get_logger

logger = get_logger("surveyforge.validator")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _suggestion_for(error_type: str, loc: str, input_value: Any) -> Optional[str]:
    """Return a one-line hint for a common model-output mistake."""
    if error_type == "string_type" and isinstance(input_value, dict):
        for key in ("questionText", "sectionTitle", "label", "text"):
            if key in input_value:
                return f"Expected string but got an object; use its '{key}' value: {input_value[key]!r}"
        return "Expected string but got an object. Use a plain string."
    if error_type == "string_type" and isinstance(input_value, list):
        return "Expected string but got a list. Use a single string."
    if error_type == "list_type" and isinstance(input_value, str):
        return "Expected a list but got a string. Wrap the value in a list: [value]"
    if error_type == "literal_error" and "questionType" in loc:
        return (
            "questionType must be one of: screener, closedText, openText, "
            "scale, photo, video, stimulus"
        )
    if error_type in ("less_than_equal", "greater_than_equal") and "estimatedIncidenceRate" in loc:
        return "estimatedIncidenceRate must be a number between 0 and 100"
    if error_type == "missing":
        return f"Required field '{loc}' is missing. Add it to the JSON object."
    return None


def format_validation_error(error: ValidationError, schema_class: type[BaseModel]) -> str:
    """
    Format validation error with actionable suggestions.

    Args:
        error: Pydantic ValidationError
        schema_class: The schema class that failed validation

    Returns:
        Formatted error message with suggestions
    """
    errors = error.errors()
    if not errors:
        return str(error)

    parts = [f"Validation failed for {schema_class.__name__}:", ""]
    for err in errors:
        loc = " -> ".join(str(x) for x in err["loc"])
        input_value = err.get("input")

        parts.append(f"Field: {loc}")
        parts.append(f"  Error: {err.get('msg', '')}")
        parts.append(f"  Type: {err['type']}")

        suggestion = _suggestion_for(err["type"], loc, input_value)
        if suggestion:
            parts.append(f"  Suggestion: {suggestion}")

        if input_value is not None:
            input_str = str(input_value)
            if len(input_str) > 100:
                input_str = input_str[:97] + "..."
            parts.append(f"  Input value: {input_str}")
        parts.append("")

    return "\n".join(parts)


def validate_schema(
    data: dict[str, Any],
    schema_class: type[ModelT],
    llm_client: Optional[LLMClientBase] = None,
    original_prompt: Optional[str] = None,
    max_retries: int = 1,
) -> ModelT:
    """
    Validate data against a Pydantic schema, with optional retry and correction.

    When a client and the original prompt are given, a failed validation is
    sent back to the model together with the formatted errors and the
    corrected JSON is validated again.

    Args:
        data: Dictionary to validate
        schema_class: Pydantic model class to validate against
        llm_client: Optional LLM client for correction retries
        original_prompt: Original prompt that generated the data
        max_retries: Maximum number of correction retries

    Returns:
        Validated model instance

    Raises:
        ValueError: If validation fails with detailed error message
    """
    last_error: Optional[ValidationError] = None

    for attempt in range(max_retries + 1):
        try:
            return schema_class.model_validate(data)
        except ValidationError as e:
            last_error = e

        if attempt >= max_retries or llm_client is None or original_prompt is None:
            break

        formatted_error = format_validation_error(last_error, schema_class)
        correction_prompt = f"""The previous response failed validation. Please correct it.

Original prompt:
{original_prompt}

Validation errors:
{formatted_error}

Current (incorrect) response:
{json.dumps(data, indent=2, default=str)}

Please provide a corrected JSON response that matches the expected schema. Only return the JSON object, no other text."""

        logger.info(
            f"Requesting correction for {schema_class.__name__}",
            context={"attempt": attempt + 1, "error_count": len(last_error.errors())},
        )
        try:
            corrected_response = llm_client.generate(correction_prompt)
            data = llm_client.extract_json(corrected_response)
        except (RuntimeError, ValueError) as correction_error:
            logger.warning(f"Correction attempt failed: {correction_error}")
            break

    raise ValueError(format_validation_error(last_error, schema_class)) from last_error
