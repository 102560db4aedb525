"""Interface shared by LLM provider clients."""

import json
import re
from typing import Protocol


class LLMClientBase(Protocol):
    """
    Protocol/interface for LLM clients.

    All LLM provider implementations must implement these methods.
    """

    def generate(self, prompt: str, max_retries: int = 3, timeout: int = 120) -> str:
        """
        Generate response from LLM.

        Args:
            prompt: Input prompt text
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds

        Returns:
            Generated text response

        Raises:
            RuntimeError: If generation fails after retries
        """
        ...

    def extract_json(self, text: str) -> dict:
        """
        Extract JSON from AI response, handling markdown code blocks.

        Args:
            text: Raw response text that may contain JSON

        Returns:
            Parsed JSON as dictionary

        Raises:
            ValueError: If no valid JSON is found
        """
        ...


_JSON_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: str) -> dict:
    """
    Pull the first JSON object out of a model response.

    Tries a fenced ```json block, then the outermost brace span, then the
    whole text.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    candidates = []
    match = _JSON_BLOCK_PATTERN.search(text)
    if match:
        candidates.append(match.group(1))
    match = _JSON_OBJECT_PATTERN.search(text)
    if match:
        candidates.append(match.group(0))
    candidates.append(text.strip())

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ValueError(f"Could not extract valid JSON from response: {text[:200]}...")
