"""Google Gemini LLM client using the google-genai SDK."""

import os
from typing import Any, Optional

from google import genai
from google.genai import types

from surveyforge.core.llm_base import extract_json_object

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Tried in order when the configured model is unavailable
GEMINI_FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash"]


class GeminiClient:
    """Client for interacting with the Gemini API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.2,
        seed: Optional[int] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY env var)
            model: Model name to use
            temperature: Temperature for generation
            seed: Random seed for reproducible drafts

        Raises:
            ValueError: If no API key is available
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "GEMINI_API_KEY environment variable is required for Gemini provider. "
                "Get your API key from: https://aistudio.google.com/app/apikey"
            )
        self.model = model or DEFAULT_GEMINI_MODEL
        self.temperature = temperature
        self.seed = seed
        self.client = genai.Client(api_key=self.api_key)

    def _next_fallback_model(self, tried: list[str]) -> Optional[str]:
        for candidate in GEMINI_FALLBACK_MODELS:
            if candidate not in tried:
                return candidate
        return None

    @staticmethod
    def _response_text(response: Any) -> str:
        """Return the first non-empty text part of a generate_content response."""
        text = getattr(response, "text", None)
        if text:
            return str(text).strip()
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                part_text = getattr(part, "text", None)
                if part_text and part_text.strip():
                    return part_text.strip()
        return ""

    def generate(
        self,
        prompt: str,
        max_retries: int = 3,
        timeout: int = 120,
    ) -> str:
        """
        Generate response from Gemini.

        Args:
            prompt: Input prompt
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds

        Returns:
            Generated text response

        Raises:
            RuntimeError: If API call fails after retries
        """
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            seed=self.seed,
            response_mime_type="application/json",
            http_options=types.HttpOptions(timeout=timeout * 1000),
        )
        tried: list[str] = []
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                response = self.client.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=config,
                )
                return self._response_text(response)
            except Exception as e:
                last_error = e
                error_lower = str(e).lower()
                if "not found" in error_lower or "404" in error_lower:
                    tried.append(self.model)
                    fallback = self._next_fallback_model(tried)
                    if fallback is None:
                        break
                    self.model = fallback

        raise RuntimeError(
            f"Failed to generate response from Gemini after {max_retries} attempts: {last_error}"
        ) from last_error

    def extract_json(self, text: str) -> dict:
        """Extract JSON from AI response, handling markdown code blocks."""
        return extract_json_object(text)
