"""OpenRouter LLM client using the OpenAI-compatible API."""

import os
from typing import Optional

from openai import OpenAI

from surveyforge.core.llm_base import extract_json_object

OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1"
DEFAULT_OPENROUTER_MODEL = "openai/gpt-4o-mini"


class OpenRouterClient:
    """Client for interacting with OpenRouter (OpenAI-compatible)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = DEFAULT_OPENROUTER_MODEL,
        temperature: float = 0.2,
        seed: Optional[int] = None,
    ):
        """
        Initialize OpenRouter client.

        Args:
            api_key: OpenRouter API key (defaults to OPENROUTER_API_KEY env var)
            base_url: Base URL for OpenRouter API
            model: Model name to use
            temperature: Temperature for generation
            seed: Random seed, forwarded when the routed model supports it

        Raises:
            ValueError: If no API key is available
        """
        api_key = (api_key or os.getenv("OPENROUTER_API_KEY") or "").strip().strip('"').strip("'")
        if not api_key:
            raise ValueError(
                "OPENROUTER_API_KEY environment variable is required for OpenRouter provider. "
                "Get your API key from https://openrouter.ai/keys"
            )

        self.api_key = api_key
        self.base_url = base_url or os.getenv("OPENROUTER_API_BASE", OPENROUTER_ENDPOINT)
        self.model = model or os.getenv("OPENROUTER_MODEL", DEFAULT_OPENROUTER_MODEL)
        self.temperature = temperature
        self.seed = seed

        self.client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            default_headers={
                "HTTP-Referer": os.getenv("OPENROUTER_HTTP_REFERER", "https://github.com/surveyforge"),
                "X-Title": os.getenv("OPENROUTER_X_TITLE", "surveyforge"),
            },
        )

    def generate(
        self,
        prompt: str,
        max_retries: int = 3,
        timeout: int = 120,
    ) -> str:
        """
        Generate response from OpenRouter.

        Args:
            prompt: Input prompt
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds

        Returns:
            Generated text response

        Raises:
            RuntimeError: If API call fails after retries
        """
        extra_body = {"seed": self.seed} if self.seed is not None else None
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    response_format={"type": "json_object"},
                    extra_body=extra_body,
                    timeout=timeout,
                )
                if response.choices:
                    return response.choices[0].message.content or ""
                return ""
            except Exception as e:
                last_error = e
                error_lower = str(e).lower()
                if "401" in error_lower or "unauthorized" in error_lower or "invalid_api_key" in error_lower:
                    raise RuntimeError(
                        f"OpenRouter authentication failed for {self.base_url}. "
                        f"Check OPENROUTER_API_KEY. Original error: {e}"
                    ) from e

        raise RuntimeError(
            f"Failed to generate response from OpenRouter after {max_retries} attempts: {last_error}"
        ) from last_error

    def extract_json(self, text: str) -> dict:
        """Extract JSON from AI response, handling markdown code blocks."""
        return extract_json_object(text)
