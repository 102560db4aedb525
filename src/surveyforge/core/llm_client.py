"""Ollama LLM client for local survey generation."""

import os
from typing import Optional

from ollama import Client

from surveyforge.core.llm_base import extract_json_object


class OllamaClient:
    """
    Client for interacting with a local Ollama server.

    Implements LLMClientBase protocol. Requests JSON-formatted output so
    survey documents come back parseable.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: str = "llama3.1",
        temperature: float = 0.2,
        seed: Optional[int] = None,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Base URL for Ollama API (defaults to http://localhost:11434)
            model: Model name to use (default: llama3.1)
            temperature: Temperature for generation
            seed: Random seed for reproducible drafts
        """
        self.base_url = base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
        self.model = model or os.getenv("OLLAMA_MODEL", "llama3.1")
        self.temperature = temperature
        self.seed = seed
        self.client = Client(host=self.base_url)

    def _model_not_found_message(self) -> Optional[str]:
        """Describe locally available models, if the server will list them."""
        try:
            available = self.client.list()
        except Exception:
            return None
        models = available.get("models", []) if isinstance(available, dict) else getattr(available, "models", [])
        names = []
        for entry in models:
            name = entry.get("name") if isinstance(entry, dict) else getattr(entry, "model", None)
            if name:
                names.append(name)
        if not names:
            return None
        return (
            f"Model '{self.model}' not found. "
            f"Available models: {', '.join(names[:3])}. "
            f"Pull one with 'ollama pull <model>'"
        )

    def generate(
        self,
        prompt: str,
        max_retries: int = 3,
        timeout: int = 120,
    ) -> str:
        """
        Generate response from Ollama.

        Args:
            prompt: Input prompt
            max_retries: Maximum number of retry attempts
            timeout: Request timeout in seconds (enforced by the server)

        Returns:
            Generated text response

        Raises:
            RuntimeError: If the model is missing or the call fails after retries
        """
        options = {"temperature": self.temperature}
        if self.seed is not None:
            options["seed"] = self.seed

        last_error: Optional[Exception] = None
        for attempt in range(max_retries):
            try:
                response = self.client.generate(
                    model=self.model,
                    prompt=prompt,
                    options=options,
                    format="json",
                    stream=False,
                )
                return response.get("response", "")
            except Exception as e:
                last_error = e
                error_msg = str(e)
                if "not found" in error_msg.lower() or "404" in error_msg:
                    raise RuntimeError(self._model_not_found_message() or error_msg) from e

        raise RuntimeError(
            f"Failed to generate response after {max_retries} attempts: {last_error}"
        ) from last_error

    def extract_json(self, text: str) -> dict:
        """
        Extract JSON from AI response, handling markdown code blocks.

        Raises:
            ValueError: If no valid JSON is found
        """
        return extract_json_object(text)
