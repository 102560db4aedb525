"""Factory for creating LLM provider clients with auto-detection."""

import os
from typing import Optional

import requests

from surveyforge.core.gemini_client import DEFAULT_GEMINI_MODEL, GeminiClient
from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.llm_client import OllamaClient
from surveyforge.core.logging import get_logger
from surveyforge.core.openrouter_client import DEFAULT_OPENROUTER_MODEL, OpenRouterClient

logger = get_logger("surveyforge.provider_factory")

SUPPORTED_PROVIDERS = ("auto", "ollama", "gemini", "openrouter")


def check_ollama_available(base_url: Optional[str] = None) -> bool:
    """
    Check if Ollama is available and running.

    Args:
        base_url: Ollama base URL to check

    Returns:
        True if Ollama is available, False otherwise
    """
    base_url = base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    try:
        response = requests.get(f"{base_url}/api/tags", timeout=2)
    except requests.RequestException:
        return False
    return response.status_code == 200


def check_gemini_available() -> bool:
    """Return True if GEMINI_API_KEY is set."""
    return bool(os.getenv("GEMINI_API_KEY"))


def check_openrouter_available() -> bool:
    """Return True if OPENROUTER_API_KEY is set."""
    return bool(os.getenv("OPENROUTER_API_KEY"))


def detect_provider(base_url: Optional[str] = None) -> str:
    """
    Pick a provider: OpenRouter, then Gemini, then a running Ollama.

    Raises:
        ValueError: If no provider is reachable
    """
    if check_openrouter_available():
        return "openrouter"
    if check_gemini_available():
        return "gemini"
    if check_ollama_available(base_url):
        return "ollama"
    raise ValueError(
        "No LLM provider available. "
        "Set OPENROUTER_API_KEY or GEMINI_API_KEY, or ensure Ollama is running."
    )


def create_client(
    provider: str = "auto",
    model: Optional[str] = None,
    temperature: float = 0.2,
    seed: Optional[int] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
) -> LLMClientBase:
    """
    Create an LLM client for the specified provider.

    Args:
        provider: Provider name ("ollama", "gemini", "openrouter", or "auto")
        model: Model name (provider-specific)
        temperature: Generation temperature
        seed: Random seed
        base_url: Base URL (Ollama and OpenRouter only)
        api_key: API key (Gemini and OpenRouter only)

    Returns:
        LLM client instance

    Raises:
        ValueError: If provider is invalid or not available
    """
    provider = (provider or "auto").lower()
    if provider == "auto":
        provider = detect_provider(base_url)
        logger.info(f"Auto-detected LLM provider: {provider}")

    if provider == "ollama":
        if not check_ollama_available(base_url):
            raise ValueError(
                f"Ollama is not available at "
                f"{base_url or os.getenv('OLLAMA_BASE_URL', 'http://localhost:11434')}. "
                "Please ensure Ollama is running."
            )
        return OllamaClient(
            base_url=base_url,
            model=model or "llama3.1",
            temperature=temperature,
            seed=seed,
        )

    if provider == "gemini":
        return GeminiClient(
            api_key=api_key,
            model=model or DEFAULT_GEMINI_MODEL,
            temperature=temperature,
            seed=seed,
        )

    if provider == "openrouter":
        return OpenRouterClient(
            api_key=api_key,
            base_url=base_url,
            model=model or DEFAULT_OPENROUTER_MODEL,
            temperature=temperature,
            seed=seed,
        )

    raise ValueError(
        f"Unknown provider: {provider}. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
    )
