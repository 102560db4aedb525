"""LLM client wrapper adding logging, backoff and a circuit breaker."""

import time
from typing import Optional

from surveyforge.core.llm_base import LLMClientBase
from surveyforge.core.logging import get_logger
from surveyforge.core.retry import CircuitBreaker, retry_with_exponential_backoff

logger = get_logger("surveyforge.llm_wrapper")


class LoggingLLMClientWrapper:
    """
    Wraps an LLM client so every call is logged and protected.

    Each ``generate`` goes through exponential backoff on ``RuntimeError``
    and a shared circuit breaker, then the call is logged with latency.
    """

    def __init__(
        self,
        client: LLMClientBase,
        provider: str,
        model: str,
        circuit_breaker: Optional[CircuitBreaker] = None,
        max_retries: int = 2,
        initial_delay: float = 1.0,
    ):
        """
        Initialize LLM client wrapper.

        Args:
            client: The underlying LLM client to wrap
            provider: Provider name (e.g., "ollama", "gemini")
            model: Model name
            circuit_breaker: Breaker shared across calls (a new one if None)
            max_retries: Backoff retries on top of the client's own attempts
            initial_delay: First backoff delay in seconds
        """
        self.client = client
        self.provider = provider
        self.model = model
        self.circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=3)
        self._protected_generate = retry_with_exponential_backoff(
            max_retries=max_retries,
            initial_delay=initial_delay,
            circuit_breaker=self.circuit_breaker,
        )(self.client.generate)

    def generate(self, prompt: str, max_retries: int = 3, timeout: int = 120) -> str:
        """
        Generate response from the wrapped client with logging and protection.

        Raises:
            RuntimeError: If generation fails after retries
            CircuitBreakerError: If the provider circuit is open
        """
        start_time = time.time()
        try:
            response = self._protected_generate(prompt, max_retries=max_retries, timeout=timeout)
        except Exception as e:
            logger.error(
                f"LLM call failed: {self.provider}/{self.model}",
                context={
                    "provider": self.provider,
                    "model": self.model,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "latency_ms": (time.time() - start_time) * 1000,
                    "prompt_length": len(prompt),
                },
            )
            raise

        logger.log_llm_call(
            provider=self.provider,
            model=self.model,
            prompt=prompt,
            response=response,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return response

    def extract_json(self, text: str) -> dict:
        """Delegate JSON extraction to the wrapped client."""
        return self.client.extract_json(text)


def wrap_client_with_logging(
    client: LLMClientBase,
    provider: str,
    model: Optional[str] = None,
    circuit_breaker: Optional[CircuitBreaker] = None,
) -> LoggingLLMClientWrapper:
    """
    Wrap an LLM client with logging, backoff and a circuit breaker.

    Args:
        client: The LLM client to wrap
        provider: Provider name
        model: Model name (falls back to the client's own ``model`` attribute)
        circuit_breaker: Optional shared breaker

    Returns:
        LoggingLLMClientWrapper instance
    """
    actual_model = model or getattr(client, "model", None) or "default"
    return LoggingLLMClientWrapper(
        client=client,
        provider=provider,
        model=actual_model,
        circuit_breaker=circuit_breaker,
    )
