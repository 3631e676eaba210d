"""
captioncut.llm.client - LLM backend abstraction using litellm.

Provides a unified interface for Ollama, LM Studio, Claude, and OpenAI
with retry logic.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from captioncut.exceptions import LLMError, LLMResponseError

logger = logging.getLogger(__name__)

LOCAL_API_BASES = {
    "ollama": "http://localhost:11434",
    "lmstudio": "http://localhost:1234/v1",
}


class LLMClient:
    """LLM client wrapper with retry logic."""

    def __init__(
        self,
        backend: str = "openai",
        model: str = "gpt-4o",
        timeout: int = 300,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ) -> None:
        self.backend = backend
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

    def _get_model_string(self) -> str:
        """Get the model string for litellm based on backend."""
        if self.backend == "ollama":
            return f"ollama/{self.model}"
        elif self.backend == "lmstudio":
            return f"openai/{self.model}"
        elif self.backend == "claude":
            return self.model if self.model.startswith("claude") else f"claude-{self.model}"
        return self.model

    def complete(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        json_mode: bool = False,
        console=None,
    ) -> str:
        """Send prompt to LLM and get completion with retry logic.

        Args:
            prompt: The user prompt string
            system: Optional system message
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            json_mode: Request a JSON object response where the backend supports it
            console: Optional rich console for output

        Returns:
            LLM response text

        Raises:
            LLMError: If LLM request fails after all retries
            LLMResponseError: If the response carries no content
        """
        try:
            import litellm
        except ImportError as e:
            raise LLMError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.backend in LOCAL_API_BASES:
            kwargs["api_base"] = LOCAL_API_BASES[self.backend]
        if json_mode and self.backend in ("openai", "lmstudio"):
            kwargs["response_format"] = {"type": "json_object"}

        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = litellm.completion(**kwargs)
            except Exception as e:
                last_error = e
                kind = classify_failure(e)
                logger.debug("LLM attempt %d/%d failed (%s): %s", attempt, self.max_retries, kind, e)
                if console:
                    console.print(f"[yellow]  {kind.capitalize()} from {self.backend}: {e}[/yellow]")
                if attempt < self.max_retries:
                    time.sleep(self.retry_delay * (2 if kind == "rate limit" else 1))
                continue

            self._record_usage(response)
            return _response_content(response)

        raise LLMError(
            f"LLM request failed after {self.max_retries} attempts: {last_error}"
        ) from last_error

    def _record_usage(self, response: Any) -> None:
        usage = getattr(response, "usage", None)
        if usage:
            self._token_usage["prompt_tokens"] += getattr(usage, "prompt_tokens", 0) or 0
            self._token_usage["completion_tokens"] += getattr(usage, "completion_tokens", 0) or 0
            self._token_usage["total_tokens"] += getattr(usage, "total_tokens", 0) or 0

    def get_token_usage(self) -> dict[str, int]:
        """Get cumulative token usage."""
        return self._token_usage.copy()


def _response_content(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise LLMResponseError("Empty response from LLM")

    message = getattr(choices[0], "message", None)
    if message is None:
        raise LLMResponseError("No message in LLM response")

    content = getattr(message, "content", None)
    if content is None:
        raise LLMResponseError("No content in LLM message")

    return content


def create_client_from_config(config: Any) -> LLMClient:
    """Create LLM client from CaptionCutConfig.

    Args:
        config: CaptionCutConfig instance

    Returns:
        Configured LLMClient
    """
    return LLMClient(backend=config.llm_backend, model=config.llm_model)


def classify_failure(error: Exception) -> str:
    """Rough failure kind for a litellm exception, used for backoff and messages."""
    text = str(error).lower()
    if "rate limit" in text or "429" in text:
        return "rate limit"
    if "timeout" in text or "timed out" in text:
        return "timeout"
    if "connection" in text or "refused" in text:
        return "connection error"
    return "error"
