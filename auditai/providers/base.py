"""Base provider interface for LLM backends."""
from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, TypeVar

from auditai.config import Config, ModelSettings

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ProviderError(RuntimeError):
    """The backend could not be reached or kept failing after retries."""


def resolve_api_key(settings: ModelSettings, api_key: Optional[str] = None) -> str:
    key = api_key or os.environ.get(settings.api_key_env)
    if not key:
        raise ProviderError(f"API key not found in environment variable {settings.api_key_env}")
    return key


class BaseProvider(ABC):
    """
    One chat-style LLM backend.

    complete() sends a system and a user message and returns the raw text
    of the first choice; parsing is the caller's job.
    """

    retryable: tuple[type[BaseException], ...] = ()

    def __init__(self, settings: ModelSettings, retries: int = 3, backoff: float = 1.0) -> None:
        self.settings = settings
        self.retries = max(1, retries)
        self.backoff = backoff

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name for logging."""

    @abstractmethod
    def _complete_once(self, *, system: str, user: str) -> str:
        """Make a single request and return the response text."""

    def complete(self, *, system: str, user: str) -> str:
        """
        Send the prompt and return the raw response text.

        Retries transient SDK errors with exponential backoff.

        Raises:
            ProviderError: when every attempt failed.
        """
        logger.info(
            "Sending prompt to %s (%s): %d chars",
            self.provider_name,
            self.settings.model_id,
            len(system) + len(user),
        )
        text = self._with_retries(lambda: self._complete_once(system=system, user=user))
        logger.info("%s response received: %d chars", self.provider_name, len(text))
        return text

    def _with_retries(self, call: Callable[[], R]) -> R:
        last_err: Optional[BaseException] = None
        for attempt in range(self.retries):
            try:
                return call()
            except self.retryable as e:
                last_err = e
                logger.warning("%s attempt %d/%d failed: %s", self.provider_name, attempt + 1, self.retries, e)
                if attempt < self.retries - 1:
                    time.sleep(self.backoff * (2 ** attempt))
        raise ProviderError(f"{self.provider_name} failed after {self.retries} attempts: {last_err}")


def create_provider(settings: ModelSettings, config: Optional[Config] = None) -> BaseProvider:
    """Instantiate the transport named by settings.provider."""
    retries = config.retries if config is not None else 3
    timeout = config.timeout if config is not None else 120.0
    if settings.provider == "openai":
        from auditai.providers.openai_provider import OpenAIProvider

        return OpenAIProvider(settings, retries=retries, timeout=timeout)
    if settings.provider == "anthropic":
        from auditai.providers.anthropic_provider import AnthropicProvider

        return AnthropicProvider(settings, retries=retries, timeout=timeout)
    if settings.provider == "huggingface":
        from auditai.providers.huggingface_provider import HuggingFaceProvider

        return HuggingFaceProvider(settings, retries=retries, timeout=timeout)
    raise ValueError(f"Unknown provider: {settings.provider}")
