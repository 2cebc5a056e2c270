"""
Anthropic Claude provider implementation.
"""

from __future__ import annotations

from typing import Optional

import anthropic
from anthropic import Anthropic

from auditai.config import ModelSettings
from auditai.providers.base import BaseProvider, resolve_api_key

DEFAULT_MAX_TOKENS = 4000


class AnthropicProvider(BaseProvider):
    retryable = (
        anthropic.APIConnectionError,
        anthropic.APITimeoutError,
        anthropic.RateLimitError,
        anthropic.InternalServerError,
    )

    def __init__(
        self,
        settings: ModelSettings,
        retries: int = 3,
        timeout: float = 120.0,
        api_key: Optional[str] = None,
    ) -> None:
        super().__init__(settings, retries=retries)
        self.client = Anthropic(api_key=resolve_api_key(settings, api_key), timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "Claude"

    def _complete_once(self, *, system: str, user: str) -> str:
        response = self.client.messages.create(
            model=self.settings.model_id,
            max_tokens=self.settings.max_tokens or DEFAULT_MAX_TOKENS,
            system=system,
            messages=[{"role": "user", "content": user}],
            temperature=self.settings.temperature,
        )
        # Only a leading text block carries the answer
        if response.content and response.content[0].type == "text":
            return response.content[0].text
        return ""
