"""OpenAI provider implementation (Chat Completions with JSON response format)."""
from __future__ import annotations

from typing import Optional

import openai
from openai import OpenAI

from auditai.config import ModelSettings
from auditai.providers.base import BaseProvider, resolve_api_key


class OpenAIProvider(BaseProvider):
    retryable = (openai.APIConnectionError, openai.APITimeoutError, openai.RateLimitError, openai.InternalServerError)

    def __init__(
        self,
        settings: ModelSettings,
        retries: int = 3,
        timeout: float = 120.0,
        api_key: Optional[str] = None,
    ) -> None:
        super().__init__(settings, retries=retries)
        self.client = OpenAI(api_key=resolve_api_key(settings, api_key), timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    def _complete_once(self, *, system: str, user: str) -> str:
        kwargs = {}
        if self.settings.max_tokens is not None:
            kwargs["max_tokens"] = self.settings.max_tokens
        completion = self.client.chat.completions.create(
            model=self.settings.model_id,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=self.settings.temperature,
            **kwargs,
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
