"""Hugging Face Inference provider (chat completion on a hosted instruct model)."""
from __future__ import annotations

from typing import Optional

from huggingface_hub import InferenceClient
from huggingface_hub.errors import HfHubHTTPError, InferenceTimeoutError

from auditai.config import ModelSettings
from auditai.providers.base import BaseProvider, resolve_api_key

DEFAULT_MAX_TOKENS = 800


class HuggingFaceProvider(BaseProvider):
    retryable = (HfHubHTTPError, InferenceTimeoutError)

    def __init__(
        self,
        settings: ModelSettings,
        retries: int = 3,
        timeout: float = 120.0,
        api_key: Optional[str] = None,
    ) -> None:
        super().__init__(settings, retries=retries)
        self.client = InferenceClient(token=resolve_api_key(settings, api_key), timeout=timeout)

    @property
    def provider_name(self) -> str:
        return "CodeBert"

    def _complete_once(self, *, system: str, user: str) -> str:
        completion = self.client.chat_completion(
            model=self.settings.model_id,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            max_tokens=self.settings.max_tokens or DEFAULT_MAX_TOKENS,
            temperature=self.settings.temperature,
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""
