from __future__ import annotations

"""
Auditor configuration: registry location, per-model settings, and coercer lookup.

Defaults mirror what each backend was tuned with (catalogue size, token
budget, content truncation). Environment variables can override the
registry path and the provider model ids; everything else is code.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from auditai.coercion.base import Coercer
from auditai.coercion.claude import ClaudeCoercer
from auditai.coercion.codebert import CodeBertCoercer
from auditai.coercion.gpt import GPTCoercer
from auditai.registry import DEFAULT_REGISTRY_PATH

MODEL_NAMES = ("OpenAI", "Claude", "CodeBert")
ALL_MODELS = "All"

REGISTRY_ENV = "AUDITAI_REGISTRY"


@dataclass
class ModelSettings:
    """
    How to talk to one backend.

    provider selects the transport ("openai", "anthropic", "huggingface");
    max_allowed caps the catalogue items put in the prompt;
    max_content_chars truncates the file for small-context models.
    """

    provider: str
    model_id: str
    api_key_env: str
    max_allowed: int = 12
    temperature: float = 0.1
    max_tokens: Optional[int] = None
    max_content_chars: Optional[int] = None


def _default_models() -> Dict[str, ModelSettings]:
    return {
        "OpenAI": ModelSettings(
            provider="openai",
            model_id=os.environ.get("AUDITAI_OPENAI_MODEL", "gpt-4o-mini"),
            api_key_env="OPENAI_API_KEY",
        ),
        "Claude": ModelSettings(
            provider="anthropic",
            model_id=os.environ.get("AUDITAI_CLAUDE_MODEL", "claude-sonnet-4-5"),
            api_key_env="ANTHROPIC_API_KEY",
            max_tokens=4000,
        ),
        "CodeBert": ModelSettings(
            provider="huggingface",
            model_id=os.environ.get("AUDITAI_CODEBERT_MODEL", "meta-llama/Meta-Llama-3-8B-Instruct"),
            api_key_env="HUGGINGFACE_API_KEY",
            max_allowed=6,
            max_tokens=800,
            max_content_chars=5000,
        ),
    }


@dataclass
class Config:
    """Auditor configuration. Built by get_default_config(); tests construct it directly."""

    registry_path: Path = DEFAULT_REGISTRY_PATH
    models: Dict[str, ModelSettings] = field(default_factory=_default_models)
    retries: int = 3
    timeout: float = 120.0


def get_default_config() -> Config:
    """Default configuration, honouring AUDITAI_REGISTRY and the AUDITAI_*_MODEL overrides."""
    registry = os.environ.get(REGISTRY_ENV)
    return Config(registry_path=Path(registry) if registry else DEFAULT_REGISTRY_PATH)


def resolve_model_name(name: str) -> str:
    """Canonical spelling of a model label, case-insensitively ("claude" -> "Claude")."""
    for known in MODEL_NAMES:
        if known.lower() == name.strip().lower():
            return known
    raise KeyError(f"Unknown model {name!r}; expected one of {', '.join(MODEL_NAMES)}")


def get_model_settings(config: Config | None, name: str) -> ModelSettings:
    if config is None:
        config = get_default_config()
    return config.models[resolve_model_name(name)]


def get_coercer(name: str) -> Coercer:
    """Return the response coercer for a model label."""
    coercers: Dict[str, Coercer] = {
        "OpenAI": GPTCoercer(),
        "Claude": ClaudeCoercer(),
        "CodeBert": CodeBertCoercer(),
    }
    return coercers[resolve_model_name(name)]
