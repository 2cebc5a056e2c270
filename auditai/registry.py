"""
Allowed-findings registry: the catalogue of finding ids a model may report.

The registry is a static JSON file validated with pydantic and loaded once
per process per path (memoised). select_findings() narrows it to what is
relevant for one file before it goes into a prompt.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from auditai.findings.models import Severity

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent / "data" / "allowed_findings.json"

ANY_LANGUAGE = "*"


class RegistryError(RuntimeError):
    """The registry file is missing, unreadable or malformed."""


class FindingItem(BaseModel):
    id: str
    title: str
    cwe: Optional[str] = None
    owasp: Optional[str] = None
    severity: Severity
    languages: list[str]
    description: str
    hints: Optional[list[str]] = None


class FindingRegistry(BaseModel):
    version: str
    items: list[FindingItem] = Field(default_factory=list)


@lru_cache(maxsize=None)
def _load(path: Path) -> FindingRegistry:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Failed to read registry %s: %s", path, e)
        raise RegistryError(f"Cannot read finding registry: {path}") from e
    try:
        registry = FindingRegistry.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Invalid registry %s: %s", path, e)
        raise RegistryError(f"Invalid finding registry: {path}") from e
    logger.info("Loaded finding registry %s (version %s, %d item(s))", path, registry.version, len(registry.items))
    return registry


def load_registry(path: Optional[Path] = None) -> FindingRegistry:
    """Load and validate the registry at path (default: the packaged one). Cached per path."""
    return _load((path or DEFAULT_REGISTRY_PATH).resolve())


def clear_registry_cache() -> None:
    _load.cache_clear()


def select_findings(
    registry: FindingRegistry,
    language: str,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
    max_items: Optional[int] = None,
) -> list[FindingItem]:
    """
    Return the registry items that apply to language, in registry order.

    Args:
        registry: Loaded registry.
        language: Language tag (e.g. "ts", "py"); items listing "*" always apply.
        include: If non-empty, keep only these ids.
        exclude: If non-empty, drop these ids.
        max_items: Cap on the number of items, to bound prompt size.
    """
    items = [i for i in registry.items if ANY_LANGUAGE in i.languages or language in i.languages]
    if include:
        items = [i for i in items if i.id in include]
    if exclude:
        items = [i for i in items if i.id not in exclude]
    if max_items is not None:
        items = items[:max_items]
    return items
