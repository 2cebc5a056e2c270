"""
Analysis pipeline: one file, one model, canonical re-anchored findings out.

    select allowed findings -> build prompt -> provider call -> parse JSON
    -> vendor coercion -> schema validation -> re-anchor lines -> summary

compare_models() runs the pipeline for several models concurrently and
reports each model's success or failure separately.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional, Sequence

from auditai.anchoring import reanchor_findings
from auditai.coercion.base import CoercionError
from auditai.config import MODEL_NAMES, Config, get_coercer, get_default_config, resolve_model_name
from auditai.findings.models import (
    AnalysisResult,
    AuditFile,
    ModelRunError,
    ModelRunResult,
    ModelRunSuccess,
    Summary,
)
from auditai.parser import ModelOutputError, parse_model_output
from auditai.prompts import build_prompt
from auditai.providers.base import BaseProvider, ProviderError, create_provider
from auditai.registry import RegistryError, load_registry, select_findings

logger = logging.getLogger(__name__)

# Models whose output is too unreliable to fail the run over; bad output means "no findings".
LENIENT_MODELS = {"CodeBert"}


class AnalysisError(Exception):
    """A pipeline failure with the HTTP-style status a caller would report."""

    def __init__(self, message: str, status: int = 500, issues: object = None, raw: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.issues = issues
        self.raw = raw


def _empty_result(file: AuditFile) -> AnalysisResult:
    return AnalysisResult(findings=[], summary=Summary(file=file.path or "unknown"))


def realign(file: AuditFile, result: AnalysisResult) -> AnalysisResult:
    """Re-anchor validated findings against the file and pin the summary to its path."""
    findings = reanchor_findings(file.content, result.findings)
    summary = result.summary.model_copy(update={"file": file.path or result.summary.file or "unknown"})
    return AnalysisResult(findings=findings, summary=summary)


def analyze_file(
    file: AuditFile,
    model: str = "OpenAI",
    config: Optional[Config] = None,
    provider: Optional[BaseProvider] = None,
) -> AnalysisResult:
    """
    Run one model over one file and return re-anchored findings.

    Args:
        file: The audited file (path, language tag, content).
        model: "OpenAI", "Claude" or "CodeBert" (case-insensitive).
        config: Configuration; defaults to get_default_config().
        provider: Transport to use instead of the configured one (tests
                  pass a fake here).

    Raises:
        AnalysisError: status 400 for bad input, 500 for local setup
            problems, 502 for provider failures and unusable model output.
    """
    if not isinstance(file.content, str):
        raise AnalysisError("Invalid file payload.", status=400)
    try:
        name = resolve_model_name(model)
    except KeyError as e:
        raise AnalysisError(str(e.args[0]), status=400) from e

    if config is None:
        config = get_default_config()
    settings = config.models[name]
    prefix = f"[{name}]"

    logger.info("%s Starting analysis for %s (language=%s, %d chars)", prefix, file.path, file.language, len(file.content))

    try:
        registry = load_registry(config.registry_path)
    except RegistryError as e:
        raise AnalysisError(str(e), status=500) from e
    allowed = select_findings(registry, file.language, max_items=settings.max_allowed)
    logger.info("%s Allowed findings loaded: %d", prefix, len(allowed))

    prompt = build_prompt(name, file, allowed, max_content_chars=settings.max_content_chars)

    try:
        if provider is None:
            provider = create_provider(settings, config)
        raw = provider.complete(system=prompt.system, user=prompt.user)
    except ProviderError as e:
        logger.error("%s Provider call failed: %s", prefix, e)
        raise AnalysisError(str(e), status=502) from e

    logger.debug("%s Raw model output (first 500 chars): %s", prefix, raw[:500])

    if not raw and name in LENIENT_MODELS:
        logger.warning("%s No generated text, returning empty findings.", prefix)
        return _empty_result(file)

    try:
        parsed = parse_model_output(raw)
    except ModelOutputError as e:
        if name in LENIENT_MODELS:
            logger.warning("%s Failed to parse JSON, returning empty findings.", prefix)
            return _empty_result(file)
        raise AnalysisError(str(e), status=502, raw=raw) from e

    try:
        validated = get_coercer(name).run(parsed, file.path)
    except CoercionError as e:
        raise AnalysisError(str(e), status=502, issues=e.issues, raw=raw) from e

    logger.info("%s Validation success, realigning %d finding(s) with source file", prefix, len(validated.findings))
    return realign(file, validated)


async def _run_model(
    name: str,
    file: AuditFile,
    config: Optional[Config],
    provider: Optional[BaseProvider],
) -> ModelRunResult:
    try:
        result = await asyncio.to_thread(analyze_file, file, name, config, provider)
    except AnalysisError as e:
        return ModelRunError(error=e.message)
    except Exception as exc:  # pragma: no cover
        logger.exception("[Compare:%s] analysis crashed: %s", name, exc)
        return ModelRunError(error=str(exc) or type(exc).__name__)
    return ModelRunSuccess(findings=result.findings, summary=result.summary)


async def compare_models(
    file: AuditFile,
    models: Sequence[str] = MODEL_NAMES,
    config: Optional[Config] = None,
    providers: Optional[Mapping[str, BaseProvider]] = None,
) -> dict[str, ModelRunResult]:
    """
    Analyse file with every model concurrently; wait for all of them.

    One model failing never fails the others: its entry is a ModelRunError.
    Results are keyed by canonical model name, in the order requested.
    """
    if config is None:
        config = get_default_config()
    providers = providers or {}
    names = [resolve_model_name(m) for m in models]
    results = await asyncio.gather(*(_run_model(n, file, config, providers.get(n)) for n in names))
    return dict(zip(names, results))


def run_comparison(
    file: AuditFile,
    models: Sequence[str] = MODEL_NAMES,
    config: Optional[Config] = None,
    providers: Optional[Mapping[str, BaseProvider]] = None,
) -> dict[str, ModelRunResult]:
    """Blocking wrapper around compare_models() for the CLI."""
    return asyncio.run(compare_models(file, models=models, config=config, providers=providers))
