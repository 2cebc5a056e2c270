from __future__ import annotations

"""
Typer CLI entry point and orchestration of the audit pipeline.

Commands:
- analyze:  send a file (or every supported file under a directory) to one
            model or all of them, re-anchor the findings, and display them
- reanchor: offline; take a saved raw model response and re-anchor it
            against the source file, no network involved
- evaluate: score a model against labelled fixtures (precision/recall/F1)
- registry: list the allowed findings for a language
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from auditai.analyzers import AnalysisError, analyze_file, realign, run_comparison
from auditai.coercion.base import CoercionError
from auditai.config import ALL_MODELS, MODEL_NAMES, get_coercer, get_default_config, resolve_model_name
from auditai.context import FileContext, create_context, load_contexts
from auditai.evaluation import evaluate_fixtures, load_fixtures
from auditai.parser import ModelOutputError, parse_model_output
from auditai.registry import RegistryError, load_registry, select_findings
from auditai.reporting.console import print_comparison, print_findings
from auditai.reporting.export import EXPORT_FORMATS, export_report
from auditai.traversal import UNKNOWN_LANGUAGE, find_source_files, guess_language

logger = logging.getLogger(__name__)

app = typer.Typer(help="AuditAI - LLM-assisted security review with line-accurate findings.")
console = Console()


@app.callback()
def _setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _model_option_names(model: str) -> List[str]:
    if model.strip().lower() == ALL_MODELS.lower():
        return list(MODEL_NAMES)
    try:
        return [resolve_model_name(model)]
    except KeyError as e:
        raise typer.BadParameter(str(e.args[0])) from e


def _collect_source_files(target: Path) -> List[Path]:
    """
    Resolve a target path into a list of files to audit.

    - A supported source file: [target]
    - A directory: every supported file under it (traversal.find_source_files)
    - Otherwise, exit with an error.
    """
    if target.is_file():
        if guess_language(target.name) == UNKNOWN_LANGUAGE:
            raise typer.BadParameter(f"Unsupported source file type: {target}")
        return [target]

    if target.is_dir():
        files = find_source_files(target)
        if not files:
            logger.warning("No supported source files found under %s", target)
        return files

    raise typer.BadParameter(f"Target path is neither a file nor a directory: {target}")


def _export(ctx: FileContext, result, model: str, fmt: Optional[str], out: Path) -> None:
    if fmt is None:
        return
    path = export_report(result, model, out, fmt=fmt, file_name=ctx.path, file_content=ctx.content)
    console.print(f"[dim]Report written to[/dim] {escape(str(path))}")


@app.command()
def analyze(
    target: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Source file or directory to audit.",
    ),
    model: str = typer.Option("OpenAI", "--model", "-m", help="OpenAI, Claude, CodeBert or All."),
    show_code: bool = typer.Option(True, "--show-code/--no-show-code", help="Print the annotated source."),
    details: bool = typer.Option(False, "--details", help="Show fix notes and patch suggestions."),
    export: Optional[str] = typer.Option(None, "--export", help=f"Export format: {', '.join(EXPORT_FORMATS)}."),
    out: Path = typer.Option(Path("reports"), "--out", help="Directory for exported reports."),
) -> None:
    """Audit a file or directory with one model, or compare all models."""
    if export is not None and export not in EXPORT_FORMATS:
        raise typer.BadParameter(f"Unknown export format: {export}")
    models = _model_option_names(model)
    config = get_default_config()
    paths = _collect_source_files(target)
    contexts = load_contexts(paths)
    # Unreadable files were skipped; errors already logged in create_context
    failed = len(contexts) < len(paths)

    for ctx in contexts:
        audit = ctx.to_audit_file()

        if len(models) > 1:
            runs = run_comparison(audit, models=models, config=config)
            print_comparison(ctx.path, runs, console)
            for name, run in runs.items():
                if run.ok:
                    print_findings(ctx, run, name, console, show_code=show_code, verbose=details)
                    _export(ctx, run, name, export, out)
                else:
                    failed = True
            continue

        try:
            result = analyze_file(audit, model=models[0], config=config)
        except AnalysisError as e:
            console.print(f"[bold red]{models[0]} failed on {escape(ctx.path)}:[/bold red] {escape(e.message)}")
            failed = True
            continue
        print_findings(ctx, result, models[0], console, show_code=show_code, verbose=details)
        _export(ctx, result, models[0], export, out)

    if failed:
        raise typer.Exit(code=1)


@app.command()
def reanchor(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="The audited source file."),
    response: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Saved raw model output."),
    model: str = typer.Option("OpenAI", "--model", "-m", help="Which vendor shape the response has."),
    show_code: bool = typer.Option(True, "--show-code/--no-show-code", help="Print the annotated source."),
    export: Optional[str] = typer.Option(None, "--export", help=f"Export format: {', '.join(EXPORT_FORMATS)}."),
    out: Path = typer.Option(Path("reports"), "--out", help="Directory for exported reports."),
) -> None:
    """Re-anchor a saved model response against its source file (no network)."""
    name = _model_option_names(model)[0]
    ctx = create_context(source)
    if ctx is None:
        raise typer.Exit(code=1)
    raw = response.read_text(encoding="utf-8", errors="replace")

    try:
        validated = get_coercer(name).run(parse_model_output(raw), ctx.path)
    except (ModelOutputError, CoercionError) as e:
        console.print(f"[bold red]Cannot use response:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)

    result = realign(ctx.to_audit_file(), validated)
    print_findings(ctx, result, name, console, show_code=show_code, verbose=True)
    _export(ctx, result, name, export, out)


@app.command()
def evaluate(
    fixtures: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Fixtures JSON file."),
    model: str = typer.Option("OpenAI", "--model", "-m", help="Model to evaluate."),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", help="Root for fixture file paths (default: cwd)."),
) -> None:
    """Score a model against labelled fixtures."""
    name = _model_option_names(model)[0]
    try:
        report = evaluate_fixtures(load_fixtures(fixtures), base_dir or Path.cwd(), model=name)
    except AnalysisError as e:
        console.print(f"[bold red]Evaluation aborted:[/bold red] {escape(e.message)}")
        raise typer.Exit(code=1)

    table = Table(title=f"{name} evaluation", header_style="bold cyan")
    table.add_column("Fixture")
    table.add_column("TP", justify="right")
    table.add_column("FP", justify="right")
    table.add_column("FN", justify="right")
    table.add_column("Missing / extra")
    for r in report.results:
        notes = [f"missing {m.id} ({', '.join(map(str, m.lines or [])) or 'n/a'})" for m in r.score.missing]
        notes += [f"extra {x.id} [{', '.join(map(str, x.evidence.lines))}]" for x in r.score.extras]
        table.add_row(r.fixture.id, str(r.score.tp), str(r.score.fp), str(r.score.fn), "\n".join(notes))
    console.print(table)
    console.print(
        f"TP: {report.tp} | FP: {report.fp} | FN: {report.fn}  "
        f"Precision: {report.precision * 100:.1f}%  Recall: {report.recall * 100:.1f}%  F1: {report.f1 * 100:.1f}%"
    )


@app.command()
def registry(
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Only items for this language tag."),
) -> None:
    """List the allowed findings."""
    config = get_default_config()
    try:
        reg = load_registry(config.registry_path)
    except RegistryError as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        raise typer.Exit(code=1)
    items = select_findings(reg, language) if language else reg.items

    table = Table(title=f"Allowed findings (registry {reg.version})", header_style="bold magenta")
    table.add_column("Id")
    table.add_column("Severity")
    table.add_column("CWE")
    table.add_column("Languages")
    table.add_column("Title")
    for item in items:
        table.add_row(item.id, item.severity.value, item.cwe or "-", ", ".join(item.languages), item.title)
    console.print(table)


def main() -> None:
    """Entry point for `python -m auditai.main` and the `auditai` script."""
    app()


if __name__ == "__main__":
    main()
