# Rich console output: findings tables, annotated source view, and model comparison.

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from auditai.context import FileContext
from auditai.findings.models import AnalysisResult, Finding, ModelRunResult, Severity
from auditai.findings.summary import count_by_severity
from auditai.highlight import build_line_index, compute_highlight, severity_color

# Severity badge class -> Rich style
BADGE_RICH_STYLE = {
    "severity-high": "bold red",
    "severity-medium": "bold yellow",
    "severity-low": "bold dim",
}

# Highlight class -> Rich style for the underlined segment
UNDERLINE_RICH_STYLE = {
    "underline-high": "underline bold red",
    "underline-medium": "underline yellow",
    "underline-low": "underline cyan",
}

DEFAULT_SEVERITY_STYLE = "bold white"


def severity_style(severity: Severity) -> str:
    """Rich style for a severity badge; Critical shares the High badge."""
    return BADGE_RICH_STYLE.get(severity_color(severity), DEFAULT_SEVERITY_STYLE)


def _format_lines(lines: Sequence[int]) -> str:
    return ", ".join(str(n) for n in lines) if lines else "-"


def _findings_table(findings: Sequence[Finding]) -> Table:
    table = Table(
        show_header=True,
        header_style="bold magenta",
        box=box.SIMPLE,
        padding=(0, 1),
        expand=False,
    )
    table.add_column("Lines", justify="right", style="dim", width=9)
    table.add_column("Severity", width=10)
    table.add_column("Finding", width=26)
    table.add_column("Conf.", justify="right", width=5)
    table.add_column("Explanation", style="white")

    ordered = sorted(findings, key=lambda f: (f.evidence.lines[0] if f.evidence.lines else 0))
    for f in ordered:
        tag = f.id + (f" ({f.cwe})" if f.cwe else "")
        table.add_row(
            _format_lines(f.evidence.lines),
            Text(f.severity.value.upper(), style=severity_style(f.severity)),
            Text(tag, style="dim"),
            f"{f.confidence * 100:.0f}%",
            Text(f.explanation),
        )
    return table


def render_annotated_line(line_text: str, findings: Sequence[Finding], line_number: int) -> Text:
    """Render one source line with the first applicable finding's segment underlined."""
    text = Text()
    if not findings:
        text.append(line_text)
        return text
    parts = compute_highlight(line_text, findings[0], line_number)
    text.append(parts.before)
    if parts.match is not None:
        text.append(parts.match, style=UNDERLINE_RICH_STYLE.get(parts.style or "", ""))
    text.append(parts.after)
    return text


def print_annotated_source(
    ctx: FileContext,
    findings: Sequence[Finding],
    console: Optional[Console] = None,
) -> None:
    """Print the whole file with a gutter, underlining each finding's evidence and tagging it."""
    console = console or Console()
    index = build_line_index(findings, ctx.content)
    width = len(str(max(ctx.line_count, 1)))

    for number, line_text in enumerate(ctx.lines, start=1):
        hits = index.get(number, [])
        gutter = Text(f"{number:>{width}} ", style="red" if hits else "dim")
        gutter.append("| ", style="dim")
        console.print(gutter + render_annotated_line(line_text, hits, number), soft_wrap=True)
        for f in hits:
            if f.evidence.lines and f.evidence.lines[0] != number:
                continue
            marker = Text(" " * (width + 1) + "  ^ ", style="dim")
            marker.append(f"[{f.id}] {f.severity.value}", style=severity_style(f.severity))
            console.print(marker)


def print_findings(
    ctx: FileContext,
    result: AnalysisResult,
    model: str,
    console: Optional[Console] = None,
    show_code: bool = False,
    verbose: bool = False,
) -> None:
    """
    Print one model's findings for one file.

    Shows a findings table coloured by severity, optionally the annotated
    source, and (verbose) fix notes and patch suggestions.
    """
    console = console or Console()
    console.print()
    console.print(Panel(
        f"[bold cyan]{escape(ctx.path)}[/bold cyan]  [dim]({escape(model)})[/dim]",
        box=box.SIMPLE_HEAD,
        border_style="blue",
        padding=(0, 1),
    ))

    if not result.findings:
        console.print(Panel(
            "[green]No findings reported by the model.[/green]",
            border_style="green",
            box=box.ROUNDED,
        ))
        return

    console.print(_findings_table(result.findings))

    if verbose:
        for f in result.findings:
            if f.fix.notes:
                note = f"[{f.id}] {f.fix.notes}"
                console.print(f"  [dim][Fix][/dim] {escape(note)}")
            for p in f.fix.patch:
                change = p.replace_with or p.insert_before
                if change:
                    where = f"line {p.line}: " if p.line is not None else ""
                    console.print(f"  [dim][Patch][/dim] {escape(where + change)}")
        console.print()

    if show_code:
        print_annotated_source(ctx, result.findings, console)

    print_summary(result.findings, console)


def print_summary(findings: Sequence[Finding], console: Optional[Console] = None) -> None:
    """Print a compact summary of findings. Critical is reported under high."""
    console = console or Console()
    counts = count_by_severity(findings)
    total = counts.total
    summary_parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for label, value, style in (
        ("high", counts.high, "bold red"),
        ("medium", counts.medium, "bold yellow"),
        ("low", counts.low, "bold dim"),
    ):
        if value:
            summary_parts.append(f"[{style}]{value} {label}[/]")

    console.print()
    console.print(
        Panel(
            " | ".join(summary_parts),
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )


def print_comparison(
    path: str,
    runs: Mapping[str, ModelRunResult],
    console: Optional[Console] = None,
) -> None:
    """Side-by-side table of how each model fared on the same file."""
    console = console or Console()
    table = Table(
        title=f"Model comparison: {escape(path)}",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("Model", style="white")
    table.add_column("Status", width=8)
    table.add_column("Total", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Medium", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Finding ids / error")

    for name, run in runs.items():
        if run.ok:
            c = run.summary.counts
            ids = ", ".join(sorted({f.id for f in run.findings})) or "-"
            table.add_row(Text(name), Text("OK", style="bold green"), str(c.total), str(c.high), str(c.medium), str(c.low), Text(ids))
        else:
            table.add_row(Text(name), Text("ERROR", style="bold red"), "-", "-", "-", "-", Text(run.error, style="red"))

    console.print()
    console.print(table)
