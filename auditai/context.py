# Per-file analysis context: store file path, language, and normalized source text.
# Handles reading uploaded files, line-ending normalization, and line lookups
# so the anchoring engine and the renderers agree on what "line N" means.

import logging
from pathlib import Path
from typing import Optional

from auditai.findings.models import AuditFile
from auditai.traversal import guess_language

logger = logging.getLogger(__name__)


def normalize_newlines(text: str) -> str:
    """Collapse \\r\\n and lone \\r into \\n."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    """
    Split text into display lines after newline normalization.

    An empty string has no lines. A trailing newline yields a final empty
    line, the same way an editor gutter counts it.
    """
    if not text:
        return []
    return normalize_newlines(text).split("\n")


class FileContext:
    """
    Per-file state for one analysis run: path, language, and source text.

    `content` is the raw text as received; `lines` is the normalized split
    used for every line-number computation.
    """

    def __init__(self, path: str, content: str, language: str = "unknown") -> None:
        self.path = path
        self.content = content
        self.language = language
        self.lines = split_lines(content)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def get_line(self, line_number: int) -> str:
        """Return the text of 1-based `line_number`, or "" when out of range."""
        if 1 <= line_number <= len(self.lines):
            return self.lines[line_number - 1]
        return ""

    def to_audit_file(self) -> AuditFile:
        return AuditFile(path=self.path, language=self.language, content=self.content)


def create_context(path: Path) -> Optional[FileContext]:
    """
    Read a source file into a FileContext.

    - Unreadable file (permission, missing): returns None and logs error.
    - Undecodable bytes are replaced rather than failing the whole file.
    - Success: returns FileContext and logs the line count and language.
    """
    try:
        content = path.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None

    ctx = FileContext(path=str(path), content=content, language=guess_language(path.name))
    logger.info("Loaded %s: %d line(s), language=%s", path, ctx.line_count, ctx.language)
    return ctx


def load_contexts(paths: list[Path]) -> list[FileContext]:
    """
    Read multiple source files into FileContexts.

    Unreadable or missing files are skipped (logged). Order matches input
    order; failed files are omitted.
    """
    contexts: list[FileContext] = []
    for path in paths:
        ctx = create_context(path)
        if ctx is not None:
            contexts.append(ctx)
    return contexts
