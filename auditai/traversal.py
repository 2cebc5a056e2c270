"""
File system traversal: map file names to language tags and collect auditable sources.

The language tag chosen here is what the allowed-findings registry filters
on, so it has to agree with the `languages` lists in allowed_findings.json.

Typical usage:
    from pathlib import Path
    from auditai.traversal import find_source_files, guess_language

    guess_language("server.ts")   # "ts"

    # Every supported source file under a project
    sources = find_source_files(Path("./my_project"))

    # Only Python files, custom ignore set
    sources = find_source_files(
        Path("./my_project"),
        languages={"py"},
        ignore_dirs={"build", "vendor"},
    )
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)

# File suffix -> registry language tag
LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".ts": "ts",
    ".tsx": "ts",
    ".js": "js",
    ".jsx": "js",
    ".py": "py",
    ".java": "java",
}

UNKNOWN_LANGUAGE = "unknown"

# Default directories to ignore during traversal
DEFAULT_IGNORE_DIRS: Set[str] = {
    # Build output
    "build",
    "dist",
    "out",
    ".next",
    "target",

    # Dependencies
    "node_modules",
    "vendor",
    "third_party",

    # Version control
    ".git",
    ".svn",
    ".hg",

    # IDE and editor directories
    ".vscode",
    ".idea",

    # Python environments and caches
    "venv",
    ".venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
}


def guess_language(name: str) -> str:
    """
    Return the registry language tag for a file name.

    Args:
        name: File name or path; only the suffix is inspected.

    Returns:
        One of "ts", "js", "py", "java", or "unknown".

    Examples:
        >>> guess_language("app/page.tsx")
        'ts'
        >>> guess_language("Main.JAVA")
        'java'
        >>> guess_language("README.md")
        'unknown'
    """
    return LANGUAGE_BY_SUFFIX.get(Path(name).suffix.lower(), UNKNOWN_LANGUAGE)


def is_source_file(path: Path, languages: Optional[Set[str]] = None) -> bool:
    """
    Check if a file is an auditable source file.

    Args:
        path: Path to the file to check.
        languages: If given, only accept files whose language tag is in this set.

    Examples:
        >>> is_source_file(Path("index.js"))
        True
        >>> is_source_file(Path("index.js"), languages={"py"})
        False
    """
    lang = guess_language(path.name)
    if lang == UNKNOWN_LANGUAGE:
        return False
    return languages is None or lang in languages


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """Check the directory name (not the full path) against the ignore set."""
    return dir_path.name in ignore_dirs


def find_source_files(
    root: Path,
    languages: Optional[Set[str]] = None,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
    filter_fn: Optional[Callable[[Path], bool]] = None,
) -> list[Path]:
    """
    Recursively find all auditable source files in a directory tree.

    Args:
        root: Root directory to start traversal from.
        languages: Optional set of language tags to keep (default: all supported).
        ignore_dirs: Directory names to skip. If None, uses DEFAULT_IGNORE_DIRS.
        follow_symlinks: If False (default), symlinks are skipped.
        filter_fn: Optional extra predicate; only files for which it returns
                   True are collected.

    Returns:
        Sorted list of matching file paths.

    Raises:
        FileNotFoundError: If root does not exist.
        NotADirectoryError: If root is not a directory.

    Notes:
        Permission errors on subdirectories are logged but do not stop traversal.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS

    root = root.resolve()

    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")

    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)

    collected: list[Path] = []

    def _walk(current: Path) -> None:
        try:
            for entry in current.iterdir():
                if entry.is_symlink() and not follow_symlinks:
                    logger.debug("Skipping symlink: %s", entry)
                    continue

                if entry.is_dir():
                    if should_ignore_directory(entry, ignore_dirs):
                        logger.debug("Ignoring directory: %s", entry)
                        continue
                    _walk(entry)
                elif entry.is_file() and is_source_file(entry, languages):
                    if filter_fn is not None and not filter_fn(entry):
                        continue
                    collected.append(entry)
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current, e)

    _walk(root)
    collected.sort()

    logger.info("Traversal complete: found %d source file(s) in %s", len(collected), root)
    return collected
