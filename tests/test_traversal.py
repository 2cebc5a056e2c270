"""Tests for file system traversal functionality."""

import logging
from pathlib import Path

import pytest

from auditai.traversal import (
    DEFAULT_IGNORE_DIRS,
    find_source_files,
    guess_language,
    is_source_file,
    should_ignore_directory,
)


class TestFileTypeChecks:
    """Test language detection and source file checks."""

    def test_guess_language_by_suffix(self):
        """guess_language() maps suffixes to registry language tags."""
        assert guess_language("server.ts") == "ts"
        assert guess_language("page.tsx") == "ts"
        assert guess_language("index.js") == "js"
        assert guess_language("view.jsx") == "js"
        assert guess_language("app.py") == "py"
        assert guess_language("Main.java") == "java"

    def test_guess_language_case_insensitive(self):
        """guess_language() works with uppercase extensions."""
        assert guess_language("APP.PY") == "py"
        assert guess_language("Main.JAVA") == "java"

    def test_guess_language_unknown(self):
        """Unsupported files are tagged unknown."""
        assert guess_language("README.md") == "unknown"
        assert guess_language("Makefile") == "unknown"
        assert guess_language("main.c") == "unknown"

    def test_is_source_file(self):
        """is_source_file() accepts supported languages only."""
        assert is_source_file(Path("src/app.ts"))
        assert not is_source_file(Path("notes.txt"))

    def test_is_source_file_language_filter(self):
        """is_source_file() honours the languages filter."""
        assert is_source_file(Path("app.py"), languages={"py"})
        assert not is_source_file(Path("app.ts"), languages={"py"})


class TestDirectoryFiltering:
    """Test directory ignore logic."""

    def test_should_ignore_directory_recognizes_ignored_dirs(self):
        """should_ignore_directory() returns True for directories in ignore set."""
        ignore_set = {"build", "node_modules"}
        assert should_ignore_directory(Path("build"), ignore_set)
        assert should_ignore_directory(Path("a/node_modules"), ignore_set)
        assert not should_ignore_directory(Path("src"), ignore_set)

    def test_should_ignore_directory_case_sensitive(self):
        """should_ignore_directory() is case-sensitive."""
        assert not should_ignore_directory(Path("Build"), {"build"})

    def test_default_ignore_dirs_includes_common_patterns(self):
        """DEFAULT_IGNORE_DIRS contains expected patterns."""
        assert "node_modules" in DEFAULT_IGNORE_DIRS
        assert ".git" in DEFAULT_IGNORE_DIRS
        assert "dist" in DEFAULT_IGNORE_DIRS
        assert "__pycache__" in DEFAULT_IGNORE_DIRS


class TestTraversal:
    """Test file traversal functions."""

    @pytest.fixture
    def temp_project(self, tmp_path):
        """Create a small mixed-language project."""
        # tmp_path/
        #   src/app.ts, src/util.js, src/README.md
        #   api/handler.py
        #   node_modules/lib/index.js (ignored)
        #   dist/bundle.js (ignored)
        (tmp_path / "src").mkdir()
        (tmp_path / "api").mkdir()
        (tmp_path / "node_modules" / "lib").mkdir(parents=True)
        (tmp_path / "dist").mkdir()

        (tmp_path / "src" / "app.ts").write_text("export const a = 1;")
        (tmp_path / "src" / "util.js").write_text("module.exports = {};")
        (tmp_path / "src" / "README.md").write_text("# docs")
        (tmp_path / "api" / "handler.py").write_text("def handle(): pass")
        (tmp_path / "node_modules" / "lib" / "index.js").write_text("// dep")
        (tmp_path / "dist" / "bundle.js").write_text("// build artifact")
        return tmp_path

    def test_find_source_files_collects_supported_files(self, temp_project):
        """find_source_files() skips ignored directories and unsupported files."""
        names = {f.name for f in find_source_files(temp_project)}
        assert names == {"app.ts", "util.js", "handler.py"}

    def test_find_source_files_language_filter(self, temp_project):
        """find_source_files() keeps only requested languages."""
        files = find_source_files(temp_project, languages={"py"})
        assert [f.name for f in files] == ["handler.py"]

    def test_find_source_files_custom_ignore_dirs(self, temp_project):
        """find_source_files() respects custom ignore_dirs."""
        names = {f.name for f in find_source_files(temp_project, ignore_dirs={"dist"})}
        assert "index.js" in names
        assert "bundle.js" not in names

    def test_find_source_files_with_filter_function(self, temp_project):
        """find_source_files() applies custom filter_fn."""
        files = find_source_files(temp_project, filter_fn=lambda p: p.suffix == ".ts")
        assert [f.name for f in files] == ["app.ts"]

    def test_find_source_files_returns_sorted_results(self, temp_project):
        """find_source_files() returns files in sorted order."""
        files = find_source_files(temp_project)
        assert files == sorted(files)

    def test_find_source_files_empty_directory(self, tmp_path):
        """find_source_files() returns an empty list when nothing is auditable."""
        (tmp_path / "README.txt").write_text("nothing here")
        assert find_source_files(tmp_path) == []

    def test_find_source_files_nonexistent_directory(self):
        """find_source_files() raises FileNotFoundError for nonexistent directory."""
        with pytest.raises(FileNotFoundError):
            find_source_files(Path("/nonexistent/directory"))

    def test_find_source_files_on_file_not_directory(self, tmp_path):
        """find_source_files() raises NotADirectoryError when given a file."""
        file_path = tmp_path / "app.ts"
        file_path.write_text("export {};")
        with pytest.raises(NotADirectoryError):
            find_source_files(file_path)

    def test_find_source_files_logs_progress(self, temp_project, caplog):
        """find_source_files() logs traversal progress."""
        with caplog.at_level(logging.INFO):
            find_source_files(temp_project)
        assert "Starting traversal" in caplog.text
        assert "Traversal complete" in caplog.text


def test_nested_directories(tmp_path):
    """Traversal works with deeply nested directories."""
    nested = tmp_path / "a" / "b" / "c"
    nested.mkdir(parents=True)
    (nested / "deep.java").write_text("class Deep {}")
    files = find_source_files(tmp_path)
    assert [f.name for f in files] == ["deep.java"]
