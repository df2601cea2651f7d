"""Core parser orchestration and source file discovery."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path

from diffuse.exceptions import ParserError
from diffuse.filters import FileFilter
from diffuse.parser.models import ModuleSymbols, detect_language

logger = logging.getLogger("diffuse.parser")


def parse_module(file_path: str, source: str) -> ModuleSymbols:
    """Parse one version of a JS/TS file into its exports and imports.

    Raises:
        ParserError: if the extension is unsupported or its grammar is missing.
    """
    language = detect_language(file_path)
    if not language:
        raise ParserError(f"Unsupported file type: {file_path}")

    from diffuse.parser.tree_sitter_parser import is_available, parse_tree_sitter_file

    if not is_available(language):
        raise ParserError(f"No tree-sitter grammar installed for {language}")

    symbols = parse_tree_sitter_file(file_path, language, source)
    for error in symbols.errors:
        logger.debug(f"{file_path}: {error}")
    return symbols


def read_source(path: str | Path) -> str | None:
    """Read a file as UTF-8 text, or None if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return None


def collect_files(root: str | Path, file_filter: FileFilter | None = None) -> list[str]:
    """Collect repo-relative paths of every supported file under `root`.

    Excluded directories and .gitignore entries are pruned. Test files are
    kept; callers split them off with `FileFilter.is_test_file`.
    """
    root = Path(root).resolve()
    if file_filter is None:
        file_filter = FileFilter()

    gitignore_patterns = _read_gitignore(root)
    files = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)

        # Filter out excluded directories
        kept = []
        for d in dirnames:
            rel = Path(rel_dir, d).as_posix() if rel_dir != "." else d
            if file_filter.is_excluded_directory(rel) or _matches_gitignore(rel, gitignore_patterns):
                continue
            kept.append(d)
        dirnames[:] = kept

        for filename in filenames:
            rel_path = Path(rel_dir, filename).as_posix() if rel_dir != "." else filename
            if not file_filter.has_supported_extension(rel_path):
                continue
            if file_filter.is_excluded(rel_path) or _matches_gitignore(rel_path, gitignore_patterns):
                continue
            files.append(rel_path)

    return sorted(files)


def _matches_gitignore(path: str, patterns: list[str]) -> bool:
    """Check if a path matches any .gitignore pattern."""
    path_parts = Path(path).parts
    for pattern in patterns:
        anchored = pattern.startswith("/")
        pattern = pattern.lstrip("/")
        if fnmatch.fnmatch(path, pattern):
            return True
        if anchored:
            continue
        for part in path_parts:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def _read_gitignore(root: Path) -> list[str]:
    """Read .gitignore patterns from the project root."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []

    patterns = []
    try:
        for line in gitignore.read_text().splitlines():
            line = line.strip()
            # Negations are not supported
            if line and not line.startswith(("#", "!")):
                if line.endswith("/"):
                    line = line[:-1]
                patterns.append(line)
    except OSError:
        pass
    return patterns
