"""Path classification: test files, unsupported files and exclusions."""

from __future__ import annotations

import fnmatch
import re
from pathlib import PurePosixPath

from diffuse.config import ResolvedConfig
from diffuse.constants import SUPPORTED_EXTENSIONS

_TEST_DIR_RE = re.compile(r"(^|/)(test|tests|__tests__|__mocks__)(/|$)")
_TEST_NAME_RE = re.compile(r"\.(test|spec)\.(t|j)sx?$")


def normalize_path(path: str) -> str:
    """Repo-relative path with forward slashes and no leading './'."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class FileFilter:
    """Decides which repo-relative paths take part in an analysis.

    Paths must be relative to the repository root, otherwise directories
    above the repo (e.g. a checkout living under ``/tmp/tests``) would be
    mistaken for test directories.
    """

    def __init__(
        self,
        exclude_files: list[str] | None = None,
        exclude_directories: list[str] | None = None,
        test_patterns: list[str] | None = None,
        extensions: tuple[str, ...] = SUPPORTED_EXTENSIONS,
    ) -> None:
        self.exclude_files = list(exclude_files or [])
        self.exclude_directories = list(
            exclude_directories
            if exclude_directories is not None
            else ["node_modules", "dist", "build", ".git"]
        )
        self.test_patterns = list(test_patterns or [])
        self.extensions = extensions

    @classmethod
    def from_config(cls, config: ResolvedConfig) -> FileFilter:
        return cls(
            exclude_files=config.exclusions.files,
            exclude_directories=config.exclusions.directories,
            test_patterns=config.exclusions.test_patterns,
        )

    def is_test_file(self, path: str) -> bool:
        normalized = normalize_path(path)
        if _TEST_DIR_RE.search(normalized) or _TEST_NAME_RE.search(normalized):
            return True
        name = PurePosixPath(normalized).name
        return any(
            fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(name, pattern)
            for pattern in self.test_patterns
        )

    def has_supported_extension(self, path: str) -> bool:
        return PurePosixPath(normalize_path(path)).suffix.lower() in self.extensions

    def is_excluded_directory(self, path: str) -> bool:
        """True if `path` is, or lives under, an excluded directory."""
        normalized = normalize_path(path).rstrip("/")
        parts = PurePosixPath(normalized).parts
        for pattern in self.exclude_directories:
            pattern = pattern.rstrip("/")
            if any(fnmatch.fnmatch(part, pattern) for part in parts):
                return True
            if fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(normalized, f"{pattern}/*"):
                return True
        return False

    def is_excluded(self, path: str) -> bool:
        normalized = normalize_path(path)
        parent = str(PurePosixPath(normalized).parent)
        if parent != "." and self.is_excluded_directory(parent):
            return True
        name = PurePosixPath(normalized).name
        return any(
            fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(name, pattern)
            for pattern in self.exclude_files
        )

    def exclusion_reason(self, path: str) -> str | None:
        """Why `path` is left out of source analysis, or None if it is in scope.

        Returns one of ``"test"``, ``"unsupported"`` or ``"excluded"``.
        """
        if self.is_test_file(path):
            return "test"
        if not self.has_supported_extension(path):
            return "unsupported"
        if self.is_excluded(path):
            return "excluded"
        return None

    def should_include(self, path: str) -> bool:
        return self.exclusion_reason(path) is None
