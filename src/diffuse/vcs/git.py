"""Git integration: changed files, line stats and file contents.

All calls are blocking `git` subprocesses run from the repository root.
Failures are logged and turned into empty results or failed FileContent
values; only `get_git_root` raises, which `diffuse analyze` uses to refuse
non-repositories.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Callable
from pathlib import Path

from diffuse.analysis.models import ChangeStatus, FileChange, FileContent, LineStats
from diffuse.exceptions import GitError

logger = logging.getLogger("diffuse.git")

GitRunner = Callable[[list[str]], "subprocess.CompletedProcess[str]"]

_STATUS_MAP = {
    "A": ChangeStatus.ADDED,
    "D": ChangeStatus.DELETED,
    "M": ChangeStatus.MODIFIED,
}

# `src/{old => new}/a.ts` or `old.ts => new.ts` in --numstat output
_BRACE_RENAME_RE = re.compile(r"\{([^{}]*) => ([^{}]*)\}")


def parse_name_status(output: str) -> list[tuple[str, list[str]]]:
    """Split `git diff --name-status` output into (status, paths) rows."""
    rows = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        rows.append((parts[0].strip(), parts[1:]))
    return rows


def numstat_path(raw: str) -> str:
    """Destination path of a --numstat entry, expanding rename notation."""
    if _BRACE_RENAME_RE.search(raw):
        path = _BRACE_RENAME_RE.sub(lambda m: m.group(2), raw)
        return re.sub(r"/{2,}", "/", path).lstrip("/")
    if " => " in raw:
        return raw.split(" => ", 1)[1]
    return raw


def parse_numstat(output: str) -> dict[str, tuple[int, int]]:
    """Parse `git diff --numstat` output into path -> (added, removed).

    Binary files report `-` counts and are recorded as 0/0.
    """
    stats: dict[str, tuple[int, int]] = {}
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        added, removed, raw = parts[0], parts[1], "\t".join(parts[2:])
        stats[numstat_path(raw)] = (
            int(added) if added.isdigit() else 0,
            int(removed) if removed.isdigit() else 0,
        )
    return stats


def _diff_range(base_ref: str | None) -> list[str]:
    return [f"{base_ref}...HEAD"] if base_ref else []


class GitService:
    """Thin wrapper over the git CLI for one repository."""

    def __init__(
        self,
        root: str | Path,
        runner: GitRunner | None = None,
        timeout: int = 30,
    ) -> None:
        self.root = Path(root)
        self.timeout = timeout
        self._runner = runner

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        if self._runner is not None:
            return self._runner(list(args))
        try:
            return subprocess.run(
                ["git", *args],
                cwd=str(self.root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            return subprocess.CompletedProcess(["git", *args], 1, "", str(e))

    def get_git_root(self) -> Path:
        """Top-level directory of the repository.

        Raises:
            GitError: if `root` is not inside a git repository.
        """
        result = self._git("rev-parse", "--show-toplevel")
        if result.returncode != 0:
            raise GitError("Not in a git repository", stderr=result.stderr)
        return Path(result.stdout.strip())

    def touched_files(self, base_ref: str | None = None) -> set[str]:
        """Paths that appear in the diff for the range."""
        result = self._git("diff", "--name-only", *_diff_range(base_ref))
        if result.returncode != 0:
            return set()
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def untracked_files(self) -> list[str]:
        result = self._git("ls-files", "--others", "--exclude-standard")
        if result.returncode != 0:
            logger.warning(f"Failed to list untracked files: {result.stderr.strip()}")
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def exists_in_ref(self, ref: str, path: str) -> bool:
        return self._git("cat-file", "-e", f"{ref}:{path}").returncode == 0

    def file_exists(self, path: str) -> bool:
        return (self.root / path).exists()

    def list_changes(self, base_ref: str | None = None) -> list[FileChange]:
        """Changed files with their status.

        With a base ref the range is ``base...HEAD``; without one it is the
        working tree. Untracked files are always included. Renames are
        kept only when real and introduced in the range. When a path shows
        up twice the later entry wins.
        """
        result = self._git("diff", "--name-status", *_diff_range(base_ref))
        if result.returncode != 0:
            logger.warning(f"Failed to get git diff: {result.stderr.strip()}")
            return []

        changes: list[FileChange] = []
        touched: set[str] | None = None

        for status, paths in parse_name_status(result.stdout):
            if status.startswith("R") and len(paths) >= 2:
                if touched is None:
                    touched = self.touched_files(base_ref)
                change = self._validate_rename(paths[0], paths[1], base_ref, touched)
                if change is not None:
                    changes.append(change)
            elif status in _STATUS_MAP and paths:
                changes.append(FileChange(path=paths[0], status=_STATUS_MAP[status]))
            else:
                logger.debug(f"Unknown status '{status}' for {paths}")

        changes.extend(
            FileChange(path=path, status=ChangeStatus.UNTRACKED) for path in self.untracked_files()
        )

        unique: dict[str, FileChange] = {}
        for change in changes:
            unique[change.path] = change
        return list(unique.values())

    def _validate_rename(
        self, renamed_from: str, renamed_to: str, base_ref: str | None, touched: set[str]
    ) -> FileChange | None:
        ref = base_ref or "HEAD"
        if not self.exists_in_ref(ref, renamed_from) and not self.file_exists(renamed_to):
            logger.debug(f"Skipping phantom rename: {renamed_from} -> {renamed_to}")
            return None
        if renamed_from not in touched and renamed_to not in touched:
            logger.debug(f"Skipping rename not introduced in range: {renamed_from} -> {renamed_to}")
            return None
        return FileChange(path=renamed_to, status=ChangeStatus.RENAMED, renamed_from=renamed_from)

    def count_lines(self, path: str) -> int:
        """Number of newline-terminated lines in the working tree copy."""
        try:
            with open(self.root / path, "rb") as f:
                return sum(1 for line in f if line.endswith(b"\n"))
        except OSError:
            return 0

    def get_line_stats(self, base_ref: str | None = None) -> dict[str, LineStats]:
        result = self._git("diff", "--numstat", *_diff_range(base_ref))
        if result.returncode != 0:
            logger.warning(f"Failed to get line stats: {result.stderr.strip()}")
            return {}

        return {
            path: LineStats(added=added, removed=removed, total_lines=self.count_lines(path))
            for path, (added, removed) in parse_numstat(result.stdout).items()
        }

    def get_file_from_git(self, ref: str, path: str) -> FileContent:
        result = self._git("show", f"{ref}:{path}")
        if result.returncode != 0:
            logger.debug(f"git show {ref}:{path} failed: {result.stderr.strip()}")
            return FileContent.failure()
        return FileContent(text=result.stdout)

    def get_current_file_content(self, path: str) -> FileContent:
        try:
            return FileContent(text=(self.root / path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {path}: {e}")
            return FileContent.failure()


class GitContentProvider:
    """Old content from the base ref (HEAD without one), new from the working tree."""

    def __init__(self, git: GitService, base_ref: str | None = None) -> None:
        self.git = git
        self.ref = base_ref or "HEAD"

    def get_old_content(self, path: str) -> FileContent:
        return self.git.get_file_from_git(self.ref, path)

    def get_new_content(self, path: str) -> FileContent:
        return self.git.get_current_file_content(path)
