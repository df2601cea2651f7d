"""GitHub Actions context, used to turn file paths into links."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RenderContext:
    """Where rendered file paths should link to."""

    repo_url: str | None = None
    branch: str = "main"
    base_path: str | None = None

    def link(self, rel_path: str) -> str:
        if not self.repo_url:
            return rel_path
        # Route groups like app/(auth)/page.tsx would otherwise end the link early
        label = re.sub(r"([()])", r"\\\1", rel_path)
        target = rel_path.replace("(", "%28").replace(")", "%29")
        return f"[{label}]({self.repo_url}/blob/{self.branch}/{target})"


def detect_github_context(env: Mapping[str, str] | None = None) -> RenderContext | None:
    """Build a RenderContext from GitHub Actions environment variables.

    Returns None outside of GitHub Actions.
    """
    env = os.environ if env is None else env
    repo = env.get("GITHUB_REPOSITORY")
    workspace = env.get("GITHUB_WORKSPACE")
    if not repo or not workspace:
        return None

    server_url = env.get("GITHUB_SERVER_URL") or "https://github.com"
    branch = env.get("GITHUB_HEAD_REF") or env.get("GITHUB_REF_NAME") or "main"
    return RenderContext(repo_url=f"{server_url}/{repo}", branch=branch, base_path=workspace)


def format_import_list(
    dependents: list[str],
    context: RenderContext | None = None,
    root: str | Path | None = None,
    limit: int = 3,
) -> str:
    """Show the first few dependents, linked when a repo URL is known.

    e.g. ``src/a.ts, src/b.ts, src/c.ts, and 2 more``
    """
    base = (context.base_path if context and context.base_path else None) or root or os.getcwd()
    shown = []
    for dep in dependents[:limit]:
        rel = Path(os.path.relpath(dep, base)).as_posix()
        shown.append(context.link(rel) if context else rel)

    more = len(dependents) - len(shown)
    return ", ".join(shown) + (f", and {more} more" if more > 0 else "")
