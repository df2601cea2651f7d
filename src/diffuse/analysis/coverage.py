"""Heuristic check for changed symbols that no test mentions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from diffuse.analysis.models import FileAnalysis
from diffuse.config import ResolvedConfig
from diffuse.constants import WHOLE_FILE, RiskFactor
from diffuse.filters import FileFilter
from diffuse.parser.core import collect_files, read_source

logger = logging.getLogger("diffuse.coverage")


@dataclass(frozen=True)
class CoverageCorpus:
    """Concatenated text of every test file in the repository."""

    text: str = ""
    files: tuple[str, ...] = ()

    def mentions(self, name: str) -> bool:
        return name in self.text


def collect_test_files(root: str | Path, file_filter: FileFilter | None = None) -> list[str]:
    file_filter = file_filter or FileFilter()
    return [f for f in collect_files(root, file_filter) if file_filter.is_test_file(f)]


def build_corpus(root: str | Path, test_files: list[str] | None = None,
                 file_filter: FileFilter | None = None) -> CoverageCorpus:
    """Read all test files once. Unreadable files are left out."""
    root = Path(root)
    if test_files is None:
        test_files = collect_test_files(root, file_filter)

    texts = []
    read = []
    for rel_path in test_files:
        source = read_source(root / rel_path)
        if source is None:
            continue
        texts.append(source)
        read.append(rel_path)

    logger.debug(f"Test corpus: {len(read)} files, {sum(len(t) for t in texts)} chars")
    return CoverageCorpus(text="\n".join(texts), files=tuple(read))


def find_untested(changed_symbols: list[str], corpus_text: str) -> list[str]:
    """Names that appear nowhere in the corpus.

    With no symbol-level change the whole file is checked, using a
    placeholder name that no test will contain.
    """
    names = changed_symbols or [WHOLE_FILE]
    return [name for name in names if name not in corpus_text]


class CoverageHeuristic:
    """Adds a MISSING_TEST risk to files whose changes no test mentions."""

    def __init__(self, corpus: CoverageCorpus, config: ResolvedConfig) -> None:
        self.corpus = corpus
        self.config = config

    def check(self, analysis: FileAnalysis) -> list[str]:
        untested = find_untested(analysis.changed_symbols, self.corpus.text)
        if not untested:
            return []

        analysis.issues.extend(
            f"`{name}` changed but no related test was updated" for name in untested
        )
        # One flat risk per file, however many names are untested
        analysis.add_risk(
            RiskFactor.MISSING_TEST,
            self.config.weight(RiskFactor.MISSING_TEST),
            "No associated test changes",
        )
        return untested
