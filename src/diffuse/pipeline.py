"""End-to-end risk analysis of a change set.

Steps:
1. List changed files and line stats from git
2. Build the test corpus from every test file in the repository
3. Detect breaking changes per file (plus the coverage check)
4. Build the usage graph and score changed files by their dependents
5. Aggregate everything into one result
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from diffuse.analysis.breaking import analyze_breaking_changes
from diffuse.analysis.coverage import CoverageCorpus, build_corpus
from diffuse.analysis.models import AggregatedResult, FileChange, GraphScoreReport
from diffuse.analysis.scoring import aggregate
from diffuse.config import ResolvedConfig, get_default_config
from diffuse.filters import FileFilter
from diffuse.graph.builder import UsageGraph, UsageGraphBuilder
from diffuse.graph.scoring import score_graph
from diffuse.parser.core import collect_files
from diffuse.vcs.git import GitContentProvider, GitService
from diffuse.vcs.github import RenderContext

logger = logging.getLogger("diffuse.pipeline")


@dataclass
class AnalysisRun:
    """Everything a run produced, for renderers and callers that need more than scores."""

    result: AggregatedResult
    changes: list[FileChange]
    graph: UsageGraph | None = None


def run_analysis(
    root: str | Path,
    base_ref: str | None = None,
    config: ResolvedConfig | None = None,
    context: RenderContext | None = None,
    git: GitService | None = None,
) -> AnalysisRun:
    """Analyze the changes in `root` since `base_ref` (the working tree if None).

    Args:
        root: Repository root.
        base_ref: Compare ``base_ref...HEAD``; None compares the working tree.
        config: Resolved configuration; analysis toggles are honored.
        context: GitHub context for linking dependents.
        git: GitService to use, mainly for tests.

    Returns:
        The aggregated result plus the change list and graph.
    """
    root = Path(root).resolve()
    config = config or get_default_config()
    git = git or GitService(root)
    file_filter = FileFilter.from_config(config)

    changes = git.list_changes(base_ref)
    logger.info(f"Found {len(changes)} changed file(s)")
    if not changes:
        return AnalysisRun(result=AggregatedResult(), changes=[])

    repo_files = collect_files(root, file_filter)

    corpus: CoverageCorpus | None = None
    if config.analysis.include_test_coverage:
        corpus = build_corpus(root, [f for f in repo_files if file_filter.is_test_file(f)])

    provider = GitContentProvider(git, base_ref)
    breaking = analyze_breaking_changes(changes, provider, config, corpus, file_filter)

    graph: UsageGraph | None = None
    graph_scores = GraphScoreReport()
    if config.analysis.include_usage_graph:
        graph = UsageGraphBuilder(root, config, file_filter).build(repo_files)
        graph_scores = score_graph(
            graph, [c.path for c in changes], config, context, file_filter
        )

    line_stats = git.get_line_stats(base_ref)
    result = aggregate(
        breaking, graph_scores, line_stats, config, order=[c.path for c in changes]
    )
    logger.info(
        f"Analyzed {result.files_analyzed} file(s), total risk score "
        f"{result.total_risk_score:.2f}"
    )
    return AnalysisRun(result=result, changes=changes, graph=graph)
