"""Aggregate per-file risks into the final score."""

from __future__ import annotations

import logging

from diffuse.analysis.models import (
    AggregatedResult,
    BreakingChangeReport,
    FileRiskReport,
    GraphScoreReport,
    LineStats,
    RiskLevel,
    ScoredRisk,
)
from diffuse.config import ResolvedConfig, Thresholds, get_default_config
from diffuse.constants import RiskFactor

logger = logging.getLogger("diffuse.scoring")


def classify(score: float, thresholds: Thresholds) -> RiskLevel:
    if score >= thresholds.very_high_risk:
        return RiskLevel.VERY_HIGH
    if score >= thresholds.high_risk:
        return RiskLevel.HIGH
    if score >= thresholds.medium_risk:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def large_change_risk(
    path: str, stats: LineStats | None, config: ResolvedConfig
) -> ScoredRisk | None:
    """LARGE_CHANGE when more than the configured share of the file changed."""
    if stats is None:
        return None
    percentage = stats.percentage_changed
    if percentage <= config.thresholds.large_change_percentage:
        return None
    return ScoredRisk(
        subject=path,
        factor=RiskFactor.LARGE_CHANGE,
        points=config.weight(RiskFactor.LARGE_CHANGE),
        explanation=(
            f"Large change: +{stats.added}/-{stats.removed} lines "
            f"({percentage:.1f}% of file)"
        ),
    )


def aggregate(
    breaking: BreakingChangeReport,
    graph_scores: GraphScoreReport | None = None,
    line_stats: dict[str, LineStats] | None = None,
    config: ResolvedConfig | None = None,
    order: list[str] | None = None,
) -> AggregatedResult:
    """Combine detector, graph and line-count signals per file.

    Files follow `order` (the change list). Without it, analyzed files come
    first, then files that only carry graph risks.
    """
    config = config or get_default_config()
    graph_scores = graph_scores or GraphScoreReport()
    line_stats = line_stats or {}

    scored = set(breaking.files) | set(graph_scores.risks_by_file)
    paths = [p for p in dict.fromkeys(order or []) if p in scored]
    paths.extend(p for p in breaking.files if p not in paths)
    paths.extend(p for p in graph_scores.risks_by_file if p not in paths)

    result = AggregatedResult(
        skipped_files=breaking.skipped,
        line_stats=line_stats,
        graph=graph_scores.impacts,
    )

    for path in paths:
        analysis = breaking.files.get(path)
        risks = list(analysis.risks) if analysis else []
        risks.extend(graph_scores.risks_by_file.get(path, []))
        detected_total = sum(r.points for r in risks)

        large = large_change_risk(path, line_stats.get(path), config)
        if large is not None:
            risks.append(large)
        total = detected_total + (large.points if large else 0)

        result.per_file[path] = FileRiskReport(
            total=total,
            detected_total=detected_total,
            level=classify(total, config.thresholds),
            risks=risks,
        )
        if analysis and analysis.issues:
            result.issues[path] = list(analysis.issues)

    result.total_risk_score = sum(r.total for r in result.per_file.values())
    logger.debug(
        f"Aggregated {len(result.per_file)} files, total score {result.total_risk_score:.2f}"
    )
    return result
