"""Report content shared by the terminal and markdown renderers."""

from __future__ import annotations

from dataclasses import dataclass

from diffuse.analysis.models import (
    AggregatedResult,
    GraphImpact,
    LineStats,
    RiskLevel,
    ScoredRisk,
)
from diffuse.analysis.scoring import classify
from diffuse.config import ResolvedConfig
from diffuse.constants import MULTI_IMPORT_THRESHOLD, RiskFactor

LEVEL_EMOJI = {
    RiskLevel.VERY_HIGH: "🔥",
    RiskLevel.HIGH: "⚠️",
    RiskLevel.MEDIUM: "🟡",
    RiskLevel.LOW: "✅",
}

LEVEL_STYLE = {
    RiskLevel.VERY_HIGH: "magenta",
    RiskLevel.HIGH: "red",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.LOW: "green",
}


@dataclass
class ReportSummary:
    total: float
    average: float
    total_level: RiskLevel
    average_level: RiskLevel
    files_analyzed: int
    files_found: int
    top_file: str | None
    return_type_changes: int
    missing_tests: int
    multi_imported: int
    many_low_risk_files: bool


def summarize(result: AggregatedResult, config: ResolvedConfig) -> ReportSummary:
    thresholds = config.thresholds
    total = result.total_risk_score
    average = result.average_risk_score
    return ReportSummary(
        total=total,
        average=average,
        total_level=classify(total, thresholds),
        average_level=classify(average, thresholds),
        files_analyzed=result.files_analyzed,
        files_found=result.files_found,
        top_file=result.top_file,
        return_type_changes=len(result.files_with_factor(RiskFactor.RETURN_TYPE_CHANGED)),
        missing_tests=len(result.files_with_factor(RiskFactor.MISSING_TEST)),
        multi_imported=len(result.files_with_multiple_importers()),
        # Many small changes add up to a risky change set
        many_low_risk_files=total >= thresholds.high_risk and average < thresholds.medium_risk,
    )


def suggestion_for(
    risk: ScoredRisk, config: ResolvedConfig, impact: GraphImpact | None = None
) -> str | None:
    """Reviewer advice for a risk, if any.

    Import fan-out only earns advice once enough files import the changed
    file directly; `impact` is that file's graph record.
    """
    if risk.factor == RiskFactor.IMPORTED_IN_FILES:
        importers = len(impact.dependents) if impact else 0
        if importers < MULTI_IMPORT_THRESHOLD:
            return None
    return config.suggestion(risk.factor) or None


def skipped_line(result: AggregatedResult, verbose: bool) -> str:
    skipped = result.skipped_files
    if verbose:
        return (
            f"Git found {result.files_found} files. {result.files_analyzed} were analyzed. "
            f"{len(skipped.unsupported)} unsupported or excluded, {len(skipped.failed)} failed, "
            f"{len(skipped.empty)} empty, and {len(skipped.tests)} tests were skipped"
        )
    return (
        f"Git found {result.files_found} files, including tests and unsupported "
        f"file extensions. {result.files_analyzed} were analyzed"
    )


def stats_line(stats: LineStats) -> str:
    return (
        f"+{stats.added}/-{stats.removed} "
        f"({stats.percentage_changed:.1f}% of {stats.total_lines} lines)"
    )
