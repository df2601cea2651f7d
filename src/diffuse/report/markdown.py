"""Markdown renderer for CI comments.

Produces GitHub-flavored markdown with:
  - overall and average score with risk level
  - summary counters
  - one section per file, highest score first, listing each risk
"""

from __future__ import annotations

from diffuse.analysis.models import AggregatedResult, LineStats
from diffuse.config import ResolvedConfig, get_default_config
from diffuse.report.summary import (
    LEVEL_EMOJI,
    skipped_line,
    stats_line,
    suggestion_for,
    summarize,
)


def _level(level) -> str:
    return f"{LEVEL_EMOJI[level]} **{level.value} Risk**"


def render_markdown(
    result: AggregatedResult,
    config: ResolvedConfig | None = None,
    suggestions: bool = True,
    tests: bool = True,
    verbose: bool = False,
) -> str:
    """Render an AggregatedResult as a markdown report."""
    config = config or get_default_config()
    summary = summarize(result, config)
    sections: list[str] = []

    sections.append("# 🚨 Risk Analysis Report")
    sections.append("")
    sections.append(skipped_line(result, verbose))
    sections.append("")

    if not result.per_file:
        sections.append("> No supported source files were changed.")
        sections.append("")
        sections.append(_footer())
        return "\n".join(sections)

    sections.append(f"**Overall Risk Score:** {summary.total:.2f} · {_level(summary.total_level)}  ")
    sections.append(f"**Average Risk Score:** {summary.average:.2f} · {_level(summary.average_level)}")
    sections.append("")

    if summary.many_low_risk_files:
        sections.append(
            "> ⚠️ *This change touches many files with individually low-risk changes. "
            "The volume increases review complexity and regression risk.*"
        )
        sections.append("")

    if summary.top_file:
        sections.append(f"🔥 **Highest risk file to review:** `{summary.top_file}`")
        sections.append("")

    counters = [
        f"**{summary.files_analyzed} files changed**",
        f"**{summary.return_type_changes} with return type changes**",
    ]
    if tests:
        counters.append(f"**{summary.missing_tests} with no test deltas**")
    counters.append(f"**{summary.multi_imported} imported by multiple files**")
    sections.append("📊 " + " · ".join(counters))
    sections.append("")

    for path, report in result.ranked():
        stats = result.line_stats.get(path, LineStats())
        impact = result.graph.get(path)
        sections.append(f"## `{path}`")
        sections.append(f"**Lines changed:** {stats_line(stats)}  ")
        sections.append(f"**Total Score:** {report.total:.2f} · {_level(report.level)}")
        sections.append("")

        for risk in report.risks:
            sections.append(f"- {risk.explanation} ({risk.points:.2f} pts)")
            advice = suggestion_for(risk, config, impact) if suggestions else None
            if advice:
                sections.append(f"  - {advice}")

        issues = result.issues.get(path, [])
        if verbose and issues:
            sections.append("")
            sections.append("<details>")
            sections.append("<summary>Details</summary>")
            sections.append("")
            sections.extend(f"- {issue}" for issue in issues)
            sections.append("")
            sections.append("</details>")
        sections.append("")

    sections.append(_footer())
    return "\n".join(sections)


def _footer() -> str:
    return "---\n_This report was generated by **Diffuse**_"
