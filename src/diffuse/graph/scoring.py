"""Graph-derived risks for changed files."""

from __future__ import annotations

import logging

from diffuse.analysis.models import GraphImpact, GraphScoreReport, ScoredRisk
from diffuse.config import ResolvedConfig
from diffuse.constants import RiskFactor
from diffuse.filters import FileFilter
from diffuse.graph.builder import UsageGraph
from diffuse.graph.query import blast_radius, subsystem_spread
from diffuse.vcs.github import RenderContext, format_import_list

logger = logging.getLogger("diffuse.graph")


def score_graph(
    graph: UsageGraph,
    changed_files: list[str],
    config: ResolvedConfig,
    context: RenderContext | None = None,
    file_filter: FileFilter | None = None,
) -> GraphScoreReport:
    """Score each changed source file by how widely it is used.

    Per file:
      - a partial node gets an informational PARTIAL_IMPORT risk,
      - a file with dependents gets IMPORTED_IN_FILES worth
        ``blast_radius * weight``,
      - and USED_IN_MULTIPLE_TREES when more than one subsystem imports it.
    """
    file_filter = file_filter or FileFilter.from_config(config)
    report = GraphScoreReport()

    for file_path in changed_files:
        if not file_filter.should_include(file_path):
            continue

        node = graph.node(file_path)
        if node is None:
            continue

        risks: list[ScoredRisk] = []
        radius = blast_radius(graph, file_path)
        spread = subsystem_spread(graph, file_path)

        report.impacts[file_path] = GraphImpact(
            blast_radius=radius,
            dependents=[graph.relative(d) for d in node.imported_by],
            subsystems=sorted(node.subsystems),
            partial=node.partial,
        )

        if node.partial:
            risks.append(ScoredRisk(
                subject=file_path,
                factor=RiskFactor.PARTIAL_IMPORT,
                points=config.weight(RiskFactor.PARTIAL_IMPORT),
                explanation="Dynamic or malformed import",
            ))

        if node.imported_by:
            if spread > 1:
                areas = ", ".join(sorted(node.subsystems))
                risks.append(ScoredRisk(
                    subject=file_path,
                    factor=RiskFactor.USED_IN_MULTIPLE_TREES,
                    points=config.weight(RiskFactor.USED_IN_MULTIPLE_TREES),
                    explanation=f"Used across {spread} project areas ({areas})",
                ))

            listing = format_import_list(node.imported_by, context, root=graph.root)
            risks.append(ScoredRisk(
                subject=file_path,
                factor=RiskFactor.IMPORTED_IN_FILES,
                points=radius * config.weight(RiskFactor.IMPORTED_IN_FILES),
                explanation=f"Imported by {listing}",
            ))

        if risks:
            report.risks_by_file[file_path] = risks
            logger.debug(f"{file_path}: blast radius {radius}, {spread} subsystem(s)")

    return report
