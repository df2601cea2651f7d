"""Structural breaking-change detection for exported declarations."""

from __future__ import annotations

import logging
from typing import Protocol

from diffuse.analysis.coverage import CoverageCorpus, CoverageHeuristic
from diffuse.analysis.models import (
    BreakingChangeReport,
    ChangeStatus,
    FileAnalysis,
    FileChange,
    FileContent,
    ScoredRisk,
)
from diffuse.config import ResolvedConfig, get_default_config
from diffuse.constants import RiskFactor
from diffuse.exceptions import ParserError
from diffuse.filters import FileFilter
from diffuse.parser.core import parse_module
from diffuse.parser.models import Declaration, DeclarationKind, ModuleSymbols, detect_language
from diffuse.parser.typecheck import is_narrowed

logger = logging.getLogger("diffuse.breaking")


class ContentProvider(Protocol):
    """Old/new text of a changed file. Failures are reported, never raised."""

    def get_old_content(self, path: str) -> FileContent: ...

    def get_new_content(self, path: str) -> FileContent: ...


def _types_narrowed(old: str | None, new: str | None) -> bool:
    if old is None or new is None or old == new:
        return False
    return is_narrowed(old, new)


def compare_functions(old: Declaration, new: Declaration) -> list[str]:
    """Describe how `new` breaks callers of `old`. Empty if it does not."""
    issues = []

    if _types_narrowed(old.return_type, new.return_type):
        issues.append(f"Return type narrowed from `{old.return_type}` to `{new.return_type}`")

    old_count, new_count = len(old.parameters), len(new.parameters)
    if new_count < old_count:
        issues.append(f"Removed {old_count - new_count} parameter(s)")
    elif new_count > old_count:
        issues.append(f"Added {new_count - old_count} parameter(s)")
    else:
        for i, (old_param, new_param) in enumerate(zip(old.parameters, new.parameters), start=1):
            if _types_narrowed(old_param.type, new_param.type):
                issues.append(
                    f"Parameter {i} type narrowed from `{old_param.type}` to `{new_param.type}`"
                )

    return issues


def compare_interfaces(old: Declaration, new: Declaration) -> tuple[list[str], list[str]]:
    """Compare interface properties.

    Returns:
        (breaking, informational): removed or newly required properties, and
        added properties.
    """
    old_props = {p.name: p for p in old.properties}
    new_props = {p.name: p for p in new.properties}

    breaking = []
    for name, prop in old_props.items():
        current = new_props.get(name)
        if current is None:
            breaking.append(f"Prop `{name}` was removed")
        elif prop.optional and not current.optional:
            breaking.append(f"Prop `{name}` is now required")

    added = [f"Prop `{name}` was added" for name in new_props if name not in old_props]
    return breaking, added


def _parse(path: str, text: str) -> ModuleSymbols:
    if not text.strip():
        return ModuleSymbols(file_path=path, language=detect_language(path) or "")
    return parse_module(path, text)


def analyze_file(
    old_text: str,
    new_text: str,
    path: str,
    config: ResolvedConfig | None = None,
) -> FileAnalysis:
    """Diff the exported declarations of two versions of one file.

    Each version gets its own parser and tree. Only functions and interfaces
    are compared structurally; other kinds only count when they appear or
    disappear.
    """
    config = config or get_default_config()
    old = _parse(path, old_text)
    new = _parse(path, new_text)
    analysis = FileAnalysis(path=path)

    names = list(old.exports) + [n for n in new.exports if n not in old.exports]
    for name in names:
        old_decl = old.exports.get(name)
        new_decl = new.exports.get(name)

        if old_decl is None and new_decl is not None:
            analysis.touch(name)
            analysis.issues.append(f"Export `{name}` was added")
            analysis.add_risk(
                RiskFactor.EXPORT_ADDED,
                config.weight(RiskFactor.EXPORT_ADDED),
                f"Export `{name}` was added",
                subject=name,
            )
            continue

        if new_decl is None:
            analysis.touch(name)
            analysis.issues.append(f"Export `{name}` was removed")
            analysis.add_risk(
                RiskFactor.EXPORT_REMOVED,
                config.weight(RiskFactor.EXPORT_REMOVED),
                f"Export `{name}` was removed",
                subject=name,
            )
            continue

        kind = old_decl.kind
        if kind != new_decl.kind or kind == DeclarationKind.OTHER:
            logger.debug(
                f"{path}: `{name}` not diffed ({old_decl.syntax} -> {new_decl.syntax})"
            )
            continue

        if kind == DeclarationKind.FUNCTION:
            changes = compare_functions(old_decl, new_decl)
            for change in changes:
                analysis.issues.append(f"Function `{name}`: {change}")
                analysis.add_risk(
                    RiskFactor.RETURN_TYPE_CHANGED,
                    config.weight(RiskFactor.RETURN_TYPE_CHANGED),
                    f"Return type changed in `{name}`",
                    subject=name,
                )
            if changes:
                analysis.touch(name)

        elif kind == DeclarationKind.INTERFACE:
            breaking, added = compare_interfaces(old_decl, new_decl)
            for change in breaking:
                analysis.issues.append(f"Interface `{name}`: {change}")
                analysis.add_risk(
                    RiskFactor.PROPS_CHANGED,
                    config.weight(RiskFactor.PROPS_CHANGED),
                    f"Props changed in `{name}`",
                    subject=name,
                )
            analysis.issues.extend(f"Interface `{name}`: {change}" for change in added)
            if breaking or added:
                analysis.touch(name)

    return analysis


def analyze_breaking_changes(
    changes: list[FileChange],
    provider: ContentProvider,
    config: ResolvedConfig | None = None,
    corpus: CoverageCorpus | None = None,
    file_filter: FileFilter | None = None,
) -> BreakingChangeReport:
    """Run the detector over a change list, in order.

    Files that cannot be analyzed land in `report.skipped`; nothing here
    raises for a single bad file. The coverage check runs when it is enabled
    in `config` and a corpus is given.
    """
    config = config or get_default_config()
    file_filter = file_filter or FileFilter.from_config(config)
    coverage = (
        CoverageHeuristic(corpus, config)
        if corpus is not None and config.analysis.include_test_coverage
        else None
    )
    report = BreakingChangeReport()
    skipped = report.skipped

    for change in changes:
        path = change.path

        if file_filter.is_test_file(path):
            skipped.tests.append(path)
            continue

        if not file_filter.has_supported_extension(path) or file_filter.is_excluded(path):
            logger.debug(f"Skipping unsupported file: {path}")
            skipped.unsupported.append(path)
            continue

        if change.status == ChangeStatus.DELETED:
            analysis = FileAnalysis(path=path, issues=["File removed"])
            analysis.add_risk(
                RiskFactor.FILE_REMOVED,
                config.weight(RiskFactor.FILE_REMOVED),
                f"File `{path}` was removed",
            )
            report.files[path] = analysis
            continue

        is_new = change.status in (ChangeStatus.ADDED, ChangeStatus.UNTRACKED)
        old_path = change.renamed_from if change.status == ChangeStatus.RENAMED else None

        new_content = provider.get_new_content(path)
        old_content = provider.get_old_content(old_path or path)
        if is_new and not old_content.ok:
            old_content = FileContent(text="")

        if not new_content.ok or not old_content.ok:
            logger.debug(f"Skipping failed fetch: {path}")
            skipped.failed.append(path)
            continue

        if not new_content.text.strip() or (not is_new and not old_content.text.strip()):
            logger.debug(f"Skipping empty file: {path}")
            skipped.empty.append(path)
            continue

        try:
            analysis = analyze_file(old_content.text, new_content.text, path, config)
        except ParserError as e:
            logger.warning(f"Skipping {path}: {e}")
            skipped.failed.append(path)
            continue

        if is_new:
            analysis.issues.insert(0, "New file")
            analysis.risks.insert(0, _file_risk(
                path, RiskFactor.FILE_ADDED, config, f"File `{path}` was added"
            ))
        elif old_path:
            analysis.issues.insert(0, f"Renamed from {old_path}")
            analysis.risks.insert(0, _file_risk(
                path, RiskFactor.FILE_RENAMED, config,
                f"File `{path}` was renamed from `{old_path}`",
            ))

        if coverage is not None:
            coverage.check(analysis)

        report.files[path] = analysis
        logger.debug(f"{path}: {len(analysis.risks)} risk(s), score {analysis.file_score:.2f}")

    return report


def _file_risk(
    path: str, factor: RiskFactor, config: ResolvedConfig, explanation: str
) -> ScoredRisk:
    return ScoredRisk(subject=path, factor=factor, points=config.weight(factor), explanation=explanation)
