"""Data models shared by the detectors, the scoring engine and the renderers."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from diffuse.constants import MULTI_IMPORT_THRESHOLD, RiskFactor


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"


class ScoredRisk(BaseModel):
    """One detected condition and the points it contributes. Never mutated."""

    model_config = ConfigDict(frozen=True)

    subject: str
    factor: RiskFactor
    points: float = Field(ge=0)
    explanation: str


class ChangeStatus(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"
    UNTRACKED = "untracked"


class FileChange(BaseModel):
    """A changed path as reported by version control."""

    path: str
    status: ChangeStatus
    renamed_from: str | None = None


class FileContent(BaseModel):
    """Result of a content lookup. Lookups report failure instead of raising."""

    text: str = ""
    ok: bool = True

    @classmethod
    def failure(cls) -> FileContent:
        return cls(text="", ok=False)


class LineStats(BaseModel):
    added: int = 0
    removed: int = 0
    total_lines: int = 0

    @property
    def changed_lines(self) -> int:
        return self.added + self.removed

    @property
    def percentage_changed(self) -> float:
        if self.total_lines <= 0:
            return 0.0
        return self.changed_lines / self.total_lines * 100


class SkippedFiles(BaseModel):
    """Changed paths that were not analyzed, by reason."""

    unsupported: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    empty: list[str] = Field(default_factory=list)
    tests: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.unsupported) + len(self.failed) + len(self.empty) + len(self.tests)


class FileAnalysis(BaseModel):
    """Breaking-change findings for one file."""

    path: str
    issues: list[str] = Field(default_factory=list)
    changed_symbols: list[str] = Field(default_factory=list)
    risks: list[ScoredRisk] = Field(default_factory=list)

    @property
    def file_score(self) -> float:
        return sum(r.points for r in self.risks)

    def add_risk(
        self, factor: RiskFactor, points: float, explanation: str, subject: str | None = None
    ) -> ScoredRisk:
        risk = ScoredRisk(
            subject=subject or self.path, factor=factor, points=points, explanation=explanation
        )
        self.risks.append(risk)
        return risk

    def touch(self, symbol: str) -> None:
        if symbol not in self.changed_symbols:
            self.changed_symbols.append(symbol)


class BreakingChangeReport(BaseModel):
    """Detector output for a whole change list, in change-list order."""

    files: dict[str, FileAnalysis] = Field(default_factory=dict)
    skipped: SkippedFiles = Field(default_factory=SkippedFiles)


class GraphImpact(BaseModel):
    """Usage-graph facts about one changed file."""

    blast_radius: int = 0
    dependents: list[str] = Field(default_factory=list)
    subsystems: list[str] = Field(default_factory=list)
    partial: bool = False


class GraphScoreReport(BaseModel):
    risks_by_file: dict[str, list[ScoredRisk]] = Field(default_factory=dict)
    impacts: dict[str, GraphImpact] = Field(default_factory=dict)


class FileRiskReport(BaseModel):
    """All risks for one file.

    `total` includes derived risks such as LARGE_CHANGE; `detected_total` only
    counts what the detectors found.
    """

    total: float = 0
    detected_total: float = 0
    level: RiskLevel = RiskLevel.LOW
    risks: list[ScoredRisk] = Field(default_factory=list)


class AggregatedResult(BaseModel):
    """Final output of a run."""

    total_risk_score: float = 0
    per_file: dict[str, FileRiskReport] = Field(default_factory=dict)
    skipped_files: SkippedFiles = Field(default_factory=SkippedFiles)
    line_stats: dict[str, LineStats] = Field(default_factory=dict)
    graph: dict[str, GraphImpact] = Field(default_factory=dict)
    issues: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def files_analyzed(self) -> int:
        return len(self.per_file)

    @property
    def files_found(self) -> int:
        return self.files_analyzed + self.skipped_files.total

    @property
    def average_risk_score(self) -> float:
        if not self.per_file:
            return 0.0
        return self.total_risk_score / len(self.per_file)

    def ranked(self) -> list[tuple[str, FileRiskReport]]:
        """Files by total score, highest first. Ties keep change-list order."""
        return sorted(self.per_file.items(), key=lambda item: item[1].total, reverse=True)

    @property
    def top_file(self) -> str | None:
        ranked = self.ranked()
        return ranked[0][0] if ranked else None

    def files_with_factor(self, factor: RiskFactor) -> list[str]:
        return [
            path
            for path, report in self.per_file.items()
            if any(r.factor == factor for r in report.risks)
        ]

    def files_with_multiple_importers(self) -> list[str]:
        return [
            path
            for path, impact in self.graph.items()
            if impact.blast_radius >= MULTI_IMPORT_THRESHOLD
        ]
