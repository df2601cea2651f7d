"""Configuration management for Diffuse."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from diffuse.constants import DEFAULT_RISK_WEIGHTS, RISK_SUGGESTIONS, RiskFactor
from diffuse.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger("diffuse.config")

# Looked up in this order from the repository root.
CONFIG_CANDIDATES = ("diffuse.config.json", ".diffuserc.json", "package.json")
PACKAGE_JSON_KEY = "diffuse"


class _ConfigModel(BaseModel):
    """JSON files use camelCase keys; Python callers may use field names."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, allow_inf_nan=False
    )


class Thresholds(_ConfigModel):
    """Score thresholds for risk level classification."""

    medium_risk: float = 40
    high_risk: float = 60
    very_high_risk: float = 80
    large_change_percentage: float = 20


class Exclusions(_ConfigModel):
    """Glob patterns for paths left out of the analysis."""

    files: list[str] = Field(default_factory=list)
    directories: list[str] = Field(
        default_factory=lambda: ["node_modules", "dist", "build", ".git"]
    )
    test_patterns: list[str] = Field(default_factory=list)


class AnalysisConfig(_ConfigModel):
    """Analysis toggles."""

    include_test_coverage: bool = True
    include_usage_graph: bool = True
    max_files_in_graph: int | None = None


class ReportingConfig(_ConfigModel):
    """Report generation toggles."""

    include_suggestions: bool = True
    verbose_stats: bool = False
    suggestions: dict[RiskFactor, str] = Field(default_factory=dict)


class ResolvedConfig(_ConfigModel):
    """Fully merged configuration, immutable for the duration of a run."""

    risk_weights: dict[RiskFactor, float] = Field(
        default_factory=lambda: dict(DEFAULT_RISK_WEIGHTS)
    )
    thresholds: Thresholds = Field(default_factory=Thresholds)
    exclusions: Exclusions = Field(default_factory=Exclusions)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    def weight(self, factor: RiskFactor) -> float:
        return self.risk_weights.get(factor, DEFAULT_RISK_WEIGHTS[factor])

    def suggestion(self, factor: RiskFactor) -> str:
        return self.reporting.suggestions.get(factor) or RISK_SUGGESTIONS[factor]

    def with_analysis(self, **changes: Any) -> ResolvedConfig:
        """Return a copy with some analysis toggles overridden."""
        return self.model_copy(update={"analysis": self.analysis.model_copy(update=changes)})


def get_default_config() -> ResolvedConfig:
    return ResolvedConfig()


def validate_config(config: ResolvedConfig) -> None:
    """Reject configurations that would make scoring meaningless.

    Raises:
        ConfigValidationError: on the first violated rule.
    """
    t = config.thresholds
    if not t.medium_risk < t.high_risk:
        raise ConfigValidationError("mediumRisk threshold must be less than highRisk threshold")
    if not t.high_risk < t.very_high_risk:
        raise ConfigValidationError("highRisk threshold must be less than veryHighRisk threshold")
    if not 0 < t.large_change_percentage <= 100:
        raise ConfigValidationError("largeChangePercentage must be between 0 and 100")

    for factor, weight in config.risk_weights.items():
        if not weight >= 0:
            raise ConfigValidationError(
                f"Risk weight for {factor.value} must be a non-negative number"
            )

    max_files = config.analysis.max_files_in_graph
    if max_files is not None and max_files <= 0:
        raise ConfigValidationError("maxFilesInGraph must be a positive number")


def resolve_config(user: dict[str, Any] | None = None) -> ResolvedConfig:
    """Merge a user config (camelCase JSON shape) over the defaults and validate it.

    Risk weights and suggestions override per key, exclusion lists are appended
    to the defaults, everything else replaces the default value.
    """
    merged = get_default_config().model_dump(mode="json", by_alias=True)

    for key, value in (user or {}).items():
        current = merged.get(key)
        if key == "exclusions" and isinstance(value, dict):
            for name, patterns in value.items():
                if not isinstance(patterns, list):
                    raise ConfigValidationError(f"exclusions.{name} must be a list of patterns")
                merged["exclusions"][name] = merged["exclusions"].get(name, []) + patterns
        elif isinstance(current, dict) and isinstance(value, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value

    try:
        config = ResolvedConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration: {e}") from e

    validate_config(config)
    return config


def find_repo_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .git directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    if (current / ".git").exists():
        return current
    return None


def find_config_file(root: Path) -> Path | None:
    """Return the first config candidate present in `root`."""
    for name in CONFIG_CANDIDATES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(root: Path | None = None, config_path: str | Path | None = None) -> ResolvedConfig:
    """Load, merge and validate the configuration.

    Args:
        root: Directory searched for config candidates (defaults to cwd).
        config_path: Explicit config file; must exist when given.

    Returns:
        The validated configuration.
    """
    root = root or Path.cwd()
    if config_path is not None:
        path = Path(config_path)
        if not path.is_absolute():
            path = root / path
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
    else:
        path = find_config_file(root)

    if path is None:
        logger.debug("No configuration file found, using defaults")
        return resolve_config({})

    logger.debug(f"Loading configuration from {path}")
    return resolve_config(_read_config_file(path))


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if path.name == "package.json":
        data = data.get(PACKAGE_JSON_KEY, {}) if isinstance(data, dict) else {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"Configuration in {path} must be a JSON object")
    return data
