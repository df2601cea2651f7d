"""Risk factors, default weights and other shared constants."""

from __future__ import annotations

from enum import Enum

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx")

# Changed-symbol placeholder used when a file changed but no export did.
WHOLE_FILE = "(file)"


class RiskFactor(str, Enum):
    """Detectable conditions, each carrying a configurable point weight."""

    PROPS_CHANGED = "PROPS_CHANGED"
    RETURN_TYPE_CHANGED = "RETURN_TYPE_CHANGED"
    MISSING_TEST = "MISSING_TEST"
    EXPORT_REMOVED = "EXPORT_REMOVED"
    EXPORT_ADDED = "EXPORT_ADDED"
    IMPORTED_IN_FILES = "IMPORTED_IN_FILES"
    USED_IN_MULTIPLE_TREES = "USED_IN_MULTIPLE_TREES"
    PARTIAL_IMPORT = "PARTIAL_IMPORT"
    FILE_REMOVED = "FILE_REMOVED"
    FILE_ADDED = "FILE_ADDED"
    FILE_RENAMED = "FILE_RENAMED"
    LARGE_CHANGE = "LARGE_CHANGE"


DEFAULT_RISK_WEIGHTS: dict[RiskFactor, float] = {
    RiskFactor.PROPS_CHANGED: 10,
    RiskFactor.RETURN_TYPE_CHANGED: 8,
    RiskFactor.MISSING_TEST: 4,
    RiskFactor.EXPORT_REMOVED: 10,
    RiskFactor.EXPORT_ADDED: 0,
    RiskFactor.IMPORTED_IN_FILES: 1.2,  # multiplier on blast radius
    RiskFactor.USED_IN_MULTIPLE_TREES: 5,
    RiskFactor.PARTIAL_IMPORT: 0,
    RiskFactor.FILE_REMOVED: 10,
    RiskFactor.FILE_ADDED: 2,
    RiskFactor.FILE_RENAMED: 5,
    RiskFactor.LARGE_CHANGE: 7,
}

RISK_SUGGESTIONS: dict[RiskFactor, str] = {
    RiskFactor.PROPS_CHANGED: (
        "Ensure consuming components still function correctly; "
        "consider adding story/test cases."
    ),
    RiskFactor.RETURN_TYPE_CHANGED: (
        "Review all consumers to confirm they still handle the new return shape."
    ),
    RiskFactor.MISSING_TEST: "Add or update tests that reflect the changed behavior of this symbol.",
    RiskFactor.EXPORT_REMOVED: (
        "Confirm this export isn't used outside this repo or by internal tooling."
    ),
    RiskFactor.EXPORT_ADDED: (
        "Document or test this export if it's intended for use outside this file."
    ),
    RiskFactor.IMPORTED_IN_FILES: (
        "High usage: prioritize test coverage and backward compatibility."
    ),
    RiskFactor.USED_IN_MULTIPLE_TREES: (
        "Used across distinct app areas. Check for coupled assumptions or side effects."
    ),
    RiskFactor.PARTIAL_IMPORT: (
        "Some imports could not be resolved statically; dependents may be undercounted."
    ),
    RiskFactor.FILE_REMOVED: "File was removed. Check downstream imports.",
    RiskFactor.FILE_ADDED: "File was added.",
    RiskFactor.FILE_RENAMED: "File was renamed. Check downstream imports.",
    RiskFactor.LARGE_CHANGE: (
        "Large change: consider breaking up the PR or adding more tests. Review carefully."
    ),
}

# IMPORTED_IN_FILES only gets a suggestion once this many importers are involved.
MULTI_IMPORT_THRESHOLD = 3
