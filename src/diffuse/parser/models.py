"""Data models for exported declarations and import statements."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from diffuse.constants import SUPPORTED_EXTENSIONS


class DeclarationKind(str, Enum):
    """Declaration kinds the breaking-change detector distinguishes.

    Only FUNCTION and INTERFACE are diffed; everything else (classes, type
    aliases, enums, variables, re-exports) is OTHER.
    """

    FUNCTION = "function"
    INTERFACE = "interface"
    OTHER = "other"


class Parameter(BaseModel):
    """A positional function parameter. `type` is None when unannotated."""

    name: str
    type: str | None = None
    optional: bool = False
    rest: bool = False


class PropertySignature(BaseModel):
    """An interface property."""

    name: str
    optional: bool = False
    type: str | None = None


class Declaration(BaseModel):
    """An exported declaration, tagged by kind."""

    name: str
    kind: DeclarationKind
    line: int = 0
    syntax: str = ""  # tree-sitter node type, for diagnostics
    return_type: str | None = None
    parameters: list[Parameter] = Field(default_factory=list)
    properties: list[PropertySignature] = Field(default_factory=list)


class ImportRef(BaseModel):
    """A module dependency found in a file.

    `specifier` is None when the module expression is not a string literal
    (e.g. `import(path)`), which makes the import unresolvable.
    """

    specifier: str | None
    symbols: list[str] = Field(default_factory=list)
    line: int = 0
    dynamic: bool = False
    reexport: bool = False


class ModuleSymbols(BaseModel):
    """Everything extracted from a single file's text."""

    file_path: str
    language: str
    exports: dict[str, Declaration] = Field(default_factory=dict)
    imports: list[ImportRef] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def export_names(self) -> set[str]:
        return set(self.exports)


# Language detection by file extension
EXTENSION_LANGUAGE_MAP: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
}


def detect_language(file_path: str) -> str | None:
    """Detect the grammar to use from the file extension."""
    ext = Path(file_path).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return None
    return EXTENSION_LANGUAGE_MAP.get(ext)
