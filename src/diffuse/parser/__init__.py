"""JS/TS source analysis for Diffuse."""

from diffuse.parser.core import collect_files, parse_module
from diffuse.parser.models import (
    Declaration,
    DeclarationKind,
    ImportRef,
    ModuleSymbols,
    Parameter,
    PropertySignature,
)
from diffuse.parser.typecheck import is_assignable, is_narrowed, parse_type

__all__ = [
    "Declaration",
    "DeclarationKind",
    "ImportRef",
    "ModuleSymbols",
    "Parameter",
    "PropertySignature",
    "collect_files",
    "is_assignable",
    "is_narrowed",
    "parse_module",
    "parse_type",
]
